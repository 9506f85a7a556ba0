"""
Order State Machine

    CREATED     -> ASSIGNED | CANCELLED | DELIVERED (walk-in / clear-bill "complete")
    ASSIGNED    -> ASSIGNED (reassign) | IN_PROGRESS | DELIVERED | CANCELLED
    IN_PROGRESS -> DELIVERED | CANCELLED
    DELIVERED, CANCELLED are terminal

Ledger effects:
- create:   snapshot the customer's balance; total = order amount + snapshot.
            The ledger itself is untouched until the order settles.
- settle:   balance moves by (total - paid) - snapshot, i.e. the unresolved
            remainder replaces the snapshot it was built from.
- cancel:   balance is restored to exactly the snapshot.

Each transition writes the order row and the customer row in one commit.
Both rows are version-checked, so a racing transition on the same order or
customer fails with ConcurrencyConflictError instead of applying twice.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Callable, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload
from sqlalchemy.orm.exc import StaleDataError

from aquadesk.common.events import EventBus, OrderChanged, event_bus
from aquadesk.core.exceptions import (
    AquaDeskError,
    ConcurrencyConflictError,
    InvalidAmountError,
    InvalidStateTransitionError,
    MissingRiderError,
    NotFoundError,
)
from aquadesk.logger_config import logger
from aquadesk.models.common import generate_custom_id
from aquadesk.models.customer import Customer
from aquadesk.models.order import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    Order,
    OrderPriority,
    OrderStatus,
    OrderType,
    PaymentMethod,
    PaymentStatus,
)
from aquadesk.models.rider import Rider
from aquadesk.services.ledger import CustomerLedger
from aquadesk.utils.payment_status import (
    derive_payment_status,
    to_money,
    to_positive_money,
    validate_payment_method,
)
from aquadesk.utils.timezone import day_bounds, utc_now

PRIORITY_RANK = {
    OrderPriority.HIGH: 0,
    OrderPriority.NORMAL: 1,
    OrderPriority.LOW: 2,
}


class OrderService:
    """Creates orders and drives them through their lifecycle."""

    def __init__(
        self,
        db: Session,
        events: Optional[EventBus] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.events = events or event_bus
        self.clock = clock
        self.ledger = CustomerLedger(db)

    # ==================== QUERIES ====================

    def get_order(self, order_id: str) -> Order:
        order = (
            self.db.query(Order)
            .options(joinedload(Order.customer), joinedload(Order.rider))
            .filter(Order.id == order_id)
            .first()
        )
        if not order:
            logger.warning(f"Order not found: {order_id}")
            raise NotFoundError(f"Order {order_id} not found")
        return order

    def list_orders(
        self,
        skip: int = 0,
        limit: int = 50,
        status: Optional[OrderStatus] = None,
        order_type: Optional[OrderType] = None,
        payment_status: Optional[PaymentStatus] = None,
        customer_id: Optional[str] = None,
        rider_id: Optional[str] = None,
        reference_date: Optional[date] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Order], int]:
        query = self.db.query(Order).options(joinedload(Order.customer), joinedload(Order.rider))

        if status:
            query = query.filter(Order.status == status)
        if order_type:
            query = query.filter(Order.order_type == order_type)
        if payment_status:
            query = query.filter(Order.payment_status == payment_status)
        if customer_id:
            query = query.filter(Order.customer_id == customer_id)
        if rider_id:
            query = query.filter(Order.rider_id == rider_id)
        if reference_date:
            start, end = day_bounds(reference_date)
            query = query.filter(Order.created_at >= start, Order.created_at < end)
            logger.debug(f"Filtering orders by business day {reference_date}: [{start}, {end})")
        if search:
            term = f"%{search.strip()}%"
            query = query.outerjoin(Customer, Order.customer_id == Customer.id).filter(
                or_(
                    Order.id.ilike(term),
                    Customer.name.ilike(term),
                    Customer.phone.ilike(term),
                )
            )

        total = query.count()
        orders = query.order_by(Order.created_at.desc()).offset(skip).limit(limit).all()
        return orders, total

    def dispatch_queue(self) -> List[Order]:
        """Open orders: unassigned first, then HIGH > NORMAL > LOW, oldest first within a priority."""
        orders = (
            self.db.query(Order)
            .options(joinedload(Order.customer), joinedload(Order.rider))
            .filter(Order.status.in_(ACTIVE_STATUSES))
            .all()
        )
        return sorted(
            orders,
            key=lambda o: (o.rider_id is not None, PRIORITY_RANK.get(o.priority, 1), o.created_at),
        )

    # ==================== CREATE ====================

    def create_order(
        self,
        order_type: OrderType,
        number_of_bottles: int,
        customer_id: Optional[str] = None,
        current_order_amount=None,
        unit_price=None,
        notes: Optional[str] = None,
        priority: OrderPriority = OrderPriority.NORMAL,
        rider_id: Optional[str] = None,
    ) -> Order:
        """
        Create an order and snapshot the customer's balance.

        `current_order_amount` wins when both it and `unit_price` are given;
        otherwise the amount is number_of_bottles * unit_price.
        """
        order_type = OrderType(order_type)
        logger.info(
            f"Creating {order_type.value} order - Customer: {customer_id or 'walk-in'}, "
            f"Bottles: {number_of_bottles}, Rider: {rider_id}"
        )

        def _create() -> Order:
            if number_of_bottles is None or int(number_of_bottles) < 0:
                raise InvalidAmountError("Number of bottles cannot be negative")
            if order_type == OrderType.DELIVERY and int(number_of_bottles) <= 0:
                raise InvalidAmountError("Delivery orders need at least one bottle")

            price = None
            if unit_price is not None:
                price = to_money(unit_price)
                if price < 0:
                    raise InvalidAmountError("Unit price cannot be negative")

            if current_order_amount is not None:
                amount = to_money(current_order_amount)
            elif price is not None:
                amount = to_money(price * int(number_of_bottles))
            else:
                raise InvalidAmountError("Either current_order_amount or unit_price is required")

            if customer_id is None and order_type != OrderType.WALKIN:
                raise ValueError(f"{order_type.value} orders require a registered customer")

            snapshot = Decimal("0.00")
            if customer_id is not None:
                snapshot = self.ledger.get_balance(customer_id)

            order_id = generate_custom_id("ORD")
            while self.db.query(Order.id).filter(Order.id == order_id).first():
                order_id = generate_custom_id("ORD")

            total = amount + snapshot
            now = self.clock()
            order = Order(
                id=order_id,
                order_type=order_type,
                status=OrderStatus.CREATED,
                priority=OrderPriority(priority or OrderPriority.NORMAL),
                customer_id=customer_id,
                number_of_bottles=int(number_of_bottles),
                unit_price=price,
                current_order_amount=amount,
                customer_balance_at_creation=snapshot,
                total_amount=total,
                paid_amount=Decimal("0.00"),
                payment_status=derive_payment_status(total, Decimal("0.00")),
                notes=notes,
                created_at=now,
                updated_at=now,
            )

            if rider_id is not None:
                if order_type != OrderType.DELIVERY:
                    raise InvalidStateTransitionError(
                        f"{order_type.value} orders are fulfilled without a rider"
                    )
                rider = self._get_active_rider(rider_id)
                order.rider_id = rider.id
                order.status = OrderStatus.ASSIGNED
                order.assigned_at = now

            self.db.add(order)

            logger.debug(
                f"Order amounts - Current: {amount}, Balance snapshot: {snapshot}, Total: {total}"
            )
            return order

        return self._transaction("create order", _create)

    # ==================== ASSIGNMENT ====================

    def assign_rider(self, order_id: str, rider_id: str, expected_version: Optional[int] = None) -> Order:
        """Assign, or reassign to a different active rider."""

        def _assign() -> Order:
            order = self._lock_order(order_id, expected_version)

            if order.order_type != OrderType.DELIVERY:
                raise InvalidStateTransitionError(
                    f"{order.order_type.value} orders are fulfilled without a rider"
                )
            if order.status not in (OrderStatus.CREATED, OrderStatus.ASSIGNED):
                raise InvalidStateTransitionError(
                    f"Cannot assign a rider to an order that is {order.status.value}"
                )
            if order.rider_id == rider_id:
                raise InvalidStateTransitionError(f"Order {order_id} is already assigned to rider {rider_id}")

            rider = self._get_active_rider(rider_id)
            previous_rider = order.rider_id

            order.rider_id = rider.id
            order.status = OrderStatus.ASSIGNED
            order.assigned_at = self.clock()

            logger.info(
                f"Order {order.id} {'reassigned' if previous_rider else 'assigned'}: "
                f"{previous_rider or '-'} → {rider.id} ({rider.name})"
            )
            return order

        return self._transaction("assign rider", _assign)

    def start_delivery(self, order_id: str, expected_version: Optional[int] = None) -> Order:
        def _start() -> Order:
            order = self._lock_order(order_id, expected_version)
            if order.status != OrderStatus.ASSIGNED:
                raise InvalidStateTransitionError(
                    f"Only ASSIGNED orders can be started (order is {order.status.value})"
                )
            if order.rider_id is None:
                raise MissingRiderError(f"Order {order_id} has no rider")

            order.status = OrderStatus.IN_PROGRESS
            logger.info(f"Order {order.id} out for delivery with rider {order.rider_id}")
            return order

        return self._transaction("start delivery", _start)

    # ==================== CANCEL ====================

    def cancel_order(self, order_id: str, expected_version: Optional[int] = None) -> Order:
        """Terminal. Puts the customer's balance back to the snapshot taken at creation."""

        def _cancel() -> Order:
            order = self._lock_order(order_id, expected_version)
            if order.status in TERMINAL_STATUSES:
                raise InvalidStateTransitionError(
                    f"Order {order_id} is already {order.status.value} and cannot be cancelled"
                )

            if order.customer_id is not None:
                self.ledger.restore_balance(order.customer_id, order.customer_balance_at_creation)

            order.status = OrderStatus.CANCELLED
            order.cancelled_at = self.clock()
            logger.info(f"Order {order.id} cancelled")
            return order

        return self._transaction("cancel order", _cancel)

    # ==================== SETTLEMENT ====================

    def deliver_order(
        self,
        order_id: str,
        payment_amount,
        payment_method,
        notes: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Order:
        """Rider hands over a DELIVERY order and records what was collected."""

        def _deliver() -> Order:
            order = self._lock_order(order_id, expected_version)

            if order.order_type != OrderType.DELIVERY:
                raise InvalidStateTransitionError(
                    f"{order.order_type.value} orders are completed, not delivered"
                )
            if order.status in TERMINAL_STATUSES:
                raise InvalidStateTransitionError(f"Order {order_id} is already {order.status.value}")
            if order.rider_id is None:
                raise MissingRiderError(f"Order {order_id} must be assigned to a rider before delivery")
            if order.status not in (OrderStatus.ASSIGNED, OrderStatus.IN_PROGRESS):
                raise InvalidStateTransitionError(f"Cannot deliver an order that is {order.status.value}")

            return self._settle(order, payment_amount, payment_method, notes)

        return self._transaction("deliver order", _deliver)

    def complete_order(
        self,
        order_id: str,
        payment_amount,
        payment_method,
        notes: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Order:
        """Settle a walk-in or clear-bill order at the counter."""

        def _complete() -> Order:
            order = self._lock_order(order_id, expected_version)

            if order.order_type == OrderType.DELIVERY:
                raise InvalidStateTransitionError("Delivery orders are settled through delivery")
            if order.status != OrderStatus.CREATED:
                raise InvalidStateTransitionError(f"Cannot complete an order that is {order.status.value}")

            return self._settle(order, payment_amount, payment_method, notes)

        return self._transaction("complete order", _complete)

    def clear_bill(
        self,
        customer_id: str,
        amount,
        payment_method,
        notes: Optional[str] = None,
    ) -> Order:
        """
        Settle a customer's outstanding balance without delivering product.

        `amount` is the magnitude exchanged; the direction follows the balance:
        a receivable customer pays us, a payable customer is refunded.
        """

        def _clear() -> Order:
            magnitude = to_positive_money(amount, "Payment amount")
            method = validate_payment_method(payment_method)

            customer = (
                self.db.query(Customer)
                .filter(Customer.id == customer_id)
                .with_for_update()
                .populate_existing()
                .first()
            )
            if not customer:
                raise NotFoundError(f"Customer {customer_id} not found")

            active = self.db.query(Order).filter(
                Order.customer_id == customer_id,
                Order.status.in_(ACTIVE_STATUSES)
            ).count()
            if active:
                raise InvalidStateTransitionError(
                    f"Customer {customer_id} has {active} order(s) in progress; settle them first"
                )

            balance = to_money(customer.current_balance or 0)
            if balance == 0:
                raise InvalidAmountError(f"Customer {customer_id} has no outstanding balance")

            paid = magnitude if balance > 0 else -magnitude

            order_id = generate_custom_id("ORD")
            while self.db.query(Order.id).filter(Order.id == order_id).first():
                order_id = generate_custom_id("ORD")

            now = self.clock()
            order = Order(
                id=order_id,
                order_type=OrderType.CLEARBILL,
                status=OrderStatus.CREATED,
                priority=OrderPriority.NORMAL,
                customer_id=customer_id,
                number_of_bottles=0,
                current_order_amount=Decimal("0.00"),
                customer_balance_at_creation=balance,
                total_amount=balance,
                paid_amount=Decimal("0.00"),
                payment_status=PaymentStatus.NOT_PAID,
                notes=notes,
                created_at=now,
                updated_at=now,
            )
            self.db.add(order)
            self.db.flush()

            logger.info(f"Clear bill {order.id} for {customer_id}: balance {balance}, exchanging {paid}")
            return self._settle(order, paid, method, notes)

        return self._transaction("clear bill", _clear)

    def _settle(self, order: Order, payment_amount, payment_method, notes: Optional[str]) -> Order:
        paid = to_money(payment_amount)
        method: PaymentMethod = validate_payment_method(payment_method)

        total = to_money(order.total_amount)
        snapshot = to_money(order.customer_balance_at_creation)
        remainder = total - paid
        status = derive_payment_status(total, paid)

        if order.customer_id is not None:
            self.ledger.apply_delta(order.customer_id, remainder - snapshot)
        elif remainder != 0:
            logger.warning(
                f"Walk-in order {order.id} without a customer settled with remainder {remainder}; "
                f"nothing is carried to a ledger"
            )

        order.paid_amount = paid
        order.payment_status = status
        order.payment_method = method
        order.delivery_notes = notes
        order.status = OrderStatus.DELIVERED
        order.delivered_at = self.clock()

        logger.info(
            f"Order {order.id} settled - Total: {total}, Paid: {paid} ({method.value}), "
            f"Status: {status.value}, Remaining: {remainder}"
        )
        return order

    # ==================== HELPERS ====================

    def _lock_order(self, order_id: str, expected_version: Optional[int]) -> Order:
        order = (
            self.db.query(Order)
            .filter(Order.id == order_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if not order:
            raise NotFoundError(f"Order {order_id} not found")

        if expected_version is not None and order.version != expected_version:
            raise ConcurrencyConflictError(
                f"Order {order_id} changed since it was read "
                f"(version {expected_version}, now {order.version}); reload and try again"
            )
        return order

    def _get_active_rider(self, rider_id: str) -> Rider:
        rider = self.db.query(Rider).filter(Rider.id == rider_id).first()
        if not rider:
            raise NotFoundError(f"Rider {rider_id} not found")
        if not rider.is_active:
            raise MissingRiderError(f"Rider {rider_id} is not active")
        return rider

    def _transaction(self, action: str, work: Callable[[], Order]) -> Order:
        """Run `work`, commit order and ledger together, then publish the changes."""
        try:
            order = work()
            self.db.commit()

        except StaleDataError as se:
            self.db.rollback()
            self.ledger.discard_changes()
            logger.error(f"Concurrent update detected during {action}: {str(se)}")
            raise ConcurrencyConflictError(
                f"The order or customer was modified concurrently during {action}; reload and try again"
            )

        except AquaDeskError as de:
            self.db.rollback()
            self.ledger.discard_changes()
            logger.error(f"Failed to {action}: {de.error_code} - {de.message}")
            raise

        except ValueError as ve:
            self.db.rollback()
            self.ledger.discard_changes()
            logger.error(f"Validation error in {action}: {str(ve)}")
            raise

        except IntegrityError as ie:
            self.db.rollback()
            self.ledger.discard_changes()
            logger.error(f"Database integrity error in {action}: {str(ie)}")
            raise ValueError(f"Failed to {action} due to database constraint.")

        except Exception as e:
            self.db.rollback()
            self.ledger.discard_changes()
            logger.error(f"Unexpected error in {action}: {str(e)}", exc_info=True)
            raise

        self.db.refresh(order)
        self._publish(order)
        return order

    def _publish(self, order: Order) -> None:
        self.events.publish(
            OrderChanged(
                order_id=order.id,
                status=order.status.value,
                customer_id=order.customer_id,
                rider_id=order.rider_id,
            )
        )
        for change in self.ledger.drain_changes():
            self.events.publish(change)
