from decimal import Decimal

import pytest

from aquadesk.common.events import LedgerChanged, OrderChanged
from aquadesk.core.exceptions import (
    ConcurrencyConflictError,
    InvalidAmountError,
    InvalidStateTransitionError,
    MissingRiderError,
    NotFoundError,
)
from aquadesk.models.order import OrderPriority, OrderStatus, OrderType, PaymentMethod, PaymentStatus
from aquadesk.services.ledger import CustomerLedger
from aquadesk.services.order_service import OrderService
from aquadesk.services.rider_service import set_rider_status


@pytest.fixture()
def service(db, events, clock):
    return OrderService(db, events=events, clock=clock)


def balance(db, customer_id):
    return CustomerLedger(db).get_balance(customer_id)


def delivery(service, customer, rider=None, amount="500", bottles=5, **kwargs):
    return service.create_order(
        order_type=OrderType.DELIVERY,
        number_of_bottles=bottles,
        customer_id=customer.id,
        current_order_amount=Decimal(amount),
        rider_id=rider.id if rider else None,
        **kwargs,
    )


# ==================== SCENARIOS ====================

def test_partial_payment_leaves_receivable(db, service, customer, rider):
    order = delivery(service, customer, rider, amount="500")
    assert order.total_amount == Decimal("500.00")
    assert order.customer_balance_at_creation == Decimal("0.00")

    order = service.deliver_order(order.id, Decimal("300"), PaymentMethod.CASH)

    assert order.status == OrderStatus.DELIVERED
    assert order.payment_status == PaymentStatus.PARTIAL
    assert balance(db, customer.id) == Decimal("200.00")


def test_previous_balance_carried_into_next_order(db, service, customer, rider):
    first = delivery(service, customer, rider, amount="500")
    service.deliver_order(first.id, Decimal("300"), PaymentMethod.CASH)

    second = delivery(service, customer, rider, amount="100", bottles=1)
    assert second.customer_balance_at_creation == Decimal("200.00")
    assert second.total_amount == Decimal("300.00")

    second = service.deliver_order(second.id, Decimal("300"), "cash")
    assert second.payment_status == PaymentStatus.PAID
    assert balance(db, customer.id) == Decimal("0.00")


def test_walk_in_refund(db, service, customer):
    order = service.create_order(
        order_type=OrderType.WALKIN,
        number_of_bottles=0,
        customer_id=customer.id,
        current_order_amount=Decimal("-50"),
    )
    assert order.total_amount == Decimal("-50.00")

    order = service.complete_order(order.id, Decimal("-50"), PaymentMethod.CASH)
    assert order.payment_status == PaymentStatus.PAID
    assert balance(db, customer.id) == Decimal("0.00")


def test_cancel_restores_snapshot_exactly(db, service, customer, rider):
    CustomerLedger(db).apply_delta(customer.id, Decimal("200"))
    db.commit()

    order = delivery(service, customer, rider, amount="0", bottles=2)
    assert order.total_amount == Decimal("200.00")

    order = service.cancel_order(order.id)
    assert order.status == OrderStatus.CANCELLED
    assert order.cancelled_at is not None
    assert balance(db, customer.id) == Decimal("200.00")


def test_overpayment_makes_customer_payable(db, service, customer, rider):
    order = delivery(service, customer, rider, amount="300", bottles=3)
    order = service.deliver_order(order.id, Decimal("400"), PaymentMethod.JAZZCASH)

    assert order.payment_status == PaymentStatus.OVERPAID
    assert balance(db, customer.id) == Decimal("-100.00")
    assert CustomerLedger(db).get_label(customer.id) == "Payable"


# ==================== CREATION ====================

def test_amount_from_unit_price(service, customer):
    order = service.create_order(
        order_type=OrderType.DELIVERY,
        number_of_bottles=4,
        customer_id=customer.id,
        unit_price=Decimal("90"),
    )
    assert order.current_order_amount == Decimal("360.00")
    assert order.status == OrderStatus.CREATED
    assert order.payment_status == PaymentStatus.NOT_PAID
    assert order.version == 1


def test_unregistered_walk_in_has_no_ledger(service):
    order = service.create_order(order_type=OrderType.WALKIN, number_of_bottles=2, unit_price=Decimal("100"))
    assert order.customer_id is None
    assert order.customer_name == "Walk-in Customer"

    order = service.complete_order(order.id, Decimal("200"), PaymentMethod.CASH)
    assert order.payment_status == PaymentStatus.PAID


def test_create_rejects_bad_input(service, customer, rider):
    with pytest.raises(InvalidAmountError):
        delivery(service, customer, bottles=-1)
    with pytest.raises(InvalidAmountError):
        delivery(service, customer, bottles=0)
    with pytest.raises(InvalidAmountError):
        service.create_order(order_type=OrderType.DELIVERY, number_of_bottles=1, customer_id=customer.id)
    with pytest.raises(ValueError):
        service.create_order(order_type=OrderType.DELIVERY, number_of_bottles=1, current_order_amount=100)
    with pytest.raises(NotFoundError):
        service.create_order(
            order_type=OrderType.DELIVERY,
            number_of_bottles=1,
            customer_id="CUS-NOPE0000",
            current_order_amount=100,
        )
    with pytest.raises(InvalidStateTransitionError):
        service.create_order(
            order_type=OrderType.WALKIN,
            number_of_bottles=1,
            customer_id=customer.id,
            current_order_amount=100,
            rider_id=rider.id,
        )


def test_create_does_not_touch_balance(db, service, customer):
    delivery(service, customer, amount="500")
    assert balance(db, customer.id) == Decimal("0.00")


# ==================== ASSIGNMENT ====================

def test_assign_and_reassign(service, customer, rider, second_rider):
    order = delivery(service, customer)
    order = service.assign_rider(order.id, rider.id)
    assert order.status == OrderStatus.ASSIGNED
    assert order.rider_id == rider.id
    assert order.assigned_at is not None

    order = service.assign_rider(order.id, second_rider.id)
    assert order.rider_id == second_rider.id
    assert order.status == OrderStatus.ASSIGNED


def test_assign_same_rider_twice_is_rejected(service, customer, rider):
    order = delivery(service, customer, rider)
    with pytest.raises(InvalidStateTransitionError):
        service.assign_rider(order.id, rider.id)


def test_assign_inactive_or_unknown_rider(db, service, customer, rider):
    order = delivery(service, customer)
    set_rider_status(db, rider.id, False)
    with pytest.raises(MissingRiderError):
        service.assign_rider(order.id, rider.id)
    with pytest.raises(NotFoundError):
        service.assign_rider(order.id, "RDR-NOPE0000")


def test_cannot_assign_after_start(service, customer, rider, second_rider):
    order = delivery(service, customer, rider)
    service.start_delivery(order.id)
    with pytest.raises(InvalidStateTransitionError):
        service.assign_rider(order.id, second_rider.id)


def test_cannot_assign_walk_in(service, customer, rider):
    order = service.create_order(
        order_type=OrderType.WALKIN, number_of_bottles=1, customer_id=customer.id, current_order_amount=100
    )
    with pytest.raises(InvalidStateTransitionError):
        service.assign_rider(order.id, rider.id)


# ==================== TRANSITIONS ====================

def test_start_requires_assignment(service, customer):
    order = delivery(service, customer)
    with pytest.raises(InvalidStateTransitionError):
        service.start_delivery(order.id)


def test_deliver_from_in_progress(db, service, customer, rider):
    order = delivery(service, customer, rider, amount="250")
    order = service.start_delivery(order.id)
    assert order.status == OrderStatus.IN_PROGRESS

    order = service.deliver_order(order.id, Decimal("250"), PaymentMethod.EASYPAISA, notes="left at gate")
    assert order.status == OrderStatus.DELIVERED
    assert order.payment_method == PaymentMethod.EASYPAISA
    assert order.delivery_notes == "left at gate"
    assert order.delivered_at is not None


def test_deliver_without_rider(service, customer):
    order = delivery(service, customer)
    with pytest.raises(MissingRiderError):
        service.deliver_order(order.id, Decimal("100"), PaymentMethod.CASH)


def test_deliver_walk_in_is_rejected(service, customer):
    order = service.create_order(
        order_type=OrderType.WALKIN, number_of_bottles=1, customer_id=customer.id, current_order_amount=100
    )
    with pytest.raises(InvalidStateTransitionError):
        service.deliver_order(order.id, Decimal("100"), PaymentMethod.CASH)


def test_complete_delivery_order_is_rejected(service, customer, rider):
    order = delivery(service, customer, rider)
    with pytest.raises(InvalidStateTransitionError):
        service.complete_order(order.id, Decimal("100"), PaymentMethod.CASH)


def test_terminal_orders_are_frozen(db, service, customer, rider):
    order = delivery(service, customer, rider, amount="500")
    service.deliver_order(order.id, Decimal("500"), PaymentMethod.CASH)

    with pytest.raises(InvalidStateTransitionError):
        service.deliver_order(order.id, Decimal("500"), PaymentMethod.CASH)
    with pytest.raises(InvalidStateTransitionError):
        service.cancel_order(order.id)
    assert balance(db, customer.id) == Decimal("0.00")

    cancelled = delivery(service, customer, rider)
    service.cancel_order(cancelled.id)
    with pytest.raises(InvalidStateTransitionError):
        service.cancel_order(cancelled.id)
    with pytest.raises(InvalidStateTransitionError):
        service.start_delivery(cancelled.id)


def test_invalid_payment_rolls_back(db, service, customer, rider):
    order = delivery(service, customer, rider)
    with pytest.raises(InvalidAmountError):
        service.deliver_order(order.id, "lots", PaymentMethod.CASH)
    with pytest.raises(InvalidAmountError):
        service.deliver_order(order.id, Decimal("10"), "cheque")

    order = service.get_order(order.id)
    assert order.status == OrderStatus.ASSIGNED
    assert balance(db, customer.id) == Decimal("0.00")


def test_unknown_order(service):
    with pytest.raises(NotFoundError):
        service.get_order("ORD-NOPE0000")
    with pytest.raises(NotFoundError):
        service.cancel_order("ORD-NOPE0000")


# ==================== CONCURRENCY ====================

def test_stale_expected_version_is_rejected(db, service, customer, rider, second_rider):
    order = delivery(service, customer, rider)
    read_version = order.version

    service.assign_rider(order.id, second_rider.id, expected_version=read_version)

    with pytest.raises(ConcurrencyConflictError):
        service.deliver_order(order.id, Decimal("500"), PaymentMethod.CASH, expected_version=read_version)
    assert service.get_order(order.id).status == OrderStatus.ASSIGNED
    assert balance(db, customer.id) == Decimal("0.00")


def test_each_transition_bumps_version(service, customer, rider):
    order = delivery(service, customer)
    versions = [order.version]
    versions.append(service.assign_rider(order.id, rider.id).version)
    versions.append(service.start_delivery(order.id).version)
    versions.append(service.deliver_order(order.id, Decimal("500"), PaymentMethod.CASH).version)
    assert versions == [1, 2, 3, 4]


# ==================== CLEAR BILL ====================

def test_clear_bill_receivable(db, service, customer, rider):
    order = delivery(service, customer, rider, amount="500")
    service.deliver_order(order.id, Decimal("0"), PaymentMethod.CASH)
    assert balance(db, customer.id) == Decimal("500.00")

    clear = service.clear_bill(customer.id, Decimal("200"), PaymentMethod.BANK_TRANSFER)
    assert clear.order_type == OrderType.CLEARBILL
    assert clear.status == OrderStatus.DELIVERED
    assert clear.number_of_bottles == 0
    assert clear.total_amount == Decimal("500.00")
    assert clear.paid_amount == Decimal("200.00")
    assert clear.payment_status == PaymentStatus.PARTIAL
    assert balance(db, customer.id) == Decimal("300.00")


def test_clear_bill_payable_refunds_customer(db, service, customer, rider):
    order = delivery(service, customer, rider, amount="300", bottles=3)
    service.deliver_order(order.id, Decimal("450"), PaymentMethod.CASH)
    assert balance(db, customer.id) == Decimal("-150.00")

    clear = service.clear_bill(customer.id, Decimal("150"), PaymentMethod.CASH)
    assert clear.paid_amount == Decimal("-150.00")
    assert clear.payment_status == PaymentStatus.PAID
    assert balance(db, customer.id) == Decimal("0.00")


def test_clear_bill_guards(db, service, customer, rider):
    with pytest.raises(InvalidAmountError):
        service.clear_bill(customer.id, Decimal("100"), PaymentMethod.CASH)
    with pytest.raises(InvalidAmountError):
        service.clear_bill(customer.id, Decimal("0"), PaymentMethod.CASH)
    with pytest.raises(NotFoundError):
        service.clear_bill("CUS-NOPE0000", Decimal("100"), PaymentMethod.CASH)

    CustomerLedger(db).apply_delta(customer.id, Decimal("100"))
    db.commit()
    delivery(service, customer, rider)
    with pytest.raises(InvalidStateTransitionError):
        service.clear_bill(customer.id, Decimal("100"), PaymentMethod.CASH)


# ==================== QUERIES / EVENTS ====================

def test_dispatch_queue_order(service, clock, customer, other_customer, rider):
    clock.set(2026, 3, 10, 5, 0)
    assigned = delivery(service, customer, rider)
    clock.set(2026, 3, 10, 5, 10)
    low = delivery(service, customer, priority=OrderPriority.LOW)
    clock.set(2026, 3, 10, 5, 20)
    normal_old = delivery(service, other_customer)
    clock.set(2026, 3, 10, 5, 30)
    high = delivery(service, other_customer, priority=OrderPriority.HIGH)
    clock.set(2026, 3, 10, 5, 40)
    normal_new = delivery(service, customer)
    done = delivery(service, customer)
    service.cancel_order(done.id)

    queue = [o.id for o in service.dispatch_queue()]
    assert queue == [high.id, normal_old.id, normal_new.id, low.id, assigned.id]


def test_list_orders_filters(service, customer, other_customer, rider):
    first = delivery(service, customer, rider)
    delivery(service, other_customer)
    service.create_order(order_type=OrderType.WALKIN, number_of_bottles=1, unit_price=Decimal("100"))

    orders, total = service.list_orders(customer_id=customer.id)
    assert total == 1 and orders[0].id == first.id

    orders, total = service.list_orders(order_type=OrderType.WALKIN)
    assert total == 1

    orders, total = service.list_orders(status=OrderStatus.ASSIGNED)
    assert [o.id for o in orders] == [first.id]

    orders, total = service.list_orders(search="Sana")
    assert total == 1 and orders[0].customer_id == other_customer.id


def test_events_published_after_commit(service, events, customer, rider):
    seen = []
    events.subscribe(OrderChanged, seen.append)
    events.subscribe(LedgerChanged, seen.append)

    order = delivery(service, customer, rider, amount="500")
    service.deliver_order(order.id, Decimal("300"), PaymentMethod.CASH)

    assert [type(e) for e in seen] == [OrderChanged, OrderChanged, LedgerChanged]
    assert seen[1].status == "DELIVERED"
    assert seen[2].customer_id == customer.id
    assert seen[2].current_balance == Decimal("200.00")


def test_no_events_on_failure(service, events, customer):
    seen = []
    events.subscribe(OrderChanged, seen.append)
    order = delivery(service, customer)
    seen.clear()

    with pytest.raises(MissingRiderError):
        service.deliver_order(order.id, Decimal("100"), PaymentMethod.CASH)
    assert seen == []


def test_failing_subscriber_does_not_undo_commit(db, service, events, customer, rider):
    def boom(event):
        raise RuntimeError("push service down")

    events.subscribe(LedgerChanged, boom)
    order = delivery(service, customer, rider, amount="500")
    service.deliver_order(order.id, Decimal("100"), PaymentMethod.CASH)
    assert balance(db, customer.id) == Decimal("400.00")


def test_unsubscribed_handler_is_not_called(service, events, customer):
    seen = []
    events.subscribe(OrderChanged, seen.append)
    events.unsubscribe(OrderChanged, seen.append)
    delivery(service, customer)
    assert seen == []
