from collections import OrderedDict
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from aquadesk.core.exceptions import ClosingPreconditionFailedError, NotFoundError
from aquadesk.logger_config import logger
from aquadesk.models.common import generate_custom_id
from aquadesk.models.daily_closing import DailyClosing
from aquadesk.models.order import ACTIVE_STATUSES, Order, OrderStatus, OrderType
from aquadesk.services.ledger import CustomerLedger
from aquadesk.utils.payment_status import to_money
from aquadesk.utils.timezone import business_date, day_bounds, utc_now

ZERO = Decimal("0.00")

# Fields copied from a summary onto the stored DailyClosing row
SNAPSHOT_FIELDS = (
    "customer_receivable",
    "customer_payable",
    "total_orders",
    "cancelled_orders",
    "total_bottles",
    "total_current_order_amount",
    "total_paid_amount",
    "balance_cleared_today",
    "walk_in_amount",
    "clear_bill_amount",
)


class DailyClosingService:
    """
    End-of-day reconciliation ("close counter").

    The summary is read-only over one business day's orders plus a
    point-in-time ledger snapshot. Saving upserts one DailyClosing per date
    and is refused while any order of that day is still open.
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.clock = clock
        self.ledger = CustomerLedger(db)

    def today(self) -> date:
        return business_date(self.clock())

    # ================= SUMMARY =================

    def compute_summary(self, reference_date: Optional[date] = None) -> Dict[str, Any]:
        reference_date = reference_date or self.today()
        start, end = day_bounds(reference_date)

        orders = (
            self.db.query(Order)
            .options(joinedload(Order.rider))
            .filter(Order.created_at >= start, Order.created_at < end)
            .order_by(Order.created_at.asc())
            .all()
        )
        logger.debug(f"Closing summary for {reference_date}: {len(orders)} orders in [{start}, {end})")

        in_progress = [o for o in orders if o.status in ACTIVE_STATUSES]
        cancelled = [o for o in orders if o.status == OrderStatus.CANCELLED]
        counted = [o for o in orders if o.status != OrderStatus.CANCELLED]
        delivered = [o for o in orders if o.status == OrderStatus.DELIVERED]

        total_current = sum((to_money(o.current_order_amount) for o in counted), ZERO)
        total_paid = sum((to_money(o.paid_amount) for o in delivered), ZERO)
        balance_cleared = total_current - total_paid

        rider_collections: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        payment_methods: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        walk_in_amount = ZERO
        clear_bill_amount = ZERO

        for order in delivered:
            paid = to_money(order.paid_amount)

            if order.order_type == OrderType.DELIVERY and order.rider_id:
                entry = rider_collections.setdefault(order.rider_id, {
                    "rider_id": order.rider_id,
                    "rider_name": order.rider.name if order.rider else None,
                    "amount": ZERO,
                    "orders_count": 0,
                })
                entry["amount"] += paid
                entry["orders_count"] += 1
            elif order.order_type == OrderType.WALKIN:
                walk_in_amount += paid
            elif order.order_type == OrderType.CLEARBILL:
                clear_bill_amount += paid

            if order.payment_method is not None:
                method = order.payment_method.value
                entry = payment_methods.setdefault(method, {
                    "method": method,
                    "amount": ZERO,
                    "orders_count": 0,
                })
                entry["amount"] += paid
                entry["orders_count"] += 1

        receivable, payable = self.ledger.totals()

        already_exists = self.exists(reference_date)

        summary = {
            "date": reference_date,
            "can_close": not in_progress,
            "in_progress_orders_count": len(in_progress),
            "already_exists": already_exists,
            "customer_receivable": receivable,
            "customer_payable": payable,
            "total_orders": len(counted),
            "cancelled_orders": len(cancelled),
            "total_bottles": sum(o.number_of_bottles for o in counted),
            "total_current_order_amount": total_current,
            "total_paid_amount": total_paid,
            "balance_cleared_today": balance_cleared,
            "balance_movement_label": "Udhaar" if balance_cleared >= 0 else "Recovery",
            "rider_collections": list(rider_collections.values()),
            "walk_in_amount": walk_in_amount,
            "clear_bill_amount": clear_bill_amount,
            "payment_methods": list(payment_methods.values()),
        }

        logger.info(
            f"Closing summary {reference_date}: orders={summary['total_orders']}, "
            f"paid={total_paid}, cleared={balance_cleared}, can_close={summary['can_close']}"
        )
        return summary

    # ================= PERSIST =================

    def save(self, reference_date: Optional[date] = None) -> DailyClosing:
        """
        Upsert the closing for `reference_date`. The precondition is checked
        against a fresh summary, never one the caller displayed earlier.
        """
        reference_date = reference_date or self.today()
        logger.info(f"Saving daily closing for {reference_date}")

        summary = self.compute_summary(reference_date)
        if not summary["can_close"]:
            logger.error(
                f"Closing refused for {reference_date}: "
                f"{summary['in_progress_orders_count']} order(s) still in progress"
            )
            raise ClosingPreconditionFailedError(
                f"There are {summary['in_progress_orders_count']} order(s) currently in progress. "
                f"Please complete all orders before closing the counter."
            )

        try:
            closing = self._upsert(reference_date, summary)
            self.db.commit()
        except IntegrityError:
            # Another request inserted the same date first; overwrite its row instead
            self.db.rollback()
            logger.warning(f"Closing for {reference_date} was created concurrently; updating it")
            closing = self._upsert(reference_date, summary)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error saving daily closing for {reference_date}: {str(e)}", exc_info=True)
            raise

        self.db.refresh(closing)
        logger.info(f"✅ Daily closing saved: {closing.id} for {reference_date}")
        return closing

    def _upsert(self, reference_date: date, summary: Dict[str, Any]) -> DailyClosing:
        closing = (
            self.db.query(DailyClosing)
            .filter(DailyClosing.closing_date == reference_date)
            .with_for_update()
            .populate_existing()
            .first()
        )
        now = self.clock()

        if closing is None:
            closing = DailyClosing(
                id=generate_custom_id("DCL"),
                closing_date=reference_date,
                created_at=now,
            )
            self.db.add(closing)

        for field in SNAPSHOT_FIELDS:
            setattr(closing, field, summary[field])

        closing.rider_collections = _jsonable(summary["rider_collections"])
        closing.payment_methods = _jsonable(summary["payment_methods"])
        closing.updated_at = now

        self.db.flush()
        return closing

    # ================= QUERIES =================

    def list_closings(self, skip: int = 0, limit: int = 100) -> Tuple[List[DailyClosing], int]:
        query = self.db.query(DailyClosing)
        total = query.count()
        closings = (
            query
            .order_by(DailyClosing.closing_date.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return closings, total

    def exists(self, reference_date: date) -> bool:
        return self.db.query(DailyClosing.id).filter(
            DailyClosing.closing_date == reference_date
        ).first() is not None

    def get_closing(self, reference_date: date) -> DailyClosing:
        closing = self.db.query(DailyClosing).filter(DailyClosing.closing_date == reference_date).first()
        if not closing:
            raise NotFoundError(f"No daily closing found for {reference_date}")
        return closing


def _jsonable(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Decimals are stored as strings inside the JSON columns."""
    return [
        {key: (str(value) if isinstance(value, Decimal) else value) for key, value in row.items()}
        for row in rows
    ]
