"""
Admin Dashboard
Headline counts for the back office and a feed of the latest order and customer events
"""

from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, joinedload

from aquadesk.logger_config import logger
from aquadesk.models.customer import Customer
from aquadesk.models.order import ACTIVE_STATUSES, Order, OrderStatus
from aquadesk.models.rider import Rider
from aquadesk.services.ledger import CustomerLedger
from aquadesk.utils.timezone import as_utc, business_date, day_bounds


def get_dashboard_stats(db: Session, reference_date: Optional[date] = None) -> Dict[str, Any]:
    """
    Counts for the admin landing page.

    `pending_payments` is what customers owe right now (ledger receivable),
    not a sum over unpaid orders: unpaid remainders are already carried on the
    customer's balance.
    """
    reference_date = reference_date or business_date()
    start, end = day_bounds(reference_date)

    receivable, payable = CustomerLedger(db).totals()

    stats = {
        "date": reference_date,
        "total_customers": db.query(Customer).count(),
        "active_customers": db.query(Customer).filter(Customer.is_active.is_(True)).count(),
        "total_riders": db.query(Rider).count(),
        "active_riders": db.query(Rider).filter(Rider.is_active.is_(True)).count(),
        "orders_today": db.query(Order).filter(
            Order.created_at >= start,
            Order.created_at < end,
            Order.status != OrderStatus.CANCELLED
        ).count(),
        "pending_orders": db.query(Order).filter(Order.status.in_(ACTIVE_STATUSES)).count(),
        "pending_payments": receivable,
        "receivable_customers": db.query(Customer).filter(Customer.current_balance > 0).count(),
        "customer_payable": payable,
    }
    logger.debug(f"Dashboard stats for {reference_date}: {stats}")
    return stats


# ==================== RECENT ACTIVITY ====================

# (timestamp column, activity kind, badge)
ORDER_EVENTS = (
    ("created_at", "ORDER_CREATED", "new"),
    ("assigned_at", "ORDER_ASSIGNED", "info"),
    ("delivered_at", "ORDER_DELIVERED", "success"),
    ("cancelled_at", "ORDER_CANCELLED", "cancelled"),
)


def _describe(order: Order, kind: str) -> str:
    if kind == "ORDER_CREATED":
        return f"New {order.order_type.value.lower()} order {order.id} from {order.customer_name}"
    if kind == "ORDER_ASSIGNED":
        return f"Order {order.id} assigned to {order.rider_name}"
    if kind == "ORDER_DELIVERED":
        return f"Payment received {order.paid_amount} from {order.customer_name} ({order.id})"
    return f"Order {order.id} for {order.customer_name} cancelled"


def get_recent_activities(db: Session, limit: int = 10) -> List[Dict[str, Any]]:
    """
    Latest order transitions and new customers, newest first.

    Each source is read newest-first and capped at `limit`, so the merged
    top `limit` is exact.
    """
    activities: List[Dict[str, Any]] = []

    for column_name, kind, badge in ORDER_EVENTS:
        column = getattr(Order, column_name)
        orders = (
            db.query(Order)
            .options(joinedload(Order.customer), joinedload(Order.rider))
            .filter(column.isnot(None))
            .order_by(column.desc())
            .limit(limit)
            .all()
        )
        for order in orders:
            activities.append({
                "kind": kind,
                "status": badge,
                "text": _describe(order, kind),
                "order_id": order.id,
                "customer_id": order.customer_id,
                "occurred_at": as_utc(getattr(order, column_name)),
            })

    customers = db.query(Customer).order_by(Customer.created_at.desc()).limit(limit).all()
    for customer in customers:
        activities.append({
            "kind": "CUSTOMER_ADDED",
            "status": "new",
            "text": f"New customer added: {customer.name}",
            "order_id": None,
            "customer_id": customer.id,
            "occurred_at": as_utc(customer.created_at),
        })

    activities.sort(key=lambda a: a["occurred_at"], reverse=True)
    return activities[:limit]
