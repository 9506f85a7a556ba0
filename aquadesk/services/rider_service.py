from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from aquadesk.core.exceptions import NotFoundError
from aquadesk.logger_config import logger
from aquadesk.models.common import generate_custom_id
from aquadesk.models.order import ACTIVE_STATUSES, Order, OrderStatus
from aquadesk.models.rider import Rider
from aquadesk.utils.payment_status import to_money
from aquadesk.utils.timezone import business_date, day_bounds


def get_rider_by_id(db: Session, rider_id: str) -> Optional[Rider]:
    return db.query(Rider).filter(Rider.id == rider_id).first()


def get_rider_or_404(db: Session, rider_id: str) -> Rider:
    rider = get_rider_by_id(db, rider_id)
    if not rider:
        raise NotFoundError(f"Rider {rider_id} not found")
    return rider


def get_all_riders(
    db: Session,
    skip: int = 0,
    limit: int = 100,
    search: Optional[str] = None,
    is_active: Optional[bool] = None
) -> tuple[List[Rider], int]:
    query = db.query(Rider)

    if is_active is not None:
        query = query.filter(Rider.is_active == is_active)

    if search:
        search_term = f"%{search.strip()}%"
        query = query.filter(or_(Rider.name.ilike(search_term), Rider.phone.ilike(search_term)))

    total = query.count()
    riders = query.order_by(Rider.name.asc()).offset(skip).limit(limit).all()
    return riders, total


def create_rider(db: Session, name: str, phone: str, is_active: bool = True) -> Rider:
    rider_id = generate_custom_id("RDR")
    while get_rider_by_id(db, rider_id):
        rider_id = generate_custom_id("RDR")

    rider = Rider(id=rider_id, name=name, phone=phone, is_active=is_active)
    db.add(rider)

    try:
        db.commit()
        db.refresh(rider)
        logger.info(f"Rider created: {rider.id} ({rider.name})")
        return rider
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Error creating rider: {str(e)}")
        raise ValueError("Failed to create rider. Phone number may already be registered.")


def update_rider(
    db: Session,
    rider_id: str,
    name: Optional[str] = None,
    phone: Optional[str] = None
) -> Rider:
    rider = get_rider_or_404(db, rider_id)

    if name is not None:
        rider.name = name
    if phone is not None:
        rider.phone = phone

    try:
        db.commit()
        db.refresh(rider)
        return rider
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Error updating rider: {str(e)}")
        raise ValueError("Failed to update rider. Phone number may already be registered.")


def set_rider_status(db: Session, rider_id: str, is_active: bool) -> Rider:
    """Deactivated riders keep their orders but can no longer be assigned new ones."""
    rider = get_rider_or_404(db, rider_id)
    rider.is_active = is_active
    db.commit()
    db.refresh(rider)
    logger.info(f"Rider {rider_id} {'activated' if is_active else 'deactivated'}")
    return rider


def get_rider_dashboard(db: Session, rider_id: str, reference_date: Optional[date] = None) -> Dict[str, Any]:
    """Per-day counts and cash collected by one rider."""
    rider = get_rider_or_404(db, rider_id)
    reference_date = reference_date or business_date()
    start, end = day_bounds(reference_date)

    orders = db.query(Order).filter(
        Order.rider_id == rider_id,
        Order.created_at >= start,
        Order.created_at < end
    ).all()

    delivered = [o for o in orders if o.status == OrderStatus.DELIVERED]
    collected = sum((to_money(o.paid_amount) for o in delivered), Decimal("0.00"))

    # Open work is not limited to the day: yesterday's unfinished orders still count
    pending_count = db.query(Order).filter(
        Order.rider_id == rider_id,
        Order.status.in_(ACTIVE_STATUSES)
    ).count()

    return {
        "rider_id": rider.id,
        "rider_name": rider.name,
        "date": reference_date,
        "assigned_orders": len(orders),
        "delivered_orders": len(delivered),
        "cancelled_orders": len([o for o in orders if o.status == OrderStatus.CANCELLED]),
        "pending_orders": pending_count,
        "bottles_delivered": sum(o.number_of_bottles for o in delivered),
        "amount_collected": collected,
    }
