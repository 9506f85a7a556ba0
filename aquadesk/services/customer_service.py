from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy import or_
from typing import Optional, List
from aquadesk.core.exceptions import ConcurrencyConflictError, NotFoundError
from aquadesk.models.common import generate_custom_id
from aquadesk.models.customer import Customer
from aquadesk.logger_config import logger


def get_customer_by_id(db: Session, customer_id: str) -> Optional[Customer]:
    """Get customer by ID."""
    return db.query(Customer).filter(Customer.id == customer_id).first()


def get_customer_or_404(db: Session, customer_id: str) -> Customer:
    customer = get_customer_by_id(db, customer_id)
    if not customer:
        raise NotFoundError(f"Customer {customer_id} not found")
    return customer


def get_all_customers(
    db: Session,
    skip: int = 0,
    limit: int = 100,
    search: Optional[str] = None,
    is_active: Optional[bool] = None
) -> tuple[List[Customer], int]:
    """Get all customers, searching name, phone, WhatsApp and house number."""
    query = db.query(Customer)

    if is_active is not None:
        query = query.filter(Customer.is_active == is_active)

    if search:
        search_term = f"%{search.strip()}%"
        query = query.filter(
            or_(
                Customer.name.ilike(search_term),
                Customer.phone.ilike(search_term),
                Customer.whatsapp.ilike(search_term),
                Customer.house_no.ilike(search_term),
                Customer.id.ilike(search_term)
            )
        )

    total = query.count()
    customers = query.order_by(Customer.name.asc()).offset(skip).limit(limit).all()

    return customers, total


def create_customer(
    db: Session,
    name: str,
    phone: str,
    whatsapp: Optional[str] = None,
    house_no: Optional[str] = None,
    street_no: Optional[str] = None,
    area: Optional[str] = None,
    city: Optional[str] = None,
    address: Optional[str] = None,
    bottle_count: int = 0,
    avg_days_to_refill: Optional[int] = None,
) -> Customer:
    """Create a new customer. New customers always start with a clear balance."""
    customer_id = generate_custom_id("CUS")

    # Ensure id is unique
    while get_customer_by_id(db, customer_id):
        customer_id = generate_custom_id("CUS")

    customer = Customer(
        id=customer_id,
        name=name,
        phone=phone,
        whatsapp=whatsapp or phone,
        house_no=house_no,
        street_no=street_no,
        area=area,
        city=city,
        address=address,
        bottle_count=bottle_count,
        avg_days_to_refill=avg_days_to_refill,
        is_active=True,
    )

    db.add(customer)

    try:
        db.commit()
        db.refresh(customer)
        logger.info(f"Customer created: {customer.id} ({customer.name})")
        return customer
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Error creating customer: {str(e)}")
        raise ValueError("Failed to create customer.")


UPDATABLE_FIELDS = (
    "name", "phone", "whatsapp", "house_no", "street_no",
    "area", "city", "address", "bottle_count", "avg_days_to_refill",
)


def update_customer(db: Session, customer_id: str, **fields) -> Customer:
    """
    Update customer profile fields. The balance is not updatable here; it only
    moves through order transitions.
    """
    customer = get_customer_or_404(db, customer_id)

    for key, value in fields.items():
        if key in UPDATABLE_FIELDS and value is not None:
            setattr(customer, key, value)

    try:
        db.commit()
        db.refresh(customer)
        return customer
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Error updating customer: {str(e)}")
        raise ValueError("Failed to update customer.")
    except StaleDataError:
        db.rollback()
        logger.error(f"Customer {customer_id} changed while being updated")
        raise ConcurrencyConflictError(f"Customer {customer_id} was modified concurrently; reload and try again")


def set_customer_status(db: Session, customer_id: str, is_active: bool) -> Customer:
    """Activate or deactivate a customer. Customers are never deleted."""
    customer = get_customer_or_404(db, customer_id)
    customer.is_active = is_active
    db.commit()
    db.refresh(customer)
    logger.info(f"Customer {customer_id} {'activated' if is_active else 'deactivated'}")
    return customer
