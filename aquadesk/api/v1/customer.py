from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import Optional
from aquadesk.core.dependencies import get_db
from aquadesk.core.exceptions import AquaDeskError
from aquadesk.services.customer_service import (
    get_customer_or_404,
    get_all_customers,
    create_customer,
    update_customer,
    set_customer_status
)
from aquadesk.services.order_service import OrderService
from aquadesk.schemas.customer import (
    CustomerCreate,
    CustomerUpdate,
    CustomerStatusUpdate,
    CustomerResponse,
    CustomerListResponse
)
from aquadesk.schemas.order import OrderListResponse, OrderResponse
from aquadesk.logger_config import logger

router = APIRouter()


@router.get("", response_model=CustomerListResponse)
def get_customers(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
    search: Optional[str] = Query(None, description="Name, phone, WhatsApp or house number"),
    is_active: Optional[bool] = Query(None),
    db: Session = Depends(get_db)
):
    """
    Get all customers with optional search filtering.
    """
    try:
        customers, total = get_all_customers(db, skip=skip, limit=limit, search=search, is_active=is_active)
        return CustomerListResponse(
            total=total,
            customers=[CustomerResponse.model_validate(c) for c in customers]
        )
    except Exception as e:
        logger.error(f"Error fetching customers: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch customers"
        )


@router.get("/{customer_id}", response_model=CustomerResponse)
def get_customer(customer_id: str, db: Session = Depends(get_db)):
    """
    Get customer by ID, including the signed balance and its label.
    """
    return CustomerResponse.model_validate(get_customer_or_404(db, customer_id))


@router.get("/{customer_id}/orders", response_model=OrderListResponse)
def get_customer_orders(
    customer_id: str,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db)
):
    """Order history for one customer, newest first."""
    get_customer_or_404(db, customer_id)
    orders, total = OrderService(db).list_orders(skip=skip, limit=limit, customer_id=customer_id)
    return OrderListResponse(
        total=total,
        skip=skip,
        limit=limit,
        orders=[OrderResponse.model_validate(o) for o in orders]
    )


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
def create_customer_route(customer_data: CustomerCreate, db: Session = Depends(get_db)):
    """
    Create a new customer. The balance always starts clear.
    """
    try:
        customer = create_customer(db=db, **customer_data.model_dump())
        logger.info(f"customer {customer.id} created")
        return CustomerResponse.model_validate(customer)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        logger.error(f"Error creating customer: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create customer"
        )


@router.put("/{customer_id}", response_model=CustomerResponse)
def update_customer_route(
    customer_id: str,
    customer_data: CustomerUpdate,
    db: Session = Depends(get_db)
):
    """
    Update customer profile information. Balances only move through orders.
    """
    try:
        customer = update_customer(db, customer_id, **customer_data.model_dump(exclude_unset=True))
        logger.info(f"customer {customer_id} updated")
        return CustomerResponse.model_validate(customer)
    except AquaDeskError:
        raise
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        logger.error(f"Error updating customer: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update customer"
        )


@router.patch("/{customer_id}/status", response_model=CustomerResponse)
def update_customer_status_route(
    customer_id: str,
    status_data: CustomerStatusUpdate,
    db: Session = Depends(get_db)
):
    """Activate or deactivate a customer."""
    customer = set_customer_status(db, customer_id, status_data.is_active)
    return CustomerResponse.model_validate(customer)
