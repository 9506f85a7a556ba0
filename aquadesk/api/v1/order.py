"""
Order Routes
Create orders and drive them through assign / start / deliver / complete / cancel
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from aquadesk.common.events import EventBus
from aquadesk.core.dependencies import get_db, get_event_bus
from aquadesk.logger_config import logger
from aquadesk.models.order import OrderStatus, OrderType, PaymentStatus
from aquadesk.schemas.order import (
    AssignRiderRequest,
    ClearBillRequest,
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    SettleOrderRequest,
    VersionedRequest,
)
from aquadesk.services.order_service import OrderService

router = APIRouter()


def get_order_service(
    db: Session = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
) -> OrderService:
    return OrderService(db, events=events)


# ==================== LIST / QUERY ====================

@router.get("", response_model=OrderListResponse)
def list_orders(
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(50, ge=1, le=200, description="Max records to return"),
    status: Optional[OrderStatus] = Query(None),
    order_type: Optional[OrderType] = Query(None),
    payment_status: Optional[PaymentStatus] = Query(None),
    customer_id: Optional[str] = Query(None),
    rider_id: Optional[str] = Query(None),
    date: Optional[date] = Query(None, description="Business day the order was created (YYYY-MM-DD)"),
    search: Optional[str] = Query(None, description="Order ID, customer name or phone"),
    service: OrderService = Depends(get_order_service),
):
    """
    List orders with filters, newest first.
    """
    logger.info(f"API: List orders - status={status}, type={order_type}, date={date}")
    orders, total = service.list_orders(
        skip=skip,
        limit=limit,
        status=status,
        order_type=order_type,
        payment_status=payment_status,
        customer_id=customer_id,
        rider_id=rider_id,
        reference_date=date,
        search=search,
    )
    return OrderListResponse(
        total=total,
        skip=skip,
        limit=limit,
        orders=[OrderResponse.model_validate(o) for o in orders],
    )


@router.get("/queue", response_model=List[OrderResponse])
def dispatch_queue(service: OrderService = Depends(get_order_service)):
    """Open orders in dispatch order: unassigned first, then by priority and age."""
    return [OrderResponse.model_validate(o) for o in service.dispatch_queue()]


# ==================== CREATE ====================

@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def create_order(order_data: OrderCreate, service: OrderService = Depends(get_order_service)):
    """
    Create an order. The customer's current balance is carried into the order total.

    **Order types:**
    - DELIVERY: needs bottles; assign a rider now or later
    - WALKIN: counter sale; customer_id optional
    - CLEARBILL: use POST /orders/clear-bill instead
    """
    logger.info(f"API: Create {order_data.order_type.value} order for {order_data.customer_id or 'walk-in'}")
    try:
        order = service.create_order(**order_data.model_dump())
        return OrderResponse.model_validate(order)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/clear-bill", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def clear_bill(request: ClearBillRequest, service: OrderService = Depends(get_order_service)):
    """
    Settle a customer's outstanding balance without product.
    Receivable customers pay `amount`; payable customers are refunded `amount`.
    """
    logger.info(f"API: Clear bill for {request.customer_id} - {request.amount} via {request.payment_method.value}")
    try:
        order = service.clear_bill(
            customer_id=request.customer_id,
            amount=request.amount,
            payment_method=request.payment_method,
            notes=request.notes,
        )
        return OrderResponse.model_validate(order)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


# ==================== DETAIL / TRANSITIONS ====================

@router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: str, service: OrderService = Depends(get_order_service)):
    return OrderResponse.model_validate(service.get_order(order_id))


@router.post("/{order_id}/assign", response_model=OrderResponse)
def assign_rider(order_id: str, request: AssignRiderRequest, service: OrderService = Depends(get_order_service)):
    """Assign or reassign an active rider to a delivery order."""
    logger.info(f"API: Assign rider {request.rider_id} to order {order_id}")
    try:
        order = service.assign_rider(order_id, request.rider_id, expected_version=request.expected_version)
        return OrderResponse.model_validate(order)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/{order_id}/start", response_model=OrderResponse)
def start_delivery(
    order_id: str,
    request: Optional[VersionedRequest] = None,
    service: OrderService = Depends(get_order_service),
):
    logger.info(f"API: Start delivery {order_id}")
    expected_version = request.expected_version if request else None
    try:
        return OrderResponse.model_validate(service.start_delivery(order_id, expected_version=expected_version))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/{order_id}/cancel", response_model=OrderResponse)
def cancel_order(
    order_id: str,
    request: Optional[VersionedRequest] = None,
    service: OrderService = Depends(get_order_service),
):
    """Cancel an open order; the customer's balance returns to its value at order creation."""
    logger.info(f"API: Cancel order {order_id}")
    expected_version = request.expected_version if request else None
    try:
        return OrderResponse.model_validate(service.cancel_order(order_id, expected_version=expected_version))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/{order_id}/deliver", response_model=OrderResponse)
def deliver_order(order_id: str, request: SettleOrderRequest, service: OrderService = Depends(get_order_service)):
    """
    Mark a delivery order delivered and record the payment collected.
    Anything left unpaid (or overpaid) moves to the customer's balance.
    """
    logger.info(f"API: Deliver order {order_id} - paid {request.payment_amount} via {request.payment_method.value}")
    try:
        order = service.deliver_order(
            order_id,
            payment_amount=request.payment_amount,
            payment_method=request.payment_method,
            notes=request.notes,
            expected_version=request.expected_version,
        )
        return OrderResponse.model_validate(order)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/{order_id}/complete", response_model=OrderResponse)
def complete_order(order_id: str, request: SettleOrderRequest, service: OrderService = Depends(get_order_service)):
    """Settle a walk-in or clear-bill order at the counter."""
    logger.info(f"API: Complete order {order_id} - paid {request.payment_amount}")
    try:
        order = service.complete_order(
            order_id,
            payment_amount=request.payment_amount,
            payment_method=request.payment_method,
            notes=request.notes,
            expected_version=request.expected_version,
        )
        return OrderResponse.model_validate(order)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
