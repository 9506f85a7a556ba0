"""
Order Schemas
Request validation and response serialization for the order lifecycle
"""

from decimal import Decimal
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from aquadesk.models.order import (
    OrderPriority,
    OrderStatus,
    OrderType,
    PaymentMethod,
    PaymentStatus,
)


def _two_places(v: Optional[Decimal]) -> Optional[Decimal]:
    if v is not None and v.as_tuple().exponent < -2:
        raise ValueError('Amount must have at most 2 decimal places')
    return v


# ============================================================================
# Request Schemas
# ============================================================================

class OrderCreate(BaseModel):
    """Schema for creating an order. customer_id may be omitted only for walk-ins."""
    customer_id: Optional[str] = Field(default=None, description="Customer ID; omit for an unregistered walk-in")
    order_type: OrderType = Field(default=OrderType.DELIVERY)
    number_of_bottles: int = Field(..., ge=0, description="Bottles in this order")
    current_order_amount: Optional[Decimal] = Field(
        default=None,
        description="This order's own charge; negative when the business owes money back"
    )
    unit_price: Optional[Decimal] = Field(default=None, ge=0, description="Price per bottle")
    priority: OrderPriority = Field(default=OrderPriority.NORMAL)
    rider_id: Optional[str] = Field(default=None, description="Assign a rider straight away (delivery only)")
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator('current_order_amount', 'unit_price')
    @classmethod
    def validate_amounts(cls, v):
        return _two_places(v)

    @model_validator(mode='after')
    def validate_amount_source(self):
        """One of current_order_amount / unit_price is needed to price the order"""
        if self.current_order_amount is None and self.unit_price is None:
            raise ValueError("current_order_amount or unit_price is required")
        return self

    class Config:
        json_schema_extra = {
            "example": {
                "customer_id": "CUS-AB12CD34",
                "order_type": "DELIVERY",
                "number_of_bottles": 5,
                "unit_price": 100,
                "priority": "NORMAL",
                "rider_id": "RDR-XY98ZW76",
                "notes": "Ring the bell twice"
            }
        }


class VersionedRequest(BaseModel):
    expected_version: Optional[int] = Field(
        default=None,
        ge=1,
        description="Version of the order as last read; the request fails if it has changed since"
    )


class AssignRiderRequest(VersionedRequest):
    rider_id: str = Field(..., min_length=1)


class SettleOrderRequest(VersionedRequest):
    """Payment collected at delivery/completion. Negative amounts are refunds."""
    payment_amount: Decimal
    payment_method: PaymentMethod = PaymentMethod.CASH
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator('payment_amount')
    @classmethod
    def validate_payment_amount(cls, v):
        return _two_places(v)

    class Config:
        json_schema_extra = {
            "example": {
                "payment_amount": 300.00,
                "payment_method": "CASH",
                "notes": "Balance to be collected next visit"
            }
        }


class ClearBillRequest(BaseModel):
    customer_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0, description="Amount exchanged; direction follows the customer's balance")
    payment_method: PaymentMethod = PaymentMethod.CASH
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v):
        return _two_places(v)


# ============================================================================
# Response Schemas
# ============================================================================

class OrderResponse(BaseModel):
    id: str
    order_type: OrderType
    status: OrderStatus
    priority: OrderPriority
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    rider_id: Optional[str] = None
    rider_name: Optional[str] = None
    number_of_bottles: int
    unit_price: Optional[Decimal] = None
    current_order_amount: Decimal
    customer_balance_at_creation: Decimal
    total_amount: Decimal
    paid_amount: Decimal
    payment_status: PaymentStatus
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = None
    delivery_notes: Optional[str] = None
    version: int
    created_at: datetime
    assigned_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OrderListResponse(BaseModel):
    total: int
    skip: int
    limit: int
    orders: List[OrderResponse]
