from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel


class RiderCollection(BaseModel):
    rider_id: str
    rider_name: Optional[str] = None
    amount: Decimal
    orders_count: int


class PaymentMethodTotal(BaseModel):
    method: str
    amount: Decimal
    orders_count: int


class ClosingFigures(BaseModel):
    customer_receivable: Decimal
    customer_payable: Decimal
    total_orders: int
    cancelled_orders: int
    total_bottles: int
    total_current_order_amount: Decimal
    total_paid_amount: Decimal
    balance_cleared_today: Decimal
    walk_in_amount: Decimal
    clear_bill_amount: Decimal
    rider_collections: List[RiderCollection]
    payment_methods: List[PaymentMethodTotal]


class DailyClosingSummary(ClosingFigures):
    date: date
    can_close: bool
    in_progress_orders_count: int
    already_exists: bool
    balance_movement_label: str


class DailyClosingResponse(ClosingFigures):
    id: str
    closing_date: date
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DailyClosingListResponse(BaseModel):
    total: int
    closings: List[DailyClosingResponse]
