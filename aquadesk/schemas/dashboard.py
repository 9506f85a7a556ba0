from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel


class DashboardStats(BaseModel):
    date: date
    total_customers: int
    active_customers: int
    total_riders: int
    active_riders: int
    orders_today: int
    pending_orders: int
    pending_payments: Decimal
    receivable_customers: int
    customer_payable: Decimal


class Activity(BaseModel):
    kind: str
    status: str
    text: str
    order_id: Optional[str] = None
    customer_id: Optional[str] = None
    occurred_at: datetime


class ActivityListResponse(BaseModel):
    activities: List[Activity]
