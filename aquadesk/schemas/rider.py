from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class RiderCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    phone: str = Field(..., min_length=7, max_length=20, pattern=r"^\+?[0-9][0-9\- ]+$")
    is_active: bool = True


class RiderUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, min_length=7, max_length=20, pattern=r"^\+?[0-9][0-9\- ]+$")


class RiderStatusUpdate(BaseModel):
    is_active: bool


class RiderResponse(BaseModel):
    id: str
    name: str
    phone: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class RiderListResponse(BaseModel):
    total: int
    riders: List[RiderResponse]


class RiderDashboardResponse(BaseModel):
    rider_id: str
    rider_name: str
    date: date
    assigned_orders: int
    delivered_orders: int
    cancelled_orders: int
    pending_orders: int
    bottles_delivered: int
    amount_collected: Decimal
