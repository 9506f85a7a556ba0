from pydantic import BaseModel, Field, computed_field
from typing import Optional
from datetime import datetime
from decimal import Decimal

from aquadesk.utils.payment_status import balance_label


class CustomerBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    phone: str = Field(..., min_length=7, max_length=20, pattern=r"^\+?[0-9][0-9\- ]+$")
    whatsapp: Optional[str] = Field(None, max_length=20)
    house_no: Optional[str] = Field(None, max_length=50)
    street_no: Optional[str] = Field(None, max_length=50)
    area: Optional[str] = Field(None, max_length=100)
    city: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = Field(None, max_length=500)
    bottle_count: int = Field(0, ge=0)
    avg_days_to_refill: Optional[int] = Field(None, ge=1)


class CustomerCreate(CustomerBase):
    pass


class CustomerUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, min_length=7, max_length=20, pattern=r"^\+?[0-9][0-9\- ]+$")
    whatsapp: Optional[str] = Field(None, max_length=20)
    house_no: Optional[str] = Field(None, max_length=50)
    street_no: Optional[str] = Field(None, max_length=50)
    area: Optional[str] = Field(None, max_length=100)
    city: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = Field(None, max_length=500)
    bottle_count: Optional[int] = Field(None, ge=0)
    avg_days_to_refill: Optional[int] = Field(None, ge=1)


class CustomerStatusUpdate(BaseModel):
    is_active: bool


class CustomerResponse(BaseModel):
    id: str
    name: str
    phone: str
    whatsapp: Optional[str] = None
    house_no: Optional[str] = None
    street_no: Optional[str] = None
    area: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None
    bottle_count: int = 0
    avg_days_to_refill: Optional[int] = None
    current_balance: Decimal
    is_active: bool
    version: int
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def balance_status(self) -> str:
        return balance_label(self.current_balance)

    class Config:
        from_attributes = True


class CustomerListResponse(BaseModel):
    total: int
    customers: list[CustomerResponse]
