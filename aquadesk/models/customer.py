from decimal import Decimal
from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String
from sqlalchemy.orm import relationship

from aquadesk.core.database import Base
from aquadesk.models.common import generate_custom_id
from aquadesk.utils.timezone import utc_now


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String(20), primary_key=True, default=lambda: generate_custom_id("CUS"))
    name = Column(String(255), nullable=False, index=True)
    phone = Column(String(20), nullable=False, index=True)
    whatsapp = Column(String(20), nullable=True)

    # Address
    house_no = Column(String(50), nullable=True)
    street_no = Column(String(50), nullable=True)
    area = Column(String(100), nullable=True)
    city = Column(String(100), nullable=True)
    address = Column(String(500), nullable=True)

    bottle_count = Column(Integer, nullable=False, default=0)
    avg_days_to_refill = Column(Integer, nullable=True)

    # Positive = receivable (customer owes us), negative = payable (we owe them)
    current_balance = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    is_active = Column(Boolean, nullable=False, default=True)

    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    orders = relationship("Order", back_populates="customer")

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<Customer(id='{self.id}', name='{self.name}', balance={self.current_balance})>"
