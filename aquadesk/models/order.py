import enum
from decimal import Decimal
from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from aquadesk.core.database import Base
from aquadesk.models.common import generate_custom_id
from aquadesk.utils.timezone import utc_now


class OrderType(str, enum.Enum):
    DELIVERY = "DELIVERY"
    WALKIN = "WALKIN"
    CLEARBILL = "CLEARBILL"


class OrderStatus(str, enum.Enum):
    CREATED = "CREATED"
    ASSIGNED = "ASSIGNED"
    IN_PROGRESS = "IN_PROGRESS"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


ACTIVE_STATUSES = (OrderStatus.CREATED, OrderStatus.ASSIGNED, OrderStatus.IN_PROGRESS)
TERMINAL_STATUSES = (OrderStatus.DELIVERED, OrderStatus.CANCELLED)


class PaymentStatus(str, enum.Enum):
    NOT_PAID = "NOT_PAID"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    OVERPAID = "OVERPAID"
    REFUND = "REFUND"


class PaymentMethod(str, enum.Enum):
    CASH = "CASH"
    CARD = "CARD"
    BANK_TRANSFER = "BANK_TRANSFER"
    JAZZCASH = "JAZZCASH"
    EASYPAISA = "EASYPAISA"
    NAYA_PAY = "NAYA_PAY"
    SADAPAY = "SADAPAY"


class OrderPriority(str, enum.Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(20), primary_key=True, default=lambda: generate_custom_id("ORD"))

    order_type = Column(Enum(OrderType), nullable=False, default=OrderType.DELIVERY)
    status = Column(Enum(OrderStatus), nullable=False, default=OrderStatus.CREATED, index=True)
    priority = Column(Enum(OrderPriority), nullable=False, default=OrderPriority.NORMAL)

    # Null only for walk-ins without a registered customer
    customer_id = Column(String(20), ForeignKey("customers.id"), nullable=True, index=True)
    rider_id = Column(String(20), ForeignKey("riders.id"), nullable=True, index=True)

    number_of_bottles = Column(Integer, nullable=False, default=0)
    unit_price = Column(Numeric(15, 2), nullable=True)
    current_order_amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    customer_balance_at_creation = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    total_amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))

    paid_amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    payment_status = Column(Enum(PaymentStatus), nullable=False, default=PaymentStatus.NOT_PAID)
    payment_method = Column(Enum(PaymentMethod), nullable=True)

    notes = Column(Text, nullable=True)
    delivery_notes = Column(Text, nullable=True)

    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)
    assigned_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    customer = relationship("Customer", back_populates="orders")
    rider = relationship("Rider", back_populates="orders")

    __mapper_args__ = {"version_id_col": version}

    @property
    def customer_name(self):
        return self.customer.name if self.customer else "Walk-in Customer"

    @property
    def rider_name(self):
        return self.rider.name if self.rider else None

    def __repr__(self):
        return f"<Order(id='{self.id}', type={self.order_type}, status={self.status}, total={self.total_amount})>"
