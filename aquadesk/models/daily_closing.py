from decimal import Decimal
from sqlalchemy import JSON, Column, Date, DateTime, Integer, Numeric, String, UniqueConstraint

from aquadesk.core.database import Base
from aquadesk.models.common import generate_custom_id
from aquadesk.utils.timezone import utc_now


class DailyClosing(Base):
    __tablename__ = "daily_closings"
    __table_args__ = (
        UniqueConstraint("closing_date", name="uq_daily_closings_closing_date"),
    )

    id = Column(String(20), primary_key=True, default=lambda: generate_custom_id("DCL"))
    closing_date = Column(Date, nullable=False, index=True)

    # Point-in-time ledger snapshot across all customers
    customer_receivable = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    customer_payable = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))

    total_orders = Column(Integer, nullable=False, default=0)
    cancelled_orders = Column(Integer, nullable=False, default=0)
    total_bottles = Column(Integer, nullable=False, default=0)
    total_current_order_amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    total_paid_amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    # Positive = udhaar (new debt), negative = recovery
    balance_cleared_today = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))

    walk_in_amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    clear_bill_amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))

    # [{rider_id, rider_name, amount, orders_count}]
    rider_collections = Column(JSON, nullable=False, default=list)
    # [{method, amount, orders_count}]
    payment_methods = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    def __repr__(self):
        return f"<DailyClosing(date={self.closing_date}, orders={self.total_orders}, paid={self.total_paid_amount})>"
