from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.orm import relationship

from aquadesk.core.database import Base
from aquadesk.models.common import generate_custom_id
from aquadesk.utils.timezone import utc_now


class Rider(Base):
    __tablename__ = "riders"

    id = Column(String(20), primary_key=True, default=lambda: generate_custom_id("RDR"))
    name = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    orders = relationship("Order", back_populates="rider")

    def __repr__(self):
        return f"<Rider(id='{self.id}', name='{self.name}', active={self.is_active})>"
