# aquadesk/models/__init__.py
from .customer import Customer
from .rider import Rider
from .order import (
    Order,
    OrderType,
    OrderStatus,
    OrderPriority,
    PaymentStatus,
    PaymentMethod,
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
)
from .daily_closing import DailyClosing
