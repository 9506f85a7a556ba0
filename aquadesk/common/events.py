"""
Outbound change notifications.

Services publish an event after their transaction commits. Whatever pushes
these to clients (websocket, FCM, polling cache) subscribes here; the core
stays correct with no subscriber attached and a failing subscriber never
undoes a committed change.
"""
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Type

from aquadesk.logger_config import logger


@dataclass(frozen=True)
class OrderChanged:
    order_id: str
    status: str
    customer_id: Optional[str] = None
    rider_id: Optional[str] = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class LedgerChanged:
    customer_id: str
    previous_balance: Decimal
    current_balance: Decimal
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class EventBus:
    def __init__(self):
        self._handlers: Dict[Type, List[Callable]] = defaultdict(list)

    def subscribe(self, event_type: Type, handler: Callable) -> None:
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: Type, handler: Callable) -> None:
        if handler in self._handlers[event_type]:
            self._handlers[event_type].remove(handler)

    def publish(self, event) -> None:
        for handler in list(self._handlers[type(event)]):
            try:
                handler(event)
            except Exception:
                logger.exception(f"Event handler {getattr(handler, '__name__', handler)} failed for {event}")


event_bus = EventBus()
