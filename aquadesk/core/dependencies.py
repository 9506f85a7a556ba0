from aquadesk.core.database import SessionLocal
from aquadesk.common.events import EventBus, event_bus


def get_db():
    """Dependency to get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_event_bus() -> EventBus:
    """Dependency returning the bus order and ledger changes are published on."""
    return event_bus
