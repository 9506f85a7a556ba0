from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from aquadesk.core.config import settings


def _connect_args(url: str) -> dict:
    # sqlite connections are shared across the threadpool FastAPI runs sync routes in
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.database_url,
    connect_args=_connect_args(settings.database_url),
    pool_pre_ping=True,
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

Base = declarative_base()
