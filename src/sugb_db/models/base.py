"""SQLAlchemy declarative base shared by the survey and queue tables."""

from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


def utcnow() -> datetime:
    """Timezone-aware ``now`` used for every timestamp column default."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all ORM models in sugb_db."""

    pass
