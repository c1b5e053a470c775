"""
Base model class with common functionality.
"""
import json
import uuid
from datetime import datetime
from typing import Any, Dict

from sqlalchemy import Column, DateTime
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func


def generate_uuid() -> str:
    return str(uuid.uuid4())


class CustomBase:
    """
    Custom base class for all models.
    """

    def to_dict(self) -> Dict[str, Any]:
        """Convert model instance to dictionary."""
        result = {}
        for column in self.__table__.columns:
            value = getattr(self, column.name)

            if isinstance(value, datetime):
                value = value.isoformat()
            elif isinstance(value, uuid.UUID):
                value = str(value)

            result[column.name] = value

        return result


# Create declarative base
Base = declarative_base(cls=CustomBase)


class CreatedAtMixin:
    """Mixin for the creation timestamp."""
    created_at = Column(DateTime, default=datetime.utcnow, server_default=func.now(), index=True)


class TimestampMixin(CreatedAtMixin):
    """Mixin for timestamp fields."""
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        server_default=func.now(),
    )


def dumps_json(value: Any) -> str:
    """Serialize a list/map column value."""
    return json.dumps(value)


def loads_json(raw: Any, default: Any = None) -> Any:
    """Deserialize a list/map column value, tolerating legacy plain text."""
    if raw is None or raw == "":
        return default
    if not isinstance(raw, str):
        return raw
    try:
        return json.loads(raw)
    except ValueError:
        return default
