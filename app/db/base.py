from typing import Any, Dict
from sqlalchemy import inspect
from sqlalchemy.orm import declarative_base

# Create declarative base for SQLAlchemy models
Base = declarative_base()


class SerializableMixin:
    """Mixin applying plain dictionaries to mapped columns."""

    def update_from_dict(self, data: Dict[str, Any]) -> None:
        """Update mapped attributes present in ``data``; unknown keys are ignored."""
        columns = inspect(self.__class__).columns.keys()
        for key, value in data.items():
            if key in columns:
                setattr(self, key, value)
