"""Base model with common fields and utilities."""

from sqlalchemy import Column, DateTime
from sqlalchemy.orm import declared_attr

from api.config.database import Base
from api.utils.time import utc_now


class TimestampMixin:
    """Mixin that adds created_at and updated_at columns (naive UTC)."""

    @declared_attr
    def created_at(cls):
        return Column(
            DateTime,
            default=utc_now,
            nullable=False,
        )

    @declared_attr
    def updated_at(cls):
        return Column(
            DateTime,
            onupdate=utc_now,
            nullable=True,
        )


class BaseModel(Base, TimestampMixin):
    """
    Abstract base class for all models.

    Provides:
    - created_at: Timestamp when record was created
    - updated_at: Timestamp when record was last updated
    """

    __abstract__ = True

    def __repr__(self) -> str:
        """String representation of model."""
        pk = getattr(self, "id", None)
        return f"<{self.__class__.__name__}(id={pk})>"
