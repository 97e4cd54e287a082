"""
SQLAlchemy mixins for soft delete functionality.

The mixin only declares the columns and per-model settings. Deleting,
restoring and purging go through :class:`SoftDeleteService`, which works on
any mapped class whose table carries the configured columns.
"""

from typing import Any, List, Optional

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .fields import get_field_resolver


class SoftDeleteMixin:
    """
    Mixin to add the soft delete columns to SQLAlchemy models.

    Provides:
    - ``deleted`` flag stored as 0/1
    - ``deleted_date`` timestamp, ``"0"`` while the record is active

    Models may rename the columns with ``__soft_delete_field__`` and
    ``__soft_delete_date_field__`` (declaring the columns themselves), and list
    relationship names in ``__soft_delete_cascade__`` to cascade deletes to
    them in addition to relationships declared with ``cascade="delete"``.

    Usage:
        class Article(Base, SoftDeleteMixin):
            __tablename__ = 'articles'
            id = Column(Integer, primary_key=True)
            title = Column(String)
    """

    __soft_delete_field__: Optional[str] = None
    __soft_delete_date_field__: Optional[str] = None
    __soft_delete_cascade__: List[str] = []

    deleted: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False, index=True
    )
    deleted_date: Mapped[Optional[str]] = mapped_column(
        String(32), default="0", server_default="0", nullable=True
    )

    @property
    def is_deleted(self) -> bool:
        """Whether the deleted flag is set."""
        resolver = get_field_resolver()
        model = type(self)
        key = resolver.attribute_key(model, resolver.resolve_deleted_field(model))
        return bool(getattr(self, key, 0))

    def to_dict(self, include_deleted_fields: bool = True) -> dict:
        """
        Convert model to dictionary representation.

        Args:
            include_deleted_fields: Whether to include soft delete fields

        Returns:
            Dictionary representation of the model
        """
        result: dict = {}

        table = getattr(self, "__table__", None)
        if table is None:
            return result

        for column in table.columns:
            if hasattr(self, column.key):
                value: Any = getattr(self, column.key)
                if hasattr(value, "isoformat"):
                    value = value.isoformat()
                result[column.key] = value

        if not include_deleted_fields:
            for field in (
                self.__soft_delete_field__ or "deleted",
                self.__soft_delete_date_field__ or "deleted_date",
            ):
                result.pop(field, None)

        return result
