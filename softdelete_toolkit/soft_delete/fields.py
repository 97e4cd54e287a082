"""
Resolution of the soft delete columns of a mapped model.

Each model may name its own columns through ``__soft_delete_field__`` and
``__soft_delete_date_field__``; otherwise the configured defaults are used.
Names are checked against the mapped table on first use and cached.
"""

import logging
import threading
from datetime import datetime
from typing import Any, Dict, Optional, Tuple, Type

from sqlalchemy import DateTime, inspect
from sqlalchemy.exc import NoInspectionAvailable

from ..config import SoftDeleteConfig, get_config
from .exceptions import MissingColumnError

logger = logging.getLogger(__name__)

FIELD_ATTRIBUTE = "__soft_delete_field__"
DATE_FIELD_ATTRIBUTE = "__soft_delete_date_field__"


class FieldResolver:
    """Resolves and validates the deleted flag and timestamp columns per model."""

    def __init__(self, config: Optional[SoftDeleteConfig] = None):
        self._config = config
        self._cache: Dict[Tuple[Type[Any], str, str], str] = {}
        self._lock = threading.Lock()

    @property
    def config(self) -> SoftDeleteConfig:
        return self._config or get_config()

    def has_column(self, model: Type[Any], name: str) -> bool:
        """Return True if the model's mapped columns include ``name``."""
        try:
            mapper = inspect(model)
        except NoInspectionAvailable:
            return False
        return name in mapper.columns

    def resolve_deleted_field(self, model: Type[Any]) -> str:
        """
        Name of the deleted flag column.

        Raises:
            MissingColumnError: The configured column is not on the table
        """
        return self._resolve(model, FIELD_ATTRIBUTE, self.config.deleted_field)

    def resolve_deleted_date_field(self, model: Type[Any]) -> str:
        """
        Name of the deletion timestamp column.

        Raises:
            MissingColumnError: The configured column is not on the table
        """
        return self._resolve(
            model, DATE_FIELD_ATTRIBUTE, self.config.deleted_date_field
        )

    def is_soft_deletable(self, model: Type[Any]) -> bool:
        """
        True when the model opted in to soft deletes.

        Models opt in through :class:`SoftDeleteMixin` or by declaring
        ``__soft_delete_field__``. Whether the column really exists is only
        checked when the field is resolved.
        """
        return isinstance(model, type) and hasattr(model, FIELD_ATTRIBUTE)

    def attribute_key(self, model: Type[Any], name: str) -> str:
        mapper = inspect(model)
        return mapper.get_property_by_column(mapper.columns[name]).key

    def uses_datetime(self, model: Type[Any]) -> bool:
        """True if the timestamp column is a DateTime rather than a string."""
        name = self.resolve_deleted_date_field(model)
        return isinstance(inspect(model).columns[name].type, DateTime)

    def timestamp_value(self, model: Type[Any], moment: datetime) -> Any:
        """Value to store in the timestamp column for ``moment``."""
        if self.uses_datetime(model):
            return moment
        return self.config.format_timestamp(moment)

    def sentinel_value(self, model: Type[Any]) -> Any:
        """Value stored in the timestamp column of records that are not deleted."""
        if self.uses_datetime(model):
            return None
        return self.config.not_deleted_sentinel

    def clear(self) -> None:
        """Forget cached resolutions."""
        with self._lock:
            self._cache.clear()

    def _resolve(self, model: Type[Any], attribute: str, default: str) -> str:
        key = (model, attribute, default)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        field = getattr(model, attribute, None) or default

        if not self.has_column(model, field):
            model_name = getattr(model, "__tablename__", model.__name__)
            logger.error(
                f"Soft delete column '{field}' not found on {model.__name__} "
                f"(table {model_name})"
            )
            raise MissingColumnError(field, model_name)

        with self._lock:
            self._cache[key] = field
        logger.debug(f"Resolved {attribute} for {model.__name__}: {field}")
        return field


_default_resolver: Optional[FieldResolver] = None


def get_field_resolver() -> FieldResolver:
    """Shared resolver bound to the global configuration."""
    global _default_resolver

    if _default_resolver is None:
        _default_resolver = FieldResolver()

    return _default_resolver
