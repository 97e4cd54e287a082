"""Exceptions for soft delete operations."""

from typing import Any, Optional


class SoftDeleteError(Exception):
    """Base exception for soft delete operations."""

    def __init__(self, message: str, model_name: Optional[str] = None):
        self.model_name = model_name
        super().__init__(message)


class MissingColumnError(SoftDeleteError):
    """Raised when a configured soft delete column is missing from a table.

    This is a configuration error: it surfaces the first time the model is
    used and retrying will not help.
    """

    def __init__(self, field: str, model_name: str):
        self.field = field
        super().__init__(
            f"Configured field `{field}` is missing from the table `{model_name}`.",
            model_name=model_name,
        )


class InvalidArgumentError(SoftDeleteError, ValueError):
    """Raised when an operation is called with an unusable record."""


class RecordNotFoundError(SoftDeleteError):
    """Raised when a lookup by primary key finds no visible record."""

    def __init__(self, model_name: str, primary_key: Any):
        self.primary_key = primary_key
        super().__init__(
            f"Record not found in table `{model_name}` with primary key {primary_key!r}",
            model_name=model_name,
        )
