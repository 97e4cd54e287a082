"""
Data models for soft delete operations.

These models define the typed options accepted by reads and deletes, the
structured outcome of a notification dispatch, and retention policies used
when purging soft-deleted records.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from dateutil.relativedelta import relativedelta
from pydantic import BaseModel, ConfigDict, Field


class FindOptions(BaseModel):
    """Options attached to a read request."""

    model_config = ConfigDict(frozen=True)

    with_deleted: bool = Field(
        False, description="Include soft-deleted records in the result"
    )


class DeleteOptions(BaseModel):
    """Options for a single-record delete."""

    check_rules: bool = Field(True, description="Run the delete rule set first")
    primary: bool = Field(
        True,
        description="False when the delete was triggered by a cascade from a parent",
    )
    extra: Dict[str, Any] = Field(
        default_factory=dict, description="Caller data passed through to listeners"
    )

    def for_cascade(self) -> "DeleteOptions":
        """Options handed to dependent records during a cascade."""
        return self.model_copy(update={"primary": False})


class SaveOptions(BaseModel):
    """Options for the save path used by restore."""

    check_rules: bool = Field(True, description="Run the save rule set first")
    extra: Dict[str, Any] = Field(default_factory=dict)


class EventResult(BaseModel):
    """Outcome of dispatching a notification to listeners."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str = Field(..., description="Event name that was dispatched")
    cancelled: bool = Field(False, description="Whether a listener stopped the event")
    result: Any = Field(None, description="Result supplied by the listener, if any")


class RetentionPolicy(BaseModel):
    """Defines how long soft-deleted records are kept before purging."""

    model_config = ConfigDict(use_enum_values=True)

    retention_days: int = Field(
        ..., description="Minimum days to retain after deletion", gt=0
    )
    purge_allowed: bool = Field(True, description="Whether data can ever be purged")

    def cutoff(self, now: Optional[datetime] = None) -> datetime:
        """
        Timestamp boundary for purging.

        Args:
            now: Reference time, defaults to the current local time

        Returns:
            Records deleted at or before this moment are eligible for purge
        """
        reference = now or datetime.now()
        return reference - relativedelta(days=self.retention_days)

    def is_purgeable(
        self, deleted_at: Optional[datetime], now: Optional[datetime] = None
    ) -> bool:
        """Check whether a record deleted at ``deleted_at`` may be purged."""
        if not self.purge_allowed or deleted_at is None:
            return False
        return deleted_at <= self.cutoff(now)
