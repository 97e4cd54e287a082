"""
Interfaces the soft delete operations are written against.

:class:`SoftDeleteService` implements :class:`SoftDeletable`.
"""

from datetime import date, datetime
from typing import Any, List, Optional, Protocol, Union, runtime_checkable

from .models import DeleteOptions, FindOptions


@runtime_checkable
class SoftDeletable(Protocol):
    """Record access with soft delete semantics."""

    def find(
        self, *criteria: Any, options: Optional[FindOptions] = None, **filters: Any
    ) -> List[Any]: ...

    def get(self, primary_key: Any, options: Optional[FindOptions] = None) -> Any: ...

    def delete(self, record: Any, options: Optional[DeleteOptions] = None) -> bool: ...

    def delete_all(self, *criteria: Any, **filters: Any) -> int: ...

    def restore(self, record: Any) -> bool: ...

    def hard_delete(
        self, record: Any, options: Optional[DeleteOptions] = None
    ) -> bool: ...

    def hard_delete_all(self, cutoff: Union[datetime, date, str]) -> int: ...

