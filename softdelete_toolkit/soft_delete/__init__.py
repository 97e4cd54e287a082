"""
Soft Delete Module - recoverable deletions for SQLAlchemy models.

Provides the read filter, the field resolver, the soft delete service and
its collaborators (events, rules and cascading).
"""

from .cascade import CascadeCoordinator
from .events import (
    AFTER_DELETE,
    AFTER_SAVE,
    BEFORE_DELETE,
    BEFORE_SAVE,
    Event,
    EventDispatcher,
)
from .exceptions import (
    InvalidArgumentError,
    MissingColumnError,
    RecordNotFoundError,
    SoftDeleteError,
)
from .fields import FieldResolver, get_field_resolver
from .mixins import SoftDeleteMixin
from .models import (
    DeleteOptions,
    EventResult,
    FindOptions,
    RetentionPolicy,
    SaveOptions,
)
from .protocols import SoftDeletable
from .query import (
    FILTER_APPLIED_OPTION,
    QueryFilter,
    install_query_filter,
    register_soft_delete_listeners,
)
from .rules import RulesChecker
from .services import SoftDeleteService, to_cutoff

__all__ = [
    # Mixins
    "SoftDeleteMixin",
    # Services
    "SoftDeleteService",
    "SoftDeletable",
    "to_cutoff",
    # Read filtering
    "QueryFilter",
    "install_query_filter",
    "register_soft_delete_listeners",
    "FILTER_APPLIED_OPTION",
    # Fields
    "FieldResolver",
    "get_field_resolver",
    # Collaborators
    "CascadeCoordinator",
    "EventDispatcher",
    "Event",
    "RulesChecker",
    "BEFORE_DELETE",
    "AFTER_DELETE",
    "BEFORE_SAVE",
    "AFTER_SAVE",
    # Models
    "FindOptions",
    "DeleteOptions",
    "SaveOptions",
    "EventResult",
    "RetentionPolicy",
    # Exceptions
    "SoftDeleteError",
    "MissingColumnError",
    "InvalidArgumentError",
    "RecordNotFoundError",
]
