"""
Soft Delete Toolkit - recoverable deletions for SQLAlchemy applications.

Deleting a record marks it inactive (a ``deleted`` flag and a
``deleted_date`` timestamp) instead of removing the row. Normal reads skip
inactive records unless asked otherwise, records can be restored, deletes
cascade to dependent records, and records past their retention period can be
purged for good.

Key Features
------------
* **Read filter**: ``deleted = 0`` added to every ORM SELECT over a
  soft-deletable model, opt out per request with ``with_deleted``
* **Soft delete service**: delete, bulk delete, restore, hard delete, purge
* **Events and rules**: cancellable ``Model.beforeDelete`` / ``Model.beforeSave``
  notifications and per-model rule sets
* **Cascades**: dependents found through SQLAlchemy relationships
* **CLI**: ``softdelete status``, ``list-deleted`` and ``purge``

Quick Start
-----------
>>> from softdelete_toolkit import SoftDeleteMixin, SoftDeleteService, install_query_filter
>>>
>>> class Article(Base, SoftDeleteMixin):
...     __tablename__ = "articles"
...     id = Column(Integer, primary_key=True)
>>>
>>> install_query_filter(Session)
>>> service = SoftDeleteService(session, Article)
>>> service.delete(article)
True
>>> service.find()
[]
"""

__version__ = "1.0.0"

from .config import SoftDeleteConfig, configure, get_config, set_config
from .soft_delete import (
    DeleteOptions,
    EventDispatcher,
    FieldResolver,
    FindOptions,
    InvalidArgumentError,
    MissingColumnError,
    QueryFilter,
    RecordNotFoundError,
    RetentionPolicy,
    RulesChecker,
    SoftDeletable,
    SoftDeleteError,
    SoftDeleteMixin,
    SoftDeleteService,
    install_query_filter,
    register_soft_delete_listeners,
)

__all__ = [
    # Soft Delete
    "SoftDeleteMixin",
    "SoftDeleteService",
    "SoftDeletable",
    "QueryFilter",
    "install_query_filter",
    "register_soft_delete_listeners",
    "FieldResolver",
    "EventDispatcher",
    "RulesChecker",
    "FindOptions",
    "DeleteOptions",
    "RetentionPolicy",
    # Exceptions
    "SoftDeleteError",
    "MissingColumnError",
    "InvalidArgumentError",
    "RecordNotFoundError",
    # Configuration
    "SoftDeleteConfig",
    "get_config",
    "set_config",
    "configure",
]
