"""
Read filtering for soft-deletable models.

:class:`QueryFilter` hooks into SQLAlchemy's ``do_orm_execute`` event and adds
``deleted = 0`` to every ORM SELECT over a soft-deletable model, so that
``session.execute(select(Article))``, ``session.get(Article, 1)`` and lazy
relationship loads only see active records.

The filter is skipped for a single request with the ``with_deleted``
execution option:

    session.execute(select(Article).execution_options(with_deleted=True))
"""

import logging
from typing import Any, List, Optional, Type

from sqlalchemy import event, inspect
from sqlalchemy.orm import ORMExecuteState
from sqlalchemy.sql import Select

from ..config import SoftDeleteConfig, get_config
from .fields import FieldResolver, get_field_resolver

logger = logging.getLogger(__name__)

# Marks a statement whose criteria were already added.
FILTER_APPLIED_OPTION = "_soft_delete_filter_applied"


class QueryFilter:
    """
    Adds the soft delete predicate to ORM SELECT statements.

    The predicate is built from each entity the statement selects, so an
    ``aliased()`` entity gets ``<alias>.deleted = 0`` and joined tables that
    are not selected are left alone. Caller criteria are kept; the predicate
    is AND-ed with them.
    """

    def __init__(
        self,
        resolver: Optional[FieldResolver] = None,
        config: Optional[SoftDeleteConfig] = None,
    ):
        self._resolver = resolver
        self._config = config
        self._targets: List[Any] = []

    @property
    def resolver(self) -> FieldResolver:
        return self._resolver or get_field_resolver()

    @property
    def config(self) -> SoftDeleteConfig:
        return self._config or get_config()

    def install(self, target: Any) -> "QueryFilter":
        """
        Listen for ORM executions on ``target``.

        Args:
            target: ``Session`` class, a ``sessionmaker`` or a session instance
        """
        event.listen(target, "do_orm_execute", self.on_execute)
        self._targets.append(target)
        return self

    def remove(self) -> None:
        """Stop filtering on every target this filter was installed on."""
        while self._targets:
            target = self._targets.pop()
            if event.contains(target, "do_orm_execute", self.on_execute):
                event.remove(target, "do_orm_execute", self.on_execute)

    def should_filter(self, orm_execute_state: ORMExecuteState) -> bool:
        if not orm_execute_state.is_select:
            return False

        # Refreshing attributes of an instance that is already loaded
        if orm_execute_state.is_column_load:
            return False

        # Only the statement itself: relationship loads inherit the
        # options of the request that triggered them
        statement = orm_execute_state.statement
        if statement.get_execution_options().get(FILTER_APPLIED_OPTION):
            return False

        options = orm_execute_state.execution_options
        if options.get(self.config.with_deleted_option):
            return False

        return isinstance(orm_execute_state.statement, Select)

    def on_execute(self, orm_execute_state: ORMExecuteState) -> None:
        """``do_orm_execute`` listener."""
        if not self.should_filter(orm_execute_state):
            return

        orm_execute_state.statement = self.apply(orm_execute_state.statement)

    def apply(self, statement: Select) -> Select:
        """
        Return ``statement`` with the soft delete criteria added.

        Raises:
            MissingColumnError: A selected soft-deletable model lacks its column
        """
        if statement.get_execution_options().get(FILTER_APPLIED_OPTION):
            return statement

        criteria = self.criteria_for(statement)
        if criteria:
            statement = statement.where(*criteria)

        return statement.execution_options(**{FILTER_APPLIED_OPTION: True})

    def criteria_for(self, statement: Select) -> List[Any]:
        """Soft delete predicates for the entities selected by ``statement``."""
        criteria = []
        seen = set()

        for description in statement.column_descriptions:
            entity = description.get("entity")
            if entity is None or id(entity) in seen:
                continue
            seen.add(id(entity))

            model = _mapped_class(entity)
            if model is None or not self.resolver.is_soft_deletable(model):
                continue

            field = self.resolver.resolve_deleted_field(model)
            key = self.resolver.attribute_key(model, field)

            # Attribute of the entity as selected, alias included
            criteria.append(getattr(entity, key) == 0)
            logger.debug(f"Filtering soft-deleted {model.__name__} records")

        return criteria


def _mapped_class(entity: Any) -> Optional[Type[Any]]:
    insp = inspect(entity, raiseerr=False)
    mapper = getattr(insp, "mapper", None)
    if mapper is None:
        return None
    return mapper.class_


def install_query_filter(
    target: Any,
    resolver: Optional[FieldResolver] = None,
    config: Optional[SoftDeleteConfig] = None,
) -> QueryFilter:
    """
    Install the soft delete read filter on a session target.

    Args:
        target: ``Session`` class, ``sessionmaker`` or session instance
        resolver: Field resolver, defaults to the shared one
        config: Configuration, defaults to the global one

    Returns:
        The installed filter; call ``remove()`` to uninstall it
    """
    return QueryFilter(resolver=resolver, config=config).install(target)


def register_soft_delete_listeners(
    base_class: Type[Any],
    target: Any,
    resolver: Optional[FieldResolver] = None,
    config: Optional[SoftDeleteConfig] = None,
) -> QueryFilter:
    """
    Validate every soft-deletable model of a declarative base and install the
    read filter.

    Args:
        base_class: The declarative base class
        target: Session target passed to :func:`install_query_filter`

    Raises:
        MissingColumnError: A soft-deletable model lacks a configured column
    """
    resolver = resolver or get_field_resolver()

    for mapper in base_class.registry.mappers:
        model = mapper.class_
        if resolver.is_soft_deletable(model):
            resolver.resolve_deleted_field(model)
            resolver.resolve_deleted_date_field(model)

    return install_query_filter(target, resolver=resolver, config=config)
