"""
Service layer for soft delete operations.

A :class:`SoftDeleteService` wraps a session and one mapped model and
provides filtered reads, soft delete, bulk soft delete, restore, hard delete
and purge. The service never commits: the caller owns the transaction.
"""

import logging
from datetime import date, datetime, time
from typing import Any, Callable, Dict, List, Optional, Type, Union

import pytz
from dateutil import parser as date_parser
from sqlalchemy import delete, func, inspect, select, update
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from ..config import SoftDeleteConfig, get_config
from .cascade import CascadeCoordinator
from .events import AFTER_DELETE, AFTER_SAVE, BEFORE_DELETE, BEFORE_SAVE, EventDispatcher
from .exceptions import InvalidArgumentError, RecordNotFoundError
from .fields import FieldResolver, get_field_resolver
from .models import DeleteOptions, FindOptions, RetentionPolicy, SaveOptions
from .query import QueryFilter
from .rules import RulesChecker

logger = logging.getLogger(__name__)

Cutoff = Union[datetime, date, str]

END_OF_DAY = time(23, 59, 59)


class SoftDeleteService:
    """
    Soft delete operations for a single model.

    Usage:
        service = SoftDeleteService(session, Article)
        article = service.get(1)
        service.delete(article)           # marks deleted = 1
        service.find()                    # no longer returns the article
        service.restore(article)          # deleted = 0 again
        session.commit()

    Services created for cascaded models share the session, the field
    resolver, the event dispatcher and the clock of the service that created
    them; see :meth:`for_model`.
    """

    def __init__(
        self,
        session: Session,
        model: Type[Any],
        *,
        config: Optional[SoftDeleteConfig] = None,
        resolver: Optional[FieldResolver] = None,
        events: Optional[EventDispatcher] = None,
        rules: Optional[RulesChecker] = None,
        cascade: Optional[CascadeCoordinator] = None,
        clock: Optional[Callable[[], datetime]] = None,
        _registry: Optional[Dict[Type[Any], "SoftDeleteService"]] = None,
    ):
        """
        Initialize the soft delete service.

        Args:
            session: SQLAlchemy session used for every statement
            model: Mapped class handled by this service
            config: Configuration, defaults to the global one
            resolver: Field resolver, defaults to one bound to ``config``
            events: Listener registry for delete and save notifications
            rules: Delete and save rules for this model
            cascade: Coordinator for dependent records
            clock: Returns the current time, defaults to ``config.now``
        """
        self.session = session
        self.model = model
        self._config = config
        if resolver is None:
            resolver = FieldResolver(config) if config else get_field_resolver()
        self.resolver = resolver
        self.events = events or EventDispatcher()
        self.rules = rules or RulesChecker()
        self.clock = clock
        self.query_filter = QueryFilter(resolver=self.resolver, config=config)

        self._registry = _registry if _registry is not None else {}
        self._registry.setdefault(model, self)

        self.cascade = cascade or CascadeCoordinator(
            session, self.for_model, resolver=self.resolver
        )

    @property
    def config(self) -> SoftDeleteConfig:
        return self._config or get_config()

    def for_model(self, model: Type[Any]) -> "SoftDeleteService":
        """Service for another model sharing this service's collaborators."""
        service = self._registry.get(model)
        if service is None:
            service = SoftDeleteService(
                self.session,
                model,
                config=self._config,
                resolver=self.resolver,
                events=self.events,
                clock=self.clock,
                _registry=self._registry,
            )
        return service

    def now(self) -> datetime:
        return self.clock() if self.clock else self.config.now()

    # Columns

    @property
    def deleted_field(self) -> str:
        return self.resolver.resolve_deleted_field(self.model)

    @property
    def deleted_date_field(self) -> str:
        return self.resolver.resolve_deleted_date_field(self.model)

    def _flag_key(self) -> str:
        return self.resolver.attribute_key(self.model, self.deleted_field)

    def _date_key(self) -> str:
        return self.resolver.attribute_key(self.model, self.deleted_date_field)

    def _deletion_values(self) -> Dict[str, Any]:
        return {
            self._date_key(): self.resolver.timestamp_value(self.model, self.now()),
            self._flag_key(): 1,
        }

    # Identity

    def _is_new(self, record: Any) -> bool:
        return not inspect(record).has_identity

    def _identity_conditions(self, record: Any) -> List[Any]:
        if not isinstance(record, self.model):
            raise InvalidArgumentError(
                f"Expected a {self.model.__name__} record, got "
                f"{type(record).__name__}",
                model_name=self.model.__name__,
            )

        mapper = inspect(self.model)
        conditions = []
        for column in mapper.primary_key:
            key = mapper.get_property_by_column(column).key
            value = getattr(record, key, None)
            if value is None:
                raise InvalidArgumentError(
                    "Deleting requires all primary key values.",
                    model_name=self.model.__name__,
                )
            conditions.append(getattr(self.model, key) == value)
        return conditions

    def _key_conditions(self, primary_key: Any) -> List[Any]:
        mapper = inspect(self.model)
        keys = [mapper.get_property_by_column(c).key for c in mapper.primary_key]

        if isinstance(primary_key, dict):
            values = [primary_key.get(key) for key in keys]
        elif isinstance(primary_key, (tuple, list)):
            values = list(primary_key)
        else:
            values = [primary_key]

        if len(values) != len(keys) or any(value is None for value in values):
            raise InvalidArgumentError(
                f"{self.model.__name__} lookups require values for "
                f"{', '.join(keys)}",
                model_name=self.model.__name__,
            )
        return [getattr(self.model, key) == value for key, value in zip(keys, values)]

    def _payload(self, record: Any, options: Any) -> Dict[str, Any]:
        return {"entity": record, "options": options, "model": self.model}

    # Reads

    def query(self, options: Optional[FindOptions] = None) -> Select:
        """
        SELECT over the model, filtered unless ``options.with_deleted``.

        The statement carries the filter itself, so it is also filtered on
        sessions where the read filter is not installed.
        """
        options = options or FindOptions()
        statement = select(self.model)

        if options.with_deleted:
            return statement.execution_options(
                **{self.config.with_deleted_option: True}
            )

        return self.query_filter.apply(statement)

    def find(
        self, *criteria: Any, options: Optional[FindOptions] = None, **filters: Any
    ) -> List[Any]:
        """
        Records matching the criteria.

        Args:
            *criteria: SQLAlchemy expressions
            options: Read options; ``with_deleted`` includes deleted records
            **filters: Equality filters by attribute name

        Returns:
            Matching records
        """
        statement = self.query(options)
        if criteria:
            statement = statement.where(*criteria)
        if filters:
            statement = statement.filter_by(**filters)
        return list(self.session.scalars(statement).all())

    def get(self, primary_key: Any, options: Optional[FindOptions] = None) -> Any:
        """
        Record with the given primary key.

        Raises:
            RecordNotFoundError: No visible record has that key
        """
        statement = self.query(options).where(*self._key_conditions(primary_key))
        record = self.session.scalars(statement).first()
        if record is None:
            raise RecordNotFoundError(self.model.__name__, primary_key)
        return record

    def count(self, options: Optional[FindOptions] = None) -> int:
        """Number of visible records."""
        subquery = self.query(options).subquery()
        return int(self.session.scalar(select(func.count()).select_from(subquery)))

    def find_deleted(self, limit: Optional[int] = None) -> List[Any]:
        """Soft-deleted records, most recently deleted first."""
        statement = (
            self.query(FindOptions(with_deleted=True))
            .where(getattr(self.model, self._flag_key()) != 0)
            .order_by(getattr(self.model, self._date_key()).desc())
        )
        if limit is not None:
            statement = statement.limit(limit)
        return list(self.session.scalars(statement).all())

    # Deletes

    def delete(self, record: Any, options: Optional[DeleteOptions] = None) -> bool:
        """
        Soft delete a record.

        Rules are checked (when ``options.check_rules``), ``Model.beforeDelete``
        is dispatched and may cancel the delete, dependents are cascaded, then
        the row is marked with ``deleted = 1`` and the current timestamp.

        Args:
            record: Persisted record to delete
            options: Delete options

        Returns:
            True if at least one row was marked

        Raises:
            InvalidArgumentError: The record lacks a primary key value
        """
        options = options or DeleteOptions(check_rules=self.config.check_rules)
        model_name = self.model.__name__

        if self._is_new(record):
            logger.debug(f"Refusing to delete unsaved {model_name}")
            return False

        conditions = self._identity_conditions(record)

        if options.check_rules and not self.rules.check_delete(record, options):
            return False

        payload = self._payload(record, options)
        before = self.events.dispatch(BEFORE_DELETE, payload)
        if before.cancelled:
            logger.warning(f"Delete of {model_name} cancelled by a listener")
            return bool(before.result)

        if self.config.cascade_enabled:
            self.cascade.cascade_delete(record, is_primary=False, options=options)

        statement = (
            update(self.model).where(*conditions).values(**self._deletion_values())
        )
        affected = self.session.execute(statement).rowcount

        success = affected > 0
        if success:
            self.events.dispatch(AFTER_DELETE, payload)
            logger.info(f"Soft deleted {model_name} ({affected} row(s))")
        else:
            logger.info(f"Soft delete of {model_name} matched no rows")

        return success

    def delete_all(self, *criteria: Any, **filters: Any) -> int:
        """
        Soft delete every record matching the criteria with one UPDATE.

        Unlike :meth:`delete`, no rules are checked, no events are dispatched
        and nothing is cascaded to dependents.

        Returns:
            Number of affected rows
        """
        statement = update(self.model).values(**self._deletion_values())
        if criteria:
            statement = statement.where(*criteria)
        if filters:
            statement = statement.filter_by(**filters)

        affected = self.session.execute(statement).rowcount
        logger.info(f"Bulk soft deleted {affected} {self.model.__name__} row(s)")
        return affected

    def restore(self, record: Any, options: Optional[SaveOptions] = None) -> bool:
        """
        Bring a soft-deleted record back through the normal save path.

        If the save is rejected the flag and timestamp are put back, so a
        later flush does not restore the record anyway.

        Returns:
            Result of :meth:`save`
        """
        flag_key, date_key = self._flag_key(), self._date_key()
        previous = (getattr(record, flag_key), getattr(record, date_key))

        setattr(record, flag_key, 0)
        setattr(record, date_key, self.resolver.sentinel_value(self.model))

        restored = self.save(record, options)
        if restored:
            logger.info(f"Restored {self.model.__name__}")
        else:
            setattr(record, flag_key, previous[0])
            setattr(record, date_key, previous[1])
        return restored

    def save(self, record: Any, options: Optional[SaveOptions] = None) -> bool:
        """
        Persist a record, with save rules and save notifications.

        Returns:
            True once the record is flushed, False if a rule rejected it, or
            the listener result if ``Model.beforeSave`` was cancelled
        """
        options = options or SaveOptions(check_rules=self.config.check_rules)

        if options.check_rules and not self.rules.check_save(record, options):
            return False

        payload = self._payload(record, options)
        before = self.events.dispatch(BEFORE_SAVE, payload)
        if before.cancelled:
            logger.warning(f"Save of {self.model.__name__} cancelled by a listener")
            return bool(before.result)

        self.session.add(record)
        self.session.flush()

        self.events.dispatch(AFTER_SAVE, payload)
        return True

    def hard_delete(self, record: Any, options: Optional[DeleteOptions] = None) -> bool:
        """
        Physically remove a record.

        The record is soft deleted first, so rules, events and cascades run;
        if that fails nothing is removed.

        Returns:
            True if the row was removed
        """
        if not self.delete(record, options):
            return False

        statement = delete(self.model).where(*self._identity_conditions(record))
        affected = self.session.execute(statement).rowcount

        logger.info(f"Hard deleted {affected} {self.model.__name__} row(s)")
        return affected > 0

    def hard_delete_all(self, cutoff: Cutoff) -> int:
        """
        Purge records soft deleted at or before ``cutoff``.

        No rules, events or cascades run.

        Args:
            cutoff: Retention boundary, normalized by :func:`to_cutoff`;
                dates and date-only strings mean the end of that day

        Returns:
            Number of removed rows
        """
        boundary = to_cutoff(cutoff, self.config)
        flag = getattr(self.model, self._flag_key())
        deleted_date = getattr(self.model, self._date_key())

        statement = delete(self.model).where(
            flag != 0,
            deleted_date <= self.resolver.timestamp_value(self.model, boundary),
        )
        affected = self.session.execute(statement).rowcount

        logger.info(
            f"Purged {affected} {self.model.__name__} row(s) deleted before "
            f"{boundary.isoformat(sep=' ')}"
        )
        return affected

    def purge_expired(
        self, policy: RetentionPolicy, now: Optional[datetime] = None
    ) -> int:
        """Purge records whose retention period under ``policy`` has passed."""
        if not policy.purge_allowed:
            logger.info(f"Purging {self.model.__name__} is disabled by policy")
            return 0
        return self.hard_delete_all(policy.cutoff(now or self.now()))

    def count_purgeable(self, cutoff: Cutoff) -> int:
        """Number of rows :meth:`hard_delete_all` would remove."""
        boundary = to_cutoff(cutoff, self.config)
        statement = (
            select(func.count())
            .select_from(self.model)
            .where(
                getattr(self.model, self._flag_key()) != 0,
                getattr(self.model, self._date_key())
                <= self.resolver.timestamp_value(self.model, boundary),
            )
        )
        return int(self.session.scalar(statement))


def to_cutoff(value: Cutoff, config: Optional[SoftDeleteConfig] = None) -> datetime:
    """
    Normalize a purge cutoff to a naive datetime in the configured timezone.

    Plain dates, and strings without a time of day, mean the end of that day.
    Timezone-aware values are converted to ``config.timezone``.

    Raises:
        InvalidArgumentError: ``value`` is not a datetime, date or string
        ValueError: A string cannot be parsed
    """
    config = config or get_config()

    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime.combine(value, END_OF_DAY)
    elif isinstance(value, str):
        today = date.today()
        start = date_parser.parse(value, default=datetime.combine(today, time.min))
        end = date_parser.parse(value, default=datetime.combine(today, END_OF_DAY))
        # Hours only differ when the string has no time of day
        moment = end if start.hour != end.hour else start
    else:
        raise InvalidArgumentError(f"Unsupported cutoff value: {value!r}")

    if moment.tzinfo is not None:
        moment = moment.astimezone(pytz.timezone(config.timezone))
        moment = moment.replace(tzinfo=None)
    return moment
