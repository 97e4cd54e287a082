"""
Cascading deletes to dependent records.

The default :class:`CascadeCoordinator` walks the SQLAlchemy relationships of
the record being deleted. A relationship is dependent when it is declared
with ``cascade="... delete ..."`` or its name is listed in the model's
``__soft_delete_cascade__``. Dependents that are soft-deletable are deleted
through their own service (rules and events included); other dependents are
removed with ``Session.delete``.
"""

import logging
from typing import TYPE_CHECKING, Any, Callable, Iterable, List, Optional, Type

from sqlalchemy import delete, inspect
from sqlalchemy.orm import RelationshipDirection, RelationshipProperty, Session

from .fields import FieldResolver, get_field_resolver
from .models import DeleteOptions

if TYPE_CHECKING:
    from .services import SoftDeleteService

logger = logging.getLogger(__name__)

ServiceFactory = Callable[[Type[Any]], "SoftDeleteService"]


class CascadeCoordinator:
    """Deletes the dependents of a record before the record itself is marked."""

    def __init__(
        self,
        session: Session,
        service_factory: ServiceFactory,
        resolver: Optional[FieldResolver] = None,
    ):
        self.session = session
        self.service_factory = service_factory
        self.resolver = resolver or get_field_resolver()

    def dependent_relationships(self, model: Type[Any]) -> List[RelationshipProperty]:
        """Relationships of ``model`` a delete cascades through."""
        named = set(getattr(model, "__soft_delete_cascade__", None) or ())
        dependents = []

        for relationship in inspect(model).relationships:
            if relationship.viewonly:
                continue
            if relationship.key in named or relationship.cascade.delete:
                dependents.append(relationship)

        unknown = named - {rel.key for rel in inspect(model).relationships}
        if unknown:
            logger.warning(
                f"{model.__name__}.__soft_delete_cascade__ names unknown "
                f"relationships: {', '.join(sorted(unknown))}"
            )

        return dependents

    def cascade_delete(
        self,
        record: Any,
        *,
        is_primary: bool,
        options: Optional[DeleteOptions] = None,
    ) -> List[Any]:
        """
        Cascade a delete of ``record`` to its dependents.

        Args:
            record: Record being deleted
            is_primary: False when the caller is a delete that owns the record
                itself, in which case many-to-many association rows are left
                in place
            options: Options of the parent delete

        Returns:
            Dependents that were deleted
        """
        options = options or DeleteOptions()
        model = type(record)
        deleted: List[Any] = []

        for relationship in self.dependent_relationships(model):
            if relationship.direction is RelationshipDirection.MANYTOMANY:
                if is_primary:
                    self._clear_association_rows(record, relationship)
                continue

            if relationship.direction is not RelationshipDirection.ONETOMANY:
                # many-to-one targets are parents, not dependents
                continue

            for child in self._load(record, relationship):
                if self._delete_dependent(child, options):
                    deleted.append(child)

        if deleted:
            logger.info(
                f"Cascaded delete of {model.__name__} to {len(deleted)} dependent "
                f"record(s)"
            )
        return deleted

    def _load(self, record: Any, relationship: RelationshipProperty) -> Iterable[Any]:
        related = getattr(record, relationship.key)
        if related is None:
            return []
        if relationship.uselist:
            # Copy: deleting children can mutate the collection
            return list(related)
        return [related]

    def _delete_dependent(self, child: Any, options: DeleteOptions) -> bool:
        child_model = type(child)

        if self.resolver.is_soft_deletable(child_model):
            if self._is_deleted(child):
                logger.debug(
                    f"Skipping {child_model.__name__} already marked as deleted"
                )
                return False
            service = self.service_factory(child_model)
            return service.delete(child, options.for_cascade())

        self.session.delete(child)
        self.session.flush()
        return True

    def _is_deleted(self, child: Any) -> bool:
        model = type(child)
        field = self.resolver.resolve_deleted_field(model)
        return bool(getattr(child, self.resolver.attribute_key(model, field)))

    def _clear_association_rows(
        self, record: Any, relationship: RelationshipProperty
    ) -> None:
        secondary = relationship.secondary
        if secondary is None:
            return

        conditions = []
        mapper = inspect(type(record))
        for parent_column, association_column in relationship.synchronize_pairs:
            if association_column.table is not secondary:
                continue
            key = mapper.get_property_by_column(parent_column).key
            conditions.append(association_column == getattr(record, key))

        if not conditions:
            return

        result = self.session.execute(delete(secondary).where(*conditions))
        logger.debug(
            f"Removed {result.rowcount} {secondary.name} row(s) for "
            f"{type(record).__name__}"
        )
