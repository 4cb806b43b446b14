"""
Relationship Resolver - Links records to the records they reference

For each eager relationship declared on a record type the resolver fetches
the target record set (once per pass), resolves that set's own relationships
with the same context, then links source records to targets by matching the
source's primary key against the target's foreign key.

Cycles are broken at the second occurrence of a target table on the
resolution stack, and the stack never grows past the configured depth.
"""
from typing import Any, Dict, List, Optional, Protocol, Sequence

from loguru import logger

from tabledata.errors import MissingKeyPropertyError
from tabledata.relationships.context import DEFAULT_MAX_DEPTH, RelationshipContext
from tabledata.schema import RecordDescriptor, RelationshipDeclaration, describe


class RecordSetLoader(Protocol):
    """Anything that can produce the full record list for a type."""

    async def load_typed_set(self, record_type: type) -> List[Any]:
        ...


class RelationshipResolver:
    """Populates reference attributes on bound records."""

    def __init__(self, loader: RecordSetLoader, max_depth: int = DEFAULT_MAX_DEPTH):
        self.loader = loader
        self.max_depth = max_depth

    async def resolve(self, records: Sequence[Any],
                      context: Optional[RelationshipContext] = None) -> RelationshipContext:
        """
        Resolve every eager relationship of the records' type, in place.

        Args:
            records: Records of one type
            context: Context of an enclosing pass; a fresh one is created if None

        Returns:
            The context used, so callers can inspect what was loaded
        """
        if context is None:
            context = RelationshipContext(self.max_depth)
        if not records:
            return context

        descriptor = self._describe(records)
        if descriptor is None:
            return context

        for declaration in descriptor.relationships:
            if declaration.lazy:
                logger.debug(f"Skipping lazy relationship {descriptor.record_type.__name__}.{declaration.attribute}")
                continue
            await self._resolve_relationship(records, descriptor, declaration, context)
        return context

    async def resolve_reference(self, records: Sequence[Any], attribute: str,
                                context: Optional[RelationshipContext] = None) -> RelationshipContext:
        """
        Resolve one named relationship on demand, lazy or not.

        Raises:
            AttributeError: If the records' type declares no such relationship
        """
        if context is None:
            context = RelationshipContext(self.max_depth)
        if not records:
            return context

        descriptor = self._describe(records)
        if descriptor is None:
            return context

        declaration = descriptor.relationship(attribute)
        if declaration is None:
            raise AttributeError(f"{descriptor.record_type.__name__} declares no relationship '{attribute}'")

        await self._resolve_relationship(records, descriptor, declaration, context)
        return context

    def _describe(self, records: Sequence[Any]) -> Optional[RecordDescriptor]:
        """Descriptor of the records' type, or None (logged) if its declarations are invalid."""
        record_type = type(records[0])
        try:
            return describe(record_type)
        except Exception as e:
            logger.error(f"Cannot resolve relationships of {record_type.__name__}: {e}")
            return None

    async def _resolve_relationship(self, records: Sequence[Any], descriptor: RecordDescriptor,
                                    declaration: RelationshipDeclaration,
                                    context: RelationshipContext) -> None:
        source_name = f"{descriptor.record_type.__name__}.{declaration.attribute}"
        identifier = declaration.target_identifier

        if context.is_circular(identifier):
            logger.warning(f"Circular relationship detected: {context.path(identifier)} "
                           f"(skipping {source_name})")
            return
        if context.at_max_depth:
            logger.warning(f"Maximum relationship depth {context.max_depth} reached at "
                           f"{context.path()} (skipping {source_name})")
            return

        context.push(identifier)
        try:
            targets = await self._load_targets(declaration.target_type, descriptor.record_type, context)
            linked = self._link(records, descriptor, declaration, targets)
            logger.debug(f"Resolved {source_name}: {linked}/{len(records)} records linked")
        except MissingKeyPropertyError as e:
            logger.error(f"Skipping relationship {source_name}: {e}")
        except Exception as e:
            logger.error(f"Failed to resolve relationship {source_name}: {e}")
        finally:
            context.pop()

    async def _load_targets(self, target_type: type, source_type: type,
                            context: RelationshipContext) -> List[Any]:
        targets = context.get_loaded(target_type)
        if targets is not None:
            return targets

        targets = await self.loader.load_typed_set(target_type)
        context.store_loaded(target_type, targets)
        # Nested pass over the freshly loaded set, sharing the cycle guard.
        # A self-referential type is already being resolved by the caller.
        if target_type is not source_type:
            await self.resolve(targets, context)
        return targets

    def _link(self, records: Sequence[Any], descriptor: RecordDescriptor,
              declaration: RelationshipDeclaration, targets: Sequence[Any]) -> int:
        """Assign matching targets to every source record. Returns the number linked."""
        primary_key = descriptor.find_attribute(declaration.primary_key)
        if primary_key is None:
            raise MissingKeyPropertyError(descriptor.record_type, declaration.primary_key)

        foreign_key = describe(declaration.target_type).find_attribute(declaration.foreign_key)
        if foreign_key is None:
            raise MissingKeyPropertyError(declaration.target_type, declaration.foreign_key)

        index: Dict[Any, List[Any]] = {}
        for target in targets:
            index.setdefault(getattr(target, foreign_key), []).append(target)

        linked = 0
        ambiguous = 0
        for record in records:
            matches = index.get(getattr(record, primary_key), [])

            if declaration.is_collection:
                setattr(record, declaration.attribute, list(matches))
            elif matches:
                # First match in target order wins
                setattr(record, declaration.attribute, matches[0])
                if len(matches) > 1:
                    ambiguous += 1

            if matches:
                linked += 1

        if ambiguous:
            logger.warning(f"{descriptor.record_type.__name__}.{declaration.attribute}: {ambiguous} records "
                           f"matched several {declaration.target_type.__name__} records, first match used")
        return linked
