"""
Record Schema - Declarative column mappings and relationships for record types

Record types are dataclasses. Fields declare how they bind to table columns
through ``column(...)`` and how they link to other record types through
``reference(...)``; undecorated fields map to the column with the same name.
The first time a type is used its fields are introspected once and turned
into a RecordDescriptor, which is cached for the life of the process.

Example:
    @dataclass
    class Character(TableRecord):
        __table__ = "characters.csv"

        id: int = column("ID")
        name: str = column("Name")
        speed: float = column("Speed", optional=True, validation=ValidationRule(min_value=0))
        items: List["Item"] = reference(foreign_key="owner_id")
"""
import collections.abc
import dataclasses
import re
import threading
import typing
from dataclasses import MISSING, dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Sequence, Tuple, get_args, get_origin

from tabledata.conversion.registry import optional_inner_types
from tabledata.errors import ErrorSeverity

COLUMN_KEY = 'tabledata.column'
REFERENCE_KEY = 'tabledata.reference'
IGNORE_KEY = 'tabledata.ignore'

_COLLECTION_ORIGINS = (list, tuple, set, frozenset, collections.abc.Sequence)


class Cardinality(Enum):
    """How many target records a relationship links to."""
    SINGLE = "single"
    MANY = "many"


@dataclass(frozen=True)
class ValidationRule:
    """
    Post-conversion checks for a column.

    A required value that converted to None is an error; range and pattern
    violations are warnings (the value is kept).
    """
    min_value: Any = None
    max_value: Any = None
    pattern: Optional[str] = None
    required: bool = True
    error_message: Optional[str] = None

    def check(self, attribute: str, value: Any) -> List[Tuple[ErrorSeverity, str]]:
        """Return (severity, message) pairs for every violated rule."""
        if value is None:
            if self.required:
                return [(ErrorSeverity.ERROR,
                         self.error_message or f"Required property '{attribute}' is null")]
            return []

        issues = []
        try:
            if self.min_value is not None and value < self.min_value:
                issues.append((ErrorSeverity.WARNING,
                               self.error_message or f"Value {value} is less than minimum {self.min_value}"))
            if self.max_value is not None and value > self.max_value:
                issues.append((ErrorSeverity.WARNING,
                               self.error_message or f"Value {value} is greater than maximum {self.max_value}"))
        except TypeError:
            # Not comparable with the bounds
            pass

        if self.pattern and isinstance(value, str) and not re.search(self.pattern, value):
            issues.append((ErrorSeverity.WARNING,
                           self.error_message or f"Value '{value}' does not match pattern '{self.pattern}'"))
        return issues


@dataclass(frozen=True)
class ColumnSpec:
    """What ``column(...)`` stores in field metadata."""
    name: Optional[str] = None
    index: Optional[int] = None
    optional: bool = False
    converter: Any = None
    validation: Optional[ValidationRule] = None


@dataclass(frozen=True)
class ReferenceSpec:
    """What ``reference(...)`` stores in field metadata."""
    foreign_key: str
    primary_key: str = 'id'
    lazy: bool = False


def column(name: Optional[str] = None, *, index: Optional[int] = None,
           optional: bool = False, converter: Any = None,
           validation: Optional[ValidationRule] = None,
           default: Any = MISSING, default_factory: Any = MISSING, **field_kwargs):
    """
    Declare a field bound to a table column.

    Args:
        name: Column header to bind (case-insensitive). Defaults to the field name.
        index: Bind by 0-based column position instead of by name
        optional: A missing column or bad value is a warning rather than an error
        converter: Per-field converter object (or class, instantiated once)
        validation: Rules checked after conversion
        default: Field default, as for dataclasses.field
        default_factory: Field default factory, as for dataclasses.field
    """
    if name is not None and index is not None:
        raise ValueError("column() takes a name or an index, not both")
    if index is not None and index < 0:
        raise ValueError(f"column index must be >= 0, got {index}")
    if isinstance(converter, type):
        converter = converter()

    spec = ColumnSpec(name=name, index=index, optional=optional,
                      converter=converter, validation=validation)
    metadata = dict(field_kwargs.pop('metadata', None) or {})
    metadata[COLUMN_KEY] = spec
    return field(default=default, default_factory=default_factory, metadata=metadata, **field_kwargs)


def reference(foreign_key: str, primary_key: str = 'id', *, lazy: bool = False):
    """
    Declare a field populated from another record type.

    The target type and cardinality come from the field annotation:
    ``List[Target]`` links every matching target, ``Target`` or
    ``Optional[Target]`` links the first match.

    Args:
        foreign_key: Attribute on the target type holding the key
        primary_key: Attribute on this type whose value targets must match
        lazy: Skip during eager resolution; resolve on demand instead
    """
    spec = ReferenceSpec(foreign_key=foreign_key, primary_key=primary_key, lazy=lazy)
    # Excluded from repr/eq: linked records may point back at this one
    return field(default=None, repr=False, compare=False, metadata={REFERENCE_KEY: spec})


def ignore(default: Any = MISSING, default_factory: Any = MISSING):
    """Declare a field that is never bound from the table."""
    return field(default=default, default_factory=default_factory, metadata={IGNORE_KEY: True})


@dataclass(frozen=True)
class ColumnMapping:
    """Binding between one table column and one record attribute."""
    attribute: str
    value_type: Any
    column_name: Optional[str] = None
    column_index: Optional[int] = None
    optional: bool = False
    converter: Any = None
    validation: Optional[ValidationRule] = None

    @property
    def label(self) -> str:
        """Column label used in diagnostics."""
        if self.column_index is not None:
            return f"#{self.column_index}"
        return self.column_name or self.attribute

    def find_index(self, headers: Sequence[str]) -> int:
        """Position of this mapping's column in the header row, or -1."""
        if self.column_index is not None:
            return self.column_index if self.column_index < len(headers) else -1

        wanted = (self.column_name or self.attribute).lower()
        for position, header in enumerate(headers):
            if header.lower() == wanted:
                return position
        return -1


@dataclass(frozen=True)
class RelationshipDeclaration:
    """Link from a source record type to a target record type."""
    attribute: str
    target_type: type
    primary_key: str
    foreign_key: str
    cardinality: Cardinality
    lazy: bool = False

    @property
    def is_collection(self) -> bool:
        return self.cardinality is Cardinality.MANY

    @property
    def target_identifier(self) -> str:
        return table_identifier(self.target_type)

    def __str__(self):
        arrow = "->*" if self.is_collection else "->"
        return f"{self.attribute} {arrow} {self.target_type.__name__}.{self.foreign_key}"


@dataclass(frozen=True)
class RecordDescriptor:
    """Everything the engine needs to know about one record type."""
    record_type: type
    columns: Tuple[ColumnMapping, ...]
    relationships: Tuple[RelationshipDeclaration, ...]
    attributes: Tuple[str, ...]

    def find_attribute(self, name: str) -> Optional[str]:
        """Resolve an attribute name, exact match first, then case-insensitive."""
        if name in self.attributes:
            return name
        lowered = name.lower()
        for attribute in self.attributes:
            if attribute.lower() == lowered:
                return attribute
        return None

    def relationship(self, attribute: str) -> Optional[RelationshipDeclaration]:
        for declaration in self.relationships:
            if declaration.attribute == attribute:
                return declaration
        return None


class TableRecord:
    """
    Optional base class for record types.

    Provides the table name and the post-load hooks the loader calls.
    """

    __table__: ClassVar[Optional[str]] = None

    @classmethod
    def table_name(cls) -> str:
        """File name of the table backing this record type."""
        return cls.__table__ or f"{cls.__name__.lower()}.csv"

    def on_data_loaded(self) -> None:
        """Called once the record's columns are bound."""

    def validate_data(self) -> bool:
        """Return False to drop the record from the loaded list."""
        return True


def table_identifier(record_type: type) -> str:
    """Identifier used for a record type on the relationship stack."""
    table_name = getattr(record_type, 'table_name', None)
    if callable(table_name):
        return table_name()
    return getattr(record_type, '__table__', None) or record_type.__name__


_descriptors: Dict[type, RecordDescriptor] = {}
_descriptor_lock = threading.Lock()


def describe(record_type: type) -> RecordDescriptor:
    """
    Get the descriptor for a record type, building it on first use.

    Raises:
        TypeError: If the type is not a dataclass or a reference annotation
            does not name a record type
        NameError: If a forward reference in an annotation cannot be resolved
    """
    descriptor = _descriptors.get(record_type)
    if descriptor is not None:
        return descriptor

    descriptor = _build_descriptor(record_type)
    with _descriptor_lock:
        _descriptors.setdefault(record_type, descriptor)
    return _descriptors[record_type]


def _build_descriptor(record_type: type) -> RecordDescriptor:
    if not (isinstance(record_type, type) and dataclasses.is_dataclass(record_type)):
        raise TypeError(f"{record_type!r} is not a dataclass record type")

    hints = typing.get_type_hints(record_type)
    columns = []
    relationships = []
    attributes = []

    for f in dataclasses.fields(record_type):
        attributes.append(f.name)
        annotation = hints.get(f.name, Any)

        if f.metadata.get(IGNORE_KEY):
            continue

        ref_spec = f.metadata.get(REFERENCE_KEY)
        if ref_spec is not None:
            target_type, cardinality = _reference_target(record_type, f.name, annotation)
            relationships.append(RelationshipDeclaration(
                attribute=f.name,
                target_type=target_type,
                primary_key=ref_spec.primary_key,
                foreign_key=ref_spec.foreign_key,
                cardinality=cardinality,
                lazy=ref_spec.lazy,
            ))
            continue

        col_spec = f.metadata.get(COLUMN_KEY)
        if col_spec is None:
            if not f.init or f.name.startswith('_'):
                continue
            col_spec = ColumnSpec()

        columns.append(ColumnMapping(
            attribute=f.name,
            value_type=annotation,
            column_name=col_spec.name,
            column_index=col_spec.index,
            optional=col_spec.optional,
            converter=col_spec.converter,
            validation=col_spec.validation,
        ))

    return RecordDescriptor(
        record_type=record_type,
        columns=tuple(columns),
        relationships=tuple(relationships),
        attributes=tuple(attributes),
    )


def _reference_target(record_type: type, attribute: str, annotation: Any) -> Tuple[type, Cardinality]:
    inner_types = optional_inner_types(annotation)
    if inner_types is not None and len(inner_types) == 1:
        annotation = inner_types[0]

    cardinality = Cardinality.SINGLE
    if get_origin(annotation) in _COLLECTION_ORIGINS:
        args = get_args(annotation)
        annotation = args[0] if args else None
        cardinality = Cardinality.MANY

    if not (isinstance(annotation, type) and dataclasses.is_dataclass(annotation)):
        raise TypeError(f"{record_type.__name__}.{attribute}: reference annotation must name "
                        f"a record type or a list of one, got {annotation!r}")
    return annotation, cardinality
