"""
Conversion Registry - Turns cell text into typed values

Resolution order for every conversion:
1. The per-field converter from the column mapping, if it accepts the type
2. A custom converter registered for the exact destination type
3. Optional[X] unwraps to X
4. The built-in table
5. Enumerations by case-insensitive member name (or member value)
6. Arrays (Tuple[X, ...]) and collections (List[X], Set[X], FrozenSet[X])
7. Calling the destination type with the text

Blank text never reaches a converter: it yields the destination's zero-value.
Any exception raised while converting is logged and replaced by the
zero-value, so a bad cell never escapes this module.
"""
import threading
import types
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Union, get_args, get_origin

from loguru import logger

from tabledata.conversion.builtin import BUILTIN_CONVERTERS, ZERO_VALUES, split_components
from tabledata.errors import MalformedFieldError

_UNION_TYPES = (Union, getattr(types, 'UnionType', Union))
_NONE_TYPE = type(None)

_EMPTY_COLLECTIONS = {
    list: list,
    set: set,
    frozenset: frozenset,
    tuple: tuple,
    dict: dict,
}


class FieldConverter:
    """
    Base class for custom converters.

    Subclasses decide which destination types they handle and how to build
    a value from the cell text. Any object exposing ``can_convert`` and
    ``convert`` is accepted; inheriting from this class is optional.
    """

    def can_convert(self, target_type: Any) -> bool:
        raise NotImplementedError

    def convert(self, text: str, target_type: Any) -> Any:
        raise NotImplementedError


class CallableConverter(FieldConverter):
    """Adapts a plain ``str -> value`` callable to the converter interface."""

    def __init__(self, target_type: Any, func: Callable[[str], Any]):
        self.target_type = target_type
        self.func = func

    def can_convert(self, target_type: Any) -> bool:
        return target_type == self.target_type

    def convert(self, text: str, target_type: Any) -> Any:
        return self.func(text)

    def __repr__(self):
        return f"CallableConverter({type_name(self.target_type)}, {self.func!r})"


@dataclass
class ConversionOutcome:
    """Result of a conversion attempt."""
    value: Any
    ok: bool = True
    error: Optional[str] = None


def type_name(target_type: Any) -> str:
    """Readable name for plain types and typing constructs."""
    if isinstance(target_type, type) and get_origin(target_type) is None:
        return target_type.__name__
    return str(target_type).replace('typing.', '')


def optional_inner_types(target_type: Any) -> Optional[tuple]:
    """
    Return the non-None members of an Optional/Union destination.

    Returns None when the destination is not a Union containing None.
    """
    if get_origin(target_type) not in _UNION_TYPES:
        return None
    args = get_args(target_type)
    if _NONE_TYPE not in args:
        return None
    return tuple(arg for arg in args if arg is not _NONE_TYPE)


def _is_converter(obj: Any) -> bool:
    return callable(getattr(obj, 'can_convert', None)) and callable(getattr(obj, 'convert', None))


def _is_enum(target_type: Any) -> bool:
    return (isinstance(target_type, type) and get_origin(target_type) is None
            and issubclass(target_type, Enum))


class ConversionRegistry:
    """
    Converts cell text into values of arbitrary destination types.

    Registries are independent: converters registered on one instance never
    affect another. Registration copies the table under a lock, so readers
    never need to lock.
    """

    def __init__(self):
        self._builtins: Dict[Any, Callable[[str], Any]] = dict(BUILTIN_CONVERTERS)
        self._custom: Dict[Any, Any] = {}
        self._lock = threading.Lock()

    def register_converter(self, target_type: Any, converter: Any) -> None:
        """
        Register a custom converter for a destination type.

        Args:
            target_type: Destination type the converter produces
            converter: FieldConverter-like object, or a ``str -> value`` callable

        Raises:
            TypeError: If converter is neither a converter nor a callable
        """
        if not _is_converter(converter):
            if not callable(converter):
                raise TypeError(f"Converter for {type_name(target_type)} must be callable "
                                f"or implement can_convert/convert")
            converter = CallableConverter(target_type, converter)

        with self._lock:
            custom = dict(self._custom)
            custom[target_type] = converter
            self._custom = custom

        logger.debug(f"Registered converter for {type_name(target_type)}: {converter!r}")

    def unregister_converter(self, target_type: Any) -> bool:
        """Remove a custom converter. Returns True if one was registered."""
        with self._lock:
            if target_type not in self._custom:
                return False
            custom = dict(self._custom)
            del custom[target_type]
            self._custom = custom
        return True

    def get_converter(self, target_type: Any) -> Optional[Any]:
        """Get the custom converter registered for a type, if any."""
        return self._custom.get(target_type)

    def has_converter(self, target_type: Any) -> bool:
        """True if a custom or built-in converter handles the exact type."""
        return target_type in self._custom or target_type in self._builtins

    def convert(self, text: Optional[str], target_type: Any,
                field_converter: Optional[Any] = None) -> Any:
        """
        Convert cell text to a value of ``target_type``.

        Never raises for bad input: failures produce the zero-value.
        """
        return self.convert_with_status(text, target_type, field_converter).value

    def convert_with_status(self, text: Optional[str], target_type: Any,
                            field_converter: Optional[Any] = None) -> ConversionOutcome:
        """Convert like ``convert`` but also report whether conversion failed."""
        if text is None or not str(text).strip():
            return ConversionOutcome(self.zero_value(target_type))

        try:
            return ConversionOutcome(self._convert(text, target_type, field_converter))
        except Exception as e:
            logger.warning(f"Failed to convert '{text}' to {type_name(target_type)}: {e}")
            return ConversionOutcome(self.zero_value(target_type), ok=False, error=str(e))

    def _convert(self, text: str, target_type: Any, field_converter: Optional[Any]) -> Any:
        if field_converter is not None and field_converter.can_convert(target_type):
            return field_converter.convert(text, target_type)

        custom = self._custom.get(target_type)
        if custom is not None:
            return custom.convert(text, target_type)

        inner_types = optional_inner_types(target_type)
        if inner_types is not None:
            return self._convert_union(text, inner_types, field_converter)

        builtin = self._builtins.get(target_type)
        if builtin is not None:
            return builtin(text)

        if _is_enum(target_type):
            return self._convert_enum(text, target_type)

        origin = get_origin(target_type) or target_type
        if origin in (list, set, frozenset, tuple):
            return self._convert_collection(text, target_type, origin)

        if isinstance(target_type, type):
            return target_type(text)

        raise MalformedFieldError(f"No converter available for {type_name(target_type)}")

    def _convert_union(self, text: str, inner_types: tuple, field_converter: Optional[Any]) -> Any:
        if len(inner_types) == 1:
            return self._convert(text, inner_types[0], field_converter)

        last_error = None
        for inner in inner_types:
            try:
                return self._convert(text, inner, field_converter)
            except Exception as e:
                last_error = e
        raise MalformedFieldError(f"'{text}' matches none of {[type_name(t) for t in inner_types]}: {last_error}")

    @staticmethod
    def _convert_enum(text: str, enum_type: type) -> Enum:
        wanted = text.strip()
        lowered = wanted.lower()
        for member in enum_type:
            if member.name.lower() == lowered:
                return member
        for member in enum_type:
            if str(member.value) == wanted:
                return member
        raise MalformedFieldError(f"'{wanted}' is not a member of {enum_type.__name__}")

    def _convert_collection(self, text: str, target_type: Any, origin: type) -> Any:
        parts = split_components(text)
        args = get_args(target_type)

        if origin is tuple and args and args[-1] is not Ellipsis:
            # Fixed-shape tuple: one declared type per position
            padded = parts + [''] * (len(args) - len(parts))
            return tuple(self.convert(part, arg) for part, arg in zip(padded, args))

        element_type = args[0] if args else str
        return origin(self.convert(part, element_type) for part in parts)

    def zero_value(self, target_type: Any) -> Any:
        """
        Default value used for blank cells and failed conversions.

        Custom converters may supply their own by defining ``zero_value``.
        """
        custom = self._custom.get(target_type)
        if custom is not None and callable(getattr(custom, 'zero_value', None)):
            return custom.zero_value(target_type)

        try:
            if target_type in ZERO_VALUES:
                return ZERO_VALUES[target_type]
        except TypeError:
            return None

        if optional_inner_types(target_type) is not None:
            return None

        if _is_enum(target_type):
            members = list(target_type)
            return members[0] if members else None

        origin = get_origin(target_type) or target_type
        factory = _EMPTY_COLLECTIONS.get(origin)
        if factory is not None:
            return factory()

        return None


# Process-wide registry for callers that don't manage their own instance
_default_registry: Optional[ConversionRegistry] = None
_default_lock = threading.Lock()


def get_default_registry() -> ConversionRegistry:
    """Get the shared process-wide registry, creating it on first use."""
    global _default_registry

    if _default_registry is not None:
        return _default_registry

    with _default_lock:
        if _default_registry is None:
            _default_registry = ConversionRegistry()
    return _default_registry


def reset_default_registry() -> None:
    """Drop the shared registry and every converter registered on it."""
    global _default_registry

    with _default_lock:
        _default_registry = None


def register_converter(target_type: Any, converter: Any) -> None:
    """Register a converter on the process-wide registry."""
    get_default_registry().register_converter(target_type, converter)


def convert(text: Optional[str], target_type: Any, field_converter: Optional[Any] = None) -> Any:
    """Convert using the process-wide registry."""
    return get_default_registry().convert(text, target_type, field_converter)
