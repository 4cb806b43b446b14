"""
Cell text conversion
"""
from tabledata.conversion.registry import (
    CallableConverter, ConversionOutcome, ConversionRegistry, FieldConverter,
    convert, get_default_registry, register_converter, reset_default_registry, type_name
)

__all__ = [
    'CallableConverter', 'ConversionOutcome', 'ConversionRegistry', 'FieldConverter',
    'convert', 'get_default_registry', 'register_converter', 'reset_default_registry',
    'type_name',
]
