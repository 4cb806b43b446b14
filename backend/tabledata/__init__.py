"""
Table data engine: typed records from delimited text tables

Components:
  tabledata.conversion     - ConversionRegistry, cell text to typed values
  tabledata.schema         - column(), reference(), ignore(), TableRecord, describe()
  tabledata.binding        - RecordBinder, header mapping and row binding
  tabledata.relationships  - RelationshipResolver with cycle guard
  tabledata.cache          - RecordCache with statistics
  tabledata.loader         - TableDataLoader, async loading with progress
"""
from tabledata.binding import RecordBinder
from tabledata.cache import CacheStatistics, RecordCache
from tabledata.conversion import ConversionRegistry, FieldConverter, convert, register_converter
from tabledata.errors import (
    ErrorSeverity, LoadError, LoadErrorCollection, MalformedFieldError,
    MissingKeyPropertyError, RecordSourceNotFoundError, TableDataError
)
from tabledata.loader import LoadingProgress, TableDataLoader
from tabledata.relationships import RelationshipContext, RelationshipResolver
from tabledata.schema import TableRecord, ValidationRule, column, describe, ignore, reference
from tabledata.sources import DirectorySource, InMemorySource
from tabledata.types import Color, Color32, Quaternion, Vector2, Vector3, Vector4

__all__ = [
    'CacheStatistics', 'Color', 'Color32', 'ConversionRegistry', 'DirectorySource',
    'ErrorSeverity', 'FieldConverter', 'InMemorySource', 'LoadError', 'LoadErrorCollection',
    'LoadingProgress', 'MalformedFieldError', 'MissingKeyPropertyError', 'Quaternion',
    'RecordBinder', 'RecordCache', 'RecordSourceNotFoundError', 'RelationshipContext',
    'RelationshipResolver', 'TableDataError', 'TableDataLoader', 'TableRecord',
    'ValidationRule', 'Vector2', 'Vector3', 'Vector4', 'column', 'convert', 'describe',
    'ignore', 'reference', 'register_converter',
]
