"""
Record Binder - Builds typed records from parsed table rows

The binder owns the header-to-attribute mapping for one record type and
converts each row's cells through a ConversionRegistry. Bad cells never stop
a load: they become zero-values plus a LoadError, and a row that cannot be
turned into a record is dropped with an ERROR.
"""
import dataclasses
import typing
from dataclasses import MISSING
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from loguru import logger

from parsers.delimited import (
    DEFAULT_COMMENT_PREFIX, DEFAULT_DELIMITER, DEFAULT_QUOTE_CHAR, DelimitedLineParser
)
from tabledata.conversion.registry import ConversionRegistry, get_default_registry, type_name
from tabledata.errors import ErrorSeverity, LoadError, LoadErrorCollection
from tabledata.schema import ColumnMapping, describe

BoundColumns = List[Tuple[ColumnMapping, int]]
ProgressCallback = Callable[[int, int], None]


class RecordBinder:
    """
    Binds rows of one table to instances of one record type.
    """

    def __init__(self, record_type: type, registry: Optional[ConversionRegistry] = None):
        self.record_type = record_type
        self.registry = registry or get_default_registry()
        self.descriptor = describe(record_type)
        self._fallback_types = self._unbound_required_fields()

    def _unbound_required_fields(self) -> Dict[str, Any]:
        """Init fields with no default; they get a zero-value when no column fills them."""
        hints = typing.get_type_hints(self.record_type)
        return {
            f.name: hints.get(f.name, Any)
            for f in dataclasses.fields(self.record_type)
            if f.init and f.default is MISSING and f.default_factory is MISSING
        }

    def map_columns(self, headers: Sequence[str], errors: LoadErrorCollection) -> BoundColumns:
        """
        Match the record's column mappings against a header row.

        Required columns that are missing produce an ERROR; optional ones
        are skipped quietly.

        Returns:
            List of (mapping, column position) for every column found
        """
        bound = []
        for mapping in self.descriptor.columns:
            position = mapping.find_index(headers)
            if position >= 0:
                bound.append((mapping, position))
                continue

            if mapping.optional:
                logger.debug(f"{self.record_type.__name__}: optional column '{mapping.label}' not present")
                continue

            errors.add(LoadError(
                row=0,
                column=mapping.label,
                message=f"Required column '{mapping.label}' not found",
                severity=ErrorSeverity.ERROR,
                expected_type=type_name(mapping.value_type),
            ))
        return bound

    def bind_row(self, fields: Sequence[str], mappings: BoundColumns,
                 row_number: int, errors: LoadErrorCollection) -> Optional[Any]:
        """
        Build one record from a parsed row.

        Args:
            fields: Cells of the row
            mappings: Result of map_columns for this table
            row_number: Line number used in diagnostics
            errors: Collection receiving diagnostics

        Returns:
            The record, or None if it was dropped
        """
        values = {}
        for mapping, position in mappings:
            text = fields[position] if position < len(fields) else ''
            values[mapping.attribute] = self._bind_value(text, mapping, row_number, errors)

        for name, field_type in self._fallback_types.items():
            if name not in values:
                values[name] = self.registry.zero_value(field_type)

        try:
            record = self.record_type(**values)
        except Exception as e:
            errors.add(LoadError(row=row_number, column='', severity=ErrorSeverity.ERROR,
                                 message=f"Failed to create {self.record_type.__name__}: {e}"))
            return None

        return self._finish_record(record, row_number, errors)

    def _bind_value(self, text: str, mapping: ColumnMapping, row_number: int,
                    errors: LoadErrorCollection) -> Any:
        outcome = self.registry.convert_with_status(text, mapping.value_type, mapping.converter)
        expected = type_name(mapping.value_type)

        if not outcome.ok:
            errors.add(LoadError(
                row=row_number,
                column=mapping.label,
                message=f"Cannot convert to {expected}: {outcome.error}",
                severity=ErrorSeverity.WARNING if mapping.optional else ErrorSeverity.ERROR,
                value=text,
                expected_type=expected,
            ))

        if mapping.validation is not None:
            for severity, message in mapping.validation.check(mapping.attribute, outcome.value):
                errors.add(LoadError(row=row_number, column=mapping.label, message=message,
                                     severity=severity, value=text, expected_type=expected))
        return outcome.value

    def _finish_record(self, record: Any, row_number: int, errors: LoadErrorCollection) -> Optional[Any]:
        """Run the record's post-load hooks; drop it if they reject it."""
        try:
            on_loaded = getattr(record, 'on_data_loaded', None)
            if callable(on_loaded):
                on_loaded()

            validate = getattr(record, 'validate_data', None)
            if callable(validate) and not validate():
                errors.add(LoadError(row=row_number, column='', severity=ErrorSeverity.ERROR,
                                     message="Record failed validation"))
                return None
        except Exception as e:
            errors.add(LoadError(row=row_number, column='', severity=ErrorSeverity.ERROR,
                                 message=f"Post-load hook failed: {e}"))
            return None

        return record

    def bind_text(self, text: str, delimiter: str = DEFAULT_DELIMITER,
                  quote_char: str = DEFAULT_QUOTE_CHAR,
                  comment_prefix: str = DEFAULT_COMMENT_PREFIX,
                  on_progress: Optional[ProgressCallback] = None) -> Tuple[List[Any], LoadErrorCollection]:
        """
        Bind a whole table.

        The first non-blank, non-comment line is the header. A table without
        one yields no records and a CRITICAL diagnostic.

        Args:
            text: Full table text
            delimiter: Field separator
            quote_char: Quote character
            comment_prefix: Lines starting with this are skipped
            on_progress: Called with (processed_rows, total_rows) after each row

        Returns:
            (records, errors)
        """
        parser = DelimitedLineParser(delimiter, quote_char, comment_prefix)
        errors = LoadErrorCollection()

        content = [
            (line_number, line)
            for line_number, line in enumerate(text.splitlines(), start=1)
            if not parser.is_skippable(line)
        ]
        if not content:
            errors.add(LoadError(row=0, column='', severity=ErrorSeverity.CRITICAL,
                                 message="Table has no header row"))
            return [], errors

        _, header_line = content[0]
        mappings = self.map_columns(parser.parse_header(header_line), errors)

        records = []
        rows = content[1:]
        for processed, (line_number, line) in enumerate(rows, start=1):
            record = self.bind_row(parser.parse_row(line), mappings, line_number, errors)
            if record is not None:
                records.append(record)
            if on_progress is not None:
                on_progress(processed, len(rows))

        logger.debug(f"Bound {len(records)}/{len(rows)} {self.record_type.__name__} records "
                     f"({len(errors)} diagnostics)")
        return records, errors
