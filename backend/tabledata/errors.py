"""
Load diagnostics and exception types for table data loading.

Nothing in the engine aborts a batch: faults are caught at the conversion,
row, relationship and load boundaries and turned into LoadError entries
plus a log line.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from loguru import logger


class TableDataError(Exception):
    """Base class for table data errors."""


class MalformedFieldError(TableDataError, ValueError):
    """A cell's text cannot be converted to the declared type."""


class MissingKeyPropertyError(TableDataError, AttributeError):
    """A relationship names a key attribute that the record type lacks."""

    def __init__(self, record_type: type, key_name: str):
        self.record_type = record_type
        self.key_name = key_name
        super().__init__(f"Key property '{key_name}' not found on {record_type.__name__}")


class RecordSourceNotFoundError(TableDataError, LookupError):
    """No text source could provide the table for a record type."""


class ErrorSeverity(Enum):
    """Severity of a load diagnostic."""
    WARNING = "warning"    # Value replaced by its default, record kept
    ERROR = "error"        # Record or column skipped
    CRITICAL = "critical"  # Table could not be loaded at all


@dataclass
class LoadError:
    """A single diagnostic produced while loading a table."""
    row: int
    column: str
    message: str
    severity: ErrorSeverity
    value: Optional[str] = None
    expected_type: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self):
        return (f"[{self.severity.name.title()}] Row {self.row}, Column '{self.column}': "
                f"{self.message} (Value: '{self.value if self.value is not None else ''}')")


class LoadErrorCollection:
    """Ordered collection of diagnostics for one table load."""

    def __init__(self, errors: Optional[List[LoadError]] = None):
        self.errors: List[LoadError] = list(errors) if errors else []

    def add(self, error: LoadError) -> None:
        self.errors.append(error)

    def extend(self, errors: 'LoadErrorCollection') -> None:
        self.errors.extend(errors.errors)

    def __len__(self):
        return len(self.errors)

    def __iter__(self):
        return iter(self.errors)

    def _has(self, severity: ErrorSeverity) -> bool:
        return any(e.severity is severity for e in self.errors)

    @property
    def has_critical_errors(self) -> bool:
        return self._has(ErrorSeverity.CRITICAL)

    @property
    def has_errors(self) -> bool:
        return self._has(ErrorSeverity.ERROR)

    @property
    def has_warnings(self) -> bool:
        return self._has(ErrorSeverity.WARNING)

    @property
    def is_success(self) -> bool:
        return not self.has_critical_errors and not self.has_errors

    def count(self, severity: ErrorSeverity) -> int:
        return sum(1 for e in self.errors if e.severity is severity)

    def errors_for_row(self, row: int) -> List[LoadError]:
        return [e for e in self.errors if e.row == row]

    def get_summary(self) -> str:
        """Get a summary of the collected diagnostics."""
        if not self.errors:
            return "No errors"

        lines = [
            f"Total Errors: {len(self.errors)}",
            f"Critical: {self.count(ErrorSeverity.CRITICAL)}",
            f"Errors: {self.count(ErrorSeverity.ERROR)}",
            f"Warnings: {self.count(ErrorSeverity.WARNING)}",
        ]
        return "\n".join(lines)

    def log(self, table_name: Any = None) -> None:
        """Write every diagnostic to the log at a level matching its severity."""
        prefix = f"{table_name}: " if table_name else ""
        for error in self.errors:
            if error.severity is ErrorSeverity.WARNING:
                logger.warning(f"{prefix}{error}")
            else:
                logger.error(f"{prefix}{error}")
