"""
Tests for binding table rows to records
"""
from dataclasses import dataclass
from typing import List, Optional

import pytest

from tabledata.binding import RecordBinder
from tabledata.conversion import ConversionRegistry, FieldConverter
from tabledata.errors import ErrorSeverity, LoadErrorCollection
from tabledata.schema import TableRecord, ValidationRule, column, ignore
from tabledata.types import Vector3


class PercentConverter(FieldConverter):
    """Reads '50%' as 0.5."""

    def can_convert(self, target_type):
        return target_type is float

    def convert(self, text, target_type):
        return float(text.rstrip('%')) / 100


@dataclass
class Hero(TableRecord):
    id: int = column("ID")
    name: str = column("Name")
    speed: float = column("Speed", optional=True, default=1.0,
                          validation=ValidationRule(min_value=0, max_value=10))
    position: Vector3 = column("Position", optional=True, default=Vector3())
    crit: float = column("Crit", optional=True, converter=PercentConverter, default=0.0)
    tags: List[str] = column("Tags", optional=True, default_factory=list)
    level: Optional[int] = column("Level", optional=True, default=None)
    loaded: bool = ignore(default=False)

    def on_data_loaded(self):
        self.loaded = True

    def validate_data(self):
        return self.name != "Rejected"


@dataclass
class Fragile(TableRecord):
    id: int = 0

    def on_data_loaded(self):
        if self.id == 13:
            raise RuntimeError("unlucky")


@dataclass
class TabRow:
    a: str = column(optional=True, default="")
    b: str = column(optional=True, default="")
    c: str = column(optional=True, default="")


@dataclass
class UnnamedLead:
    lead: str = column("Column_0", default="")
    b: str = ""


@dataclass
class Positional:
    first: str = column(index=0)
    third: int = column(index=2)


HERO_TABLE = """# heroes
ID,Name,Speed,Position,Crit,Tags
1,Aria,5.5,"1,2,3",25%,"fast,brave"

2,"Bors, the Bold",-1,,,
3,Cyd,abc,"0,0",,
"""


@pytest.fixture
def binder():
    return RecordBinder(Hero, ConversionRegistry())


class TestMapColumns:
    """Test header mapping."""

    def test_maps_columns_case_insensitively(self, binder):
        errors = LoadErrorCollection()
        bound = binder.map_columns(["id", "NAME", "speed"], errors)

        assert {mapping.attribute: position for mapping, position in bound} == {
            "id": 0, "name": 1, "speed": 2,
        }
        assert len(errors) == 0

    def test_missing_required_column_is_error(self, binder):
        errors = LoadErrorCollection()
        bound = binder.map_columns(["ID"], errors)

        assert [m.attribute for m, _ in bound] == ["id"]
        assert errors.has_errors
        assert errors.errors[0].column == "Name"
        assert "Required column 'Name' not found" in errors.errors[0].message

    def test_positional_columns(self):
        binder = RecordBinder(Positional, ConversionRegistry())
        errors = LoadErrorCollection()
        bound = binder.map_columns(["a", "b"], errors)

        assert [m.attribute for m, _ in bound] == ["first"]
        assert errors.errors[0].column == "#2"


class TestBindText:
    """Test binding a whole table."""

    def test_binds_typed_records(self, binder):
        records, errors = binder.bind_text(HERO_TABLE)
        aria = records[0]

        assert len(records) == 3
        assert aria.id == 1
        assert aria.name == "Aria"
        assert aria.speed == 5.5
        assert aria.position == Vector3(1, 2, 3)
        assert aria.crit == pytest.approx(0.25)
        assert aria.tags == ["fast", "brave"]
        assert aria.level is None

    def test_quoted_delimiter_in_value(self, binder):
        records, _ = binder.bind_text(HERO_TABLE)
        assert records[1].name == "Bors, the Bold"

    def test_blank_cells_take_zero_values(self, binder):
        records, _ = binder.bind_text(HERO_TABLE)
        bors = records[1]

        assert bors.position == Vector3()
        assert bors.tags == []
        assert bors.crit == 0.0

    def test_validation_warning_keeps_value(self, binder):
        records, errors = binder.bind_text(HERO_TABLE)

        assert records[1].speed == -1
        row_errors = errors.errors_for_row(5)
        assert [e.severity for e in row_errors] == [ErrorSeverity.WARNING]
        assert "less than minimum" in row_errors[0].message

    def test_bad_optional_cells_are_warnings(self, binder):
        records, errors = binder.bind_text(HERO_TABLE)
        cyd = records[2]

        assert cyd.speed == 0.0
        assert cyd.position == Vector3()
        row_errors = errors.errors_for_row(6)
        assert {e.column for e in row_errors} == {"Speed", "Position"}
        assert all(e.severity is ErrorSeverity.WARNING for e in row_errors)
        assert row_errors[0].value == "abc"
        assert row_errors[0].expected_type == "float"
        assert errors.is_success

    def test_bad_required_cell_is_error(self, binder):
        records, errors = binder.bind_text("ID,Name\nx,Dee\n")

        assert records[0].id == 0
        assert errors.has_errors
        assert errors.errors[0].severity is ErrorSeverity.ERROR

    def test_hooks_run_and_rejected_records_are_dropped(self, binder):
        records, errors = binder.bind_text("ID,Name\n1,Ok\n2,Rejected\n")

        assert [r.name for r in records] == ["Ok"]
        assert records[0].loaded is True
        assert errors.errors_for_row(3)[0].message == "Record failed validation"

    def test_hook_exception_drops_record(self):
        binder = RecordBinder(Fragile, ConversionRegistry())
        records, errors = binder.bind_text("id\n12\n13\n14\n")

        assert [r.id for r in records] == [12, 14]
        assert "unlucky" in errors.errors_for_row(3)[0].message

    def test_missing_required_column_uses_zero_value(self, binder):
        records, errors = binder.bind_text("ID\n7\n")

        assert records[0].id == 7
        assert records[0].name == ""
        assert errors.has_errors

    def test_short_rows_are_padded(self, binder):
        records, errors = binder.bind_text("ID,Name,Speed\n9,Eve\n")

        assert records[0].speed == 0.0
        assert errors.is_success

    def test_missing_header_is_critical(self, binder):
        records, errors = binder.bind_text("# only a comment\n\n")

        assert records == []
        assert errors.has_critical_errors

    def test_custom_format(self, binder):
        records, _ = binder.bind_text("; note\nID|Name\n4|'Fay|Gray'\n",
                                      delimiter='|', quote_char="'", comment_prefix=';')
        assert records[0].name == "Fay|Gray"

    def test_tab_delimited_blank_edge_cells_keep_columns_aligned(self):
        binder = RecordBinder(TabRow, ConversionRegistry())
        records, errors = binder.bind_text("a\tb\tc\n\tB1\tC1\nA2\tB2\t\n", delimiter='\t')

        assert [(r.a, r.b, r.c) for r in records] == [("", "B1", "C1"), ("A2", "B2", "")]
        assert errors.is_success

    def test_blank_leading_header_cell_is_named(self):
        binder = RecordBinder(UnnamedLead, ConversionRegistry())
        records, errors = binder.bind_text("\tb\nx\ty\n", delimiter='\t')

        assert (records[0].lead, records[0].b) == ("x", "y")
        assert errors.is_success

    def test_progress_callback(self, binder):
        seen = []
        binder.bind_text("ID,Name\n1,A\n2,B\n", on_progress=lambda done, total: seen.append((done, total)))

        assert seen == [(1, 2), (2, 2)]

    def test_uses_registry_converters(self):
        registry = ConversionRegistry()
        registry.register_converter(str, lambda text: text.upper())
        records, _ = RecordBinder(Hero, registry).bind_text("ID,Name\n1,zed\n")

        assert records[0].name == "ZED"
