"""
Tests for record declarations and descriptors
"""
from dataclasses import dataclass
from typing import List, Optional, Sequence

import pytest

from tabledata.errors import ErrorSeverity
from tabledata.schema import (
    Cardinality, TableRecord, ValidationRule, column, describe, ignore, reference, table_identifier
)


@dataclass
class Owner(TableRecord):
    __table__ = "owners.csv"

    id: int = column("ID")
    name: str = column("Name", optional=True, default="")
    pets: List["Pet"] = reference(foreign_key="owner_id")
    favourite: Optional["Pet"] = reference(foreign_key="owner_id", lazy=True)
    notes: str = ignore(default="")


@dataclass
class Pet(TableRecord):
    pet_id: int = 0
    owner_id: int = 0
    nickname: str = column(index=2, default="")
    owner: "Owner" = reference(foreign_key="id", primary_key="owner_id")
    _scratch: int = 0


@dataclass
class Kennel:
    id: int = 0
    residents: Sequence["Pet"] = reference(foreign_key="owner_id")


@dataclass
class Untitled:
    value: int = 0


class NotADataclass:
    pass


@dataclass
class BadReference:
    id: int = 0
    things: List[int] = reference(foreign_key="id")


class TestColumnDeclarations:
    """Test how fields become column mappings."""

    def test_declared_columns(self):
        descriptor = describe(Owner)
        columns = {m.attribute: m for m in descriptor.columns}

        assert set(columns) == {"id", "name"}
        assert columns["id"].column_name == "ID"
        assert columns["id"].value_type is int
        assert columns["id"].optional is False
        assert columns["name"].optional is True

    def test_undecorated_fields_map_by_attribute_name(self):
        columns = {m.attribute: m for m in describe(Pet).columns}

        assert columns["pet_id"].column_name is None
        assert columns["pet_id"].label == "pet_id"
        assert columns["nickname"].column_index == 2
        assert columns["nickname"].label == "#2"

    def test_private_and_ignored_fields_are_skipped(self):
        assert "_scratch" not in {m.attribute for m in describe(Pet).columns}
        assert "notes" not in {m.attribute for m in describe(Owner).columns}

    def test_find_index_is_case_insensitive(self):
        mapping = next(m for m in describe(Owner).columns if m.attribute == "id")

        assert mapping.find_index(["name", "id"]) == 1
        assert mapping.find_index(["Name"]) == -1

    def test_index_mapping_out_of_range(self):
        mapping = next(m for m in describe(Pet).columns if m.attribute == "nickname")

        assert mapping.find_index(["a", "b", "c"]) == 2
        assert mapping.find_index(["a", "b"]) == -1

    def test_name_and_index_are_exclusive(self):
        with pytest.raises(ValueError):
            column("ID", index=0)

    def test_converter_class_is_instantiated(self):
        class Conv:
            def can_convert(self, target_type):
                return True

            def convert(self, text, target_type):
                return text

        f = column(converter=Conv)
        assert isinstance(f.metadata["tabledata.column"].converter, Conv)


class TestRelationshipDeclarations:
    """Test reference() and annotation-driven cardinality."""

    def test_list_annotation_is_many(self):
        pets = describe(Owner).relationship("pets")

        assert pets.target_type is Pet
        assert pets.cardinality is Cardinality.MANY
        assert pets.is_collection
        assert pets.primary_key == "id"
        assert pets.foreign_key == "owner_id"
        assert pets.lazy is False

    def test_optional_annotation_is_single(self):
        favourite = describe(Owner).relationship("favourite")

        assert favourite.cardinality is Cardinality.SINGLE
        assert favourite.lazy is True

    def test_plain_annotation_is_single(self):
        owner = describe(Pet).relationship("owner")

        assert owner.target_type is Owner
        assert owner.cardinality is Cardinality.SINGLE
        assert owner.primary_key == "owner_id"
        assert str(owner) == "owner -> Owner.id"

    def test_reference_fields_default_to_none_and_skip_equality(self):
        a, b = Pet(pet_id=1), Pet(pet_id=1)
        a.owner = Owner(id=5)

        assert b.owner is None
        assert a == b

    def test_sequence_annotation_is_many(self):
        residents = describe(Kennel).relationship("residents")

        assert residents.target_type is Pet
        assert residents.cardinality is Cardinality.MANY

    def test_non_record_reference_is_rejected(self):
        with pytest.raises(TypeError):
            describe(BadReference)


class TestDescriptor:
    """Test descriptor construction and caching."""

    def test_descriptor_is_cached(self):
        assert describe(Owner) is describe(Owner)

    def test_rejects_non_dataclass(self):
        with pytest.raises(TypeError):
            describe(NotADataclass)

    def test_find_attribute(self):
        descriptor = describe(Owner)

        assert descriptor.find_attribute("id") == "id"
        assert descriptor.find_attribute("ID") == "id"
        assert descriptor.find_attribute("missing") is None

    def test_table_identifiers(self):
        assert Owner.table_name() == "owners.csv"
        assert Pet.table_name() == "pet.csv"
        assert table_identifier(Untitled) == "Untitled"


class TestValidationRule:
    """Test post-conversion validation."""

    def test_required_null_is_error(self):
        issues = ValidationRule().check("speed", None)
        assert issues == [(ErrorSeverity.ERROR, "Required property 'speed' is null")]

    def test_optional_null_is_fine(self):
        assert ValidationRule(required=False).check("speed", None) == []

    def test_range_violations_are_warnings(self):
        rule = ValidationRule(min_value=0, max_value=10)

        assert rule.check("speed", 5) == []
        assert rule.check("speed", -1)[0][0] is ErrorSeverity.WARNING
        assert "greater than maximum" in rule.check("speed", 11)[0][1]

    def test_pattern(self):
        rule = ValidationRule(pattern=r"^[A-Z]{3}$")

        assert rule.check("code", "ABC") == []
        assert rule.check("code", "abcd")[0][0] is ErrorSeverity.WARNING

    def test_custom_message(self):
        rule = ValidationRule(min_value=1, error_message="Level must be positive")
        assert rule.check("level", 0) == [(ErrorSeverity.WARNING, "Level must be positive")]

    def test_incomparable_values_are_skipped(self):
        assert ValidationRule(min_value=0).check("name", "text") == []


def test_ignored_field_keeps_default():
    assert Owner(id=1).notes == ""


def test_field_metadata_passthrough():
    f = column("X", metadata={"doc": "x coordinate"}, default=0)
    assert f.metadata["doc"] == "x coordinate"
    assert f.default == 0
