"""Tests for SQL type mapping."""
import pytest
from sqlglot import exp

from apiforge.mapping.types import SQL_CATEGORIES, map_type, sql_category


def test_every_sqlglot_type_maps_for_every_profile(profiles):
    """Type mapping never raises for any type the extractor can report."""
    names = [t.name for t in exp.DataType.Type] + ["TEXT[]", "INT[]", "MY_ENUM", ""]
    for key in profiles.keys():
        profile = profiles.get(key)
        for name in names:
            for nullable in (False, True):
                target = map_type(name, precision=10, scale=2, length=20,
                                  nullable=nullable, profile=profile)
                assert target.name
                assert target.base


def test_every_category_mapped_by_every_profile(profiles):
    """Built-in profiles cover every category except decimal and array."""
    categories = set(SQL_CATEGORIES.values()) - {'decimal'}
    for key in profiles.keys():
        profile = profiles.get(key)
        missing = categories - set(profile.types)
        assert not missing, f"{key} lacks {sorted(missing)}"


def test_unknown_type_falls_back(profiles):
    """Unknown types use the profile's fallback type."""
    java = profiles.get("java:spring-boot")
    target = map_type("GEOGRAPHY_POINT", profile=java)
    assert target.fallback is True
    assert target.base == java.fallback_type


def test_decimal_fixed_point_keeps_precision(profiles):
    """Fixed-point targets carry precision and scale."""
    target = map_type("DECIMAL", precision=10, scale=2, profile=profiles.get("java:spring-boot"))
    assert target.base == "BigDecimal"
    assert (target.precision, target.scale) == (10, 2)
    assert target.degraded is False
    assert target.imports == ("java.math.BigDecimal",)


def test_decimal_degrades_explicitly(profiles):
    """Targets without fixed point degrade as their profile declares."""
    ts = map_type("NUMERIC", precision=10, scale=2, profile=profiles.get("typescript:nestjs"))
    assert ts.base == "number"
    assert ts.degraded is True
    assert ts.precision is None and ts.scale is None

    php = profiles.get("php:laravel")
    target = map_type("DECIMAL", precision=8, scale=2, profile=php)
    assert target.degraded is True
    assert target.base == php.types["string"]


def test_java_nullable_wrappers(profiles):
    """Java boxes nullable primitives."""
    java = profiles.get("java:spring-boot")
    assert map_type("INT", nullable=False, profile=java).name == "int"
    assert map_type("INT", nullable=True, profile=java).name == "Integer"
    assert map_type("VARCHAR", nullable=True, profile=java).name == "String"


@pytest.mark.parametrize("target,expected", [
    ("python:fastapi", "int | None"),
    ("typescript:nestjs", "number | null"),
    ("rust:axum", "Option<i32>"),
])
def test_nullable_format_styles(profiles, target, expected):
    """Format-style nullability wraps the base type."""
    assert map_type("INTEGER", nullable=True, profile=profiles.get(target)).name == expected


def test_array_mapping(profiles):
    """Arrays map through the list format with boxed element types."""
    java = profiles.get("java:spring-boot")
    target = map_type("INT[]", profile=java)
    assert target.is_list is True
    assert target.base == "List<Integer>"
    assert "java.util.List" in target.imports

    rust = map_type("TEXT[]", profile=profiles.get("rust:axum"))
    assert rust.base == "Vec<String>"


def test_length_only_for_character_types(profiles):
    """Length is dropped for non-character types."""
    python = profiles.get("python:fastapi")
    assert map_type("VARCHAR", length=50, profile=python).length == 50
    assert map_type("INT", length=50, profile=python).length is None


def test_sql_category():
    """Canonical names classify into categories."""
    assert sql_category("BIGSERIAL") == "bigint"
    assert sql_category("timestamptz") == "timestamptz"
    assert sql_category("UUID[]") == "array"
    assert sql_category("CHARACTER VARYING(20)") is None
    assert sql_category("") is None
