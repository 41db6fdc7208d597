"""Common test fixtures."""
# pylint: disable=redefined-outer-name
from pathlib import Path

import pytest

from apiforge.config.profiles import load_builtin_profiles
from apiforge.core.inference import infer
from apiforge.models.schema import ColumnSchema, ForeignKey, TableSchema
from apiforge.sql.ddl_parser import extract

SCENARIO_DDL = """
CREATE TABLE categories (id INTEGER PRIMARY KEY, name VARCHAR(100));
CREATE TABLE products (
    id INTEGER PRIMARY KEY,
    name VARCHAR(100) NOT NULL,
    category_id INTEGER REFERENCES categories(id)
);
CREATE TABLE tags (id INTEGER PRIMARY KEY, label VARCHAR(50));
CREATE TABLE product_tags (
    product_id INTEGER REFERENCES products(id),
    tag_id INTEGER REFERENCES tags(id),
    PRIMARY KEY (product_id, tag_id)
);
"""


@pytest.fixture
def fixtures_dir():
    """Fixture for the directory containing test data files."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def shop_ddl(fixtures_dir):
    """DDL exercising every relationship kind, ALTER and index forms."""
    return (fixtures_dir / "shop.sql").read_text(encoding="utf-8")


@pytest.fixture
def scenario_ddl():
    """Categories, products, tags and the product_tags junction table."""
    return SCENARIO_DDL


@pytest.fixture
def profiles():
    """Built-in target profiles."""
    return load_builtin_profiles()


@pytest.fixture
def schema_from_ddl():
    """Run extraction and inference on a DDL string."""
    def _schema(ddl, dialect="postgres"):
        result = extract(ddl, dialect=dialect)
        return infer(result.tables, result.sequences)
    return _schema


@pytest.fixture
def column_factory():
    """Factory to create ColumnSchema instances for testing."""
    def _make_column(
        name="id",
        data_type="INT",
        is_nullable=True,
        is_primary_key=False,
        is_unique=False,
        ordinal_position=1,
        **kwargs
    ):
        return ColumnSchema(
            name=name,
            data_type=data_type,
            is_nullable=is_nullable and not is_primary_key,
            is_primary_key=is_primary_key,
            is_unique=is_unique,
            ordinal_position=ordinal_position,
            **kwargs
        )
    return _make_column


@pytest.fixture
def fk_factory():
    """Factory to create resolved ForeignKey instances for testing."""
    def _make_fk(columns, referenced_table, referenced_columns=("id",), resolved=True, **kwargs):
        return ForeignKey(
            columns=tuple(columns),
            referenced_table=referenced_table,
            referenced_columns=tuple(referenced_columns),
            resolved=resolved,
            **kwargs
        )
    return _make_fk


@pytest.fixture
def table_factory(column_factory):
    """Factory to create TableSchema instances for testing.

    ``columns`` may hold column names (INT columns) or ColumnSchema objects.
    """
    def _make_table(
        table_name="test_table",
        columns=None,
        primary_key=("id",),
        foreign_keys=(),
        unique_constraints=(),
        indexes=(),
    ):
        if columns is None:
            columns = list(primary_key) or ["id"]
        built = []
        for i, col in enumerate(columns, start=1):
            if isinstance(col, str):
                col = column_factory(
                    name=col, is_primary_key=col in primary_key, ordinal_position=i
                )
            built.append(col)
        return TableSchema(
            table_name=table_name,
            columns=tuple(built),
            primary_key=tuple(primary_key),
            foreign_keys=tuple(foreign_keys),
            unique_constraints=tuple(tuple(u) for u in unique_constraints),
            indexes=tuple(indexes),
        )
    return _make_table
