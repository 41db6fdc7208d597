"""Tests for DDL parser."""
from unittest.mock import patch

from apiforge.models.diagnostic import DiagnosticType, ParseError
from apiforge.models.schema import ForeignKeyAction
from apiforge.sql import ddl_parser
from apiforge.sql.ddl_parser import (
    extract,
    parse_ddl_to_schema,
    register_dialect_preprocessor,
)


def test_parse_create_table_simple():
    """Test parsing a simple CREATE TABLE statement."""
    ddl = """
    CREATE TABLE users (
        user_id INTEGER NOT NULL,
        name VARCHAR(100)
    )
    """
    tables = parse_ddl_to_schema(ddl)

    assert len(tables) == 1
    assert tables[0].table_name == 'users'
    assert len(tables[0].columns) == 2
    assert tables[0].columns[0].name == 'user_id'
    assert tables[0].columns[0].is_nullable is False
    assert tables[0].columns[1].name == 'name'
    assert tables[0].columns[1].is_nullable is True


def test_column_order_and_ordinal_positions():
    """Columns keep declaration order with 1-based positions."""
    tables = parse_ddl_to_schema("CREATE TABLE t (c INT, a INT, b INT)")
    assert [c.name for c in tables[0].columns] == ['c', 'a', 'b']
    assert [c.ordinal_position for c in tables[0].columns] == [1, 2, 3]


def test_type_parameters():
    """Character types carry a length, numeric types precision and scale."""
    tables = parse_ddl_to_schema("""
    CREATE TABLE prices (
        code VARCHAR(20),
        amount DECIMAL(10, 2),
        rate NUMERIC(5)
    )
    """)
    code, amount, rate = tables[0].columns
    assert code.data_type == 'VARCHAR'
    assert code.length == 20
    assert code.precision is None
    assert amount.data_type == 'DECIMAL'
    assert (amount.precision, amount.scale) == (10, 2)
    assert amount.length is None
    assert rate.precision == 5
    assert rate.scale is None


def test_array_type_name():
    """Arrays are reported as ELEMENT[]."""
    tables = parse_ddl_to_schema("CREATE TABLE t (id INT, labels TEXT[])")
    assert tables[0].column('labels').data_type == 'TEXT[]'


def test_inline_constraints():
    """PRIMARY KEY, UNIQUE and DEFAULT attach to their column."""
    tables = parse_ddl_to_schema("""
    CREATE TABLE accounts (
        id INTEGER PRIMARY KEY,
        email VARCHAR(255) UNIQUE NOT NULL,
        active BOOLEAN DEFAULT TRUE
    )
    """)
    table = tables[0]
    assert table.primary_key == ('id',)
    assert table.column('id').is_primary_key is True
    assert table.column('id').is_nullable is False
    assert table.column('email').is_unique is True
    assert table.column('active').default == 'TRUE'


def test_table_level_composite_primary_key():
    """A table-level PRIMARY KEY marks every listed column non-nullable."""
    tables = parse_ddl_to_schema("""
    CREATE TABLE memberships (
        group_id INT,
        user_id INT,
        PRIMARY KEY (group_id, user_id)
    )
    """)
    table = tables[0]
    assert table.primary_key == ('group_id', 'user_id')
    assert all(c.is_primary_key and not c.is_nullable for c in table.columns)


def test_table_level_unique_constraint():
    """Multi-column UNIQUE becomes a unique constraint, single-column marks the column."""
    tables = parse_ddl_to_schema("""
    CREATE TABLE slots (
        id INT PRIMARY KEY,
        room INT,
        starts_at TIMESTAMP,
        code VARCHAR(10),
        CONSTRAINT uq_slot UNIQUE (room, starts_at),
        UNIQUE (code)
    )
    """)
    table = tables[0]
    assert ('room', 'starts_at') in table.unique_constraints
    assert table.column('code').is_unique is True


def test_inline_foreign_key_with_actions():
    """Inline REFERENCES carries target columns and ON DELETE action."""
    tables = parse_ddl_to_schema("""
    CREATE TABLE authors (id INT PRIMARY KEY);
    CREATE TABLE books (
        id INT PRIMARY KEY,
        author_id INT REFERENCES authors(id) ON DELETE CASCADE
    );
    """)
    books = tables[1]
    assert len(books.foreign_keys) == 1
    fk = books.foreign_keys[0]
    assert fk.columns == ('author_id',)
    assert fk.referenced_table == 'authors'
    assert fk.referenced_columns == ('id',)
    assert fk.on_delete == ForeignKeyAction.CASCADE
    assert fk.resolved is True


def test_named_table_level_foreign_key():
    """CONSTRAINT name FOREIGN KEY keeps its name."""
    tables = parse_ddl_to_schema("""
    CREATE TABLE authors (id INT PRIMARY KEY);
    CREATE TABLE books (
        id INT PRIMARY KEY,
        author_id INT,
        CONSTRAINT fk_books_author FOREIGN KEY (author_id) REFERENCES authors (id) ON DELETE SET NULL
    );
    """)
    fk = tables[1].foreign_keys[0]
    assert fk.name == 'fk_books_author'
    assert fk.on_delete == ForeignKeyAction.SET_NULL


def test_omitted_referenced_columns_default_to_primary_key():
    """REFERENCES without a column list points at the referenced primary key."""
    tables = parse_ddl_to_schema("""
    CREATE TABLE authors (author_key INT PRIMARY KEY);
    CREATE TABLE books (id INT PRIMARY KEY, author_key INT REFERENCES authors);
    """)
    assert tables[1].foreign_keys[0].referenced_columns == ('author_key',)


def test_forward_reference_resolved_in_second_pass():
    """A table may reference another declared later."""
    tables = parse_ddl_to_schema("""
    CREATE TABLE books (id INT PRIMARY KEY, author_id INT REFERENCES authors(id));
    CREATE TABLE authors (id INT PRIMARY KEY);
    """)
    assert tables[0].foreign_keys[0].resolved is True


def test_forward_declaration_independence():
    """Reordering declarations yields the same tables."""
    forward = """
    CREATE TABLE books (id INT PRIMARY KEY, author_id INT NOT NULL REFERENCES authors(id));
    CREATE TABLE authors (id INT PRIMARY KEY, name TEXT);
    """
    backward = """
    CREATE TABLE authors (id INT PRIMARY KEY, name TEXT);
    CREATE TABLE books (id INT PRIMARY KEY, author_id INT NOT NULL REFERENCES authors(id));
    """
    first = {t.table_name: t for t in parse_ddl_to_schema(forward)}
    second = {t.table_name: t for t in parse_ddl_to_schema(backward)}
    assert first == second


def test_referenced_table_name_canonicalised():
    """References are matched case-insensitively and use the declared spelling."""
    tables = parse_ddl_to_schema("""
    CREATE TABLE Authors (id INT PRIMARY KEY);
    CREATE TABLE books (id INT PRIMARY KEY, author_id INT REFERENCES AUTHORS(id));
    """)
    assert tables[1].foreign_keys[0].referenced_table == 'Authors'


def test_unresolved_foreign_key_warns():
    """A reference to a table that never appears stays unresolved."""
    result = extract("CREATE TABLE books (id INT PRIMARY KEY, shelf_id INT REFERENCES shelves(id))")
    fk = result.tables[0].foreign_keys[0]
    assert fk.resolved is False
    assert len(result.diagnostics) == 1
    assert result.diagnostics[0].diagnostic_type == DiagnosticType.SCHEMA_WARNING


def test_malformed_statement_does_not_abort_batch():
    """One broken statement becomes a ParseError; the others still parse."""
    result = extract("""
    CREATE TABLE good_one (id INT PRIMARY KEY);
    CREATE TABLE broken (id INT PRIMARY KEY;
    CREATE TABLE good_two (id INT PRIMARY KEY);
    """)
    assert [t.table_name for t in result.tables] == ['good_one', 'good_two']
    errors = [d for d in result.diagnostics if isinstance(d, ParseError)]
    assert len(errors) == 1
    assert 'broken' in errors[0].statement
    assert errors[0].reason


def test_duplicate_table_is_parse_error():
    """The first declaration of a table wins."""
    result = extract("""
    CREATE TABLE t (id INT PRIMARY KEY, a INT);
    CREATE TABLE t (id INT PRIMARY KEY);
    """)
    assert len(result.tables) == 1
    assert len(result.tables[0].columns) == 2
    assert result.diagnostics[0].diagnostic_type == DiagnosticType.PARSE_ERROR


def test_create_index_attached_to_table():
    """CREATE UNIQUE INDEX adds a unique column set to its table."""
    result = extract("""
    CREATE UNIQUE INDEX ux_users_email ON users (email);
    CREATE INDEX ix_users_name ON users (name);
    CREATE TABLE users (id INT PRIMARY KEY, email VARCHAR(100), name VARCHAR(100));
    """)
    users = result.tables[0]
    assert len(users.indexes) == 2
    unique = [i for i in users.indexes if i.unique]
    assert unique[0].columns == ('email',)
    assert frozenset(['email']) in users.unique_column_sets()


def test_index_on_unknown_table_is_parse_error():
    """An index on a table that never appears is reported."""
    result = extract("""
    CREATE TABLE users (id INT PRIMARY KEY);
    CREATE INDEX ix_orders_user ON orders (user_id);
    """)
    assert len(result.tables) == 1
    assert result.diagnostics[0].diagnostic_type == DiagnosticType.PARSE_ERROR


def test_create_sequence():
    """CREATE SEQUENCE yields start and increment."""
    result = extract("""
    CREATE SEQUENCE order_seq START WITH 100 INCREMENT BY 5;
    CREATE SEQUENCE plain_seq;
    CREATE TABLE t (id INT PRIMARY KEY);
    """)
    assert [(s.name, s.start, s.increment) for s in result.sequences] == [
        ('order_seq', 100, 5),
        ('plain_seq', 1, 1),
    ]


def test_non_structural_statements_skipped():
    """Inserts, extensions and comments are ignored without diagnostics."""
    result = extract("""
    CREATE EXTENSION IF NOT EXISTS "uuid-ossp";
    SET search_path TO public;
    CREATE TABLE t (id INT PRIMARY KEY);
    INSERT INTO t (id) VALUES (1);
    COMMENT ON TABLE t IS 'a table';
    DROP TABLE IF EXISTS old_t;
    """)
    assert len(result.tables) == 1
    assert result.diagnostics == []


def test_schema_qualified_table():
    """Schema qualifiers are recorded separately and ignored for resolution."""
    tables = parse_ddl_to_schema("""
    CREATE TABLE sales.customers (id INT PRIMARY KEY);
    CREATE TABLE sales.orders (id INT PRIMARY KEY, customer_id INT REFERENCES sales.customers(id));
    """)
    assert tables[0].table_name == 'customers'
    assert tables[0].schema_name == 'sales'
    assert tables[1].foreign_keys[0].resolved is True


def test_mysql_table_options_stripped():
    """MySQL table options after the column list are tolerated."""
    ddl = """
    CREATE TABLE users (
        id INT NOT NULL AUTO_INCREMENT,
        name VARCHAR(50),
        PRIMARY KEY (id)
    ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;
    """
    result = extract(ddl, dialect='mysql')
    assert result.diagnostics == []
    users = result.tables[0]
    assert users.primary_key == ('id',)
    assert users.column('id').auto_increment is True


def test_register_dialect_preprocessor():
    """Custom preprocessors run before parsing for their dialect only."""
    def strip_marker(sql):
        return sql.replace('/*+marker*/', '')

    register_dialect_preprocessor('sqlite', strip_marker)
    result = extract("CREATE TABLE t (id INT PRIMARY KEY) /*+marker*/", dialect='sqlite')
    assert len(result.tables) == 1


def test_empty_input():
    """No statements, no tables, no errors."""
    result = extract("")
    assert result.tables == []
    assert result.diagnostics == []


def test_user_defined_column_type():
    """Enum types declared with CREATE TYPE keep their declared name."""
    result = extract("""
    CREATE TYPE mood AS ENUM ('happy', 'sad');
    CREATE TABLE a (id INT PRIMARY KEY);
    CREATE TABLE person (id INT PRIMARY KEY, m mood);
    """)
    assert result.diagnostics == []
    assert [t.table_name for t in result.tables] == ['a', 'person']
    column = result.tables[1].column('m')
    assert column.data_type == 'MOOD'
    assert column.length is None


def test_unexpected_statement_shape_is_isolated():
    """A statement the extractor cannot handle only fails itself."""
    ddl = """
    CREATE TABLE a (id INT PRIMARY KEY);
    CREATE TABLE b (id INT PRIMARY KEY);
    """
    real = ddl_parser._handle_create_table

    def flaky(stmt):
        builder = real(stmt)
        if builder.name == 'a':
            raise AttributeError("'Identifier' object has no attribute 'upper'")
        return builder

    with patch.object(ddl_parser, '_handle_create_table', side_effect=flaky):
        result = extract(ddl)

    assert [t.table_name for t in result.tables] == ['b']
    assert len(result.diagnostics) == 1
    assert result.diagnostics[0].diagnostic_type == DiagnosticType.PARSE_ERROR


def test_type_parameters_split_by_kind():
    """Numeric parameters are precision/scale; any other first parameter is the length."""
    result = extract("""
    CREATE TABLE tokens (
        id INT PRIMARY KEY,
        code CHAR(2),
        digest VARBINARY(16),
        amount NUMERIC(12, 4)
    );
    """, dialect="mysql")
    table = result.tables[0]
    assert table.column('code').length == 2
    assert table.column('digest').length == 16
    amount = table.column('amount')
    assert (amount.length, amount.precision, amount.scale) == (None, 12, 4)
