"""Tests for ALTER TABLE handling."""
from apiforge.models.diagnostic import DiagnosticType
from apiforge.sql.ddl_parser import extract, parse_ddl_to_schema


def test_alter_add_foreign_key():
    """ALTER TABLE ADD CONSTRAINT ... FOREIGN KEY attaches a named key."""
    tables = parse_ddl_to_schema("""
    CREATE TABLE customers (id INT PRIMARY KEY);
    CREATE TABLE orders (id INT PRIMARY KEY, customer_id INT);
    ALTER TABLE orders ADD CONSTRAINT fk_orders_customer
        FOREIGN KEY (customer_id) REFERENCES customers (id);
    """)
    orders = tables[1]
    assert len(orders.foreign_keys) == 1
    fk = orders.foreign_keys[0]
    assert fk.columns == ('customer_id',)
    assert fk.referenced_table == 'customers'
    assert fk.resolved is True


def test_alter_before_create():
    """An ALTER may precede the CREATE TABLE it modifies."""
    tables = parse_ddl_to_schema("""
    ALTER TABLE orders ADD CONSTRAINT fk_orders_customer
        FOREIGN KEY (customer_id) REFERENCES customers (id);
    CREATE TABLE orders (id INT PRIMARY KEY, customer_id INT);
    CREATE TABLE customers (id INT PRIMARY KEY);
    """)
    orders = tables[0]
    assert orders.foreign_keys[0].referenced_table == 'customers'


def test_alter_add_column():
    """ALTER TABLE ADD COLUMN appends a column."""
    tables = parse_ddl_to_schema("""
    CREATE TABLE t (id INT PRIMARY KEY);
    ALTER TABLE t ADD COLUMN note TEXT;
    """)
    assert [c.name for c in tables[0].columns] == ['id', 'note']
    assert tables[0].column('note').ordinal_position == 2


def test_alter_add_primary_key():
    """ALTER TABLE ADD PRIMARY KEY sets the key on a keyless table."""
    tables = parse_ddl_to_schema("""
    CREATE TABLE t (code VARCHAR(10), name TEXT);
    ALTER TABLE t ADD CONSTRAINT pk_t PRIMARY KEY (code);
    """)
    assert tables[0].primary_key == ('code',)
    assert tables[0].column('code').is_nullable is False


def test_alter_unknown_table_is_parse_error():
    """ALTER on a table that never appears is reported for that statement."""
    result = extract("""
    CREATE TABLE t (id INT PRIMARY KEY);
    ALTER TABLE missing ADD COLUMN note TEXT;
    """)
    assert len(result.tables) == 1
    assert len(result.diagnostics) == 1
    assert result.diagnostics[0].diagnostic_type == DiagnosticType.PARSE_ERROR
    assert 'missing' in result.diagnostics[0].message
