"""DDL (Data Definition Language) parser producing the structural schema model."""
import logging
import re
from typing import Callable, Dict, List, Optional, Tuple

import sqlglot
from pydantic import BaseModel
from sqlglot import exp
from sqlglot.errors import ParseError as SQLParseError
from sqlglot.errors import TokenError

from apiforge.models.diagnostic import (
    Diagnostic,
    DiagnosticType,
    Severity,
    parse_error,
)
from apiforge.models.schema import (
    ColumnSchema,
    ForeignKey,
    ForeignKeyAction,
    IndexSchema,
    SequenceSchema,
    TableSchema,
)
from apiforge.sql.splitter import split_statements

logger = logging.getLogger(__name__)

# Registry of dialect-specific preprocessors
# Key: dialect name (e.g., 'mysql', 'postgres', etc.)
# Value: List of preprocessor functions
_DIALECT_PREPROCESSORS: Dict[str, List[Callable[[str], str]]] = {}


def register_dialect_preprocessor(dialect: str, func: Callable[[str], str]) -> None:
    """Register a dialect-specific statement preprocessor.

    Preprocessors run on each statement before sqlglot parsing and rewrite
    dialect noise that carries no structural information into a form sqlglot
    accepts.

    Args:
        dialect: SQL dialect name (e.g., 'mysql')
        func: Function that takes a statement and returns the rewritten statement
    """
    if dialect not in _DIALECT_PREPROCESSORS:
        _DIALECT_PREPROCESSORS[dialect] = []
    _DIALECT_PREPROCESSORS[dialect].append(func)
    logger.debug("Registered preprocessor for dialect '%s': %s", dialect, func.__name__)


def _preprocess_sql(sql: str, dialect: str) -> str:
    """Apply dialect-specific preprocessors to one statement."""
    if dialect not in _DIALECT_PREPROCESSORS:
        return sql

    original_sql = sql
    for preprocessor in _DIALECT_PREPROCESSORS[dialect]:
        sql = preprocessor(sql)

    if sql != original_sql:
        logger.debug("Statement was modified by preprocessor for dialect '%s'", dialect)

    return sql


_TABLE_OPTIONS = re.compile(
    r"\)\s*((ENGINE|DEFAULT\s+CHARSET|CHARSET|CHARACTER\s+SET|COLLATE|AUTO_INCREMENT|"
    r"ROW_FORMAT|COMMENT)\b[^)]*)$",
    re.IGNORECASE | re.DOTALL
)


def _strip_mysql_table_options(sql: str) -> str:
    """Drop table options following the closing parenthesis of CREATE TABLE.

    Examples:
        CREATE TABLE t (id INT) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 -> CREATE TABLE t (id INT)
    """
    if not sql.lstrip().upper().startswith('CREATE'):
        return sql
    return _TABLE_OPTIONS.sub(')', sql.rstrip())


register_dialect_preprocessor('mysql', _strip_mysql_table_options)
register_dialect_preprocessor('mariadb', _strip_mysql_table_options)

_ON_DELETE = re.compile(
    r"ON\s+DELETE\s+(CASCADE|SET\s+NULL|SET\s+DEFAULT|RESTRICT|NO\s+ACTION)",
    re.IGNORECASE
)
_ON_UPDATE = re.compile(
    r"ON\s+UPDATE\s+(CASCADE|SET\s+NULL|SET\s+DEFAULT|RESTRICT|NO\s+ACTION)",
    re.IGNORECASE
)
_CREATE_SEQUENCE = re.compile(
    r"^CREATE\s+SEQUENCE\s+(?:IF\s+NOT\s+EXISTS\s+)?([\w.\"`]+)(.*)$",
    re.IGNORECASE | re.DOTALL
)
_SEQUENCE_START = re.compile(r"START\s+(?:WITH\s+)?(-?\d+)", re.IGNORECASE)
_SEQUENCE_INCREMENT = re.compile(r"INCREMENT\s+(?:BY\s+)?(-?\d+)", re.IGNORECASE)

# Statements that carry no table structure; skipped before sqlglot sees them
_IGNORED_STATEMENT = re.compile(
    r"^(CREATE\s+(OR\s+REPLACE\s+)?(FUNCTION|PROCEDURE|TRIGGER|TYPE|EXTENSION|"
    r"(MATERIALIZED\s+)?VIEW|SCHEMA|DOMAIN|ROLE|USER|DATABASE)|COMMENT\s+ON|GRANT|"
    r"REVOKE|SET|INSERT|UPDATE|DELETE|DROP|BEGIN|COMMIT|START|USE|SELECT|DO)\b",
    re.IGNORECASE
)
_LEADING_COMMENTS = re.compile(r"^(\s*(--[^\n]*(\n|$)|/\*.*?\*/))*\s*", re.DOTALL)

_NUMERIC_TYPES = {
    'DECIMAL', 'NUMERIC', 'NUMBER', 'MONEY', 'SMALLMONEY', 'BIGDECIMAL',
    'DECIMAL32', 'DECIMAL64', 'DECIMAL128', 'DECIMAL256', 'FLOAT', 'DOUBLE',
}


class ExtractionResult(BaseModel):
    """Tables, sequences and statement-level diagnostics from one DDL text."""

    tables: List[TableSchema] = []
    sequences: List[SequenceSchema] = []
    diagnostics: List[Diagnostic] = []


class _TableBuilder:  # pylint: disable=too-few-public-methods
    """Mutable accumulator for one table while statements are processed."""

    def __init__(self, name: str, schema_name: Optional[str]):
        self.name = name
        self.schema_name = schema_name
        self.columns: List[dict] = []
        self.primary_key: List[str] = []
        self.foreign_keys: List[ForeignKey] = []
        self.unique_constraints: List[Tuple[str, ...]] = []
        self.indexes: List[IndexSchema] = []

    def column(self, name: str) -> Optional[dict]:
        for col in self.columns:
            if col['name'].lower() == name.lower():
                return col
        return None

    def add_column(self, col: dict) -> None:
        col['ordinal_position'] = len(self.columns) + 1
        self.columns.append(col)
        if col.get('is_primary_key') and col['name'] not in self.primary_key:
            self.primary_key.append(col['name'])

    def set_primary_key(self, names: List[str]) -> None:
        self.primary_key = []
        for name in names:
            col = self.column(name)
            if col is None:
                raise ValueError(f"PRIMARY KEY references unknown column '{name}'")
            col['is_primary_key'] = True
            col['is_nullable'] = False
            self.primary_key.append(col['name'])

    def add_unique(self, names: List[str]) -> None:
        resolved = []
        for name in names:
            col = self.column(name)
            if col is None:
                raise ValueError(f"UNIQUE references unknown column '{name}'")
            resolved.append(col['name'])
        if len(resolved) == 1:
            self.column(resolved[0])['is_unique'] = True
        else:
            self.unique_constraints.append(tuple(resolved))

    def add_foreign_key(self, fk: ForeignKey) -> None:
        columns = []
        for name in fk.columns:
            col = self.column(name)
            if col is None:
                raise ValueError(f"FOREIGN KEY references unknown column '{name}'")
            columns.append(col['name'])
        self.foreign_keys.append(fk.model_copy(update={'columns': tuple(columns)}))

    def build(self) -> TableSchema:
        pk = {name.lower() for name in self.primary_key}
        columns = []
        for col in self.columns:
            if col['name'].lower() in pk:
                col = {**col, 'is_primary_key': True, 'is_nullable': False}
            columns.append(ColumnSchema(**col))
        return TableSchema(
            table_name=self.name,
            schema_name=self.schema_name,
            columns=tuple(columns),
            primary_key=tuple(self.primary_key),
            foreign_keys=tuple(self.foreign_keys),
            unique_constraints=tuple(self.unique_constraints),
            indexes=tuple(self.indexes),
        )


def extract(ddl_sql: str, dialect: str = 'postgres') -> ExtractionResult:
    """Parse DDL text into tables, sequences and diagnostics.

    Supports:
    - CREATE TABLE (columns, inline and table-level constraints)
    - CREATE [UNIQUE] INDEX
    - CREATE SEQUENCE
    - ALTER TABLE ADD [CONSTRAINT] FOREIGN KEY / PRIMARY KEY / UNIQUE
    - ALTER TABLE ADD COLUMN

    Each statement is parsed independently; a malformed statement becomes a
    ParseError diagnostic and extraction continues with the next one. ALTER
    and CREATE INDEX statements, and every foreign key, are resolved in a
    second pass once all tables are known, so declaration order does not
    matter.

    Args:
        ddl_sql: DDL SQL text (one or more statements)
        dialect: SQL dialect for parsing (default: 'postgres')

    Returns:
        ExtractionResult with tables in declaration order.
    """
    builders: Dict[str, _TableBuilder] = {}
    sequences: List[SequenceSchema] = []
    diagnostics: List[Diagnostic] = []
    pending_alters: List[Tuple[str, exp.Alter]] = []
    pending_indexes: List[Tuple[str, str, IndexSchema]] = []

    for statement in split_statements(ddl_sql or ''):
        code = _LEADING_COMMENTS.sub('', statement, count=1)

        sequence = _match_sequence(code)
        if sequence:
            sequences.append(sequence)
            continue

        if _IGNORED_STATEMENT.match(code):
            logger.debug("Skipping non-structural statement: %s", code.split('\n', 1)[0])
            continue

        try:
            stmt = sqlglot.parse_one(_preprocess_sql(code, dialect), read=dialect)
        except (SQLParseError, TokenError) as e:
            diagnostics.append(parse_error(statement, _first_line(str(e))))
            continue

        try:
            if isinstance(stmt, exp.Create):
                kind = (stmt.args.get('kind') or '').upper()
                if kind == 'TABLE':
                    builder = _handle_create_table(stmt)
                    if builder.name.lower() in builders:
                        diagnostics.append(parse_error(
                            statement, f"table '{builder.name}' is already declared"
                        ))
                    else:
                        builders[builder.name.lower()] = builder
                elif kind == 'INDEX':
                    table_name, index = _handle_create_index(stmt)
                    pending_indexes.append((statement, table_name, index))
                else:
                    logger.debug("Skipping CREATE %s statement", kind or '?')

            elif isinstance(stmt, exp.Alter):
                pending_alters.append((statement, stmt))

            else:
                logger.debug("Skipping unsupported statement type: %s", type(stmt).__name__)

        except (AttributeError, ValueError, TypeError) as e:
            diagnostics.append(parse_error(statement, str(e)))

    # Second pass: statements that may refer to tables declared later
    for statement, stmt in pending_alters:
        try:
            _handle_alter_table(stmt, builders)
        except (AttributeError, ValueError, TypeError) as e:
            diagnostics.append(parse_error(statement, str(e)))

    for statement, table_name, index in pending_indexes:
        builder = builders.get(table_name.lower())
        if builder is None:
            diagnostics.append(parse_error(
                statement, f"index references unknown table '{table_name}'"
            ))
            continue
        builder.indexes.append(index)

    tables = [builder.build() for builder in builders.values()]
    tables = _resolve_foreign_keys(tables, diagnostics)

    logger.debug(
        "Extracted %d tables, %d sequences, %d diagnostics",
        len(tables), len(sequences), len(diagnostics)
    )
    return ExtractionResult(tables=tables, sequences=sequences, diagnostics=diagnostics)


def parse_ddl_to_schema(ddl_sql: str, dialect: str = 'postgres') -> List[TableSchema]:
    """Parse DDL and return only the tables, dropping diagnostics."""
    return extract(ddl_sql, dialect=dialect).tables


def _first_line(message: str) -> str:
    return message.strip().split('\n', 1)[0]


def _match_sequence(code: str) -> Optional[SequenceSchema]:
    match = _CREATE_SEQUENCE.match(code.strip())
    if not match:
        return None
    name = match.group(1).split('.')[-1].strip('"`')
    options = match.group(2)
    start = _SEQUENCE_START.search(options)
    increment = _SEQUENCE_INCREMENT.search(options)
    return SequenceSchema(
        name=name,
        start=int(start.group(1)) if start else 1,
        increment=int(increment.group(1)) if increment else 1,
    )


def _identifier_name(node: exp.Expression) -> str:
    """Name of the first identifier in ``node`` (Identifier, Column, Ordered...)."""
    if isinstance(node, exp.Identifier):
        return node.name
    ident = node.find(exp.Identifier)
    if ident is None:
        return node.name
    return ident.name


def _column_list(node: Optional[exp.Expression]) -> List[str]:
    """Column names from a parenthesised column list."""
    if node is None:
        return []
    if isinstance(node, exp.Schema):
        return [_identifier_name(e) for e in node.expressions]
    return [_identifier_name(e) for e in node.expressions] if node.expressions else []


def _table_name(table: exp.Table) -> Tuple[str, Optional[str]]:
    """Extract table name and optional schema qualifier."""
    name = table.name
    if not name:
        raise ValueError("missing table name")
    return name, table.db or None


def _handle_create_table(stmt: exp.Create) -> _TableBuilder:
    """Extract a table builder from a CREATE TABLE statement."""
    schema_def = stmt.args.get('this')
    if not isinstance(schema_def, exp.Schema):
        raise ValueError("CREATE TABLE without a column list is not supported")

    table_expr = schema_def.this
    if not isinstance(table_expr, exp.Table):
        raise ValueError("no table definition found in CREATE TABLE")

    name, schema_name = _table_name(table_expr)
    builder = _TableBuilder(name, schema_name)

    # Columns first so table-level constraints can resolve against them
    for expr in schema_def.expressions:
        if isinstance(expr, exp.ColumnDef):
            _add_column(builder, expr)

    if not builder.columns:
        raise ValueError(f"CREATE TABLE {name} has no columns")

    for expr in schema_def.expressions:
        if not isinstance(expr, exp.ColumnDef):
            _apply_table_constraint(builder, expr)

    return builder


def _add_column(builder: _TableBuilder, col_expr: exp.ColumnDef) -> None:
    """Add a column and its inline constraints to the builder."""
    col = _extract_column(col_expr)
    builder.add_column(col)

    for constraint in col_expr.constraints:
        kind = constraint.kind if isinstance(constraint, exp.ColumnConstraint) else constraint
        if isinstance(kind, exp.Reference):
            builder.add_foreign_key(_foreign_key_from_reference(kind, [col['name']]))


def _extract_column(col_expr: exp.ColumnDef) -> dict:
    """Extract column attributes from a ColumnDef expression."""
    col_name = col_expr.name
    if not col_name:
        raise ValueError("column definition without a name")

    data_type, length, precision, scale = _extract_type(col_expr.args.get('kind'))

    col = {
        'name': col_name,
        'data_type': data_type,
        'is_nullable': True,
        'is_primary_key': False,
        'is_unique': False,
        'default': None,
        'length': length,
        'precision': precision,
        'scale': scale,
        'auto_increment': 'SERIAL' in data_type,
    }

    for constraint in col_expr.constraints:
        kind = constraint.kind if isinstance(constraint, exp.ColumnConstraint) else constraint
        if isinstance(kind, exp.NotNullColumnConstraint):
            # "NULL" is parsed as NotNull with allow_null set
            col['is_nullable'] = bool(kind.args.get('allow_null'))
        elif isinstance(kind, exp.PrimaryKeyColumnConstraint):
            col['is_primary_key'] = True
            col['is_nullable'] = False
        elif isinstance(kind, exp.UniqueColumnConstraint):
            col['is_unique'] = True
        elif isinstance(kind, exp.DefaultColumnConstraint):
            col['default'] = kind.this.sql() if kind.this is not None else None
        elif isinstance(kind, (exp.AutoIncrementColumnConstraint,
                               exp.GeneratedAsIdentityColumnConstraint)):
            col['auto_increment'] = True

    return col


def _extract_type(kind: Optional[exp.DataType]) -> Tuple[str, Optional[int], Optional[int], Optional[int]]:
    """Return (canonical type name, length, precision, scale)."""
    if kind is None:
        return 'TEXT', None, None, None

    type_enum = kind.this
    if not isinstance(type_enum, exp.DataType.Type):
        return kind.sql().upper(), None, None, None

    if type_enum == exp.DataType.Type.ARRAY:
        element = kind.find(exp.DataType) if not kind.expressions else kind.expressions[0]
        if isinstance(element, exp.DataType) and element is not kind:
            element_name = _extract_type(element)[0]
        else:
            element_name = 'TEXT'
        return f"{element_name}[]", None, None, None

    if type_enum == exp.DataType.Type.USERDEFINED:
        # Identifier on current sqlglot, plain str on older releases
        user_type = kind.args.get('kind')
        if isinstance(user_type, exp.Expression):
            user_type = user_type.name
        return (user_type or kind.sql()).upper(), None, None, None

    name = type_enum.name
    params = []
    for param in kind.expressions:
        try:
            params.append(int(param.name))
        except (TypeError, ValueError):
            # Non-numeric argument (e.g. ENUM values)
            params = []
            break

    length = precision = scale = None
    if params:
        if name in _NUMERIC_TYPES:
            precision = params[0]
            scale = params[1] if len(params) > 1 else None
        else:
            length = params[0]

    return name, length, precision, scale


def _foreign_key_from_reference(
    reference: exp.Reference,
    columns: List[str],
    name: Optional[str] = None,
) -> ForeignKey:
    """Build a ForeignKey from a REFERENCES clause."""
    table = reference.find(exp.Table)
    if table is None:
        raise ValueError("REFERENCES clause without a table")
    target, _ = _table_name(table)

    target_columns = []
    if isinstance(reference.this, exp.Schema):
        target_columns = _column_list(reference.this)

    text = reference.sql()
    delete = _ON_DELETE.search(text)
    update = _ON_UPDATE.search(text)

    return ForeignKey(
        name=name,
        columns=tuple(columns),
        referenced_table=target,
        referenced_columns=tuple(target_columns),
        on_delete=ForeignKeyAction.parse(delete.group(1) if delete else None),
        on_update=ForeignKeyAction.parse(update.group(1) if update else None),
    )


def _foreign_key_from_constraint(fk_expr: exp.ForeignKey, name: Optional[str]) -> ForeignKey:
    """Build a ForeignKey from a table-level FOREIGN KEY constraint."""
    reference = fk_expr.args.get('reference')
    if reference is None:
        raise ValueError("FOREIGN KEY without REFERENCES")
    columns = [_identifier_name(e) for e in fk_expr.expressions]
    fk = _foreign_key_from_reference(reference, columns, name=name)

    # ON DELETE may hang off the ForeignKey rather than the Reference
    text = fk_expr.sql()
    delete = _ON_DELETE.search(text)
    update = _ON_UPDATE.search(text)
    return fk.model_copy(update={
        'on_delete': ForeignKeyAction.parse(delete.group(1) if delete else None),
        'on_update': ForeignKeyAction.parse(update.group(1) if update else None),
    })


def _apply_table_constraint(builder: _TableBuilder, expr: exp.Expression,
                            name: Optional[str] = None) -> None:
    """Apply a table-level constraint (PK, FK, UNIQUE, INDEX) to the builder."""
    if isinstance(expr, exp.Constraint):
        constraint_name = expr.name or None
        for inner in expr.expressions:
            _apply_table_constraint(builder, inner, name=constraint_name)

    elif isinstance(expr, exp.PrimaryKey):
        builder.set_primary_key([_identifier_name(e) for e in expr.expressions])

    elif isinstance(expr, exp.ForeignKey):
        builder.add_foreign_key(_foreign_key_from_constraint(expr, name))

    elif isinstance(expr, exp.UniqueColumnConstraint):
        columns = _column_list(expr.this) if isinstance(expr.this, exp.Schema) else []
        if columns:
            builder.add_unique(columns)

    elif isinstance(expr, exp.IndexColumnConstraint):
        columns = [_identifier_name(e) for e in expr.expressions]
        if columns:
            builder.indexes.append(IndexSchema(
                name=expr.name or None, columns=tuple(columns), unique=False
            ))

    else:
        logger.debug("Ignoring table constraint: %s", type(expr).__name__)


def _handle_create_index(stmt: exp.Create) -> Tuple[str, IndexSchema]:
    """Extract (table name, index) from CREATE INDEX."""
    index = stmt.this
    if not isinstance(index, exp.Index):
        raise ValueError("CREATE INDEX without an index definition")

    table = index.args.get('table') or stmt.find(exp.Table)
    if table is None:
        raise ValueError("CREATE INDEX without a table")
    table_name, _ = _table_name(table)

    params = index.args.get('params')
    column_exprs = params.args.get('columns') if params is not None else None
    if not column_exprs:
        column_exprs = index.expressions
    columns = tuple(_identifier_name(e) for e in column_exprs or [])
    if not columns:
        raise ValueError("CREATE INDEX without columns")

    return table_name, IndexSchema(
        name=index.name or None,
        columns=columns,
        unique=bool(stmt.args.get('unique')),
    )


def _handle_alter_table(stmt: exp.Alter, builders: Dict[str, _TableBuilder]) -> None:
    """Apply ALTER TABLE actions to an already declared table.

    Supports: ADD COLUMN, ADD [CONSTRAINT] FOREIGN KEY / PRIMARY KEY / UNIQUE
    """
    table_expr = stmt.this
    if not isinstance(table_expr, exp.Table):
        raise ValueError("ALTER without a table")

    table_name, _ = _table_name(table_expr)
    builder = builders.get(table_name.lower())
    if builder is None:
        raise ValueError(f"ALTER references unknown table '{table_name}'")

    for action in stmt.args.get('actions') or []:
        if isinstance(action, exp.ColumnDef):
            _add_column(builder, action)
            continue

        constraints = [action] if isinstance(action, exp.Constraint) else list(
            action.find_all(exp.Constraint)
        )
        if constraints:
            for constraint in constraints:
                _apply_table_constraint(builder, constraint)
            continue

        handled = False
        for node in action.find_all(exp.ForeignKey, exp.PrimaryKey, exp.UniqueColumnConstraint):
            _apply_table_constraint(builder, node)
            handled = True
        if not handled:
            logger.debug("Ignoring ALTER action: %s", type(action).__name__)


def _resolve_foreign_keys(
    tables: List[TableSchema],
    diagnostics: List[Diagnostic],
) -> List[TableSchema]:
    """Resolve every foreign key against the full set of parsed tables."""
    by_key = {t.key: t for t in tables}
    resolved_tables = []

    for table in tables:
        foreign_keys = []
        for fk in table.foreign_keys:
            target = by_key.get(fk.referenced_table.lower())
            if target is None:
                diagnostics.append(Diagnostic(
                    diagnostic_type=DiagnosticType.SCHEMA_WARNING,
                    severity=Severity.WARNING,
                    message=(
                        f"Foreign key in '{table.table_name}' references undeclared "
                        f"table '{fk.referenced_table}'; treated as a plain column."
                    ),
                    evidence={'table': table.table_name, 'columns': list(fk.columns),
                              'referenced_table': fk.referenced_table},
                ))
                foreign_keys.append(fk)
                continue

            referenced_columns = fk.referenced_columns or target.primary_key
            foreign_keys.append(fk.model_copy(update={
                'referenced_table': target.table_name,
                'referenced_columns': tuple(referenced_columns),
                'resolved': True,
            }))

        resolved_tables.append(table.model_copy(update={'foreign_keys': tuple(foreign_keys)}))

    return resolved_tables
