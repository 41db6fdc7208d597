"""SQL type to target type mapping."""
import logging
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict

from apiforge.config.profiles import TargetProfile

logger = logging.getLogger(__name__)

# Shared classification of canonical SQL type names into abstract categories.
# Profiles map categories, not raw SQL names, so one table covers every dialect.
SQL_CATEGORIES = {
    # Integers
    'INT': 'integer', 'INTEGER': 'integer', 'MEDIUMINT': 'integer',
    'UINT': 'integer', 'UMEDIUMINT': 'integer', 'SERIAL': 'integer', 'INT4': 'integer',
    'BIGINT': 'bigint', 'UBIGINT': 'bigint', 'BIGSERIAL': 'bigint', 'INT8': 'bigint',
    'INT128': 'bigint', 'UINT128': 'bigint', 'INT256': 'bigint', 'UINT256': 'bigint',
    'SMALLINT': 'smallint', 'USMALLINT': 'smallint', 'SMALLSERIAL': 'smallint',
    'INT2': 'smallint',
    'TINYINT': 'tinyint', 'UTINYINT': 'tinyint',
    # Exact numerics
    'DECIMAL': 'decimal', 'NUMERIC': 'decimal', 'NUMBER': 'decimal',
    'UDECIMAL': 'decimal', 'BIGDECIMAL': 'decimal', 'MONEY': 'decimal',
    'SMALLMONEY': 'decimal', 'DECIMAL32': 'decimal', 'DECIMAL64': 'decimal',
    'DECIMAL128': 'decimal', 'DECIMAL256': 'decimal',
    # Approximate numerics
    'FLOAT': 'float', 'REAL': 'float', 'FLOAT4': 'float',
    'DOUBLE': 'double', 'FLOAT8': 'double', 'UDOUBLE': 'double',
    # Boolean
    'BOOLEAN': 'boolean', 'BOOL': 'boolean', 'BIT': 'boolean',
    # Character
    'VARCHAR': 'string', 'NVARCHAR': 'string', 'STRING': 'string', 'NAME': 'string',
    'INET': 'string', 'CITEXT': 'string', 'IPADDRESS': 'string', 'IPPREFIX': 'string',
    'CHAR': 'char', 'NCHAR': 'char', 'BPCHAR': 'char',
    'TEXT': 'text', 'TINYTEXT': 'text', 'MEDIUMTEXT': 'text', 'LONGTEXT': 'text',
    'XML': 'text', 'NTEXT': 'text',
    # Temporal
    'DATE': 'date', 'DATE32': 'date',
    'TIME': 'time', 'TIMETZ': 'time',
    'TIMESTAMP': 'timestamp', 'DATETIME': 'timestamp', 'DATETIME2': 'timestamp',
    'DATETIME64': 'timestamp', 'SMALLDATETIME': 'timestamp', 'TIMESTAMP_S': 'timestamp',
    'TIMESTAMP_MS': 'timestamp', 'TIMESTAMP_NS': 'timestamp', 'TIMESTAMPNTZ': 'timestamp',
    'TIMESTAMPTZ': 'timestamptz', 'TIMESTAMPLTZ': 'timestamptz',
    'DATETIMEOFFSET': 'timestamptz',
    'INTERVAL': 'interval',
    # Identifiers and documents
    'UUID': 'uuid', 'UNIQUEIDENTIFIER': 'uuid',
    'JSON': 'json', 'JSONB': 'json', 'VARIANT': 'json',
    # Binary
    'BINARY': 'binary', 'VARBINARY': 'binary', 'BLOB': 'binary', 'TINYBLOB': 'binary',
    'MEDIUMBLOB': 'binary', 'LONGBLOB': 'binary', 'BYTEA': 'binary', 'IMAGE': 'binary',
    # Enumerations
    'ENUM': 'enum', 'ENUM8': 'enum', 'ENUM16': 'enum',
}

ARRAY_SUFFIX = '[]'


class TargetType(BaseModel):
    """A SQL type resolved against one target profile."""

    model_config = ConfigDict(frozen=True)

    name: str
    base: str
    category: Optional[str] = None
    nullable: bool = False
    is_list: bool = False
    imports: Tuple[str, ...] = ()
    length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    # Decimal represented without fixed point (see the profile's decimal block)
    degraded: bool = False
    # No mapping found; ``base`` is the profile's fallback type
    fallback: bool = False


def sql_category(sql_type: str) -> Optional[str]:
    """Abstract category for a canonical SQL type name, or None if unknown."""
    if not sql_type:
        return None
    name = sql_type.strip().upper()
    if name.endswith(ARRAY_SUFFIX):
        return 'array'
    # "CHARACTER VARYING(20)" style names from user-defined fallbacks
    name = name.split('(', 1)[0].strip()
    return SQL_CATEGORIES.get(name)


def map_type(
    sql_type: str,
    precision: Optional[int] = None,
    scale: Optional[int] = None,
    length: Optional[int] = None,
    nullable: bool = False,
    *,
    profile: TargetProfile,
) -> TargetType:
    """Resolve a SQL type for a target.

    Total: never raises for any input string. Unknown types resolve to the
    profile's fallback type with ``fallback=True``.
    """
    sql_name = (sql_type or '').strip().upper()

    if sql_name.endswith(ARRAY_SUFFIX):
        element = map_type(sql_name[:-len(ARRAY_SUFFIX)], profile=profile)
        element_name = element.base
        if profile.nullability.style == 'wrapper':
            # Generic containers need boxed element types
            element_name = profile.nullability.wrappers.get(element_name, element_name)
        base = profile.list_format.format(type=element_name)
        imports = element.imports
        if profile.list_import:
            imports = tuple(sorted(set(imports) | {profile.list_import}))
        return TargetType(
            name=_nullable_name(base, nullable, profile),
            base=base,
            category='array',
            nullable=nullable,
            is_list=True,
            imports=imports,
            fallback=element.fallback,
        )

    category = sql_category(sql_name)
    override = profile.overrides.get(sql_name)
    degraded = fallback = False

    if override:
        base = override
    elif category == 'decimal':
        if profile.decimal.fixed_point and profile.decimal.type:
            base = profile.decimal.type
        else:
            degraded = True
            base = profile.types.get(profile.decimal.degrade_to, profile.fallback_type)
            precision = scale = None
    elif category in profile.types:
        base = profile.types[category]
    else:
        fallback = True
        base = profile.fallback_type
        logger.debug("No %s mapping for SQL type '%s'; using %s",
                     profile.key, sql_type, base)

    if category != 'decimal':
        precision = scale = None
    if category not in ('string', 'char', 'binary') or fallback:
        length = None

    imports = ()
    if base in profile.imports:
        imports = (profile.imports[base],)

    return TargetType(
        name=_nullable_name(base, nullable, profile),
        base=base,
        category=category,
        nullable=nullable,
        imports=imports,
        length=length,
        precision=precision,
        scale=scale,
        degraded=degraded,
        fallback=fallback,
    )


def _nullable_name(base: str, nullable: bool, profile: TargetProfile) -> str:
    if not nullable:
        return base
    rule = profile.nullability
    if rule.style == 'wrapper':
        return rule.wrappers.get(base, base)
    if rule.style == 'format' and base not in rule.exempt:
        return rule.format.format(type=base)
    return base
