"""Structural schema checks surfaced as warnings."""
import logging
from typing import Dict, Iterable, List

from apiforge.config.profiles import Casing, Number
from apiforge.mapping.naming import apply_case, apply_number, split_words
from apiforge.models.diagnostic import Diagnostic, DiagnosticType, Severity
from apiforge.models.schema import TableSchema

logger = logging.getLogger(__name__)


def entity_name(table_name: str) -> str:
    """Profile-independent entity name used to detect collisions."""
    return apply_case(apply_number(split_words(table_name), Number.SINGULAR), Casing.PASCAL)


def _warning(message: str, **evidence) -> Diagnostic:
    logger.warning(message)
    return Diagnostic(
        diagnostic_type=DiagnosticType.SCHEMA_WARNING,
        severity=Severity.WARNING,
        message=message,
        evidence=evidence,
    )


def validate_tables(
    tables: List[TableSchema],
    entity_table_names: Iterable[str],
) -> List[Diagnostic]:
    """Check entity tables for problems that degrade generated code.

    Detects:
    - entity tables without a primary key
    - foreign keys whose referenced columns do not exist in the referenced table
    - distinct tables that map to the same entity name (e.g. ``user`` and ``users``)

    Args:
        tables: Every parsed table
        entity_table_names: Names of tables that will be generated as entities

    Returns:
        SCHEMA_WARNING diagnostics, in table declaration order
    """
    by_key = {t.key: t for t in tables}
    entity_keys = {name.lower() for name in entity_table_names}
    diagnostics: List[Diagnostic] = []
    seen_names: Dict[str, str] = {}

    for table in tables:
        if table.key not in entity_keys:
            continue

        if not table.primary_key:
            diagnostics.append(_warning(
                f"Table '{table.table_name}' has no primary key",
                table=table.table_name,
            ))

        for fk in table.resolved_foreign_keys():
            target = by_key.get(fk.referenced_table.lower())
            missing = [c for c in fk.referenced_columns if target.column(c) is None]
            if missing or len(fk.referenced_columns) != len(fk.columns):
                diagnostics.append(_warning(
                    f"Foreign key {table.table_name}({', '.join(fk.columns)}) does not match "
                    f"columns of '{fk.referenced_table}' ({', '.join(fk.referenced_columns)})",
                    table=table.table_name,
                    columns=list(fk.columns),
                    referenced_table=fk.referenced_table,
                    missing_columns=missing,
                ))

        name = entity_name(table.table_name)
        if name in seen_names:
            diagnostics.append(_warning(
                f"Tables '{seen_names[name]}' and '{table.table_name}' both map to entity '{name}'",
                tables=[seen_names[name], table.table_name],
                entity=name,
            ))
        else:
            seen_names[name] = table.table_name

    return diagnostics
