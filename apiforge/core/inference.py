"""Relationship and dependency inference over parsed tables."""
import logging
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from pydantic import BaseModel, ConfigDict

from apiforge.core.ordering import generation_order
from apiforge.core.validation import validate_tables
from apiforge.models.diagnostic import CycleWarning, Diagnostic, DiagnosticType, Severity
from apiforge.models.relationship import RelationKind, Relationship
from apiforge.models.schema import ForeignKey, SequenceSchema, TableSchema

logger = logging.getLogger(__name__)

AUDIT_SUFFIXES = ('_aud', '_audit')
AUDIT_TABLES = {'revision_info', 'revinfo'}


class Schema(BaseModel):
    """Tables plus derived relationships and generation order.

    Built once per request by ``infer`` and read-only afterwards. Only owned
    relationships are stored; inverse views are computed on demand.
    """

    model_config = ConfigDict(frozen=True)

    tables: Tuple[TableSchema, ...] = ()
    sequences: Tuple[SequenceSchema, ...] = ()
    relationships: Tuple[Relationship, ...] = ()
    generation_order: Tuple[str, ...] = ()
    junction_tables: Tuple[str, ...] = ()
    excluded_tables: Tuple[str, ...] = ()
    cycles: Tuple[Tuple[str, ...], ...] = ()
    warnings: Tuple[Diagnostic, ...] = ()

    def table(self, name: str) -> Optional[TableSchema]:
        """Case-insensitive table lookup."""
        lowered = name.lower()
        for table in self.tables:
            if table.key == lowered:
                return table
        return None

    def is_junction(self, name: str) -> bool:
        return name.lower() in {t.lower() for t in self.junction_tables}

    def entity_tables(self) -> List[TableSchema]:
        """Entity tables in generation order."""
        return [self.table(name) for name in self.generation_order]

    def owned_relationships(self, name: str) -> List[Relationship]:
        lowered = name.lower()
        return [r for r in self.relationships if r.owning_table.lower() == lowered]

    def inverse_relationships(self, name: str) -> List[Relationship]:
        """Non-owning views of relationships that target ``name``."""
        lowered = name.lower()
        return [r.inverse() for r in self.relationships if r.target_table.lower() == lowered]

    def relationships_for(self, name: str) -> List[Relationship]:
        """Owned relationships first, then inverse views, both in declaration order."""
        return self.owned_relationships(name) + self.inverse_relationships(name)

    def in_same_cycle(self, first: str, second: str) -> bool:
        a, b = first.lower(), second.lower()
        for cycle in self.cycles:
            members = {m.lower() for m in cycle}
            if a in members and b in members:
                return True
        return False


def is_audit_table(table: TableSchema) -> bool:
    """Audit shadow tables (Envers-style) are never generated as entities."""
    return table.key.endswith(AUDIT_SUFFIXES) or table.key in AUDIT_TABLES


def is_junction_table(table: TableSchema) -> bool:
    """Check whether a table only realises a many-to-many association.

    A junction table has a composite primary key made entirely of foreign-key
    columns, exactly two resolved foreign keys to two distinct other tables,
    and no column outside its keys. One extra column reclassifies it as an
    ordinary entity.
    """
    primary_key = {c.lower() for c in table.primary_key}
    if len(primary_key) < 2:
        return False

    foreign_keys = table.resolved_foreign_keys()
    if len(foreign_keys) != 2:
        return False

    targets = {fk.referenced_table.lower() for fk in foreign_keys}
    if len(targets) != 2 or table.key in targets:
        return False

    fk_columns = table.foreign_key_columns()
    if not primary_key <= fk_columns:
        return False

    return all(
        col.name.lower() in fk_columns or col.name.lower() in primary_key
        for col in table.columns
    )


def is_one_to_one(table: TableSchema, fk: ForeignKey) -> bool:
    """FK columns exactly match a uniqueness guarantee of the owning table."""
    columns = frozenset(c.lower() for c in fk.columns)
    return columns in table.unique_column_sets()


def _schema_warning(message: str, **evidence) -> Diagnostic:
    logger.warning(message)
    return Diagnostic(
        diagnostic_type=DiagnosticType.SCHEMA_WARNING,
        severity=Severity.WARNING,
        message=message,
        evidence=evidence,
    )


def infer(
    tables: Sequence[TableSchema],
    sequences: Iterable[SequenceSchema] = (),
) -> Schema:
    """Derive relationships and generation order from parsed tables.

    Args:
        tables: Tables in declaration order, foreign keys already resolved
        sequences: Optional sequences carried through to the Schema

    Returns:
        Schema with owned relationships, generation order and warnings
    """
    tables = list(tables)
    warnings: List[Diagnostic] = []

    excluded: List[str] = []
    for table in tables:
        if is_audit_table(table):
            excluded.append(table.table_name)
            logger.info("Skipping audit table: %s", table.table_name)
            warnings.append(Diagnostic(
                diagnostic_type=DiagnosticType.INFO,
                severity=Severity.INFO,
                message=f"Audit table '{table.table_name}' is not generated as an entity",
                evidence={'table': table.table_name},
            ))
    excluded_keys = {name.lower() for name in excluded}

    junctions = [
        t for t in tables
        if t.key not in excluded_keys and is_junction_table(t)
    ]
    junction_keys = {t.key for t in junctions}
    entities = [
        t for t in tables
        if t.key not in excluded_keys and t.key not in junction_keys
    ]
    entity_keys = {t.key for t in entities}

    logger.debug(
        "Classified %d entity tables, %d junction tables, %d excluded",
        len(entities), len(junctions), len(excluded)
    )

    relationships: List[Relationship] = []
    for table in tables:
        if table.key in junction_keys:
            relationships.append(_many_to_many(table))
            continue
        if table.key not in entity_keys:
            continue

        for fk in table.resolved_foreign_keys():
            if fk.referenced_table.lower() not in entity_keys:
                warnings.append(_schema_warning(
                    f"Foreign key {table.table_name}({', '.join(fk.columns)}) references "
                    f"'{fk.referenced_table}', which is not generated as an entity",
                    table=table.table_name,
                    referenced_table=fk.referenced_table,
                ))
                continue

            kind = RelationKind.ONE_TO_ONE if is_one_to_one(table, fk) else RelationKind.MANY_TO_ONE
            relationships.append(Relationship(
                kind=kind,
                owning_table=table.table_name,
                target_table=fk.referenced_table,
                columns=fk.columns,
                target_columns=fk.referenced_columns,
                on_delete=fk.on_delete,
            ))

    dependencies = [
        (r.owning_table, r.target_table)
        for r in relationships
        if r.kind in (RelationKind.MANY_TO_ONE, RelationKind.ONE_TO_ONE)
    ]
    order, cycles = generation_order([t.table_name for t in entities], dependencies)

    for cycle in cycles:
        warnings.append(CycleWarning(
            message=(
                f"Foreign keys form a cycle among {', '.join(cycle)}; "
                "these tables keep declaration order and use deferred association wiring"
            ),
            tables=cycle,
            evidence={'tables': list(cycle)},
        ))

    warnings.extend(validate_tables(tables, [t.table_name for t in entities]))

    return Schema(
        tables=tuple(tables),
        sequences=tuple(sequences),
        relationships=tuple(relationships),
        generation_order=tuple(order),
        junction_tables=tuple(t.table_name for t in junctions),
        excluded_tables=tuple(excluded),
        cycles=tuple(cycles),
        warnings=tuple(warnings),
    )


def _many_to_many(junction: TableSchema) -> Relationship:
    """The single MANY_TO_MANY edge realised by a junction table.

    Owned by the table referenced by the junction's first foreign key.
    """
    first, second = junction.resolved_foreign_keys()
    return Relationship(
        kind=RelationKind.MANY_TO_MANY,
        owning_table=first.referenced_table,
        target_table=second.referenced_table,
        columns=first.columns,
        target_columns=second.columns,
        junction_table=junction.table_name,
        on_delete=first.on_delete,
    )


def dependency_graph(schema: Schema) -> Dict[str, Set[str]]:
    """Entity table -> tables it must be generated after (excluding itself)."""
    graph: Dict[str, Set[str]] = {name: set() for name in schema.generation_order}
    for rel in schema.relationships:
        if rel.kind == RelationKind.MANY_TO_MANY or rel.is_self_reference:
            continue
        graph.setdefault(rel.owning_table, set()).add(rel.target_table)
    return graph
