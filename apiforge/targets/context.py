"""Per-target view of a Schema, consumed by emitters.

Emitters only read these contexts; they never look at DDL or recompute
relationships.
"""
import logging
from typing import Dict, List, Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict

from apiforge.config.profiles import Casing, NamingRule, Number, TargetProfile
from apiforge.core.inference import Schema
from apiforge.mapping.naming import NameRole, apply_case, convert, map_name, split_words, strip_id_suffix
from apiforge.mapping.types import TargetType, map_type
from apiforge.models.diagnostic import Diagnostic, UnmappedTypeWarning
from apiforge.models.relationship import RelationKind, Relationship
from apiforge.models.schema import ColumnSchema, TableSchema

logger = logging.getLogger(__name__)

_SNAKE_PLURAL = NamingRule(case=Casing.SNAKE, number=Number.PLURAL)
_SNAKE_SINGULAR = NamingRule(case=Casing.SNAKE, number=Number.SINGULAR)

# Columns usually maintained by the framework rather than by API clients
AUDIT_COLUMNS = {
    'created_at', 'updated_at', 'created_by', 'updated_by', 'deleted_at', 'deleted_by',
}


class FieldContext(BaseModel):
    """One column as a member of the generated type."""

    model_config = ConfigDict(frozen=True)

    column: str
    name: str
    camel_name: str
    snake_name: str
    type: TargetType
    sql_type: str
    nullable: bool
    primary_key: bool
    unique: bool
    auto_increment: bool
    foreign_key: bool
    default: Optional[str] = None
    length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None

    @property
    def required(self) -> bool:
        """Must be supplied by clients on create."""
        return not (self.nullable or self.auto_increment or self.default is not None)

    @property
    def managed(self) -> bool:
        """Generated by the database or the framework, not accepted from clients."""
        return self.auto_increment or self.column.lower() in AUDIT_COLUMNS


class RelationContext(BaseModel):
    """One relationship as seen from the entity that declares the member."""

    model_config = ConfigDict(frozen=True)

    kind: RelationKind
    name: str
    target_table: str
    target_class: str
    target_file: str
    target_route: str
    columns: Tuple[str, ...] = ()
    column_fields: Tuple[str, ...] = ()
    target_columns: Tuple[str, ...] = ()
    join_table: Optional[str] = None
    owner: bool = True
    mapped_by: Optional[str] = None
    on_delete: str = "NO_ACTION"
    # Target emitted later in generation order, or in the same FK cycle
    deferred: bool = False
    self_reference: bool = False

    @property
    def collection(self) -> bool:
        return self.kind in (RelationKind.ONE_TO_MANY, RelationKind.MANY_TO_MANY)


class EntityContext(BaseModel):
    """Everything an emitter needs to render one entity table."""

    model_config = ConfigDict(frozen=True)

    table_name: str
    schema_name: Optional[str] = None
    class_name: str
    file_name: str
    route: str
    var_name: str
    plural_var: str
    plural_class: str
    fields: Tuple[FieldContext, ...]
    primary_key: Tuple[FieldContext, ...]
    relations: Tuple[RelationContext, ...] = ()
    imports: Tuple[str, ...] = ()
    order: int = 0

    @property
    def id_field(self) -> FieldContext:
        return self.primary_key[0] if self.primary_key else self.fields[0]

    @property
    def composite_key(self) -> bool:
        return len(self.primary_key) > 1

    @property
    def input_fields(self) -> List[FieldContext]:
        """Fields accepted from clients on create and update."""
        return [f for f in self.fields if not f.managed]

    @property
    def scalar_fields(self) -> List[FieldContext]:
        """Fields not replaced by an owned to-one association (key columns always kept)."""
        covered = {
            c.lower() for r in self.relations
            if r.owner and not r.collection for c in r.columns
        }
        return [f for f in self.fields if f.primary_key or f.column.lower() not in covered]

    @property
    def to_one_relations(self) -> List[RelationContext]:
        """Owned MANY_TO_ONE / ONE_TO_ONE associations."""
        return [r for r in self.relations if r.owner and not r.collection]

    @property
    def key_columns(self) -> List[str]:
        return [f.column for f in self.primary_key]

    @property
    def has_soft_delete_column(self) -> bool:
        return any(f.column.lower() == 'deleted_at' for f in self.fields)

    @property
    def owned_relations(self) -> List[RelationContext]:
        return [r for r in self.relations if r.owner]

    def field_for(self, column: str) -> Optional[FieldContext]:
        """Field of a column, matched case-insensitively."""
        for f in self.fields:
            if f.column.lower() == column.lower():
                return f
        return None

    def relation_for(self, column: str) -> Optional[RelationContext]:
        """Owned to-one association realised by exactly this one column."""
        for r in self.to_one_relations:
            if len(r.columns) == 1 and r.columns[0].lower() == column.lower():
                return r
        return None


class TargetContext(BaseModel):
    """All entities of a schema rendered for one target."""

    model_config = ConfigDict(frozen=True)

    profile: TargetProfile
    features: Dict[str, bool]
    base_name: str
    entities: Tuple[EntityContext, ...]

    @property
    def project_name(self) -> str:
        return apply_case(split_words(self.base_name), Casing.KEBAB) or 'app'

    @property
    def package_name(self) -> str:
        return apply_case(split_words(self.base_name), Casing.LOWER) or 'app'

    @property
    def class_prefix(self) -> str:
        return apply_case(split_words(self.base_name), Casing.PASCAL) or 'App'

    def enabled(self, feature: str) -> bool:
        """Unknown toggles are simply off."""
        return bool(self.features.get(feature, False))


def member_name(identifier: str, profile: TargetProfile, plural: bool = False) -> str:
    """Field-role name for an identifier, optionally pluralised."""
    rule = _SNAKE_PLURAL if plural else _SNAKE_SINGULAR
    return map_name(convert(identifier, rule), profile, NameRole.FIELD)


def _field(column: ColumnSchema, table: TableSchema, profile: TargetProfile) -> FieldContext:
    target_type = map_type(
        column.data_type,
        precision=column.precision,
        scale=column.scale,
        length=column.length,
        nullable=column.is_nullable,
        profile=profile,
    )
    words = split_words(column.name)
    return FieldContext(
        column=column.name,
        name=map_name(column.name, profile, NameRole.FIELD),
        camel_name=apply_case(words, Casing.CAMEL),
        snake_name=apply_case(words, Casing.SNAKE),
        type=target_type,
        sql_type=column.data_type,
        nullable=column.is_nullable,
        primary_key=column.is_primary_key,
        unique=column.is_unique,
        auto_increment=column.auto_increment,
        foreign_key=column.name.lower() in table.foreign_key_columns(),
        default=column.default,
        length=target_type.length,
        precision=target_type.precision,
        scale=target_type.scale,
    )


class _RelationNamer:
    """Assigns unique member names to both sides of every relationship."""

    def __init__(self, schema: Schema, profile: TargetProfile):
        self.profile = profile
        self.used: Dict[str, Set[str]] = {}
        for table in schema.entity_tables():
            self.used[table.key] = {
                map_name(c.name, profile, NameRole.FIELD) for c in table.columns
            }

    def claim(self, table: str, base: str, plural: bool, fallback_prefix: str) -> str:
        taken = self.used.setdefault(table.lower(), set())
        name = member_name(base, self.profile, plural=plural)
        if name in taken:
            name = member_name(f"{fallback_prefix}_{base}", self.profile, plural=plural)
        candidate, n = name, 2
        while candidate in taken:
            candidate = f"{name}{n}"
            n += 1
        taken.add(candidate)
        return candidate


def _owner_base(rel: Relationship) -> str:
    if rel.kind == RelationKind.MANY_TO_MANY:
        return rel.target_table
    if len(rel.columns) == 1:
        stripped = strip_id_suffix(rel.columns[0])
        if stripped.lower() != rel.columns[0].lower():
            return stripped
    return rel.target_table


def _relation_names(schema: Schema, profile: TargetProfile) -> Dict[int, Tuple[str, str]]:
    """Index of owned relationship -> (owning-side name, inverse-side name)."""
    namer = _RelationNamer(schema, profile)
    names = {}
    for i, rel in enumerate(schema.relationships):
        owner_name = namer.claim(
            rel.owning_table,
            _owner_base(rel),
            plural=rel.kind == RelationKind.MANY_TO_MANY,
            fallback_prefix="related",
        )
        inverse_name = namer.claim(
            rel.target_table,
            rel.owning_table,
            plural=rel.kind != RelationKind.ONE_TO_ONE,
            fallback_prefix=convert(_owner_base(rel), _SNAKE_SINGULAR),
        )
        names[i] = (owner_name, inverse_name)
    return names


def build_target_context(
    schema: Schema,
    profile: TargetProfile,
    features: Dict[str, bool],
    base_name: str = "app",
) -> Tuple[TargetContext, List[Diagnostic]]:
    """Resolve every entity of ``schema`` against ``profile``.

    Returns:
        Tuple of (target context, UnmappedTypeWarning diagnostics)
    """
    warnings: List[Diagnostic] = []
    order = {name.lower(): i for i, name in enumerate(schema.generation_order)}
    names = _relation_names(schema, profile)

    def entity_names(table_name: str) -> Dict[str, str]:
        return {
            'class': map_name(table_name, profile, NameRole.ENTITY),
            'file': map_name(table_name, profile, NameRole.FILE),
            'route': map_name(table_name, profile, NameRole.ROUTE),
        }

    def deferred(owner: str, target: str) -> bool:
        if owner.lower() == target.lower():
            return False
        return (order.get(target.lower(), -1) > order.get(owner.lower(), -1)
                or schema.in_same_cycle(owner, target))

    entities = []
    for table in schema.entity_tables():
        fields = []
        for column in table.columns:
            field = _field(column, table, profile)
            if field.type.fallback:
                message = (
                    f"SQL type '{column.data_type}' of {table.table_name}.{column.name} has no "
                    f"{profile.key} mapping; using {field.type.base}"
                )
                logger.warning(message)
                warnings.append(UnmappedTypeWarning(
                    message=message,
                    target=profile.key,
                    sql_type=column.data_type,
                    table_name=table.table_name,
                    column_name=column.name,
                    evidence={'table': table.table_name, 'column': column.name},
                ))
            fields.append(field)

        field_by_column = {f.column.lower(): f for f in fields}
        relations = []
        views = []
        for i, rel in enumerate(schema.relationships):
            # A self-reference contributes both of its sides
            if rel.owning_table.lower() == table.key:
                views.append((rel, names[i][0], names[i][1]))
            if rel.target_table.lower() == table.key:
                views.append((rel.inverse(), names[i][1], names[i][0]))

        for view, name, other_name in views:
            target = entity_names(view.target_table)
            column_fields = ()
            if view.kind != RelationKind.MANY_TO_MANY and view.owner:
                column_fields = tuple(
                    field_by_column[c.lower()].name for c in view.columns
                    if c.lower() in field_by_column
                )
            relations.append(RelationContext(
                kind=view.kind,
                name=name,
                target_table=view.target_table,
                target_class=target['class'],
                target_file=target['file'],
                target_route=target['route'],
                columns=view.columns,
                column_fields=column_fields,
                target_columns=view.target_columns,
                join_table=view.junction_table,
                owner=view.owner,
                mapped_by=other_name,
                on_delete=view.on_delete.value,
                deferred=deferred(table.table_name, view.target_table),
                self_reference=view.is_self_reference,
            ))

        # Owned relations first, each group in declaration order
        relations.sort(key=lambda r: not r.owner)

        own = entity_names(table.table_name)
        imports: Set[str] = set()
        for field in fields:
            imports.update(field.type.imports)

        entities.append(EntityContext(
            table_name=table.table_name,
            schema_name=table.schema_name,
            class_name=own['class'],
            file_name=own['file'],
            route=own['route'],
            var_name=member_name(table.table_name, profile),
            plural_var=member_name(table.table_name, profile, plural=True),
            plural_class=apply_case(split_words(convert(table.table_name, _SNAKE_PLURAL)),
                                    Casing.PASCAL),
            fields=tuple(fields),
            primary_key=tuple(f for f in fields if f.primary_key),
            relations=tuple(relations),
            imports=tuple(sorted(imports)),
            order=order.get(table.key, 0),
        ))

    context = TargetContext(
        profile=profile,
        features=features,
        base_name=base_name,
        entities=tuple(entities),
    )
    return context, warnings
