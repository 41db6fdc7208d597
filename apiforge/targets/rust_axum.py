"""Rust / Axum emitter (sqlx queries, serde models)."""
from typing import Dict, List

from apiforge.models.relationship import RelationKind
from apiforge.targets.context import EntityContext, RelationContext, TargetContext
from apiforge.targets.registry import TargetEmitter, register_emitter
from apiforge.targets.templating import render


def _keys(entity: EntityContext):
    return entity.primary_key or (entity.id_field,)


def queries(entity: EntityContext, soft_delete: bool) -> Dict[str, str]:
    """Parameterised SQL for every handler of one entity."""
    table = entity.table_name
    keys = _keys(entity)
    live = " WHERE deleted_at IS NULL" if soft_delete else ""
    live_and = " AND deleted_at IS NULL" if soft_delete else ""
    order = ', '.join(f.column for f in keys)
    key_match = ' AND '.join(f"{f.column} = ${i}" for i, f in enumerate(keys, 1))

    inputs = entity.input_fields
    columns = ', '.join(f.column for f in inputs)
    values = ', '.join(f"${i}" for i in range(1, len(inputs) + 1))
    assignments = ', '.join(f"{f.column} = ${i}" for i, f in enumerate(inputs, 1))
    update_match = ' AND '.join(
        f"{f.column} = ${i}" for i, f in enumerate(keys, len(inputs) + 1)
    )

    result = {
        'list': f"SELECT * FROM {table}{live} ORDER BY {order} LIMIT $1 OFFSET $2",
        'all': f"SELECT * FROM {table}{live} ORDER BY {order}",
        'count': f"SELECT COUNT(*) FROM {table}{live}",
        'get': f"SELECT * FROM {table} WHERE {key_match}{live_and}",
        'insert': (f"INSERT INTO {table} ({columns}) VALUES ({values}) RETURNING *"
                   if inputs else f"INSERT INTO {table} DEFAULT VALUES RETURNING *"),
        'update': (f"UPDATE {table} SET {assignments} WHERE {update_match} RETURNING *"
                   if inputs else f"SELECT * FROM {table} WHERE {key_match}"),
    }
    if soft_delete:
        result['delete'] = f"UPDATE {table} SET deleted_at = NOW() WHERE {key_match}{live_and}"
    else:
        result['delete'] = f"DELETE FROM {table} WHERE {key_match}"
    return result


def relation_query(relation: RelationContext, target_entity: EntityContext) -> str:
    """SQL listing the targets of a to-many relation for one parent key."""
    if relation.kind == RelationKind.MANY_TO_MANY:
        target_key = target_entity.key_columns[0] if target_entity.key_columns else 'id'
        return (
            f"SELECT t.* FROM {relation.target_table} t "
            f"JOIN {relation.join_table} j ON j.{relation.target_columns[0]} = t.{target_key} "
            f"WHERE j.{relation.columns[0]} = $1"
        )
    return f"SELECT * FROM {relation.target_table} WHERE {relation.columns[0]} = $1"


def _collections(entity: EntityContext, target: TargetContext) -> List[dict]:
    by_table = {e.table_name.lower(): e for e in target.entities}
    result = []
    for r in entity.relations:
        if not r.collection or len(r.columns) != 1:
            continue
        other = by_table[r.target_table.lower()]
        result.append({
            'relation': r,
            'entity': other,
            'sql': relation_query(r, other),
        })
    return result


def _path_type(entity: EntityContext) -> str:
    keys = _keys(entity)
    if len(keys) == 1:
        return keys[0].type.base
    return '(' + ', '.join(f.type.base for f in keys) + ')'


def _path_pattern(entity: EntityContext) -> str:
    return '/'.join(f":{f.snake_name}" for f in _keys(entity))


def _context(entity: EntityContext, target: TargetContext) -> dict:
    soft_delete = target.enabled('soft_delete') and entity.has_soft_delete_column
    keys = _keys(entity)
    return {
        'entity': entity,
        'target': target,
        'keys': keys,
        'sql': queries(entity, soft_delete),
        'collections': _collections(entity, target),
        'path_type': _path_type(entity),
        'path_binding': keys[0].snake_name if len(keys) == 1 else '(' + ', '.join(f.snake_name for f in keys) + ')',
        'soft_delete': soft_delete,
    }


def emit_entity(entity: EntityContext, target: TargetContext) -> Dict[str, str]:
    """Model and handler modules for one table."""
    ctx = _context(entity, target)
    name = entity.file_name
    return {
        f"src/models/{name}.rs": render("rust_axum/model.rs.j2", **ctx),
        f"src/handlers/{name}.rs": render("rust_axum/handler.rs.j2", **ctx),
    }


def emit_shared(target: TargetContext) -> Dict[str, str]:
    routes = [
        {
            'entity': e,
            'pattern': _path_pattern(e),
            'collections': _collections(e, target),
        }
        for e in target.entities
    ]
    ctx = {'target': target, 'routes': routes}
    files = {
        "Cargo.toml": render("rust_axum/cargo.toml.j2", **ctx),
        "src/main.rs": render("rust_axum/main.rs.j2", **ctx),
        "src/error.rs": render("rust_axum/error.rs.j2", **ctx),
        "src/models/mod.rs": render("rust_axum/models_mod.rs.j2", **ctx),
        "src/handlers/mod.rs": render("rust_axum/handlers_mod.rs.j2", **ctx),
    }
    if target.enabled('pagination'):
        files["src/pagination.rs"] = render("rust_axum/pagination.rs.j2", **ctx)
    if target.enabled('jwt_auth'):
        files["src/auth.rs"] = render("rust_axum/auth.rs.j2", **ctx)
    return files


register_emitter('rust', 'axum', TargetEmitter(entity=emit_entity, shared=emit_shared))
