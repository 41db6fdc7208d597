"""PHP / Laravel emitter (Eloquent models, migrations, API resources)."""
from typing import Dict, List

from apiforge.models.relationship import RelationKind
from apiforge.targets.context import EntityContext, FieldContext, TargetContext
from apiforge.targets.registry import TargetEmitter, register_emitter
from apiforge.targets.templating import render

# SQL category -> Blueprint column method
BLUEPRINT_METHODS = {
    'integer': 'integer',
    'bigint': 'bigInteger',
    'smallint': 'smallInteger',
    'tinyint': 'tinyInteger',
    'decimal': 'decimal',
    'float': 'float',
    'double': 'double',
    'boolean': 'boolean',
    'string': 'string',
    'char': 'char',
    'text': 'text',
    'date': 'date',
    'time': 'time',
    'timestamp': 'timestamp',
    'timestamptz': 'timestampTz',
    'uuid': 'uuid',
    'json': 'json',
    'binary': 'binary',
    'interval': 'string',
    'enum': 'string',
    'array': 'json',
}

# SQL category -> Eloquent attribute cast
CASTS = {
    'integer': 'integer',
    'bigint': 'integer',
    'smallint': 'integer',
    'tinyint': 'integer',
    'float': 'float',
    'double': 'float',
    'boolean': 'boolean',
    'date': 'date',
    'timestamp': 'datetime',
    'timestamptz': 'datetime',
    'json': 'array',
    'array': 'array',
}

# SQL category -> validation rule
RULES = {
    'integer': 'integer',
    'bigint': 'integer',
    'smallint': 'integer',
    'tinyint': 'integer',
    'decimal': 'numeric',
    'float': 'numeric',
    'double': 'numeric',
    'boolean': 'boolean',
    'string': 'string',
    'char': 'string',
    'text': 'string',
    'date': 'date',
    'timestamp': 'date',
    'timestamptz': 'date',
    'uuid': 'uuid',
    'json': 'array',
    'array': 'array',
}

_AUTO_INCREMENT = {'integer': 'increments', 'bigint': 'id', 'smallint': 'smallIncrements',
                   'tinyint': 'tinyIncrements'}


def blueprint_column(field: FieldContext, single_key: bool) -> str:
    """Migration statement for one column."""
    category = field.type.category or ''
    if field.auto_increment and single_key and category in _AUTO_INCREMENT:
        return f"$table->{_AUTO_INCREMENT[category]}('{field.column}');"

    method = BLUEPRINT_METHODS.get(category, 'string')
    args = [f"'{field.column}'"]
    if method in ('string', 'char') and field.length:
        args.append(str(field.length))
    if method == 'decimal' and field.precision is not None:
        args.append(str(field.precision))
        args.append(str(field.scale if field.scale is not None else 0))
    statement = f"$table->{method}({', '.join(args)})"
    if field.nullable:
        statement += "->nullable()"
    if field.unique and not field.primary_key:
        statement += "->unique()"
    if field.primary_key and single_key:
        statement += "->primary()"
    return statement + ';'


def cast(field: FieldContext) -> str:
    if field.type.category == 'decimal' and field.scale is not None:
        return f"decimal:{field.scale}"
    return CASTS.get(field.type.category or '', '')


def rules(field: FieldContext, entity: EntityContext) -> List[str]:
    """Validation rules for one request attribute."""
    result = ['required' if field.required else 'nullable']
    rule = RULES.get(field.type.category or '')
    if rule:
        result.append(rule)
    if field.length and rule == 'string':
        result.append(f"max:{field.length}")
    relation = entity.relation_for(field.column)
    if relation is not None:
        result.append(f"exists:{relation.target_table},{relation.target_columns[0]}")
    return result


def _relation_classes(entity: EntityContext) -> List[str]:
    """Eloquent relation classes used by the model's association methods."""
    names = set()
    for r in entity.relations:
        if r.kind == RelationKind.MANY_TO_MANY:
            names.add('BelongsToMany')
        elif r.kind == RelationKind.ONE_TO_MANY:
            names.add('HasMany')
        elif r.owner:
            names.add('BelongsTo')
        else:
            names.add('HasOne')
    return sorted(names)


def _migration_name(entity: EntityContext) -> str:
    return f"database/migrations/0001_01_01_{entity.order + 1:06d}_create_{entity.table_name.lower()}_table.php"


def _context(entity: EntityContext, target: TargetContext) -> dict:
    return {
        'entity': entity,
        'target': target,
        'blueprint_column': blueprint_column,
        'cast': cast,
        'rules': lambda field: rules(field, entity),
        'relation_classes': _relation_classes(entity),
        'params': ['$' + c for c in (entity.key_columns or [entity.id_field.column])],
        'soft_delete': target.enabled('soft_delete') and entity.has_soft_delete_column,
    }


def emit_entity(entity: EntityContext, target: TargetContext) -> Dict[str, str]:
    """Model, migration, form request, resource and controller for one table."""
    ctx = _context(entity, target)
    name = entity.file_name
    return {
        f"app/Models/{name}.php": render("php_laravel/model.php.j2", **ctx),
        _migration_name(entity): render("php_laravel/migration.php.j2", **ctx),
        f"app/Http/Requests/{name}Request.php": render("php_laravel/request.php.j2", **ctx),
        f"app/Http/Resources/{name}Resource.php": render("php_laravel/resource.php.j2", **ctx),
        f"app/Http/Controllers/{name}Controller.php": render("php_laravel/controller.php.j2", **ctx),
    }


def emit_shared(target: TargetContext) -> Dict[str, str]:
    ctx = {'target': target}
    files = {
        "routes/api.php": render("php_laravel/routes.php.j2", **ctx),
        "composer.json": render("php_laravel/composer.json.j2", **ctx),
    }
    deferred = [
        (e, r) for e in target.entities for r in e.to_one_relations if r.deferred
    ]
    if deferred:
        path = f"database/migrations/0001_01_01_{len(target.entities) + 1:06d}_add_deferred_foreign_keys.php"
        files[path] = render("php_laravel/deferred_keys.php.j2", deferred=deferred, **ctx)
    return files


register_emitter('php', 'laravel', TargetEmitter(entity=emit_entity, shared=emit_shared))
