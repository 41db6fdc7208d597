"""Go emitters (GORM models and repositories, Gin or Chi handlers).

Both frameworks share the model, repository and pagination packages; only
the HTTP layer differs.
"""
from typing import Dict, List, NamedTuple, Tuple

from apiforge.config.profiles import Casing, TargetProfile
from apiforge.mapping.naming import NameRole, apply_case, map_name, split_words
from apiforge.models.relationship import RelationKind
from apiforge.targets.context import EntityContext, FieldContext, RelationContext, TargetContext
from apiforge.targets.registry import TargetEmitter, register_emitter
from apiforge.targets.templating import render

_INTEGER_CATEGORIES = {'integer', 'bigint', 'smallint', 'tinyint'}


class Framework(NamedTuple):
    """HTTP-layer differences between the Go routers."""

    name: str
    # Expression reading a path parameter; ``{name}`` is the parameter
    param: str
    # Statement rejecting a malformed path parameter
    bad_request: str
    # Struct tag key used for request validation
    validate_tag: str
    # Route pattern segment for a path parameter
    segment: str


GIN = Framework(
    name='gin',
    param='c.Param("{name}")',
    bad_request='c.JSON(http.StatusBadRequest, gin.H{{"error": "invalid {name}"}})',
    validate_tag='binding',
    segment=':{name}',
)

CHI = Framework(
    name='chi',
    param='chi.URLParam(r, "{name}")',
    bad_request='http.Error(w, "invalid {name}", http.StatusBadRequest)',
    validate_tag='validate',
    segment='{{{name}}}',
)


def module_path(target: TargetContext) -> str:
    return target.project_name


def gorm_tag(field: FieldContext) -> str:
    parts = [f"column:{field.column}"]
    if field.primary_key:
        parts.append("primaryKey")
    if field.auto_increment:
        parts.append("autoIncrement")
    if not field.nullable and not field.primary_key:
        parts.append("not null")
    if field.unique and not field.primary_key:
        parts.append("unique")
    if field.length:
        parts.append(f"size:{field.length}")
    if field.precision is not None:
        parts.append(f"precision:{field.precision}")
    if field.scale is not None:
        parts.append(f"scale:{field.scale}")
    return ';'.join(parts)


def struct_tags(field: FieldContext, framework: Framework, validation: bool) -> str:
    tags = [f'gorm:"{gorm_tag(field)}"', f'json:"{field.snake_name}"']
    if validation and field.required and not field.managed:
        tags.append(f'{framework.validate_tag}:"required"')
    return '`' + ' '.join(tags) + '`'


def key_parsers(entity: EntityContext, framework: Framework) -> List[str]:
    """Go statements binding every key path parameter to a typed variable."""
    lines = []
    for f in entity.primary_key or (entity.id_field,):
        var = f"{f.camel_name}Key"
        param = framework.param.format(name=f.camel_name)
        fail = framework.bad_request.format(name=f.camel_name)
        if f.type.category in _INTEGER_CATEGORIES:
            lines.append(f"{var}Raw, err := strconv.ParseInt({param}, 10, 64)")
            lines.append(f"if err != nil {{\n\t\t{fail}\n\t\treturn nil, false\n\t}}")
            lines.append(f"{var} := {f.type.base}({var}Raw)")
        elif f.type.category == 'uuid':
            lines.append(f"{var}, err := uuid.Parse({param})")
            lines.append(f"if err != nil {{\n\t\t{fail}\n\t\treturn nil, false\n\t}}")
        else:
            lines.append(f"{var} := {param}")
    return lines


def _key_args(entity: EntityContext) -> List[str]:
    return [f"{f.camel_name}Key" for f in entity.primary_key or (entity.id_field,)]


def _key_params(entity: EntityContext) -> List[str]:
    return [f"{f.camel_name}Key {f.type.base}" for f in entity.primary_key or (entity.id_field,)]


def _key_path(entity: EntityContext, framework: Framework) -> str:
    keys = entity.primary_key or (entity.id_field,)
    return '/'.join(framework.segment.format(name=f.camel_name) for f in keys)


def _key_where(entity: EntityContext) -> str:
    keys = entity.primary_key or (entity.id_field,)
    return ' AND '.join(f"{f.column} = ?" for f in keys)


def _handler_imports(entity: EntityContext) -> List[str]:
    keys = entity.primary_key or (entity.id_field,)
    imports = set()
    if any(f.type.category in _INTEGER_CATEGORIES for f in keys):
        imports.add('strconv')
    if any(f.type.category == 'uuid' for f in keys):
        imports.add('github.com/google/uuid')
    return sorted(imports)


def relation_tag(relation: RelationContext, profile: TargetProfile) -> str:
    """GORM association tag for one relation view.

    For both sides of a one-to-many, ``foreignKey`` names the field on the
    table holding the key columns and ``references`` the referenced field.
    """
    json_tag = f'json:"{apply_case(split_words(relation.name), Casing.SNAKE)},omitempty"'
    if relation.kind == RelationKind.MANY_TO_MANY:
        gorm = (f"many2many:{relation.join_table};joinForeignKey:{relation.columns[0]};"
                f"joinReferences:{relation.target_columns[0]}")
    else:
        keys = ','.join(map_name(c, profile, NameRole.FIELD) for c in relation.columns)
        refs = ','.join(map_name(c, profile, NameRole.FIELD) for c in relation.target_columns)
        gorm = f"foreignKey:{keys};references:{refs}"
    return f'`gorm:"{gorm}" {json_tag}`'


def _model_imports(entity: EntityContext, soft_delete: bool) -> List[str]:
    imports = set()
    for f in entity.fields:
        if soft_delete and f.column.lower() == 'deleted_at':
            continue
        imports.update(f.type.imports)
    if soft_delete:
        imports.add('gorm.io/gorm')
    return sorted(imports)


def _third_party(target: TargetContext) -> List[Tuple[str, str]]:
    """Module paths imported by generated models that go.mod must require."""
    versions = {'github.com/google/uuid': 'v1.6.0', 'github.com/shopspring/decimal': 'v1.4.0'}
    used = {i for e in target.entities for f in e.fields for i in f.type.imports}
    used.update(i for e in target.entities for i in _handler_imports(e))
    return sorted((path, versions[path]) for path in used if path in versions)


def _context(entity: EntityContext, target: TargetContext, framework: Framework) -> dict:
    soft_delete = target.enabled('soft_delete') and entity.has_soft_delete_column
    return {
        'entity': entity,
        'target': target,
        'framework': framework,
        'module': module_path(target),
        'struct_tags': lambda f: struct_tags(f, framework, target.enabled('validation')),
        'relation_tag': lambda r: relation_tag(r, target.profile),
        'model_imports': _model_imports(entity, soft_delete),
        'handler_imports': _handler_imports(entity),
        'key_parsers': key_parsers(entity, framework),
        'key_args': _key_args(entity),
        'key_params': _key_params(entity),
        'key_path': _key_path(entity, framework),
        'key_where': _key_where(entity),
        'soft_delete': soft_delete,
    }


def _emitter(framework: Framework) -> TargetEmitter:
    def emit_entity(entity: EntityContext, target: TargetContext) -> Dict[str, str]:
        ctx = _context(entity, target, framework)
        name = entity.file_name
        return {
            f"internal/models/{name}.go": render("go/model.go.j2", **ctx),
            f"internal/repository/{name}_repository.go": render("go/repository.go.j2", **ctx),
            f"internal/handlers/{name}_handler.go": render(f"go/{framework.name}_handler.go.j2", **ctx),
        }

    def emit_shared(target: TargetContext) -> Dict[str, str]:
        ctx = {
            'target': target,
            'framework': framework,
            'module': module_path(target),
            'third_party': _third_party(target),
        }
        files = {
            "go.mod": render("go/go.mod.j2", **ctx),
            "cmd/server/main.go": render(f"go/{framework.name}_main.go.j2", **ctx),
        }
        if framework is CHI:
            files["internal/handlers/respond.go"] = render("go/chi_respond.go.j2", **ctx)
        if target.enabled('pagination'):
            files["internal/pagination/pagination.go"] = render("go/pagination.go.j2", **ctx)
        if target.enabled('jwt_auth'):
            files["internal/middleware/auth.go"] = render("go/auth.go.j2", **ctx)
        if target.enabled('rate_limiting'):
            files["internal/middleware/rate_limit.go"] = render("go/rate_limit.go.j2", **ctx)
        return files

    return TargetEmitter(entity=emit_entity, shared=emit_shared)


register_emitter('go', 'gin', _emitter(GIN))
register_emitter('go', 'chi', _emitter(CHI))
