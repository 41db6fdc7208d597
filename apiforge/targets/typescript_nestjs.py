"""TypeScript / NestJS emitter (TypeORM entities, class-validator DTOs)."""
from typing import Dict, List

from apiforge.targets.context import EntityContext, FieldContext, TargetContext
from apiforge.targets.registry import TargetEmitter, register_emitter
from apiforge.targets.templating import render

# SQL category -> TypeORM column type
TYPEORM_TYPES = {
    'integer': 'int',
    'bigint': 'bigint',
    'smallint': 'smallint',
    'tinyint': 'smallint',
    'decimal': 'decimal',
    'float': 'real',
    'double': 'double precision',
    'boolean': 'boolean',
    'string': 'varchar',
    'char': 'char',
    'text': 'text',
    'date': 'date',
    'time': 'time',
    'timestamp': 'timestamp',
    'timestamptz': 'timestamptz',
    'uuid': 'uuid',
    'json': 'json',
    'binary': 'bytea',
    'interval': 'interval',
    'enum': 'varchar',
    'array': 'simple-json',
}

_INTEGER_CATEGORIES = {'integer', 'bigint', 'smallint', 'tinyint'}


def column_options(field: FieldContext) -> str:
    """TypeORM column options object literal."""
    options = [f"name: '{field.column}'", f"type: '{TYPEORM_TYPES.get(field.type.category or '', 'varchar')}'"]
    if field.length:
        options.append(f"length: {field.length}")
    if field.precision is not None:
        options.append(f"precision: {field.precision}")
    if field.scale is not None:
        options.append(f"scale: {field.scale}")
    if field.nullable:
        options.append("nullable: true")
    if field.unique and not field.primary_key:
        options.append("unique: true")
    return '{ ' + ', '.join(options) + ' }'


def validators(field: FieldContext) -> List[str]:
    """class-validator decorators for one DTO property."""
    category = field.type.category
    result = [] if field.required else ['IsOptional()']
    if field.type.is_list:
        result.append('IsArray()')
    elif category in _INTEGER_CATEGORIES:
        result.append('IsInt()')
    elif field.type.base == 'number':
        result.append('IsNumber()')
    elif category == 'boolean':
        result.append('IsBoolean()')
    elif category == 'uuid':
        result.append('IsUUID()')
    elif field.type.base == 'Date':
        result.append('IsDate()')
    elif field.type.base == 'string':
        result.append('IsString()')
        if field.length:
            result.append(f'MaxLength({field.length})')
    return result


def _validator_imports(entity: EntityContext) -> List[str]:
    names = set()
    for field in entity.input_fields:
        names.update(v.split('(', 1)[0] for v in validators(field))
    return sorted(names)


def _related_imports(entity: EntityContext) -> List[EntityContext]:
    """Other entities referenced by an association, once each."""
    seen = {}
    for r in entity.relations:
        if r.target_class != entity.class_name:
            seen.setdefault(r.target_class, r)
    return list(seen.values())


def _context(entity: EntityContext, target: TargetContext) -> dict:
    return {
        'entity': entity,
        'target': target,
        'column_options': column_options,
        'validators': validators,
        'validator_imports': _validator_imports(entity),
        'related': _related_imports(entity),
        'soft_delete': target.enabled('soft_delete') and entity.has_soft_delete_column,
    }


def emit_entity(entity: EntityContext, target: TargetContext) -> Dict[str, str]:
    """Feature module for one table: entity, DTOs, service, controller."""
    ctx = _context(entity, target)
    name = entity.file_name
    root = f"src/{name}"
    return {
        f"{root}/{name}.entity.ts": render("typescript_nestjs/entity.ts.j2", **ctx),
        f"{root}/dto/create-{name}.dto.ts": render("typescript_nestjs/create_dto.ts.j2", **ctx),
        f"{root}/dto/update-{name}.dto.ts": render("typescript_nestjs/update_dto.ts.j2", **ctx),
        f"{root}/{name}.service.ts": render("typescript_nestjs/service.ts.j2", **ctx),
        f"{root}/{name}.controller.ts": render("typescript_nestjs/controller.ts.j2", **ctx),
        f"{root}/{name}.module.ts": render("typescript_nestjs/module.ts.j2", **ctx),
    }


def emit_shared(target: TargetContext) -> Dict[str, str]:
    ctx = {'target': target}
    files = {
        "src/main.ts": render("typescript_nestjs/main.ts.j2", **ctx),
        "src/app.module.ts": render("typescript_nestjs/app_module.ts.j2", **ctx),
        "package.json": render("typescript_nestjs/package.json.j2", **ctx),
    }
    if target.enabled('pagination'):
        files["src/common/pagination.ts"] = render("typescript_nestjs/pagination.ts.j2", **ctx)
    if target.enabled('jwt_auth'):
        files["src/auth/jwt-auth.guard.ts"] = render("typescript_nestjs/jwt_auth_guard.ts.j2", **ctx)
        files["src/auth/jwt.strategy.ts"] = render("typescript_nestjs/jwt_strategy.ts.j2", **ctx)
    return files


register_emitter('typescript', 'nestjs', TargetEmitter(entity=emit_entity, shared=emit_shared))
