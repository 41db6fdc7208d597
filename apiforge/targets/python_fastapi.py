"""Python / FastAPI emitter (SQLAlchemy 2.0 models, Pydantic schemas, routers)."""
from typing import Dict, List, Tuple

from apiforge.targets.context import EntityContext, FieldContext, TargetContext
from apiforge.targets.registry import TargetEmitter, register_emitter
from apiforge.targets.templating import render

# SQL category -> SQLAlchemy column type
SQLALCHEMY_TYPES = {
    'integer': 'Integer',
    'bigint': 'BigInteger',
    'smallint': 'SmallInteger',
    'tinyint': 'SmallInteger',
    'decimal': 'Numeric',
    'float': 'Float',
    'double': 'Double',
    'boolean': 'Boolean',
    'string': 'String',
    'char': 'String',
    'text': 'Text',
    'date': 'Date',
    'time': 'Time',
    'timestamp': 'DateTime',
    'timestamptz': 'DateTime',
    'uuid': 'Uuid',
    'json': 'JSON',
    'binary': 'LargeBinary',
    'interval': 'Interval',
    'enum': 'String',
    'array': 'JSON',
}


def column_type(field: FieldContext) -> str:
    """SQLAlchemy type expression for a column."""
    name = SQLALCHEMY_TYPES.get(field.type.category or '', 'String')
    if name == 'Numeric' and field.precision is not None:
        if field.scale is not None:
            return f"Numeric({field.precision}, {field.scale})"
        return f"Numeric({field.precision})"
    if name == 'String' and field.length:
        return f"String({field.length})"
    if field.type.category == 'timestamptz':
        return "DateTime(timezone=True)"
    return name


def _composite_foreign_keys(entity: EntityContext) -> List[Tuple[str, str]]:
    """Quoted (columns, references) for multi-column to-one associations."""
    result = []
    for r in entity.to_one_relations:
        if len(r.columns) > 1:
            columns = ', '.join(f'"{c}"' for c in r.columns)
            references = ', '.join(f'"{r.target_table}.{c}"' for c in r.target_columns)
            result.append((columns, references))
    return result


def _sqlalchemy_imports(entity: EntityContext) -> List[str]:
    names = {column_type(f).split('(', 1)[0] for f in entity.fields}
    if _composite_foreign_keys(entity):
        names.add('ForeignKeyConstraint')
    if any(f.foreign_key for f in entity.fields):
        names.add('ForeignKey')
    if any(r.join_table and r.owner for r in entity.relations):
        names.update({'Column', 'ForeignKey', 'Table'})
    return sorted(names)


def _key_fields(entity: EntityContext) -> List[FieldContext]:
    """Primary key, or the first column for a table without one (SQLAlchemy needs a key)."""
    return list(entity.primary_key) or [entity.id_field]


def _context(entity: EntityContext, target: TargetContext) -> dict:
    keys = _key_fields(entity)
    key_columns = {f.column for f in keys}
    by_table = {e.table_name.lower(): e for e in target.entities}
    by_column = {f.column.lower(): f.name for f in entity.fields}
    return {
        'entity': entity,
        'target': target,
        'key_fields': keys,
        'is_key': lambda field: field.column in key_columns,
        'column_type': column_type,
        'sqlalchemy_imports': _sqlalchemy_imports(entity),
        'composite_foreign_keys': _composite_foreign_keys(entity),
        'entity_for': lambda table: by_table[table.lower()],
        'field_name': lambda column: by_column.get(column.lower(), column),
        'soft_delete': target.enabled('soft_delete') and entity.has_soft_delete_column,
    }


def emit_entity(entity: EntityContext, target: TargetContext) -> Dict[str, str]:
    """Model, schemas, service and router modules for one table."""
    ctx = _context(entity, target)
    name = entity.file_name
    return {
        f"app/models/{name}.py": render("python_fastapi/model.py.j2", **ctx),
        f"app/schemas/{name}.py": render("python_fastapi/schema.py.j2", **ctx),
        f"app/services/{name}.py": render("python_fastapi/service.py.j2", **ctx),
        f"app/routers/{name}.py": render("python_fastapi/router.py.j2", **ctx),
    }


def emit_shared(target: TargetContext) -> Dict[str, str]:
    ctx = {'target': target}
    files = {
        "app/__init__.py": "",
        "app/models/__init__.py": render("python_fastapi/models_init.py.j2", **ctx),
        "app/schemas/__init__.py": "",
        "app/services/__init__.py": "",
        "app/routers/__init__.py": "",
        "app/database.py": render("python_fastapi/database.py.j2", **ctx),
        "app/main.py": render("python_fastapi/main.py.j2", **ctx),
        "requirements.txt": render("python_fastapi/requirements.txt.j2", **ctx),
    }
    if target.enabled('pagination'):
        files["app/pagination.py"] = render("python_fastapi/pagination.py.j2", **ctx)
    if target.enabled('jwt_auth'):
        files["app/auth.py"] = render("python_fastapi/auth.py.j2", **ctx)
    if target.enabled('rate_limiting'):
        files["app/rate_limit.py"] = render("python_fastapi/rate_limit.py.j2", **ctx)
    return files


register_emitter('python', 'fastapi', TargetEmitter(entity=emit_entity, shared=emit_shared))
