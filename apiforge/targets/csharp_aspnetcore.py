"""C# / ASP.NET Core emitter (EF Core entities, controllers, DbContext)."""
from typing import Dict

from apiforge.targets.context import EntityContext, TargetContext
from apiforge.targets.registry import TargetEmitter, register_emitter
from apiforge.targets.templating import render

# Reference types that need a null-forgiving initializer when not nullable
REFERENCE_TYPES = {'string', 'byte[]', 'JsonDocument'}


def _namespace(target: TargetContext) -> str:
    return target.class_prefix


def _keys(entity: EntityContext):
    return entity.primary_key or (entity.id_field,)


def _context(entity: EntityContext, target: TargetContext) -> dict:
    keys = _keys(entity)
    return {
        'entity': entity,
        'target': target,
        'ns': _namespace(target),
        'reference_types': REFERENCE_TYPES,
        'route': '/'.join('{' + f.camel_name + '}' for f in keys),
        'key_params': ', '.join(f"{f.type.base} {f.camel_name}" for f in keys),
        'key_match': ' && '.join(f"e.{f.name} == {f.camel_name}" for f in keys),
        'route_values': ', '.join(f"{f.camel_name} = entity.{f.name}" for f in keys),
        'order_key': keys[0].name,
        'soft_delete': target.enabled('soft_delete') and entity.has_soft_delete_column,
    }


def emit_entity(entity: EntityContext, target: TargetContext) -> Dict[str, str]:
    """Entity, DTO and controller for one table."""
    ctx = _context(entity, target)
    name = entity.file_name
    return {
        f"Models/{name}.cs": render("csharp_aspnetcore/entity.cs.j2", **ctx),
        f"Dtos/{name}Dto.cs": render("csharp_aspnetcore/dto.cs.j2", **ctx),
        f"Controllers/{name}Controller.cs": render("csharp_aspnetcore/controller.cs.j2", **ctx),
    }


def emit_shared(target: TargetContext) -> Dict[str, str]:
    ctx = {'target': target, 'ns': _namespace(target)}
    files = {
        "Data/AppDbContext.cs": render("csharp_aspnetcore/db_context.cs.j2", **ctx),
        "Program.cs": render("csharp_aspnetcore/program.cs.j2", **ctx),
        f"{target.class_prefix}.csproj": render("csharp_aspnetcore/project.csproj.j2", **ctx),
    }
    if target.enabled('pagination'):
        files["Dtos/PageResponse.cs"] = render("csharp_aspnetcore/page_response.cs.j2", **ctx)
    return files


register_emitter('csharp', 'aspnetcore', TargetEmitter(entity=emit_entity, shared=emit_shared))
