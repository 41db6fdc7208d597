"""Java / Spring Boot emitter (JPA entities, records, Spring Data repositories)."""
from typing import Dict

from apiforge.targets.context import EntityContext, FieldContext, TargetContext
from apiforge.targets.registry import TargetEmitter, register_emitter
from apiforge.targets.templating import render


def _package(target: TargetContext) -> str:
    return f"com.example.{target.package_name}"


def _source_root(target: TargetContext) -> str:
    return "src/main/java/" + _package(target).replace('.', '/')


def _boxed(target: TargetContext, type_name: str) -> str:
    return target.profile.nullability.wrappers.get(type_name, type_name)


def _java_type(target: TargetContext, field: FieldContext) -> str:
    """Declared member type; identifiers are boxed so unsaved entities can hold null."""
    if field.primary_key:
        return _boxed(target, field.type.base)
    return field.type.name


def _id_type(target: TargetContext, entity: EntityContext) -> str:
    if entity.composite_key:
        return f"{entity.class_name}.Key"
    return _boxed(target, entity.id_field.type.base)


def _context(entity: EntityContext, target: TargetContext) -> dict:
    return {
        'entity': entity,
        'target': target,
        'pkg': _package(target),
        'id_type': _id_type(target, entity),
        'java_type': lambda field: _java_type(target, field),
        'boxed': lambda type_name: _boxed(target, type_name),
        'soft_delete': target.enabled('soft_delete') and entity.has_soft_delete_column,
    }


def emit_entity(entity: EntityContext, target: TargetContext) -> Dict[str, str]:
    """Entity, DTO record, repository, service and controller for one table."""
    root = _source_root(target)
    ctx = _context(entity, target)
    name = entity.file_name
    return {
        f"{root}/entity/{name}.java": render("java_spring/entity.java.j2", **ctx),
        f"{root}/dto/{name}Dto.java": render("java_spring/dto.java.j2", **ctx),
        f"{root}/repository/{name}Repository.java": render("java_spring/repository.java.j2", **ctx),
        f"{root}/service/{name}Service.java": render("java_spring/service.java.j2", **ctx),
        f"{root}/controller/{name}Controller.java": render("java_spring/controller.java.j2", **ctx),
    }


def emit_shared(target: TargetContext) -> Dict[str, str]:
    root = _source_root(target)
    ctx = {'target': target, 'pkg': _package(target)}
    files = {
        f"{root}/{target.class_prefix}Application.java": render("java_spring/application.java.j2", **ctx),
        f"{root}/exception/NotFoundException.java": render("java_spring/not_found.java.j2", **ctx),
    }
    if target.enabled('pagination'):
        files[f"{root}/dto/PageResponse.java"] = render("java_spring/page_response.java.j2", **ctx)
    if target.enabled('jwt_auth'):
        files[f"{root}/security/JwtService.java"] = render("java_spring/jwt_service.java.j2", **ctx)
        files[f"{root}/security/SecurityConfig.java"] = render("java_spring/security_config.java.j2", **ctx)
    if target.enabled('rate_limiting'):
        files[f"{root}/config/RateLimitFilter.java"] = render("java_spring/rate_limit_filter.java.j2", **ctx)
    return files


register_emitter('java', 'spring-boot', TargetEmitter(entity=emit_entity, shared=emit_shared))
