"""Kotlin / Spring Boot emitter."""
from typing import Dict

from apiforge.targets.context import EntityContext, TargetContext
from apiforge.targets.registry import TargetEmitter, register_emitter
from apiforge.targets.templating import render


def _package(target: TargetContext) -> str:
    return f"com.example.{target.package_name}"


def _id_type(entity: EntityContext) -> str:
    if entity.composite_key:
        return f"{entity.class_name}Key"
    return entity.id_field.type.base


def emit_entity(entity: EntityContext, target: TargetContext) -> Dict[str, str]:
    root = "src/main/kotlin/" + _package(target).replace('.', '/')
    ctx = {
        'entity': entity,
        'target': target,
        'pkg': _package(target),
        'id_type': _id_type(entity),
        'soft_delete': target.enabled('soft_delete') and entity.has_soft_delete_column,
    }
    name = entity.file_name
    return {
        f"{root}/entity/{name}.kt": render("kotlin_spring/entity.kt.j2", **ctx),
        f"{root}/dto/{name}Dto.kt": render("kotlin_spring/dto.kt.j2", **ctx),
        f"{root}/repository/{name}Repository.kt": render("kotlin_spring/repository.kt.j2", **ctx),
        f"{root}/service/{name}Service.kt": render("kotlin_spring/service.kt.j2", **ctx),
        f"{root}/controller/{name}Controller.kt": render("kotlin_spring/controller.kt.j2", **ctx),
    }


def emit_shared(target: TargetContext) -> Dict[str, str]:
    root = "src/main/kotlin/" + _package(target).replace('.', '/')
    ctx = {'target': target, 'pkg': _package(target)}
    files = {
        f"{root}/{target.class_prefix}Application.kt": render("kotlin_spring/application.kt.j2", **ctx),
    }
    if target.enabled('pagination'):
        files[f"{root}/dto/PageResponse.kt"] = render("kotlin_spring/page_response.kt.j2", **ctx)
    if target.enabled('jwt_auth'):
        files[f"{root}/security/SecurityConfig.kt"] = render("kotlin_spring/security_config.kt.j2", **ctx)
    if target.enabled('rate_limiting'):
        files[f"{root}/config/RateLimitFilter.kt"] = render("kotlin_spring/rate_limit_filter.kt.j2", **ctx)
    return files


register_emitter('kotlin', 'spring-boot', TargetEmitter(entity=emit_entity, shared=emit_shared))
