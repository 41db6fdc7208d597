"""Code emitters, one module per target framework.

Importing this package registers every built-in emitter.
"""
from apiforge.targets.registry import (
    EMITTERS,
    TargetEmitter,
    UnsupportedTargetError,
    get_emitter,
    list_supported_targets,
    parse_target,
    register_emitter,
    target_key,
)

# Register built-in emitters
from apiforge.targets import (  # noqa: F401,E402
    csharp_aspnetcore,
    go_web,
    java_spring,
    kotlin_spring,
    php_laravel,
    python_fastapi,
    rust_axum,
    typescript_nestjs,
)

__all__ = [
    'EMITTERS',
    'TargetEmitter',
    'UnsupportedTargetError',
    'get_emitter',
    'list_supported_targets',
    'parse_target',
    'register_emitter',
    'target_key',
]
