"""Emitter registry keyed by (language, framework)."""
import logging
from typing import Callable, Dict, List, NamedTuple, Tuple

logger = logging.getLogger(__name__)


class UnsupportedTargetError(ValueError):
    """Raised when no emitter is registered for a requested target."""


class TargetEmitter(NamedTuple):
    """Functions producing the files of one target.

    ``entity`` is called once per entity table in generation order and
    returns {relative path: text}; ``shared`` is called once with the whole
    target context for files that span entities (application entry point,
    auth and rate-limit scaffolding).
    """

    entity: Callable
    shared: Callable


# Registry of available emitters
# Format: (language, framework) -> TargetEmitter
EMITTERS: Dict[Tuple[str, str], TargetEmitter] = {}


def target_key(language: str, framework: str) -> str:
    return f"{language.lower()}:{framework.lower()}"


def parse_target(target: str) -> Tuple[str, str]:
    """Split ``language:framework`` into its parts.

    Raises:
        UnsupportedTargetError: If the identifier is not of that form
    """
    language, sep, framework = (target or '').strip().lower().partition(':')
    if not sep or not language or not framework:
        raise UnsupportedTargetError(
            f"Invalid target '{target}'. Expected 'language:framework', "
            f"e.g. 'java:spring-boot'"
        )
    return language, framework


def register_emitter(language: str, framework: str, emitter: TargetEmitter) -> None:
    """Register the emitter for one (language, framework) pair."""
    key = (language.lower(), framework.lower())
    if key in EMITTERS:
        logger.warning("Replacing emitter for %s", target_key(*key))
    EMITTERS[key] = emitter
    logger.debug("Registered emitter for target: %s", target_key(*key))


def get_emitter(target: str) -> TargetEmitter:
    """Get the emitter for a target identifier.

    Args:
        target: Target identifier, ``language:framework``

    Returns:
        TargetEmitter registered for the exact pair

    Raises:
        UnsupportedTargetError: If the pair is not registered
    """
    key = parse_target(target)

    if key not in EMITTERS:
        raise UnsupportedTargetError(
            f"Unsupported target: '{target}'. "
            f"Supported targets: {', '.join(list_supported_targets())}"
        )

    return EMITTERS[key]


def list_supported_targets() -> List[str]:
    """Get list of registered target identifiers, sorted."""
    return sorted(target_key(*key) for key in EMITTERS)
