"""Per-target emission: Schema + profile + toggles -> FileSet."""
import logging
from typing import Dict, List, Optional, Tuple

from jinja2 import TemplateError

from apiforge.config.profiles import TargetProfile
from apiforge.config.request import resolve_features
from apiforge.core.inference import Schema
from apiforge.models.diagnostic import Diagnostic
from apiforge.models.files import FileSet
from apiforge.targets import get_emitter
from apiforge.targets.context import build_target_context

logger = logging.getLogger(__name__)


class GenerationError(RuntimeError):
    """Raised when a target cannot produce a consistent file set."""


def _merge(files: Dict[str, str], produced: Dict[str, str], origin: str) -> None:
    for path, content in produced.items():
        normalized = path.strip().lstrip('/')
        if normalized in files:
            raise GenerationError(f"Emitter produced '{normalized}' twice ({origin})")
        files[normalized] = content


def generate_target(
    schema: Schema,
    profile: TargetProfile,
    features: Optional[Dict[str, bool]] = None,
    base_name: str = "app",
) -> Tuple[FileSet, List[Diagnostic]]:
    """Generate every file of one target.

    The emitter is resolved before any work is done, so an unregistered
    target fails without producing files. Output is a pure function of the
    inputs: paths are sorted and contents are UTF-8 encoded.

    Args:
        schema: Inferred schema (read-only)
        profile: Target profile
        features: Requested feature toggles; defaults apply to absent names
        base_name: Naming scope for packages, modules and the project

    Returns:
        Tuple of (FileSet, UnmappedTypeWarning diagnostics)

    Raises:
        UnsupportedTargetError: If no emitter is registered for the profile
        GenerationError: If context building or rendering fails, or two files
            share a path
    """
    emitter = get_emitter(profile.key)

    files: Dict[str, str] = {}
    try:
        toggles = resolve_features(features or {}, profile)
        context, warnings = build_target_context(schema, profile, toggles, base_name=base_name)
        for entity in context.entities:
            _merge(files, emitter.entity(entity, context), entity.table_name)
        _merge(files, emitter.shared(context), 'shared')
    except TemplateError as e:
        raise GenerationError(f"Template rendering failed for {profile.key}: {e}") from e
    except (LookupError, AttributeError, TypeError, ValueError) as e:
        raise GenerationError(f"Emitter for {profile.key} failed: {e!r}") from e

    logger.info("Generated %d files for %s", len(files), profile.key)
    file_set = FileSet(
        target=profile.key,
        files={path: files[path].encode('utf-8') for path in sorted(files)},
    )
    return file_set, warnings
