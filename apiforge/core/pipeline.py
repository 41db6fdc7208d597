"""Request orchestration: DDL text -> Schema -> one FileSet per target."""
import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

from apiforge.config.profiles import ProfileRegistry, TargetProfile, load_builtin_profiles
from apiforge.config.request import GenerationRequest
from apiforge.core.generator import GenerationError, generate_target
from apiforge.core.inference import Schema, infer
from apiforge.models.diagnostic import Diagnostic, DiagnosticType, Severity
from apiforge.models.files import FileSet
from apiforge.sql.ddl_parser import extract
from apiforge.targets.registry import UnsupportedTargetError

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


class NoEntityTablesError(GenerationError):
    """Raised when the DDL yields nothing to generate.

    Carries the diagnostics collected so far so callers can still explain why.
    """

    def __init__(self, message: str, diagnostics: Optional[List[Diagnostic]] = None):
        super().__init__(message)
        self.diagnostics = list(diagnostics or [])


class GenerationResult:
    """Schema, per-target file sets and every diagnostic of one request."""

    def __init__(
        self,
        schema: Schema,
        file_sets: Dict[str, FileSet],
        diagnostics: List[Diagnostic],
        targets: Optional[List[str]] = None,
    ):
        self.schema = schema
        self.file_sets = file_sets
        self.diagnostics = diagnostics
        self.targets = list(targets) if targets is not None else list(file_sets)

    @property
    def failed_targets(self) -> List[str]:
        """Requested targets that produced no FileSet."""
        return [t for t in self.targets if t not in self.file_sets]

    @property
    def has_errors(self) -> bool:
        return any(d.severity == Severity.ERROR for d in self.diagnostics)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "tables": [t.table_name for t in self.schema.tables],
            "entity_tables": list(self.schema.generation_order),
            "junction_tables": list(self.schema.junction_tables),
            "excluded_tables": list(self.schema.excluded_tables),
            "relationships": [r.model_dump(mode="json") for r in self.schema.relationships],
            "generation_order": list(self.schema.generation_order),
            "targets": {
                target: self.file_sets[target].paths if target in self.file_sets else None
                for target in self.targets
            },
            "diagnostics": [d.model_dump(mode="json") for d in self.diagnostics],
        }


def build_schema(ddl: str, dialect: str = "postgres") -> Tuple[Schema, List[Diagnostic]]:
    """Extract and infer without generating anything.

    Returns:
        Tuple of (Schema, diagnostics from extraction and inference)

    Raises:
        NoEntityTablesError: If no entity table survives extraction and inference
    """
    extraction = extract(ddl, dialect=dialect)
    diagnostics: List[Diagnostic] = list(extraction.diagnostics)

    if not extraction.tables:
        _log_diagnostics(diagnostics)
        raise NoEntityTablesError("No parsable CREATE TABLE statement found", diagnostics)

    schema = infer(extraction.tables, extraction.sequences)
    diagnostics.extend(schema.warnings)

    if not schema.generation_order:
        _log_diagnostics(diagnostics)
        raise NoEntityTablesError(
            "DDL contains only junction or audit tables; nothing to generate", diagnostics
        )

    logger.info(
        "Inferred %d entity tables and %d relationships",
        len(schema.generation_order), len(schema.relationships),
    )
    return schema, diagnostics


async def generate(
    request: GenerationRequest,
    profiles: Optional[ProfileRegistry] = None,
) -> GenerationResult:
    """Run one generation request end to end.

    Targets are isolated: an unknown or failing target becomes a diagnostic
    for that target and the others still produce their files.

    Args:
        request: DDL text, targets, naming scope and feature toggles
        profiles: Loaded target profiles; the built-in set when omitted

    Returns:
        GenerationResult with file sets keyed in requested target order

    Raises:
        NoEntityTablesError: If the DDL contains no entity table
    """
    profiles = profiles or load_builtin_profiles()

    # 1. Extract tables and infer relationships
    schema, diagnostics = build_schema(request.ddl, dialect=request.dialect)

    # 2. Resolve target profiles
    targets: List[str] = []
    for target in request.targets:
        key = target.strip().lower()
        if key not in targets:
            targets.append(key)

    resolved = []
    target_diagnostics: Dict[str, List[Diagnostic]] = {t: [] for t in targets}
    for target in targets:
        profile = profiles.get(target)
        if profile is None:
            target_diagnostics[target].append(_target_failure(
                DiagnosticType.UNSUPPORTED_TARGET, target,
                f"No target profile configured for '{target}'",
            ))
            continue
        resolved.append(profile)

    # 3. Generate every target concurrently
    outcomes = await asyncio.gather(*[
        _generate_one(schema, profile, request) for profile in resolved
    ])

    # 4. Collect results in requested order
    file_sets: Dict[str, FileSet] = {}
    for profile, (file_set, produced) in zip(resolved, outcomes):
        target_diagnostics[profile.key].extend(produced)
        if file_set is not None:
            file_sets[profile.key] = file_set

    for target in targets:
        diagnostics.extend(target_diagnostics[target])

    # 5. Surface diagnostics
    _log_diagnostics(diagnostics)

    ordered = {t: file_sets[t] for t in targets if t in file_sets}
    return GenerationResult(schema, ordered, diagnostics, targets=targets)


async def _generate_one(
    schema: Schema, profile: TargetProfile, request: GenerationRequest,
) -> Tuple[Optional[FileSet], List[Diagnostic]]:
    try:
        return await asyncio.to_thread(
            generate_target, schema, profile,
            features=request.features, base_name=request.base_name,
        )
    except UnsupportedTargetError as e:
        return None, [_target_failure(DiagnosticType.UNSUPPORTED_TARGET, profile.key, str(e))]
    except GenerationError as e:
        return None, [_target_failure(DiagnosticType.GENERATION_ERROR, profile.key, str(e))]


def _target_failure(diagnostic_type: DiagnosticType, target: str, message: str) -> Diagnostic:
    return Diagnostic(
        diagnostic_type=diagnostic_type,
        severity=Severity.ERROR,
        message=message,
        target=target,
    )


def _log_diagnostics(diagnostics: List[Diagnostic]) -> None:
    for diagnostic in diagnostics:
        prefix = f"[{diagnostic.target}] " if diagnostic.target else ""
        logger.log(
            _LOG_LEVELS[diagnostic.severity], "%s%s: %s",
            prefix, diagnostic.diagnostic_type.value, diagnostic.message,
        )
