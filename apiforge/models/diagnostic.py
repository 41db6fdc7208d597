"""Diagnostics returned to callers alongside generation results."""
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict


class DiagnosticType(str, Enum):
    """Kinds of diagnostics."""

    PARSE_ERROR = "PARSE_ERROR"
    CYCLE_WARNING = "CYCLE_WARNING"
    UNSUPPORTED_TARGET = "UNSUPPORTED_TARGET"
    UNMAPPED_TYPE = "UNMAPPED_TYPE"
    SCHEMA_WARNING = "SCHEMA_WARNING"
    GENERATION_ERROR = "GENERATION_ERROR"
    INFO = "INFO"


class Severity(str, Enum):
    """Severity levels for diagnostics."""

    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class Diagnostic(BaseModel):
    """A single non-exceptional problem surfaced to the end user."""

    model_config = ConfigDict(frozen=True)

    diagnostic_type: DiagnosticType
    severity: Severity
    message: str
    target: Optional[str] = None
    evidence: Dict[str, Any] = {}


class ParseError(Diagnostic):
    """One DDL statement could not be parsed. Never aborts the batch."""

    diagnostic_type: DiagnosticType = DiagnosticType.PARSE_ERROR
    severity: Severity = Severity.ERROR
    statement: str
    reason: str


class CycleWarning(Diagnostic):
    """Foreign keys form a cycle among two or more distinct tables."""

    diagnostic_type: DiagnosticType = DiagnosticType.CYCLE_WARNING
    severity: Severity = Severity.WARNING
    tables: Tuple[str, ...]


class UnmappedTypeWarning(Diagnostic):
    """A SQL type fell back to the target's generic representation."""

    diagnostic_type: DiagnosticType = DiagnosticType.UNMAPPED_TYPE
    severity: Severity = Severity.WARNING
    sql_type: str
    table_name: Optional[str] = None
    column_name: Optional[str] = None


def parse_error(statement: str, reason: str) -> ParseError:
    """Build a ParseError with a readable message for ``statement``."""
    snippet = " ".join(statement.split())
    if len(snippet) > 80:
        snippet = snippet[:77] + "..."
    return ParseError(
        message=f"Could not parse statement '{snippet}': {reason}",
        statement=statement,
        reason=reason,
    )


def has_errors(diagnostics: List[Diagnostic]) -> bool:
    return any(d.severity == Severity.ERROR for d in diagnostics)
