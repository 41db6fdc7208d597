"""Generation request and feature toggles."""
import logging
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field

from apiforge.config.profiles import TargetProfile

logger = logging.getLogger(__name__)

# Defaults applied when a toggle is absent from the request
DEFAULT_FEATURES: Dict[str, bool] = {
    'crud': True,
    'pagination': True,
    'validation': True,
    'openapi': True,
    'soft_delete': False,
    'jwt_auth': False,
    'rate_limiting': False,
}


class GenerationRequest(BaseModel):
    """External input for one generation run."""

    model_config = ConfigDict(frozen=True)

    ddl: str
    targets: List[str]
    base_name: str = "app"
    dialect: str = "postgres"
    features: Dict[str, bool] = Field(default_factory=dict)


def resolve_features(requested: Dict[str, bool], profile: TargetProfile) -> Dict[str, bool]:
    """Effective toggles for one target.

    Requested values override the defaults; a toggle is only on when the
    profile supports it. Unknown toggle names are kept (always off) so
    emitters can look them up without failing.
    """
    merged = dict(DEFAULT_FEATURES)
    for name, value in (requested or {}).items():
        if name not in DEFAULT_FEATURES:
            logger.debug("Unknown feature toggle '%s' ignored", name)
        merged[name] = bool(value)

    return {
        name: enabled and profile.supports(name)
        for name, enabled in sorted(merged.items())
    }
