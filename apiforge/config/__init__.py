"""Configuration management."""
from apiforge.config.profiles import (
    ProfileConfigError,
    ProfileRegistry,
    TargetProfile,
    load_builtin_profiles,
    load_profiles,
)
from apiforge.config.request import DEFAULT_FEATURES, GenerationRequest, resolve_features

__all__ = [
    'DEFAULT_FEATURES',
    'GenerationRequest',
    'ProfileConfigError',
    'ProfileRegistry',
    'TargetProfile',
    'load_builtin_profiles',
    'load_profiles',
    'resolve_features',
]
