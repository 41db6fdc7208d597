"""Target profile configuration management."""
import logging
import os
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

logger = logging.getLogger(__name__)

PROFILES_ENV_VAR = 'APIFORGE_PROFILES'
BUILTIN_PROFILES_PATH = Path(__file__).parent / 'targets.yaml'


class ProfileConfigError(ValueError):
    """Raised when target profile loading fails."""


class Casing(str, Enum):
    PASCAL = "pascal"
    CAMEL = "camel"
    SNAKE = "snake"
    KEBAB = "kebab"
    LOWER = "lower"
    UPPER_SNAKE = "upper_snake"


class Number(str, Enum):
    SINGULAR = "singular"
    PLURAL = "plural"
    ASIS = "asis"


class NamingRule(BaseModel):
    """Casing and grammatical number for one naming role."""

    model_config = ConfigDict(frozen=True)

    case: Casing
    number: Number = Number.ASIS


class NamingConventions(BaseModel):
    """One naming rule per role."""

    model_config = ConfigDict(frozen=True)

    entity: NamingRule = NamingRule(case=Casing.PASCAL, number=Number.SINGULAR)
    field: NamingRule = NamingRule(case=Casing.CAMEL)
    route: NamingRule = NamingRule(case=Casing.KEBAB, number=Number.PLURAL)
    file: NamingRule = NamingRule(case=Casing.PASCAL, number=Number.SINGULAR)
    table: NamingRule = NamingRule(case=Casing.SNAKE)


class DecimalRule(BaseModel):
    """How DECIMAL/NUMERIC columns are represented.

    When ``fixed_point`` is false the column degrades to the ``degrade_to``
    category and precision/scale are dropped.
    """

    model_config = ConfigDict(frozen=True)

    fixed_point: bool
    type: Optional[str] = None
    degrade_to: str = "double"


class NullabilityRule(BaseModel):
    """How a nullable column is represented in the target type system."""

    model_config = ConfigDict(frozen=True)

    style: str = "none"  # wrapper | format | none
    wrappers: Dict[str, str] = {}
    format: str = "{type}"
    exempt: Tuple[str, ...] = ()


class TargetProfile(BaseModel):
    """Static configuration for one (language, framework) target."""

    model_config = ConfigDict(frozen=True)

    language: str
    framework: str
    display_name: str = ""
    directory: str = ""
    file_extension: str = ""
    naming: NamingConventions = NamingConventions()
    reserved_words: Tuple[str, ...] = ()
    reserved_format: str = "{name}_"
    types: Dict[str, str]
    overrides: Dict[str, str] = {}
    imports: Dict[str, str] = {}
    list_format: str = "{type}[]"
    list_import: Optional[str] = None
    fallback_type: str
    decimal: DecimalRule
    nullability: NullabilityRule = NullabilityRule()
    features: Tuple[str, ...] = ()
    dependencies: Dict[str, str] = {}

    @property
    def key(self) -> str:
        """Registry key, ``language:framework`` in lower case."""
        return f"{self.language.lower()}:{self.framework.lower()}"

    @property
    def output_directory(self) -> str:
        return self.directory or self.key.replace(':', '-')

    def supports(self, feature: str) -> bool:
        return feature in self.features


class ProfileRegistry(BaseModel):
    """All loaded target profiles, keyed by ``language:framework``."""

    model_config = ConfigDict(frozen=True)

    profiles: Dict[str, TargetProfile]
    source: str = ""

    def get(self, target: str) -> Optional[TargetProfile]:
        return self.profiles.get(target.strip().lower())

    def keys(self) -> List[str]:
        return list(self.profiles)


def load_profiles(profiles_file: Optional[str] = None) -> ProfileRegistry:
    """Load target profiles.

    Loads configuration with the following priority:
    1. Explicit --profiles path (highest priority)
    2. $APIFORGE_PROFILES
    3. Built-in targets.yaml shipped with the package

    Args:
        profiles_file: Optional explicit profiles file path

    Returns:
        ProfileRegistry with every profile in the file

    Raises:
        ProfileConfigError: If the file is missing, not YAML, or a profile is invalid
    """
    if profiles_file:
        registry = _load_registry(str(profiles_file))
        logger.info("Loaded target profiles from: %s", profiles_file)
        return registry

    env_path = os.getenv(PROFILES_ENV_VAR)
    if env_path:
        registry = _load_registry(env_path)
        logger.info("Loaded target profiles from $%s: %s", PROFILES_ENV_VAR, env_path)
        return registry

    return load_builtin_profiles()


@lru_cache(maxsize=1)
def load_builtin_profiles() -> ProfileRegistry:
    """Load the profiles shipped with the package, once per process."""
    registry = _load_registry(str(BUILTIN_PROFILES_PATH))
    logger.debug("Loaded %d built-in target profiles", len(registry.profiles))
    return registry


def _load_registry(file_path: str) -> ProfileRegistry:
    data = _load_yaml_config(file_path)

    entries = data.get('targets')
    if not isinstance(entries, list) or not entries:
        raise ProfileConfigError(
            f"Profiles file must contain a non-empty 'targets' list: {file_path}"
        )

    profiles: Dict[str, TargetProfile] = {}
    for entry in entries:
        profile = _parse_profile(entry, file_path)
        if profile.key in profiles:
            raise ProfileConfigError(f"Duplicate target profile '{profile.key}' in {file_path}")
        profiles[profile.key] = profile

    return ProfileRegistry(profiles=profiles, source=file_path)


def _parse_profile(entry: Any, file_path: str) -> TargetProfile:
    if not isinstance(entry, dict):
        raise ProfileConfigError(f"Each target profile must be a dictionary: {file_path}")
    try:
        return TargetProfile(**entry)
    except (ValidationError, TypeError) as e:
        name = f"{entry.get('language', '?')}:{entry.get('framework', '?')}"
        raise ProfileConfigError(f"Invalid target profile '{name}' in {file_path}\n{e}") from e


def _load_yaml_config(file_path: str) -> Dict[str, Any]:
    """Load YAML configuration file.

    Raises:
        ProfileConfigError: If file is invalid or missing
    """
    try:
        if not os.path.exists(file_path):
            raise ProfileConfigError(f"Configuration file not found: {file_path}")

        with open(file_path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f)

        if not isinstance(config, dict):
            raise ProfileConfigError(
                f"Configuration file must contain a YAML dictionary: {file_path}"
            )

        return config

    except yaml.YAMLError as e:
        raise ProfileConfigError(
            f"Invalid YAML configuration: {file_path}\n{e}"
        ) from e
    except OSError as e:
        raise ProfileConfigError(
            f"Error reading configuration file: {file_path}\n{e}"
        ) from e
