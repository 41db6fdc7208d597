"""Tests for target profile loading."""
import pytest
from pydantic import ValidationError

from apiforge.config.profiles import (
    ProfileConfigError,
    TargetProfile,
    load_builtin_profiles,
    load_profiles,
)

MINIMAL_PROFILE = """
targets:
  - language: Go
    framework: Gin
    types:
      integer: int32
      string: string
    fallback_type: string
    decimal: {fixed_point: false, degrade_to: string}
    features: [crud, jwt_auth]
"""


def test_builtin_profiles():
    """Every built-in target has a profile."""
    registry = load_builtin_profiles()
    assert sorted(registry.keys()) == [
        'csharp:aspnetcore', 'go:chi', 'go:gin', 'java:spring-boot', 'kotlin:spring-boot',
        'php:laravel', 'python:fastapi', 'rust:axum', 'typescript:nestjs',
    ]
    assert all(isinstance(p, TargetProfile) for p in registry.profiles.values())


def test_builtin_profiles_loaded_once():
    """The built-in registry is cached for the process."""
    assert load_builtin_profiles() is load_builtin_profiles()


def test_profile_key_and_directory():
    """Keys are lower-case; the directory defaults from the key."""
    profile = load_builtin_profiles().get('JAVA:Spring-Boot')
    assert profile.key == 'java:spring-boot'
    assert profile.output_directory == 'java-spring-boot'
    assert profile.supports('jwt_auth') is True


def test_load_explicit_file(tmp_path):
    """An explicit path has the highest priority."""
    path = tmp_path / "profiles.yaml"
    path.write_text(MINIMAL_PROFILE)
    registry = load_profiles(str(path))

    assert registry.keys() == ['go:gin']
    profile = registry.get('go:gin')
    assert profile.output_directory == 'go-gin'
    assert profile.supports('jwt_auth') is True
    assert profile.supports('rate_limiting') is False
    assert registry.source == str(path)


def test_load_from_environment(tmp_path, monkeypatch):
    """$APIFORGE_PROFILES is used when no explicit file is given."""
    path = tmp_path / "env.yaml"
    path.write_text(MINIMAL_PROFILE)
    monkeypatch.setenv('APIFORGE_PROFILES', str(path))

    assert load_profiles().keys() == ['go:gin']


def test_explicit_file_overrides_environment(tmp_path, monkeypatch):
    """Explicit path wins over the environment variable."""
    monkeypatch.setenv('APIFORGE_PROFILES', str(tmp_path / "does-not-exist.yaml"))
    path = tmp_path / "profiles.yaml"
    path.write_text(MINIMAL_PROFILE)

    assert load_profiles(str(path)).keys() == ['go:gin']


def test_defaults_to_builtin(monkeypatch):
    """Without a path or environment variable the built-in file is used."""
    monkeypatch.delenv('APIFORGE_PROFILES', raising=False)
    assert len(load_profiles().keys()) == 9


def test_missing_file(tmp_path):
    """A missing file is a configuration error."""
    with pytest.raises(ProfileConfigError, match="not found"):
        load_profiles(str(tmp_path / "missing.yaml"))


def test_invalid_yaml(tmp_path):
    """Unparsable YAML is a configuration error."""
    path = tmp_path / "broken.yaml"
    path.write_text("targets: [unclosed")
    with pytest.raises(ProfileConfigError, match="Invalid YAML"):
        load_profiles(str(path))


def test_yaml_not_a_dictionary(tmp_path):
    """The document must be a mapping."""
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ProfileConfigError, match="dictionary"):
        load_profiles(str(path))


def test_empty_targets_list(tmp_path):
    """At least one profile is required."""
    path = tmp_path / "empty.yaml"
    path.write_text("targets: []\n")
    with pytest.raises(ProfileConfigError, match="non-empty"):
        load_profiles(str(path))


def test_invalid_profile(tmp_path):
    """Missing required fields are reported with the target name."""
    path = tmp_path / "invalid.yaml"
    path.write_text("targets:\n  - language: go\n    framework: gin\n")
    with pytest.raises(ProfileConfigError, match="go:gin"):
        load_profiles(str(path))


def test_duplicate_profile(tmp_path):
    """Two profiles for one target are rejected."""
    body = MINIMAL_PROFILE + MINIMAL_PROFILE.replace("targets:\n", "")
    path = tmp_path / "dupe.yaml"
    path.write_text(body)
    with pytest.raises(ProfileConfigError, match="Duplicate"):
        load_profiles(str(path))


def test_profiles_are_immutable():
    """Profiles are frozen configuration."""
    profile = load_builtin_profiles().get('go:gin')
    with pytest.raises(ValidationError):
        profile.fallback_type = 'other'
