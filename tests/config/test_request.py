"""Tests for generation requests and feature toggles."""
from apiforge.config.request import DEFAULT_FEATURES, GenerationRequest, resolve_features


def test_request_defaults():
    """Only DDL and targets are required."""
    request = GenerationRequest(ddl="CREATE TABLE t (id INT)", targets=["go:gin"])
    assert request.base_name == "app"
    assert request.dialect == "postgres"
    assert request.features == {}


def test_defaults_applied(profiles):
    """Absent toggles take their documented defaults."""
    features = resolve_features({}, profiles.get("java:spring-boot"))
    assert features == DEFAULT_FEATURES


def test_requested_overrides_default(profiles):
    """Requested values win over defaults."""
    features = resolve_features(
        {'jwt_auth': True, 'pagination': False},
        profiles.get("java:spring-boot"),
    )
    assert features['jwt_auth'] is True
    assert features['pagination'] is False
    assert features['crud'] is True


def test_unsupported_feature_is_off(profiles):
    """A toggle the profile does not list stays off."""
    features = resolve_features({'openapi': True}, profiles.get("rust:axum"))
    assert features['openapi'] is False


def test_unknown_feature_is_noop(profiles):
    """Unknown toggle names are kept but never enabled."""
    features = resolve_features({'graphql': True}, profiles.get("go:gin"))
    assert features['graphql'] is False
