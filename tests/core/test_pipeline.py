"""Tests for end-to-end request orchestration."""
from unittest.mock import patch

import pytest

from apiforge.config.profiles import ProfileRegistry
from apiforge.config.request import GenerationRequest
from apiforge.core.pipeline import GenerationResult, NoEntityTablesError, build_schema, generate
from apiforge.models.diagnostic import DiagnosticType, Severity
from apiforge.targets import EMITTERS, TargetEmitter


@pytest.mark.asyncio
async def test_generate_scenario(scenario_ddl, profiles):
    """Junction tables shape relationships but are never generated."""
    request = GenerationRequest(ddl=scenario_ddl, targets=['java:spring-boot', 'python:fastapi'])
    result = await generate(request, profiles)

    assert result.schema.generation_order == ('categories', 'products', 'tags')
    assert result.schema.junction_tables == ('product_tags',)
    assert list(result.file_sets) == ['java:spring-boot', 'python:fastapi']
    assert result.failed_targets == []
    assert not result.has_errors

    java_paths = result.file_sets['java:spring-boot'].paths
    assert not any('ProductTag' in path for path in java_paths)


@pytest.mark.asyncio
async def test_unknown_target_is_isolated(scenario_ddl, profiles):
    """An unknown target fails alone; the others still generate."""
    request = GenerationRequest(ddl=scenario_ddl, targets=['cobol:cics', 'go:gin'])
    result = await generate(request, profiles)

    assert list(result.file_sets) == ['go:gin']
    assert result.failed_targets == ['cobol:cics']
    failures = [d for d in result.diagnostics if d.target == 'cobol:cics']
    assert len(failures) == 1
    assert failures[0].diagnostic_type == DiagnosticType.UNSUPPORTED_TARGET
    assert failures[0].severity == Severity.ERROR


@pytest.mark.asyncio
async def test_profile_without_emitter(scenario_ddl, profiles):
    """A configured profile with no registered emitter is reported, not raised."""
    echo = profiles.get('go:gin').model_copy(update={'framework': 'echo'})
    registry = ProfileRegistry(profiles={**profiles.profiles, echo.key: echo})

    request = GenerationRequest(ddl=scenario_ddl, targets=['go:echo', 'go:gin'])
    result = await generate(request, registry)

    assert result.failed_targets == ['go:echo']
    assert 'go:gin' in result.file_sets
    assert any(
        d.target == 'go:echo' and d.diagnostic_type == DiagnosticType.UNSUPPORTED_TARGET
        for d in result.diagnostics
    )


@pytest.mark.asyncio
async def test_targets_deduplicated_in_request_order(scenario_ddl, profiles):
    """Repeated targets generate once; order follows the request."""
    request = GenerationRequest(
        ddl=scenario_ddl,
        targets=['rust:axum', 'Go:Gin', 'rust:axum'],
    )
    result = await generate(request, profiles)
    assert result.targets == ['rust:axum', 'go:gin']
    assert list(result.file_sets) == ['rust:axum', 'go:gin']


@pytest.mark.asyncio
async def test_parse_errors_do_not_abort(scenario_ddl, profiles):
    """A malformed statement is reported and the rest still generates."""
    ddl = scenario_ddl + "\nCREATE TABLE broken (id INT PRIMARY KEY;\n"
    result = await generate(GenerationRequest(ddl=ddl, targets=['go:gin']), profiles)

    assert 'go:gin' in result.file_sets
    assert any(d.diagnostic_type == DiagnosticType.PARSE_ERROR for d in result.diagnostics)
    assert result.has_errors
    assert result.failed_targets == []


@pytest.mark.asyncio
async def test_no_entity_tables(profiles):
    """DDL without tables fails the whole request."""
    request = GenerationRequest(ddl="CREATE SEQUENCE order_seq;", targets=['go:gin'])
    with pytest.raises(NoEntityTablesError):
        await generate(request, profiles)


@pytest.mark.asyncio
async def test_identical_requests_identical_output(shop_ddl, profiles):
    """Generation is deterministic across runs."""
    request = GenerationRequest(ddl=shop_ddl, targets=['typescript:nestjs', 'csharp:aspnetcore'])
    first = await generate(request, profiles)
    second = await generate(request, profiles)
    for target in request.targets:
        assert first.file_sets[target].files == second.file_sets[target].files


def test_build_schema_collects_diagnostics(shop_ddl):
    """Inspection runs extraction and inference only."""
    schema, diagnostics = build_schema(shop_ddl)
    assert list(schema.generation_order) == [
        'categories', 'products', 'tags', 'customers', 'customer_profiles', 'orders',
    ]
    assert not any(d.severity == Severity.ERROR for d in diagnostics)


def test_build_schema_no_tables():
    """Unparseable input carries its parse errors on the exception."""
    with pytest.raises(NoEntityTablesError) as exc:
        build_schema("CREATE TABLE broken (id INT PRIMARY KEY;")
    assert any(d.diagnostic_type == DiagnosticType.PARSE_ERROR for d in exc.value.diagnostics)


def test_result_to_dict(scenario_ddl):
    """Failed targets appear with no paths."""
    schema, diagnostics = build_schema(scenario_ddl)
    result = GenerationResult(schema, {}, diagnostics, targets=['go:gin'])
    data = result.to_dict()
    assert data['targets'] == {'go:gin': None}
    assert data['junction_tables'] == ['product_tags']
    assert data['tables'] == ['categories', 'products', 'tags', 'product_tags']


@pytest.mark.asyncio
async def test_emitter_bug_is_isolated(scenario_ddl, profiles):
    """An emitter raising an unexpected error fails only its own target."""
    def broken(entity, target):
        raise KeyError(entity.table_name)

    emitter = TargetEmitter(entity=broken, shared=lambda target: {})
    request = GenerationRequest(ddl=scenario_ddl, targets=['go:gin', 'rust:axum'])
    with patch.dict(EMITTERS, {('go', 'gin'): emitter}):
        result = await generate(request, profiles)

    assert result.failed_targets == ['go:gin']
    assert 'rust:axum' in result.file_sets
    failure = next(d for d in result.diagnostics if d.target == 'go:gin')
    assert failure.diagnostic_type == DiagnosticType.GENERATION_ERROR
