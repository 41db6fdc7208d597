"""Command-line interface for apiforge - schema-driven API project generator."""
import argparse
import asyncio
import logging
import sys
from typing import Dict, List, Optional

from apiforge.config.profiles import ProfileConfigError, ProfileRegistry, load_profiles
from apiforge.config.request import DEFAULT_FEATURES, GenerationRequest
from apiforge.core.assemble import assemble, load_scaffolding, write_zip
from apiforge.core.generator import GenerationError
from apiforge.core.pipeline import GenerationResult, NoEntityTablesError, build_schema, generate
from apiforge.output.json import render_json
from apiforge.output.markdown import render_markdown
from apiforge.targets import list_supported_targets

logger = logging.getLogger(__name__)

DIALECTS = ["postgres", "mysql", "sqlite", "tsql", "oracle", "snowflake"]


def configure_logging(verbose: bool = False) -> None:
    """Send log records to stderr; DEBUG with --verbose, WARNING otherwise."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def read_ddl(path: str) -> str:
    """Read a DDL file; ``-`` reads standard input."""
    if path == "-":
        return sys.stdin.read()
    with open(path, 'r', encoding='utf-8') as f:
        return f.read()


def parse_features(enabled: Optional[List[str]], disabled: Optional[List[str]]) -> Dict[str, bool]:
    """Turn repeated --feature / --no-feature flags into named booleans."""
    features: Dict[str, bool] = {}
    for name in enabled or []:
        features[name.strip().lower()] = True
    for name in disabled or []:
        features[name.strip().lower()] = False
    return features


def _render(result: GenerationResult, output_format: str) -> str:
    if output_format == "json":
        return render_json(result)
    return render_markdown(result)


def _print_diagnostics(diagnostics) -> None:
    for diagnostic in diagnostics:
        scope = f" [{diagnostic.target}]" if diagnostic.target else ""
        print(
            f"{diagnostic.severity.value}{scope} {diagnostic.diagnostic_type.value}: "
            f"{diagnostic.message}",
            file=sys.stderr,
        )


def _load_registry(args) -> ProfileRegistry:
    return load_profiles(getattr(args, 'profiles', None))


async def run_generate(args):
    """Async execution wrapper for generate command."""
    try:
        # 1. Load configuration and inputs
        profiles = _load_registry(args)
        request = GenerationRequest(
            ddl=read_ddl(args.schema),
            targets=args.target,
            base_name=args.base_name,
            dialect=args.dialect,
            features=parse_features(args.feature, args.no_feature),
        )
        scaffolding = load_scaffolding(args.scaffold) if args.scaffold else None

        # 2. Generate every requested target
        result = await generate(request, profiles)
        _print_diagnostics(result.diagnostics)

        # 3. Assemble and write the archive
        if result.file_sets:
            manifest = assemble(
                result.file_sets, scaffolding,
                layout=args.layout, target_count=len(result.targets),
            )
            write_zip(manifest, args.out, root=args.root)
            print(f"Wrote {len(manifest)} files to {args.out}", file=sys.stderr)

        # 4. Report
        if args.report:
            print(_render(result, args.report))

        if result.failed_targets:
            print(f"Error: failed targets: {', '.join(result.failed_targets)}", file=sys.stderr)
            sys.exit(1)
        sys.exit(0)

    except NoEntityTablesError as e:
        _print_diagnostics(e.diagnostics)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except (GenerationError, ProfileConfigError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def run_inspect(args):
    """Parse and infer only; print the schema report."""
    try:
        schema, diagnostics = build_schema(read_ddl(args.schema), dialect=args.dialect)
    except NoEntityTablesError as e:
        _print_diagnostics(e.diagnostics)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    _print_diagnostics(diagnostics)
    print(_render(GenerationResult(schema, {}, diagnostics, targets=[]), args.format))
    sys.exit(0)


def run_targets(args):
    """List registered targets and the features their profiles support."""
    try:
        profiles = _load_registry(args)
    except ProfileConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    for target in list_supported_targets():
        profile = profiles.get(target)
        if profile is None:
            print(f"{target}  (no profile configured)")
            continue
        features = ", ".join(f for f in DEFAULT_FEATURES if profile.supports(f))
        print(f"{target}  [{features}]")
    sys.exit(0)


def main():
    """Parse command line arguments and execute appropriate command."""
    parser = argparse.ArgumentParser(
        description="apiforge - generate API server projects from SQL DDL",
        epilog="Examples:\n"
               "  apiforge generate schema.sql --target java:spring-boot --out api.zip\n"
               "  apiforge generate schema.sql --target go:gin --target python:fastapi "
               "--feature jwt_auth --out api.zip\n"
               "  apiforge inspect schema.sql --format markdown",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging on stderr"
    )
    subparsers = parser.add_subparsers(dest="command")

    # Generate command
    generate_parser = subparsers.add_parser(
        "generate",
        help="Generate project sources for one or more targets",
        description="Parse DDL, infer relationships and emit a project archive per target"
    )
    generate_parser.add_argument("schema", help="DDL file to read ('-' for stdin)")
    generate_parser.add_argument(
        "--target", action="append", required=True,
        help="Target as language:framework (repeatable), e.g. java:spring-boot"
    )
    generate_parser.add_argument(
        "--out", required=True,
        help="Path of the ZIP archive to write"
    )
    generate_parser.add_argument(
        "--feature", action="append", metavar="NAME",
        help=f"Enable a feature toggle (repeatable). Known: {', '.join(DEFAULT_FEATURES)}"
    )
    generate_parser.add_argument(
        "--no-feature", action="append", metavar="NAME",
        help="Disable a feature toggle (repeatable)"
    )
    generate_parser.add_argument(
        "--base-name", default="app",
        help="Naming scope for packages, modules and project files (default: app)"
    )
    generate_parser.add_argument(
        "--dialect", choices=DIALECTS, default="postgres",
        help="SQL dialect of the DDL (default: postgres)"
    )
    generate_parser.add_argument(
        "--scaffold",
        help="Directory of extra files (README, Dockerfile, ...) merged into the archive"
    )
    generate_parser.add_argument(
        "--layout", choices=["auto", "flat", "prefixed"], default="auto",
        help="Archive layout; 'auto' prefixes paths only when several targets are generated"
    )
    generate_parser.add_argument(
        "--root",
        help="Directory name every archive entry is nested under"
    )
    generate_parser.add_argument(
        "--profiles",
        help="Target profiles YAML (default: $APIFORGE_PROFILES or the built-in profiles)"
    )
    generate_parser.add_argument(
        "--report", choices=["json", "markdown"],
        help="Print a generation report to stdout"
    )

    # Inspect command
    inspect_parser = subparsers.add_parser(
        "inspect",
        help="Show tables, relationships and generation order without generating"
    )
    inspect_parser.add_argument("schema", help="DDL file to read ('-' for stdin)")
    inspect_parser.add_argument("--dialect", choices=DIALECTS, default="postgres")
    inspect_parser.add_argument(
        "--format", choices=["json", "markdown"], default="json",
        help="Output format (default: json)"
    )

    # Targets command
    targets_parser = subparsers.add_parser("targets", help="List supported targets")
    targets_parser.add_argument("--profiles", help="Target profiles YAML")

    args = parser.parse_args()
    configure_logging(args.verbose)

    if args.command == "generate":
        asyncio.run(run_generate(args))
    elif args.command == "inspect":
        run_inspect(args)
    elif args.command == "targets":
        run_targets(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
