"""Markdown output rendering for generation results."""
from apiforge.core.inference import dependency_graph
from apiforge.core.pipeline import GenerationResult
from apiforge.models.diagnostic import Severity
from apiforge.models.relationship import RelationKind

SEVERITY_EMOJI = {
    Severity.ERROR: "🔴",
    Severity.WARNING: "🟡",
    Severity.INFO: "🟢",
}


def _relationship_row(rel) -> str:
    if rel.kind == RelationKind.MANY_TO_MANY:
        via = f"via `{rel.junction_table}`"
    else:
        via = ", ".join(f"`{c}`" for c in rel.columns)
    return (
        f"| {rel.owning_table} | {rel.kind.value} | {rel.target_table} | "
        f"{via} | {rel.on_delete.value} |"
    )


def render_markdown(result: GenerationResult) -> str:
    """Render generation result as Markdown report."""
    schema = result.schema
    status = "🔴 FAILED" if result.failed_targets else "🟢 OK"

    lines = [
        "# API Generation Report",
        f"**Entity Tables:** {len(schema.generation_order)}",
        f"**Relationships:** {len(schema.relationships)}",
    ]
    if result.targets:
        lines.append(f"**Status:** {status}")
    lines.append("")

    lines.extend([
        "## Generation Order",
        "",
        "| # | Table | Depends On |",
        "|---|-------|------------|",
    ])
    graph = dependency_graph(schema)
    for position, name in enumerate(schema.generation_order, start=1):
        depends = ", ".join(sorted(graph.get(name, ()))) or "-"
        lines.append(f"| {position} | {name} | {depends} |")
    lines.append("")

    if schema.junction_tables or schema.excluded_tables:
        lines.append("### Not Generated")
        for name in schema.junction_tables:
            lines.append(f"- `{name}` (junction table)")
        for name in schema.excluded_tables:
            lines.append(f"- `{name}` (audit table)")
        lines.append("")

    lines.extend(["## Relationships", ""])
    if not schema.relationships:
        lines.append("No relationships inferred.")
    else:
        lines.append("| Owner | Kind | Target | Columns | On Delete |")
        lines.append("|-------|------|--------|---------|-----------|")
        for rel in schema.relationships:
            lines.append(_relationship_row(rel))
    lines.append("")

    if result.targets:
        lines.extend(["## Targets", ""])
        for target in result.targets:
            file_set = result.file_sets.get(target)
            if file_set is None:
                lines.append(f"### 🔴 {target}")
                lines.append("No files generated.")
            else:
                lines.append(f"### 🟢 {target} ({len(file_set.paths)} files)")
                for path in file_set.paths:
                    lines.append(f"- `{path}`")
            lines.append("")

    if result.diagnostics:
        lines.extend(["## ⚠️ Diagnostics", ""])
        for diagnostic in result.diagnostics:
            emoji = SEVERITY_EMOJI[diagnostic.severity]
            scope = f" [{diagnostic.target}]" if diagnostic.target else ""
            lines.append(
                f"- {emoji} **{diagnostic.diagnostic_type.value}**{scope}: {diagnostic.message}"
            )
        lines.append("")

    return "\n".join(lines)
