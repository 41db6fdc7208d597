"""JSON output rendering for generation results."""
import json  # pylint: disable=import-self,redefined-builtin

from apiforge.core.pipeline import GenerationResult


def render_json(result: GenerationResult) -> str:
    """Render generation result as JSON string."""
    return json.dumps(result.to_dict(), indent=2)
