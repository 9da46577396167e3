"""Generate the staged implementation plan for a whole PRD."""

from typing import Any

from prd_engine.core.llm import CompletionResult, complete_with_retry
from prd_engine.core.logging import get_logger
from prd_engine.core.plan_parsing import ImplementationSections, parse_implementation_response
from prd_engine.core.prompts import fill_template, load_template, render_prd_body

logger = get_logger(__name__)


def build_implementation_prompt(document: dict[str, Any], sections: list[dict[str, Any]]) -> str:
    """Render the PRD body (intro, stack, pages) into the implementation template."""
    template = load_template("implementation")
    return fill_template(template, {"PRD_BODY": render_prd_body(document, sections)})


async def generate_implementation_plan(
    document: dict[str, Any],
    sections: list[dict[str, Any]],
) -> tuple[CompletionResult, ImplementationSections]:
    """
    Ask the model for an implementation analysis and plan.

    Returns:
        Tuple of (raw completion, parsed analysis/plan sections)

    Raises:
        anthropic.APIError: If the provider call fails after retries
    """
    prompt = build_implementation_prompt(document, sections)
    logger.debug(
        f"Implementation prompt built ({len(prompt)} chars, {len(sections)} pages)",
        extra={"stage": "implementation", "document_id": document.get("id")},
    )

    result = await complete_with_retry(
        prompt, stage="implementation", document_id=document.get("id")
    )
    parsed = parse_implementation_response(result.text)

    if parsed.layout != "both":
        logger.warning(
            f"Implementation response missing expected headers (layout={parsed.layout})",
            extra={"stage": "implementation", "document_id": document.get("id")},
        )

    return result, parsed
