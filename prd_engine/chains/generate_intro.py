"""Generate the introduction of a PRD document."""

from typing import Any

from prd_engine.core.llm import CompletionResult, complete_with_retry
from prd_engine.core.logging import get_logger
from prd_engine.core.prompts import (
    INTRO_FALLBACKS,
    fill_template,
    find_unfilled_placeholders,
    intro_values,
    load_template,
)

logger = get_logger(__name__)


def build_intro_prompt(document: dict[str, Any]) -> str:
    """Fill the intro template from the document's descriptive fields."""
    template = load_template("intro")
    return fill_template(template, intro_values(document), INTRO_FALLBACKS)


async def generate_intro(document: dict[str, Any]) -> CompletionResult:
    """
    Ask the model for a PRD introduction.

    Args:
        document: Document row (app_name, app_description, stack fields)

    Returns:
        CompletionResult whose text is the introduction

    Raises:
        anthropic.APIError: If the provider call fails after retries
    """
    prompt = build_intro_prompt(document)
    logger.debug(
        f"Intro prompt built ({len(prompt)} chars)",
        extra={"stage": "intro", "document_id": document.get("id")},
    )
    unfilled = find_unfilled_placeholders(prompt)
    if unfilled:
        logger.warning(
            f"Intro prompt still contains placeholders: {', '.join(unfilled)}",
            extra={"stage": "intro", "document_id": document.get("id")},
        )
    return await complete_with_retry(prompt, stage="intro", document_id=document.get("id"))
