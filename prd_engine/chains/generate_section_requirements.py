"""Generate detailed requirements for one PRD page."""

from typing import Any

from prd_engine.core.llm import CompletionResult, complete_with_retry
from prd_engine.core.logging import get_logger
from prd_engine.core.prompts import fill_template, load_template, render_app_background

logger = get_logger(__name__)


def build_section_prompt(document: dict[str, Any], section: dict[str, Any]) -> str:
    """Fill the page template with the app background and the page itself."""
    template = load_template("section")
    return fill_template(
        template,
        {
            "APP_BACKGROUND": render_app_background(document),
            "PAGE_NAME": section.get("name"),
            "PAGE_DESCRIPTION": section.get("description"),
        },
    )


async def generate_section_requirements(
    document: dict[str, Any],
    section: dict[str, Any],
) -> CompletionResult:
    """
    Ask the model for the requirements of a single page.

    The background uses the document's generated intro when available, so
    page requirements stay consistent with it.

    Raises:
        anthropic.APIError: If the provider call fails after retries
    """
    prompt = build_section_prompt(document, section)
    logger.debug(
        f"Section prompt built ({len(prompt)} chars)",
        extra={"stage": "section", "document_id": document.get("id"), "section_id": section.get("id")},
    )
    return await complete_with_retry(prompt, stage="section", document_id=document.get("id"))
