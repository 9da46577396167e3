"""Generation orchestrator: ownership gate, completion, persistence per stage.

Every stage follows the same sequence:

1. Pending: confirm the caller owns the document (and section)
2. InFlight: fill the template and call the model through the retry helper
3. Succeeded: persist text + provider metadata with processed=true in a
   single update, or Failed: write nothing and let the error propagate

A failed stage never touches previously persisted content.
"""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from prd_engine.chains.generate_implementation_plan import generate_implementation_plan
from prd_engine.chains.generate_intro import generate_intro
from prd_engine.chains.generate_section_requirements import generate_section_requirements
from prd_engine.core.errors import EntityNotFoundError, describe_error
from prd_engine.core.llm import CompletionResult
from prd_engine.core.logging import get_logger
from prd_engine.core.plan_parsing import ImplementationSections
from prd_engine.core.schemas_generation import BatchGenerationResponse, GenerationReport
from prd_engine.db.documents import require_document, save_document_generation
from prd_engine.db.implementation_plans import upsert_implementation_plan
from prd_engine.db.sections import get_section, list_sections, save_section_generation

logger = get_logger(__name__)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def section_source_hash(section: dict[str, Any]) -> str:
    """Fingerprint of the user-authored content a page's requirements derive from."""
    content = f"{section.get('name') or ''}\n{section.get('description') or ''}"
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:16]


def needs_generation(section: dict[str, Any], force: bool = False) -> bool:
    """
    Decide whether a batch pass should call the model for this section.

    Unprocessed sections always qualify. Processed ones qualify only when
    their name/description changed since generation. A manual edit leaves
    no fingerprint and counts as up to date.
    """
    if force or not section.get("processed"):
        return True
    response = section.get("llm_response")
    stored = response.get("source_hash") if isinstance(response, dict) else None
    if stored is None:
        return False
    return stored != section_source_hash(section)


# =============================================================================
# Intro stage
# =============================================================================


async def run_intro_stage(account_id: str, document_id: str) -> CompletionResult:
    """
    Generate and store the document introduction.

    Raises:
        EntityNotFoundError: If the document is missing or not owned
        Exception: Provider errors after retries; nothing is persisted
    """
    document = require_document(document_id, account_id)

    logger.info("Generating PRD intro", extra={"stage": "intro", "document_id": str(document_id)})
    try:
        result = await generate_intro(document)
    except Exception as e:
        logger.error(
            f"Intro generation failed: {describe_error(e)}",
            extra={"stage": "intro", "document_id": str(document_id)},
        )
        raise

    save_document_generation(
        document_id,
        account_id,
        {"intro": result.text, "generated_at": _utc_now_iso(), **result.to_blob()},
    )
    logger.info("Stored PRD intro", extra={"stage": "intro", "document_id": str(document_id)})
    return result


# =============================================================================
# Section stage
# =============================================================================


async def generate_and_store_section(
    document: dict[str, Any],
    section: dict[str, Any],
) -> tuple[CompletionResult, dict[str, Any]]:
    """
    Generate one page's requirements and persist them.

    Callers must already have checked that the document is owned by the
    requester and that the section belongs to the document.
    """
    result = await generate_section_requirements(document, section)
    saved = save_section_generation(
        document["id"],
        section["id"],
        {
            "text": result.text,
            "generated_at": _utc_now_iso(),
            "source_hash": section_source_hash(section),
            **result.to_blob(),
        },
    )
    return result, saved


async def run_section_stage(
    account_id: str,
    document_id: str,
    section_id: str,
) -> CompletionResult:
    """
    Generate and store requirements for a single page.

    Raises:
        EntityNotFoundError: If the document or page is missing or not owned
        Exception: Provider errors after retries; nothing is persisted
    """
    document = require_document(document_id, account_id)
    section = get_section(document_id, section_id)
    if not section:
        raise EntityNotFoundError("Section", section_id)

    log_extra = {"stage": "section", "document_id": str(document_id), "section_id": str(section_id)}
    logger.info(f"Generating requirements for page '{section.get('name')}'", extra=log_extra)
    try:
        result, _ = await generate_and_store_section(document, section)
    except Exception as e:
        logger.error(f"Page requirements generation failed: {describe_error(e)}", extra=log_extra)
        raise

    return result


async def run_sections_batch(
    account_id: str,
    document_id: str,
    section_ids: list[str] | None = None,
    force: bool = False,
) -> BatchGenerationResponse:
    """
    Generate requirements for every page that needs it, one at a time.

    Pages are handled in position order. One page failing is recorded in its
    result and the pass continues. Pages already processed and unchanged are
    skipped unless ``force`` is set.

    Raises:
        EntityNotFoundError: If the document is missing or not owned
    """
    from prd_engine.graphs.generate_sections_graph import run_generate_sections_graph

    document = require_document(document_id, account_id)
    sections = list_sections(document_id)
    run_id = uuid4()

    return await run_generate_sections_graph(
        document=document,
        sections=sections,
        run_id=run_id,
        section_ids=section_ids,
        force=force,
    )


# =============================================================================
# Implementation stage
# =============================================================================


async def run_implementation_stage(
    account_id: str,
    document_id: str,
) -> tuple[CompletionResult, ImplementationSections]:
    """
    Generate the implementation plan and upsert it for the document.

    Raises:
        EntityNotFoundError: If the document is missing or not owned
        Exception: Provider errors after retries; nothing is persisted
    """
    document = require_document(document_id, account_id)
    sections = list_sections(document_id)

    log_extra = {"stage": "implementation", "document_id": str(document_id)}
    logger.info(f"Generating implementation plan over {len(sections)} pages", extra=log_extra)
    try:
        result, parsed = await generate_implementation_plan(document, sections)
    except Exception as e:
        logger.error(f"Implementation plan generation failed: {describe_error(e)}", extra=log_extra)
        raise

    upsert_implementation_plan(
        document_id,
        {
            "analysis": parsed.analysis,
            "plan": parsed.plan,
            "layout": parsed.layout,
            "generated_at": _utc_now_iso(),
            **result.to_blob(),
        },
    )
    logger.info("Stored implementation plan", extra=log_extra)
    return result, parsed


# =============================================================================
# Save-then-generate flows
# =============================================================================


async def run_document_pipeline(account_id: str, document_id: str) -> GenerationReport:
    """
    Run intro then implementation for a freshly saved document.

    Never raises for generation failures: the document is already saved, so
    the outcome is reported instead. The implementation stage is skipped when
    the intro fails.
    """
    try:
        await run_intro_stage(account_id, document_id)
    except Exception as e:
        return GenerationReport(
            status="failed",
            warning=f"PRD saved but there was an error generating the content: {describe_error(e)}",
            details={"intro": "failed", "implementation": "skipped"},
        )

    try:
        await run_implementation_stage(account_id, document_id)
    except Exception as e:
        return GenerationReport(
            status="partial",
            warning=f"PRD saved but implementation details could not be generated: {describe_error(e)}",
            details={"intro": "succeeded", "implementation": "failed"},
        )

    return GenerationReport(
        status="succeeded",
        details={"intro": "succeeded", "implementation": "succeeded"},
    )


def report_from_batch(batch: BatchGenerationResponse) -> GenerationReport:
    """Summarise a batch pass as a generation report for a save response."""
    details = {
        "processed": batch.processed,
        "succeeded": batch.succeeded,
        "failed": batch.failed,
        "skipped": batch.skipped,
    }
    if batch.failed == 0:
        status = "skipped" if batch.processed == 0 else "succeeded"
        return GenerationReport(status=status, details=details)

    failed_names = ", ".join(r.name or r.section_id for r in batch.results if r.status == "failed")
    status = "failed" if batch.succeeded == 0 else "partial"
    return GenerationReport(
        status=status,
        warning=f"Pages saved but requirements could not be generated for: {failed_names}",
        details=details,
    )
