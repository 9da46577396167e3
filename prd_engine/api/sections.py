"""API endpoints for the pages (sections) of a PRD."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from prd_engine.core.auth import AuthContext, require_auth
from prd_engine.core.errors import EntityNotFoundError, describe_error
from prd_engine.core.logging import get_logger
from prd_engine.core.schemas_documents import SectionOrderRequest, SectionsSaveRequest
from prd_engine.core.schemas_generation import SectionsSaveResponse
from prd_engine.db.documents import require_document
from prd_engine.db.sections import (
    create_section,
    delete_section,
    next_position,
    reorder_sections,
    update_section,
)
from prd_engine.services.generation import report_from_batch, run_sections_batch

logger = get_logger(__name__)

router = APIRouter(prefix="/documents/{document_id}/sections")


def _require_owned_document(document_id: str, auth: AuthContext) -> dict[str, Any]:
    try:
        return require_document(document_id, auth.account_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail="PRD not found") from e


@router.post("", response_model=SectionsSaveResponse)
async def save_sections(
    document_id: str,
    body: SectionsSaveRequest,
    generate: bool = Query(default=False, description="Generate requirements for new/changed pages"),
    auth: AuthContext = Depends(require_auth),
) -> SectionsSaveResponse:
    """
    Create and update pages of a PRD.

    Entries with an ``id`` update only the fields they carry; entries without
    one are appended after the current last position. Each entry is its own
    write, so a failure part way leaves the earlier entries saved; the 500
    detail reports how many were saved.
    """
    if not body.sections:
        raise HTTPException(status_code=400, detail="Invalid sections data")

    _require_owned_document(document_id, auth)

    saved: list[dict[str, Any]] = []
    errors: list[str] = []
    try:
        position = next_position(document_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to save sections: {describe_error(e)}") from e

    for entry in body.sections:
        try:
            if entry.id:
                saved.append(update_section(document_id, entry.id, entry.model_dump(exclude_unset=True)))
            else:
                saved.append(
                    create_section(
                        document_id,
                        name=entry.name or "",
                        description=entry.description or "",
                        position=position,
                    )
                )
                position += 1
        except Exception as e:
            label = entry.id or entry.name or "new section"
            logger.error(f"Failed to save section {label}: {e}", extra={"document_id": document_id})
            errors.append(f"{label}: {describe_error(e)}")

    if errors:
        raise HTTPException(
            status_code=500,
            detail=(
                f"Failed to save sections: saved {len(saved)} of {len(body.sections)}. "
                + "; ".join(errors)
            ),
        )

    if not generate:
        return SectionsSaveResponse(sections=saved)

    batch = await run_sections_batch(
        auth.account_id,
        document_id,
        section_ids=[str(s["id"]) for s in saved],
    )
    report = report_from_batch(batch)
    if report.warning:
        logger.warning(report.warning, extra={"document_id": document_id})

    return SectionsSaveResponse(sections=saved, generation=report)


@router.put("/order")
async def order_sections(
    document_id: str,
    body: SectionOrderRequest,
    auth: AuthContext = Depends(require_auth),
) -> list[dict[str, Any]]:
    """Reorder all pages of a PRD."""
    _require_owned_document(document_id, auth)

    try:
        return reorder_sections(document_id, body.section_ids)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except Exception as e:
        logger.error(f"Failed to reorder sections: {e}", extra={"document_id": document_id})
        raise HTTPException(status_code=500, detail=f"Failed to reorder sections: {describe_error(e)}") from e


@router.delete("/{section_id}")
async def remove_section(
    document_id: str,
    section_id: str,
    auth: AuthContext = Depends(require_auth),
) -> dict[str, Any]:
    """Delete one page of a PRD and return it."""
    _require_owned_document(document_id, auth)

    try:
        return delete_section(document_id, section_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail="Section not found") from e
    except Exception as e:
        logger.error(f"Failed to delete section {section_id}: {e}", extra={"document_id": document_id})
        raise HTTPException(status_code=500, detail=f"Failed to delete section: {describe_error(e)}") from e
