"""API endpoints for PRD documents."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from prd_engine.core.auth import AuthContext, require_auth
from prd_engine.core.errors import EntityNotFoundError, describe_error
from prd_engine.core.logging import get_logger
from prd_engine.core.schemas_documents import DocumentCreate, DocumentUpdate
from prd_engine.core.schemas_generation import DocumentSaveResponse
from prd_engine.db.documents import (
    create_document,
    delete_document,
    get_document,
    list_documents,
    require_document,
    update_document,
)
from prd_engine.db.implementation_plans import get_implementation_plan
from prd_engine.db.sections import list_sections
from prd_engine.services.generation import run_document_pipeline

logger = get_logger(__name__)

router = APIRouter(prefix="/documents")


@router.get("")
async def list_prds(auth: AuthContext = Depends(require_auth)) -> list[dict[str, Any]]:
    """List the caller's PRDs, most recently updated first."""
    try:
        return list_documents(auth.account_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to list PRDs: {describe_error(e)}") from e


@router.post("", response_model=DocumentSaveResponse)
async def create_prd(
    body: DocumentCreate,
    generate: bool = Query(default=False, description="Generate intro and implementation plan after saving"),
    auth: AuthContext = Depends(require_auth),
) -> DocumentSaveResponse:
    """
    Create a PRD, optionally followed by content generation.

    A failed save returns 500 and nothing is generated. A failed generation
    after a successful save still returns 200; the ``generation`` block says
    what went wrong.
    """
    try:
        document = create_document(auth.account_id, body.model_dump())
    except Exception as e:
        logger.error(f"Failed to save PRD: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to save PRD: {describe_error(e)}") from e

    if not generate:
        return DocumentSaveResponse(document=document)

    report = await run_document_pipeline(auth.account_id, document["id"])
    if report.warning:
        logger.warning(report.warning, extra={"document_id": str(document["id"])})

    refreshed = get_document(document["id"], auth.account_id) or document
    return DocumentSaveResponse(document=refreshed, generation=report)


@router.get("/{document_id}")
async def get_prd(document_id: str, auth: AuthContext = Depends(require_auth)) -> dict[str, Any]:
    """Get a PRD with its sections (by position) and implementation plan."""
    try:
        document = require_document(document_id, auth.account_id)
        return {
            **document,
            "sections": list_sections(document_id),
            "implementation_plan": get_implementation_plan(document_id),
        }
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail="PRD not found") from e
    except Exception as e:
        logger.error(f"Failed to load PRD {document_id}: {e}", extra={"document_id": document_id})
        raise HTTPException(status_code=500, detail=f"Failed to load PRD: {describe_error(e)}") from e


@router.patch("/{document_id}")
async def update_prd(
    document_id: str,
    body: DocumentUpdate,
    auth: AuthContext = Depends(require_auth),
) -> dict[str, Any]:
    """Update PRD fields. Supplying llm_response is a manual edit and marks it processed."""
    try:
        return update_document(document_id, auth.account_id, body.model_dump(exclude_unset=True))
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail="PRD not found") from e
    except Exception as e:
        logger.error(f"Failed to update PRD {document_id}: {e}", extra={"document_id": document_id})
        raise HTTPException(status_code=500, detail=f"Failed to update PRD: {describe_error(e)}") from e


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_prd(document_id: str, auth: AuthContext = Depends(require_auth)) -> Response:
    """Delete a PRD together with its sections and implementation plan."""
    try:
        delete_document(document_id, auth.account_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail="PRD not found") from e
    except Exception as e:
        logger.error(f"Failed to delete PRD {document_id}: {e}", extra={"document_id": document_id})
        raise HTTPException(status_code=500, detail=f"Failed to delete PRD: {describe_error(e)}") from e

    return Response(status_code=status.HTTP_204_NO_CONTENT)
