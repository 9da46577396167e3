"""API endpoints triggering the generation stages."""

from fastapi import APIRouter, Depends, HTTPException

from prd_engine.core.auth import AuthContext, require_auth
from prd_engine.core.errors import EntityNotFoundError, describe_error
from prd_engine.core.logging import get_logger
from prd_engine.core.schemas_generation import (
    BatchGenerationRequest,
    BatchGenerationResponse,
    ImplementationGenerationResponse,
    ImplementationSectionsOut,
    IntroGenerationRequest,
    IntroGenerationResponse,
    SectionGenerationRequest,
    SectionGenerationResponse,
    SectionRequirements,
)
from prd_engine.services.generation import (
    run_implementation_stage,
    run_intro_stage,
    run_section_stage,
    run_sections_batch,
)

logger = get_logger(__name__)

router = APIRouter()


@router.post("/generate/intro", response_model=IntroGenerationResponse)
async def generate_intro(
    request: IntroGenerationRequest | None = None,
    auth: AuthContext = Depends(require_auth),
) -> IntroGenerationResponse:
    """
    Generate the introduction of a PRD and store it on the document.

    Raises:
        HTTPException 400: If document_id is missing
        HTTPException 404: If the PRD is missing or not owned
        HTTPException 500: If generation fails (after retrying overloads)
    """
    document_id = request.document_id if request else None
    if not document_id:
        raise HTTPException(status_code=400, detail="PRD ID is required")

    try:
        result = await run_intro_stage(auth.account_id, document_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail="PRD not found") from e
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Internal Error: {describe_error(e)}") from e

    return IntroGenerationResponse(content=result.text, finish_reason=result.finish_reason)


@router.post("/generate/section", response_model=SectionGenerationResponse)
async def generate_section(
    request: SectionGenerationRequest | None = None,
    auth: AuthContext = Depends(require_auth),
) -> SectionGenerationResponse:
    """
    Generate requirements for a single page and store them on the page.

    Raises:
        HTTPException 400: If document_id or section_id is missing
        HTTPException 404: If the PRD or page is missing or not owned
        HTTPException 500: If generation fails
    """
    if not request or not request.document_id or not request.section_id:
        raise HTTPException(status_code=400, detail="PRD ID and Section ID are required")

    try:
        result = await run_section_stage(auth.account_id, request.document_id, request.section_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail="PRD or Section not found") from e
    except Exception as e:
        raise HTTPException(
            status_code=500, detail=f"Error generating page requirements: {describe_error(e)}"
        ) from e

    return SectionGenerationResponse(
        requirements=SectionRequirements(text=result.text, finish_reason=result.finish_reason)
    )


@router.post("/generate/sections", response_model=BatchGenerationResponse)
async def generate_sections(
    request: BatchGenerationRequest | None = None,
    auth: AuthContext = Depends(require_auth),
) -> BatchGenerationResponse:
    """
    Generate requirements for every page that is new or changed.

    Per-page failures are reported in ``results``; the call itself succeeds.

    Raises:
        HTTPException 400: If document_id is missing
        HTTPException 404: If the PRD is missing or not owned
    """
    if not request or not request.document_id:
        raise HTTPException(status_code=400, detail="PRD ID is required")

    try:
        return await run_sections_batch(
            auth.account_id,
            request.document_id,
            section_ids=request.section_ids,
            force=request.force,
        )
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail="PRD not found") from e
    except Exception as e:
        logger.error(f"Batch page generation failed: {e}", extra={"document_id": request.document_id})
        raise HTTPException(
            status_code=500, detail=f"Error generating page requirements: {describe_error(e)}"
        ) from e


@router.post("/documents/{document_id}/implementation", response_model=ImplementationGenerationResponse)
async def generate_implementation(
    document_id: str,
    auth: AuthContext = Depends(require_auth),
) -> ImplementationGenerationResponse:
    """
    Generate the implementation analysis and staged plan for a PRD.

    Raises:
        HTTPException 404: If the PRD is missing or not owned
        HTTPException 500: If generation fails
    """
    try:
        result, parsed = await run_implementation_stage(auth.account_id, document_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail="PRD not found") from e
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Internal Error: {describe_error(e)}") from e

    return ImplementationGenerationResponse(
        content=result.text,
        sections=ImplementationSectionsOut(
            analysis=parsed.analysis, plan=parsed.plan, layout=parsed.layout
        ),
        finish_reason=result.finish_reason,
    )
