"""Pydantic schemas for the generation stages."""

from typing import Any, Literal

from pydantic import BaseModel, Field


class IntroGenerationRequest(BaseModel):
    """Request body for intro generation. Identifiers are validated in the handler (400)."""

    document_id: str | None = None


class SectionGenerationRequest(BaseModel):
    """Request body for single-page requirements generation."""

    document_id: str | None = None
    section_id: str | None = None


class BatchGenerationRequest(BaseModel):
    """Request body for generating requirements across a document's pages."""

    document_id: str | None = None
    section_ids: list[str] | None = Field(
        default=None, description="Restrict the pass to these sections (None = all)"
    )
    force: bool = Field(default=False, description="Regenerate sections that are already up to date")


class IntroGenerationResponse(BaseModel):
    content: str
    finish_reason: str | None = None


class SectionRequirements(BaseModel):
    text: str
    finish_reason: str | None = None


class SectionGenerationResponse(BaseModel):
    requirements: SectionRequirements


class ImplementationSectionsOut(BaseModel):
    analysis: str
    plan: str
    layout: Literal["both", "analysis-only", "plan-only", "neither"]


class ImplementationGenerationResponse(BaseModel):
    content: str
    sections: ImplementationSectionsOut
    finish_reason: str | None = None


class SectionGenerationResult(BaseModel):
    """Outcome for one page in a batch pass."""

    section_id: str
    name: str = ""
    status: Literal["succeeded", "failed", "skipped"]
    error: str | None = None


class BatchGenerationResponse(BaseModel):
    """Aggregate outcome of a batch pass; per-item failures never abort the pass."""

    run_id: str
    document_id: str
    processed: int = Field(default=0, description="Sections a completion call was issued for")
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    results: list[SectionGenerationResult] = Field(default_factory=list)
    summary: str = ""


class GenerationReport(BaseModel):
    """Generation outcome attached to a successful save."""

    status: Literal["succeeded", "partial", "failed", "skipped"]
    warning: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)


class DocumentSaveResponse(BaseModel):
    """A saved document plus the outcome of any generation that followed the save."""

    document: dict[str, Any]
    generation: GenerationReport | None = None


class SectionsSaveResponse(BaseModel):
    """Saved sections plus the outcome of any generation that followed the save."""

    sections: list[dict[str, Any]]
    generation: GenerationReport | None = None
