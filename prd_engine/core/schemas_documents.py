"""Pydantic schemas for PRD documents and their sections."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class DocumentCreate(BaseModel):
    """Request body for creating a PRD document."""

    app_name: str = Field(..., min_length=1, description="Application name")
    app_description: str = Field(..., min_length=1, description="What the application does")
    prog_language: str = Field(default="", description="Programming language")
    framework: str = Field(default="", description="Application framework")
    styling: str = Field(default="", description="Styling approach/library")
    backend: str = Field(default="", description="Backend or database choice")
    auth: str = Field(default="", description="Authentication provider")
    payments: str = Field(default="", description="Payment provider")
    other_packages: str = Field(default="", description="Other packages, free text")


class DocumentUpdate(BaseModel):
    """Partial update of a document; unknown keys such as ``sections`` are dropped."""

    model_config = ConfigDict(extra="ignore")

    app_name: str | None = None
    app_description: str | None = None
    prog_language: str | None = None
    framework: str | None = None
    styling: str | None = None
    backend: str | None = None
    auth: str | None = None
    payments: str | None = None
    other_packages: str | None = None
    llm_response: dict[str, Any] | None = Field(
        default=None, description="Manually edited generated content; marks the document processed"
    )


class SectionInput(BaseModel):
    """One entry of a section save request. Entries with an ``id`` are updates."""

    id: str | None = None
    name: str | None = None
    description: str | None = None
    llm_response: dict[str, Any] | None = None
    position: int | None = None
    status: str | None = None


class SectionsSaveRequest(BaseModel):
    """Request body for creating/updating sections of a document."""

    sections: list[SectionInput] = Field(default_factory=list)


class SectionOrderRequest(BaseModel):
    """Request body for reordering sections."""

    section_ids: list[str] = Field(default_factory=list, description="All section ids in their new order")
