"""API router for v1 endpoints."""

from fastapi import APIRouter

from prd_engine.api import documents, generation, sections

router = APIRouter()

# PRD documents CRUD
router.include_router(documents.router, tags=["documents"])

# Pages of a document (create/update, reorder, delete)
router.include_router(sections.router, tags=["sections"])

# Generation stages (intro, page requirements, implementation plan)
router.include_router(generation.router, tags=["generation"])
