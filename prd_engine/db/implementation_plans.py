"""Implementation plan database operations (one plan per document)."""

from datetime import datetime, timezone
from typing import Any

from prd_engine.core.logging import get_logger
from prd_engine.db.supabase_client import get_supabase

logger = get_logger(__name__)


def get_implementation_plan(document_id: str) -> dict[str, Any] | None:
    """Get the implementation plan of a document, if one was generated."""
    supabase = get_supabase()

    response = (
        supabase.table("implementation_plans")
        .select("*")
        .eq("document_id", str(document_id))
        .execute()
    )
    if response.data:
        return response.data[0]
    return None


def upsert_implementation_plan(document_id: str, llm_response: dict[str, Any]) -> dict[str, Any]:
    """
    Create the document's plan or replace the existing one.

    Args:
        document_id: Owning document UUID
        llm_response: Parsed analysis/plan plus provider metadata

    Returns:
        Upserted plan row

    Raises:
        ValueError: If no row is returned
        Exception: If database operation fails
    """
    supabase = get_supabase()

    now = datetime.now(timezone.utc).isoformat()
    data = {
        "document_id": str(document_id),
        "llm_response": llm_response,
        "processed": True,
        "last_processed": now,
        "updated_at": now,
    }

    try:
        response = (
            supabase.table("implementation_plans")
            .upsert(data, on_conflict="document_id")
            .execute()
        )

        if not response.data:
            raise ValueError("No data returned from upsert_implementation_plan")

        logger.info(
            f"Upserted implementation plan for document {document_id}",
            extra={"document_id": str(document_id)},
        )
        return response.data[0]

    except Exception as e:
        logger.error(
            f"Failed to upsert implementation plan for document {document_id}: {e}",
            extra={"document_id": str(document_id)},
        )
        raise
