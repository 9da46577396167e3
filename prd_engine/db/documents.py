"""PRD document database operations."""

from datetime import datetime, timezone
from typing import Any

from prd_engine.core.errors import EntityNotFoundError
from prd_engine.core.logging import get_logger
from prd_engine.db.supabase_client import get_supabase

logger = get_logger(__name__)

# Columns a user may write directly
EDITABLE_FIELDS = (
    "app_name",
    "app_description",
    "prog_language",
    "framework",
    "styling",
    "backend",
    "auth",
    "payments",
    "other_packages",
    "llm_response",
)


def _utc_now_iso() -> str:
    """Get current UTC time as ISO string."""
    return datetime.now(timezone.utc).isoformat()


def list_documents(account_id: str) -> list[dict[str, Any]]:
    """
    List documents owned by an account, most recently updated first.

    Args:
        account_id: Owning account UUID

    Returns:
        List of document rows

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("documents")
            .select("*")
            .eq("account_id", str(account_id))
            .order("updated_at", desc=True)
            .execute()
        )
        return response.data or []

    except Exception as e:
        logger.error(f"Failed to list documents for account {account_id}: {e}")
        raise


def get_document(document_id: str, account_id: str) -> dict[str, Any] | None:
    """
    Get a document if it exists and belongs to the account.

    Args:
        document_id: Document UUID
        account_id: Caller's account UUID

    Returns:
        Document row, or None when missing or owned by someone else
    """
    supabase = get_supabase()

    response = (
        supabase.table("documents")
        .select("*")
        .eq("id", str(document_id))
        .eq("account_id", str(account_id))
        .execute()
    )
    if response.data:
        return response.data[0]
    return None


def require_document(document_id: str, account_id: str) -> dict[str, Any]:
    """Like get_document, but raises EntityNotFoundError instead of returning None."""
    document = get_document(document_id, account_id)
    if not document:
        raise EntityNotFoundError("PRD", document_id)
    return document


def create_document(account_id: str, fields: dict[str, Any]) -> dict[str, Any]:
    """
    Insert a new, unprocessed document.

    Args:
        account_id: Owning account UUID
        fields: Descriptive fields (app_name, app_description, stack choices)

    Returns:
        Inserted document row

    Raises:
        ValueError: If no row is returned
        Exception: If database operation fails
    """
    supabase = get_supabase()

    data = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS and k != "llm_response"}
    now = _utc_now_iso()
    data.update(
        {
            "account_id": str(account_id),
            "processed": False,
            "llm_response": None,
            "created_at": now,
            "updated_at": now,
        }
    )

    try:
        response = supabase.table("documents").insert(data).execute()

        if not response.data:
            raise ValueError("No data returned from create_document")

        document = response.data[0]
        logger.info(
            f"Created document {document.get('id')}",
            extra={"document_id": document.get("id")},
        )
        return document

    except Exception as e:
        logger.error(f"Failed to create document for account {account_id}: {e}")
        raise


def update_document(document_id: str, account_id: str, fields: dict[str, Any]) -> dict[str, Any]:
    """
    Apply a user edit to a document.

    Supplying ``llm_response`` counts as a manual edit of the generated
    content and marks the document processed without calling the LLM.

    Raises:
        EntityNotFoundError: If the document does not exist for this account
    """
    supabase = get_supabase()

    update_data = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS}
    if update_data.get("llm_response"):
        update_data["processed"] = True
    update_data["updated_at"] = _utc_now_iso()

    response = (
        supabase.table("documents")
        .update(update_data)
        .eq("id", str(document_id))
        .eq("account_id", str(account_id))
        .execute()
    )

    if not response.data:
        raise EntityNotFoundError("PRD", document_id)

    logger.info(f"Updated document {document_id}", extra={"document_id": str(document_id)})
    return response.data[0]


def save_document_generation(
    document_id: str,
    account_id: str,
    llm_response: dict[str, Any],
) -> dict[str, Any]:
    """
    Store a generated intro and mark the document processed in one update.

    Raises:
        EntityNotFoundError: If the document disappeared or changed owner
    """
    supabase = get_supabase()

    response = (
        supabase.table("documents")
        .update(
            {
                "llm_response": llm_response,
                "processed": True,
                "updated_at": _utc_now_iso(),
            }
        )
        .eq("id", str(document_id))
        .eq("account_id", str(account_id))
        .execute()
    )

    if not response.data:
        raise EntityNotFoundError("PRD", document_id)
    return response.data[0]


def delete_document(document_id: str, account_id: str) -> None:
    """
    Delete a document. Sections and the implementation plan cascade in the database.

    Raises:
        EntityNotFoundError: If the document does not exist for this account
    """
    supabase = get_supabase()

    response = (
        supabase.table("documents")
        .delete()
        .eq("id", str(document_id))
        .eq("account_id", str(account_id))
        .execute()
    )

    if not response.data:
        raise EntityNotFoundError("PRD", document_id)

    logger.info(f"Deleted document {document_id}", extra={"document_id": str(document_id)})
