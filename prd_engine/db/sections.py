"""PRD section (page) database operations."""

from datetime import datetime, timezone
from typing import Any

from prd_engine.core.errors import EntityNotFoundError
from prd_engine.core.logging import get_logger
from prd_engine.db.supabase_client import get_supabase

logger = get_logger(__name__)


def _utc_now_iso() -> str:
    """Get current UTC time as ISO string."""
    return datetime.now(timezone.utc).isoformat()


def list_sections(document_id: str) -> list[dict[str, Any]]:
    """
    List all sections of a document ordered by position.

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("sections")
            .select("*")
            .eq("document_id", str(document_id))
            .order("position")
            .execute()
        )
        return response.data or []

    except Exception as e:
        logger.error(f"Failed to list sections for document {document_id}: {e}")
        raise


def get_section(document_id: str, section_id: str) -> dict[str, Any] | None:
    """Get a section only if it belongs to the given document."""
    supabase = get_supabase()

    response = (
        supabase.table("sections")
        .select("*")
        .eq("id", str(section_id))
        .eq("document_id", str(document_id))
        .execute()
    )
    if response.data:
        return response.data[0]
    return None


def next_position(document_id: str) -> int:
    """Position after the current highest one (0 for an empty document)."""
    supabase = get_supabase()

    response = (
        supabase.table("sections")
        .select("position")
        .eq("document_id", str(document_id))
        .order("position", desc=True)
        .limit(1)
        .execute()
    )
    if response.data:
        return int(response.data[0]["position"]) + 1
    return 0


def create_section(
    document_id: str,
    name: str,
    description: str,
    position: int,
) -> dict[str, Any]:
    """
    Insert a new unprocessed section.

    Raises:
        ValueError: If no row is returned
        Exception: If database operation fails (e.g. position already taken)
    """
    supabase = get_supabase()

    now = _utc_now_iso()
    response = (
        supabase.table("sections")
        .insert(
            {
                "document_id": str(document_id),
                "name": name,
                "description": description,
                "position": position,
                "status": "draft",
                "processed": False,
                "llm_response": None,
                "created_at": now,
                "updated_at": now,
            }
        )
        .execute()
    )

    if not response.data:
        raise ValueError("No data returned from create_section")

    section = response.data[0]
    logger.info(
        f"Created section '{name}' at position {position}",
        extra={"document_id": str(document_id), "section_id": section.get("id")},
    )
    return section


def update_section(document_id: str, section_id: str, fields: dict[str, Any]) -> dict[str, Any]:
    """
    Update only the provided fields of a section.

    Empty name/description values are ignored. A supplied ``llm_response`` is a
    manual edit and keeps the section processed.

    Raises:
        EntityNotFoundError: If the section does not belong to the document
    """
    supabase = get_supabase()

    update_data: dict[str, Any] = {"updated_at": _utc_now_iso()}
    if fields.get("name"):
        update_data["name"] = fields["name"]
    if fields.get("description"):
        update_data["description"] = fields["description"]
    if fields.get("llm_response"):
        update_data["llm_response"] = fields["llm_response"]
        update_data["processed"] = True
    if fields.get("position") is not None:
        update_data["position"] = fields["position"]
    if fields.get("status"):
        update_data["status"] = fields["status"]

    response = (
        supabase.table("sections")
        .update(update_data)
        .eq("id", str(section_id))
        .eq("document_id", str(document_id))
        .execute()
    )

    if not response.data:
        raise EntityNotFoundError("Section", section_id)
    return response.data[0]


def save_section_generation(
    document_id: str,
    section_id: str,
    llm_response: dict[str, Any],
) -> dict[str, Any]:
    """
    Store generated requirements and mark the section processed in one update.

    Raises:
        EntityNotFoundError: If the section no longer exists
    """
    supabase = get_supabase()

    now = _utc_now_iso()
    response = (
        supabase.table("sections")
        .update(
            {
                "llm_response": llm_response,
                "processed": True,
                "last_processed": now,
                "updated_at": now,
            }
        )
        .eq("id", str(section_id))
        .eq("document_id", str(document_id))
        .execute()
    )

    if not response.data:
        raise EntityNotFoundError("Section", section_id)
    return response.data[0]


def delete_section(document_id: str, section_id: str) -> dict[str, Any]:
    """
    Delete one section of a document.

    Returns:
        The deleted row

    Raises:
        EntityNotFoundError: If the section does not belong to the document
    """
    supabase = get_supabase()

    response = (
        supabase.table("sections")
        .delete()
        .eq("id", str(section_id))
        .eq("document_id", str(document_id))
        .execute()
    )

    if not response.data:
        raise EntityNotFoundError("Section", section_id)

    logger.info(
        f"Deleted section {section_id}",
        extra={"document_id": str(document_id), "section_id": str(section_id)},
    )
    return response.data[0]


def reorder_sections(document_id: str, ordered_ids: list[str]) -> list[dict[str, Any]]:
    """
    Assign positions 0..n-1 following ``ordered_ids``.

    Rows are first parked on negative positions so that no intermediate
    write collides with the (document_id, position) unique constraint.

    Args:
        document_id: Document UUID
        ordered_ids: Every section id of the document, in the new order

    Returns:
        Sections in their new order

    Raises:
        ValueError: If ordered_ids is not exactly the document's section ids
    """
    supabase = get_supabase()

    current = list_sections(document_id)
    current_ids = {str(s["id"]) for s in current}
    requested = [str(i) for i in ordered_ids]
    if len(requested) != len(set(requested)) or set(requested) != current_ids:
        raise ValueError("Section order must list every section of the document exactly once")

    for index, section_id in enumerate(requested):
        (
            supabase.table("sections")
            .update({"position": -(index + 1)})
            .eq("id", section_id)
            .eq("document_id", str(document_id))
            .execute()
        )

    now = _utc_now_iso()
    for index, section_id in enumerate(requested):
        (
            supabase.table("sections")
            .update({"position": index, "updated_at": now})
            .eq("id", section_id)
            .eq("document_id", str(document_id))
            .execute()
        )

    logger.info(
        f"Reordered {len(requested)} sections",
        extra={"document_id": str(document_id)},
    )
    return list_sections(document_id)
