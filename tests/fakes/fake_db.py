"""Fake in-memory persistence layer for generation behavioral testing."""

import copy
from typing import Any, Dict, List

from prd_engine.core.errors import EntityNotFoundError

ACCOUNT_ID = "acc-00000000-0000-0000-0000-000000000001"
OTHER_ACCOUNT_ID = "acc-00000000-0000-0000-0000-000000000002"
DOCUMENT_ID = "doc-00000000-0000-0000-0000-000000000001"

SAMPLE_DOCUMENT: Dict[str, Any] = {
    "id": DOCUMENT_ID,
    "account_id": ACCOUNT_ID,
    "app_name": "Acme",
    "app_description": "A tool for tracking anvil deliveries.",
    "prog_language": "TypeScript",
    "framework": "Next",
    "styling": "Tailwind",
    "backend": "Postgres",
    "auth": "Clerk",
    "payments": "",
    "other_packages": "",
    "processed": False,
    "llm_response": None,
    "created_at": "2024-01-01T00:00:00+00:00",
    "updated_at": "2024-01-01T00:00:00+00:00",
}


class FakeDB:
    """In-memory database implementation for testing."""

    def __init__(self):
        self.reset()

    def reset(self):
        """Reset all stores to initial state."""
        self.documents: Dict[str, Dict[str, Any]] = {DOCUMENT_ID: copy.deepcopy(SAMPLE_DOCUMENT)}
        self.sections: List[Dict[str, Any]] = []
        self.implementation_plans: Dict[str, Dict[str, Any]] = {}
        self.writes: List[tuple] = []

    # Seeding helpers
    def add_section(
        self,
        section_id: str,
        position: int,
        name: str = "Page",
        description: str = "A page",
        processed: bool = False,
        llm_response: Dict[str, Any] | None = None,
        document_id: str = DOCUMENT_ID,
    ) -> Dict[str, Any]:
        """Insert a section row directly."""
        section = {
            "id": section_id,
            "document_id": document_id,
            "name": name,
            "description": description,
            "position": position,
            "status": "draft",
            "processed": processed,
            "llm_response": llm_response,
            "last_processed": None,
        }
        self.sections.append(section)
        return section

    def section(self, section_id: str) -> Dict[str, Any]:
        return next(s for s in self.sections if s["id"] == section_id)

    # Document operations
    def require_document(self, document_id: str, account_id: str) -> Dict[str, Any]:
        """Get an owned document or raise."""
        document = self.documents.get(str(document_id))
        if not document or document["account_id"] != str(account_id):
            raise EntityNotFoundError("PRD", document_id)
        return copy.deepcopy(document)

    def save_document_generation(
        self, document_id: str, account_id: str, llm_response: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Store a generated intro."""
        document = self.documents[str(document_id)]
        document["llm_response"] = llm_response
        document["processed"] = True
        self.writes.append(("documents", document_id))
        return copy.deepcopy(document)

    # Section operations
    def list_sections(self, document_id: str) -> List[Dict[str, Any]]:
        """List sections for a document ordered by position."""
        rows = [s for s in self.sections if s["document_id"] == str(document_id)]
        return copy.deepcopy(sorted(rows, key=lambda s: s["position"]))

    def get_section(self, document_id: str, section_id: str) -> Dict[str, Any] | None:
        """Get a section of a document."""
        for section in self.sections:
            if section["id"] == str(section_id) and section["document_id"] == str(document_id):
                return copy.deepcopy(section)
        return None

    def save_section_generation(
        self, document_id: str, section_id: str, llm_response: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Store generated page requirements."""
        section = self.section(str(section_id))
        section["llm_response"] = llm_response
        section["processed"] = True
        section["last_processed"] = llm_response.get("generated_at")
        self.writes.append(("sections", section_id))
        return copy.deepcopy(section)

    # Implementation plan operations
    def upsert_implementation_plan(self, document_id: str, llm_response: Dict[str, Any]) -> Dict[str, Any]:
        """Upsert the single plan of a document."""
        plan = self.implementation_plans.setdefault(
            str(document_id), {"id": f"plan-{document_id}", "document_id": str(document_id)}
        )
        plan["llm_response"] = llm_response
        plan["processed"] = True
        self.writes.append(("implementation_plans", document_id))
        return copy.deepcopy(plan)
