"""LangGraph pipeline generating page requirements across a PRD."""

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from langgraph.graph import END, StateGraph

from prd_engine.core.errors import describe_error
from prd_engine.core.logging import get_logger
from prd_engine.core.schemas_generation import BatchGenerationResponse, SectionGenerationResult
from prd_engine.services.generation import generate_and_store_section, needs_generation

logger = get_logger(__name__)

# Graph steps besides one per processed section
_FIXED_STEPS = 4


@dataclass
class GenerateSectionsState:
    """State for the generate sections graph."""

    # Input fields
    document: dict[str, Any]
    sections: list[dict[str, Any]]
    run_id: UUID
    section_ids: list[str] | None = None
    force: bool = False

    # Processing state
    queue: list[dict[str, Any]] = field(default_factory=list)
    current_index: int = 0
    results: list[dict[str, Any]] = field(default_factory=list)

    # Output
    processed: int = 0
    summary: str = ""


def select_sections(state: GenerateSectionsState) -> dict[str, Any]:
    """Queue the sections that need a completion call; record the rest as skipped."""
    document_id = state.document.get("id")
    ordered = sorted(state.sections, key=lambda s: s.get("position", 0))
    results: list[dict[str, Any]] = []

    if state.section_ids is not None:
        wanted = {str(i) for i in state.section_ids}
        known = {str(s["id"]) for s in ordered}
        for missing in sorted(wanted - known):
            results.append(
                {"section_id": missing, "name": "", "status": "failed", "error": "Section not found"}
            )
        ordered = [s for s in ordered if str(s["id"]) in wanted]

    queue = []
    for section in ordered:
        if needs_generation(section, force=state.force):
            queue.append(section)
        else:
            results.append(
                {"section_id": str(section["id"]), "name": section.get("name") or "", "status": "skipped"}
            )

    logger.info(
        f"Selected {len(queue)} of {len(ordered)} sections for generation",
        extra={"run_id": str(state.run_id), "document_id": str(document_id)},
    )

    return {"queue": queue, "results": results}


def should_continue(state: GenerateSectionsState) -> str:
    """Check if there are more sections to process."""
    if state.current_index < len(state.queue):
        return "process_section"
    return "end"


async def process_section(state: GenerateSectionsState) -> dict[str, Any]:
    """Generate the next queued section; a failure is recorded, not raised."""
    section = state.queue[state.current_index]
    section_id = str(section["id"])
    name = section.get("name") or ""
    log_extra = {
        "run_id": str(state.run_id),
        "stage": "section",
        "document_id": str(state.document.get("id")),
        "section_id": section_id,
    }

    logger.info(
        f"Processing section {state.current_index + 1}/{len(state.queue)}: {name}",
        extra=log_extra,
    )

    try:
        await generate_and_store_section(state.document, section)
        result_record = {"section_id": section_id, "name": name, "status": "succeeded"}
        logger.info(f"Generated requirements for section {name}", extra=log_extra)

    except Exception as e:
        logger.warning(
            f"Failed to generate requirements for section {name}: {describe_error(e)}",
            extra={**log_extra, "extra_data": {"error_type": type(e).__name__}},
        )
        result_record = {
            "section_id": section_id,
            "name": name,
            "status": "failed",
            "error": describe_error(e),
        }

    return {
        "results": state.results + [result_record],
        "current_index": state.current_index + 1,
        "processed": state.processed + 1,
    }


def summarize(state: GenerateSectionsState) -> dict[str, Any]:
    """Build the human-readable summary of the pass."""
    succeeded = sum(1 for r in state.results if r["status"] == "succeeded")
    failed = sum(1 for r in state.results if r["status"] == "failed")
    skipped = sum(1 for r in state.results if r["status"] == "skipped")

    summary_parts = [f"Generated requirements for {succeeded} of {state.processed} sections"]
    if failed:
        summary_parts.append(f"{failed} failed")
    if skipped:
        summary_parts.append(f"{skipped} already up to date")
    summary = ". ".join(summary_parts)

    logger.info(summary, extra={"run_id": str(state.run_id)})
    return {"summary": summary}


def _build_graph() -> StateGraph:
    """Build the LangGraph for section generation."""
    graph = StateGraph(GenerateSectionsState)

    graph.add_node("select_sections", select_sections)
    graph.add_node("process_section", process_section)
    graph.add_node("summarize", summarize)

    # Flow: select -> process sections in loop -> summarize
    graph.set_entry_point("select_sections")
    graph.add_conditional_edges(
        "select_sections",
        should_continue,
        {
            "process_section": "process_section",
            "end": "summarize",
        },
    )
    graph.add_conditional_edges(
        "process_section",
        should_continue,
        {
            "process_section": "process_section",
            "end": "summarize",
        },
    )
    graph.add_edge("summarize", END)

    return graph


# Compile the graph once at module load
_compiled_graph = _build_graph().compile()


async def run_generate_sections_graph(
    document: dict[str, Any],
    sections: list[dict[str, Any]],
    run_id: UUID,
    section_ids: list[str] | None = None,
    force: bool = False,
) -> BatchGenerationResponse:
    """
    Run the generate sections graph.

    Args:
        document: Owned document row (ownership already checked)
        sections: All sections of the document
        run_id: Run tracking UUID
        section_ids: Optional subset of sections to consider
        force: Regenerate sections that are already up to date

    Returns:
        BatchGenerationResponse with one result per considered section
    """
    initial_state = GenerateSectionsState(
        document=document,
        sections=sections,
        run_id=run_id,
        section_ids=section_ids,
        force=force,
    )

    final_state = await _compiled_graph.ainvoke(
        initial_state,
        config={"recursion_limit": len(sections) + len(section_ids or []) + _FIXED_STEPS},
    )

    # LangGraph returns a dict of the final state values
    results = [SectionGenerationResult(**r) for r in final_state.get("results", [])]
    response = BatchGenerationResponse(
        run_id=str(run_id),
        document_id=str(document.get("id")),
        processed=final_state.get("processed", 0),
        succeeded=sum(1 for r in results if r.status == "succeeded"),
        failed=sum(1 for r in results if r.status == "failed"),
        skipped=sum(1 for r in results if r.status == "skipped"),
        results=results,
        summary=final_state.get("summary", ""),
    )

    logger.info(
        "Completed generate sections graph",
        extra={
            "run_id": str(run_id),
            "document_id": str(document.get("id")),
            "extra_data": {"processed": response.processed, "failed": response.failed},
        },
    )
    return response
