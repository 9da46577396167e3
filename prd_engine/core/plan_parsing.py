"""Split an implementation-plan completion into analysis and plan parts."""

from dataclasses import dataclass
from typing import Literal

ANALYSIS_HEADER = "## Implementation Analysis"
PLAN_HEADER = "## Staged Implementation Plan"

PlanLayout = Literal["both", "analysis-only", "plan-only", "neither"]


@dataclass(frozen=True)
class ImplementationSections:
    """Parsed implementation response, tagged with which headers were found."""

    layout: PlanLayout
    analysis: str
    plan: str


def parse_implementation_response(text: str | None) -> ImplementationSections:
    """
    Best-effort split of a completion on its two markdown headers.

    Never raises. Whenever the plan part would be empty the whole response is
    used as the plan, so callers always have something to show.

    Layouts:
        both: analysis header precedes plan header
        plan-only: plan header present, no analysis header before it
        analysis-only: only the analysis header
        neither: no headers at all
    """
    raw = text if isinstance(text, str) else ""
    stripped = raw.strip()

    analysis_at = raw.find(ANALYSIS_HEADER)
    plan_at = raw.find(PLAN_HEADER)

    # A plan header before the analysis header cannot close the analysis
    if analysis_at >= 0:
        plan_after_analysis = raw.find(PLAN_HEADER, analysis_at + len(ANALYSIS_HEADER))
    else:
        plan_after_analysis = -1

    if analysis_at >= 0 and plan_after_analysis >= 0:
        analysis = raw[analysis_at + len(ANALYSIS_HEADER):plan_after_analysis].strip()
        plan = raw[plan_after_analysis + len(PLAN_HEADER):].strip()
        return ImplementationSections("both", analysis, plan or stripped)

    if plan_at >= 0:
        plan = raw[plan_at + len(PLAN_HEADER):].strip()
        return ImplementationSections("plan-only", "", plan or stripped)

    if analysis_at >= 0:
        # Analysis only counts when the plan header closes it
        return ImplementationSections("analysis-only", "", stripped)

    return ImplementationSections("neither", "", stripped)
