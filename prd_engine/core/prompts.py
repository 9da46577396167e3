"""Prompt template loading, placeholder filling and PRD context rendering."""

from __future__ import annotations

import json
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

from prd_engine.core.config import get_settings

_PACKAGED_PROMPTS_DIR = Path(__file__).resolve().parent.parent / "prompts"
_PLACEHOLDER_RE = re.compile(r"\{\{\s*([A-Za-z0-9_]+)\s*\}\}")

NO_PACKAGES_FALLBACK = "No additional packages specified"
NO_PAYMENTS_FALLBACK = "No payment provider specified"

INTRO_FALLBACKS = {
    "otherPackages": NO_PACKAGES_FALLBACK,
    "payments": NO_PAYMENTS_FALLBACK,
}


def prompts_dir() -> Path:
    """Directory templates are read from."""
    configured = get_settings().PROMPTS_DIR
    return Path(configured) if configured else _PACKAGED_PROMPTS_DIR


@lru_cache(maxsize=32)
def _read_template(path: str) -> str:
    return Path(path).read_text(encoding="utf-8")


def load_template(stage: str) -> str:
    """
    Load the template for a generation stage.

    Args:
        stage: Stage name; the file read is ``<prompts_dir>/<stage>.txt``

    Returns:
        Raw template text

    Raises:
        FileNotFoundError: If no template exists for the stage
    """
    return _read_template(str(prompts_dir() / f"{stage}.txt"))


def fill_template(
    template: str,
    values: Mapping[str, Any],
    fallbacks: Mapping[str, str] | None = None,
) -> str:
    """
    Replace ``{{KEY}}`` tokens for every key in ``values``.

    Matching is on the literal token text and happens in a single pass, so a
    substituted value containing braces is never expanded again. Blank or
    missing values use ``fallbacks[key]`` when one is given. Tokens with no
    entry in ``values`` are left as they are.
    """
    fallbacks = fallbacks or {}
    resolved: dict[str, str] = {}
    for key, value in values.items():
        text = "" if value is None else str(value)
        if not text.strip() and key in fallbacks:
            text = fallbacks[key]
        resolved[key] = text

    tokens = sorted(resolved, key=len, reverse=True)
    if not tokens:
        return template

    pattern = re.compile("|".join(re.escape("{{" + key + "}}") for key in tokens))
    return pattern.sub(lambda m: resolved[m.group(0)[2:-2]], template)


def find_unfilled_placeholders(text: str) -> list[str]:
    """Names of ``{{...}}`` tokens still present in text."""
    return _PLACEHOLDER_RE.findall(text)


def flatten_response(value: Any) -> str:
    """
    Render a stored response blob as plain text.

    Blobs written by the generator are dicts with a ``text`` (section),
    ``intro`` (document) or ``plan`` key; legacy rows may hold a JSON string.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        try:
            decoded = json.loads(value)
        except (json.JSONDecodeError, ValueError):
            return value
        if isinstance(decoded, (dict, str)):
            return flatten_response(decoded)
        return value
    if isinstance(value, dict):
        for key in ("text", "intro", "plan"):
            if isinstance(value.get(key), str):
                return value[key]
    try:
        return json.dumps(value, indent=2, default=str)
    except (TypeError, ValueError):
        return str(value)


def document_overview(document: Mapping[str, Any]) -> str:
    """Generated intro if the document has one, else its raw description."""
    response = document.get("llm_response")
    if isinstance(response, dict):
        intro = response.get("intro")
        if isinstance(intro, str) and intro.strip():
            return intro
    return document.get("app_description") or ""


def intro_values(document: Mapping[str, Any]) -> dict[str, Any]:
    """Placeholder values for the intro template."""
    return {
        "APPLICATION_NAME": document.get("app_name"),
        "APPLICATION_DESCRIPTION": document.get("app_description"),
        "PROGRAMMING_LANGUAGE": document.get("prog_language"),
        "framework": document.get("framework"),
        "styling": document.get("styling"),
        "backend": document.get("backend"),
        "auth": document.get("auth"),
        "payments": document.get("payments"),
        "otherPackages": document.get("other_packages"),
    }


def render_tech_stack(document: Mapping[str, Any]) -> str:
    lines = [
        f"- Programming Language: {document.get('prog_language') or ''}",
        f"- Framework: {document.get('framework') or ''}",
        f"- Styling: {document.get('styling') or ''}",
        f"- Backend: {document.get('backend') or ''}",
        f"- Authentication: {document.get('auth') or ''}",
    ]
    if document.get("payments"):
        lines.append(f"- Payments: {document['payments']}")
    lines.append(f"- Additional Packages: {document.get('other_packages') or NO_PACKAGES_FALLBACK}")
    return "\n".join(lines)


def render_app_background(document: Mapping[str, Any]) -> str:
    """Background block for the page requirements prompt."""
    return (
        f"Application Name: {document.get('app_name') or ''}\n"
        f"Overview: {document_overview(document)}\n"
        f"Tech Stack:\n{render_tech_stack(document)}"
    )


def render_prd_body(document: Mapping[str, Any], sections: list[Mapping[str, Any]]) -> str:
    """
    Assemble the full PRD as markdown for the implementation prompt.

    Sections are rendered in position order with any previously generated
    requirements appended under ``Details:``.
    """
    ordered = sorted(sections, key=lambda s: s.get("position", 0))

    parts = [
        f"# {document.get('app_name') or ''}",
        "",
        "## Overview",
        document_overview(document),
        "",
        "## Technical Stack",
        render_tech_stack(document),
        "",
        "## Pages",
    ]
    for index, section in enumerate(ordered, start=1):
        parts.append("")
        parts.append(f"### {index}. {section.get('name') or ''}")
        parts.append(section.get("description") or "")
        details = flatten_response(section.get("llm_response"))
        if details:
            parts.append("")
            parts.append("Details:")
            parts.append(details)

    return "\n".join(parts).strip() + "\n"
