"""Tests for prompt template filling and PRD rendering."""

import pytest

from prd_engine.chains.generate_implementation_plan import build_implementation_prompt
from prd_engine.chains.generate_intro import build_intro_prompt
from prd_engine.chains.generate_section_requirements import build_section_prompt
from prd_engine.core.prompts import (
    INTRO_FALLBACKS,
    NO_PACKAGES_FALLBACK,
    NO_PAYMENTS_FALLBACK,
    fill_template,
    find_unfilled_placeholders,
    flatten_response,
    load_template,
    render_app_background,
    render_prd_body,
)
from tests.fakes.fake_db import SAMPLE_DOCUMENT


class TestFillTemplate:
    def test_replaces_every_occurrence(self):
        out = fill_template("{{NAME}} and {{NAME}}", {"NAME": "Acme"})
        assert out == "Acme and Acme"

    def test_idempotent_once_filled(self):
        values = {"NAME": "Acme", "framework": "Next"}
        once = fill_template("Build {{NAME}} with {{framework}}", values)
        assert fill_template(once, values) == once

    def test_values_are_not_re_expanded(self):
        out = fill_template("{{A}} {{B}}", {"A": "{{B}}", "B": "x"})
        assert out == "{{B}} x"

    def test_blank_value_uses_fallback(self):
        out = fill_template(
            "Payments: {{payments}} / {{otherPackages}}",
            {"payments": "  ", "otherPackages": None},
            INTRO_FALLBACKS,
        )
        assert out == f"Payments: {NO_PAYMENTS_FALLBACK} / {NO_PACKAGES_FALLBACK}"

    def test_blank_value_without_fallback_is_empty(self):
        assert fill_template("[{{styling}}]", {"styling": ""}) == "[]"

    def test_unknown_tokens_left_in_place(self):
        assert fill_template("{{A}} {{Z}}", {"A": "1"}) == "1 {{Z}}"
        assert find_unfilled_placeholders("{{A}} {{ Z }}") == ["A", "Z"]

    def test_no_values_returns_template(self):
        assert fill_template("{{A}}", {}) == "{{A}}"


class TestPackagedTemplates:
    @pytest.mark.parametrize("stage", ["intro", "section", "implementation"])
    def test_templates_exist(self, stage):
        assert "{{" in load_template(stage)

    def test_intro_prompt_fully_filled(self):
        document = {
            **SAMPLE_DOCUMENT,
            "app_name": "Acme",
            "app_description": "Anvil tracking",
            "framework": "Next",
            "other_packages": "",
        }

        prompt = build_intro_prompt(document)

        assert "Acme" in prompt
        assert "Next" in prompt
        assert NO_PACKAGES_FALLBACK in prompt
        assert NO_PAYMENTS_FALLBACK in prompt
        assert find_unfilled_placeholders(prompt) == []

    def test_section_prompt_uses_generated_intro(self):
        document = {**SAMPLE_DOCUMENT, "llm_response": {"intro": "Acme helps teams track anvils."}}
        section = {"id": "s1", "name": "Dashboard", "description": "Overview of deliveries"}

        prompt = build_section_prompt(document, section)

        assert "Overview: Acme helps teams track anvils." in prompt
        assert "Name: Dashboard" in prompt
        assert "Description: Overview of deliveries" in prompt
        assert find_unfilled_placeholders(prompt) == []

    def test_implementation_prompt_contains_headers_and_body(self):
        prompt = build_implementation_prompt(SAMPLE_DOCUMENT, [])

        assert "## Implementation Analysis" in prompt
        assert "## Staged Implementation Plan" in prompt
        assert "# Acme" in prompt
        assert find_unfilled_placeholders(prompt) == []


class TestRendering:
    def test_background_falls_back_to_description(self):
        background = render_app_background({**SAMPLE_DOCUMENT, "llm_response": None})
        assert "Application Name: Acme" in background
        assert f"Overview: {SAMPLE_DOCUMENT['app_description']}" in background
        assert "- Framework: Next" in background
        assert "Payments" not in background

    def test_prd_body_orders_pages_and_includes_details(self):
        sections = [
            {"name": "Settings", "description": "Preferences", "position": 1, "llm_response": None},
            {
                "name": "Home",
                "description": "Landing page",
                "position": 0,
                "llm_response": {"text": "## Purpose\nWelcome users"},
            },
        ]

        body = render_prd_body(SAMPLE_DOCUMENT, sections)

        assert body.index("### 1. Home") < body.index("### 2. Settings")
        assert "Details:\n## Purpose\nWelcome users" in body
        assert body.count("Details:") == 1

    def test_prd_body_without_pages(self):
        body = render_prd_body(SAMPLE_DOCUMENT, [])
        assert body.startswith("# Acme")
        assert body.rstrip().endswith("## Pages")


class TestFlattenResponse:
    def test_none(self):
        assert flatten_response(None) == ""

    def test_plain_string(self):
        assert flatten_response("just text") == "just text"

    def test_json_string_blob(self):
        assert flatten_response('{"text": "from json"}') == "from json"

    def test_dict_keys(self):
        assert flatten_response({"text": "a"}) == "a"
        assert flatten_response({"intro": "b"}) == "b"
        assert flatten_response({"plan": "c", "analysis": "x"}) == "c"

    def test_other_dict_dumped_as_json(self):
        assert '"requirements": "r"' in flatten_response({"requirements": "r"})
