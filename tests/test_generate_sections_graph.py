"""Tests for the batch page-requirements graph."""

import pytest

from prd_engine.core.llm import CompletionResult
from prd_engine.services.generation import report_from_batch, run_sections_batch, section_source_hash
from tests.fakes.fake_db import ACCOUNT_ID, DOCUMENT_ID


def _generated_blob(section):
    return {"text": "existing requirements", "source_hash": section_source_hash(section)}


def _prompt_page_names(mock_complete):
    names = []
    for call in mock_complete.call_args_list:
        prompt = call.args[0]
        line = next(ln for ln in prompt.splitlines() if ln.startswith("Name: "))
        names.append(line[len("Name: "):])
    return names


@pytest.mark.anyio
class TestGenerateSectionsGraph:
    async def test_only_unprocessed_pages_are_generated(self, fake_db, mock_complete):
        done = fake_db.add_section("a", 0, name="Home", processed=True)
        done["llm_response"] = _generated_blob(done)
        fake_db.add_section("b", 1, name="Checkout")

        response = await run_sections_batch(ACCOUNT_ID, DOCUMENT_ID)

        assert mock_complete.call_count == 1
        assert _prompt_page_names(mock_complete) == ["Checkout"]
        assert response.processed == 1
        assert response.succeeded == 1
        assert response.skipped == 1
        assert fake_db.section("a")["llm_response"]["text"] == "existing requirements"
        assert fake_db.section("b")["processed"] is True

    async def test_pages_processed_in_position_order(self, fake_db, mock_complete):
        fake_db.add_section("c", 2, name="Third")
        fake_db.add_section("a", 0, name="First")
        fake_db.add_section("b", 1, name="Second")

        await run_sections_batch(ACCOUNT_ID, DOCUMENT_ID)

        assert _prompt_page_names(mock_complete) == ["First", "Second", "Third"]

    async def test_one_failure_does_not_stop_the_pass(self, fake_db, mock_complete):
        fake_db.add_section("a", 0, name="First")
        fake_db.add_section("b", 1, name="Second")
        fake_db.add_section("c", 2, name="Third")
        ok = CompletionResult(text="generated", finish_reason="end_turn")
        mock_complete.side_effect = [ok, RuntimeError("provider error"), ok]

        response = await run_sections_batch(ACCOUNT_ID, DOCUMENT_ID)

        assert response.processed == 3
        assert response.succeeded == 2
        assert response.failed == 1
        failed = [r for r in response.results if r.status == "failed"]
        assert failed[0].section_id == "b"
        assert failed[0].error == "provider error"
        assert fake_db.section("a")["processed"] is True
        assert fake_db.section("b")["processed"] is False
        assert fake_db.section("c")["processed"] is True

    async def test_changed_page_is_regenerated(self, fake_db, mock_complete):
        section = fake_db.add_section("a", 0, name="Home", description="old", processed=True)
        section["llm_response"] = _generated_blob(section)
        section["description"] = "new description"

        response = await run_sections_batch(ACCOUNT_ID, DOCUMENT_ID)

        assert response.succeeded == 1
        assert fake_db.section("a")["llm_response"]["source_hash"] == section_source_hash(section)

    async def test_force_regenerates_up_to_date_pages(self, fake_db, mock_complete):
        section = fake_db.add_section("a", 0, processed=True)
        section["llm_response"] = _generated_blob(section)

        response = await run_sections_batch(ACCOUNT_ID, DOCUMENT_ID, force=True)

        assert mock_complete.call_count == 1
        assert response.skipped == 0

    async def test_failed_regeneration_keeps_previous_requirements(self, fake_db, mock_complete):
        forced = fake_db.add_section("a", 0, name="Home", processed=True)
        forced["llm_response"] = _generated_blob(forced)
        changed = fake_db.add_section("b", 1, name="Cart", description="old", processed=True)
        changed["llm_response"] = _generated_blob(changed)
        changed["description"] = "new description"
        mock_complete.side_effect = RuntimeError("Overloaded")

        response = await run_sections_batch(ACCOUNT_ID, DOCUMENT_ID, force=True)

        assert response.failed == 2
        for section_id in ("a", "b"):
            stored = fake_db.section(section_id)
            assert stored["processed"] is True
            assert stored["llm_response"]["text"] == "existing requirements"
        assert fake_db.writes == []

    async def test_subset_with_unknown_id(self, fake_db, mock_complete):
        fake_db.add_section("a", 0, name="First")
        fake_db.add_section("b", 1, name="Second")

        response = await run_sections_batch(ACCOUNT_ID, DOCUMENT_ID, section_ids=["b", "missing"])

        assert _prompt_page_names(mock_complete) == ["Second"]
        assert response.processed == 1
        statuses = {r.section_id: r.status for r in response.results}
        assert statuses == {"b": "succeeded", "missing": "failed"}
        assert fake_db.section("a")["processed"] is False

    async def test_nothing_to_do(self, fake_db, mock_complete):
        response = await run_sections_batch(ACCOUNT_ID, DOCUMENT_ID)

        mock_complete.assert_not_called()
        assert response.processed == 0
        assert report_from_batch(response).status == "skipped"


class TestReportFromBatch:
    @pytest.mark.anyio
    async def test_partial_report_names_failed_pages(self, fake_db, mock_complete):
        fake_db.add_section("a", 0, name="Home")
        fake_db.add_section("b", 1, name="Checkout")
        ok = mock_complete.return_value
        mock_complete.side_effect = [ok, RuntimeError("boom")]

        report = report_from_batch(await run_sections_batch(ACCOUNT_ID, DOCUMENT_ID))

        assert report.status == "partial"
        assert "Checkout" in report.warning
        assert report.details["failed"] == 1

    @pytest.mark.anyio
    async def test_only_unknown_ids_is_reported_as_failed(self, fake_db, mock_complete):
        fake_db.add_section("a", 0, name="Home")

        response = await run_sections_batch(ACCOUNT_ID, DOCUMENT_ID, section_ids=["gone"])
        report = report_from_batch(response)

        mock_complete.assert_not_called()
        assert response.processed == 0
        assert report.status == "failed"
        assert "gone" in report.warning
