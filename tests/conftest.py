"""Pytest configuration and fixtures."""

import os
from unittest.mock import AsyncMock, patch

import pytest

from prd_engine.core.llm import CompletionResult
from tests.fakes.fake_db import FakeDB

_PATCHED_DB_FUNCTIONS = (
    "require_document",
    "save_document_generation",
    "list_sections",
    "get_section",
    "save_section_generation",
    "upsert_implementation_plan",
)


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    os.environ["SUPABASE_URL"] = "https://test.supabase.co"
    os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "test-key"
    os.environ["ANTHROPIC_API_KEY"] = "test-anthropic-key"
    os.environ["PRD_ENGINE_ENV"] = "test"

    from prd_engine.core.config import get_settings

    get_settings.cache_clear()


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def mock_usage_log():
    """Keep usage accounting away from a real Supabase."""
    with patch("prd_engine.core.llm_usage.get_supabase") as mock:
        yield mock


@pytest.fixture
def fake_db():
    """FakeDB wired into the generation orchestrator."""
    db = FakeDB()
    patchers = [
        patch(f"prd_engine.services.generation.{name}", side_effect=getattr(db, name))
        for name in _PATCHED_DB_FUNCTIONS
    ]
    for p in patchers:
        p.start()
    try:
        yield db
    finally:
        for p in patchers:
            p.stop()


@pytest.fixture
def mock_complete():
    """Patch the single-attempt completion call used by every stage."""
    with patch("prd_engine.core.llm.complete", new_callable=AsyncMock) as mock:
        mock.return_value = CompletionResult(
            text="Generated text",
            finish_reason="end_turn",
            model="claude-sonnet-4-20250514",
            usage={"input_tokens": 100, "output_tokens": 50},
            metadata={"cache_creation_input_tokens": 0, "cache_read_input_tokens": 0},
        )
        yield mock
