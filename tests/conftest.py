"""Pytest configuration and fixtures."""

import os

import pytest

from travel_journal.core.config import get_settings


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    os.environ["SUPABASE_URL"] = "https://test.supabase.co"
    os.environ["SUPABASE_ANON_KEY"] = "test-key"
    os.environ["KNOWLEDGE_TABLE"] = "knowledge_entries"
    os.environ["TRAVEL_JOURNAL_ENV"] = "test"
    os.environ.pop("OPENAI_API_KEY", None)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
