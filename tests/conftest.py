"""Shared fixtures."""

import pytest


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Keep credentials and hosts from the developer's shell out of tests."""
    for var in (
        "OPENROUTER_API_KEY",
        "OLLAMA_HOST",
        "AWS_REGION",
        "AWS_DEFAULT_REGION",
        "AGENT_BRIDGE_CONFIG",
    ):
        monkeypatch.delenv(var, raising=False)
