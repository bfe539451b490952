"""
Root pytest configuration.
"""

from __future__ import annotations

import os
from collections.abc import Generator

import pytest


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line(
        "markers",
        "critical: Tests that must never fail - core functionality",
    )
    config.addinivalue_line(
        "markers",
        "security: Security-critical tests (API key handling)",
    )
    config.addinivalue_line(
        "markers",
        "property: Property-based tests (may be slow)",
    )
    config.addinivalue_line(
        "markers",
        "contract: Wire-format tests pinned to the ingest API contract",
    )


@pytest.fixture(autouse=True)
def reset_diagnostics() -> Generator[None, None, None]:
    """Reset the diagnostics module before and after each test.

    The diagnostics module caches the internal-logging flag on first access
    and holds a module-level writer. Resetting both keeps tests isolated.
    """
    import logdna_ingest.core.diagnostics as diag

    diag._reset_for_tests()
    yield
    diag._reset_for_tests()


@pytest.fixture(autouse=True)
def _clear_logdna_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep ambient LOGDNA_* variables from leaking into settings."""
    for key in list(os.environ):
        if key.upper().startswith("LOGDNA_"):
            monkeypatch.delenv(key, raising=False)
