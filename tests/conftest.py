"""
Shared test configuration for PlaceMiner.

Fixtures wrap the helpers in tests/helpers: rendered place pages, a fake
clock whose sleep advances time instantly, a scripted content source and a
recording progress listener. No test touches the network or launches a
browser.
"""

# Standard library imports
import asyncio
from typing import AsyncGenerator, List

# Third-party imports
import pytest
import pytest_asyncio

# Local imports
from placeminer.config import OrchestratorSettings
from placeminer.protocols import WorkItem

from tests.helpers import ACME_HTML, FULL_PLACE_HTML, LOADING_HTML, FakeClock, RecordingListener

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Integration tests across modules")


@pytest_asyncio.fixture(autouse=True)
async def cleanup_tasks() -> AsyncGenerator[None, None]:
    """Cancel any task a test left behind, e.g. a run that was never awaited."""
    tasks_before = asyncio.all_tasks()
    yield
    new_tasks = asyncio.all_tasks() - tasks_before

    for task in new_tasks:
        if not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                print(f"Unexpected error during task cleanup: {e}")


# ============================================================================
# HTML Fixtures
# ============================================================================


@pytest.fixture
def loading_html() -> str:
    return LOADING_HTML


@pytest.fixture
def acme_html() -> str:
    return ACME_HTML


@pytest.fixture
def full_place_html() -> str:
    return FULL_PLACE_HTML


# ============================================================================
# Orchestrator Fixtures
# ============================================================================


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recorder() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def fast_settings() -> OrchestratorSettings:
    """Small bounds so never-ready surfaces fail after a handful of polls."""
    return OrchestratorSettings(
        poll_interval=1.0,
        max_poll_attempts=5,
        ready_timeout=30.0,
        politeness_delay=1.5,
    )


@pytest.fixture
def work_items() -> List[WorkItem]:
    return [
        WorkItem(id=0, company="Acme", country="US", city="Springfield"),
        WorkItem(id=1, company="Globex", country="US", city="Cypress Creek"),
        WorkItem(id=2, company="Initech", country="US"),
    ]
