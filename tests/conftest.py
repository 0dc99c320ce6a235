"""
Shared pytest fixtures for the invites feed core tests.

Provides:
- a fixed "now" and viewer id
- mocked collaborators (event repository, push transport, viewer session)
- a manual scheduler for swipe timers

Note: the event loop is managed by pytest-asyncio (auto mode, see pyproject.toml).
"""

import sys
from datetime import datetime
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# ==========================================
# PYTHONPATH Setup
# ==========================================

repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from invites.src.config import feed_config  # noqa: E402
from invites.src.config.feed_config import SwipeSettings  # noqa: E402
from tests.helpers.manual_scheduler import ManualScheduler  # noqa: E402

VIEWER_ID = "viewer-1"


@pytest.fixture
def now() -> datetime:
    """Saturday 2026-10-17 12:00 UTC."""
    return datetime.fromisoformat("2026-10-17T12:00:00+00:00")


@pytest.fixture
def viewer_id() -> str:
    return VIEWER_ID


# ==========================================
# Collaborator mocks
# ==========================================


@pytest.fixture
def mock_repository() -> AsyncMock:
    """EventRepository mock: empty feed, nothing found, mutations succeed."""
    repository = AsyncMock()
    repository.fetch_all = AsyncMock(return_value=[])
    repository.fetch_by_id = AsyncMock(return_value=None)
    repository.join = AsyncMock(return_value=True)
    repository.leave = AsyncMock(return_value=True)
    repository.delete = AsyncMock(return_value=True)
    return repository


@pytest.fixture
def mock_transport() -> MagicMock:
    """PushTransport mock; each subscribe returns its own unsubscribe mock."""
    transport = MagicMock()
    transport.subscribe_to_all = MagicMock(side_effect=lambda *a, **kw: MagicMock())
    transport.subscribe_to_event = MagicMock(side_effect=lambda *a, **kw: MagicMock())
    return transport


@pytest.fixture
def mock_session(viewer_id) -> MagicMock:
    session = MagicMock()
    session.current_viewer = MagicMock(return_value=viewer_id)
    return session


# ==========================================
# Swipe helpers
# ==========================================


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def swipe_settings() -> SwipeSettings:
    """Default thresholds: 150px commit, 400ms slide, 400ms collapse, 500ms snap."""
    return SwipeSettings()


@pytest.fixture(autouse=True)
def reset_feed_config(monkeypatch):
    """Reload feed config per test so INVITES_FEED_CONFIG overrides apply."""
    monkeypatch.setattr(feed_config, "_feed_config", None)
