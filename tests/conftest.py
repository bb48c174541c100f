"""
Pytest configuration.

Adds the project root to the Python path so tests can import domain,
repositories, services and config, and provides an in-memory Supabase
client and a private live update relay for service tests.
"""

import sys
from pathlib import Path

import pytest

# Add the project root to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from repositories import client  # noqa: E402
from services.live_updates import LiveUpdateRelay  # noqa: E402
from tests.fakes import FakeSupabase  # noqa: E402


@pytest.fixture
def fake_db(monkeypatch):
    """An empty FakeSupabase installed as the process-wide client."""

    fake = FakeSupabase()
    monkeypatch.setattr(client, "_client", fake)
    return fake


@pytest.fixture
def relay():
    """A relay that records every event it publishes."""

    relay = LiveUpdateRelay()
    relay.received = []
    relay.subscribe(relay.received.append)
    return relay
