"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

import pytest


@pytest.fixture(scope="session")
def load_plugins():
    """Load all builtin plugins once per test session."""
    from oscdgram.core.plugins import load_builtin_plugins
    load_builtin_plugins()


@pytest.fixture
def events():
    """Fresh recording notify callback."""
    from tests.mocks import RecordingNotify

    return RecordingNotify()


@pytest.fixture
def receiver():
    """UDP socket on 127.0.0.1 with an ephemeral port; closed after the test."""
    from tests.mocks import udp_receiver

    sock = udp_receiver()
    yield sock
    sock.close()
