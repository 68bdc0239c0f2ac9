"""
Contract tests for the datagram transport.
"""

from __future__ import annotations

import pytest

from oscdgram.core.plugins import create_transport, load_builtin_plugins
from tests.contracts.test_transport_contract import TransportContractMixin


class TestDatagramTransportContract(TransportContractMixin):
    """Contract tests for the dgram transport."""

    @pytest.fixture(scope="class", autouse=True)
    def setup_plugins(self):
        load_builtin_plugins()

    @pytest.fixture
    def transport_factory(self):
        def _create():
            return create_transport("dgram", {
                "open": {"host": "127.0.0.1", "port": 0},
                "send": {"host": "127.0.0.1", "port": 9},
            })
        return _create
