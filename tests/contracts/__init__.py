"""
Contract tests package.

This package contains contract test mixins that all transport
implementations must pass to ensure interface compliance.
"""

from tests.contracts.test_transport_contract import TransportContractMixin

__all__ = [
    "TransportContractMixin",
]
