from __future__ import annotations

# Import built-in transports to register them.
from oscdgram.plugins.transports.datagram import dgram_transport  # noqa: F401
