from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TextIO

from oscdgram.core.events import TransportEvent


def _utc_ts() -> str:
    return datetime.now(timezone.utc).isoformat()


class EventLogger:
    """
    JSONL recorder for transport events.

    Instances are callable, so they can be passed straight to
    ``register_notify``.
    """

    def __init__(self, path: Path | None = None, *, stream: TextIO | None = None) -> None:
        if (path is None) == (stream is None):
            raise ValueError("EventLogger needs exactly one of path or stream")
        self._owns_fp = path is not None
        self._fp: TextIO = path.open("w", encoding="utf-8", newline="\n") if path is not None else stream  # type: ignore[assignment]
        self.counts: dict[str, int] = {}

    def log(self, event: dict[str, Any]) -> None:
        self._fp.write(json.dumps(event, ensure_ascii=False) + "\n")
        self._fp.flush()

    def __call__(self, event: TransportEvent) -> None:
        self.counts[event.name] = self.counts.get(event.name, 0) + 1
        self.log({"ts": _utc_ts(), **event.to_dict()})

    def close(self) -> None:
        if self._owns_fp:
            self._fp.close()
