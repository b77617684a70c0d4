"""
Append-only file recorder sink.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from analytics_widgets.core.events.events import event_to_record


class FileRecorderSink:
    """Writes each merger event as a JSON line to a file."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._fh = self._path.open("a", encoding="utf-8")
        self._closed = False

    @property
    def path(self) -> Path:
        return self._path

    def on_event(self, event: Any) -> None:
        if self._closed:
            return
        self._fh.write(json.dumps(event_to_record(event), default=str) + "\n")
        self._fh.flush()

    def close(self) -> None:
        if self._closed:
            return
        self._fh.flush()
        self._fh.close()
        self._closed = True
