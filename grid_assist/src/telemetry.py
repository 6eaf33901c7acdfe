"""
Telemetry snapshot writer for the grid-assist daemon.

Writes the controller's TelemetrySnapshot as a JSON file at a configurable
path. The file is replaced atomically (write to a sibling temp file, then
rename) after every handled event and keepalive tick, so dashboards and
monitoring always read a complete document.

CHANGELOG:
- 2026-10-18: Initial creation (STORY-010)

TODO:
- None
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from grid_assist.src.models import TelemetrySnapshot


class TelemetryWriter:
    """Writes the latest telemetry snapshot to a JSON file.

    Args:
        path: Filesystem path for the telemetry JSON file. Accepts str or Path.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._tmp_path = self.path.with_name(self.path.name + ".tmp")
        self.writes: int = 0

    def write(self, snapshot: TelemetrySnapshot) -> None:
        """Serialize *snapshot* and replace the telemetry file with it."""
        self._tmp_path.write_text(snapshot.model_dump_json())
        os.replace(self._tmp_path, self.path)
        self.writes += 1
