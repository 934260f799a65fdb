# src/assisted/observers/jsonfile.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

from .events import BaseEvent


class JsonFileObserver:
    """
    Event journal of one run: JSON lines next to the run log, numbered in
    emission order so a crashed run still shows how far it got.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._seq = 0

    def notify(self, event: BaseEvent) -> None:
        self._seq += 1
        entry = {"seq": self._seq, "type": event.__class__.__name__, **event.dict()}
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(entry, default=str) + "\n")

    @staticmethod
    def read(path: Path) -> List[Dict[str, Any]]:
        """Entries of a journal; a torn last line (killed process) is skipped."""
        entries = []
        for line in Path(path).read_text(encoding="utf-8").splitlines():
            try:
                entries.append(json.loads(line))
            except ValueError:
                continue
        return entries
