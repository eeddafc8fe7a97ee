from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any


class JsonlLogger:
    """Append-only JSON-lines log (one record per line)."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def append(self, data: dict[str, Any]) -> None:
        line = json.dumps(data, ensure_ascii=False, default=str)
        with self._lock:
            with self.path.open("a", encoding="utf-8") as fh:
                fh.write(line + "\n")
