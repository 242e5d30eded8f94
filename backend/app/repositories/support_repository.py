from __future__ import annotations

import json
import os
import tempfile
from copy import deepcopy
from pathlib import Path
from threading import RLock
from typing import Any

from app.core.config import DEFAULT_QUEUE_FILE
from app.core.errors import CorruptQueueError


def write_json_atomic(path: Path, payload: Any) -> None:
    """Writes `payload` to a sibling temp file and renames it over `path`."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2, ensure_ascii=False)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class SupportQueueRepository:
    """The append-only JSON array file holding every submitted support request.

    Every mutation reads the whole file, builds the new list and writes the
    whole file back. Appends from one process never interleave; two processes
    appending at once can each write a list missing the other's record, since
    there is no file lock.
    """

    def __init__(self, *, queue_file: str | os.PathLike[str] | None = None) -> None:
        self._queue_file = queue_file
        # Held across each read-modify-write so mutations in this process never interleave.
        self.lock = RLock()

    def locate(self) -> Path:
        raw = self._queue_file if self._queue_file else DEFAULT_QUEUE_FILE
        path = Path(raw)
        if not path.is_absolute():
            path = Path.cwd() / path
        return path

    def ensure(self) -> Path:
        path = self.locate()
        path.parent.mkdir(parents=True, exist_ok=True)
        if not path.exists():
            write_json_atomic(path, [])
        return path

    def read_all(self) -> list[dict[str, Any]]:
        path = self.ensure()
        content = path.read_text(encoding="utf-8")
        try:
            rows = json.loads(content)
        except json.JSONDecodeError as exc:
            raise CorruptQueueError(f"Queue file {path} is not valid JSON: {exc}") from exc
        if not isinstance(rows, list):
            raise CorruptQueueError(f"Queue file {path} does not contain a JSON array")
        for index, row in enumerate(rows):
            if not isinstance(row, dict):
                raise CorruptQueueError(f"Queue file {path} has a non-object entry at index {index}")
        return rows

    def append(self, record: dict[str, Any]) -> dict[str, Any]:
        with self.lock:
            rows = self.read_all()
            rows.append(deepcopy(record))
            write_json_atomic(self.locate(), rows)
        return deepcopy(record)

    def replace_all(self, records: list[dict[str, Any]]) -> None:
        with self.lock:
            self.ensure()
            write_json_atomic(self.locate(), [deepcopy(row) for row in records])

    def count(self) -> int:
        return len(self.read_all())

    def stat(self) -> os.stat_result:
        return self.ensure().stat()
