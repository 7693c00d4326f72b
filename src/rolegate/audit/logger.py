"""Append-only JSONL sink for audit entries.

Each audit entry is written as one JSON object per line.  The file is only
ever opened in append mode; nothing in rolegate rewrites or truncates it.

Thread-safety is achieved with a threading.Lock so concurrent admin
commands in one process never interleave partial lines.

Example
-------
>>> from pathlib import Path
>>> sink = AuditLogger(Path("/tmp/rolegate-audit.jsonl"))
>>> sink.append({"category": "user-role-change", "actor_id": "admin-1"})
>>> sink.count()
1
"""
from __future__ import annotations

import json
import threading
import uuid
from pathlib import Path
from typing import Iterator


class AuditLogger:
    """Append-only JSONL audit file.

    Parameters
    ----------
    log_path:
        Path to the ``.jsonl`` file.  Parent directories are created on
        first write.
    session_id:
        Identifier stamped on every line written by this process.  A random
        UUID is generated if not supplied.
    """

    def __init__(self, log_path: Path, session_id: str | None = None) -> None:
        self._log_path = Path(log_path)
        self._session_id: str = session_id or str(uuid.uuid4())
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Write API
    # ------------------------------------------------------------------

    def append(self, record: dict[str, object]) -> None:
        """Append one audit record.

        Raises
        ------
        OSError
            When the file cannot be written.
        """
        line = json.dumps({"session_id": self._session_id, **record}, default=str)
        with self._lock:
            self._log_path.parent.mkdir(parents=True, exist_ok=True)
            with self._log_path.open("a", encoding="utf-8") as fh:
                fh.write(line + "\n")

    # ------------------------------------------------------------------
    # Read API (audit review tooling only)
    # ------------------------------------------------------------------

    def read_all(self) -> list[dict[str, object]]:
        """Return every record in file order; empty when the file is missing."""
        return list(self._iter_records())

    def query(self, filters: dict[str, object]) -> list[dict[str, object]]:
        """Return records whose top-level fields equal every filter value."""
        return [
            record
            for record in self._iter_records()
            if all(record.get(k) == v for k, v in filters.items())
        ]

    def count(self) -> int:
        return sum(1 for _ in self._iter_records())

    def last_n(self, n: int) -> list[dict[str, object]]:
        """Return the ``n`` most recent records."""
        if n <= 0:
            return []
        records = list(self._iter_records())
        return records[-n:] if n < len(records) else records

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _iter_records(self) -> Iterator[dict[str, object]]:
        if not self._log_path.exists():
            return
        with self._lock:
            with self._log_path.open("r", encoding="utf-8") as fh:
                lines = fh.readlines()
        for line in lines:
            line = line.strip()
            if not line:
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError:
                continue  # torn line from a crashed writer

    @property
    def log_path(self) -> Path:
        return self._log_path

    @property
    def session_id(self) -> str:
        return self._session_id


__all__ = ["AuditLogger"]
