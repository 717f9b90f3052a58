"""Undo journal writer for transactions.

The journal mirrors a transaction's inverse-action stack on disk in JSONL
format, so that a process killed mid-export leaves behind both the files it
moved aside and the steps needed to put them back.

Each journal file contains:
- Header line with metadata (type: "header")
- One JSON object per recorded inverse action (type: "inverse")
"""

import json
import os
import platform
from datetime import UTC, datetime
from pathlib import Path
from typing import IO, Any

import structlog

from packforge.core.constants import JOURNAL_SCHEMA_VERSION
from packforge.core.errors import FilesystemError

logger = structlog.get_logger(__name__)


class UndoJournal:
    """Appends inverse actions of a transaction to a JSONL file."""

    def __init__(self, path: Path, transaction_id: str) -> None:
        """Initialize the journal writer.

        Args:
            path: Location of the journal file (created on first write)
            transaction_id: Identifier of the owning transaction
        """
        self.path = path
        self.transaction_id = transaction_id
        self._file: IO[str] | None = None
        self._header_written = False
        self._entries = 0

    @property
    def entries(self) -> int:
        """Number of inverse actions written so far."""
        return self._entries

    def write_header(self) -> None:
        """Write journal header with transaction metadata."""
        if self._header_written:
            return

        header = {
            "type": "header",
            "schema_version": JOURNAL_SCHEMA_VERSION,
            "transaction_id": self.transaction_id,
            "created_at": datetime.now(UTC).isoformat(),
            "system": {"os": platform.system()},
        }
        self._write_line(header)
        self._header_written = True

    def append(self, action: dict[str, Any]) -> None:
        """Append an inverse action to the journal.

        Args:
            action: Serialized inverse action (see ``InverseAction.to_dict``)
        """
        if not self._header_written:
            self.write_header()

        entry = {
            "type": "inverse",
            "seq": self._entries,
            "ts": datetime.now(UTC).isoformat(),
            **action,
        }
        self._write_line(entry)
        self._entries += 1

    def mark_undone(self, seq: int) -> None:
        """Record that the inverse action ``seq`` was executed by an undo."""
        self._write_line(
            {"type": "undone", "seq": seq, "ts": datetime.now(UTC).isoformat()}
        )

    def _write_line(self, data: dict[str, Any]) -> None:
        """Write a JSON line and flush it to disk."""
        try:
            if self._file is None:
                self._file = open(self.path, "a", encoding="utf-8")
            self._file.write(
                json.dumps(data, ensure_ascii=True, separators=(",", ":")) + "\n"
            )
            self._file.flush()
            os.fsync(self._file.fileno())
        except OSError as e:
            raise FilesystemError("Failed to write undo journal", self.path, cause=e) from e

    def close(self) -> None:
        """Close the journal file."""
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self) -> "UndoJournal":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


def read_pending(path: Path) -> list[dict[str, Any]]:
    """Read the inverse actions of a journal that were never undone.

    Args:
        path: Journal file

    Returns:
        Pending inverse action entries, oldest first
    """
    entries: dict[int, dict[str, Any]] = {}
    with open(path, encoding="utf-8") as f:
        for line in f:
            if not line.strip():
                continue
            data = json.loads(line)
            if data.get("type") == "inverse":
                entries[data["seq"]] = data
            elif data.get("type") == "undone":
                entries.pop(data["seq"], None)
    return [entries[seq] for seq in sorted(entries)]
