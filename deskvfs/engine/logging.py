"""
deskvfs Logging — stdlib logger setup plus a structured JSONL operation journal.

Implements:
- configure_logging: root "deskvfs" logger level/handler from config
- FileLogger: per-category journal files (daily rotation)
- Log entry builders for VFS operations, failures and system events

Journal layout: {directory}/{category}/{YYYY-MM-DD}.jsonl
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger("deskvfs.engine.logging")

JOURNAL_CATEGORIES = ("operations", "errors", "system")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a stream handler to the "deskvfs" logger (idempotent)."""
    root = logging.getLogger("deskvfs")
    root.setLevel(level)
    if not any(getattr(h, "_deskvfs_handler", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._deskvfs_handler = True
        root.addHandler(handler)
    return root


class LogEntry:
    """A structured journal entry destined for one category file."""

    __slots__ = ("category", "data")

    def __init__(self, category: str, data: Dict[str, Any]):
        self.category = category
        self.data = data

    def to_json(self) -> str:
        return json.dumps(self.data, default=str, separators=(",", ":"))


class FileLogger:
    """
    Writes structured JSON journal entries to per-category files.
    Files rotate daily: {log_dir}/{category}/{YYYY-MM-DD}.jsonl
    """

    def __init__(self, log_dir: str = ".deskvfs/logs"):
        self._log_dir = Path(log_dir)
        for cat in JOURNAL_CATEGORIES:
            (self._log_dir / cat).mkdir(parents=True, exist_ok=True)

    def write(self, entry: LogEntry) -> None:
        """Append a single entry to today's file for its category."""
        file_path = self._resolve_path(entry.category)
        with open(file_path, "a", encoding="utf-8") as f:
            f.write(entry.to_json())
            f.write("\n")

    def _resolve_path(self, category: str) -> Path:
        if category not in JOURNAL_CATEGORIES:
            raise ValueError(f"Unknown journal category '{category}'")
        return self._log_dir / category / f"{date.today().isoformat()}.jsonl"

    @property
    def log_dir(self) -> Path:
        return self._log_dir

    def query(
        self,
        category: str,
        *,
        days: int = 7,
        filters: Optional[Dict[str, Any]] = None,
        limit: int = 100,
    ) -> List[Dict[str, Any]]:
        """
        Read journal entries for a category, newest first.

        Args:
            category: One of JOURNAL_CATEGORIES.
            days: How many daily files to look back through.
            filters: Only entries whose top-level keys equal ALL of these.
            limit: Max number of entries to return.
        """
        base = self._log_dir / category
        if not base.exists():
            return []

        results: List[Dict[str, Any]] = []
        current = date.today()
        oldest = current - timedelta(days=days)
        while current >= oldest and len(results) < limit:
            file_path = base / f"{current.isoformat()}.jsonl"
            if file_path.exists():
                day_entries = self._read_jsonl(file_path, filters)
                day_entries.reverse()
                results.extend(day_entries[: limit - len(results)])
            current -= timedelta(days=1)
        return results

    @staticmethod
    def _read_jsonl(path: Path, filters: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
        entries: List[Dict[str, Any]] = []
        try:
            with open(path, "r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        data = json.loads(line)
                    except json.JSONDecodeError:
                        continue
                    if filters and not all(data.get(k) == v for k, v in filters.items()):
                        continue
                    entries.append(data)
        except OSError as exc:
            logger.warning("Could not read journal file %s: %s", path, exc)
        return entries


# ---------------------------------------------------------------------------
# Log Entry Builders
# ---------------------------------------------------------------------------

def _base_entry(event: str, level: str, **extra: Any) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": level,
        "event": event,
    }
    entry.update({k: v for k, v in extra.items() if v is not None})
    return entry


def log_vfs_operation(
    operation: str,
    path: str,
    target: Optional[str] = None,
    affected: Optional[int] = None,
) -> LogEntry:
    """Build an entry for a completed VFS mutation."""
    data = _base_entry(
        event=f"vfs_{operation}",
        level="INFO",
        operation=operation,
        path=path,
        target=target,
        affected=affected,
    )
    return LogEntry("operations", data)


def log_vfs_failure(error: Any) -> LogEntry:
    """Build an entry from a VFSError (anything with to_dict())."""
    details = error.to_dict()
    data = _base_entry(
        event="vfs_error",
        level="ERROR",
        operation=details.get("operation"),
        path=details.get("path"),
        error=details,
    )
    return LogEntry("errors", data)


def log_system_event(event: str, details: Optional[Dict[str, Any]] = None) -> LogEntry:
    """Build a system event entry (store start/stop, bootstrap, schema upgrade)."""
    data = _base_entry(event=event, level="INFO", details=details)
    return LogEntry("system", data)
