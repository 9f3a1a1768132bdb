"""
deskvfs Error Hierarchy — Structured exceptions for VFS operations.

Every error carries the offending path and the operation name so callers
(file manager, editors, CLI) can report a precise outcome to the user.

Hierarchy:
    VFSError
    ├── VFSNotFoundError           — Operate on a missing path
    ├── VFSDuplicatePathError      — Create where a path already exists
    ├── VFSStoreUnavailableError   — Record store not started / transaction failed
    ├── VFSPartialFailureError     — Recursive operation failed after mutating some targets
    ├── VFSInvalidOperationError   — Bad name, immutable field, move into own subtree
    └── VFSConfigError             — Invalid deskvfs.yaml
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class VFSError(Exception):
    """
    Base error for all deskvfs failures.
    All context is serializable to JSON for the operation journal.
    """

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.path: Optional[str] = context.get("path")
        self.operation: Optional[str] = context.get("operation")
        self.error_type: str = self.__class__.__name__
        self.context: Dict[str, Any] = context
        self.timestamp: str = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize error to a JSON-compatible dict."""
        return {
            "error_type": self.error_type,
            "message": self.message,
            "path": self.path,
            "operation": self.operation,
            "timestamp": self.timestamp,
            "context": {
                k: str(v) for k, v in self.context.items()
                if k not in ("path", "operation")
            },
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    def __repr__(self) -> str:
        parts = [f"{self.error_type}: {self.message}"]
        if self.operation:
            parts.append(f"operation={self.operation}")
        if self.path:
            parts.append(f"path={self.path}")
        return " | ".join(parts)


class VFSNotFoundError(VFSError):
    """No entry exists at the given path."""
    pass


class VFSDuplicatePathError(VFSError):
    """An entry already exists at the target path."""
    pass


class VFSStoreUnavailableError(VFSError):
    """
    The record store is not initialized, or a transaction failed.
    The underlying driver error (if any) is chained as __cause__.
    """

    def __init__(self, message: str, **context: Any):
        self.store_url: Optional[str] = context.get("store_url")
        super().__init__(message, **context)


class VFSPartialFailureError(VFSError):
    """
    A recursive operation failed after applying part of its mutations.

    ``completed`` lists the paths already mutated (deleted, created or
    rewritten) before the failing step; the store is left in that state.
    """

    def __init__(self, message: str, **context: Any):
        self.completed: List[str] = list(context.get("completed") or [])
        self.failed_path: Optional[str] = context.get("failed_path")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["completed"] = self.completed
        d["failed_path"] = self.failed_path
        return d


class VFSInvalidOperationError(VFSError):
    """The request is well-formed but not allowed on this entry."""
    pass


class VFSConfigError(VFSError):
    """Configuration error — invalid deskvfs.yaml."""
    pass
