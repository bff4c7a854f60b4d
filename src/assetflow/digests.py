from __future__ import annotations

"""Content digests used to ignore file events that did not change anything."""

import hashlib
import threading
from pathlib import Path
from typing import Dict, Optional


def file_digest(path: Path) -> Optional[str]:
    h = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(1024 * 1024), b""):
                h.update(chunk)
    except (FileNotFoundError, IsADirectoryError, PermissionError):
        return None
    return h.hexdigest()


class DigestTracker:
    """Remembers the last seen digest of each path.

    `changed()` is True the first time a path is seen, when its content differs
    from the previous call, and when it disappears.
    """

    def __init__(self) -> None:
        self._digests: Dict[str, Optional[str]] = {}
        self._lock = threading.Lock()

    def changed(self, path: Path) -> bool:
        key = str(path)
        digest = file_digest(path)
        with self._lock:
            if key in self._digests and self._digests[key] == digest:
                return False
            self._digests[key] = digest
            return True

    def forget(self, path: Path) -> None:
        with self._lock:
            self._digests.pop(str(path), None)
