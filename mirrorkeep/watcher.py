"""Bookkeeping for the per-directory watches of a mirrored tree."""

from __future__ import annotations

import os
import stat
import sys
from typing import Any

MAX_WATCHES = 1024


class WatchTable:
    """Directories watched one level deep, each scheduled on an observer.

    The observer is anything with ``schedule(handler, path, recursive=...)``
    and ``unschedule(watch)``, such as a watchdog observer.
    """

    def __init__(self, observer: Any, handler: Any, limit: int = MAX_WATCHES) -> None:
        self._observer = observer
        self._handler = handler
        self._limit = limit
        self._watches: dict[str, Any] = {}

    def add(self, path: str | os.PathLike[str]) -> bool:
        """Watch one directory; return whether it is now watched."""
        key = os.fspath(path)
        if key in self._watches:
            return True
        if len(self._watches) >= self._limit:
            print("Error: Max watches reached", file=sys.stderr)
            return False
        try:
            watch = self._observer.schedule(self._handler, key, recursive=False)
        except OSError:
            return False
        self._watches[key] = watch
        return True

    def add_recursive(self, root: str | os.PathLike[str]) -> None:
        """Watch ``root`` and every directory below it, not following symlinks."""
        root_s = os.fspath(root)
        try:
            if not stat.S_ISDIR(os.lstat(root_s).st_mode):
                return
        except OSError:
            return
        self.add(root_s)
        try:
            names = [entry.name for entry in os.scandir(root_s)]
        except OSError:
            return
        for name in names:
            sub = f"{root_s}/{name}"
            try:
                is_dir = stat.S_ISDIR(os.lstat(sub).st_mode)
            except OSError:
                continue
            if is_dir:
                self.add_recursive(sub)

    def remove(self, path: str | os.PathLike[str]) -> bool:
        """Stop watching a directory; return whether it was watched."""
        watch = self._watches.pop(os.fspath(path), None)
        if watch is None:
            return False
        try:
            self._observer.unschedule(watch)
        except (KeyError, OSError):
            pass
        return True

    def path_for(self, directory: str | os.PathLike[str]) -> str | None:
        """Return the watched path for ``directory``, or None if it is not watched."""
        key = os.fspath(directory)
        return key if key in self._watches else None

    def __len__(self) -> int:
        return len(self._watches)

    def __contains__(self, path: object) -> bool:
        try:
            key = os.fspath(path)  # type: ignore[arg-type]
        except TypeError:
            return False
        return key in self._watches


__all__ = ["MAX_WATCHES", "WatchTable"]