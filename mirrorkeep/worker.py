"""Keep a target directory in step with a source directory as it changes."""

from __future__ import annotations

import os
import stat
import threading

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .fsutils import copy_recursive, map_path
from .watcher import WatchTable

_POLL_SECONDS = 0.1


def _as_str(path: str | bytes) -> str:
    return os.fsdecode(path)


class MirrorHandler(FileSystemEventHandler):
    """Replays changes seen under ``source`` onto ``target``."""

    def __init__(self, source: str | os.PathLike[str], target: str | os.PathLike[str]) -> None:
        super().__init__()
        self.source = os.fspath(source)
        self.target = os.fspath(target)
        self._table: WatchTable | None = None

    def attach(self, table: WatchTable) -> None:
        """Use ``table`` to look up and extend the watched directories."""
        self._table = table

    def _destination(self, path: str) -> str | None:
        if self._table is None:
            return None
        if self._table.path_for(os.path.dirname(path)) is None:
            return None
        return map_path(path, self.source, self.target)

    def _create(self, path: str) -> None:
        dst = self._destination(path)
        if dst is None:
            return
        try:
            mode = os.lstat(path).st_mode
        except OSError:
            return
        if stat.S_ISDIR(mode):
            self._copy(path, dst)
            if self._table is not None:
                self._table.add_recursive(path)
        elif stat.S_ISREG(mode):
            self._copy(path, dst)
        elif stat.S_ISLNK(mode):
            try:
                os.symlink(os.readlink(path), dst)
            except OSError:
                pass

    def _delete(self, path: str, is_directory: bool) -> None:
        if is_directory and self._table is not None:
            self._table.remove(path)
        dst = self._destination(path)
        if dst is None:
            return
        try:
            os.unlink(dst)
        except OSError:
            pass

    @staticmethod
    def _copy(src: str, dst: str) -> None:
        try:
            copy_recursive(src, dst)
        except OSError:
            pass

    def on_created(self, event: FileSystemEvent) -> None:
        self._create(_as_str(event.src_path))

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._delete(_as_str(event.src_path), event.is_directory)

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        path = _as_str(event.src_path)
        dst = self._destination(path)
        if dst is not None:
            self._copy(path, dst)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._delete(_as_str(event.src_path), event.is_directory)
        self._create(_as_str(event.dest_path))


def run_worker(
    source: str | os.PathLike[str],
    target: str | os.PathLike[str],
    stop_event: threading.Event | None = None,
) -> None:
    """Copy ``source`` to ``target`` and mirror changes until ``stop_event`` is set."""
    source_s, target_s = os.fspath(source), os.fspath(target)
    copy_recursive(source_s, target_s)

    handler = MirrorHandler(source_s, target_s)
    observer = Observer()
    table = WatchTable(observer, handler)
    handler.attach(table)
    table.add_recursive(source_s)

    stop = stop_event if stop_event is not None else threading.Event()
    observer.start()
    try:
        while not stop.wait(_POLL_SECONDS):
            pass
    finally:
        observer.stop()
        observer.join()


__all__ = ["MirrorHandler", "run_worker"]