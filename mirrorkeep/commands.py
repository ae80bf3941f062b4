"""Backup bookkeeping: parse command lines and run, stop and restore mirrors."""

from __future__ import annotations

import glob
import itertools
import os
import re
import threading
from dataclasses import dataclass, field
from typing import Iterator

from .fsutils import dir_empty, is_subpath, real_path, restore_cleanup, restore_copy
from .worker import run_worker

MAX_BACKUPS = 32

WRDE_BADCHAR = 2
WRDE_CMDSUB = 4
WRDE_SYNTAX = 5

_NAME = r"[A-Za-z_][A-Za-z0-9_]*"

_LEXER = re.compile(
    rf"""
      (?P<space>[ \t\r]+)
    | (?P<single>'[^']*')
    | (?P<double>"(?:[^"\\]|\\.)*")
    | (?P<escape>\\.)
    | (?P<cmdsub>\$\(|`)
    | (?P<var>\$\{{{_NAME}\}}|\${_NAME})
    | (?P<bad>[|&;<>(){{}}\n])
    | (?P<syntax>['"\\]|\$\{{)
    | (?P<plain>[^ \t\r'"\\$`|&;<>(){{}}\n]+|\$)
    """,
    re.VERBOSE | re.DOTALL,
)

_DOUBLE = re.compile(
    rf"""
      \\(?P<esc>[$`"\\\n])
    | (?P<cmdsub>\$\(|`)
    | (?P<var>\$\{{{_NAME}\}}|\${_NAME})
    | (?P<text>\\|[^\\$`]+|\$)
    """,
    re.VERBOSE | re.DOTALL,
)

_GLOB_CHARS = frozenset("*?[")


class BackupError(Exception):
    """A command that could not be carried out; ``code`` is set for parse errors."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


def _variable(ref: str) -> str:
    name = ref[2:-1] if ref.startswith("${") else ref[1:]
    return os.environ.get(name, "")


def _expand_double(body: str) -> str:
    parts = []
    for match in _DOUBLE.finditer(body):
        kind = match.lastgroup
        if kind == "esc":
            char = match.group("esc")
            parts.append("" if char == "\n" else char)
        elif kind == "cmdsub":
            raise BackupError("command substitution is not allowed", WRDE_CMDSUB)
        elif kind == "var":
            parts.append(_variable(match.group("var")))
        else:
            parts.append(match.group("text"))
    return "".join(parts)


def parse_command(line: str) -> list[str]:
    """Split a command line into words the way a shell would, without running commands.

    Quotes, backslashes, ``$NAME`` and ``${NAME}``, a leading ``~`` and glob
    patterns are expanded. Raises BackupError with ``code`` set to one of
    WRDE_BADCHAR, WRDE_CMDSUB or WRDE_SYNTAX.
    """
    words: list[str] = []
    literal: list[str] = []
    pattern: list[str] = []
    started = False
    globbing = False

    def finish() -> None:
        nonlocal started, globbing
        if started:
            word = "".join(literal)
            if globbing:
                matches = sorted(glob.glob("".join(pattern)))
                words.extend(matches or [word])
            else:
                words.append(word)
        literal.clear()
        pattern.clear()
        started = globbing = False

    def add_quoted(text: str) -> None:
        nonlocal started
        literal.append(text)
        pattern.append(glob.escape(text))
        started = True

    for match in _LEXER.finditer(line):
        kind = match.lastgroup
        text = match.group(kind)
        if kind == "space":
            finish()
        elif kind == "single":
            add_quoted(text[1:-1])
        elif kind == "double":
            add_quoted(_expand_double(text[1:-1]))
        elif kind == "escape":
            add_quoted("" if text[1] == "\n" else text[1])
        elif kind == "cmdsub":
            raise BackupError("command substitution is not allowed", WRDE_CMDSUB)
        elif kind == "var":
            add_quoted(_variable(text))
        elif kind == "bad":
            raise BackupError(f"illegal character {text!r}", WRDE_BADCHAR)
        elif kind == "syntax":
            raise BackupError("unbalanced quote or escape", WRDE_SYNTAX)
        else:
            if not started and text.startswith("~"):
                text = os.path.expanduser(text)
            if _GLOB_CHARS.intersection(text):
                globbing = True
            literal.append(text)
            pattern.append(text)
            started = True
    finish()
    return words


@dataclass
class Backup:
    """One running mirror of ``source`` into ``target``."""

    source: str
    target: str
    stop: threading.Event = field(default_factory=threading.Event, repr=False)
    thread: threading.Thread | None = field(default=None, repr=False)

    @property
    def worker_id(self) -> int:
        """The native id of the thread doing the mirroring."""
        if self.thread is None or self.thread.native_id is None:
            return 0
        return self.thread.native_id

    def halt(self) -> None:
        """Stop the mirroring thread and wait for it to finish."""
        self.stop.set()
        if self.thread is not None:
            self.thread.join()


class BackupManager:
    """The set of running backups, at most ``limit`` of them."""

    def __init__(self, limit: int = MAX_BACKUPS) -> None:
        self.limit = limit
        self._backups: list[Backup] = []

    def __iter__(self) -> Iterator[Backup]:
        return iter(list(self._backups))

    def __len__(self) -> int:
        return len(self._backups)

    def exists(self, source: str, target: str) -> bool:
        """Tell whether a backup of ``source`` into ``target`` is running."""
        return any(b.source == source and b.target == target for b in self._backups)

    def add(self, src: str | os.PathLike[str], dst: str | os.PathLike[str]) -> Backup:
        """Start mirroring ``src`` into ``dst``.

        Raises BackupError for a refused backup and OSError if ``src`` or
        ``dst`` cannot be resolved.
        """
        if len(self._backups) >= self.limit:
            raise BackupError("Too many backups")

        rs = real_path(src)
        dst_s = os.fspath(dst)
        candidate = os.path.realpath(dst_s)
        if is_subpath(rs, candidate) or is_subpath(candidate, rs):
            raise BackupError("Error: recursive backup not allowed")
        if self.exists(rs, candidate):
            raise BackupError("Error: backup already exists")

        if os.path.lexists(dst_s):
            try:
                empty = dir_empty(dst_s)
            except OSError:
                empty = True
            if not empty:
                raise BackupError("Target not empty")
        else:
            try:
                os.mkdir(dst_s, 0o755)
            except OSError:
                pass

        rt = real_path(dst_s)
        backup = Backup(rs, rt)
        backup.thread = threading.Thread(
            target=run_worker,
            args=(rs, rt, backup.stop),
            name=f"mirror {rs} -> {rt}",
            daemon=True,
        )
        backup.thread.start()
        self._backups.append(backup)
        return backup

    def end(self, src: str | os.PathLike[str], dst: str | os.PathLike[str]) -> Backup:
        """Stop the backup of ``src`` into ``dst`` and return it."""
        rs, rt = real_path(src), real_path(dst)
        index = next(
            (i for i, b in enumerate(self._backups) if b.source == rs and b.target == rt),
            None,
        )
        if index is None:
            raise BackupError("Backup not found")
        backup = self._backups[index]
        backup.halt()
        self._backups[index] = self._backups[-1]
        self._backups.pop()
        return backup

    def listing(self) -> list[str]:
        """Describe the running backups, grouped by runs of the same source."""
        lines: list[str] = []
        indexed = list(enumerate(self._backups))
        for source, run in itertools.groupby(indexed, key=lambda pair: pair[1].source):
            start = next(run)[0]
            lines.append(f"Source: {source}")
            lines.extend(
                f"  -> {b.target} (pid {b.worker_id})"
                for b in self._backups[start:]
                if b.source == source
            )
        return lines

    def restore(self, source: str | os.PathLike[str], target: str | os.PathLike[str]) -> None:
        """Make ``source`` match its backup in ``target``."""
        rs, rt = real_path(source), real_path(target)
        restore_copy(rt, rs)
        restore_cleanup(rs, rt)

    def cleanup(self) -> None:
        """Stop every running backup."""
        for backup in self._backups:
            backup.halt()
        self._backups.clear()


__all__ = [
    "MAX_BACKUPS",
    "WRDE_BADCHAR",
    "WRDE_CMDSUB",
    "WRDE_SYNTAX",
    "Backup",
    "BackupError",
    "BackupManager",
    "parse_command",
]