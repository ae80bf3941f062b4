"""Interactive shell that starts, stops, lists and restores backups."""

from __future__ import annotations

import argparse
import sys
from typing import Iterable, TextIO

from .commands import BackupError, BackupManager, parse_command
from .fsutils import real_path

BANNER = "Commands: add <src> <dst>, end <src> <dst>, list, exit"


def _report_os_error(err: OSError) -> None:
    print(f"realpath: {err.strerror or err}", file=sys.stderr)


def _add(manager: BackupManager, args: list[str], out: TextIO) -> None:
    if len(args) < 3:
        print("Usage: add <src> <target...>", file=out)
        return
    for target in args[2:]:
        try:
            manager.add(args[1], target)
        except BackupError as err:
            print(err, file=out)
        except OSError as err:
            _report_os_error(err)
        else:
            print("Backup started", file=out)


def _end(manager: BackupManager, args: list[str], out: TextIO) -> None:
    if len(args) < 3:
        print("Usage: end <src> <target...>", file=out)
        return
    for target in args[2:]:
        try:
            manager.end(args[1], target)
        except BackupError as err:
            print(err, file=out)
        except OSError as err:
            _report_os_error(err)
        else:
            print("Backup ended", file=out)


def _restore(manager: BackupManager, args: list[str], out: TextIO) -> None:
    if len(args) != 3:
        print("Usage: restore <src> <target>", file=out)
        return
    try:
        source, target = real_path(args[1]), real_path(args[2])
    except OSError as err:
        _report_os_error(err)
        return
    print("Restoring backup...", file=out)
    try:
        manager.restore(source, target)
    except OSError as err:
        _report_os_error(err)
        return
    print("Restore complete", file=out)


def _list(manager: BackupManager, args: list[str], out: TextIO) -> None:
    for line in manager.listing():
        print(line, file=out)


_COMMANDS = {
    "add": _add,
    "end": _end,
    "restore": _restore,
    "list": _list,
}


def run_shell(manager: BackupManager, lines: Iterable[str], out: TextIO) -> None:
    """Read commands from ``lines`` and write replies to ``out`` until exit or end of input."""
    print(BANNER, file=out)
    source = iter(lines)
    while True:
        out.write("> ")
        out.flush()
        raw = next(source, None)
        if raw is None:
            break
        line = raw.split("\n", 1)[0]
        try:
            args = parse_command(line)
        except BackupError as err:
            print(f"Parse error: {err.code} on line: {line}", file=out)
            continue
        if not args:
            continue
        if args[0] == "exit":
            break
        handler = _COMMANDS.get(args[0])
        if handler is None:
            print("Unknown command", file=out)
        else:
            handler(manager, args, out)


def main(argv: list[str] | None = None) -> int:
    """Run the interactive backup shell on standard input and output."""
    parser = argparse.ArgumentParser(
        prog="mirrorkeep",
        description="Keep live mirrors of directories and restore them on demand.",
    )
    parser.parse_args(argv)
    manager = BackupManager()
    try:
        run_shell(manager, sys.stdin, sys.stdout)
    finally:
        manager.cleanup()
    return 0


if __name__ == "__main__":
    sys.exit(main())