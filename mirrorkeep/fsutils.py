"""Filesystem helpers used to mirror a directory tree and restore it."""

from __future__ import annotations

import hashlib
import os
import shutil
import stat
from pathlib import Path
from typing import Union

PathLike = Union[str, "os.PathLike[str]"]

_CHUNK = 8192
_DIR_MODE = 0o755


def real_path(path: PathLike) -> str:
    """Return the canonical absolute path; raise OSError if it does not exist."""
    return os.path.realpath(os.fspath(path), strict=True)


def dir_empty(path: PathLike) -> bool:
    """Tell whether a directory has no entries; raise OSError if it cannot be read."""
    with os.scandir(os.fspath(path)) as entries:
        return next(entries, None) is None


def is_subpath(parent: str, child: str) -> bool:
    """Tell whether ``child`` is ``parent`` itself or lies below it, by path text."""
    if not child.startswith(parent):
        return False
    rest = child[len(parent):]
    return rest == "" or rest.startswith("/")


def _lstat_mode(path: str) -> int | None:
    try:
        return os.lstat(path).st_mode
    except OSError:
        return None


def _copy_file(src: str, dst: str) -> None:
    try:
        with open(src, "rb") as fin, open(dst, "wb") as fout:
            shutil.copyfileobj(fin, fout, _CHUNK)
    except OSError:
        pass


def _copy_link(src: str, dst: str, replace: bool = False) -> None:
    try:
        target = os.readlink(src)
    except OSError:
        return
    if replace:
        try:
            os.unlink(dst)
        except OSError:
            pass
    try:
        os.symlink(target, dst)
    except OSError:
        pass


def _make_dir(path: str, mode: int) -> None:
    try:
        os.mkdir(path, mode)
    except OSError:
        pass


def _copy_tree(src: str, dst: str) -> None:
    mode = _lstat_mode(src)
    if mode is None:
        return
    if stat.S_ISDIR(mode):
        _make_dir(dst, mode & 0o777)
        try:
            names = [entry.name for entry in os.scandir(src)]
        except OSError:
            return
        for name in names:
            _copy_tree(f"{src}/{name}", f"{dst}/{name}")
    elif stat.S_ISREG(mode):
        _copy_file(src, dst)
    elif stat.S_ISLNK(mode):
        _copy_link(src, dst)


def copy_recursive(src: PathLike, dst: PathLike) -> None:
    """Copy a file, symlink or directory tree from ``src`` to ``dst``.

    Raises OSError if ``src`` itself cannot be examined; failures below it
    are skipped.
    """
    src_s, dst_s = os.fspath(src), os.fspath(dst)
    os.lstat(src_s)
    _copy_tree(src_s, dst_s)


def file_hash(path: PathLike) -> bytes:
    """Return the SHA-256 digest of a file's contents."""
    digest = hashlib.sha256()
    with open(os.fspath(path), "rb") as handle:
        for chunk in iter(lambda: handle.read(_CHUNK), b""):
            digest.update(chunk)
    return digest.digest()


def files_differ(a: PathLike, b: PathLike) -> bool:
    """Tell whether two files differ; unreadable files count as different."""
    try:
        return file_hash(a) != file_hash(b)
    except OSError:
        return True


def restore_copy(src: PathLike, dst: PathLike) -> None:
    """Copy ``src`` onto ``dst``, leaving files with identical contents untouched."""
    src_s, dst_s = os.fspath(src), os.fspath(dst)
    mode = _lstat_mode(src_s)
    if mode is None:
        return
    if stat.S_ISDIR(mode):
        _make_dir(dst_s, _DIR_MODE)
        try:
            names = [entry.name for entry in os.scandir(src_s)]
        except OSError:
            return
        for name in names:
            restore_copy(f"{src_s}/{name}", f"{dst_s}/{name}")
    elif stat.S_ISREG(mode):
        if os.path.exists(dst_s) and not files_differ(src_s, dst_s):
            return
        _copy_file(src_s, dst_s)
    elif stat.S_ISLNK(mode):
        _copy_link(src_s, dst_s, replace=True)


def restore_cleanup(src: PathLike, ref: PathLike) -> None:
    """Remove everything under ``src`` that has no counterpart under ``ref``."""
    src_s, ref_s = os.fspath(src), os.fspath(ref)
    try:
        names = [entry.name for entry in os.scandir(src_s)]
    except OSError:
        return
    for name in names:
        here = f"{src_s}/{name}"
        there = f"{ref_s}/{name}"
        mode = _lstat_mode(here)
        is_dir = mode is not None and stat.S_ISDIR(mode)
        if os.path.exists(there):
            if is_dir:
                restore_cleanup(here, there)
            continue
        if is_dir:
            restore_cleanup(here, there)
            try:
                os.rmdir(here)
            except OSError:
                pass
        else:
            try:
                os.unlink(here)
            except OSError:
                pass


def map_path(src: str, source: str, target: str) -> str:
    """Map a path under ``source`` to the matching path under ``target``."""
    return f"{target}{src[len(source):]}"


__all__ = [
    "Path",
    "copy_recursive",
    "dir_empty",
    "file_hash",
    "files_differ",
    "is_subpath",
    "map_path",
    "real_path",
    "restore_cleanup",
    "restore_copy",
]