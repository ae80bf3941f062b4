import io
import shlex
import sys

import pytest

from mirrorkeep import commands
from mirrorkeep.commands import BackupManager
from mirrorkeep.main import BANNER, main, run_shell


@pytest.fixture
def manager():
    mgr = BackupManager()
    try:
        yield mgr
    finally:
        mgr.cleanup()


def shell(manager, lines):
    out = io.StringIO()
    run_shell(manager, lines, out)
    return out.getvalue()


def test_banner_and_prompts(manager):
    assert shell(manager, ["list"]) == BANNER + "\n> > "


def test_banner_text(manager):
    assert shell(manager, []) == "Commands: add <src> <dst>, end <src> <dst>, list, exit\n> "


def test_blank_line_is_ignored(manager):
    assert shell(manager, ["", "   "]) == BANNER + "\n> > > "


def test_exit_stops_reading(manager):
    text = shell(manager, ["exit", "bogus"])
    assert text == BANNER + "\n> "
    assert "Unknown command" not in text


def test_unknown_command(manager):
    assert "Unknown command\n" in shell(manager, ["bogus"])


def test_parse_error_reported(manager):
    text = shell(manager, ["add $(ls) x"])
    assert f"Parse error: {commands.WRDE_CMDSUB} on line: add $(ls) x\n" in text


@pytest.mark.parametrize(
    "line, usage",
    [
        ("add only", "Usage: add <src> <target...>"),
        ("end only", "Usage: end <src> <target...>"),
        ("restore a", "Usage: restore <src> <target>"),
        ("restore a b c", "Usage: restore <src> <target>"),
    ],
)
def test_usage_messages(manager, line, usage):
    assert usage + "\n" in shell(manager, [line])


def test_add_list_end(manager, tmp_path):
    src = tmp_path / "src"
    src.mkdir()
    (src / "f").write_text("data")
    d1, d2 = tmp_path / "d1", tmp_path / "d2"
    q = shlex.quote
    text = shell(
        manager,
        [
            f"add {q(str(src))} {q(str(d1))} {q(str(d2))}\n",
            "list\n",
        ],
    )
    assert text.count("Backup started\n") == 2
    listing = manager.listing()
    assert len(listing) == 3
    for line in listing:
        assert line + "\n" in text

    text = shell(manager, [f"end {q(str(src))} {q(str(d1))} {q(str(d2))}"])
    assert text.count("Backup ended\n") == 2
    assert manager.listing() == []


def test_add_refused_reports_error(manager, tmp_path):
    src = tmp_path / "src"
    src.mkdir()
    text = shell(manager, [f"add {shlex.quote(str(src))} {shlex.quote(str(src / 'in'))}"])
    assert "Error: recursive backup not allowed\n" in text
    assert "Backup started" not in text


def test_end_unknown(manager, tmp_path):
    text = shell(manager, [f"end {shlex.quote(str(tmp_path))} {shlex.quote(str(tmp_path))}"])
    assert "Backup not found\n" in text


def test_restore_round_trip(manager, tmp_path):
    src = tmp_path / "src"
    src.mkdir()
    (src / "stale").write_text("old")
    saved = tmp_path / "saved"
    saved.mkdir()
    (saved / "kept").write_text("keep me")
    text = shell(manager, [f"restore {shlex.quote(str(src))} {shlex.quote(str(saved))}"])
    assert "Restoring backup...\nRestore complete\n" in text
    assert sorted(p.name for p in src.iterdir()) == ["kept"]
    assert (src / "kept").read_text() == "keep me"


def test_restore_missing_path_goes_to_stderr(manager, tmp_path, capsys):
    missing = tmp_path / "missing"
    text = shell(manager, [f"restore {shlex.quote(str(missing))} {shlex.quote(str(tmp_path))}"])
    assert "Restoring backup" not in text
    assert capsys.readouterr().err.startswith("realpath:")


def test_main_runs_shell(monkeypatch, capsys):
    monkeypatch.setattr(sys, "stdin", io.StringIO("bogus\nexit\n"))
    assert main([]) == 0
    out = capsys.readouterr().out
    assert out.startswith(BANNER + "\n")
    assert "Unknown command\n" in out