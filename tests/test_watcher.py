import os

import pytest
from watchdog.events import FileSystemEventHandler

from mirrorkeep.watcher import MAX_WATCHES, WatchTable


class FakeObserver:
    def __init__(self, fail=False):
        self.scheduled = []
        self.unscheduled = []
        self.fail = fail

    def schedule(self, handler, path, recursive=False):
        if self.fail:
            raise OSError("cannot watch")
        watch = (path, recursive)
        self.scheduled.append(watch)
        return watch

    def unschedule(self, watch):
        self.unscheduled.append(watch)


@pytest.fixture
def tree(tmp_path):
    root = tmp_path / "root"
    (root / "a" / "b").mkdir(parents=True)
    (root / "c").mkdir()
    (root / "file.txt").write_text("x")
    return root


def test_add_schedules_non_recursive(tmp_path):
    observer = FakeObserver()
    table = WatchTable(observer, FileSystemEventHandler())
    assert table.add(str(tmp_path)) is True
    assert observer.scheduled == [(str(tmp_path), False)]
    assert str(tmp_path) in table
    assert len(table) == 1


def test_add_twice_keeps_one_entry(tmp_path):
    observer = FakeObserver()
    table = WatchTable(observer, FileSystemEventHandler())
    table.add(str(tmp_path))
    table.add(str(tmp_path))
    assert len(table) == 1
    assert len(observer.scheduled) == 1


def test_add_failure_is_not_recorded(tmp_path):
    table = WatchTable(FakeObserver(fail=True), FileSystemEventHandler())
    assert table.add(str(tmp_path)) is False
    assert len(table) == 0


def test_limit_reached_reports_error(tmp_path, capsys):
    (tmp_path / "one").mkdir()
    (tmp_path / "two").mkdir()
    table = WatchTable(FakeObserver(), FileSystemEventHandler(), limit=1)
    assert table.add(str(tmp_path / "one")) is True
    assert table.add(str(tmp_path / "two")) is False
    assert "Error: Max watches reached" in capsys.readouterr().err
    assert len(table) == 1


def test_default_limit_is_source_value(tmp_path, capsys):
    assert MAX_WATCHES == 1024
    table = WatchTable(FakeObserver(), FileSystemEventHandler())
    for n in range(1024):
        directory = tmp_path / f"d{n}"
        directory.mkdir()
        assert table.add(str(directory)) is True
    extra = tmp_path / "extra"
    extra.mkdir()
    assert table.add(str(extra)) is False
    assert len(table) == 1024
    assert "Error: Max watches reached" in capsys.readouterr().err


def test_add_recursive_covers_all_directories(tree):
    table = WatchTable(FakeObserver(), FileSystemEventHandler())
    table.add_recursive(str(tree))
    expected = {str(tree), f"{tree}/a", f"{tree}/a/b", f"{tree}/c"}
    assert {p for p in expected if p in table} == expected
    assert len(table) == len(expected)
    assert f"{tree}/file.txt" not in table


def test_add_recursive_skips_symlinked_directory(tree):
    os.symlink(tree / "a", tree / "link")
    table = WatchTable(FakeObserver(), FileSystemEventHandler())
    table.add_recursive(str(tree))
    assert f"{tree}/link" not in table


def test_add_recursive_ignores_non_directory(tree):
    table = WatchTable(FakeObserver(), FileSystemEventHandler())
    table.add_recursive(str(tree / "file.txt"))
    table.add_recursive(str(tree / "missing"))
    assert len(table) == 0


def test_remove_unschedules(tmp_path):
    observer = FakeObserver()
    table = WatchTable(observer, FileSystemEventHandler())
    table.add(str(tmp_path))
    assert table.remove(str(tmp_path)) is True
    assert observer.unscheduled == [(str(tmp_path), False)]
    assert str(tmp_path) not in table
    assert table.remove(str(tmp_path)) is False


def test_path_for(tmp_path):
    table = WatchTable(FakeObserver(), FileSystemEventHandler())
    table.add(tmp_path)
    assert table.path_for(tmp_path) == str(tmp_path)
    assert table.path_for(str(tmp_path / "other")) is None


def test_contains_rejects_non_paths(tmp_path):
    table = WatchTable(FakeObserver(), FileSystemEventHandler())
    table.add(str(tmp_path))
    assert (42 in table) is False