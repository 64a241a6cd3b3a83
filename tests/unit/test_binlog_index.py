"""Unit tests for binlog index generation"""

import os
import stat

import pytest

from mysql_binlog_fill.binlog_index import (
    binlog_index_entry,
    read_binlog_index,
    render_binlog_index,
    write_binlog_index,
)
from mysql_binlog_fill.binlogs import BinlogFile
from mysql_binlog_fill.errors import IndexWriteError
from mysql_binlog_fill.server_config import GtidMode, LogBinConfig


def make_config(basename_dir, index_dir):
    return LogBinConfig(
        basename_path=os.path.join(basename_dir, "mysql-bin"),
        index_path=os.path.join(index_dir, "mysql-bin.index"),
        gtid_mode=GtidMode.ON,
        log_bin_enabled=True,
    )


def make_binlogs(*names):
    return [BinlogFile(name=name, size_bytes=1024) for name in names]


UNSORTED = make_binlogs("mysql-bin.000003", "mysql-bin.000001", "mysql-bin.000002")


@pytest.mark.unit
def test_same_directory_entries_are_bare_names():
    config = make_config("/var/lib/mysql", "/var/lib/mysql")

    assert render_binlog_index(UNSORTED, config) == (
        "mysql-bin.000001\nmysql-bin.000002\nmysql-bin.000003\n"
    )


@pytest.mark.unit
def test_other_directory_entries_carry_basename_dir():
    config = make_config("/var/lib/mysql", "/etc/mysql")

    assert render_binlog_index(UNSORTED, config) == (
        "/var/lib/mysql/mysql-bin.000001\n"
        "/var/lib/mysql/mysql-bin.000002\n"
        "/var/lib/mysql/mysql-bin.000003\n"
    )


@pytest.mark.unit
def test_entry_for_single_binlog():
    binlog = BinlogFile(name="binlog.000042", size_bytes=0)

    assert binlog_index_entry(binlog, make_config("/data", "/data")) == "binlog.000042"
    assert binlog_index_entry(binlog, make_config("/data", "/idx")) == "/data/binlog.000042"


@pytest.mark.unit
def test_entries_are_in_ascending_name_order():
    binlogs = make_binlogs(
        "mysql-bin.000010", "mysql-bin.000002", "mysql-bin.000100", "mysql-bin.000001",
    )
    lines = render_binlog_index(binlogs, make_config("/d", "/d")).splitlines()

    assert lines == sorted(lines)
    assert all(a < b for a, b in zip(lines, lines[1:]))


@pytest.mark.unit
def test_write_scenario(tmp_path):
    data_dir = str(tmp_path)
    config = make_config(data_dir, data_dir)

    write_binlog_index(UNSORTED, config)

    with open(config.index_path, "rb") as f:
        assert f.read() == b"mysql-bin.000001\nmysql-bin.000002\nmysql-bin.000003\n"
    assert not os.path.exists(config.index_path + ".tmp")


@pytest.mark.unit
def test_write_replaces_stale_content(tmp_path):
    config = make_config(str(tmp_path), str(tmp_path))
    with open(config.index_path, "w") as f:
        f.write("./mysql-bin.000000\n./mysql-bin.000001\n./mysql-bin.000099\n")

    write_binlog_index(make_binlogs("mysql-bin.000001"), config)

    assert read_binlog_index(config.index_path) == ["mysql-bin.000001"]


@pytest.mark.unit
def test_write_is_idempotent(tmp_path):
    config = make_config(str(tmp_path), str(tmp_path))

    write_binlog_index(UNSORTED, config)
    with open(config.index_path, "rb") as f:
        first = f.read()
    write_binlog_index(list(reversed(UNSORTED)), config)
    with open(config.index_path, "rb") as f:
        second = f.read()

    assert first == second


@pytest.mark.unit
def test_write_empty_binlog_list(tmp_path):
    config = make_config(str(tmp_path), str(tmp_path))

    write_binlog_index([], config)

    assert os.path.getsize(config.index_path) == 0
    assert read_binlog_index(config.index_path) == []


@pytest.mark.unit
def test_write_failure_is_reported_and_keeps_previous_index(tmp_path, monkeypatch):
    config = make_config(str(tmp_path), str(tmp_path))
    previous = "mysql-bin.000001\n"
    with open(config.index_path, "w") as f:
        f.write(previous)

    def failing_fsync(fd):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(os, "fsync", failing_fsync)

    with pytest.raises(IndexWriteError) as exc_info:
        write_binlog_index(UNSORTED, config)

    assert exc_info.value.path == config.index_path
    assert isinstance(exc_info.value.__cause__, OSError)
    with open(config.index_path) as f:
        assert f.read() == previous
    assert not os.path.exists(config.index_path + ".tmp")


@pytest.mark.unit
def test_write_into_missing_directory_fails(tmp_path):
    missing = str(tmp_path / "does-not-exist")
    config = make_config(missing, missing)

    with pytest.raises(IndexWriteError):
        write_binlog_index(UNSORTED, config)


@pytest.mark.unit
def test_read_missing_index_returns_none(tmp_path):
    assert read_binlog_index(str(tmp_path / "mysql-bin.index")) is None


@pytest.mark.unit
def test_write_keeps_index_mode_and_owner(tmp_path):
    config = make_config(str(tmp_path), str(tmp_path))
    with open(config.index_path, "w") as f:
        f.write("mysql-bin.000001\n")
    os.chmod(config.index_path, 0o640)
    before = os.stat(config.index_path)

    write_binlog_index(UNSORTED, config)

    after = os.stat(config.index_path)
    assert stat.S_IMODE(after.st_mode) == 0o640
    assert (after.st_uid, after.st_gid) == (before.st_uid, before.st_gid)
    assert read_binlog_index(config.index_path) == [
        "mysql-bin.000001", "mysql-bin.000002", "mysql-bin.000003",
    ]


@pytest.mark.unit
def test_write_without_chown_permission(tmp_path, monkeypatch):
    config = make_config(str(tmp_path), str(tmp_path))
    with open(config.index_path, "w") as f:
        f.write("mysql-bin.000001\n")

    def refuse_chown(path, uid, gid):
        raise PermissionError(1, "Operation not permitted")

    monkeypatch.setattr(os, "chown", refuse_chown)

    monkeypatch.setattr(os, "geteuid", lambda: 1000)
    write_binlog_index(UNSORTED, config)
    assert len(read_binlog_index(config.index_path)) == 3

    # as root a failed chown must not leave an index mysqld can not use
    monkeypatch.setattr(os, "geteuid", lambda: 0)
    with pytest.raises(IndexWriteError):
        write_binlog_index(make_binlogs("mysql-bin.000009"), config)
    assert len(read_binlog_index(config.index_path)) == 3
    assert not os.path.exists(config.index_path + ".tmp")
