import os
import stat
from logging import getLogger

from .errors import IndexWriteError
from .server_config import LogBinConfig

logger = getLogger(__name__)


def binlog_index_entry(binlog, config: LogBinConfig) -> str:
    """Path of a binlog as written to the index file.

    Entries are relative to the index file's own directory when the binlogs
    live next to it, otherwise they carry the basename directory.
    """
    if config.basename_dir == config.index_dir:
        return binlog.name
    return os.path.join(config.basename_dir, binlog.name)


def binlog_index_entries(binlogs, config: LogBinConfig) -> list[str]:
    # Sequential index readers rely on the server's name ordering
    ordered = sorted(binlogs, key=lambda binlog: binlog.name)
    return [binlog_index_entry(binlog, config) for binlog in ordered]


def render_binlog_index(binlogs, config: LogBinConfig) -> str:
    return "".join(f"{entry}\n" for entry in binlog_index_entries(binlogs, config))


def read_binlog_index(file_name):
    """Entries of the current index file, None if it does not exist"""
    if not os.path.exists(file_name):
        return None
    try:
        with open(file_name, "rt", encoding="utf-8") as f:
            return [line.strip() for line in f if line.strip()]
    except OSError as e:
        raise IndexWriteError(f"failed to read binlog index {file_name}", path=file_name) from e


def copy_file_attributes(file_stat, file_name):
    os.chmod(file_name, stat.S_IMODE(file_stat.st_mode))
    try:
        os.chown(file_name, file_stat.st_uid, file_stat.st_gid)
    except PermissionError:
        # Only root may give a file away
        if os.geteuid() == 0:
            raise
        logger.warning(
            f"Can not keep owner {file_stat.st_uid}:{file_stat.st_gid} of {file_name}, "
            f"run as root or as the mysql user"
        )


def fsync_dir(dir_name):
    fd = os.open(dir_name or ".", os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def write_binlog_index(binlogs, config: LogBinConfig):
    """Replace the binlog index file with one sorted entry per binlog.

    The content is written to a temporary file next to the index and renamed
    over it, so a failure at any point leaves the previous index intact. An
    existing index keeps its mode and owner, the server must still be able to
    append to it.
    """
    file_name = config.index_path
    tmp_file_name = file_name + ".tmp"
    data = render_binlog_index(binlogs, config)

    try:
        previous_stat = os.stat(file_name) if os.path.exists(file_name) else None
        with open(tmp_file_name, "wt", encoding="utf-8") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        if previous_stat is not None:
            copy_file_attributes(previous_stat, tmp_file_name)
        os.rename(tmp_file_name, file_name)
        fsync_dir(os.path.dirname(file_name))
    except OSError as e:
        raise IndexWriteError(f"failed to write binlog index {file_name}", path=file_name) from e
    finally:
        if os.path.exists(tmp_file_name):
            try:
                os.remove(tmp_file_name)
            except OSError as e:
                logger.warning(f"Failed to remove temporary index file {tmp_file_name}: {e}")

    logger.info(f"Wrote {len(binlogs)} entries to binlog index {file_name}")
