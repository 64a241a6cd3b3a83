from dataclasses import dataclass
from logging import getLogger

from mysql.connector import Error as MySQLError

from .errors import BinlogListError

logger = getLogger(__name__)


SHOW_BINARY_LOGS_QUERY = "SHOW BINARY LOGS"


@dataclass(frozen=True)
class BinlogFile:
    name: str
    size_bytes: int


def decode_binlog_row(row) -> BinlogFile:
    # MySQL 8.0 adds an Encrypted column, only name and size are used
    if row is None or len(row) < 2:
        raise ValueError(f"expected at least 2 columns, got {row!r}")
    name, size = row[0], row[1]
    if isinstance(name, (bytes, bytearray)):
        name = name.decode("utf-8")
    if not isinstance(name, str) or not name:
        raise ValueError(f"invalid binlog name {name!r}")
    if isinstance(size, bool) or not isinstance(size, (int, str)):
        raise ValueError(f"invalid size {size!r} for binlog {name}")
    size = int(size)
    if size < 0:
        raise ValueError(f"negative size {size} for binlog {name}")
    return BinlogFile(name=name, size_bytes=size)


def read_binary_logs(mysql_api) -> list[BinlogFile]:
    """List the binary logs known to the server, in the order it reports them."""
    try:
        rows = mysql_api.fetch_all(SHOW_BINARY_LOGS_QUERY)
    except MySQLError as e:
        raise BinlogListError("failed to list binary logs", query=SHOW_BINARY_LOGS_QUERY) from e

    binlogs = []
    for row in rows:
        try:
            binlogs.append(decode_binlog_row(row))
        except ValueError as e:
            raise BinlogListError(f"failed to decode row: {e}", query=SHOW_BINARY_LOGS_QUERY) from e

    logger.debug(f"server reports {len(binlogs)} binary logs")
    return binlogs
