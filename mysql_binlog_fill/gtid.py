"""
Executed GTID state of the server.

The state can be read either from the live primary status row
(``Executed_Gtid_Set`` column) or from the ``mysql.gtid_executed`` table, where
a source usually owns several rows that have not been compressed yet. Both
are normalized into a :class:`GtidSet`: intervals sorted ascending, with
overlapping and adjacent ranges merged.
"""

import re
import uuid
from collections import defaultdict
from dataclasses import dataclass
from logging import getLogger

from mysql.connector import Error as MySQLError

from .errors import GtidReadError

logger = getLogger(__name__)


GTID_EXECUTED_TABLE_QUERY = (
    "SELECT source_uuid, interval_start, interval_end FROM mysql.gtid_executed"
)
PRIMARY_STATUS_QUERIES = {
    "legacy": "SHOW MASTER STATUS",
    "modern": "SHOW BINARY LOG STATUS",
}
EXECUTED_GTID_SET_COLUMN = "Executed_Gtid_Set"
SERVER_UUID_QUERY = "SELECT @@global.server_uuid"

_UUID_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)


@dataclass(frozen=True, order=True)
class GtidInterval:
    """Closed range of transaction sequence numbers."""
    start: int
    end: int

    def __post_init__(self):
        if self.start < 1:
            raise ValueError(f"interval start should be positive, got {self.start}")
        if self.end < self.start:
            raise ValueError(f"interval end {self.end} is before start {self.start}")

    def __str__(self):
        if self.start == self.end:
            return str(self.start)
        return f"{self.start}-{self.end}"


def merge_intervals(intervals) -> list[GtidInterval]:
    """Sort intervals and merge the ones that overlap or touch.

    >>> merge_intervals([GtidInterval(6, 10), GtidInterval(1, 5)])
    [GtidInterval(start=1, end=10)]
    """
    merged = []
    for interval in sorted(intervals):
        if merged and interval.start <= merged[-1].end + 1:
            last = merged[-1]
            merged[-1] = GtidInterval(last.start, max(last.end, interval.end))
        else:
            merged.append(interval)
    return merged


@dataclass(frozen=True)
class GtidSet:
    source_id: uuid.UUID
    intervals: tuple

    @classmethod
    def build(cls, source_id, intervals):
        return cls(source_id=source_id, intervals=tuple(merge_intervals(intervals)))

    def __str__(self):
        return ":".join([str(self.source_id)] + [str(i) for i in self.intervals])


def parse_uuid(text) -> uuid.UUID:
    if isinstance(text, (bytes, bytearray)):
        text = text.decode("utf-8")
    if not isinstance(text, str) or not _UUID_RE.match(text.strip()):
        raise ValueError(f"malformed source uuid {text!r}")
    return uuid.UUID(text.strip())


def parse_bound(value) -> int:
    if isinstance(value, bool):
        raise ValueError(f"malformed interval bound {value!r}")
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        value = value.strip()
        if not value.isdigit():
            raise ValueError(f"malformed interval bound {value!r}")
    return int(value)


def parse_interval(text) -> GtidInterval:
    start, sep, end = text.partition("-")
    if not sep:
        end = start
    return GtidInterval(parse_bound(start), parse_bound(end))


def parse_gtid_text(text) -> dict:
    """Parse MySQL GTID set text (``uuid:1-5:7,uuid2:1-3``) into intervals per source."""
    if isinstance(text, (bytes, bytearray)):
        text = text.decode("utf-8")
    intervals_by_source = defaultdict(list)
    if not text or not text.strip():
        return intervals_by_source

    for part in text.replace("\n", "").split(","):
        part = part.strip()
        if not part:
            continue
        source, *interval_tokens = part.split(":")
        if not interval_tokens:
            raise ValueError(f"no intervals for source in {part!r}")
        source_id = parse_uuid(source)
        for token in interval_tokens:
            intervals_by_source[source_id].append(parse_interval(token.strip()))
    return intervals_by_source


def intervals_from_text(text) -> dict:
    try:
        return parse_gtid_text(text)
    except ValueError as e:
        raise GtidReadError(f"failed to parse gtid set {text!r}: {e}") from e


def intervals_from_rows(rows) -> dict:
    """Group ``(source_uuid, interval_start, interval_end)`` rows per source."""
    intervals_by_source = defaultdict(list)
    for row in rows:
        try:
            source, start, end = row[:3]
            intervals_by_source[parse_uuid(source)].append(
                GtidInterval(parse_bound(start), parse_bound(end)),
            )
        except (TypeError, ValueError) as e:
            raise GtidReadError(f"malformed gtid_executed row {row!r}: {e}") from e
    return intervals_by_source


def select_source(intervals_by_source, server_uuid=None):
    """Merged GtidSet of one source, None when that source executed nothing.

    Without ``server_uuid`` the state must hold a single source, since there is
    no way to tell which one belongs to the server.
    """
    if not intervals_by_source:
        return None
    if server_uuid is None:
        if len(intervals_by_source) > 1:
            sources = ", ".join(sorted(str(s) for s in intervals_by_source))
            raise GtidReadError(f"server uuid is needed to pick one of the sources: {sources}")
        (source_id, intervals), = intervals_by_source.items()
        return GtidSet.build(source_id, intervals)

    if not isinstance(server_uuid, uuid.UUID):
        try:
            server_uuid = parse_uuid(server_uuid)
        except ValueError as e:
            raise GtidReadError(f"server {e}") from e
    for source_id, intervals in sorted(intervals_by_source.items()):
        if source_id != server_uuid:
            logger.info(f"executed gtids of another source: {GtidSet.build(source_id, intervals)}")
    intervals = intervals_by_source.get(server_uuid)
    if not intervals:
        return None
    return GtidSet.build(server_uuid, intervals)


def parse_gtid_set(text, server_uuid=None):
    """Parse MySQL GTID set text into the set of one source; None when empty."""
    return select_source(intervals_from_text(text), server_uuid)


def gtid_set_from_rows(rows, server_uuid=None):
    """Merge ``mysql.gtid_executed`` rows into the set of one source."""
    return select_source(intervals_from_rows(rows), server_uuid)


def read_server_uuid(mysql_api) -> uuid.UUID:
    try:
        row = mysql_api.fetch_one(SERVER_UUID_QUERY)
    except MySQLError as e:
        raise GtidReadError("failed to read server uuid", query=SERVER_UUID_QUERY) from e
    if not row:
        raise GtidReadError("no server uuid reported", query=SERVER_UUID_QUERY)
    try:
        return parse_uuid(row[0])
    except ValueError as e:
        raise GtidReadError(f"{e}", query=SERVER_UUID_QUERY) from e


def _read_from_status(mysql_api, syntax):
    query = PRIMARY_STATUS_QUERIES[syntax]
    try:
        rows = mysql_api.fetch_all_dict(query)
    except MySQLError as e:
        raise GtidReadError("failed to read primary status", query=query) from e

    # No row at all when binary logging is disabled
    if not rows:
        return {}
    if EXECUTED_GTID_SET_COLUMN not in rows[0]:
        raise GtidReadError(f"status row has no {EXECUTED_GTID_SET_COLUMN} column", query=query)
    return intervals_from_text(rows[0][EXECUTED_GTID_SET_COLUMN])


def _read_from_table(mysql_api):
    try:
        rows = mysql_api.fetch_all(GTID_EXECUTED_TABLE_QUERY)
    except MySQLError as e:
        raise GtidReadError("failed to read gtid_executed table", query=GTID_EXECUTED_TABLE_QUERY) from e
    return intervals_from_rows(rows)


def read_gtid_executed(mysql_api, source="status", syntax="legacy", server_uuid=None):
    """Read the server's own executed GTID set.

    Args:
        mysql_api: MySQLApi to query through
        source: ``status`` to read the primary status row, ``table`` to read
            and merge the rows of ``mysql.gtid_executed``
        syntax: ``legacy`` or ``modern`` primary status command
        server_uuid: uuid of the server; queried only when the state holds
            more than one source and it is not given

    Returns:
        GtidSet of the server's own source, or None when the server reports no
        executed GTIDs of its own (for instance right after a replication
        reset). Sets of other sources (inherited from a primary) are logged.

    Raises:
        GtidReadError: a query failed or returned a malformed uuid/interval
    """
    if source == "status":
        intervals_by_source = _read_from_status(mysql_api, syntax)
    elif source == "table":
        intervals_by_source = _read_from_table(mysql_api)
    else:
        raise ValueError(f"unknown gtid source {source!r}")

    if server_uuid is None and len(intervals_by_source) > 1:
        server_uuid = read_server_uuid(mysql_api)
    gtid_set = select_source(intervals_by_source, server_uuid)
    logger.debug(f"read gtid_executed from {source}: {gtid_set}")
    return gtid_set
