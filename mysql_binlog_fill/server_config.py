import os.path
from dataclasses import dataclass
from enum import Enum
from logging import getLogger

from mysql.connector import Error as MySQLError

from .errors import ConfigReadError

logger = getLogger(__name__)


LOG_BIN_CONFIG_QUERY = (
    "SELECT @@global.log_bin, @@global.log_bin_basename, "
    "@@global.log_bin_index, @@global.gtid_mode, @@global.server_uuid"
)


class GtidMode(Enum):
    OFF = "OFF"
    ON = "ON"
    ON_PERMISSIVE = "ON_PERMISSIVE"
    OFF_PERMISSIVE = "OFF_PERMISSIVE"


@dataclass(frozen=True)
class LogBinConfig:
    basename_path: str
    index_path: str
    gtid_mode: GtidMode
    log_bin_enabled: bool
    server_uuid: str = None

    @property
    def basename_dir(self):
        return os.path.dirname(self.basename_path)

    @property
    def index_dir(self):
        return os.path.dirname(self.index_path)


def _as_text(value):
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8")
    return value


def parse_bool(value) -> bool:
    value = _as_text(value)
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        if value in (0, 1):
            return bool(value)
        raise ValueError(f"expected 0 or 1, got {value}")
    if isinstance(value, str):
        normalized = value.strip().upper()
        if normalized in ("1", "ON", "TRUE", "YES"):
            return True
        if normalized in ("0", "OFF", "FALSE", "NO"):
            return False
    raise ValueError(f"can not interpret {value!r} as boolean")


def parse_gtid_mode(value) -> GtidMode:
    value = _as_text(value)
    if not isinstance(value, str):
        raise ValueError(f"gtid_mode should be string and not {type(value).__name__}")
    try:
        return GtidMode(value.strip().upper())
    except ValueError:
        raise ValueError(f"unknown gtid_mode {value!r}")


def parse_path(name, value, required):
    value = _as_text(value)
    if value is None and not required:
        return None
    if not isinstance(value, str) or not value:
        raise ValueError(f"{name} should be a non-empty path and not {value!r}")
    return value


def read_log_bin_config(mysql_api) -> LogBinConfig:
    try:
        row = mysql_api.fetch_one(LOG_BIN_CONFIG_QUERY)
    except MySQLError as e:
        raise ConfigReadError("failed to read server globals", query=LOG_BIN_CONFIG_QUERY) from e

    if row is None or len(row) < 5:
        raise ConfigReadError(f"unexpected result row {row!r}", query=LOG_BIN_CONFIG_QUERY)

    log_bin, basename, index, gtid_mode, server_uuid = row[:5]
    try:
        log_bin_enabled = parse_bool(log_bin)
        # With binary logging disabled the server reports NULL paths
        config = LogBinConfig(
            basename_path=parse_path("log_bin_basename", basename, required=log_bin_enabled),
            index_path=parse_path("log_bin_index", index, required=log_bin_enabled),
            gtid_mode=parse_gtid_mode(gtid_mode),
            log_bin_enabled=log_bin_enabled,
            server_uuid=_as_text(server_uuid),
        )
    except ValueError as e:
        raise ConfigReadError(f"failed to parse server globals: {e}", query=LOG_BIN_CONFIG_QUERY) from e

    logger.debug(f"read log_bin config: {config}")
    return config
