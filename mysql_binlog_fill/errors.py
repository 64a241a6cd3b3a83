"""Errors raised by the binlog reconciliation stages.

Every stage failure is fatal to the current run. The failing query (when there
is one) and the underlying driver error, chained as ``__cause__``, are part of
the rendered message.
"""


class BinlogFillError(Exception):
    stage = None

    def __init__(self, message, query=None):
        super().__init__(message)
        self.message = message
        self.query = query

    def __str__(self):
        parts = [f"[{self.stage}] {self.message}" if self.stage else self.message]
        if self.query:
            parts.append(f"query={self.query!r}")
        if self.__cause__ is not None:
            parts.append(f"cause={self.__cause__}")
        return ", ".join(parts)


class DatabaseConnectionError(BinlogFillError):
    stage = "connect"


class ConfigReadError(BinlogFillError):
    stage = "config"


class BinlogListError(BinlogFillError):
    stage = "binlogs"


class GtidReadError(BinlogFillError):
    stage = "gtid"


class IndexWriteError(BinlogFillError):
    stage = "index"

    def __init__(self, message, path=None):
        super().__init__(message)
        self.path = path


class ReplicationResetError(BinlogFillError):
    stage = "reset"

    def __init__(self, message, step=None, query=None):
        super().__init__(message, query=query)
        self.step = step
