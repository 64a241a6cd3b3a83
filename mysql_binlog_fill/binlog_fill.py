from dataclasses import dataclass, field
from enum import Enum
from logging import getLogger

from .binlog_index import binlog_index_entries, read_binlog_index, write_binlog_index
from .binlogs import BinlogFile, read_binary_logs
from .config import Settings
from .errors import BinlogFillError, ConfigReadError
from .gtid import GtidSet, read_gtid_executed
from .mysql_api import MySQLApi
from .replication import reset_replication
from .server_config import LogBinConfig, read_log_bin_config

logger = getLogger(__name__)


class Stage(Enum):
    START = 'start'
    CONFIG_READ = 'config_read'
    BINLOGS_READ = 'binlogs_read'
    GTID_READ = 'gtid_read'
    INDEX_WRITTEN = 'index_written'
    REPLICATION_RESET = 'replication_reset'
    DONE = 'done'
    FAILED = 'failed'


@dataclass
class RunResult:
    config: LogBinConfig = None
    binlogs: list[BinlogFile] = field(default_factory=list)
    gtid_executed: GtidSet = None
    index_entries: list[str] = field(default_factory=list)
    index_written: bool = False
    replication_reset: bool = False
    final_gtid_executed: GtidSet = None


class BinlogFill:
    """Reconciles the binlog index file with the binlogs the server knows about.

    Runs the stages in order, any failure moves the run to Stage.FAILED and
    propagates. Nothing is retried.
    """

    def __init__(
        self,
        mysql_api: MySQLApi,
        settings: Settings,
        reset_replication: bool = False,
        dry_run: bool = False,
    ):
        self.mysql_api = mysql_api
        self.settings = settings
        self.reset_replication = reset_replication
        self.dry_run = dry_run
        self.stage = Stage.START
        self.result = RunResult()

    def read_gtid_executed(self):
        return read_gtid_executed(
            self.mysql_api,
            source=self.settings.gtid_source,
            syntax=self.settings.replication_syntax,
            server_uuid=self.result.config.server_uuid,
        )

    def run_config_read(self):
        config = read_log_bin_config(self.mysql_api)
        logger.info(f'server log_bin config: {config}')
        if not config.log_bin_enabled:
            raise ConfigReadError('binary logging is disabled on the server (log_bin=OFF)')
        self.result.config = config
        self.stage = Stage.CONFIG_READ

    def run_binlogs_read(self):
        binlogs = read_binary_logs(self.mysql_api)
        logger.info(f'server reports {len(binlogs)} binary logs')
        for binlog in binlogs:
            logger.info(f'  {binlog.name} ({binlog.size_bytes} bytes)')
        self.result.binlogs = binlogs
        self.stage = Stage.BINLOGS_READ

    def run_gtid_read(self):
        gtid_executed = self.read_gtid_executed()
        if gtid_executed is None:
            logger.info('no executed gtid state reported, assuming the host ran a replication reset')
        else:
            logger.info(f'executed gtid set: {gtid_executed}')
        self.result.gtid_executed = gtid_executed
        self.stage = Stage.GTID_READ

    def run_index_write(self):
        config = self.result.config
        entries = binlog_index_entries(self.result.binlogs, config)
        self.result.index_entries = entries

        current = read_binlog_index(config.index_path)
        if current is None:
            logger.warning(f'binlog index {config.index_path} does not exist, it will be created')
        else:
            added = [e for e in entries if e not in current]
            removed = [e for e in current if e not in entries]
            for entry in added:
                logger.info(f'index entry added: {entry}')
            for entry in removed:
                logger.info(f'index entry removed: {entry}')
            if current == entries:
                logger.info('binlog index is already up to date')

        if self.dry_run:
            logger.info(f'dry run, not writing {len(entries)} entries to {config.index_path}')
            return

        write_binlog_index(self.result.binlogs, config)
        self.result.index_written = True
        self.stage = Stage.INDEX_WRITTEN

    def run_replication_reset(self):
        if self.dry_run:
            logger.info('dry run, not resetting replication')
            return
        reset_replication(self.mysql_api, syntax=self.settings.replication_syntax)
        self.result.replication_reset = True
        self.stage = Stage.REPLICATION_RESET

        final_gtid_executed = self.read_gtid_executed()
        logger.info(f'executed gtid set after reset: {final_gtid_executed}')
        self.result.final_gtid_executed = final_gtid_executed

    def run(self) -> RunResult:
        logger.info('running binlog fill')
        try:
            self.run_config_read()
            self.run_binlogs_read()
            self.run_gtid_read()
            self.run_index_write()
            if self.reset_replication:
                self.run_replication_reset()
        except BinlogFillError as e:
            logger.error(f'binlog fill failed after stage {self.stage.value}: {e}')
            self.stage = Stage.FAILED
            raise
        except BaseException:
            logger.error(f'binlog fill stopped after stage {self.stage.value}')
            self.stage = Stage.FAILED
            raise
        self.stage = Stage.DONE
        logger.info('binlog fill finished')
        return self.result
