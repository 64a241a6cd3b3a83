#!/usr/bin/env python3

import argparse
import logging
import sys

from .binlog_fill import BinlogFill
from .config import GTID_SOURCES, REPLICATION_SYNTAXES, Settings
from .errors import BinlogFillError
from .mysql_api import connect


CONFIRMATION_WORD = 'yes'


def set_logging_config(tags, log_level_str=None):
    """Configure logging to output only to stderr."""
    handlers = [logging.StreamHandler(sys.stderr)]

    log_levels = {
        'critical': logging.CRITICAL,
        'error': logging.ERROR,
        'warning': logging.WARNING,
        'info': logging.INFO,
        'debug': logging.DEBUG,
    }

    log_level = log_levels.get(log_level_str)
    if log_level is None:
        logging.warning(f'Unknown log level {log_level_str}, setting info')
        log_level = logging.INFO

    logging.basicConfig(
        level=log_level,
        format=f'[{tags} %(asctime)s %(levelname)8s] %(message)s',
        handlers=handlers,
        force=True,
    )


def build_parser():
    parser = argparse.ArgumentParser(
        description="Regenerate the binlog index file of a MySQL server and optionally reset replication state",
    )
    parser.add_argument("--config", help="config file path", default=None, type=str)
    parser.add_argument("--host", help="mysql host", default=None, type=str)
    parser.add_argument("--port", help="mysql port", default=None, type=int)
    parser.add_argument("--user", help="mysql user name", default=None, type=str)
    parser.add_argument("--password", help="mysql user password", default=None, type=str)
    parser.add_argument(
        "--query_timeout", type=int, default=None,
        help="seconds allowed for each query",
    )
    parser.add_argument(
        "--gtid_source", type=str, default=None, choices=GTID_SOURCES,
        help="read executed gtids from the primary status row or the gtid_executed table",
    )
    parser.add_argument(
        "--replication_syntax", type=str, default=None, choices=REPLICATION_SYNTAXES,
        help="legacy (SLAVE/MASTER) or modern (REPLICA/BINARY LOG) administrative commands",
    )
    parser.add_argument("--log_level", type=str, default=None, help="log level")
    parser.add_argument(
        "--dry_run", action="store_true", default=False,
        help="report the index changes without writing anything",
    )
    parser.add_argument(
        "--reset_replication", action="store_true", default=False,
        help="DANGEROUS: stop and reset replica and primary state, discarding binlogs and gtid history",
    )
    parser.add_argument(
        "--yes", action="store_true", default=False,
        help="do not ask for confirmation before resetting replication",
    )
    return parser


def load_settings(args) -> Settings:
    settings = Settings()
    if args.config:
        settings.load(args.config)
    else:
        settings.mysql.apply_env_overrides()

    overrides = {
        'host': args.host,
        'port': args.port,
        'user': args.user,
        'password': args.password,
        'query_timeout': args.query_timeout,
    }
    for attr, value in overrides.items():
        if value is not None:
            setattr(settings.mysql, attr, value)
    if args.gtid_source is not None:
        settings.gtid_source = args.gtid_source
    if args.replication_syntax is not None:
        settings.replication_syntax = args.replication_syntax
    if args.log_level is not None:
        settings.log_level = args.log_level

    settings.validate()
    return settings


def confirm_reset(settings: Settings, input_func=input) -> bool:
    prompt = (
        f'About to run STOP/RESET replica and RESET primary on '
        f'{settings.mysql.host}:{settings.mysql.port}. This discards all binary logs '
        f'and the executed gtid history. Type "{CONFIRMATION_WORD}" to continue: '
    )
    try:
        answer = input_func(prompt)
    except EOFError:
        return False
    return answer.strip().lower() == CONFIRMATION_WORD


def run(args, settings: Settings, input_func=input) -> int:
    try:
        if args.reset_replication and not args.dry_run and not args.yes:
            if not confirm_reset(settings, input_func):
                logging.error('replication reset was not confirmed, aborting')
                return 1

        with connect(settings.mysql) as mysql_api:
            binlog_fill = BinlogFill(
                mysql_api,
                settings,
                reset_replication=args.reset_replication,
                dry_run=args.dry_run,
            )
            binlog_fill.run()
    except BinlogFillError as e:
        logging.error(f'{e}')
        return 1
    except KeyboardInterrupt:
        logging.error('interrupted')
        return 130
    return 0


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args)
    except (OSError, ValueError) as e:
        parser.error(f'invalid configuration: {e}')

    set_logging_config('binlogfill', log_level_str=settings.log_level)
    sys.exit(run(args, settings))


if __name__ == '__main__':
    main()
