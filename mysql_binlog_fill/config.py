"""
MySQL Binlog Fill Configuration Management

This module provides configuration classes for connecting to the MySQL server
whose binary-log bookkeeping is being inspected or repaired.

Classes:
    MysqlSettings: MySQL connection configuration with per-query timeouts
    Settings: Main configuration class, loaded from YAML and environment

Key Features:
    - YAML-based configuration loading
    - Environment variable overrides for credentials (MYSQL_HOST, ...)
    - Type validation and error handling
"""

import os
from dataclasses import dataclass

import yaml


def stype(obj):
    """Get the simple type name of an object.

    Example:
        >>> stype([1, 2, 3])
        'list'
    """
    return type(obj).__name__


GTID_SOURCES = ("status", "table")
REPLICATION_SYNTAXES = ("legacy", "modern")
LOG_LEVELS = ["critical", "error", "warning", "info", "debug"]


@dataclass
class MysqlSettings:
    """MySQL server connection configuration.

    Attributes:
        host: MySQL server hostname or IP address (default: 127.0.0.1)
        port: MySQL server port (default: 3306)
        user: MySQL username for authentication
        password: MySQL password for authentication
        database: schema selected on connect (default: information_schema)
        connect_timeout: seconds allowed for establishing the connection
        query_timeout: seconds allowed for a single query round trip
        charset: Character set for connection (optional)
        collation: Collation for connection (optional)
    """
    host: str = "127.0.0.1"
    port: int = 3306
    user: str = "root"
    password: str = ""
    database: str = "information_schema"
    connect_timeout: int = 10
    query_timeout: int = 10
    charset: str = None
    collation: str = None

    ENV_OVERRIDES = {
        "MYSQL_HOST": ("host", str),
        "MYSQL_PORT": ("port", int),
        "MYSQL_USER": ("user", str),
        "MYSQL_PASSWORD": ("password", str),
        "MYSQL_CHARSET": ("charset", str),
    }

    def apply_env_overrides(self, environ=None):
        environ = os.environ if environ is None else environ
        for env_name, (attr, cast) in self.ENV_OVERRIDES.items():
            value = environ.get(env_name)
            if value is None:
                continue
            try:
                setattr(self, attr, cast(value))
            except ValueError:
                raise ValueError(f"{env_name} should be {cast.__name__} and not {value!r}")

    def validate(self):
        if not isinstance(self.host, str):
            raise ValueError(f"mysql host should be string and not {stype(self.host)}")

        if not isinstance(self.port, int):
            raise ValueError(f"mysql port should be int and not {stype(self.port)}")

        if not isinstance(self.user, str):
            raise ValueError(f"mysql user should be string and not {stype(self.user)}")

        if not isinstance(self.password, str):
            raise ValueError(
                f"mysql password should be string and not {stype(self.password)}"
            )

        if not isinstance(self.database, str):
            raise ValueError(
                f"mysql database should be string and not {stype(self.database)}"
            )

        if not isinstance(self.connect_timeout, int):
            raise ValueError(
                f"mysql connect_timeout should be int and not {stype(self.connect_timeout)}"
            )

        if not isinstance(self.query_timeout, int):
            raise ValueError(
                f"mysql query_timeout should be int and not {stype(self.query_timeout)}"
            )

        if self.connect_timeout <= 0:
            raise ValueError("connect_timeout should be at least 1 second")

        if self.query_timeout <= 0:
            raise ValueError("query_timeout should be at least 1 second")

        if self.charset is not None and not isinstance(self.charset, str):
            raise ValueError(
                f"mysql charset should be string or None and not {stype(self.charset)}"
            )

        if self.collation is not None and not isinstance(self.collation, str):
            raise ValueError(
                f"mysql collation should be string or None and not {stype(self.collation)}"
            )

    def get_connection_config(self, autocommit=True):
        """Build mysql.connector.connect() keyword arguments"""
        config = {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "password": self.password,
            "database": self.database,
            "autocommit": autocommit,
            "connection_timeout": self.connect_timeout,
            # Bounds every query round trip, the server may be overloaded
            "read_timeout": self.query_timeout,
            "write_timeout": self.query_timeout,
        }

        if self.charset is not None:
            config["charset"] = self.charset

        if self.collation is not None:
            config["collation"] = self.collation

        return config


class Settings:
    DEFAULT_LOG_LEVEL = "info"
    DEFAULT_GTID_SOURCE = "status"
    DEFAULT_REPLICATION_SYNTAX = "legacy"

    def __init__(self):
        self.mysql = MysqlSettings()
        self.settings_file = ""
        self.log_level = Settings.DEFAULT_LOG_LEVEL
        self.debug_log_level = False
        self.gtid_source = Settings.DEFAULT_GTID_SOURCE
        self.replication_syntax = Settings.DEFAULT_REPLICATION_SYNTAX

    def load(self, settings_file):
        with open(settings_file, "r") as f:
            try:
                data = yaml.safe_load(f.read()) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"failed to parse config file {settings_file}: {e}")

        if not isinstance(data, dict):
            raise ValueError(f"config file {settings_file} should contain a mapping and not {stype(data)}")

        self.settings_file = settings_file
        try:
            self.mysql = MysqlSettings(**data.pop("mysql", {}))
        except TypeError as e:
            raise ValueError(f"wrong mysql settings: {e}")
        self.log_level = data.pop("log_level", Settings.DEFAULT_LOG_LEVEL)
        self.gtid_source = data.pop("gtid_source", Settings.DEFAULT_GTID_SOURCE)
        self.replication_syntax = data.pop(
            "replication_syntax", Settings.DEFAULT_REPLICATION_SYNTAX,
        )

        if data:
            raise ValueError(f"Unsupported config options: {list(data.keys())}")

        self.mysql.apply_env_overrides()
        self.validate()

    def validate_log_level(self):
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"wrong log level {self.log_level}")
        if self.log_level == "debug":
            self.debug_log_level = True

    def validate(self):
        self.mysql.validate()
        self.validate_log_level()
        if self.gtid_source not in GTID_SOURCES:
            raise ValueError(
                f"gtid_source should be one of {list(GTID_SOURCES)} and not {self.gtid_source!r}"
            )
        if self.replication_syntax not in REPLICATION_SYNTAXES:
            raise ValueError(
                f"replication_syntax should be one of {list(REPLICATION_SYNTAXES)} "
                f"and not {self.replication_syntax!r}"
            )
