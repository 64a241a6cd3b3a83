"""Shared test fixtures and utilities for mysql-binlog-fill tests"""

import pytest

from mysql_binlog_fill.config import Settings
from mysql_binlog_fill.gtid import GTID_EXECUTED_TABLE_QUERY
from mysql_binlog_fill.mysql_api import MySQLApi
from mysql_binlog_fill.server_config import LOG_BIN_CONFIG_QUERY
from tests.utils.fake_mysql import FakeConnection, config_result, gtid_table_result


@pytest.fixture
def fake_connection():
    return FakeConnection()


@pytest.fixture
def mysql_api(fake_connection):
    return MySQLApi(fake_connection)


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def server(tmp_path, fake_connection):
    """Fake server whose binlogs and index live in tmp_path"""
    data_dir = tmp_path / "mysql"
    data_dir.mkdir()
    fake_connection.results[LOG_BIN_CONFIG_QUERY] = config_result(
        str(data_dir / "mysql-bin"), str(data_dir / "mysql-bin.index"),
    )
    fake_connection.results[GTID_EXECUTED_TABLE_QUERY] = gtid_table_result()
    return fake_connection


# Pytest markers
def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers", "optional: mark test as optional (may be skipped in CI)"
    )
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "unit: mark test as unit test")
