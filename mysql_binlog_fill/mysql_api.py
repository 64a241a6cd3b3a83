from contextlib import contextmanager
from logging import getLogger

import mysql.connector
from mysql.connector import Error as MySQLError

from .config import MysqlSettings
from .errors import DatabaseConnectionError

logger = getLogger(__name__)


class MySQLApi:
    """Thin query helper around a single MySQL connection.

    The connection is passed in rather than opened here so that callers own
    its lifetime and tests can hand in a double.
    """

    def __init__(self, connection):
        self.connection = connection

    @contextmanager
    def get_cursor(self):
        """Get a cursor with automatic cleanup"""
        cursor = self.connection.cursor()
        try:
            yield cursor
        finally:
            cursor.close()

    def execute(self, command, args=None):
        logger.debug(f"Executing query: {command}")
        with self.get_cursor() as cursor:
            if args:
                cursor.execute(command, args)
            else:
                cursor.execute(command)
            # Administrative statements may still return a result set
            if cursor.with_rows:
                cursor.fetchall()

    def fetch_all(self, query, args=None):
        logger.debug(f"Executing query: {query}")
        with self.get_cursor() as cursor:
            if args:
                cursor.execute(query, args)
            else:
                cursor.execute(query)
            return cursor.fetchall()

    def fetch_one(self, query, args=None):
        rows = self.fetch_all(query, args)
        if not rows:
            return None
        return rows[0]

    def fetch_all_dict(self, query):
        """Fetch rows as dicts keyed by column name"""
        logger.debug(f"Executing query: {query}")
        with self.get_cursor() as cursor:
            cursor.execute(query)
            columns = [column[0] for column in cursor.description or []]
            return [dict(zip(columns, row)) for row in cursor.fetchall()]

    def close(self):
        self.connection.close()


@contextmanager
def connect(mysql_settings: MysqlSettings):
    """Open the single connection used for a run and close it on every exit path"""
    config = mysql_settings.get_connection_config(autocommit=True)
    logger.info(
        f"Connecting to mysql {mysql_settings.user}@{mysql_settings.host}:{mysql_settings.port}"
        f"/{mysql_settings.database}"
    )
    try:
        connection = mysql.connector.connect(**config)
    except MySQLError as e:
        raise DatabaseConnectionError(
            f"failed to connect to {mysql_settings.host}:{mysql_settings.port} as {mysql_settings.user}",
        ) from e

    api = MySQLApi(connection)
    try:
        yield api
    finally:
        try:
            api.close()
        except MySQLError as e:
            logger.warning(f"Error closing mysql connection: {e}")
