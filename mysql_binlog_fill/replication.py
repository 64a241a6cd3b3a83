from logging import getLogger

from mysql.connector import Error as MySQLError

from .errors import ReplicationResetError

logger = getLogger(__name__)


# (step, legacy query, modern query), executed strictly in this order
RESET_STEPS = [
    ("stop replica", "STOP SLAVE", "STOP REPLICA"),
    ("reset replica", "RESET SLAVE", "RESET REPLICA"),
    ("reset primary", "RESET MASTER", "RESET BINARY LOGS AND GTIDS"),
]


def reset_queries(syntax="legacy"):
    if syntax not in ("legacy", "modern"):
        raise ValueError(f"unknown replication syntax {syntax!r}")
    return [
        (step, legacy if syntax == "legacy" else modern)
        for step, legacy, modern in RESET_STEPS
    ]


def reset_replication(mysql_api, syntax="legacy"):
    """Stop and fully reset replica and primary state.

    Discards the binary logs and the executed GTID history of the server. The
    first failing step aborts the sequence, the remaining steps are not run.
    """
    for step, query in reset_queries(syntax):
        logger.info(f"Running {step}: {query}")
        try:
            mysql_api.execute(query)
        except MySQLError as e:
            raise ReplicationResetError(f"failed at step '{step}'", step=step, query=query) from e
    logger.info("Reset replication states")
