import datetime

from flink.sql.exc import *

# PEP 249 module globals
apilevel = "2.0"
threadsafety = 1  # Threads may share the module, but not connections.
paramstyle = "named"

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    # Use this import purely for type annotations, a la https://mypy.readthedocs.io/en/latest/runtime_troubles.html#import-cycles
    from .client import Connection, Connector


class DBAPITypeObject(object):
    def __init__(self, *values):
        self.values = values

    def __eq__(self, other):
        return other in self.values

    def __repr__(self):
        return "DBAPITypeObject({})".format(self.values)


STRING = DBAPITypeObject("char", "varchar")
BINARY = DBAPITypeObject("binary", "varbinary")
NUMBER = DBAPITypeObject(
    "tinyint", "smallint", "integer", "bigint", "float", "double", "decimal"
)
DATETIME = DBAPITypeObject(
    "date",
    "time_without_time_zone",
    "timestamp_without_time_zone",
    "timestamp_with_time_zone",
    "timestamp_with_local_time_zone",
)
ROWID = DBAPITypeObject()

__version__ = "0.1.0"
USER_AGENT_NAME = "PyFlinkSqlGatewayConnector"

# PEP 249 type constructors
Date = datetime.date
Timestamp = datetime.datetime


def DateFromTicks(ticks):
    return Date(*datetime.datetime.fromtimestamp(ticks).timetuple()[:3])


def TimestampFromTicks(ticks):
    return Timestamp(*datetime.datetime.fromtimestamp(ticks).timetuple()[:6])


def connect(dsn=None, **kwargs) -> "Connection":
    """
    Open a connection on a fresh gateway session.

    Either pass a DSN such as ``"http://localhost:8083?execution.runtime-mode=batch"``
    or keyword arguments accepted by ConnectionConfig (``gateway_url``,
    ``properties``, ``api_version``, ...). Closing the returned connection also
    closes its session.
    """
    from .client import Connector

    if dsn is not None:
        connector = Connector.from_dsn(dsn, **kwargs)
    else:
        connector = Connector(**kwargs)
    try:
        connection = connector.connect()
    except Exception:
        connector.close()
        raise
    connection._owns_connector = True
    return connection
