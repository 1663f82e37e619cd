"""
Constants for the Flink SQL Gateway REST backend.
"""

from enum import Enum

SUPPORTED_API_VERSIONS = ("v1", "v2", "v3")
DEFAULT_API_VERSION = "v3"
DEFAULT_GATEWAY_URL = "http://localhost:8081"

# Token requested for the first page of a result set
INITIAL_RESULT_TOKEN = "0"

DEFAULT_REQUEST_TIMEOUT_SECONDS = 60.0
DEFAULT_CANCEL_TIMEOUT_SECONDS = 5.0

# Status polling backoff: start at the minimum, multiply per poll, cap at the maximum
DEFAULT_POLL_INTERVAL_MIN_SECONDS = 0.2
DEFAULT_POLL_INTERVAL_MAX_SECONDS = 2.0
DEFAULT_POLL_BACKOFF_FACTOR = 2.0


class RowFormat(Enum):
    """Enum for the result row format requested from v2+ gateways."""

    JSON = "JSON"
    PLAIN_TEXT = "PLAIN_TEXT"


class TypeRoot:
    """
    Canonical gateway logical type roots.

    These are the `type` names the gateway reports in JSON logical type
    descriptors; SQL type strings are normalised onto them.
    """

    # Numeric types
    TINYINT = "TINYINT"
    SMALLINT = "SMALLINT"
    INTEGER = "INTEGER"
    BIGINT = "BIGINT"
    FLOAT = "FLOAT"
    DOUBLE = "DOUBLE"
    DECIMAL = "DECIMAL"

    # Boolean type
    BOOLEAN = "BOOLEAN"

    # String types
    CHAR = "CHAR"
    VARCHAR = "VARCHAR"

    # Binary types
    BINARY = "BINARY"
    VARBINARY = "VARBINARY"

    # Date/Time types
    DATE = "DATE"
    TIME = "TIME_WITHOUT_TIME_ZONE"
    TIMESTAMP = "TIMESTAMP_WITHOUT_TIME_ZONE"
    TIMESTAMP_TZ = "TIMESTAMP_WITH_TIME_ZONE"
    TIMESTAMP_LTZ = "TIMESTAMP_WITH_LOCAL_TIME_ZONE"
    INTERVAL_YEAR_MONTH = "INTERVAL_YEAR_MONTH"
    INTERVAL_DAY_TIME = "INTERVAL_DAY_TIME"

    # Structured types
    ARRAY = "ARRAY"
    MULTISET = "MULTISET"
    MAP = "MAP"
    ROW = "ROW"
    STRUCTURED_TYPE = "STRUCTURED_TYPE"
    DISTINCT_TYPE = "DISTINCT_TYPE"
    RAW = "RAW"

    # Other types
    NULL = "NULL"
    SYMBOL = "SYMBOL"
    UNRESOLVED = "UNRESOLVED"
