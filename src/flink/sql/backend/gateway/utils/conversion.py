"""
Type conversion utilities for the Flink SQL connector.

This module converts the JSON cells of gateway result pages to Python values
based on the declared type of their column.
"""

import base64
import binascii
import datetime
import decimal
import json
import logging
from typing import Any, Callable, Dict, List, Sequence

import pandas
from dateutil.parser import isoparser

from flink.sql.backend.gateway.utils.constants import TypeRoot
from flink.sql.backend.types import ColumnMeta
from flink.sql.exc import DecodeError

logger = logging.getLogger(__name__)

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

_isoparser = isoparser()


def _convert_integer(value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError("boolean is not an integer")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError("{} is not an integral value".format(value))
        value = int(value)
    elif isinstance(value, str):
        value = int(value.strip())
    elif not isinstance(value, int):
        raise TypeError("unexpected wire value {!r}".format(value))
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise OverflowError("{} does not fit a signed 64-bit integer".format(value))
    return value


def _convert_float(value: Any) -> float:
    if isinstance(value, bool):
        raise TypeError("boolean is not a float")
    if not isinstance(value, (int, float, str)):
        raise TypeError("unexpected wire value {!r}".format(value))
    return float(value)


def _convert_decimal(value: Any) -> decimal.Decimal:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise TypeError("unexpected wire value {!r}".format(value))
    # Through str so that floats keep their shortest repr rather than binary expansion
    return decimal.Decimal(str(value))


def _convert_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "false"):
            return lowered == "true"
    raise ValueError("{!r} is not a boolean".format(value))


def _convert_string(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError("expected a string, got {!r}".format(value))
    return value


def _convert_date(value: Any) -> datetime.date:
    return _isoparser.parse_isodate(_convert_string(value).strip())


def _convert_time(value: Any) -> datetime.time:
    # Sub-microsecond digits are truncated by the parser
    return _isoparser.parse_isotime(_convert_string(value).strip())


def _convert_timestamp(value: Any) -> pandas.Timestamp:
    # pandas.Timestamp keeps nanoseconds, which TIMESTAMP(9) can carry
    result = pandas.Timestamp(_convert_string(value).strip())
    if result is pandas.NaT:
        raise ValueError("{!r} is not a timestamp".format(value))
    return result


def _convert_binary(value: Any) -> bytes:
    try:
        return base64.b64decode(_convert_string(value), validate=True)
    except binascii.Error as e:
        raise ValueError("invalid base64 payload: {}".format(e))


def _convert_structured(value: Any) -> bytes:
    # Structured values are handed over undecoded in their wire encoding
    if isinstance(value, str):
        return value.encode("utf-8")
    return json.dumps(value, separators=(",", ":")).encode("utf-8")


class GatewayTypeConverter:
    """
    Utility class for converting gateway wire cells to Python types.
    Keyed on the canonical type root produced by normalize_type_name.
    """

    TYPE_MAPPING: Dict[str, Callable[[Any], Any]] = {
        # Numeric types
        TypeRoot.TINYINT: _convert_integer,
        TypeRoot.SMALLINT: _convert_integer,
        TypeRoot.INTEGER: _convert_integer,
        TypeRoot.BIGINT: _convert_integer,
        TypeRoot.FLOAT: _convert_float,
        TypeRoot.DOUBLE: _convert_float,
        TypeRoot.DECIMAL: _convert_decimal,
        # Boolean type
        TypeRoot.BOOLEAN: _convert_boolean,
        # String types
        TypeRoot.CHAR: _convert_string,
        TypeRoot.VARCHAR: _convert_string,
        # Date/Time types
        TypeRoot.DATE: _convert_date,
        TypeRoot.TIME: _convert_time,
        TypeRoot.TIMESTAMP: _convert_timestamp,
        TypeRoot.TIMESTAMP_TZ: _convert_timestamp,
        TypeRoot.TIMESTAMP_LTZ: _convert_timestamp,
        # Intervals travel as months or milliseconds
        TypeRoot.INTERVAL_YEAR_MONTH: _convert_integer,
        TypeRoot.INTERVAL_DAY_TIME: _convert_integer,
        # Binary types
        TypeRoot.BINARY: _convert_binary,
        TypeRoot.VARBINARY: _convert_binary,
        # Structured types
        TypeRoot.ARRAY: _convert_structured,
        TypeRoot.MULTISET: _convert_structured,
        TypeRoot.MAP: _convert_structured,
        TypeRoot.ROW: _convert_structured,
        TypeRoot.STRUCTURED_TYPE: _convert_structured,
        TypeRoot.DISTINCT_TYPE: _convert_structured,
        TypeRoot.RAW: _convert_structured,
    }

    @staticmethod
    def convert_value(value: Any, column: ColumnMeta) -> Any:
        """
        Convert one wire cell to the Python value for its column.

        Args:
            value: The JSON cell, None for SQL NULL
            column: Metadata of the column the cell belongs to

        Returns:
            The converted value, None for an absent value

        Raises:
            DecodeError: If the cell is null in a NOT NULL column, the column
                type is not recognised, or the cell does not match the type
        """

        if value is None:
            if column.nullable:
                return None
            raise DecodeError(
                column.name,
                column.remote_type,
                ValueError("null value in NOT NULL column"),
            )

        converter_func = GatewayTypeConverter.TYPE_MAPPING.get(column.remote_type)
        if converter_func is None:
            raise DecodeError(
                column.name,
                column.remote_type,
                TypeError("unrecognized type {}".format(column.remote_type)),
            )

        try:
            return converter_func(value)
        except (TypeError, ValueError, OverflowError, decimal.InvalidOperation) as e:
            logger.debug(
                "Error converting value %r to %s in column %s: %s",
                value,
                column.remote_type,
                column.name,
                e,
            )
            raise DecodeError(column.name, column.remote_type, e) from e


def decode_value(value: Any, column: ColumnMeta) -> Any:
    return GatewayTypeConverter.convert_value(value, column)


def decode_row(raw_row: Sequence[Any], columns: List[ColumnMeta]) -> List[Any]:
    """
    Decode all cells of one raw row.

    Raises:
        DecodeError: If the row does not have exactly one cell per column, or
            any cell fails to decode
    """

    if len(raw_row) != len(columns):
        raise DecodeError(
            None,
            None,
            ValueError(
                "malformed row: {} cells for {} columns".format(
                    len(raw_row), len(columns)
                )
            ),
        )
    return [
        GatewayTypeConverter.convert_value(value, column)
        for value, column in zip(raw_row, columns)
    ]
