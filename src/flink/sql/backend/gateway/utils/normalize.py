"""
Type normalization utilities for the gateway backend.

The gateway describes column types either as JSON logical type objects
(`{"type": "INTEGER", "nullable": false}`) or, in the flattened result shape,
as SQL type strings (`"DECIMAL(10, 2) NOT NULL"`). This module maps both onto
a LogicalType with a canonical type root.
"""

import re
from typing import Any, Dict

from flink.sql.backend.gateway.utils.constants import TypeRoot
from flink.sql.backend.types import ColumnMeta, LogicalType
from flink.sql.exc import InvalidServerResponseError

# SQL spellings that differ from the canonical type root
SQL_TO_TYPE_ROOT_MAP = {
    "INT": TypeRoot.INTEGER,
    "STRING": TypeRoot.VARCHAR,
    "CHARACTER": TypeRoot.CHAR,
    "CHARACTER VARYING": TypeRoot.VARCHAR,
    "BYTES": TypeRoot.VARBINARY,
    "BINARY VARYING": TypeRoot.VARBINARY,
    "DEC": TypeRoot.DECIMAL,
    "NUMERIC": TypeRoot.DECIMAL,
    "REAL": TypeRoot.FLOAT,
    "DOUBLE PRECISION": TypeRoot.DOUBLE,
    "TIME": TypeRoot.TIME,
    "TIMESTAMP": TypeRoot.TIMESTAMP,
    "TIMESTAMP WITHOUT TIME ZONE": TypeRoot.TIMESTAMP,
    "TIMESTAMP WITH TIME ZONE": TypeRoot.TIMESTAMP_TZ,
    "TIMESTAMP WITH LOCAL TIME ZONE": TypeRoot.TIMESTAMP_LTZ,
    "TIMESTAMP_LTZ": TypeRoot.TIMESTAMP_LTZ,
    "INTERVAL YEAR TO MONTH": TypeRoot.INTERVAL_YEAR_MONTH,
    "INTERVAL DAY TO SECOND": TypeRoot.INTERVAL_DAY_TIME,
}

_NOT_NULL_PATTERN = re.compile(r"\s+NOT\s+NULL\s*$", re.IGNORECASE)
_PARAMETERS_PATTERN = re.compile(r"\([^()]*\)")


def normalize_type_name(type_name: str) -> str:
    """
    Normalize a type name or SQL type string to its canonical type root.

    Args:
        type_name: e.g. "INT", "VARCHAR(10)", "ROW<a INT>", "TIMESTAMP(3) WITH LOCAL TIME ZONE"

    Returns:
        The canonical root, e.g. "INTEGER", "VARCHAR", "ROW", "TIMESTAMP_WITH_LOCAL_TIME_ZONE"
    """
    name = type_name.strip()
    # Parameterized structured types: the root is everything before '<'
    if "<" in name:
        name = name[: name.index("<")]
    name = _PARAMETERS_PATTERN.sub("", name)
    name = " ".join(name.upper().split())
    if name.startswith("INTERVAL "):
        return (
            TypeRoot.INTERVAL_YEAR_MONTH
            if any(unit in name for unit in ("YEAR", "MONTH"))
            else TypeRoot.INTERVAL_DAY_TIME
        )
    return SQL_TO_TYPE_ROOT_MAP.get(name, name.replace(" ", "_"))


def parse_logical_type(descriptor: Any) -> LogicalType:
    """Build a LogicalType from a JSON logical type object or a SQL type string."""

    if isinstance(descriptor, dict):
        type_name = descriptor.get("type")
        if not type_name:
            raise InvalidServerResponseError(
                "Logical type without a type name: {!r}".format(descriptor)
            )
        return LogicalType(
            type_root=normalize_type_name(type_name),
            nullable=bool(descriptor.get("nullable", True)),
            descriptor=descriptor,
        )

    if isinstance(descriptor, str):
        nullable = _NOT_NULL_PATTERN.search(descriptor) is None
        stripped = _NOT_NULL_PATTERN.sub("", descriptor)
        return LogicalType(
            type_root=normalize_type_name(stripped),
            nullable=nullable,
            descriptor=descriptor,
        )

    raise InvalidServerResponseError(
        "Unsupported logical type descriptor: {!r}".format(descriptor)
    )


def parse_column(col_data: Dict[str, Any]) -> ColumnMeta:
    """Build ColumnMeta from one entry of a result's `columns` list."""

    if "logicalType" in col_data:
        descriptor = col_data["logicalType"]
    elif "type" in col_data:
        descriptor = col_data["type"]
    else:
        raise InvalidServerResponseError(
            "Column without a type: {!r}".format(col_data)
        )

    logical_type = parse_logical_type(descriptor)
    if "nullable" in col_data:
        logical_type.nullable = bool(col_data["nullable"])

    return ColumnMeta(
        name=col_data.get("name", ""),
        logical_type=logical_type,
        comment=col_data.get("comment"),
    )
