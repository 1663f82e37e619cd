"""
Unit tests for the gateway type conversion utilities.
"""

import base64
import datetime
from decimal import Decimal

import pandas
import pytest

from flink.sql.backend.gateway.utils.constants import TypeRoot
from flink.sql.backend.gateway.utils.conversion import (
    GatewayTypeConverter,
    decode_row,
    decode_value,
)
from flink.sql.backend.types import ColumnMeta, LogicalType
from flink.sql.exc import DecodeError


def column(type_root, nullable=True, name="col"):
    return ColumnMeta(name=name, logical_type=LogicalType(type_root, nullable))


class TestNullHandling:
    def test_null_in_nullable_column_is_absent(self):
        assert decode_value(None, column(TypeRoot.INTEGER)) is None

    def test_null_in_nullable_column_of_unknown_type_is_absent(self):
        assert decode_value(None, column(TypeRoot.SYMBOL)) is None

    def test_null_in_not_null_column_fails(self):
        with pytest.raises(DecodeError) as excinfo:
            decode_value(None, column(TypeRoot.INTEGER, nullable=False, name="id"))
        assert excinfo.value.column == "id"
        assert excinfo.value.remote_type == TypeRoot.INTEGER


class TestGatewayTypeConverter:
    @pytest.mark.parametrize(
        "type_root",
        [TypeRoot.TINYINT, TypeRoot.SMALLINT, TypeRoot.INTEGER, TypeRoot.BIGINT],
    )
    def test_integer_conversions(self, type_root):
        assert decode_value(1, column(type_root)) == 1
        assert decode_value("-42", column(type_root)) == -42
        assert decode_value(3.0, column(type_root)) == 3

    def test_bigint_range(self):
        assert decode_value(2**63 - 1, column(TypeRoot.BIGINT)) == 2**63 - 1
        with pytest.raises(DecodeError):
            decode_value(2**63, column(TypeRoot.BIGINT))

    def test_integer_rejects_non_integral_values(self):
        with pytest.raises(DecodeError):
            decode_value(1.5, column(TypeRoot.INTEGER))
        with pytest.raises(DecodeError):
            decode_value(True, column(TypeRoot.INTEGER))
        with pytest.raises(DecodeError):
            decode_value("abc", column(TypeRoot.INTEGER))

    def test_interval_conversions(self):
        assert decode_value(14, column(TypeRoot.INTERVAL_YEAR_MONTH)) == 14
        assert decode_value(86400000, column(TypeRoot.INTERVAL_DAY_TIME)) == 86400000

    def test_float_conversions(self):
        assert decode_value(123.45, column(TypeRoot.DOUBLE)) == 123.45
        assert decode_value(1, column(TypeRoot.FLOAT)) == 1.0
        assert isinstance(decode_value(1, column(TypeRoot.FLOAT)), float)
        assert decode_value("NaN", column(TypeRoot.DOUBLE)) != decode_value(
            "NaN", column(TypeRoot.DOUBLE)
        )

    def test_decimal_conversions(self):
        assert decode_value("123.45", column(TypeRoot.DECIMAL)) == Decimal("123.45")
        assert decode_value(0.1, column(TypeRoot.DECIMAL)) == Decimal("0.1")

    def test_boolean_conversions(self):
        assert decode_value(True, column(TypeRoot.BOOLEAN)) is True
        assert decode_value(False, column(TypeRoot.BOOLEAN)) is False
        assert decode_value("TRUE", column(TypeRoot.BOOLEAN)) is True
        with pytest.raises(DecodeError):
            decode_value("yes", column(TypeRoot.BOOLEAN))

    def test_string_conversions(self):
        assert decode_value("test", column(TypeRoot.VARCHAR)) == "test"
        assert decode_value("a  ", column(TypeRoot.CHAR)) == "a  "
        with pytest.raises(DecodeError):
            decode_value(5, column(TypeRoot.VARCHAR))

    def test_datetime_conversions(self):
        assert decode_value("2023-01-15", column(TypeRoot.DATE)) == datetime.date(
            2023, 1, 15
        )
        assert decode_value("14:30:45.123", column(TypeRoot.TIME)) == datetime.time(
            14, 30, 45, 123000
        )

    def test_timestamp_keeps_nanoseconds(self):
        value = decode_value(
            "2023-01-15 14:30:45.123456789", column(TypeRoot.TIMESTAMP)
        )
        assert isinstance(value, pandas.Timestamp)
        assert value.microsecond == 123456
        assert value.nanosecond == 789

    def test_timestamp_with_local_time_zone(self):
        value = decode_value("2023-01-15T14:30:45Z", column(TypeRoot.TIMESTAMP_LTZ))
        assert value == pandas.Timestamp("2023-01-15 14:30:45", tz="UTC")

    def test_invalid_timestamp_fails(self):
        with pytest.raises(DecodeError):
            decode_value("not a timestamp", column(TypeRoot.TIMESTAMP))

    def test_binary_round_trip(self):
        payload = bytes(range(256))
        encoded = base64.b64encode(payload).decode("ascii")
        assert decode_value(encoded, column(TypeRoot.BINARY)) == payload
        assert decode_value(encoded, column(TypeRoot.VARBINARY)) == payload

    def test_invalid_binary_fails(self):
        with pytest.raises(DecodeError):
            decode_value("***", column(TypeRoot.VARBINARY))

    @pytest.mark.parametrize(
        "type_root,value,expected",
        [
            (TypeRoot.ARRAY, [1, 2, None], b"[1,2,null]"),
            (TypeRoot.MAP, {"a": 1}, b'{"a":1}'),
            (TypeRoot.ROW, {"f0": "x", "f1": 2}, b'{"f0":"x","f1":2}'),
            (TypeRoot.RAW, "AAEC", b"AAEC"),
        ],
    )
    def test_structured_types_decode_to_bytes(self, type_root, value, expected):
        assert decode_value(value, column(type_root)) == expected

    def test_unrecognized_type_fails(self):
        with pytest.raises(DecodeError) as excinfo:
            decode_value("x", column(TypeRoot.SYMBOL))
        assert "unrecognized type" in str(excinfo.value)

    def test_converter_covers_every_structured_root(self):
        for type_root in (
            TypeRoot.MULTISET,
            TypeRoot.STRUCTURED_TYPE,
            TypeRoot.DISTINCT_TYPE,
        ):
            assert type_root in GatewayTypeConverter.TYPE_MAPPING


class TestDecodeRow:
    def test_decodes_each_cell(self):
        columns = [column(TypeRoot.INTEGER, name="a"), column(TypeRoot.VARCHAR, name="b")]
        assert decode_row([1, "x"], columns) == [1, "x"]

    def test_short_row_fails(self):
        columns = [column(TypeRoot.INTEGER), column(TypeRoot.VARCHAR)]
        with pytest.raises(DecodeError) as excinfo:
            decode_row([1], columns)
        assert "malformed row" in str(excinfo.value)

    def test_long_row_fails(self):
        with pytest.raises(DecodeError):
            decode_row([1, 2], [column(TypeRoot.INTEGER)])
