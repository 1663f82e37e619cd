from flink.sql.backend.gateway.utils.conversion import (
    GatewayTypeConverter,
    decode_row,
    decode_value,
)
from flink.sql.backend.gateway.utils.normalize import (
    normalize_type_name,
    parse_column,
    parse_logical_type,
)

__all__ = [
    "GatewayTypeConverter",
    "decode_row",
    "decode_value",
    "normalize_type_name",
    "parse_column",
    "parse_logical_type",
]
