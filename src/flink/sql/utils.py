import logging
import urllib.parse
from typing import Dict, Mapping, Optional, Tuple

from flink.sql.exc import ConfigError

logger = logging.getLogger(__name__)


def parse_uri_parameters(raw_query: str) -> Dict[str, str]:
    """
    Parse a `k1=v1&k2=v2` query fragment into session properties.

    Keys and values are percent-decoded, empty segments are skipped and a
    repeated key keeps its last value.

    Raises:
        ConfigError: If a segment has no `=` or an empty key
    """
    properties: Dict[str, str] = {}
    for segment in raw_query.split("&"):
        if not segment:
            continue
        key, sep, value = segment.partition("=")
        if not sep:
            raise ConfigError(
                "Invalid property {!r}: expected key=value".format(segment),
                {"query": raw_query},
            )
        key = urllib.parse.unquote_plus(key)
        if not key:
            raise ConfigError(
                "Invalid property {!r}: empty key".format(segment),
                {"query": raw_query},
            )
        properties[key] = urllib.parse.unquote_plus(value)
    return properties


def split_url_properties(url: str) -> Tuple[str, Dict[str, str]]:
    """Split `url?k=v` into the base URL and its query properties."""
    base, sep, raw_query = url.partition("?")
    if not sep:
        return url, {}
    return base, parse_uri_parameters(raw_query)


def parse_dsn(dsn: str) -> Tuple[str, Dict[str, str]]:
    """
    Parse a DSN of the form `http://host:port[?key=value&key2=value2]`.

    Returns:
        The gateway URL and the session properties from the query string.

    Raises:
        ConfigError: If the DSN is empty or its query string is malformed
    """
    if not dsn or not dsn.strip():
        raise ConfigError("Empty DSN")
    try:
        return split_url_properties(dsn.strip())
    except ConfigError as e:
        raise ConfigError(
            "Invalid DSN properties: {}".format(e.message), {"dsn": dsn}
        ) from e


def merge_properties(*sources: Optional[Mapping[str, str]]) -> Dict[str, str]:
    """Merge property mappings left to right; later sources win on collision."""
    merged: Dict[str, str] = {}
    for source in sources:
        if source:
            merged.update({str(k): str(v) for k, v in source.items()})
    return merged
