import logging
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional, Tuple, Union

from urllib3 import PoolManager, Retry

from flink.sql.backend.gateway.utils.constants import (
    DEFAULT_API_VERSION,
    DEFAULT_CANCEL_TIMEOUT_SECONDS,
    DEFAULT_GATEWAY_URL,
    DEFAULT_POLL_BACKOFF_FACTOR,
    DEFAULT_POLL_INTERVAL_MAX_SECONDS,
    DEFAULT_POLL_INTERVAL_MIN_SECONDS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    SUPPORTED_API_VERSIONS,
)
from flink.sql.exc import ConfigError
from flink.sql.utils import merge_properties, parse_dsn, split_url_properties

logger = logging.getLogger(__name__)


@dataclass
class ConnectionConfig:
    """
    Settings used to create a gateway session and its connections.

    Attributes:
        gateway_url: Gateway endpoint; may carry `?key=value` session properties
        http_client: urllib3 PoolManager used as transport, created when None
        api_version: Gateway REST API version (v1, v2 or v3)
        properties: Session properties; these win over URL properties
        session_name: Optional name of the gateway session
        http_headers: Extra HTTP headers sent with every request
        request_timeout: Socket timeout in seconds for every request
        retries: urllib3 retry configuration, no retries by default
        poll_interval_min: First and minimum wait between status polls
        poll_interval_max: Cap of the wait between status polls
        poll_backoff_factor: Growth of the wait after each poll
        cancel_timeout: Bound on best-effort cancel and cleanup calls
        arraysize: Default number of rows returned by fetchmany
    """

    gateway_url: str = DEFAULT_GATEWAY_URL
    http_client: Optional[PoolManager] = None
    api_version: str = DEFAULT_API_VERSION
    properties: Dict[str, str] = field(default_factory=dict)
    session_name: Optional[str] = None
    http_headers: List[Tuple[str, str]] = field(default_factory=list)
    request_timeout: Optional[float] = DEFAULT_REQUEST_TIMEOUT_SECONDS
    retries: Union[Retry, bool, int] = False
    poll_interval_min: float = DEFAULT_POLL_INTERVAL_MIN_SECONDS
    poll_interval_max: float = DEFAULT_POLL_INTERVAL_MAX_SECONDS
    poll_backoff_factor: float = DEFAULT_POLL_BACKOFF_FACTOR
    cancel_timeout: float = DEFAULT_CANCEL_TIMEOUT_SECONDS
    arraysize: int = 10000

    def __post_init__(self):
        if self.api_version not in SUPPORTED_API_VERSIONS:
            raise ConfigError(
                "Unsupported gateway API version: {!r}".format(self.api_version)
            )
        if self.poll_interval_min <= 0 or self.poll_interval_max < self.poll_interval_min:
            raise ConfigError(
                "Invalid poll intervals: min={}, max={}".format(
                    self.poll_interval_min, self.poll_interval_max
                )
            )
        if self.poll_backoff_factor < 1:
            raise ConfigError("poll_backoff_factor must be >= 1")
        if self.request_timeout is not None and self.request_timeout <= 0:
            raise ConfigError("request_timeout must be positive")
        if self.arraysize <= 0:
            raise ConfigError("arraysize must be positive")

    @classmethod
    def from_kwargs(cls, **kwargs: Any) -> "ConnectionConfig":
        """Build a config from keyword arguments, rejecting unknown ones."""
        known = {f.name for f in fields(cls)}
        unknown = set(kwargs) - known
        if unknown:
            raise ConfigError(
                "Unknown connection arguments: {}".format(", ".join(sorted(unknown)))
            )
        return cls(**kwargs)

    @classmethod
    def from_dsn(cls, dsn: str, **kwargs: Any) -> "ConnectionConfig":
        """Build a config from a DSN; explicit `properties` win over DSN ones."""
        gateway_url, dsn_properties = parse_dsn(dsn)
        properties = merge_properties(dsn_properties, kwargs.pop("properties", None))
        return cls.from_kwargs(gateway_url=gateway_url, properties=properties, **kwargs)

    @property
    def base_url(self) -> str:
        return split_url_properties(self.gateway_url)[0]

    def effective_properties(self) -> Dict[str, str]:
        """Session properties from the gateway URL merged with explicit ones."""
        try:
            _, url_properties = split_url_properties(self.gateway_url)
        except ConfigError as e:
            raise ConfigError(
                "Error while merging connector properties: {}".format(e.message)
            ) from e
        return merge_properties(url_properties, self.properties)
