import json
import logging
import threading
import urllib.parse
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict, Any, Optional, List, Tuple, Union

from urllib3 import PoolManager, Retry, Timeout
from urllib3.exceptions import HTTPError

from flink.sql import __version__
from flink.sql import USER_AGENT_NAME
from flink.sql.context import ExecutionContext
from flink.sql.exc import (
    ConfigError,
    DeadlineExceededError,
    GatewayConnectionError,
    GatewayError,
    InvalidServerResponseError,
)

logger = logging.getLogger(__name__)


class GatewayHttpClient:
    """
    HTTP client for the Flink SQL Gateway REST API.

    This client uses a urllib3 PoolManager for connection pooling. It does not
    retry on its own; a urllib3 Retry can be supplied for transport level
    retries. Requests run on a small worker pool so that a cancelled context
    releases the caller at once instead of after the socket call returns.
    """

    _pool: Optional[PoolManager]

    def __init__(
        self,
        gateway_url: str,
        http_client: Optional[PoolManager] = None,
        http_headers: Optional[List[Tuple[str, str]]] = None,
        request_timeout: Optional[float] = None,
        retries: Union[Retry, bool, int] = False,
    ):
        """
        Initialize the gateway HTTP client.

        Args:
            gateway_url: Base URL of the gateway, e.g. http://localhost:8083
            http_client: PoolManager to issue requests with; one is created
                (and owned) by this client when omitted
            http_headers: List of HTTP headers to include in requests
            request_timeout: Socket timeout in seconds for every request
            retries: urllib3 retry configuration, no retries by default
        """

        parsed_url = urllib.parse.urlparse(gateway_url)
        if parsed_url.scheme not in ("http", "https") or not parsed_url.hostname:
            raise ConfigError(
                "Invalid gateway URL: {!r}".format(gateway_url),
                {"gateway-url": gateway_url},
            )
        if parsed_url.query:
            raise ConfigError(
                "Gateway URL must not carry a query string: {!r}".format(gateway_url)
            )

        self.base_url = gateway_url.rstrip("/")
        self.scheme = parsed_url.scheme
        self.host = parsed_url.hostname
        self.request_timeout = request_timeout
        self.retries = retries

        # Setup headers
        self.headers: Dict[str, str] = dict(http_headers or [])
        self.headers.update(
            {
                "Content-Type": "application/json",
                "Accept": "application/json",
                "User-Agent": "{}/{}".format(USER_AGENT_NAME, __version__),
            }
        )

        self._owns_pool = http_client is None
        self._pool = http_client if http_client is not None else PoolManager()
        self._executor = ThreadPoolExecutor(thread_name_prefix="flink-sql-http")

    def close(self):
        """Close the connection pool, if this client created it."""
        if self._pool and self._owns_pool:
            self._pool.clear()
        self._pool = None
        # Abandoned requests finish on their own
        self._executor.shutdown(wait=False)

    def _await_response(
        self, future: Future, context: ExecutionContext, method: str, path: str
    ):
        """Block until `future` completes or `context` fires, whichever is first."""

        finished = threading.Event()
        future.add_done_callback(lambda _: finished.set())
        context.add_cancel_callback(finished.set)
        try:
            finished.wait(context.remaining())
        finally:
            context.remove_cancel_callback(finished.set)

        if not future.done():
            future.cancel()
            logger.debug("Abandoning in-flight %s request to %s", method, path)
            raise context.error() or DeadlineExceededError(
                "Execution context deadline exceeded"
            )
        return future.result()

    def _make_request(
        self,
        method: str,
        path: str,
        data: Optional[Dict[str, Any]] = None,
        context: Optional[ExecutionContext] = None,
    ) -> Dict[str, Any]:
        """
        Make an HTTP request to the gateway.

        Args:
            method: HTTP method (GET, POST, DELETE)
            path: API path including the version prefix, optionally with a query
            data: Request payload data
            context: Execution context bounding the call

        Returns:
            Dict[str, Any]: Response data parsed from JSON

        Raises:
            ContextCanceledError, DeadlineExceededError: If the context fired
                before or while the request was in flight
            GatewayConnectionError: If no HTTP response was received
            GatewayError: If the gateway answered with a non-2xx status
            InvalidServerResponseError: If the response body is not a JSON object
        """

        context = context or ExecutionContext.background()
        context.check()

        if self._pool is None:
            raise GatewayConnectionError("Gateway HTTP client is closed", None)

        body = json.dumps(data).encode("utf-8") if data is not None else None
        timeout = context.timeout_for(self.request_timeout)

        logger.debug("Making %s request to %s", method, path)

        future = self._executor.submit(
            self._pool.request,
            method.upper(),
            self.base_url + path,
            body=body,
            headers=self.headers,
            timeout=Timeout(total=timeout) if timeout is not None else None,
            retries=self.retries,
        )
        try:
            response = self._await_response(future, context, method, path)
        except HTTPError as e:
            err = context.error()
            if err is not None:
                raise err from e
            logger.error("Gateway HTTP request failed with exception: %s", e)
            raise GatewayConnectionError(
                "Error during request to gateway. {}".format(e),
                {
                    "method": method,
                    "path": path,
                    "original-exception": str(e),
                },
            ) from e

        # A result that arrives after the caller gave up is discarded
        context.check()

        response_body = response.data.decode("utf-8", errors="replace")

        if not 200 <= response.status < 300:
            logger.error(
                "Gateway HTTP request %s %s failed with status %s",
                method,
                path,
                response.status,
            )
            raise GatewayError(
                "Gateway request failed with status {}: {}".format(
                    response.status, response_body
                ),
                {
                    "method": method,
                    "path": path,
                    "http-code": response.status,
                },
                status=response.status,
                body=response_body,
            )

        if not response_body.strip():
            return {}

        try:
            parsed = json.loads(response_body)
        except ValueError as e:
            raise InvalidServerResponseError(
                "Gateway returned a non-JSON body for {} {}".format(method, path),
                {"body": response_body},
            ) from e
        if not isinstance(parsed, dict):
            raise InvalidServerResponseError(
                "Gateway returned an unexpected body for {} {}".format(method, path),
                {"body": response_body},
            )
        return parsed
