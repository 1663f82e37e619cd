from __future__ import annotations

import logging
import urllib.parse
from typing import Any, Dict, List, Optional, Tuple, Union

from urllib3 import PoolManager, Retry

from flink.sql.backend.types import Operation, OperationState, ResultPage
from flink.sql.backend.gateway.models import (
    OpenSessionRequest,
    ExecuteStatementRequest,
    OpenSessionResponse,
    ExecuteStatementResponse,
    OperationStatusResponse,
    FetchResultsResponse,
)
from flink.sql.backend.gateway.utils.constants import (
    DEFAULT_API_VERSION,
    INITIAL_RESULT_TOKEN,
    SUPPORTED_API_VERSIONS,
    RowFormat,
)
from flink.sql.backend.gateway.utils.http_client import GatewayHttpClient
from flink.sql.context import ExecutionContext
from flink.sql.exc import ConfigError

logger = logging.getLogger(__name__)


class GatewayClient:
    """
    Stateless request layer over the Flink SQL Gateway REST API.

    Each method maps to one gateway endpoint and blocks until the response
    arrives or the execution context fires.
    """

    # Gateway API paths, relative to the version prefix
    INFO_PATH = "/info"
    SESSION_PATH = "/sessions"
    SESSION_PATH_WITH_ID = SESSION_PATH + "/{}"
    HEARTBEAT_PATH = SESSION_PATH_WITH_ID + "/heartbeat"
    STATEMENT_PATH = SESSION_PATH_WITH_ID + "/statements"
    OPERATION_PATH = SESSION_PATH_WITH_ID + "/operations/{}"
    STATUS_PATH = OPERATION_PATH + "/status"
    CANCEL_PATH = OPERATION_PATH + "/cancel"
    CLOSE_OPERATION_PATH = OPERATION_PATH + "/close"
    RESULT_PATH = OPERATION_PATH + "/result/{}"

    def __init__(
        self,
        gateway_url: str,
        http_client: Optional[PoolManager] = None,
        api_version: str = DEFAULT_API_VERSION,
        http_headers: Optional[List[Tuple[str, str]]] = None,
        request_timeout: Optional[float] = None,
        retries: Union[Retry, bool, int] = False,
    ):
        """
        Initialize the gateway client.

        Args:
            gateway_url: Base URL of the gateway
            http_client: urllib3 PoolManager used as transport
            api_version: REST API version prefix (v1, v2 or v3)
            http_headers: Extra HTTP headers sent with every request
            request_timeout: Socket timeout in seconds for every request
            retries: urllib3 retry configuration, no retries by default
        """

        logger.debug(
            "GatewayClient.__init__(gateway_url=%s, api_version=%s)",
            gateway_url,
            api_version,
        )

        if api_version not in SUPPORTED_API_VERSIONS:
            raise ConfigError(
                "Unsupported gateway API version: {!r}".format(api_version),
                {"supported": list(SUPPORTED_API_VERSIONS)},
            )
        self.api_version = api_version

        self._http_client = GatewayHttpClient(
            gateway_url=gateway_url,
            http_client=http_client,
            http_headers=http_headers,
            request_timeout=request_timeout,
            retries=retries,
        )

    @property
    def gateway_url(self) -> str:
        return self._http_client.base_url

    def _path(self, template: str, *args: str) -> str:
        quoted = [urllib.parse.quote(str(arg), safe="") for arg in args]
        return "/" + self.api_version + template.format(*quoted)

    def close(self) -> None:
        self._http_client.close()

    def get_info(self, context: Optional[ExecutionContext] = None) -> Dict[str, Any]:
        """Return the gateway's product name and version."""

        logger.debug("GatewayClient.get_info()")
        return self._http_client._make_request(
            method="GET", path=self._path(self.INFO_PATH), context=context
        )

    def open_session(
        self,
        properties: Optional[Dict[str, str]],
        context: Optional[ExecutionContext] = None,
        session_name: Optional[str] = None,
    ) -> str:
        """
        Opens a new session with the gateway.

        Args:
            properties: Session properties (configuration) for the session
            context: Execution context bounding the call
            session_name: Optional human readable session name

        Returns:
            str: The opaque session handle

        Raises:
            GatewayConnectionError: On transport failure
            GatewayError: If the gateway rejects the request
            InvalidServerResponseError: If no session handle is returned
        """

        logger.debug("GatewayClient.open_session(properties=%s)", properties)

        request = OpenSessionRequest(properties=properties, session_name=session_name)
        response_data = self._http_client._make_request(
            method="POST",
            path=self._path(self.SESSION_PATH),
            data=request.to_dict(),
            context=context,
        )
        return OpenSessionResponse.from_dict(response_data).session_handle

    def close_session(
        self, session_handle: str, context: Optional[ExecutionContext] = None
    ) -> None:
        """Closes a session. Callers treat failures as advisory."""

        logger.debug("GatewayClient.close_session(session_handle=%s)", session_handle)

        self._http_client._make_request(
            method="DELETE",
            path=self._path(self.SESSION_PATH_WITH_ID, session_handle),
            context=context,
        )

    def heartbeat(
        self, session_handle: str, context: Optional[ExecutionContext] = None
    ) -> None:
        """Keep an idle session from expiring on the gateway."""

        logger.debug("GatewayClient.heartbeat(session_handle=%s)", session_handle)

        self._http_client._make_request(
            method="POST",
            path=self._path(self.HEARTBEAT_PATH, session_handle),
            context=context,
        )

    def submit_statement(
        self,
        session_handle: str,
        statement: str,
        context: Optional[ExecutionContext] = None,
        execution_config: Optional[Dict[str, str]] = None,
    ) -> Operation:
        """
        Submit a SQL statement for asynchronous execution.

        Args:
            session_handle: Session to run the statement in
            statement: SQL text, forwarded verbatim
            context: Execution context bounding the call
            execution_config: Per-statement configuration overrides

        Returns:
            Operation: The new operation in PENDING state
        """

        logger.debug(
            "GatewayClient.submit_statement(session_handle=%s, statement=%s)",
            session_handle,
            statement,
        )

        request = ExecuteStatementRequest(
            statement=statement, execution_config=execution_config
        )
        response_data = self._http_client._make_request(
            method="POST",
            path=self._path(self.STATEMENT_PATH, session_handle),
            data=request.to_dict(),
            context=context,
        )
        response = ExecuteStatementResponse.from_dict(response_data)
        return Operation(
            handle=response.operation_handle,
            session_handle=session_handle,
            state=OperationState.PENDING,
        )

    def get_operation_status(
        self,
        session_handle: str,
        operation_handle: str,
        context: Optional[ExecutionContext] = None,
    ) -> Operation:
        """Read the current status of an operation."""

        logger.debug(
            "GatewayClient.get_operation_status(session_handle=%s, operation_handle=%s)",
            session_handle,
            operation_handle,
        )

        response_data = self._http_client._make_request(
            method="GET",
            path=self._path(self.STATUS_PATH, session_handle, operation_handle),
            context=context,
        )
        response = OperationStatusResponse.from_dict(response_data)
        return Operation(
            handle=operation_handle,
            session_handle=session_handle,
            state=response.state,
            error_message=response.error_message,
        )

    def _result_path(
        self, session_handle: str, operation_handle: str, token: Optional[str]
    ) -> str:
        # The gateway hands out continuation tokens as full `nextResultUri` paths
        if token is not None and token.startswith("/"):
            return token

        path = self._path(
            self.RESULT_PATH,
            session_handle,
            operation_handle,
            INITIAL_RESULT_TOKEN if token is None else token,
        )
        if self.api_version != "v1":
            path += "?" + urllib.parse.urlencode({"rowFormat": RowFormat.JSON.value})
        return path

    def fetch_result_page(
        self,
        session_handle: str,
        operation_handle: str,
        token: Optional[str] = None,
        context: Optional[ExecutionContext] = None,
    ) -> ResultPage:
        """
        Fetch one page of an operation's results.

        Args:
            session_handle: Session owning the operation
            operation_handle: Operation whose results are fetched
            token: Continuation token of the page, None for the first page
            context: Execution context bounding the call

        Returns:
            ResultPage: The page, with the token of the following page if any
        """

        logger.debug(
            "GatewayClient.fetch_result_page(operation_handle=%s, token=%s)",
            operation_handle,
            token,
        )

        response_data = self._http_client._make_request(
            method="GET",
            path=self._result_path(session_handle, operation_handle, token),
            context=context,
        )
        return FetchResultsResponse.from_dict(response_data)

    def cancel_operation(
        self,
        session_handle: str,
        operation_handle: str,
        context: Optional[ExecutionContext] = None,
    ) -> None:
        """Ask the gateway to cancel a running operation."""

        logger.debug(
            "GatewayClient.cancel_operation(session_handle=%s, operation_handle=%s)",
            session_handle,
            operation_handle,
        )

        self._http_client._make_request(
            method="POST",
            path=self._path(self.CANCEL_PATH, session_handle, operation_handle),
            context=context,
        )

    def close_operation(
        self,
        session_handle: str,
        operation_handle: str,
        context: Optional[ExecutionContext] = None,
    ) -> None:
        """Release the server side resources held by an operation."""

        logger.debug(
            "GatewayClient.close_operation(session_handle=%s, operation_handle=%s)",
            session_handle,
            operation_handle,
        )

        self._http_client._make_request(
            method="DELETE",
            path=self._path(self.CLOSE_OPERATION_PATH, session_handle, operation_handle),
            context=context,
        )
