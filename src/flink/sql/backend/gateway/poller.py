import logging
from typing import Optional

from flink.sql.backend.types import Operation, OperationState
from flink.sql.backend.gateway.backend import GatewayClient
from flink.sql.backend.gateway.utils.constants import (
    DEFAULT_CANCEL_TIMEOUT_SECONDS,
    DEFAULT_POLL_BACKOFF_FACTOR,
    DEFAULT_POLL_INTERVAL_MAX_SECONDS,
    DEFAULT_POLL_INTERVAL_MIN_SECONDS,
)
from flink.sql.context import ExecutionContext
from flink.sql.exc import (
    ConfigError,
    ContextCanceledError,
    DeadlineExceededError,
    Error,
    GatewayError,
    OperationCanceledError,
    OperationFailedError,
)

logger = logging.getLogger(__name__)


class OperationPoller:
    """
    Drives a submitted operation to a terminal state by polling its status.

    Polls back off exponentially from `interval_min` by `backoff_factor`, capped
    at `interval_max`. The wait between polls ends early when the context is
    cancelled, in which case the operation is cancelled on the gateway on a
    best-effort basis.
    """

    def __init__(
        self,
        client: GatewayClient,
        interval_min: float = DEFAULT_POLL_INTERVAL_MIN_SECONDS,
        interval_max: float = DEFAULT_POLL_INTERVAL_MAX_SECONDS,
        backoff_factor: float = DEFAULT_POLL_BACKOFF_FACTOR,
        cancel_timeout: float = DEFAULT_CANCEL_TIMEOUT_SECONDS,
    ):
        if interval_min <= 0 or interval_max < interval_min:
            raise ConfigError(
                "Invalid poll intervals: min={}, max={}".format(
                    interval_min, interval_max
                )
            )
        if backoff_factor < 1:
            raise ConfigError(
                "Poll backoff factor must be >= 1, got {}".format(backoff_factor)
            )
        self.client = client
        self.interval_min = interval_min
        self.interval_max = interval_max
        self.backoff_factor = backoff_factor
        self.cancel_timeout = cancel_timeout

    def wait(
        self, operation: Operation, context: Optional[ExecutionContext] = None
    ) -> Operation:
        """
        Block until `operation` reaches a terminal state.

        Returns:
            Operation: The operation in FINISHED state

        Raises:
            OperationFailedError: If the operation ends in ERROR
            OperationCanceledError: If the operation ends in CANCELED
            ContextCanceledError, DeadlineExceededError: If the context fires first
        """

        context = context or ExecutionContext.background()
        current = operation
        interval = self.interval_min

        while not current.state.is_terminal:
            if not context.wait(interval):
                self._cancel_quietly(current)
                context.check()
            try:
                polled = self.client.get_operation_status(
                    current.session_handle, current.handle, context=context
                )
            except (ContextCanceledError, DeadlineExceededError):
                self._cancel_quietly(current)
                raise
            current = current.advance_to(polled)
            logger.debug(
                "Operation %s is %s", current.handle, current.state.value
            )
            interval = min(interval * self.backoff_factor, self.interval_max)

        return self._check_terminal_state(current)

    def _check_terminal_state(self, operation: Operation) -> Operation:
        if operation.state == OperationState.FINISHED:
            return operation

        if operation.state == OperationState.CANCELED:
            raise OperationCanceledError(
                "Operation {} was canceled".format(operation.handle),
                {
                    "operation-id": operation.handle,
                    "session-id": operation.session_handle,
                },
            )

        message = operation.error_message or self._fetch_error_message(operation)
        raise OperationFailedError(
            "Operation failed: {}".format(message),
            {
                "operation-id": operation.handle,
                "session-id": operation.session_handle,
            },
        )

    def _fetch_error_message(self, operation: Operation) -> str:
        # The status endpoint carries no reason; the failed result fetch does.
        try:
            self.client.fetch_result_page(
                operation.session_handle,
                operation.handle,
                context=ExecutionContext.with_timeout(self.cancel_timeout),
            )
        except GatewayError as e:
            return e.error_message or "unknown error"
        except Error as e:
            logger.debug("Could not read failure of operation %s: %s", operation.handle, e)
        return "Operation {} ended in ERROR".format(operation.handle)

    def _cancel_quietly(self, operation: Operation) -> None:
        logger.debug("Cancelling operation %s", operation.handle)
        try:
            self.client.cancel_operation(
                operation.session_handle,
                operation.handle,
                context=ExecutionContext.with_timeout(self.cancel_timeout),
            )
        except Error as e:
            logger.warning(
                "Attempt to cancel operation %s failed: %s", operation.handle, e
            )
