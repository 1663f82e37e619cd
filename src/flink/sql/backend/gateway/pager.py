import logging
from typing import Iterator, Optional, Set

from flink.sql.backend.types import Operation, OperationState, ResultPage
from flink.sql.backend.gateway.backend import GatewayClient
from flink.sql.backend.gateway.utils.constants import (
    DEFAULT_CANCEL_TIMEOUT_SECONDS,
    DEFAULT_POLL_INTERVAL_MIN_SECONDS,
)
from flink.sql.context import ExecutionContext
from flink.sql.exc import (
    ContextCanceledError,
    DeadlineExceededError,
    Error,
    InvalidServerResponseError,
    ProgrammingError,
)

logger = logging.getLogger(__name__)


class ResultPager:
    """
    Walks the continuation token chain of a finished operation.

    The first page is requested without a token, every following page with the
    token returned by its predecessor, until a page comes back without one.
    Pages the gateway reports as NOT_READY are re-requested with the same
    token after `not_ready_interval` seconds. Any failure is sticky: the pager
    never resumes from a stale token. When the context fires mid-fetch the
    operation is also cancelled on the gateway, best-effort.
    """

    def __init__(
        self,
        client: GatewayClient,
        operation: Operation,
        not_ready_interval: float = DEFAULT_POLL_INTERVAL_MIN_SECONDS,
        cancel_timeout: float = DEFAULT_CANCEL_TIMEOUT_SECONDS,
    ):
        if operation.state != OperationState.FINISHED:
            raise ProgrammingError(
                "Cannot page results of operation {} in state {}".format(
                    operation.handle, operation.state.value
                )
            )
        self.client = client
        self.operation = operation
        self.not_ready_interval = not_ready_interval
        self.cancel_timeout = cancel_timeout

        self._next_token: Optional[str] = None
        self._started = False
        self._exhausted = False
        self._error: Optional[Error] = None
        self._seen_tokens: Set[str] = set()
        self.pages_fetched = 0

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    @property
    def has_next(self) -> bool:
        return self._error is None and not self._exhausted

    def next_page(self, context: Optional[ExecutionContext] = None) -> Optional[ResultPage]:
        """
        Fetch the next page, or return None once the last page was delivered.

        Raises:
            Error: The error that failed this pager, on this and every later call
        """

        if self._error is not None:
            raise self._error
        if self._exhausted:
            return None

        context = context or ExecutionContext.background()
        token = self._next_token if self._started else None

        try:
            page = self._fetch_ready_page(token, context)
        except Error as e:
            logger.debug(
                "Fetching results of operation %s failed: %s", self.operation.handle, e
            )
            self._error = e
            if isinstance(e, (ContextCanceledError, DeadlineExceededError)):
                self._cancel_quietly()
            raise

        self._started = True
        self.pages_fetched += 1
        if token is not None:
            self._seen_tokens.add(token)

        if page.next_token is None:
            self._exhausted = True
        elif page.next_token in self._seen_tokens or page.next_token == token:
            self._error = InvalidServerResponseError(
                "Gateway repeated result token {!r}".format(page.next_token),
                {"operation-id": self.operation.handle},
            )
        self._next_token = page.next_token
        return page

    def _fetch_ready_page(
        self, token: Optional[str], context: ExecutionContext
    ) -> ResultPage:
        while True:
            context.check()
            page = self.client.fetch_result_page(
                self.operation.session_handle,
                self.operation.handle,
                token=token,
                context=context,
            )
            if page.ready:
                return page
            logger.debug(
                "Results of operation %s not ready, retrying token %s",
                self.operation.handle,
                token,
            )
            # NOT_READY points back at the page that is still being produced
            if page.next_token is not None:
                token = page.next_token
            if not context.wait(self.not_ready_interval):
                context.check()

    def _cancel_quietly(self) -> None:
        logger.debug("Cancelling operation %s", self.operation.handle)
        try:
            self.client.cancel_operation(
                self.operation.session_handle,
                self.operation.handle,
                context=ExecutionContext.with_timeout(self.cancel_timeout),
            )
        except Error as e:
            logger.warning(
                "Attempt to cancel operation %s failed: %s", self.operation.handle, e
            )

    def __iter__(self) -> Iterator[ResultPage]:
        while True:
            page = self.next_page()
            if page is None:
                return
            yield page
