from __future__ import annotations

from typing import Any, Iterator, List, Optional, Tuple, TYPE_CHECKING

import logging

if TYPE_CHECKING:
    from flink.sql.client import Connection
from flink.sql.backend.gateway.backend import GatewayClient
from flink.sql.backend.gateway.pager import ResultPager
from flink.sql.backend.gateway.utils.conversion import decode_row
from flink.sql.backend.types import ColumnMeta, Operation, describe_columns
from flink.sql.context import ExecutionContext
from flink.sql.exc import (
    CursorClosedError,
    DecodeError,
    Error,
    InvalidServerResponseError,
)
from flink.sql.types import Row

logger = logging.getLogger(__name__)


class ResultSet:
    """
    Forward-only, lazily decoded rows of one finished operation.

    Only the current page is buffered. Rows are decoded one at a time when
    they are handed out, and the next page is fetched only once the buffered
    one is used up.
    """

    def __init__(
        self,
        client: GatewayClient,
        operation: Operation,
        pager: ResultPager,
        arraysize: int = 10000,
        connection: Optional[Connection] = None,
    ):
        """
        Parameters:
            :param client: The gateway client used to close the operation
            :param operation: The finished operation whose results are read
            :param pager: Pager over the operation's result pages
            :param arraysize: The default number of rows returned by fetchmany
            :param connection: The parent connection, if any
        """

        self.client = client
        self.operation = operation
        self.pager = pager
        self.arraysize = arraysize
        self.connection = connection

        self._columns: Optional[List[ColumnMeta]] = None
        self._field_names: List[str] = []
        self._buffer: List[List[Any]] = []
        self._buffer_kinds: List[str] = []
        self._buffer_index = 0
        self._next_row_index = 0
        self._error: Optional[DecodeError] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def rownumber(self) -> int:
        return self._next_row_index

    def _check_not_closed(self) -> None:
        if self._closed:
            raise CursorClosedError(
                "Attempting operation on closed result set",
                {"operation-id": self.operation.handle},
            )

    def _load_page(self, context: Optional[ExecutionContext]) -> bool:
        """Replace the buffer with the next page. False when no page is left."""

        page = self.pager.next_page(context)
        if page is None:
            return False

        if not self._columns:
            self._columns = page.columns
            self._field_names = [column.name for column in page.columns]
        elif page.columns and page.columns != self._columns:
            raise InvalidServerResponseError(
                "Column list changed between result pages",
                {"operation-id": self.operation.handle},
            )

        self._buffer = page.rows
        self._buffer_kinds = page.row_kinds
        self._buffer_index = 0
        return True

    def columns(self, context: Optional[ExecutionContext] = None) -> List[ColumnMeta]:
        """Column metadata of the result set, fetching the first page if needed."""

        self._check_not_closed()
        if self._columns is None and not self.pager.exhausted:
            self._load_page(context)
        return list(self._columns or [])

    @property
    def description(self) -> Optional[List[Tuple]]:
        columns = self.columns()
        return describe_columns(columns) if columns else None

    def advance(self, context: Optional[ExecutionContext] = None) -> Optional[Row]:
        """
        Return the next decoded row, or None when the result set is exhausted.

        Blocks to fetch the next page when the buffered one is used up.

        Raises:
            CursorClosedError: If the result set was closed
            DecodeError: If a row cannot be decoded. Once raised, every later
                call raises it again.
        """

        self._check_not_closed()
        if self._error is not None:
            raise self._error

        while self._buffer_index >= len(self._buffer):
            if not self._load_page(context):
                self._buffer = []
                self._buffer_index = 0
                return None

        index = self._buffer_index
        self._buffer_index += 1
        try:
            values = decode_row(self._buffer[index], self._columns or [])
        except DecodeError as e:
            self._error = e
            raise
        kind = self._buffer_kinds[index] if index < len(self._buffer_kinds) else "INSERT"
        self._next_row_index += 1
        return Row.create(self._field_names, values, kind)

    def fetchone(self, context: Optional[ExecutionContext] = None) -> Optional[Row]:
        """
        Fetch the next row of a query result set, returning a single sequence,
        or None when no more data is available.
        """
        return self.advance(context)

    def fetchmany(
        self, size: Optional[int] = None, context: Optional[ExecutionContext] = None
    ) -> List[Row]:
        """
        Fetch the next set of rows of a query result, returning a list of rows.

        Raises:
            ValueError: If size is negative
        """

        size = self.arraysize if size is None else size
        if size < 0:
            raise ValueError(f"size argument for fetchmany is {size} but must be >= 0")

        rows = []
        while len(rows) < size:
            row = self.advance(context)
            if row is None:
                break
            rows.append(row)
        return rows

    def fetchall(self, context: Optional[ExecutionContext] = None) -> List[Row]:
        """Fetch all remaining rows of a query result, returning them as a list of rows."""
        return list(self._iter_rows(context))

    def _iter_rows(self, context: Optional[ExecutionContext]) -> Iterator[Row]:
        while True:
            row = self.advance(context)
            if row is None:
                break
            yield row

    def __iter__(self) -> Iterator[Row]:
        return self._iter_rows(None)

    def close(self) -> None:
        """
        Release the page buffer and close the operation on the gateway.

        Closing twice is a no-op. Failure to close the server side operation is
        logged and otherwise ignored.
        """

        if self._closed:
            return
        self._closed = True
        self._buffer = []
        self._buffer_index = 0
        try:
            self.client.close_operation(
                self.operation.session_handle, self.operation.handle
            )
        except Error as e:
            logger.warning(
                "Attempt to close operation %s failed: %s", self.operation.handle, e
            )
