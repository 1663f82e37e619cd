import logging
from typing import Any, Dict, List, Optional, Tuple

from flink.sql.backend.gateway.backend import GatewayClient
from flink.sql.backend.gateway.pager import ResultPager
from flink.sql.backend.gateway.poller import OperationPoller
from flink.sql.backend.types import Operation
from flink.sql.config import ConnectionConfig
from flink.sql.context import ExecutionContext
from flink.sql.exc import (
    InterfaceError,
    NotSupportedError,
    ProgrammingError,
)
from flink.sql.result_set import ResultSet
from flink.sql.session import Session
from flink.sql.types import Row

logger = logging.getLogger(__name__)


class Connector:
    def __init__(self, config: Optional[ConnectionConfig] = None, **kwargs: Any) -> None:
        """
        Factory for connections that share one gateway session.

        The session is opened by the first connect() and closed by close(),
        which must only be called once every connection is done with it.

        Parameters:
            :param config: A ready ConnectionConfig. When omitted the keyword
                arguments are used to build one, see ConnectionConfig for the
                accepted names, e.g.
                ```
                 connector = Connector(
                    gateway_url="http://localhost:8083",
                    properties={"execution.runtime-mode": "batch"},
                 )
                ```
        """

        if config is None:
            config = ConnectionConfig.from_kwargs(**kwargs)
        elif kwargs:
            raise InterfaceError("Pass either a config or keyword arguments, not both")
        self.config = config

        properties = config.effective_properties()
        self.client = GatewayClient(
            gateway_url=config.base_url,
            http_client=config.http_client,
            api_version=config.api_version,
            http_headers=config.http_headers,
            request_timeout=config.request_timeout,
            retries=config.retries,
        )
        self.session = Session(
            self.client, properties=properties, session_name=config.session_name
        )
        self.poller = OperationPoller(
            self.client,
            interval_min=config.poll_interval_min,
            interval_max=config.poll_interval_max,
            backoff_factor=config.poll_backoff_factor,
            cancel_timeout=config.cancel_timeout,
        )
        self._closed = False

    @classmethod
    def from_dsn(cls, dsn: str, **kwargs: Any) -> "Connector":
        """Create a connector from `http://host:port[?key=value&...]`."""
        return cls(ConnectionConfig.from_dsn(dsn, **kwargs))

    def __enter__(self) -> "Connector":
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def connect(self, context: Optional[ExecutionContext] = None) -> "Connection":
        """Return a new Connection bound to this connector's client and session."""
        if self._closed:
            raise InterfaceError("Cannot connect using a closed connector")
        self.session.open(context)
        return Connection(self)

    def server_info(self, context: Optional[ExecutionContext] = None) -> Dict[str, Any]:
        return self.client.get_info(context)

    def close(self) -> None:
        """Close the shared gateway session and release the HTTP pool."""
        if self._closed:
            return
        self._closed = True
        self.session.close()
        self.client.close()


class Connection:
    def __init__(self, connector: Connector, arraysize: Optional[int] = None) -> None:
        """
        A connection on the connector's shared session.

        Closing a connection closes its cursors; the session itself belongs to
        the connector, unless the connection was created by `flink.sql.connect`
        in which case closing the connection also closes its connector.
        """

        self.connector = connector
        self.session = connector.session
        self.arraysize = arraysize or connector.config.arraysize
        self.open = True
        self._owns_connector = False
        self._cursors: List["Cursor"] = []

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def get_session_id(self) -> str:
        """Get the gateway session handle"""
        return self.session.handle

    def ping(self, context: Optional[ExecutionContext] = None) -> None:
        """Send a session heartbeat so the gateway keeps the session alive."""
        self._check_open()
        self.session.heartbeat(context)

    def _check_open(self) -> None:
        if not self.open:
            raise InterfaceError("Attempting operation on closed connection")

    def cursor(self, arraysize: Optional[int] = None) -> "Cursor":
        """
        Return a new Cursor object using the connection.

        Will throw an Error if the connection has been closed.
        """
        if not self.open:
            raise InterfaceError("Cannot create cursor from closed connection")

        cursor = Cursor(self, arraysize=arraysize or self.arraysize)
        self._cursors.append(cursor)
        return cursor

    def close(self) -> None:
        """Close the connection and mark all associated cursors as closed."""
        if not self.open:
            return
        for cursor in self._cursors:
            cursor.close()
        self._cursors = []
        self.open = False
        if self._owns_connector:
            self.connector.close()

    def commit(self) -> None:
        """No-op: the gateway does not expose transactions."""
        pass

    def rollback(self) -> None:
        raise NotSupportedError("Transactions are not supported")


class Cursor:
    def __init__(self, connection: Connection, arraysize: int = 10000) -> None:
        """
        These objects represent a database cursor, which is used to manage the context of a fetch
        operation.

        Cursors are not isolated, i.e., any changes done to the database by a cursor are immediately
        visible by other cursors or connections on the same session.
        """

        self.connection: Connection = connection
        self.connector: Connector = connection.connector

        self.rowcount: int = -1  # Return -1 as this is not supported
        self.arraysize: int = arraysize
        self.active_result_set: Optional[ResultSet] = None
        self.active_operation: Optional[Operation] = None
        # Note that Cursor closed => active result set closed, but not vice versa
        self.open: bool = True
        self.lastrowid = None
        self._executing_context: Optional[ExecutionContext] = None
        self._fetch_context: Optional[ExecutionContext] = None

    def __enter__(self) -> "Cursor":
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def __iter__(self):
        result_set = self._check_active_result_set()
        while True:
            row = result_set.fetchone(self._fetch_context)
            if row is None:
                break
            yield row

    def _close_and_clear_active_result_set(self):
        try:
            if self.active_result_set:
                self.active_result_set.close()
        finally:
            self.active_result_set = None

    def _check_not_closed(self):
        if not self.open:
            raise InterfaceError("Attempting operation on closed cursor")

    def _check_active_result_set(self) -> ResultSet:
        self._check_not_closed()
        if self.active_result_set is None:
            raise ProgrammingError("There is no active result set")
        return self.active_result_set

    def execute(
        self,
        operation: str,
        parameters: Optional[Any] = None,
        context: Optional[ExecutionContext] = None,
    ) -> "Cursor":
        """
        Submit a statement and wait for it to finish.

        The statement is forwarded verbatim; bind parameters are not supported.
        Blocks until the gateway reports the operation as finished, then makes
        its rows available through the fetch methods. `context` bounds the
        submission and the wait; cancel() aborts it from another thread.

        :returns self
        """

        logger.debug("Cursor.execute(operation=%s)", operation)

        if parameters:
            raise NotSupportedError("Bind parameters are not supported")

        self._check_not_closed()
        self.connection._check_open()
        self._close_and_clear_active_result_set()
        self.active_operation = None
        self._fetch_context = None

        context = context or ExecutionContext.background()
        self._executing_context = context
        try:
            submitted = self.connector.client.submit_statement(
                self.connection.session.handle, operation, context=context
            )
            self.active_operation = submitted
            finished = self.connector.poller.wait(submitted, context)
            self.active_operation = finished
        finally:
            self._executing_context = None

        pager = ResultPager(
            self.connector.client,
            finished,
            not_ready_interval=self.connector.config.poll_interval_min,
            cancel_timeout=self.connector.config.cancel_timeout,
        )
        self.active_result_set = ResultSet(
            self.connector.client,
            finished,
            pager,
            arraysize=self.arraysize,
            connection=self.connection,
        )
        self._fetch_context = ExecutionContext.background()
        return self

    def executemany(self, operation, seq_of_parameters):
        raise NotSupportedError("Bind parameters are not supported")

    def fetchone(self) -> Optional[Row]:
        """
        Fetch the next row of a query result set, returning a single sequence, or ``None`` when
        no more data is available.

        An flink.sql.Error (or subclass) exception is raised if the previous call to
        execute did not produce any result set or no call was issued yet.
        """
        return self._check_active_result_set().fetchone(self._fetch_context)

    def fetchmany(self, size: Optional[int] = None) -> List[Row]:
        """
        Fetch the next set of rows of a query result, returning a sequence of sequences (e.g. a
        list of tuples).

        An empty sequence is returned when no more rows are available. When size is not
        given, the cursor's arraysize determines the number of rows to be fetched.
        """
        return self._check_active_result_set().fetchmany(
            self.arraysize if size is None else size, self._fetch_context
        )

    def fetchall(self) -> List[Row]:
        """
        Fetch all (remaining) rows of a query result, returning them as a sequence of sequences.
        """
        return self._check_active_result_set().fetchall(self._fetch_context)

    def cancel(self) -> None:
        """
        Cancel a running command or a fetch blocked on the next result page.

        This method can be called from another thread. The waiting execute()
        or fetch call raises ContextCanceledError and the operation is
        cancelled on the gateway. Rows already buffered stay readable.
        """
        context = self._executing_context or self._fetch_context
        if context is not None:
            context.cancel()
        else:
            logger.warning(
                "Attempting to cancel a command, but there is no "
                "currently executing command"
            )

    def close(self) -> None:
        """Close cursor"""
        self.open = False
        self.active_operation = None
        if self.active_result_set:
            self._close_and_clear_active_result_set()

    @property
    def query_id(self) -> Optional[str]:
        """
        The gateway operation handle of the last executed statement.

        This attribute will be ``None`` if the cursor has not had an operation
        invoked via the execute method yet, or if cursor was closed.
        """
        if self.active_operation is not None:
            return self.active_operation.handle
        return None

    @property
    def description(self) -> Optional[List[Tuple]]:
        """
        This read-only attribute is a sequence of 7-item sequences.

        Each of these sequences contains information describing one result column:

        - name
        - type_code (the lower-cased gateway type root, e.g. ``integer``)
        - display_size (None in current implementation)
        - internal_size (None in current implementation)
        - precision
        - scale
        - null_ok

        This attribute will be ``None`` for operations that do not return rows or if the cursor has
        not had an operation invoked via the execute method yet.
        """
        if self.active_result_set:
            return self.active_result_set.description
        else:
            return None

    @property
    def rownumber(self):
        """This read-only attribute should provide the current 0-based index of the cursor in the
        result set.
        """
        return self.active_result_set.rownumber if self.active_result_set else 0

    def setinputsizes(self, sizes):
        """Does nothing by default"""
        pass

    def setoutputsize(self, size, column=None):
        """Does nothing by default"""
        pass
