import logging
import threading
from typing import Dict, Optional

from flink.sql.backend.gateway.backend import GatewayClient
from flink.sql.context import ExecutionContext
from flink.sql.exc import Error, InterfaceError

logger = logging.getLogger(__name__)


class Session:
    def __init__(
        self,
        client: GatewayClient,
        properties: Optional[Dict[str, str]] = None,
        session_name: Optional[str] = None,
    ) -> None:
        """
        A gateway session shared by every connection of one connector.

        The session is opened lazily by the first call to open(); concurrent
        first callers are serialised so that exactly one remote session is
        created. The handle never changes afterwards until close().
        """

        self.client = client
        self.properties: Dict[str, str] = dict(properties or {})
        self.session_name = session_name

        self._lock = threading.Lock()
        self._handle: Optional[str] = None
        self._closed = False

    @property
    def is_open(self) -> bool:
        return self._handle is not None and not self._closed

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def handle(self) -> str:
        """The session handle. Raises InterfaceError if not open."""
        handle = self._handle
        if handle is None or self._closed:
            raise InterfaceError("Session is not open")
        return handle

    def open(self, context: Optional[ExecutionContext] = None) -> str:
        """Open the remote session if needed and return its handle."""

        handle = self._handle
        if handle is not None and not self._closed:
            return handle

        with self._lock:
            if self._closed:
                raise InterfaceError("Cannot open a session that has been closed")
            if self._handle is None:
                # Shared between all connections so they see the same catalogs, tables, etc.
                self._handle = self.client.open_session(
                    self.properties, context=context, session_name=self.session_name
                )
                logger.info("Successfully opened session %s", self._handle)
            return self._handle

    def heartbeat(self, context: Optional[ExecutionContext] = None) -> None:
        self.client.heartbeat(self.handle, context=context)

    def close(self) -> None:
        """Close the underlying session. Failures are logged, never raised."""

        with self._lock:
            if self._closed:
                logger.debug("Session appears to have been closed already")
                return
            self._closed = True
            handle = self._handle

        if handle is None:
            return

        logger.info("Closing session %s", handle)
        try:
            self.client.close_session(handle)
        except Error as e:
            logger.warning(
                "Attempt to close session raised an exception at the gateway: %s", e
            )
