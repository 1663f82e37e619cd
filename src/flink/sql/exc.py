import json
import logging

logger = logging.getLogger(__name__)

### PEP-249 Mandated ###
# https://peps.python.org/pep-0249/#exceptions
class Error(Exception):
    """Base class for DB-API2.0 exceptions.
    `message`: An optional user-friendly error message. It should be short, actionable and stable
    `context`: Optional extra context about the error. MUST be JSON serializable
    """

    def __init__(self, message=None, context=None, *args, **kwargs):
        super().__init__(message, *args, **kwargs)
        self.message = message
        self.context = context or {}

    def __str__(self):
        return self.message

    def message_with_context(self):
        return self.message + ": " + json.dumps(self.context, default=str)


class Warning(Exception):
    pass


class InterfaceError(Error):
    pass


class DatabaseError(Error):
    pass


class InternalError(DatabaseError):
    pass


class OperationalError(DatabaseError):
    pass


class ProgrammingError(DatabaseError):
    pass


class IntegrityError(DatabaseError):
    pass


class DataError(DatabaseError):
    pass


class NotSupportedError(DatabaseError):
    pass


### Custom error classes ###
class ConfigError(InterfaceError):
    """Thrown for a malformed connection string, unknown connection argument or
    invalid configuration value."""

    pass


class CursorClosedError(InterfaceError):
    """Thrown when a result set or cursor is used after it was closed."""

    pass


class InvalidServerResponseError(OperationalError):
    """Thrown if the gateway returns a body that cannot be interpreted, e.g. a
    missing handle or an unknown operation status"""

    pass


class RequestError(OperationalError):
    """Base class for failures of a single request to the gateway.
    Its context will have the following keys (where available):
    "method": The HTTP method of the failed request
    "path": The request path
    "http-code": HTTP response code
    "original-exception": The Python level original exception
    """

    pass


class GatewayConnectionError(RequestError):
    """Thrown for transport level failures (DNS, connect, socket timeout) where
    no HTTP response was received."""

    pass


class GatewayError(RequestError):
    """Thrown if the gateway answered with a non-2xx status code.

    `status` and `body` hold the HTTP status and the verbatim response body.
    """

    def __init__(self, message=None, context=None, status=None, body=None):
        super().__init__(message, context)
        self.status = status
        self.body = body

    @property
    def error_message(self):
        """First message of the gateway's `{"errors": [...]}` body, or the raw body."""
        try:
            errors = json.loads(self.body).get("errors")
        except (TypeError, ValueError, AttributeError):
            return self.body
        if errors:
            return str(errors[0])
        return self.body


class ServerOperationError(DatabaseError):
    """Thrown if the operation moved to an error state, if for example there was a syntax
    error.
    Its context will have the following keys:
    "operation-id": The gateway operation handle
    "session-id": The gateway session handle
    """

    pass


class OperationFailedError(ServerOperationError):
    """Thrown when a statement was executed by the gateway but ended in ERROR."""

    pass


class OperationCanceledError(OperationalError):
    """Thrown when the gateway reports the operation as CANCELED."""

    pass


class ContextCanceledError(OperationalError):
    """Thrown when the caller's execution context was cancelled."""

    pass


class DeadlineExceededError(OperationalError):
    """Thrown when the caller's execution context ran past its deadline."""

    pass


class DecodeError(DataError):
    """Thrown if a result cell cannot be mapped to a Python value.

    `column`, `remote_type` and `cause` describe the failing cell.
    """

    def __init__(self, column, remote_type, cause):
        message = "Cannot decode column {!r} of type {}: {}".format(
            column, remote_type, cause
        )
        super().__init__(
            message,
            {"column": column, "remote-type": remote_type, "cause": str(cause)},
        )
        self.column = column
        self.remote_type = remote_type
        self.cause = cause

    def __reduce__(self):
        return (self.__class__, (self.column, self.remote_type, self.cause))
