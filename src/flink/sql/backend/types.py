from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
import logging

from flink.sql.exc import InvalidServerResponseError

logger = logging.getLogger(__name__)


class OperationState(Enum):
    """
    Enum representing the lifecycle state of a gateway operation.

    Attributes:
        PENDING: Operation is accepted but not yet running
        RUNNING: Operation is executing
        FINISHED: Operation completed successfully, results can be fetched
        ERROR: Operation failed server side
        CANCELED: Operation was cancelled or closed before completion
    """

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    FINISHED = "FINISHED"
    ERROR = "ERROR"
    CANCELED = "CANCELED"

    @classmethod
    def from_gateway_state(cls, state: str) -> "OperationState":
        """
        Map a gateway status string to an OperationState.

        State Mappings:
            - INITIALIZED, PENDING -> PENDING
            - RUNNING -> RUNNING
            - FINISHED -> FINISHED
            - ERROR, TIMEOUT -> ERROR
            - CANCELED, CLOSED -> CANCELED

        Raises:
            InvalidServerResponseError: If the state is not recognised
        """
        state_mapping = {
            "INITIALIZED": cls.PENDING,
            "PENDING": cls.PENDING,
            "RUNNING": cls.RUNNING,
            "FINISHED": cls.FINISHED,
            "ERROR": cls.ERROR,
            "TIMEOUT": cls.ERROR,
            "CANCELED": cls.CANCELED,
            "CANCELLED": cls.CANCELED,
            "CLOSED": cls.CANCELED,
        }
        normalized = (state or "").strip().upper()
        if normalized not in state_mapping:
            raise InvalidServerResponseError(
                "Unknown operation status: {!r}".format(state),
                {"status": state},
            )
        return state_mapping[normalized]

    @property
    def is_terminal(self) -> bool:
        return self in (
            OperationState.FINISHED,
            OperationState.ERROR,
            OperationState.CANCELED,
        )

    @property
    def rank(self) -> int:
        # Terminal states share a rank: none of them may follow another.
        return {
            OperationState.PENDING: 0,
            OperationState.RUNNING: 1,
        }.get(self, 2)


@dataclass
class Operation:
    """A submitted statement and its last observed state."""

    handle: str
    session_handle: str
    state: OperationState = OperationState.PENDING
    error_message: Optional[str] = None

    def advance_to(self, other: "Operation") -> "Operation":
        """
        Return the newer of the two observations.

        A status read that would move the lifecycle backwards (e.g. RUNNING
        after FINISHED) is ignored.
        """
        if other.state.rank < self.state.rank:
            logger.warning(
                "Ignoring status regression of operation %s from %s to %s",
                self.handle,
                self.state.value,
                other.state.value,
            )
            return self
        return other


@dataclass
class LogicalType:
    """A column's declared gateway type, normalised to its type root."""

    type_root: str
    nullable: bool = True
    descriptor: Any = None

    def __str__(self) -> str:
        return self.type_root


@dataclass
class ColumnMeta:
    name: str
    logical_type: LogicalType
    comment: Optional[str] = None

    @property
    def remote_type(self) -> str:
        return self.logical_type.type_root

    @property
    def nullable(self) -> bool:
        return self.logical_type.nullable


class ResultType(Enum):
    PAYLOAD = "PAYLOAD"
    EOS = "EOS"
    NOT_READY = "NOT_READY"


@dataclass(frozen=True)
class ResultPage:
    """
    One page of a result set as returned by a single fetch.

    Attributes:
        columns: Column metadata of the result set
        rows: Raw wire rows, each a list with one cell per column
        next_token: Continuation token for the next page, None on the last page
        result_type: PAYLOAD, EOS or NOT_READY
        result_kind: SUCCESS or SUCCESS_WITH_CONTENT, if reported
        job_id: The Flink job backing the operation, if any
        row_kinds: Changelog kind of each row (INSERT, UPDATE_BEFORE, ...)
    """

    columns: List[ColumnMeta]
    rows: List[List[Any]]
    next_token: Optional[str] = None
    result_type: ResultType = ResultType.PAYLOAD
    result_kind: Optional[str] = None
    job_id: Optional[str] = None
    row_kinds: List[str] = field(default_factory=list)

    @property
    def ready(self) -> bool:
        return self.result_type != ResultType.NOT_READY

    @property
    def has_next(self) -> bool:
        return self.next_token is not None


def describe_columns(columns: List[ColumnMeta]) -> List[tuple]:
    """
    Column description in the format defined by PEP 249:
    https://peps.python.org/pep-0249/#description
    """
    description = []
    for column in columns:
        descriptor = column.logical_type.descriptor
        precision = scale = None
        if isinstance(descriptor, dict):
            precision = descriptor.get("precision")
            scale = descriptor.get("scale")
        description.append(
            (
                column.name,  # name
                column.remote_type.lower(),  # type_code
                None,  # display_size
                None,  # internal_size
                precision,  # precision
                scale,  # scale
                column.nullable,  # null_ok
            )
        )
    return description
