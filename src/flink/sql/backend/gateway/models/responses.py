"""
Response models for the Flink SQL Gateway backend.

These models define the structures used in gateway API responses.
"""

from typing import Dict, Any, List, Optional
from dataclasses import dataclass

from flink.sql.backend.types import OperationState, ResultPage, ResultType
from flink.sql.backend.gateway.utils.normalize import parse_column
from flink.sql.exc import InvalidServerResponseError


def _require(data: Dict[str, Any], key: str, what: str) -> str:
    value = data.get(key)
    if not value:
        raise InvalidServerResponseError(
            "Failed to {}: no {} returned".format(what, key),
            {"response": data},
        )
    return value


def _parse_rows(raw_rows: List[Any]):
    """Unwrap the gateway's `{"kind": ..., "fields": [...]}` row envelopes."""
    rows = []
    kinds = []
    for raw in raw_rows:
        if isinstance(raw, dict):
            if "fields" not in raw:
                raise InvalidServerResponseError(
                    "Row without fields: {!r}".format(raw)
                )
            rows.append(list(raw["fields"]))
            kinds.append(raw.get("kind", "INSERT"))
        elif isinstance(raw, list):
            rows.append(raw)
            kinds.append("INSERT")
        else:
            raise InvalidServerResponseError("Malformed row: {!r}".format(raw))
    return rows, kinds


@dataclass
class OpenSessionResponse:
    """Representation of the response from opening a session."""

    session_handle: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OpenSessionResponse":
        return cls(session_handle=_require(data, "sessionHandle", "open session"))


@dataclass
class ExecuteStatementResponse:
    """Representation of the response from submitting a statement."""

    operation_handle: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExecuteStatementResponse":
        return cls(
            operation_handle=_require(data, "operationHandle", "submit statement")
        )


@dataclass
class OperationStatusResponse:
    """Representation of the response from reading an operation's status."""

    state: OperationState
    error_message: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OperationStatusResponse":
        return cls(
            state=OperationState.from_gateway_state(
                _require(data, "status", "read operation status")
            ),
            error_message=data.get("errorMessage"),
        )


class FetchResultsResponse:
    """
    Parser for the body of a result fetch.

    Accepts the gateway's shape
    `{resultType, resultKind, jobID, results: {columns, data}, nextResultUri}`
    as well as the flattened `{columns, rows, nextResultUri}`.
    """

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> ResultPage:
        results = data.get("results")
        if isinstance(results, dict):
            columns_data = results.get("columns") or []
            raw_rows = results.get("data") or []
        else:
            columns_data = data.get("columns") or []
            raw_rows = data.get("rows") or []

        result_type_name = data.get("resultType", ResultType.PAYLOAD.value)
        try:
            result_type = ResultType(result_type_name)
        except ValueError:
            raise InvalidServerResponseError(
                "Unknown result type: {!r}".format(result_type_name),
                {"response": data},
            )

        rows, kinds = _parse_rows(raw_rows)

        return ResultPage(
            columns=[parse_column(col) for col in columns_data],
            rows=rows,
            next_token=data.get("nextResultUri") or None,
            result_type=result_type,
            result_kind=data.get("resultKind"),
            job_id=data.get("jobID"),
            row_kinds=kinds,
        )
