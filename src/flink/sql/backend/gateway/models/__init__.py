"""
Models for the Flink SQL Gateway backend.

This package contains data models for gateway API requests and responses.
"""

from flink.sql.backend.gateway.models.requests import (
    OpenSessionRequest,
    ExecuteStatementRequest,
)

from flink.sql.backend.gateway.models.responses import (
    OpenSessionResponse,
    ExecuteStatementResponse,
    OperationStatusResponse,
    FetchResultsResponse,
)

__all__ = [
    # Request models
    "OpenSessionRequest",
    "ExecuteStatementRequest",
    # Response models
    "OpenSessionResponse",
    "ExecuteStatementResponse",
    "OperationStatusResponse",
    "FetchResultsResponse",
]
