"""
Request models for the Flink SQL Gateway backend.

These models define the structures used in gateway API requests.
"""

from typing import Dict, Any, Optional
from dataclasses import dataclass


@dataclass
class OpenSessionRequest:
    """Representation of a request to open a new session."""

    properties: Optional[Dict[str, str]] = None
    session_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert the request to a dictionary for JSON serialization."""
        result: Dict[str, Any] = {"properties": dict(self.properties or {})}

        if self.session_name:
            result["sessionName"] = self.session_name

        return result


@dataclass
class ExecuteStatementRequest:
    """Representation of a request to submit a SQL statement."""

    statement: str
    execution_config: Optional[Dict[str, str]] = None
    execution_timeout: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert the request to a dictionary for JSON serialization."""
        result: Dict[str, Any] = {"statement": self.statement}

        if self.execution_config:
            result["executionConfig"] = dict(self.execution_config)

        if self.execution_timeout is not None and self.execution_timeout > 0:
            result["executionTimeout"] = self.execution_timeout

        return result
