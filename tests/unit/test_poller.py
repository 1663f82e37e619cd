import threading
import time
from unittest.mock import Mock

import pytest

from flink.sql.backend.gateway.backend import GatewayClient
from flink.sql.backend.gateway.poller import OperationPoller
from flink.sql.backend.types import Operation, OperationState
from flink.sql.context import ExecutionContext
from flink.sql.exc import (
    ConfigError,
    ContextCanceledError,
    DeadlineExceededError,
    GatewayConnectionError,
    GatewayError,
    OperationCanceledError,
    OperationFailedError,
)


def status(state, error_message=None):
    return Operation("op-1", "s-1", state, error_message)


class TestOperationPoller:
    @pytest.fixture
    def mock_client(self):
        return Mock(spec=GatewayClient)

    @pytest.fixture
    def poller(self, mock_client):
        return OperationPoller(
            mock_client, interval_min=0.001, interval_max=0.004, cancel_timeout=1
        )

    @pytest.fixture
    def submitted(self):
        return status(OperationState.PENDING)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"interval_min": 0},
            {"interval_min": 1, "interval_max": 0.5},
            {"backoff_factor": 0.9},
        ],
    )
    def test_invalid_configuration(self, mock_client, kwargs):
        with pytest.raises(ConfigError):
            OperationPoller(mock_client, **kwargs)

    def test_wait_until_finished(self, poller, mock_client, submitted):
        mock_client.get_operation_status.side_effect = [
            status(OperationState.PENDING),
            status(OperationState.RUNNING),
            status(OperationState.FINISHED),
        ]

        finished = poller.wait(submitted)

        assert finished.state == OperationState.FINISHED
        assert mock_client.get_operation_status.call_count == 3
        mock_client.cancel_operation.assert_not_called()

    def test_already_finished_operation_is_not_polled(self, poller, mock_client):
        finished = status(OperationState.FINISHED)

        assert poller.wait(finished) is finished
        mock_client.get_operation_status.assert_not_called()

    def test_error_with_message(self, poller, mock_client, submitted):
        mock_client.get_operation_status.return_value = status(
            OperationState.ERROR, "Table not found"
        )

        with pytest.raises(OperationFailedError) as excinfo:
            poller.wait(submitted)

        assert str(excinfo.value) == "Operation failed: Table not found"
        assert excinfo.value.context["operation-id"] == "op-1"

    def test_error_message_read_from_result_fetch(self, poller, mock_client, submitted):
        mock_client.get_operation_status.return_value = status(OperationState.ERROR)
        mock_client.fetch_result_page.side_effect = GatewayError(
            "failed",
            status=500,
            body='{"errors": ["Object \'t\' not found"]}',
        )

        with pytest.raises(OperationFailedError) as excinfo:
            poller.wait(submitted)

        assert "Object 't' not found" in str(excinfo.value)

    def test_error_message_fallback(self, poller, mock_client, submitted):
        mock_client.get_operation_status.return_value = status(OperationState.ERROR)
        mock_client.fetch_result_page.side_effect = GatewayConnectionError("down")

        with pytest.raises(OperationFailedError) as excinfo:
            poller.wait(submitted)

        assert "ended in ERROR" in str(excinfo.value)

    def test_canceled(self, poller, mock_client, submitted):
        mock_client.get_operation_status.return_value = status(OperationState.CANCELED)

        with pytest.raises(OperationCanceledError):
            poller.wait(submitted)

    def test_regression_is_ignored(self, poller, mock_client, submitted):
        mock_client.get_operation_status.side_effect = [
            status(OperationState.RUNNING),
            status(OperationState.PENDING),
            status(OperationState.FINISHED),
        ]

        assert poller.wait(submitted).state == OperationState.FINISHED

    def test_status_errors_propagate(self, poller, mock_client, submitted):
        mock_client.get_operation_status.side_effect = GatewayConnectionError("down")

        with pytest.raises(GatewayConnectionError):
            poller.wait(submitted)

    def test_cancel_interrupts_backoff(self, mock_client, submitted):
        poller = OperationPoller(mock_client, interval_min=5, interval_max=5)
        mock_client.get_operation_status.return_value = status(OperationState.RUNNING)
        context = ExecutionContext.background()
        timer = threading.Timer(0.05, context.cancel)
        timer.start()

        start = time.monotonic()
        try:
            with pytest.raises(ContextCanceledError):
                poller.wait(submitted, context)
        finally:
            timer.cancel()

        assert time.monotonic() - start < 5
        mock_client.cancel_operation.assert_called_once()
        args, kwargs = mock_client.cancel_operation.call_args
        assert args == ("s-1", "op-1")
        # The cancel request must not reuse the cancelled context
        assert not kwargs["context"].cancelled

    def test_deadline(self, poller, mock_client, submitted):
        mock_client.get_operation_status.return_value = status(OperationState.RUNNING)

        with pytest.raises(DeadlineExceededError):
            poller.wait(submitted, ExecutionContext.with_timeout(0.05))

        mock_client.cancel_operation.assert_called_once()

    def test_context_error_during_status_request(self, poller, mock_client, submitted):
        mock_client.get_operation_status.side_effect = ContextCanceledError("cancelled")

        with pytest.raises(ContextCanceledError):
            poller.wait(submitted)

        mock_client.cancel_operation.assert_called_once()

    def test_failed_cancel_is_not_raised(self, poller, mock_client, submitted):
        mock_client.get_operation_status.return_value = status(OperationState.RUNNING)
        mock_client.cancel_operation.side_effect = GatewayConnectionError("down")
        context = ExecutionContext.background()
        context.cancel()

        with pytest.raises(ContextCanceledError):
            poller.wait(submitted, context)

    def test_backoff_is_capped(self, mock_client, submitted):
        poller = OperationPoller(
            mock_client, interval_min=0.001, interval_max=0.002, backoff_factor=10
        )
        intervals = []
        context = Mock(spec=ExecutionContext)

        def record(interval):
            intervals.append(interval)
            return True

        context.wait.side_effect = record
        mock_client.get_operation_status.side_effect = [
            status(OperationState.RUNNING),
            status(OperationState.RUNNING),
            status(OperationState.FINISHED),
        ]

        poller.wait(submitted, context)

        assert intervals == [0.001, 0.002, 0.002]
