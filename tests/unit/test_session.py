import threading
import time
from unittest.mock import Mock

import pytest

from flink.sql.backend.gateway.backend import GatewayClient
from flink.sql.exc import GatewayConnectionError, InterfaceError
from flink.sql.session import Session


class TestSession:
    """
    Unit tests for Session functionality
    """

    @pytest.fixture
    def mock_client(self):
        client = Mock(spec=GatewayClient)
        client.open_session.return_value = "s-1"
        return client

    def test_open_passes_properties(self, mock_client):
        session = Session(mock_client, {"a": "b"}, session_name="name")

        assert session.open() == "s-1"
        assert session.is_open
        assert session.handle == "s-1"
        args, kwargs = mock_client.open_session.call_args
        assert args == ({"a": "b"},)
        assert kwargs["session_name"] == "name"

    def test_handle_before_open(self, mock_client):
        with pytest.raises(InterfaceError):
            Session(mock_client).handle

    def test_open_is_idempotent(self, mock_client):
        session = Session(mock_client)

        assert session.open() == session.open() == "s-1"
        mock_client.open_session.assert_called_once()

    def test_concurrent_open_creates_one_session(self, mock_client):
        def slow_open(*args, **kwargs):
            time.sleep(0.05)
            return "s-1"

        mock_client.open_session.side_effect = slow_open
        session = Session(mock_client)
        handles = []
        threads = [
            threading.Thread(target=lambda: handles.append(session.open()))
            for _ in range(8)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert handles == ["s-1"] * 8
        mock_client.open_session.assert_called_once()

    def test_failed_open_can_be_retried(self, mock_client):
        mock_client.open_session.side_effect = [GatewayConnectionError("down"), "s-2"]
        session = Session(mock_client)

        with pytest.raises(GatewayConnectionError):
            session.open()
        assert not session.is_open
        assert session.open() == "s-2"

    def test_close_uses_the_correct_handle(self, mock_client):
        session = Session(mock_client)
        session.open()

        session.close()
        session.close()

        mock_client.close_session.assert_called_once_with("s-1")
        assert session.closed
        assert not session.is_open

    def test_close_without_open_sends_nothing(self, mock_client):
        session = Session(mock_client)

        session.close()

        mock_client.close_session.assert_not_called()

    def test_close_swallows_errors(self, mock_client):
        mock_client.close_session.side_effect = GatewayConnectionError("down")
        session = Session(mock_client)
        session.open()

        session.close()

        assert session.closed

    def test_open_after_close(self, mock_client):
        session = Session(mock_client)
        session.open()
        session.close()

        with pytest.raises(InterfaceError):
            session.open()
        with pytest.raises(InterfaceError):
            session.handle

    def test_heartbeat(self, mock_client):
        session = Session(mock_client)
        session.open()

        session.heartbeat()

        mock_client.heartbeat.assert_called_once_with("s-1", context=None)
