import threading
import time
from unittest.mock import Mock

import pytest

from flink.sql.context import ExecutionContext
from flink.sql.exc import ContextCanceledError, DeadlineExceededError


class TestExecutionContext:
    def test_background_context_never_fires(self):
        context = ExecutionContext.background()
        assert context.deadline is None
        assert context.remaining() is None
        assert not context.done
        assert context.error() is None
        context.check()

    def test_cancel_is_idempotent(self):
        context = ExecutionContext.background()
        context.cancel()
        context.cancel()
        assert context.cancelled
        assert context.done
        with pytest.raises(ContextCanceledError):
            context.check()

    def test_expired_deadline(self):
        context = ExecutionContext(deadline=time.monotonic() - 1)
        assert context.expired
        assert context.remaining() == 0.0
        with pytest.raises(DeadlineExceededError):
            context.check()

    def test_cancel_takes_precedence_over_deadline(self):
        context = ExecutionContext(deadline=time.monotonic() - 1)
        context.cancel()
        assert isinstance(context.error(), ContextCanceledError)

    def test_with_timeout_none_has_no_deadline(self):
        assert ExecutionContext.with_timeout(None).deadline is None

    def test_wait_full_interval(self):
        assert ExecutionContext.background().wait(0.001) is True

    def test_wait_on_done_context_returns_immediately(self):
        context = ExecutionContext.background()
        context.cancel()
        start = time.monotonic()
        assert context.wait(10) is False
        assert time.monotonic() - start < 1

    def test_wait_is_cut_short_by_the_deadline(self):
        context = ExecutionContext.with_timeout(0.01)
        start = time.monotonic()
        assert context.wait(10) is False
        assert time.monotonic() - start < 5

    def test_wait_is_interrupted_by_cancel_from_another_thread(self):
        context = ExecutionContext.background()
        timer = threading.Timer(0.01, context.cancel)
        timer.start()
        try:
            start = time.monotonic()
            assert context.wait(10) is False
            assert time.monotonic() - start < 5
        finally:
            timer.cancel()

    @pytest.mark.parametrize("default", [None, 60])
    def test_timeout_for_without_deadline(self, default):
        assert ExecutionContext.background().timeout_for(default) == default

    def test_timeout_for_is_capped_by_deadline(self):
        context = ExecutionContext.with_timeout(5)
        assert context.timeout_for(60) <= 5
        assert context.timeout_for(1) == 1
        assert 0 < context.timeout_for(None) <= 5

    def test_cancel_runs_callbacks_once(self):
        context = ExecutionContext.background()
        callback = Mock()
        context.add_cancel_callback(callback)

        context.cancel()
        context.cancel()

        callback.assert_called_once_with()

    def test_callback_added_after_cancel_runs_immediately(self):
        context = ExecutionContext.background()
        context.cancel()
        callback = Mock()

        context.add_cancel_callback(callback)

        callback.assert_called_once_with()

    def test_removed_callback_is_not_run(self):
        context = ExecutionContext.background()
        callback = Mock()
        context.add_cancel_callback(callback)
        context.remove_cancel_callback(callback)
        context.remove_cancel_callback(callback)

        context.cancel()

        callback.assert_not_called()
