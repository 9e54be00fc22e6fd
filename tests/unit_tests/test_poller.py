"""
Unit tests for the deadline-bounded poller.
"""

import threading
import unittest
from unittest.mock import MagicMock

from errors import UnexpectedStateError, UpgradeCancelledError, UpgradeTimeoutError
from poller import PollOutcome, poll_until


class FakeClock:
    """Clock that only moves forward when sleep() is called."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps = []

    def time(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class TestPollUntil(unittest.TestCase):
    """Test poll_until timing and outcome handling."""

    def setUp(self):
        self.clock = FakeClock(start=1000.0)

    def _poll(self, check, interval_s=2.0, timeout_s=10.0, **kwargs):
        return poll_until(
            check,
            interval_s=interval_s,
            timeout_s=timeout_s,
            clock=self.clock.time,
            sleep=self.clock.sleep,
            **kwargs,
        )

    def test_returns_value_when_done_immediately(self):
        """Test a check that is done on the first call never sleeps."""
        check = MagicMock(return_value=PollOutcome.done("svc"))

        self.assertEqual(self._poll(check), "svc")
        self.assertEqual(check.call_count, 1)
        self.assertEqual(self.clock.sleeps, [])

    def test_sleeps_interval_between_pending_results(self):
        """Test pending results are separated by exactly one sleep each."""
        check = MagicMock(
            side_effect=[
                PollOutcome.pending(),
                PollOutcome.pending(),
                PollOutcome.done(42),
            ]
        )

        self.assertEqual(self._poll(check, interval_s=3.0), 42)
        self.assertEqual(check.call_count, 3)
        self.assertEqual(self.clock.sleeps, [3.0, 3.0])

    def test_always_pending_times_out_after_budget(self):
        """Test an always-pending check runs floor(budget/interval)+1 times."""
        check = MagicMock(return_value=PollOutcome.pending())

        with self.assertRaises(UpgradeTimeoutError) as ctx:
            self._poll(check, interval_s=2.0, timeout_s=10.0, description="thing")

        self.assertEqual(check.call_count, 6)
        self.assertEqual(ctx.exception.phase, "thing")
        self.assertEqual(ctx.exception.timeout_s, 10.0)
        self.assertIsInstance(ctx.exception, TimeoutError)

    def test_deadline_checked_before_each_invocation(self):
        """Test no check starts once the deadline has passed."""
        calls = []

        def check():
            calls.append(self.clock.time())
            # a slow check pushes the clock past the deadline
            self.clock.now += 7.0
            return PollOutcome.pending()

        with self.assertRaises(UpgradeTimeoutError):
            self._poll(check, interval_s=1.0, timeout_s=10.0)

        self.assertEqual(calls, [1000.0, 1008.0])

    def test_failed_outcome_raises_without_retry(self):
        """Test a failed outcome propagates its error immediately."""
        error = UnexpectedStateError("rolling-back")
        check = MagicMock(
            side_effect=[PollOutcome.pending(), PollOutcome.failed(error)]
        )

        with self.assertRaises(UnexpectedStateError) as ctx:
            self._poll(check)

        self.assertIs(ctx.exception, error)
        self.assertEqual(check.call_count, 2)
        self.assertEqual(len(self.clock.sleeps), 1)

    def test_exception_from_check_propagates(self):
        """Test exceptions raised by the check are not swallowed."""
        check = MagicMock(side_effect=RuntimeError("boom"))

        with self.assertRaises(RuntimeError):
            self._poll(check)

        self.assertEqual(check.call_count, 1)

    def test_poller_is_restartable(self):
        """Test each call gets a fresh deadline from the current clock."""
        pending = MagicMock(return_value=PollOutcome.pending())
        with self.assertRaises(UpgradeTimeoutError):
            self._poll(pending, interval_s=5.0, timeout_s=5.0)

        done = MagicMock(side_effect=[PollOutcome.pending(), PollOutcome.done("ok")])
        self.assertEqual(self._poll(done, interval_s=5.0, timeout_s=5.0), "ok")

    def test_cancel_event_stops_waiting(self):
        """Test a set cancel event aborts before the next check."""
        cancel = threading.Event()

        def check():
            cancel.set()
            return PollOutcome.pending()

        with self.assertRaises(UpgradeCancelledError):
            self._poll(check, cancel_event=cancel)

    def test_unknown_status_is_rejected(self):
        """Test a malformed outcome is reported instead of looping."""
        check = MagicMock(return_value=PollOutcome("bogus"))

        with self.assertRaises(ValueError):
            self._poll(check)


if __name__ == "__main__":
    unittest.main()
