import threading
import unittest
from unittest import mock

from cryptowire.ingestion.cryptopanic import UpstreamUnavailable
from cryptowire.ingestion.scheduler import IngestionScheduler


class TestIngestionScheduler(unittest.TestCase):
    def test_runs_on_start_and_stops(self):
        ran = threading.Event()
        pipeline = mock.Mock()
        pipeline.run.side_effect = lambda: ran.set() or 3

        scheduler = IngestionScheduler(pipeline, interval_minutes=60, poll_seconds=0.01)
        scheduler.start()
        try:
            self.assertTrue(ran.wait(5))
            self.assertTrue(scheduler.is_running)
        finally:
            scheduler.stop(timeout=5)
        self.assertFalse(scheduler.is_running)
        pipeline.cancel.assert_called()
        self.assertEqual(pipeline.run.call_count, 1)

    def test_start_twice_is_noop(self):
        pipeline = mock.Mock()
        scheduler = IngestionScheduler(pipeline, run_on_start=False, poll_seconds=0.01)
        scheduler.start()
        thread = scheduler._thread
        scheduler.start()
        self.assertIs(scheduler._thread, thread)
        scheduler.stop(timeout=5)

    def test_no_run_without_start(self):
        pipeline = mock.Mock()
        IngestionScheduler(pipeline)
        pipeline.run.assert_not_called()

    def test_trigger_swallows_upstream_failure(self):
        pipeline = mock.Mock()
        pipeline.run.side_effect = UpstreamUnavailable("cryptopanic: HTTP 503")
        scheduler = IngestionScheduler(pipeline)
        with self.assertLogs("cryptowire.ingestion.scheduler", level="ERROR"):
            self.assertIsNone(scheduler.trigger())

    def test_trigger_swallows_unexpected_errors(self):
        pipeline = mock.Mock()
        pipeline.run.side_effect = RuntimeError("boom")
        scheduler = IngestionScheduler(pipeline)
        with self.assertLogs("cryptowire.ingestion.scheduler", level="ERROR"):
            self.assertIsNone(scheduler.trigger())

    def test_trigger_returns_count(self):
        pipeline = mock.Mock()
        pipeline.run.return_value = 4
        self.assertEqual(IngestionScheduler(pipeline).trigger(), 4)

    def test_interval_job_registered(self):
        pipeline = mock.Mock()
        scheduler = IngestionScheduler(pipeline, interval_minutes=60, run_on_start=False, poll_seconds=0.01)
        scheduler.start()
        try:
            jobs = scheduler._scheduler.jobs
            self.assertEqual(len(jobs), 1)
            self.assertEqual(jobs[0].interval, 60)
            self.assertEqual(jobs[0].unit, "minutes")
        finally:
            scheduler.stop(timeout=5)


if __name__ == "__main__":
    unittest.main()
