"""Tests for the background worker and main queue."""

from __future__ import annotations

import threading

import pytest

from xcsweep.core.dispatch import BackgroundWorker, MainQueue


class TestMainQueue:
    def test_fifo_order(self):
        main_queue = MainQueue()
        seen: list[int] = []
        for i in range(5):
            main_queue.post(seen.append, i)
        assert main_queue.process_pending() == 5
        assert seen == [0, 1, 2, 3, 4]

    def test_empty_queue(self):
        assert MainQueue().process_pending() == 0
        assert MainQueue().process_pending(timeout=0.01) == 0

    def test_run_until_returns_result(self):
        main_queue = MainQueue()
        worker = BackgroundWorker()
        seen: list[str] = []

        def job() -> int:
            main_queue.post(lambda: seen.append(threading.current_thread().name))
            return 42

        try:
            assert main_queue.run_until(worker.submit(job)) == 42
        finally:
            worker.shutdown()
        assert seen == [threading.current_thread().name]

    def test_run_until_reraises(self):
        main_queue = MainQueue()
        worker = BackgroundWorker()

        def job() -> None:
            raise RuntimeError("boom")

        try:
            with pytest.raises(RuntimeError, match="boom"):
                main_queue.run_until(worker.submit(job))
        finally:
            worker.shutdown()


class TestBackgroundWorker:
    def test_runs_jobs_sequentially_off_main_thread(self):
        worker = BackgroundWorker()
        names: list[str] = []
        try:
            futures = [worker.submit(lambda: names.append(threading.current_thread().name)) for _ in range(3)]
            for future in futures:
                future.result(timeout=5)
        finally:
            worker.shutdown()
        assert len(set(names)) == 1
        assert names[0] != threading.current_thread().name

