"""Tests for the single-slot scheduler."""

import threading

import pytest

from conftest import wait_until
from face_eye_detection.errors import PipelineExecutionError
from face_eye_detection.scheduler import SingleSlotScheduler


class Results:
    def __init__(self):
        self.values = []
        self.threads = []
        self.errors = []

    def on_result(self, value):
        self.values.append(value)
        self.threads.append(threading.current_thread())

    def on_error(self, exc):
        self.errors.append(exc)


@pytest.fixture
def results():
    return Results()


@pytest.fixture
def scheduler(results):
    sched = SingleSlotScheduler(results.on_result, on_error=results.on_error)
    yield sched
    sched.shutdown(wait=True)


def blocking_job(gate, value):
    gate.wait(timeout=5)
    return value


@pytest.mark.parametrize("ticks", [1, 2, 5, 30])
def test_only_one_job_starts_while_outstanding(scheduler, ticks):
    gate = threading.Event()

    started = [scheduler.submit(blocking_job, gate, n) for n in range(ticks)]

    assert started.count(True) == 1
    assert started[0] is True
    assert scheduler.stats.submitted == 1
    assert scheduler.stats.skipped == ticks - 1
    gate.set()


def test_slot_stays_taken_until_result_is_delivered(scheduler, results):
    gate = threading.Event()
    gate.set()
    scheduler.submit(blocking_job, gate, "done")

    assert wait_until(lambda: scheduler._completed.qsize() == 1)
    assert scheduler.busy
    assert scheduler.submit(blocking_job, gate, "second") is False

    scheduler.deliver()

    assert results.values == ["done"]
    assert not scheduler.busy
    assert scheduler.submit(blocking_job, gate, "second") is True


def test_result_is_handed_off_before_slot_is_released():
    busy_during_handoff = []
    sched = SingleSlotScheduler(lambda value: busy_during_handoff.append(sched.busy))
    try:
        sched.submit(lambda: 1)

        assert wait_until(lambda: bool(busy_during_handoff), step=sched.deliver)
        assert busy_during_handoff == [True]
        assert not sched.busy
    finally:
        sched.shutdown(wait=True)


def test_results_are_delivered_on_the_calling_thread(scheduler, results):
    scheduler.submit(lambda: threading.current_thread())

    assert wait_until(lambda: bool(results.values), step=scheduler.deliver)

    worker_thread = results.values[0]
    assert worker_thread is not threading.current_thread()
    assert results.threads == [threading.current_thread()]


def test_failed_job_is_reported_and_frees_the_slot(scheduler, results):
    def explode():
        raise ValueError("bad frame")

    scheduler.submit(explode)

    assert wait_until(lambda: scheduler.stats.failed == 1, step=scheduler.deliver)
    assert results.values == []
    assert len(results.errors) == 1
    assert isinstance(results.errors[0], PipelineExecutionError)
    assert not scheduler.busy
    assert scheduler.submit(lambda: "next") is True
    assert wait_until(lambda: results.values == ["next"], step=scheduler.deliver)


def test_pipeline_errors_are_passed_through_unchanged(scheduler, results):
    error = PipelineExecutionError("cascade failed")

    def explode():
        raise error

    scheduler.submit(explode)

    assert wait_until(lambda: bool(results.errors), step=scheduler.deliver)
    assert results.errors == [error]


def test_failing_consumer_does_not_wedge_the_slot(results):
    def broken_sink(value):
        raise RuntimeError("display gone")

    sched = SingleSlotScheduler(broken_sink)
    try:
        sched.submit(lambda: 1)

        assert wait_until(lambda: sched.stats.failed == 1, step=sched.deliver)
        assert not sched.busy
    finally:
        sched.shutdown(wait=True)


def test_deliver_with_nothing_finished_is_a_noop(scheduler):
    assert scheduler.deliver() == 0
    assert not scheduler.busy


def test_shutdown_discards_in_flight_result(results):
    gate = threading.Event()
    sched = SingleSlotScheduler(results.on_result)
    sched.submit(blocking_job, gate, "late")

    sched.shutdown(wait=False)
    gate.set()

    assert sched.submit(lambda: "rejected") is False
    assert wait_until(lambda: not sched.busy, step=sched.deliver)
    assert results.values == []


def test_skip_counts_ticks_dropped_outside_submit(scheduler):
    gate = threading.Event()
    scheduler.submit(blocking_job, gate, "busy")

    scheduler.skip()
    scheduler.submit(blocking_job, gate, "dropped")

    assert scheduler.stats.skipped == 2
    assert scheduler.stats.submitted == 1
    gate.set()
