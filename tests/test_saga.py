import pytest

from tasktracker.services.saga import Saga


class Boom(Exception):
    pass


def fail():
    raise Boom("step failed")


def test_steps_run_in_order_and_return_last_result():
    calls = []
    saga = Saga("demo")
    saga.step("one", lambda: calls.append(1) or "first")
    saga.step("two", lambda: calls.append(2) or "second")

    assert saga.run() == "second"
    assert calls == [1, 2]
    assert len(saga.completed) == 2


def test_failure_stops_and_keeps_completed_steps_by_default():
    calls = []
    saga = Saga("demo")
    saga.step("one", lambda: calls.append("one"), lambda: calls.append("undo one"))
    saga.step("two", fail)
    saga.step("three", lambda: calls.append("three"))

    with pytest.raises(Boom):
        saga.run()

    assert calls == ["one"]
    assert [s.description for s in saga.completed] == ["one"]


def test_compensation_runs_in_reverse_order():
    calls = []
    saga = Saga("demo", compensate=True)
    saga.step("one", lambda: calls.append("one"), lambda: calls.append("undo one"))
    saga.step("two", lambda: calls.append("two"))
    saga.step("three", lambda: calls.append("three"), lambda: calls.append("undo three"))
    saga.step("four", fail, lambda: calls.append("undo four"))

    with pytest.raises(Boom):
        saga.run()

    assert calls == ["one", "two", "three", "undo three", "undo one"]
    assert saga.completed == []


def test_failing_compensation_does_not_hide_original_error():
    calls = []
    saga = Saga("demo", compensate=True)
    saga.step("one", lambda: calls.append("one"), lambda: calls.append("undo one"))
    saga.step("two", lambda: calls.append("two"), lambda: fail())
    saga.step("three", fail)

    with pytest.raises(Boom, match="step failed"):
        saga.run()

    assert calls == ["one", "two", "undo one"]
