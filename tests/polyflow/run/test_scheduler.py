import threading

import pytest

from polyflow.exceptions import CycleError
from polyflow.exceptions import RunnerExecutionError
from polyflow.exceptions import UnknownDependencyError
from polyflow.run import ExecutionMode
from polyflow.run import RunStatus
from polyflow.run import Scheduler
from polyflow.run import StepStatus
from polyflow.runners.registry import RunnerRegistry
from tests.fixtures.runners import FakeRunner
from tests.fixtures.runners import fake_step
from tests.fixtures.workflows import make_workflow

MODES = [ExecutionMode.SEQUENTIAL, ExecutionMode.PARALLEL]


def diamond():
    return make_workflow(
        fake_step("a"),
        fake_step("b", ["a"]),
        fake_step("c", ["a"]),
        fake_step("d", ["b", "c"]),
        name="diamond",
    )


def fail(message: str):
    def _behaviour(inputs):
        raise RunnerExecutionError("x", message)

    return _behaviour


def test_max_concurrency_must_be_positive(fake_registry):
    with pytest.raises(ValueError):
        Scheduler(fake_registry, max_concurrency=0)


@pytest.mark.parametrize("mode", MODES)
def test_successful_run(fake_registry, fake_runner, mode):
    trace = Scheduler(fake_registry, max_concurrency=2).run(diamond(), mode, run_id="r1")

    assert trace.status == RunStatus.COMPLETED
    assert trace.run_id == "r1"
    assert trace.workflow_name == "diamond"
    assert trace.mode == mode
    assert trace.error_message is None
    assert trace.end_time is not None
    assert all(s.status == StepStatus.SUCCESS for s in trace.steps)
    assert trace.results["d"] == {"step": "d", "inputs": ["b", "c"]}
    assert sorted(fake_runner.call_order) == ["a", "b", "c", "d"]


@pytest.mark.parametrize("mode", MODES)
def test_inputs_hold_only_declared_dependencies(fake_registry, fake_runner, mode):
    Scheduler(fake_registry).run(diamond(), mode)

    received = dict(fake_runner.calls)
    assert received["a"] == {}
    assert set(received["b"]) == {"a"}
    assert set(received["d"]) == {"b", "c"}


def test_both_modes_produce_the_same_results():
    def add_inputs(inputs):
        return {"n": 1 + sum(v["n"] for v in inputs.values())}

    behaviours = {name: add_inputs for name in "abcd"}
    results = []
    for mode in MODES:
        registry = RunnerRegistry([FakeRunner(behaviours)])
        results.append(Scheduler(registry, max_concurrency=3).run(diamond(), mode).results)

    assert results[0] == results[1]
    assert results[0]["d"] == {"n": 5}


def test_sequential_order(fake_registry, fake_runner):
    workflow = make_workflow(
        fake_step("report", ["clean"]), fake_step("clean", ["fetch"]), fake_step("fetch")
    )

    trace = Scheduler(fake_registry).run(workflow, ExecutionMode.SEQUENTIAL)

    assert fake_runner.call_order == ["fetch", "clean", "report"]
    assert [s.name for s in trace.steps] == ["fetch", "clean", "report"]
    assert trace.levels == []


def test_parallel_trace_records_levels(fake_registry):
    trace = Scheduler(fake_registry, max_concurrency=3).run(diamond(), ExecutionMode.PARALLEL)

    assert trace.levels == [["a"], ["b", "c"], ["d"]]
    assert trace.max_concurrency == 3


def test_sequential_failure_stops_run(fake_registry, fake_runner):
    fake_runner.behaviours["b"] = fail("boom")

    trace = Scheduler(fake_registry).run(diamond(), ExecutionMode.SEQUENTIAL)

    assert trace.status == RunStatus.FAILED
    assert "boom" in trace.error_message
    assert trace.outcome("a").status == StepStatus.SUCCESS
    assert trace.outcome("b").status == StepStatus.FAILED
    assert trace.outcome("b").error_type == "RunnerExecutionError"
    assert trace.outcome("c").status == StepStatus.PENDING
    assert trace.outcome("d").status == StepStatus.PENDING
    assert "c" not in fake_runner.call_order
    assert trace.results == {"a": {"step": "a", "inputs": []}}


def test_parallel_failure_finishes_level_and_stops(fake_registry, fake_runner):
    fake_runner.behaviours["b"] = fail("boom")

    trace = Scheduler(fake_registry, max_concurrency=2).run(diamond(), ExecutionMode.PARALLEL)

    assert trace.status == RunStatus.FAILED
    assert trace.outcome("b").status == StepStatus.FAILED
    # the sibling in the same level still runs and its result is kept
    assert trace.outcome("c").status == StepStatus.SUCCESS
    assert "c" in trace.results
    assert trace.outcome("d").status == StepStatus.PENDING
    assert "d" not in fake_runner.call_order


def test_parallel_error_is_first_failure_in_level_order():
    workflow = make_workflow(fake_step("first"), fake_step("second"), fake_step("third"))
    runner = FakeRunner({"second": fail("second broke"), "third": fail("third broke")})

    trace = Scheduler(RunnerRegistry([runner]), max_concurrency=3).run(
        workflow, ExecutionMode.PARALLEL
    )

    assert trace.status == RunStatus.FAILED
    assert "second broke" in trace.error_message
    assert trace.outcome("third").status == StepStatus.FAILED


@pytest.mark.parametrize("mode", MODES)
@pytest.mark.parametrize("max_concurrency", [1, 2])
def test_fan_in_waits_for_every_dependency(mode, max_concurrency):
    workflow = make_workflow(
        fake_step("a"), fake_step("b"), fake_step("c", depends_on=["a", "b"])
    )
    runner = FakeRunner(delay=0.01)

    trace = Scheduler(RunnerRegistry([runner]), max_concurrency=max_concurrency).run(
        workflow, mode
    )

    assert trace.status == RunStatus.COMPLETED, trace.error_message
    order = runner.call_order
    assert order.index("c") > order.index("a")
    assert order.index("c") > order.index("b")
    assert dict(runner.calls)["c"] == {
        "a": {"step": "a", "inputs": []},
        "b": {"step": "b", "inputs": []},
    }


def test_parallel_limit_one_serializes_steps():
    workflow = make_workflow(*(fake_step(f"s{i}") for i in range(4)))
    runner = FakeRunner(delay=0.02)

    trace = Scheduler(RunnerRegistry([runner]), max_concurrency=1).run(
        workflow, ExecutionMode.PARALLEL
    )

    assert trace.status == RunStatus.COMPLETED
    assert runner.peak == 1


def test_parallel_limit_two_runs_two_at_once():
    barrier = threading.Barrier(2, timeout=5)

    def meet(inputs):
        barrier.wait()
        return {}

    workflow = make_workflow(*(fake_step(f"s{i}") for i in range(4)))
    runner = FakeRunner({f"s{i}": meet for i in range(4)}, delay=0.01)

    trace = Scheduler(RunnerRegistry([runner]), max_concurrency=2).run(
        workflow, ExecutionMode.PARALLEL
    )

    assert trace.status == RunStatus.COMPLETED, trace.error_message
    assert runner.peak == 2


def test_unsupported_language_fails_after_earlier_levels(fake_registry, fake_runner):
    workflow = make_workflow(
        fake_step("a"),
        fake_step("b", ["a"]),
        fake_step("legacy", ["b"], language="cobol"),
    )

    for mode in MODES:
        trace = Scheduler(fake_registry).run(workflow, mode)

        assert trace.status == RunStatus.FAILED
        assert trace.outcome("a").status == StepStatus.SUCCESS
        assert trace.outcome("b").status == StepStatus.SUCCESS
        assert trace.outcome("legacy").status == StepStatus.FAILED
        assert trace.outcome("legacy").error_type == "UnsupportedLanguageError"
        assert "cobol" in trace.error_message


@pytest.mark.parametrize("mode", MODES)
def test_resolution_errors_propagate_before_any_step(fake_registry, fake_runner, mode):
    unknown = make_workflow(fake_step("a", ["missing"]))
    cyclic = make_workflow(fake_step("a", ["b"]), fake_step("b", ["a"]))

    with pytest.raises(UnknownDependencyError):
        Scheduler(fake_registry).run(unknown, mode)
    with pytest.raises(CycleError):
        Scheduler(fake_registry).run(cyclic, mode)
    assert fake_runner.calls == []


def test_step_durations_are_recorded(fake_registry):
    trace = Scheduler(fake_registry).run(diamond(), ExecutionMode.SEQUENTIAL)

    for outcome in trace.steps:
        assert outcome.start_time is not None
        assert outcome.duration_seconds >= 0
    assert trace.duration_seconds >= 0
