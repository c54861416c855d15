import pytest

from polyflow.exceptions import CycleError
from polyflow.exceptions import DefinitionError
from polyflow.exceptions import UnknownDependencyError
from polyflow.graph import execution_levels
from polyflow.graph import topological_order
from polyflow.graph import validate_dependencies
from tests.fixtures.runners import fake_step


def names(steps):
    return [s.name for s in steps]


def test_independent_steps_keep_definition_order():
    steps = [fake_step("x"), fake_step("y"), fake_step("z")]

    assert names(topological_order(steps)) == ["x", "y", "z"]
    levels = execution_levels(steps)
    assert [level.names for level in levels] == [["x", "y", "z"]]


def test_dependencies_come_first_even_when_declared_later():
    steps = [fake_step("report", ["clean"]), fake_step("clean", ["fetch"]), fake_step("fetch")]

    assert names(topological_order(steps)) == ["fetch", "clean", "report"]
    assert [level.names for level in execution_levels(steps)] == [["fetch"], ["clean"], ["report"]]


def test_diamond_levels():
    steps = [
        fake_step("a"),
        fake_step("b", ["a"]),
        fake_step("c", ["a"]),
        fake_step("d", ["b", "c"]),
    ]

    levels = execution_levels(steps)

    assert [level.index for level in levels] == [0, 1, 2]
    assert [level.names for level in levels] == [["a"], ["b", "c"], ["d"]]


def test_level_is_one_more_than_deepest_dependency():
    steps = [
        fake_step("a"),
        fake_step("b", ["a"]),
        fake_step("c", ["b"]),
        fake_step("shortcut", ["a", "c"]),
        fake_step("side"),
    ]

    levels = {name: level.index for level in execution_levels(steps) for name in level.names}

    assert levels == {"a": 0, "side": 0, "b": 1, "c": 2, "shortcut": 3}


def test_flattened_levels_are_a_topological_order():
    steps = [
        fake_step("e", ["d", "b"]),
        fake_step("d", ["c"]),
        fake_step("c", ["a"]),
        fake_step("b", ["a"]),
        fake_step("a"),
    ]

    flat = [name for level in execution_levels(steps) for name in level.names]
    position = {name: i for i, name in enumerate(flat)}
    for step in steps:
        for dependency in step.depends_on:
            assert position[dependency] < position[step.name]


def test_empty_workflow():
    assert topological_order([]) == []
    assert execution_levels([]) == []


def test_unknown_dependency():
    steps = [fake_step("a"), fake_step("b", ["ghost"])]

    for resolve in (topological_order, execution_levels):
        with pytest.raises(UnknownDependencyError) as excinfo:
            resolve(steps)
        assert excinfo.value.step == "b"
        assert excinfo.value.dependency == "ghost"


def test_duplicate_step_names():
    with pytest.raises(DefinitionError, match="Duplicate step name: 'a'"):
        validate_dependencies([fake_step("a"), fake_step("a")])


def test_self_dependency_is_a_cycle():
    steps = [fake_step("loop", ["loop"])]

    for resolve in (topological_order, execution_levels):
        with pytest.raises(CycleError) as excinfo:
            resolve(steps)
        assert excinfo.value.step == "loop"


def test_cycle_names_a_step_on_the_cycle():
    steps = [
        fake_step("root"),
        fake_step("a", ["root", "c"]),
        fake_step("b", ["a"]),
        fake_step("c", ["b"]),
        fake_step("after", ["c"]),
    ]

    for resolve in (topological_order, execution_levels):
        with pytest.raises(CycleError, match="Circular dependency") as excinfo:
            resolve(steps)
        assert excinfo.value.step in {"a", "b", "c"}
        assert set(excinfo.value.cycle) == {"a", "b", "c"}
        assert excinfo.value.cycle[0] == excinfo.value.cycle[-1]
