"""
Dependency resolution for workflow steps.

Two plans are derived from the same `depends_on` edges: a flat topological
order used by sequential runs, and a list of execution levels used by
parallel runs. Both accept and reject exactly the same workflows.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from polyflow.definition.schema import StepDefinition
from polyflow.exceptions import CycleError
from polyflow.exceptions import DefinitionError
from polyflow.exceptions import UnknownDependencyError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionLevel:
    """Steps whose dependencies all sit in earlier levels."""

    index: int
    steps: tuple[StepDefinition, ...]

    @property
    def names(self) -> list[str]:
        return [step.name for step in self.steps]

    def __len__(self) -> int:
        return len(self.steps)


def validate_dependencies(steps: Sequence[StepDefinition]) -> None:
    seen: set[str] = set()
    for step in steps:
        if step.name in seen:
            raise DefinitionError(f"Duplicate step name: '{step.name}'")
        seen.add(step.name)

    for step in steps:
        for dependency in step.depends_on:
            if dependency not in seen:
                raise UnknownDependencyError(step.name, dependency, known=seen)


def _find_cycle(remaining: Sequence[StepDefinition]) -> list[str]:
    """Walks unresolved dependencies from the first remaining step until a name repeats."""
    by_name = {step.name: step for step in remaining}
    path: list[str] = []
    current = remaining[0]

    while current.name not in path:
        path.append(current.name)
        current = next(by_name[d] for d in current.depends_on if d in by_name)

    start = path.index(current.name)
    return path[start:] + [current.name]


def topological_order(steps: Sequence[StepDefinition]) -> list[StepDefinition]:
    """
    Orders steps so every step comes after all of its dependencies.

    Each pass walks the remaining steps in definition order and emits the ones
    whose dependencies were already emitted. A pass that emits nothing means
    the remaining steps contain a cycle.
    """
    validate_dependencies(steps)

    ordered: list[StepDefinition] = []
    emitted: set[str] = set()
    remaining = list(steps)

    while remaining:
        ready = [s for s in remaining if all(d in emitted for d in s.depends_on)]
        if not ready:
            cycle = _find_cycle(remaining)
            raise CycleError(cycle[0], cycle)

        for step in ready:
            ordered.append(step)
            emitted.add(step.name)
        remaining = [s for s in remaining if s.name not in emitted]

    logger.debug(f"Topological order: {[s.name for s in ordered]}")
    return ordered


def execution_levels(steps: Sequence[StepDefinition]) -> list[ExecutionLevel]:
    """
    Groups steps into levels: a step without dependencies sits on level 0,
    any other step on one more than the deepest of its dependencies.
    """
    validate_dependencies(steps)

    by_name = {step.name: step for step in steps}
    levels: dict[str, int] = {}
    visiting: list[str] = []

    def level_of(name: str) -> int:
        if name in levels:
            return levels[name]
        if name in visiting:
            cycle = visiting[visiting.index(name) :] + [name]
            raise CycleError(name, cycle)

        visiting.append(name)
        step = by_name[name]
        level = 0
        if step.depends_on:
            level = 1 + max(level_of(d) for d in step.depends_on)
        visiting.pop()

        levels[name] = level
        return level

    for step in steps:
        level_of(step.name)

    depth = max(levels.values(), default=-1) + 1
    grouped: list[list[StepDefinition]] = [[] for _ in range(depth)]
    for step in steps:
        grouped[levels[step.name]].append(step)

    plan = [ExecutionLevel(i, tuple(group)) for i, group in enumerate(grouped)]
    logger.debug(f"Execution levels: {[level.names for level in plan]}")
    return plan
