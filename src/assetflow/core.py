from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from .errors import (
    DependencyCycleError,
    DuplicateTaskError,
    UnknownDependencyError,
    UnknownTaskError,
)


class Mode(str, Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"

    def __str__(self) -> str:
        return self.value


class TaskKind(str, Enum):
    STYLESHEETS = "stylesheets"
    SCRIPTS = "scripts"
    BUILD = "build"
    SERVER = "server"
    MAIN = "main"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class TaskKey:
    """Typed name of a mode-specific composite task, e.g. ``build:production``."""

    kind: TaskKind
    mode: Mode

    @property
    def name(self) -> str:
        return f"{self.kind.value}:{self.mode.value}"

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ActionRef:
    """Opaque reference to a collaborator call: which service, with what options."""

    collaborator: str
    options: Dict[str, Any] = field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class TaskDefinition:
    name: str
    description: str = ""
    dependencies: Tuple[str, ...] = ()
    action: Optional[ActionRef] = None

    @property
    def is_composite(self) -> bool:
        return self.action is None


def composite(key: TaskKey | str, description: str, deps: Iterable[TaskKey | str]):
    """Build a composite definition; keys are rendered to their string names."""
    return TaskDefinition(
        name=str(key),
        description=description,
        dependencies=tuple(str(d) for d in deps),
    )


class TaskRegistry:
    """Owns every TaskDefinition by name.

    Dependencies must be registered before their dependents, so the registry
    is acyclic by construction.
    """

    def __init__(self) -> None:
        self._tasks: Dict[str, TaskDefinition] = {}

    @classmethod
    def from_definitions(cls, definitions: Iterable[TaskDefinition]) -> "TaskRegistry":
        registry = cls()
        for defn in definitions:
            registry.register(defn)
        return registry

    def register(self, defn: TaskDefinition) -> None:
        if defn.name in self._tasks:
            raise DuplicateTaskError(defn.name)
        missing = [d for d in defn.dependencies if d not in self._tasks]
        if missing:
            raise UnknownDependencyError(defn.name, missing)
        self._tasks[defn.name] = defn

    def get(self, name: str) -> TaskDefinition:
        try:
            return self._tasks[name]
        except KeyError:
            raise UnknownTaskError(name) from None

    def names(self) -> List[str]:
        return list(self._tasks)

    def expand(self, name: str) -> List[TaskDefinition]:
        return expand(self, name)

    def describe(self) -> List[Tuple[str, str]]:
        return [(d.name, d.description) for d in self._tasks.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    def __iter__(self) -> Iterator[TaskDefinition]:
        return iter(self._tasks.values())


def expand(registry: TaskRegistry, name: str) -> List[TaskDefinition]:
    """Linearize `name` into the ordered, deduplicated list of runnable tasks.

    Dependencies are visited depth-first in declared order; a task already
    scheduled is not scheduled again. Composite tasks contribute no entry of
    their own.
    """
    ordered: List[TaskDefinition] = []
    visited: set[str] = set()
    stack: List[str] = []

    def visit(task_name: str) -> None:
        if task_name in stack:
            raise DependencyCycleError(stack[stack.index(task_name):] + [task_name])
        if task_name in visited:
            return
        defn = registry.get(task_name)
        stack.append(task_name)
        for dep in defn.dependencies:
            visit(dep)
        stack.pop()
        visited.add(task_name)
        if not defn.is_composite:
            ordered.append(defn)

    visit(name)
    return ordered
