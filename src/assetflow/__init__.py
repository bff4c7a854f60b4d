"""Front-end asset build orchestrator.

Provides the task graph (Mode, TaskDefinition, TaskRegistry), the per-mode
pipeline composer, a sequential Runner and a file Watcher for incremental
rebuilds. The compilers, bundlers and servers themselves are external tools
wrapped by the adapters in `assetflow.tasks`.
"""

from .core import ActionRef, Mode, TaskDefinition, TaskKey, TaskKind, TaskRegistry, expand
from .composer import PipelineComposer
from .runner import Runner, RunReport
from .watcher import Watcher, WatchRule, WatchState

__all__ = [
    "ActionRef",
    "Mode",
    "PipelineComposer",
    "RunReport",
    "Runner",
    "TaskDefinition",
    "TaskKey",
    "TaskKind",
    "TaskRegistry",
    "WatchRule",
    "WatchState",
    "Watcher",
    "expand",
]
