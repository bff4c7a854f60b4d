from __future__ import annotations

"""Collaborator registration.

Collaborators are the external services a task's `ActionRef` points at (style
compiler, bundler, static server, ...). Modules under `assetflow.tasks` declare
them with `@collaborator(name)`; `discover_collaborators()` collects them into
the action table the Runner dispatches on.
"""

import importlib
import pkgutil
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from .core import Mode, TaskRegistry
from .logging import get_logger

if TYPE_CHECKING:
    from .runner import Runner


Collaborator = Callable[..., None]
ActionTable = Dict[str, Collaborator]

log = get_logger("assetflow.actions")


@dataclass
class ActionContext:
    """What a collaborator gets besides its options.

    `params` is the merged build config. `services` holds handles that one
    action leaves for a later one in the same run (e.g. the live-reload state
    the `serve` action creates and the `watch` action bumps).
    """

    params: dict
    registry: Optional[TaskRegistry] = None
    mode: Optional[Mode] = None
    runner: Optional["Runner"] = None
    stop_event: threading.Event = field(default_factory=threading.Event)
    services: Dict[str, Any] = field(default_factory=dict)
    cleanups: List[Callable[[], None]] = field(default_factory=list)

    def close(self) -> None:
        """Run cleanups registered by actions, most recent first."""
        while self.cleanups:
            fn = self.cleanups.pop()
            try:
                fn()
            except Exception:  # noqa: BLE001
                log.exception("Cleanup failed")


def collaborator(name: str):
    """Decorator to declare a function as the collaborator called `name`.

    The function receives the ActionContext positionally and the ActionRef
    options as keyword arguments.
    """

    def deco(fn: Collaborator):
        setattr(fn, "_collaborator", name)
        return fn

    return deco


def discover_collaborators(package: str = "assetflow.tasks") -> ActionTable:
    """Import all modules in `package` and collect decorated functions."""
    table: ActionTable = {}
    pkg = importlib.import_module(package)
    for m in pkgutil.iter_modules(pkg.__path__, prefix=f"{package}."):
        mod = importlib.import_module(m.name)
        for attr_name in dir(mod):
            obj = getattr(mod, attr_name)
            name = getattr(obj, "_collaborator", None)
            if isinstance(name, str) and callable(obj):
                if name in table and table[name] is not obj:
                    log.warning("Collaborator %s defined twice, keeping %s", name, m.name)
                table[name] = obj
    return table
