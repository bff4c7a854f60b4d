from __future__ import annotations

"""Incremental rebuilds on file change.

A Watcher maps file globs to a single task in the registry. Each rule has its
own slot: a change that arrives while that rule's run is in flight is folded
into one follow-up run, so two runs of the same rule never overlap. Runs for
different rules proceed independently on a thread pool.
"""

import fnmatch
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from .config import watch_patterns
from .core import Mode
from .errors import ActionFailure, WatchModeError, WatchRuleFailure
from .logging import get_logger
from .runner import Runner


class WatchState(str, Enum):
    IDLE = "idle"
    WATCHING = "watching"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass(frozen=True)
class WatchRule:
    name: str
    patterns: Tuple[str, ...]
    task: str

    def matches(self, rel_path: str) -> bool:
        return any(fnmatch.fnmatch(rel_path, pat) for pat in self.patterns)


def default_watch_rules(mode: Mode, params: dict | None = None) -> List[WatchRule]:
    """Rules for a development watch session.

    Script changes only re-concatenate, never minify; stylesheet changes
    recompile and prefix; template changes re-render in debug mode.
    """
    if Mode(mode) != Mode.DEVELOPMENT:
        raise WatchModeError(f"Watching is only supported in {Mode.DEVELOPMENT} mode")
    params = params or {}
    return [
        WatchRule("scripts", tuple(watch_patterns(params, "scripts") or ["src/js/*.js"]), "concat"),
        WatchRule(
            "styles",
            tuple(watch_patterns(params, "styles") or ["src/less/*.less"]),
            "stylesheets:development",
        ),
        WatchRule(
            "templates",
            tuple(watch_patterns(params, "templates") or ["src/views/*.jade"]),
            "jade:debug",
        ),
    ]


@dataclass
class _Slot:
    running: bool = False
    pending: bool = False
    runs: int = 0


class Watcher:
    def __init__(
        self,
        rules: List[WatchRule],
        runner: Runner,
        root: Path | None = None,
        on_rebuilt: Optional[Callable[[WatchRule], None]] = None,
        max_workers: int | None = None,
    ):
        self.rules = list(rules)
        self.runner = runner
        self.root = Path(root) if root else None
        self.on_rebuilt = on_rebuilt
        self.last_failure: Optional[WatchRuleFailure] = None
        self.logger = get_logger("assetflow.watcher")
        self._slots: Dict[str, _Slot] = {r.name: _Slot() for r in self.rules}
        self._by_name = {r.name: r for r in self.rules}
        self._cond = threading.Condition()
        self._started = False
        self._stopped = False
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or max(1, len(self.rules)),
            thread_name_prefix="assetflow-watch",
        )

    @property
    def state(self) -> WatchState:
        with self._cond:
            if self._stopped:
                return WatchState.STOPPED
            if not self._started:
                return WatchState.IDLE
            if any(s.running for s in self._slots.values()):
                return WatchState.RUNNING
            return WatchState.WATCHING

    def runs(self, rule_name: str) -> int:
        with self._cond:
            return self._slots[rule_name].runs

    def start(self) -> None:
        registry = self.runner.registry
        if registry is not None:
            for rule in self.rules:
                registry.get(rule.task)
        with self._cond:
            if self._stopped:
                raise RuntimeError("Watcher already stopped")
            self._started = True
        self.logger.info(
            "Watching: %s", ", ".join(f"{r.name} -> {r.task}" for r in self.rules)
        )

    def matches(self, path: str | Path) -> bool:
        rel = self._relative(path)
        return any(r.matches(rel) for r in self.rules)

    def notify(self, path: str | Path) -> List[str]:
        """Handle a change to `path`; returns the names of the rules it triggered."""
        rel = self._relative(path)
        triggered = [r.name for r in self.rules if r.matches(rel)]
        for name in triggered:
            self.trigger(name)
        return triggered

    def trigger(self, rule_name: str) -> None:
        rule = self._by_name[rule_name]
        with self._cond:
            if not self._started or self._stopped:
                return
            slot = self._slots[rule_name]
            if slot.running:
                slot.pending = True
                self.logger.debug("Coalesced change for %s", rule_name)
                return
            slot.running = True
            self._cond.notify_all()
        self._executor.submit(self._drain, rule)

    def _drain(self, rule: WatchRule) -> None:
        slot = self._slots[rule.name]
        try:
            while True:
                self._run_once(rule)
                with self._cond:
                    slot.runs += 1
                    if slot.pending and not self._stopped:
                        slot.pending = False
                        continue
                    # release under the same lock that saw no pending change
                    slot.running = False
                    slot.pending = False
                    self._cond.notify_all()
                    return
        except Exception:
            with self._cond:
                slot.running = False
                slot.pending = False
                self._cond.notify_all()
            self.logger.exception("Watch rule %s crashed", rule.name)
            raise

    def _run_once(self, rule: WatchRule) -> None:
        self.logger.info("Change detected (%s), running %s", rule.name, rule.task)
        try:
            self.runner.run_task(rule.task)
        except ActionFailure as e:
            failure = WatchRuleFailure(rule.name, e)
            self.last_failure = failure
            self.logger.error("%s", failure)
            return
        if self.on_rebuilt is not None:
            self.on_rebuilt(rule)

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until no rule is running. Returns False on timeout."""
        with self._cond:
            return self._cond.wait_for(
                lambda: not any(s.running for s in self._slots.values()), timeout
            )

    def stop(self, wait: bool = True) -> None:
        with self._cond:
            if self._stopped:
                return
            self._stopped = True
            self._cond.notify_all()
        self._executor.shutdown(wait=wait)
        self.logger.info("Watcher stopped")

    def _relative(self, path: str | Path) -> str:
        p = Path(path)
        if self.root is not None and p.is_absolute():
            try:
                p = p.resolve().relative_to(self.root.resolve())
            except ValueError:
                pass
        return p.as_posix()
