from __future__ import annotations

import json
import os
import sys
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

from .actions import ActionContext, ActionTable
from .core import Mode, TaskDefinition, TaskRegistry, expand
from .errors import ActionFailure, UnknownCollaboratorError
from .logging import detach_file_handlers, get_logger


@dataclass
class RunReport:
    target: str
    completed: List[str] = field(default_factory=list)
    failed: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failed is None


class Runner:
    """Executes an expanded task sequence strictly in order.

    The first failing action aborts the rest of the sequence with an
    ActionFailure naming the task. Files written by earlier tasks are left
    in place.
    """

    def __init__(
        self,
        actions: ActionTable,
        params: dict | None = None,
        registry: TaskRegistry | None = None,
        mode: Mode | None = None,
        runs_dir: Path | None = None,
    ):
        self.actions = actions
        self.registry = registry
        self.runs_dir = runs_dir
        self.context = ActionContext(
            params=params or {}, registry=registry, mode=mode, runner=self
        )

    def run_task(self, name: str) -> RunReport:
        if self.registry is None:
            raise ValueError("Runner has no registry to expand task names against")
        return self.run(expand(self.registry, name), target=name)

    def run(self, sequence: Iterable[TaskDefinition], target: str = "run") -> RunReport:
        sequence = list(sequence)
        report = RunReport(target=target)
        run_id = f"{time.strftime('%Y%m%d-%H%M%S')}-{uuid.uuid4().hex[:6]}"
        run_dir = self._run_dir(target, run_id)
        run_logger = get_logger(
            f"assetflow.run.{target}",
            log_file=run_dir / "run.log" if run_dir is not None else None,
        )
        state = {
            "target": target,
            "run_id": run_id,
            "steps": [],
            "python": sys.version,
        }
        try:
            run_logger.info("Selected steps: %s", " → ".join(d.name for d in sequence))
            for defn in sequence:
                if defn.action is None:
                    continue
                step_logger = get_logger(f"{run_logger.name}.{defn.name}")
                try:
                    fn = self.actions.get(defn.action.collaborator)
                    if fn is None:
                        raise UnknownCollaboratorError(defn.action.collaborator)
                    step_logger.info("Run: %s", defn.name)
                    fn(self.context, **defn.action.options)
                except Exception as e:  # noqa: BLE001
                    step_logger.error("Step failed (%s): %s", defn.name, e)
                    report.failed = defn.name
                    state["steps"].append(
                        {"name": defn.name, "status": "error", "error": str(e)}
                    )
                    _write_state(run_dir, state)
                    raise ActionFailure(defn.name, e) from e
                report.completed.append(defn.name)
                state["steps"].append({"name": defn.name, "status": "ok"})
                _write_state(run_dir, state)
        finally:
            detach_file_handlers(run_logger)
        return report

    def _run_dir(self, target: str, run_id: str) -> Path | None:
        if self.runs_dir is None:
            return None
        run_dir = Path(self.runs_dir) / target.replace(":", "-") / run_id
        os.makedirs(run_dir, exist_ok=True)
        return run_dir


def _write_state(run_dir: Path | None, state: dict) -> None:
    if run_dir is None:
        return
    with open(run_dir / "state.json", "w", encoding="utf-8") as f:
        json.dump(state, f, indent=2)
