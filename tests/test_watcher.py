# tests/test_watcher.py

from __future__ import annotations

import threading

import pytest

from assetflow.composer import PipelineComposer
from assetflow.core import Mode, TaskRegistry
from assetflow.errors import UnknownTaskError, WatchModeError
from assetflow.runner import Runner
from assetflow.watcher import Watcher, WatchRule, WatchState, default_watch_rules


TIMEOUT = 5


@pytest.fixture()
def dev_registry() -> TaskRegistry:
    return TaskRegistry.from_definitions(PipelineComposer().compose(Mode.DEVELOPMENT))


class BlockingScripts:
    """Fake `concat` collaborator that blocks until released."""

    def __init__(self) -> None:
        self.started = threading.Event()
        self.release = threading.Event()
        self.calls = 0
        self._lock = threading.Lock()

    def __call__(self, ctx, **options) -> None:
        with self._lock:
            self.calls += 1
        self.started.set()
        assert self.release.wait(TIMEOUT)


def noop(ctx, **options) -> None:
    pass


def make_watcher(registry: TaskRegistry, table: dict, **kwargs) -> Watcher:
    runner = Runner(table, registry=registry, mode=Mode.DEVELOPMENT)
    watcher = Watcher(default_watch_rules(Mode.DEVELOPMENT), runner, **kwargs)
    watcher.start()
    return watcher


def test_default_rules_map_to_development_tasks() -> None:
    rules = {r.name: r for r in default_watch_rules(Mode.DEVELOPMENT)}
    assert rules["scripts"].task == "concat"
    assert rules["styles"].task == "stylesheets:development"
    assert rules["templates"].task == "jade:debug"
    assert rules["scripts"].matches("src/js/app.js")
    assert not rules["scripts"].matches("src/less/style.less")


def test_watching_is_development_only() -> None:
    with pytest.raises(WatchModeError):
        default_watch_rules(Mode.PRODUCTION)


def test_rules_follow_configured_source_dir(params) -> None:
    params["project"]["src_dir"] = "assets"
    rules = {r.name: r for r in default_watch_rules(Mode.DEVELOPMENT, params)}
    assert rules["styles"].patterns == ("assets/less/*.less",)


def test_state_machine(dev_registry) -> None:
    scripts = BlockingScripts()
    runner = Runner({"concat": scripts}, registry=dev_registry)
    watcher = Watcher(default_watch_rules(Mode.DEVELOPMENT), runner)
    assert watcher.state == WatchState.IDLE

    watcher.start()
    assert watcher.state == WatchState.WATCHING

    watcher.notify("src/js/a.js")
    assert scripts.started.wait(TIMEOUT)
    assert watcher.state == WatchState.RUNNING

    scripts.release.set()
    assert watcher.wait_idle(TIMEOUT)
    assert watcher.state == WatchState.WATCHING

    watcher.stop()
    assert watcher.state == WatchState.STOPPED
    watcher.notify("src/js/a.js")
    assert watcher.runs("scripts") == 1


def test_changes_during_a_run_coalesce_into_one_follow_up(dev_registry) -> None:
    scripts = BlockingScripts()
    watcher = make_watcher(dev_registry, {"concat": scripts})

    watcher.notify("src/js/a.js")
    assert scripts.started.wait(TIMEOUT)
    watcher.notify("src/js/a.js")
    watcher.notify("src/js/b.js")
    scripts.release.set()

    assert watcher.wait_idle(TIMEOUT)
    assert scripts.calls == 2
    assert watcher.runs("scripts") == 2
    watcher.stop()


def test_other_rules_run_while_one_is_in_flight(dev_registry) -> None:
    scripts = BlockingScripts()
    styled = threading.Event()

    def styles(ctx, **options) -> None:
        styled.set()

    watcher = make_watcher(
        dev_registry, {"concat": scripts, "styles": styles, "autoprefix": noop}
    )
    watcher.notify("src/js/a.js")
    assert scripts.started.wait(TIMEOUT)

    assert watcher.notify("src/less/style.less") == ["styles"]
    assert styled.wait(TIMEOUT)
    assert not scripts.release.is_set()

    scripts.release.set()
    assert watcher.wait_idle(TIMEOUT)
    assert watcher.runs("styles") == 1
    watcher.stop()


def test_failed_rebuild_keeps_watching(dev_registry) -> None:
    def broken(ctx, **options) -> None:
        raise RuntimeError("bad template")

    rebuilt = []
    watcher = make_watcher(
        dev_registry, {"templates": broken, "concat": noop}, on_rebuilt=rebuilt.append
    )
    watcher.notify("src/views/index.jade")
    assert watcher.wait_idle(TIMEOUT)

    assert watcher.state == WatchState.WATCHING
    assert watcher.last_failure is not None
    assert watcher.last_failure.rule_name == "templates"
    assert watcher.last_failure.failure.task_name == "jade:debug"
    assert rebuilt == []

    watcher.notify("src/js/a.js")
    assert watcher.wait_idle(TIMEOUT)
    assert [r.name for r in rebuilt] == ["scripts"]
    watcher.stop()


def test_absolute_paths_are_matched_relative_to_root(dev_registry, tmp_path) -> None:
    watcher = make_watcher(dev_registry, {"concat": noop}, root=tmp_path)
    assert watcher.matches(tmp_path / "src" / "js" / "a.js")
    assert not watcher.matches(tmp_path / "dist" / "js" / "app.js")
    assert watcher.notify(tmp_path / "README.md") == []
    watcher.stop()


def test_start_rejects_rules_for_unknown_tasks(dev_registry) -> None:
    runner = Runner({}, registry=dev_registry)
    watcher = Watcher([WatchRule("x", ("*.x",), "nope")], runner)
    with pytest.raises(UnknownTaskError):
        watcher.start()
    watcher.stop()


class PausingCondition:
    """Wraps the watcher's condition and parks the first worker that leaves it."""

    def __init__(self, cond: threading.Condition) -> None:
        self._cond = cond
        self.paused = threading.Event()
        self.resume = threading.Event()
        self._armed = True

    def __enter__(self):
        return self._cond.__enter__()

    def __exit__(self, *exc):
        result = self._cond.__exit__(*exc)
        if self._armed and threading.current_thread().name.startswith("assetflow-watch"):
            self._armed = False
            self.paused.set()
            assert self.resume.wait(TIMEOUT)
        return result

    def __getattr__(self, name):
        return getattr(self._cond, name)


def test_change_right_after_a_run_finishes_is_not_lost(dev_registry) -> None:
    calls = []
    watcher = make_watcher(dev_registry, {"concat": lambda ctx, **o: calls.append(1)})
    cond = PausingCondition(watcher._cond)
    watcher._cond = cond

    watcher.notify("src/js/a.js")
    # the worker is parked just after its post-run bookkeeping
    assert cond.paused.wait(TIMEOUT)
    watcher.notify("src/js/a.js")
    cond.resume.set()

    assert watcher.wait_idle(TIMEOUT)
    assert len(calls) == 2
    assert watcher.runs("scripts") == 2
    watcher.stop()
