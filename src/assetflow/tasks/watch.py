from __future__ import annotations

from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..actions import ActionContext, collaborator
from ..config import root_dir
from ..core import Mode
from ..digests import DigestTracker
from ..errors import WatchModeError
from ..logging import get_logger
from ..watcher import Watcher, default_watch_rules


log = get_logger("assetflow.tasks.watch")

RELEVANT_EVENTS = ("created", "modified", "moved", "deleted")


class ChangeHandler(FileSystemEventHandler):
    """Forwards watchdog events to a Watcher, dropping ones that changed nothing."""

    def __init__(self, watcher: Watcher):
        super().__init__()
        self.watcher = watcher
        self.digests = DigestTracker()

    def on_any_event(self, event: FileSystemEvent):
        if event.is_directory or event.event_type not in RELEVANT_EVENTS:
            return
        if event.event_type == "moved":
            self.digests.forget(Path(_decode(event.src_path)))
        path = _decode(getattr(event, "dest_path", "") or event.src_path)
        if not self.watcher.matches(path):
            return
        if event.event_type == "deleted":
            # a file re-created with the same content still counts as a change
            self.digests.forget(Path(path))
        elif not self.digests.changed(Path(path)):
            return
        self.watcher.notify(path)


def _decode(path) -> str:
    return path.decode() if isinstance(path, bytes) else path


@collaborator("watch")
def watch(ctx: ActionContext):
    """Rebuild on source changes until the run is stopped."""
    mode = ctx.mode or Mode.DEVELOPMENT
    if mode != Mode.DEVELOPMENT:
        raise WatchModeError(f"Watching is only supported in {Mode.DEVELOPMENT} mode")
    if ctx.runner is None:
        raise RuntimeError("watch needs a runner to re-run tasks")
    root = root_dir(ctx.params)
    live_reload = ctx.services.get("livereload")
    watcher = Watcher(
        default_watch_rules(mode, ctx.params),
        ctx.runner,
        root=root,
        on_rebuilt=live_reload.bump if live_reload is not None else None,
    )
    watcher.start()
    observer = Observer()
    observer.schedule(ChangeHandler(watcher), str(root), recursive=True)
    observer.start()
    try:
        while not ctx.stop_event.wait(0.5):
            pass
    finally:
        observer.stop()
        observer.join()
        watcher.stop()
