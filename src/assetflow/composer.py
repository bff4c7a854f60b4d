from __future__ import annotations

"""Declarative task graph for the asset pipeline.

Everything here is data: `compose(mode)` returns the definitions for one mode,
`compose_all()` the definitions for both modes plus the CLI aliases. Nothing is
registered as a side effect; callers hand the list to
`TaskRegistry.from_definitions`.
"""

from typing import Dict, List, TypeVar

from .core import ActionRef, Mode, TaskDefinition, TaskKey, TaskKind, composite


T = TypeVar("T")

# Template rendering configurations. Kept as two named configurations; the
# debug build keeps pretty, annotated markup and the release build strips both.
DEBUG_TEMPLATES = {"pretty": True, "debug": True}
RELEASE_TEMPLATES = {"pretty": False, "debug": False}

CLEAN = TaskDefinition("clean", "Wipe the build directory", action=ActionRef("clean"))
COPY = TaskDefinition(
    "copy", "Copy static sources into the build directory", action=ActionRef("copy")
)
AUTOPREFIX = TaskDefinition(
    "autoprefix", "Add vendor prefixes to compiled css", action=ActionRef("autoprefix")
)
CONCAT = TaskDefinition(
    "concat", "Concatenate scripts without minifying", action=ActionRef("concat")
)
MINIFY = TaskDefinition(
    "minify",
    "Concatenate and minify scripts",
    action=ActionRef("minify", {"mangle": False}),
)
CLEAN_SCRIPTS = TaskDefinition(
    "clean:scripts",
    "Remove per-file scripts, keeping the bundle",
    action=ActionRef("clean_scripts"),
)
JADE_DEBUG = TaskDefinition(
    "jade:debug",
    "Render templates with pretty, debug-annotated markup",
    action=ActionRef("templates", dict(DEBUG_TEMPLATES)),
)
JADE_RELEASE = TaskDefinition(
    "jade:release",
    "Render compact templates with debug output stripped",
    action=ActionRef("templates", dict(RELEASE_TEMPLATES)),
)
SERVE = TaskDefinition(
    "serve", "Serve the build directory over http", action=ActionRef("serve")
)
OPEN = TaskDefinition("open", "Open the served site in a browser", action=ActionRef("open"))
WATCH = TaskDefinition(
    "watch", "Rebuild changed sources until stopped", action=ActionRef("watch")
)
KEEPALIVE = TaskDefinition(
    "express-keepalive",
    "Keep the server process alive",
    action=ActionRef("keepalive"),
)

SHARED: List[TaskDefinition] = [
    CLEAN,
    COPY,
    AUTOPREFIX,
    CONCAT,
    MINIFY,
    CLEAN_SCRIPTS,
    JADE_DEBUG,
    JADE_RELEASE,
    SERVE,
    OPEN,
    WATCH,
    KEEPALIVE,
]

# Per-mode choices. Development keeps scripts readable for debugging,
# production trades that for payload size.
SCRIPT_STEP: Dict[Mode, TaskDefinition] = {
    Mode.DEVELOPMENT: CONCAT,
    Mode.PRODUCTION: MINIFY,
}
TEMPLATE_STEP: Dict[Mode, TaskDefinition] = {
    Mode.DEVELOPMENT: JADE_DEBUG,
    Mode.PRODUCTION: JADE_RELEASE,
}
SERVER_TAIL: Dict[Mode, TaskDefinition] = {
    Mode.DEVELOPMENT: WATCH,
    Mode.PRODUCTION: KEEPALIVE,
}

ALIASES = {
    Mode.DEVELOPMENT.value: TaskKey(TaskKind.MAIN, Mode.DEVELOPMENT),
    Mode.PRODUCTION.value: TaskKey(TaskKind.MAIN, Mode.PRODUCTION),
}
DEFAULT_TASK = "default"


def _for_mode(table: Dict[Mode, T], mode: Mode) -> T:
    try:
        return table[Mode(mode)]
    except (KeyError, ValueError):
        raise ValueError(f"No pipeline variant for mode {mode!r}") from None


def less_task(mode: Mode) -> TaskDefinition:
    return TaskDefinition(
        f"less:{Mode(mode).value}",
        f"Compile less in {Mode(mode).value} mode",
        action=ActionRef("styles", {"compress": mode == Mode.PRODUCTION}),
    )


class PipelineComposer:
    """Wires the mode-specific composite tasks out of the shared leaf tasks."""

    def composites(self, mode: Mode) -> List[TaskDefinition]:
        mode = Mode(mode)
        key = lambda kind: TaskKey(kind, mode)  # noqa: E731
        stylesheets = composite(
            key(TaskKind.STYLESHEETS),
            f"Compiles the stylesheets in {mode} mode",
            [less_task(mode).name, AUTOPREFIX.name],
        )
        scripts = composite(
            key(TaskKind.SCRIPTS),
            f"Compiles the javascript files in {mode} mode",
            [_for_mode(SCRIPT_STEP, mode).name, CLEAN_SCRIPTS.name],
        )
        build = composite(
            key(TaskKind.BUILD),
            "Compiles all of the assets and copies them to the build directory",
            [
                CLEAN.name,
                COPY.name,
                stylesheets.name,
                scripts.name,
                _for_mode(TEMPLATE_STEP, mode).name,
            ],
        )
        server = composite(
            key(TaskKind.SERVER),
            "Serves the build directory and opens it in a browser",
            [SERVE.name, OPEN.name, _for_mode(SERVER_TAIL, mode).name],
        )
        main = composite(
            key(TaskKind.MAIN),
            f"Builds the project and runs a server in {mode} mode",
            [build.name, server.name],
        )
        return [stylesheets, scripts, build, server, main]

    def compose(self, mode: Mode) -> List[TaskDefinition]:
        """All definitions needed to run `main:<mode>`, dependencies first."""
        return list(SHARED) + [less_task(mode)] + self.composites(mode)

    def compose_all(self) -> List[TaskDefinition]:
        """Both modes plus the `development`, `production` and `default` aliases."""
        defs: List[TaskDefinition] = list(SHARED)
        for mode in Mode:
            defs.append(less_task(mode))
            defs.extend(self.composites(mode))
        for alias, target in ALIASES.items():
            defs.append(composite(alias, f"Alias for {target}", [target]))
        defs.append(
            composite(DEFAULT_TASK, f"Alias for {Mode.DEVELOPMENT}", [Mode.DEVELOPMENT.value])
        )
        return defs
