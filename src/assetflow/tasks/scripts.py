"""Script bundling.

Development concatenates sources so the bundle stays readable; production
hands the same ordered list to uglifyjs. Either way the bundle lands at the
configured `scripts.bundle` path.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Dict, List

from ..actions import ActionContext, collaborator
from ..config import _get, bundle_path, command, project_name, src_dir
from ..logging import get_logger
from . import run_command


log = get_logger("assetflow.tasks.scripts")


def script_sources(p: Dict) -> List[Path]:
    """Source scripts in load order: `scripts.order` first, then the rest sorted."""
    src = src_dir(p)
    pattern = _get(p, "scripts", "sources", default="js/*.js")
    bundle_name = Path(_get(p, "scripts", "bundle", default="js/app.js")).as_posix()
    ordered: List[Path] = []
    seen = set()
    for rel in _get(p, "scripts", "order", default=[]):
        path = src / rel
        if not path.exists():
            raise FileNotFoundError(f"Ordered script not found: {path}")
        ordered.append(path)
        seen.add(path.resolve())
    for path in sorted(src.glob(pattern)):
        if path.resolve() in seen or path.relative_to(src).as_posix() == bundle_name:
            continue
        ordered.append(path)
    return ordered


def render_banner(p: Dict) -> str:
    template = _get(p, "scripts", "banner", default="/*! {name} {date} */\n")
    return template.format(name=project_name(p), date=time.strftime("%d-%m-%Y"))


@collaborator("concat")
def concat(ctx: ActionContext):
    sources = script_sources(ctx.params)
    out = bundle_path(ctx.params)
    out.parent.mkdir(parents=True, exist_ok=True)
    chunks = [s.read_text(encoding="utf-8") for s in sources]
    out.write_text("\n".join(chunks), encoding="utf-8")
    log.info("Concatenated %d script(s) into %s", len(sources), out)


@collaborator("minify")
def minify(ctx: ActionContext, mangle: bool = False):
    sources = script_sources(ctx.params)
    if not sources:
        raise FileNotFoundError("No scripts to minify")
    out = bundle_path(ctx.params)
    out.parent.mkdir(parents=True, exist_ok=True)
    cmd = command(ctx.params, "scripts") + [str(s) for s in sources]
    cmd.append("--compress")
    if mangle:
        cmd.append("--mangle")
    cmd += ["--preamble", render_banner(ctx.params).rstrip("\n"), "--output", str(out)]
    run_command(cmd)
    log.info("Minified %d script(s) into %s", len(sources), out)
