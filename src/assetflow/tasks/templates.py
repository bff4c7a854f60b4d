from __future__ import annotations

import json

from ..actions import ActionContext, collaborator
from ..config import _get, command, dist_dir, src_dir
from ..logging import get_logger
from . import run_command


log = get_logger("assetflow.tasks.templates")


@collaborator("templates")
def render_templates(ctx: ActionContext, pretty: bool = False, debug: bool = False):
    """Render the views directory to html, passing `pretty` and `debug` as locals."""
    p = ctx.params
    views = src_dir(p) / _get(p, "templates", "dir", default="views")
    if not views.is_dir():
        raise FileNotFoundError(f"Templates directory not found: {views}")
    out = dist_dir(p)
    out.mkdir(parents=True, exist_ok=True)
    ext = _get(p, "templates", "ext", default=".html").lstrip(".")
    cmd = command(p, "templates") + [
        str(views),
        "--out",
        str(out),
        "--extension",
        ext,
        "--obj",
        json.dumps({"pretty": pretty, "debug": debug}),
    ]
    if pretty:
        cmd.append("--pretty")
    run_command(cmd)
    log.info("Rendered %s (pretty=%s, debug=%s)", views, pretty, debug)
