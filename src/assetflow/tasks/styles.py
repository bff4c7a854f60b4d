from __future__ import annotations

from ..actions import ActionContext, collaborator
from ..config import _get, browsers, command, dist_dir, src_dir
from ..logging import get_logger
from . import run_command


log = get_logger("assetflow.tasks.styles")


@collaborator("styles")
def compile_styles(ctx: ActionContext, compress: bool = False):
    """Compile the less entry point; `compress` asks for minified css."""
    p = ctx.params
    source = src_dir(p) / _get(p, "styles", "entry", default="less/style.less")
    output = dist_dir(p) / _get(p, "styles", "output", default="css/style.css")
    if not source.exists():
        raise FileNotFoundError(f"Stylesheet entry not found: {source}")
    output.parent.mkdir(parents=True, exist_ok=True)
    cmd = command(p, "styles")
    if compress:
        cmd.append("--clean-css")
    run_command(cmd + [str(source), str(output)])
    log.info("Compiled %s -> %s", source, output)


@collaborator("autoprefix")
def autoprefix(ctx: ActionContext):
    """Prefix compiled css in place for the configured browser list."""
    p = ctx.params
    pattern = _get(p, "autoprefix", "files", default="css/*.css")
    files = sorted(str(f) for f in dist_dir(p).glob(pattern) if f.is_file())
    if not files:
        log.warning("No css matched %s, nothing to prefix", pattern)
        return
    run_command(command(p, "autoprefix") + files, env={"BROWSERSLIST": ", ".join(browsers(p))})
    log.info("Prefixed %d file(s)", len(files))
