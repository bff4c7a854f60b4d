"""Static file server, browser launcher and keepalive.

The server runs on a background werkzeug thread so the rest of the sequence
(open, watch / keepalive) can proceed. With live reload on, html responses get
a small polling script and `/__livereload` reports a generation counter that
the watcher bumps after every successful rebuild.
"""

from __future__ import annotations

import threading
import webbrowser
from pathlib import Path
from typing import List, Optional

from flask import Flask, Response, abort, jsonify, send_from_directory
from werkzeug.security import safe_join
from werkzeug.serving import make_server

from ..actions import ActionContext, collaborator
from ..config import _get, dist_dir, open_url, root_dir, server_host, server_port
from ..logging import get_logger


log = get_logger("assetflow.tasks.server")

LIVERELOAD_PATH = "/__livereload"
LIVERELOAD_SNIPPET = (
    "<script>(function(){var g=null;setInterval(function(){"
    "fetch('" + LIVERELOAD_PATH + "').then(function(r){return r.json()})"
    ".then(function(d){if(g!==null&&d.generation!==g){location.reload()}"
    "g=d.generation})},1000)})();</script>"
)


class LiveReload:
    def __init__(self) -> None:
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def bump(self, *_args) -> None:
        with self._lock:
            self._generation += 1


def _inject(html: str) -> str:
    idx = html.lower().rfind("</body>")
    if idx == -1:
        return html + LIVERELOAD_SNIPPET
    return html[:idx] + LIVERELOAD_SNIPPET + html[idx:]


def create_app(bases: List[Path], live_reload: Optional[LiveReload] = None) -> Flask:
    app = Flask(__name__, static_folder=None)

    @app.route(LIVERELOAD_PATH)
    def livereload():
        if live_reload is None:
            abort(404)
        return jsonify({"generation": live_reload.generation})

    @app.route("/", defaults={"path": ""})
    @app.route("/<path:path>")
    def static_files(path: str):
        for base in bases:
            candidate = safe_join(str(base), path) if path else str(base)
            if candidate is None:
                continue
            target = Path(candidate)
            if target.is_dir():
                target = target / "index.html"
            if not target.is_file():
                continue
            if live_reload is not None and target.suffix == ".html":
                html = target.read_text(encoding="utf-8")
                return Response(_inject(html), mimetype="text/html")
            return send_from_directory(str(target.parent), target.name)
        abort(404)

    return app


@collaborator("serve")
def serve(ctx: ActionContext):
    p = ctx.params
    bases = [root_dir(p) / b for b in _get(p, "server", "bases", default=[])] or [dist_dir(p)]
    live_reload = LiveReload() if _get(p, "server", "livereload", default=True) else None
    app = create_app(bases, live_reload)
    server = make_server(server_host(p), server_port(p), app, threaded=True)
    thread = threading.Thread(target=server.serve_forever, name="assetflow-serve", daemon=True)
    thread.start()
    ctx.services["server"] = server
    if live_reload is not None:
        ctx.services["livereload"] = live_reload
    ctx.cleanups.append(server.shutdown)
    log.info("Serving %s on http://%s:%d", ", ".join(map(str, bases)), server_host(p), server_port(p))


@collaborator("open")
def open_browser(ctx: ActionContext):
    url = open_url(ctx.params)
    if not webbrowser.open(url):
        log.warning("No browser available to open %s", url)


@collaborator("keepalive")
def keepalive(ctx: ActionContext):
    """Block until the run is stopped; there is no watch loop in production."""
    log.info("Server running, press Ctrl+C to stop")
    while not ctx.stop_event.wait(0.5):
        pass
