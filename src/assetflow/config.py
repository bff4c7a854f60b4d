from __future__ import annotations

"""Build configuration: defaults, YAML file, .env and environment overrides.

Collaborators receive the merged config dict and read it through the small
accessors below rather than indexing it directly.
"""

import copy
import json
import os
from pathlib import Path
from typing import Any, Dict, List

import yaml
from dotenv import load_dotenv

from .errors import ConfigError


DEFAULT_CONFIG_FILE = "assetflow.yaml"

DEFAULTS: Dict[str, Any] = {
    "project": {
        "name": None,
        "root": ".",
        "src_dir": "src",
        "dist_dir": "dist",
        "runs_dir": None,
    },
    "copy": {
        "exclude": ["**/less/**", "**/views/**"],
    },
    "styles": {
        "entry": "less/style.less",
        "output": "css/style.css",
        "command": ["lessc"],
    },
    "autoprefix": {
        "files": "css/*.css",
        "browsers": [
            "Android 2.3",
            "Android >= 4",
            "Chrome >= 20",
            "Firefox >= 24",
            "Explorer >= 8",
            "iOS >= 6",
            "Opera >= 12",
            "Safari >= 6",
        ],
        "command": ["postcss", "--use", "autoprefixer", "--replace"],
    },
    "scripts": {
        "sources": "js/*.js",
        # interdependent scripts must be listed here in load order
        "order": [],
        "bundle": "js/app.js",
        "banner": "/*! {name} {date} */\n",
        "command": ["uglifyjs"],
    },
    "templates": {
        "dir": "views",
        "ext": ".html",
        "command": ["pug"],
    },
    "server": {
        "port": 3000,
        "hostname": "0.0.0.0",
        "open_url": "http://localhost:{port}",
    },
    "watch": {
        "scripts": ["js/*.js"],
        "styles": ["less/*.less"],
        "templates": ["views/*.jade"],
    },
}


def _get(d: Dict, *keys, default=None):
    cur = d
    for k in keys:
        if not isinstance(cur, dict):
            return default
        cur = cur.get(k)
        if cur is None:
            return default
    return cur


def _merge(base: Dict, override: Dict) -> Dict:
    out = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _merge(out[key], value)
        else:
            out[key] = value
    return out


def load_config(path: str | Path | None = None, root: str | Path | None = None) -> dict:
    """Merge defaults with the YAML file at `path` (if it exists) and the environment."""
    load_dotenv()
    params = copy.deepcopy(DEFAULTS)
    if root is not None:
        params["project"]["root"] = str(root)
    p = Path(path) if path else Path(params["project"]["root"]) / DEFAULT_CONFIG_FILE
    if p.exists():
        try:
            with open(p, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read config {p}: {e}") from e
        if not isinstance(loaded, dict):
            raise ConfigError(f"Config {p} must be a mapping, got {type(loaded).__name__}")
        params = _merge(params, loaded)
    elif path:
        raise ConfigError(f"Config file not found: {p}")

    port = os.getenv("ASSETFLOW_PORT")
    if port:
        try:
            params["server"]["port"] = int(port)
        except ValueError as e:
            raise ConfigError(f"ASSETFLOW_PORT must be an integer: {port!r}") from e
    host = os.getenv("ASSETFLOW_HOST")
    if host:
        params["server"]["hostname"] = host
    return params


def root_dir(p: Dict) -> Path:
    return Path(_get(p, "project", "root", default="."))


def src_dir(p: Dict) -> Path:
    return root_dir(p) / _get(p, "project", "src_dir", default="src")


def dist_dir(p: Dict) -> Path:
    return root_dir(p) / _get(p, "project", "dist_dir", default="dist")


def runs_dir(p: Dict) -> Path | None:
    runs = _get(p, "project", "runs_dir")
    return root_dir(p) / runs if runs else None


def project_name(p: Dict) -> str:
    name = _get(p, "project", "name")
    if name:
        return str(name)
    package_json = root_dir(p) / "package.json"
    if package_json.exists():
        try:
            with open(package_json, "r", encoding="utf-8") as f:
                name = json.load(f).get("name")
        except (OSError, ValueError):
            name = None
        if name:
            return str(name)
    return root_dir(p).resolve().name


def command(p: Dict, section: str) -> List[str]:
    cmd = _get(p, section, "command", default=[])
    if isinstance(cmd, str):
        return cmd.split()
    return list(cmd)


def browsers(p: Dict) -> List[str]:
    return list(_get(p, "autoprefix", "browsers", default=[]))


def bundle_path(p: Dict) -> Path:
    return dist_dir(p) / _get(p, "scripts", "bundle", default="js/app.js")


def server_port(p: Dict) -> int:
    return int(_get(p, "server", "port", default=3000))


def server_host(p: Dict) -> str:
    return str(_get(p, "server", "hostname", default="0.0.0.0"))


def open_url(p: Dict) -> str:
    url = _get(p, "server", "open_url", default="http://localhost:{port}")
    return url.format(port=server_port(p), hostname=server_host(p))


def watch_patterns(p: Dict, category: str) -> List[str]:
    """Watch globs for `category`, relative to the project root."""
    src = _get(p, "project", "src_dir", default="src")
    return [f"{src}/{pat}" for pat in _get(p, "watch", category, default=[])]
