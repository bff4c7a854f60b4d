"""Output tree housekeeping: clean, copy and script cleanup."""

from __future__ import annotations

import fnmatch
import os
import shutil
from pathlib import Path
from typing import Iterable

from ..actions import ActionContext, collaborator
from ..config import _get, bundle_path, dist_dir, src_dir
from ..logging import get_logger


log = get_logger("assetflow.tasks.files")


def _excluded(rel: str, patterns: Iterable[str]) -> bool:
    # "**/less/**" should also match "less/..." at the top of the tree
    return any(
        fnmatch.fnmatch(rel, pat) or fnmatch.fnmatch("/" + rel, pat) for pat in patterns
    )


@collaborator("clean")
def clean(ctx: ActionContext):
    dist = dist_dir(ctx.params)
    if dist.exists():
        shutil.rmtree(dist)
        log.info("Removed %s", dist)


@collaborator("copy")
def copy_static(ctx: ActionContext):
    """Copy the source tree into the output tree, minus excluded globs."""
    src = src_dir(ctx.params)
    dest = dist_dir(ctx.params)
    excludes = _get(ctx.params, "copy", "exclude", default=[])
    if not src.is_dir():
        raise FileNotFoundError(f"Source directory not found: {src}")
    copied = 0
    for root, _, files in os.walk(src):
        for file in files:
            p = Path(root) / file
            rel = p.relative_to(src).as_posix()
            if _excluded(rel, excludes):
                continue
            target = dest / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(p, target)
            copied += 1
    log.info("Copied %d file(s) to %s", copied, dest)


@collaborator("clean_scripts")
def clean_scripts(ctx: ActionContext):
    """Remove the per-file scripts copied into the output tree, keeping the bundle."""
    dist = dist_dir(ctx.params)
    pattern = _get(ctx.params, "scripts", "sources", default="js/*.js")
    bundle = bundle_path(ctx.params).resolve()
    for p in sorted(dist.glob(pattern)):
        if p.is_file() and p.resolve() != bundle:
            p.unlink()
            log.debug("Removed %s", p)
