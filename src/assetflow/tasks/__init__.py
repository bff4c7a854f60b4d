"""Collaborator adapters live here.

Each module declares functions with `@assetflow.actions.collaborator(name)`;
the Runner looks them up by the name an ActionRef carries. The adapters only
shell out to (or wrap) the real tools; none of them compiles anything itself.

Keep shared helpers here and one concern per module.
"""

from __future__ import annotations

import os
import subprocess
from typing import Dict, List, Optional

from ..errors import CollaboratorError
from ..logging import get_logger


log = get_logger("assetflow.tasks")


def run_command(cmd: List[str], env: Optional[Dict[str, str]] = None) -> str:
    """Run an external tool, returning stdout. Non-zero exit raises CollaboratorError."""
    if not cmd:
        raise CollaboratorError("No command configured")
    full_env = dict(os.environ)
    if env:
        full_env.update(env)
    log.debug("Exec: %s", " ".join(cmd))
    try:
        proc = subprocess.run(
            cmd, capture_output=True, text=True, env=full_env, check=False
        )
    except FileNotFoundError as e:
        raise CollaboratorError(f"Command not found: {cmd[0]}") from e
    if proc.returncode != 0:
        detail = (proc.stderr or proc.stdout or "").strip()
        raise CollaboratorError(f"{cmd[0]} exited with {proc.returncode}: {detail}")
    return proc.stdout
