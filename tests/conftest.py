# tests/conftest.py

from __future__ import annotations

from pathlib import Path

import pytest

from assetflow.composer import PipelineComposer
from assetflow.config import load_config
from assetflow.core import TaskRegistry

from .fakes import RecordingCollaborators


@pytest.fixture()
def registry() -> TaskRegistry:
    """Registry with both modes and the CLI aliases."""
    return TaskRegistry.from_definitions(PipelineComposer().compose_all())


@pytest.fixture()
def collaborators() -> RecordingCollaborators:
    return RecordingCollaborators()


@pytest.fixture()
def params(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> dict:
    """Default config rooted at a temporary project directory."""
    monkeypatch.delenv("ASSETFLOW_PORT", raising=False)
    monkeypatch.delenv("ASSETFLOW_HOST", raising=False)
    return load_config(root=tmp_path)
