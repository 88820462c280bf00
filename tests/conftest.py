"""Shared fixtures for VibeControl tests."""

from pathlib import Path

import pytest

from vibecontrol.approval import ApprovalRegistry
from vibecontrol.config import ApprovalConfig
from vibecontrol.sandbox import PathSandbox

from fakes import FakeClock


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A small project tree under a fresh root."""
    root = tmp_path / "project"
    (root / "src").mkdir(parents=True)
    (root / "src" / "main.py").write_text("print('hello')\n")
    (root / "src" / "util.ts").write_text("export const x = 1;\n")
    (root / "README.md").write_text("# Project\n")
    (root / ".git").mkdir()
    (root / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
    (root / "node_modules" / "left-pad").mkdir(parents=True)
    return root


@pytest.fixture
def sandbox(workspace: Path) -> PathSandbox:
    return PathSandbox(workspace)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def approvals(clock: FakeClock) -> ApprovalRegistry:
    return ApprovalRegistry(ApprovalConfig(), clock=clock)
