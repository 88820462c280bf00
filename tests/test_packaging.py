"""Tests for the project metadata."""

import re
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent


def test_readme_points_at_project_readme():
    pyproject = (ROOT / "pyproject.toml").read_text(encoding="utf-8")

    match = re.search(r'^readme\s*=\s*"([^"]+)"', pyproject, re.MULTILINE)

    assert match is not None
    assert match.group(1) == "README.md"
    assert "vibecontrol serve" in (ROOT / match.group(1)).read_text(encoding="utf-8")
