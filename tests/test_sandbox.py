"""
Tests for the path sandbox.

Every path a tool receives is untrusted. These tests check that the
lexical phase rejects absolute paths and parent references, and that
the canonical phase catches symlinks pointing outside the root.
"""

import os

import pytest

from vibecontrol.errors import NotFound, PathViolation
from vibecontrol.sandbox import PathSandbox


class TestLexicalChecks:
    """Rejections that happen before the filesystem is consulted."""

    @pytest.mark.parametrize("raw", ["/etc/passwd", "\\windows\\system32", "C:\\Windows", "C:/x"])
    def test_absolute_paths_rejected(self, sandbox, raw):
        with pytest.raises(PathViolation, match="Absolute"):
            sandbox.resolve(raw)

    @pytest.mark.parametrize("raw", ["..", "../etc", "src/../../x", "src\\..\\..\\x", "src/.."])
    def test_parent_references_rejected(self, sandbox, raw):
        with pytest.raises(PathViolation, match="Parent"):
            sandbox.resolve(raw)

    def test_parent_reference_rejected_even_if_target_missing(self, sandbox):
        """The check is lexical, so a missing target still reports a violation."""
        with pytest.raises(PathViolation):
            sandbox.resolve("../does-not-exist")

    @pytest.mark.parametrize("raw", ["src/\x00x", "\x00", "a\x00b"])
    def test_nul_byte_rejected(self, sandbox, raw):
        with pytest.raises(PathViolation, match="Invalid character"):
            sandbox.resolve(raw)

    def test_dotted_names_are_not_parent_references(self, sandbox, workspace):
        (workspace / "..hidden").write_text("x")
        assert sandbox.resolve("..hidden") == workspace.resolve() / "..hidden"


class TestResolution:
    """Successful resolution and the NotFound distinction."""

    def test_empty_path_defaults_to_root(self, sandbox, workspace):
        assert sandbox.resolve() == workspace.resolve()
        assert sandbox.resolve("") == workspace.resolve()
        assert sandbox.resolve("   ") == workspace.resolve()

    def test_empty_path_rejected_without_default(self, sandbox):
        with pytest.raises(PathViolation, match="required"):
            sandbox.resolve("", allow_default=False)

    def test_nested_file(self, sandbox, workspace):
        assert sandbox.resolve("src/main.py") == workspace.resolve() / "src" / "main.py"

    def test_dot_segments_stay_inside(self, sandbox, workspace):
        assert sandbox.resolve("./src/./main.py") == workspace.resolve() / "src" / "main.py"

    def test_missing_path_is_not_found(self, sandbox):
        with pytest.raises(NotFound):
            sandbox.resolve("src/missing.py")

    def test_not_found_is_not_a_violation(self, sandbox):
        with pytest.raises(NotFound) as exc_info:
            sandbox.resolve("nope")
        assert not isinstance(exc_info.value, PathViolation)

    def test_relative_display(self, sandbox, workspace):
        assert sandbox.relative(sandbox.root) == "."
        assert sandbox.relative(sandbox.resolve("src")) == "src"

    def test_unresolvable_path_is_a_violation(self, sandbox, monkeypatch):
        def broken_realpath(path, *args, **kwargs):
            raise OSError("too many levels of symbolic links")

        monkeypatch.setattr(os.path, "realpath", broken_realpath)

        with pytest.raises(PathViolation, match="Cannot resolve"):
            sandbox.resolve("src/main.py")


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
class TestSymlinks:
    """The canonical re-check is the authoritative one."""

    def test_symlink_escape_rejected(self, sandbox, workspace, tmp_path):
        outside = tmp_path / "secret.txt"
        outside.write_text("top secret")
        (workspace / "leak").symlink_to(outside)

        with pytest.raises(PathViolation, match="escapes"):
            sandbox.resolve("leak")

    def test_symlinked_directory_escape_rejected(self, sandbox, workspace, tmp_path):
        outside = tmp_path / "elsewhere"
        outside.mkdir()
        (outside / "data.txt").write_text("x")
        (workspace / "link").symlink_to(outside, target_is_directory=True)

        with pytest.raises(PathViolation):
            sandbox.resolve("link/data.txt")

    def test_dangling_symlink_outside_rejected(self, sandbox, workspace, tmp_path):
        (workspace / "dangling").symlink_to(tmp_path / "nowhere")

        with pytest.raises(PathViolation):
            sandbox.resolve("dangling")

    def test_symlink_within_root_allowed(self, sandbox, workspace):
        (workspace / "alias.py").symlink_to(workspace / "src" / "main.py")

        assert sandbox.resolve("alias.py") == workspace.resolve() / "src" / "main.py"

    def test_root_itself_may_be_a_symlink(self, workspace, tmp_path):
        link = tmp_path / "root-link"
        link.symlink_to(workspace, target_is_directory=True)

        sandbox = PathSandbox(link)

        assert sandbox.root == workspace.resolve()
        assert sandbox.resolve("README.md") == workspace.resolve() / "README.md"
