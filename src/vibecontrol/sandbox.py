"""
Path Sandbox - confines every tool path to the workspace root.

Resolution happens in two phases. The lexical phase rejects absolute
paths and parent references without touching the filesystem. The
canonical phase resolves symlinks and re-checks containment; this second
check is the authoritative one because a symlink inside the root can
point anywhere.
"""

import logging
import os
import re
from pathlib import Path, PureWindowsPath

from vibecontrol.errors import NotFound, PathViolation

logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[\\/]+")


class PathSandbox:
    """Resolves untrusted relative paths against a single workspace root."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).expanduser().resolve()

    def resolve(self, raw: str | None = None, *, allow_default: bool = True) -> Path:
        """
        Turn an untrusted path into an absolute path on or under the root.

        Args:
            raw: Caller-supplied path, relative to the root. Empty or None
                means the root itself.
            allow_default: When False an empty path is rejected instead of
                defaulting to the root (e.g. reading a file).

        Raises:
            PathViolation: absolute path, '..' segment, or escape via symlink
            NotFound: the path is inside the root but does not exist
        """
        if raw is None or str(raw).strip() == "":
            if not allow_default:
                raise PathViolation("A path is required")
            return self.root

        raw = str(raw)
        if "\x00" in raw:
            raise PathViolation(f"Invalid character in path: {raw!r}")
        if self._is_absolute(raw):
            raise PathViolation(f"Absolute paths are not allowed: {raw}")
        if ".." in _SEPARATORS.split(raw):
            raise PathViolation(f"Parent references are not allowed: {raw}")

        candidate = self.root / raw
        if not self._contains(os.path.normpath(candidate)):
            raise PathViolation(f"Path escapes the workspace: {raw}")

        # realpath follows symlinks even when the final target is missing
        try:
            canonical = Path(os.path.realpath(candidate))
        except (OSError, ValueError) as e:
            raise PathViolation(f"Cannot resolve path: {raw!r}") from e
        if not self._contains(canonical):
            logger.warning(f"Blocked symlink escape: {raw} -> {canonical}")
            raise PathViolation(f"Path escapes the workspace: {raw}")

        if not canonical.exists():
            raise NotFound(f"File not found: {raw}")
        return canonical

    def relative(self, path: Path) -> str:
        """Display form of a resolved path, relative to the root."""
        rel = os.path.relpath(path, self.root)
        return "." if rel == os.curdir else rel

    def _contains(self, path: str | Path) -> bool:
        rel = os.path.relpath(path, self.root)
        if os.path.isabs(rel):
            return False
        return rel != os.pardir and not rel.startswith(os.pardir + os.sep)

    @staticmethod
    def _is_absolute(raw: str) -> bool:
        if raw.startswith(("/", "\\")) or os.path.isabs(raw):
            return True
        windows = PureWindowsPath(raw)
        return bool(windows.drive) or windows.is_absolute()
