"""
Workspace Inspector - read-only access to the sandboxed workspace.

Listing prefers partial results: a subtree that cannot be read simply
comes back empty. Reading returns the whole file; any truncation for the
model is the caller's policy.
"""

from __future__ import annotations

import asyncio
import logging
import os
import stat
from pathlib import Path

from vibecontrol.errors import NotFound
from vibecontrol.sandbox import PathSandbox
from vibecontrol.types import FileNode, NodeKind

logger = logging.getLogger(__name__)

DEFAULT_DEPTH = 2
MAX_DEPTH = 10

# Dependency caches skipped by convention, in addition to hidden entries
SKIPPED_NAMES = frozenset({"node_modules", "__pycache__"})


class WorkspaceInspector:
    """Lists and reads files under the workspace root."""

    def __init__(self, sandbox: PathSandbox) -> None:
        self.sandbox = sandbox

    async def list(self, path: str | None = None, depth: int | None = None) -> list[FileNode]:
        """
        List directory entries up to depth levels below path.

        Args:
            path: Directory relative to the root (default: the root)
            depth: Levels to traverse (default 2, capped at MAX_DEPTH)
        """
        levels = DEFAULT_DEPTH if depth is None else max(0, min(int(depth), MAX_DEPTH))
        return await asyncio.to_thread(self._list, path, levels)

    async def read(self, path: str) -> str:
        """Read a file's full text. A path is mandatory."""
        return await asyncio.to_thread(self._read, path)

    def _list(self, path: str | None, levels: int) -> list[FileNode]:
        directory = self.sandbox.resolve(path)
        if not directory.is_dir():
            raise NotFound(f"Not a directory: {path}")
        return build_tree(directory, levels)

    def _read(self, path: str) -> str:
        target = self.sandbox.resolve(path, allow_default=False)
        if not target.is_file():
            raise NotFound(f"Not a file: {path}")
        return target.read_text(encoding="utf-8", errors="replace")


def build_tree(directory: Path, depth: int, current: int = 0) -> list[FileNode]:
    """Build the listing tree for directory, swallowing per-subtree read errors."""
    if current >= depth:
        return []

    try:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        logger.debug(f"Cannot list {directory}: {e}")
        return []

    nodes: list[FileNode] = []
    for entry in entries:
        if entry.name.startswith(".") or entry.name in SKIPPED_NAMES:
            continue
        try:
            info = entry.stat()
        except OSError:
            # Broken symlink or vanished entry
            continue

        if stat.S_ISDIR(info.st_mode):
            children: list[FileNode] = []
            if not entry.is_symlink():
                children = build_tree(Path(entry.path), depth, current + 1)
            nodes.append(FileNode(name=entry.name, kind=NodeKind.DIRECTORY, children=children))
        else:
            nodes.append(FileNode(name=entry.name, kind=NodeKind.FILE, size=info.st_size))
    return nodes
