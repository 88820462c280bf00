"""
Tool System - the only way the model can touch the workspace.

The model can list and read files, inspect git state, and *request*
command execution. It can never run a command itself: execute_command
only files a pending approval that a human must grant.

Handlers raise domain errors; the registry turns every failure into an
{"error": ...} result so the model sees it and the loop keeps going.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any

from vibecontrol.approval import ApprovalRegistry
from vibecontrol.config import LoopConfig
from vibecontrol.git import GitInspector
from vibecontrol.providers.base import ToolDef
from vibecontrol.types import ToolCall, ToolOutcome
from vibecontrol.workspace import WorkspaceInspector

logger = logging.getLogger(__name__)

ToolHandler = Callable[..., Awaitable[ToolOutcome]]

LIST_WORKSPACE_FILES = "list_workspace_files"
READ_FILE = "read_file"
EXECUTE_COMMAND = "execute_command"
GET_GIT_STATUS = "get_git_status"
GET_GIT_DIFF = "get_git_diff"

# Tools whose dispatch ends autonomous tool use for the request
DANGEROUS_TOOLS = frozenset({EXECUTE_COMMAND})

LANGUAGES = {
    "ts": "typescript",
    "tsx": "typescript",
    "js": "javascript",
    "jsx": "javascript",
    "py": "python",
    "json": "json",
    "md": "markdown",
    "css": "css",
    "html": "html",
    "sh": "shell",
    "yml": "yaml",
    "yaml": "yaml",
    "toml": "toml",
}


@dataclass
class Tool:
    """
    A tool the model can call.

    parameters is the JSON Schema shown to the model; handler is the
    coroutine that does the work.
    """
    name: str
    description: str
    parameters: dict[str, Any]
    handler: ToolHandler

    def to_tool_def(self) -> ToolDef:
        return ToolDef(
            name=self.name,
            description=self.description,
            parameters=self.parameters,
        )

    async def execute(self, arguments: dict[str, Any]) -> ToolOutcome:
        """Run the handler, converting any failure into an error result."""
        try:
            return await self.handler(**arguments)
        except Exception as e:
            logger.error(f"Tool {self.name} failed: {e}")
            return ToolOutcome(result={"error": str(e)}, success=False)


@dataclass
class ToolRegistry:
    """Registry of tools available to the model."""

    _tools: dict[str, Tool] = field(default_factory=dict)

    def register(self, tool: Tool) -> None:
        if tool.name in self._tools:
            logger.warning(f"Overwriting existing tool: {tool.name}")
        self._tools[tool.name] = tool

    def register_function(
        self,
        name: str,
        description: str,
        parameters: dict[str, Any],
        handler: ToolHandler,
    ) -> Tool:
        tool = Tool(name=name, description=description, parameters=parameters, handler=handler)
        self.register(tool)
        return tool

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    async def execute(self, tool_call: ToolCall) -> ToolOutcome:
        """Dispatch a model-requested call. Unknown tools yield an error result."""
        tool = self.get(tool_call.name)
        if tool is None:
            logger.warning(f"Model requested unknown tool: {tool_call.name}")
            return ToolOutcome(result={"error": f"Unknown tool: {tool_call.name}"}, success=False)
        logger.info(f"Executing tool: {tool_call.name}")
        return await tool.execute(tool_call.arguments)

    def get_tool_defs(self) -> list[ToolDef]:
        return [tool.to_tool_def() for tool in self._tools.values()]

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools.keys())

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools


def detect_language(path: str) -> str:
    suffix = PurePath(path).suffix.lstrip(".").lower()
    return LANGUAGES.get(suffix, "plaintext")


def truncate_for_model(content: str, limit: int) -> dict[str, Any]:
    """Cap file content handed to the model and say how much was dropped."""
    total = len(content)
    truncated = total > limit
    return {
        "content": content[:limit] if truncated else content,
        "truncated": truncated,
        "totalChars": total,
        "omittedChars": total - limit if truncated else 0,
    }


def create_workspace_tools(
    inspector: WorkspaceInspector,
    approvals: ApprovalRegistry,
    git: GitInspector,
    config: LoopConfig | None = None,
) -> ToolRegistry:
    """Build the registry of workspace tools exposed to the model."""
    config = config or LoopConfig()
    registry = ToolRegistry()

    async def list_workspace_files(path: str | None = None, depth: int | None = None, **_: Any) -> ToolOutcome:
        tree = [node.to_dict() for node in await inspector.list(path, depth)]
        directory = await asyncio.to_thread(inspector.sandbox.resolve, path)
        root_path = inspector.sandbox.relative(directory)
        return ToolOutcome(
            result=tree,
            artifact={"type": "workspace_tree", "props": {"tree": tree, "rootPath": root_path}},
        )

    async def read_file(path: str, **_: Any) -> ToolOutcome:
        content = await inspector.read(path)
        return ToolOutcome(
            result=truncate_for_model(content, config.read_char_limit),
            artifact={
                "type": "code_panel",
                "props": {
                    "code": content,
                    "language": detect_language(path),
                    "filename": PurePath(path.replace("\\", "/")).name or path,
                },
            },
        )

    async def execute_command(command: str, reason: str = "", cwd: str | None = None, **_: Any) -> ToolOutcome:
        if cwd:
            await asyncio.to_thread(inspector.sandbox.resolve, cwd)
        result = approvals.request("terminal_run", reason, command)
        return ToolOutcome(
            result=result,
            artifact={
                "type": "approval_card",
                "props": {
                    "action": "terminal_run",
                    "reason": reason,
                    "command": command,
                    "cwd": cwd,
                    "request_id": result["request_id"],
                },
            },
        )

    async def get_git_status(cwd: str | None = None, **_: Any) -> ToolOutcome:
        return ToolOutcome(result=await git.status(cwd))

    async def get_git_diff(cwd: str | None = None, **_: Any) -> ToolOutcome:
        return ToolOutcome(result=await git.diff(cwd))

    registry.register_function(
        name=LIST_WORKSPACE_FILES,
        description=(
            "List files and directories in the workspace. Use this when the user asks "
            "about project structure, files, or folder contents."
        ),
        parameters={
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "Directory relative to the workspace root. Omit for the root.",
                },
                "depth": {"type": "number", "description": "Depth to traverse (default: 2)"},
            },
            "required": [],
        },
        handler=list_workspace_files,
    )

    registry.register_function(
        name=READ_FILE,
        description=(
            "Read the contents of a file. Use this when the user asks to see code, "
            "config, or any file content."
        ),
        parameters={
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "File path relative to the workspace root"},
            },
            "required": ["path"],
        },
        handler=read_file,
    )

    registry.register_function(
        name=EXECUTE_COMMAND,
        description=(
            "Execute a terminal command (tests, builds, etc). This only requests "
            "approval; the user must approve before anything runs."
        ),
        parameters={
            "type": "object",
            "properties": {
                "command": {"type": "string", "description": "Command to execute"},
                "reason": {"type": "string", "description": "Why this command is needed"},
                "cwd": {
                    "type": "string",
                    "description": "Working directory relative to the workspace root (optional)",
                },
            },
            "required": ["command", "reason"],
        },
        handler=execute_command,
    )

    registry.register_function(
        name=GET_GIT_STATUS,
        description="Get git status of the repository",
        parameters={
            "type": "object",
            "properties": {
                "cwd": {"type": "string", "description": "Repository path relative to the workspace root"},
            },
            "required": [],
        },
        handler=get_git_status,
    )

    registry.register_function(
        name=GET_GIT_DIFF,
        description="Get git diff of uncommitted changes",
        parameters={
            "type": "object",
            "properties": {
                "cwd": {"type": "string", "description": "Repository path relative to the workspace root"},
            },
            "required": [],
        },
        handler=get_git_diff,
    )

    return registry
