"""
VibeControl - a workspace agent whose dangerous actions need a human.

The model can list and read files and inspect git state inside one
sandboxed workspace root. It can only *ask* to run commands: every
command needs a human grant, which yields a token good for exactly one
execution within a minute.

Any of several LLM vendors can answer; the first configured one that
responds is used for the rest of the request.
"""

__version__ = "0.1.0"

from vibecontrol.agent import AgentResponse, Runtime, WorkspaceAgent
from vibecontrol.approval import ApprovalRegistry
from vibecontrol.config import AppConfig, ProviderConfig, ProviderFamily, get_available_providers
from vibecontrol.errors import (
    ConfigurationError,
    ExecutionFailure,
    InvalidOrExpiredRequest,
    NotFound,
    PathViolation,
    PermissionDenied,
    ProviderError,
    VibeControlError,
)
from vibecontrol.executor import CommandExecutor
from vibecontrol.loop import OrchestrationLoop
from vibecontrol.providers import ChatSession, create_chat, create_chat_with_fallback
from vibecontrol.sandbox import PathSandbox
from vibecontrol.tools import Tool, ToolRegistry, create_workspace_tools
from vibecontrol.types import FunctionResult, ModelTurn, ToolCall
from vibecontrol.workspace import WorkspaceInspector

__all__ = [
    "AgentResponse",
    "AppConfig",
    "ApprovalRegistry",
    "ChatSession",
    "CommandExecutor",
    "ConfigurationError",
    "ExecutionFailure",
    "FunctionResult",
    "InvalidOrExpiredRequest",
    "ModelTurn",
    "NotFound",
    "OrchestrationLoop",
    "PathSandbox",
    "PathViolation",
    "PermissionDenied",
    "ProviderConfig",
    "ProviderError",
    "ProviderFamily",
    "Runtime",
    "Tool",
    "ToolCall",
    "ToolRegistry",
    "VibeControlError",
    "WorkspaceAgent",
    "WorkspaceInspector",
    "create_chat",
    "create_chat_with_fallback",
    "create_workspace_tools",
    "get_available_providers",
]
