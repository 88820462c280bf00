"""
WorkspaceAgent - one user message in, one bounded response out.

Wires provider fallback to the orchestration loop. Each call to
respond() gets its own chat session; only the approval registry is
shared across requests.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from vibecontrol.approval import ApprovalRegistry
from vibecontrol.config import AppConfig, ProviderConfig, get_available_providers
from vibecontrol.executor import CommandExecutor
from vibecontrol.git import GitInspector
from vibecontrol.loop import OrchestrationLoop
from vibecontrol.providers.factory import create_chat
from vibecontrol.providers.fallback import ChatFactory, create_chat_with_fallback
from vibecontrol.sandbox import PathSandbox
from vibecontrol.tools import ToolRegistry, create_workspace_tools
from vibecontrol.types import HistoryMessage
from vibecontrol.workspace import WorkspaceInspector

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are VibeControl, an AI-powered IDE assistant. You help users explore, understand, and modify their codebase.

IMPORTANT RULES:
1. When users ask about project structure, files, or folders - call list_workspace_files
2. When users ask to see/read a file - call read_file with a path relative to the workspace root
3. When users ask to run commands (tests, builds, etc) - call execute_command (requires approval)
4. When users ask about git status or changes - call get_git_status or get_git_diff

All paths are relative to the workspace root ({root}). Absolute paths and '..' are rejected.
When listing files, if no path is specified, omit the path to list the workspace root.
Always be helpful and explain what you find."""


@dataclass
class AgentResponse:
    """What the HTTP layer returns for one user message."""
    content: str
    components: list[dict[str, Any]] = field(default_factory=list)
    provider: str = ""
    stopped_reason: str = "completed"
    steps: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": self.content,
            "components": self.components,
            "provider": self.provider,
            "stopped_reason": self.stopped_reason,
            "steps": self.steps,
        }


class WorkspaceAgent:
    """Answers user messages about the workspace using whichever provider works."""

    def __init__(
        self,
        tools: ToolRegistry,
        loop: OrchestrationLoop,
        system_prompt: str,
        config: AppConfig,
        provider_source: Callable[[], list[ProviderConfig]] = get_available_providers,
        chat_factory: ChatFactory = create_chat,
    ) -> None:
        self.tools = tools
        self.loop = loop
        self.system_prompt = system_prompt
        self.config = config
        self.provider_source = provider_source
        self._chat_factory = chat_factory

    async def respond(
        self,
        message: str,
        history: list[dict[str, Any]] | None = None,
    ) -> AgentResponse:
        """
        Handle one user message.

        Raises:
            ConfigurationError: no providers configured
            ProviderError: every provider failed on the first message
        """
        chat, turn = await create_chat_with_fallback(
            self.system_prompt,
            self.tools.get_tool_defs(),
            [HistoryMessage.from_dict(m) for m in history or []],
            message,
            providers=self.provider_source(),
            settings=self.config.providers,
            chat_factory=self._chat_factory,
        )
        try:
            result = await self.loop.run(chat, turn)
        finally:
            await chat.aclose()

        logger.info(
            f"Answered via {chat.label} in {result.steps_taken} step(s) ({result.stopped_reason})"
        )
        return AgentResponse(
            content=result.response,
            components=result.artifacts,
            provider=chat.label,
            stopped_reason=result.stopped_reason,
            steps=result.steps_taken,
        )


@dataclass
class Runtime:
    """Process-wide services, built once and shared by reference."""
    config: AppConfig
    sandbox: PathSandbox
    inspector: WorkspaceInspector
    approvals: ApprovalRegistry
    executor: CommandExecutor
    git: GitInspector
    tools: ToolRegistry
    agent: WorkspaceAgent

    @classmethod
    def create(
        cls,
        config: AppConfig | None = None,
        approvals: ApprovalRegistry | None = None,
        provider_source: Callable[[], list[ProviderConfig]] = get_available_providers,
        chat_factory: ChatFactory = create_chat,
    ) -> "Runtime":
        """Factory that wires every component from configuration."""
        config = config or AppConfig.from_env()
        sandbox = PathSandbox(config.workspace.root)
        inspector = WorkspaceInspector(sandbox)
        approvals = approvals or ApprovalRegistry(config.approval)
        executor = CommandExecutor(approvals, sandbox, config.executor)
        git = GitInspector(sandbox, config.executor)
        tools = create_workspace_tools(inspector, approvals, git, config.loop)
        agent = WorkspaceAgent(
            tools=tools,
            loop=OrchestrationLoop(tools, config.loop),
            system_prompt=SYSTEM_PROMPT.format(root=sandbox.root),
            config=config,
            provider_source=provider_source,
            chat_factory=chat_factory,
        )
        logger.info(f"Workspace root: {sandbox.root}")
        return cls(
            config=config,
            sandbox=sandbox,
            inspector=inspector,
            approvals=approvals,
            executor=executor,
            git=git,
            tools=tools,
            agent=agent,
        )
