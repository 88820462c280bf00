"""Construct a ChatSession from a tagged ProviderConfig."""

import httpx

from vibecontrol.config import ProviderConfig, ProviderProtocol, ProviderSettings
from vibecontrol.providers.anthropic import AnthropicChat
from vibecontrol.providers.base import ChatSession, ToolDef
from vibecontrol.providers.gemini import GeminiChat
from vibecontrol.providers.openai_compat import OpenAICompatibleChat
from vibecontrol.types import HistoryMessage

ADAPTERS: dict[ProviderProtocol, type[ChatSession]] = {
    ProviderProtocol.OPENAI: OpenAICompatibleChat,
    ProviderProtocol.ANTHROPIC: AnthropicChat,
    ProviderProtocol.GEMINI: GeminiChat,
}


def create_chat(
    config: ProviderConfig,
    system_prompt: str,
    tools: list[ToolDef],
    history: list[HistoryMessage] | None = None,
    settings: ProviderSettings | None = None,
    client: httpx.AsyncClient | None = None,
) -> ChatSession:
    """Build the adapter for config's vendor family."""
    adapter = ADAPTERS[config.family.protocol]
    return adapter(
        config,
        system_prompt,
        tools,
        history=history,
        settings=settings,
        client=client,
    )
