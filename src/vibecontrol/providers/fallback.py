"""
Provider fallback - pick the first provider that answers.

Fallback is provider selection, not retry: each configured provider gets
exactly one attempt at the first message of a request, in priority
order. The first one that answers stays bound to the request; later
failures are not retried elsewhere.
"""

import logging
from collections.abc import Callable

from vibecontrol.config import (
    SUPPORTED_CREDENTIALS,
    ProviderConfig,
    ProviderSettings,
    get_available_providers,
)
from vibecontrol.errors import ConfigurationError, ProviderError
from vibecontrol.providers.base import ChatSession, ToolDef
from vibecontrol.providers.factory import create_chat
from vibecontrol.types import HistoryMessage, ModelTurn

logger = logging.getLogger(__name__)

ChatFactory = Callable[..., ChatSession]


def _describe(error: Exception) -> str:
    status = getattr(error, "status_code", None)
    if status:
        return f"HTTP {status}"
    return str(error)[:80] or type(error).__name__


async def create_chat_with_fallback(
    system_prompt: str,
    tools: list[ToolDef],
    history: list[HistoryMessage] | None,
    user_message: str,
    providers: list[ProviderConfig] | None = None,
    settings: ProviderSettings | None = None,
    chat_factory: ChatFactory = create_chat,
) -> tuple[ChatSession, ModelTurn]:
    """
    Try each provider in order until one answers the first message.

    Args:
        providers: Configs to try (default: everything credentialed in the
            environment, in priority order)
        chat_factory: Builds a session from a config; injectable for tests

    Returns:
        The live session and its first ModelTurn

    Raises:
        ConfigurationError: no providers are configured
        ProviderError: every configured provider failed
    """
    if providers is None:
        providers = get_available_providers()

    if not providers:
        raise ConfigurationError(
            "No AI providers configured. Set at least one API key. "
            f"Supported: {', '.join(SUPPORTED_CREDENTIALS)}"
        )

    labels = [config.label for config in providers]
    logger.info(f"{len(providers)} provider configs available: {', '.join(labels)}")

    last_error: Exception | None = None
    for config in providers:
        chat: ChatSession | None = None
        try:
            chat = chat_factory(
                config,
                system_prompt,
                tools,
                history=history,
                settings=settings,
            )
            turn = await chat.send_message(user_message)
        except Exception as e:
            last_error = e
            logger.warning(f"Provider {config.label} failed: {_describe(e)}")
            if chat is not None:
                await chat.aclose()
            continue

        logger.info(f"Using provider: {chat.label}")
        return chat, turn

    raise ProviderError(
        f"All AI providers failed. Last error: {last_error}. Tried: {', '.join(labels)}",
        status_code=getattr(last_error, "status_code", None),
    )
