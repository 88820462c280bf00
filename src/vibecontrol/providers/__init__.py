"""Provider adapters and fallback selection."""
from .anthropic import AnthropicChat
from .base import ChatSession, ToolDef
from .factory import create_chat
from .fallback import create_chat_with_fallback
from .gemini import GeminiChat
from .openai_compat import OpenAICompatibleChat

__all__ = [
    "ChatSession",
    "ToolDef",
    "create_chat",
    "create_chat_with_fallback",
    "AnthropicChat",
    "GeminiChat",
    "OpenAICompatibleChat",
]
