"""Anthropic Messages API adapter."""

import json
import logging
from typing import Any

from vibecontrol.providers.base import ChatSession, ToolDef
from vibecontrol.types import FunctionResult, HistoryMessage, ModelTurn, Role, ToolCall

logger = logging.getLogger(__name__)

ANTHROPIC_BASE_URL = "https://api.anthropic.com/v1"
ANTHROPIC_VERSION = "2023-06-01"


def to_anthropic_tools(tools: list[ToolDef]) -> list[dict[str, Any]]:
    return [
        {
            "name": tool.name,
            "description": tool.description,
            "input_schema": {
                "type": "object",
                "properties": tool.properties,
                "required": tool.required,
            },
        }
        for tool in tools
    ]


def parse_anthropic_response(data: dict[str, Any]) -> ModelTurn:
    """Collect text blocks and tool_use blocks from a message response."""
    text = ""
    tool_calls: list[ToolCall] = []
    for index, block in enumerate(data["content"]):
        if block.get("type") == "text":
            text += block.get("text", "")
        elif block.get("type") == "tool_use":
            tool_calls.append(ToolCall(
                id=block.get("id") or f"toolu_{index}",
                name=block["name"],
                arguments=dict(block.get("input") or {}),
            ))
    return ModelTurn(text=text, tool_calls=tuple(tool_calls))


class AnthropicChat(ChatSession):
    """Chat session over the Anthropic Messages API."""

    def _load_history(self, history: list[HistoryMessage]) -> None:
        self.messages: list[dict[str, Any]] = [
            {"role": "user" if m.role == Role.USER else "assistant", "content": m.content}
            for m in history
        ]

    @property
    def base_url(self) -> str:
        return (self.config.base_url or ANTHROPIC_BASE_URL).rstrip("/")

    async def send_message(self, text: str) -> ModelTurn:
        self.messages.append({"role": "user", "content": text})
        return await self._complete()

    async def send_tool_results(self, results: list[FunctionResult]) -> ModelTurn:
        blocks = [
            {
                "type": "tool_result",
                "tool_use_id": result.call_id,
                "content": json.dumps(result.result, default=str),
            }
            for result in results
        ]
        self.messages.append({"role": "user", "content": blocks})
        return await self._complete()

    async def _complete(self) -> ModelTurn:
        payload: dict[str, Any] = {
            "model": self.config.model,
            "max_tokens": self.settings.max_tokens,
            "system": self.system_prompt,
            "messages": self.messages,
        }
        if self.tools:
            payload["tools"] = to_anthropic_tools(self.tools)

        data = await self._post(
            f"{self.base_url}/messages",
            payload,
            headers={
                "x-api-key": self.config.api_key,
                "anthropic-version": ANTHROPIC_VERSION,
            },
        )
        try:
            turn = parse_anthropic_response(data)
        except (KeyError, TypeError, AttributeError) as e:
            raise self._malformed(e) from e
        self.messages.append({"role": "assistant", "content": data["content"]})
        return turn
