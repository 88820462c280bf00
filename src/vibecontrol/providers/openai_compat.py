"""
OpenAI-compatible adapter.

Handles OpenAI itself plus Grok, DeepSeek, Moonshot, Alibaba (Qwen) and
Mistral, which all speak the /chat/completions protocol and differ only
in base URL and model names.
"""

import json
import logging
from typing import Any

from vibecontrol.providers.base import ChatSession, ToolDef
from vibecontrol.types import FunctionResult, HistoryMessage, ModelTurn, Role, ToolCall

logger = logging.getLogger(__name__)

OPENAI_BASE_URL = "https://api.openai.com/v1"


def to_openai_tools(tools: list[ToolDef]) -> list[dict[str, Any]]:
    return [
        {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.parameters,
            },
        }
        for tool in tools
    ]


def parse_openai_response(data: dict[str, Any]) -> tuple[ModelTurn, dict[str, Any]]:
    """
    Parse a chat completion into a ModelTurn.

    Also returns the assistant message to append to the transcript.
    """
    message = data["choices"][0]["message"]
    text = message.get("content") or ""

    tool_calls: list[ToolCall] = []
    for index, tc in enumerate(message.get("tool_calls") or []):
        raw_arguments = tc.get("function", {}).get("arguments") or "{}"
        try:
            arguments = json.loads(raw_arguments)
        except json.JSONDecodeError:
            arguments = {"raw": raw_arguments}
        if not isinstance(arguments, dict):
            arguments = {"value": arguments}
        tool_calls.append(ToolCall(
            id=tc.get("id") or f"call_{index}",
            name=tc["function"]["name"],
            arguments=arguments,
        ))

    assistant: dict[str, Any] = {"role": "assistant", "content": message.get("content")}
    if message.get("tool_calls"):
        assistant["tool_calls"] = message["tool_calls"]
    return ModelTurn(text=text, tool_calls=tuple(tool_calls)), assistant


class OpenAICompatibleChat(ChatSession):
    """Chat session over the OpenAI chat-completions protocol."""

    def _load_history(self, history: list[HistoryMessage]) -> None:
        self.messages: list[dict[str, Any]] = [
            {"role": "system", "content": self.system_prompt},
        ]
        self.messages.extend(
            {"role": "user" if m.role == Role.USER else "assistant", "content": m.content}
            for m in history
        )

    @property
    def base_url(self) -> str:
        return (self.config.base_url or OPENAI_BASE_URL).rstrip("/")

    async def send_message(self, text: str) -> ModelTurn:
        self.messages.append({"role": "user", "content": text})
        return await self._complete()

    async def send_tool_results(self, results: list[FunctionResult]) -> ModelTurn:
        for result in results:
            self.messages.append({
                "role": "tool",
                "tool_call_id": result.call_id,
                "content": json.dumps(result.result, default=str),
            })
        return await self._complete()

    async def _complete(self) -> ModelTurn:
        payload: dict[str, Any] = {
            "model": self.config.model,
            "messages": self.messages,
        }
        if self.tools:
            payload["tools"] = to_openai_tools(self.tools)
            payload["tool_choice"] = "auto"

        data = await self._post(
            f"{self.base_url}/chat/completions",
            payload,
            headers={"Authorization": f"Bearer {self.config.api_key}"},
        )
        try:
            turn, assistant = parse_openai_response(data)
        except (KeyError, IndexError, TypeError) as e:
            raise self._malformed(e) from e
        self.messages.append(assistant)
        logger.debug(f"[{self.label}] {len(turn.tool_calls)} tool call(s)")
        return turn
