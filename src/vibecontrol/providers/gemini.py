"""
Gemini generateContent adapter.

Gemini does not issue tool-call ids, so the adapter synthesizes
call_<n> ids in emission order and answers each call with a
functionResponse part named after the tool.
"""

import logging
from typing import Any

from vibecontrol.providers.base import ChatSession, ToolDef
from vibecontrol.types import FunctionResult, HistoryMessage, ModelTurn, Role, ToolCall

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

_SCHEMA_TYPES = {
    "string": "STRING",
    "number": "NUMBER",
    "integer": "INTEGER",
    "boolean": "BOOLEAN",
    "array": "ARRAY",
    "object": "OBJECT",
}


def to_gemini_tools(tools: list[ToolDef]) -> list[dict[str, Any]]:
    declarations = []
    for tool in tools:
        properties = {
            name: {
                "type": _SCHEMA_TYPES.get(schema.get("type", "string"), "STRING"),
                "description": schema.get("description", ""),
            }
            for name, schema in tool.properties.items()
        }
        parameters: dict[str, Any] = {"type": "OBJECT", "properties": properties}
        if tool.required:
            parameters["required"] = tool.required
        declarations.append({
            "name": tool.name,
            "description": tool.description,
            "parameters": parameters,
        })
    return [{"functionDeclarations": declarations}] if declarations else []


def parse_gemini_response(data: dict[str, Any]) -> tuple[ModelTurn, dict[str, Any]]:
    """
    Parse the first candidate into a ModelTurn.

    Also returns the model content to append to the transcript.
    """
    candidates = data.get("candidates") or []
    if not candidates:
        feedback = data.get("promptFeedback", {}).get("blockReason", "no candidates")
        raise ValueError(f"empty response: {feedback}")

    content = candidates[0].get("content") or {"role": "model", "parts": []}
    text = ""
    tool_calls: list[ToolCall] = []
    for part in content.get("parts") or []:
        if "text" in part:
            text += part["text"]
        if "functionCall" in part:
            call = part["functionCall"]
            tool_calls.append(ToolCall(
                id=f"call_{len(tool_calls)}",
                name=call["name"],
                arguments=dict(call.get("args") or {}),
            ))
    return ModelTurn(text=text, tool_calls=tuple(tool_calls)), {
        "role": "model",
        "parts": content.get("parts") or [],
    }


class GeminiChat(ChatSession):
    """Chat session over the Gemini generateContent REST API."""

    def _load_history(self, history: list[HistoryMessage]) -> None:
        self.contents: list[dict[str, Any]] = [
            {"role": "user" if m.role == Role.USER else "model", "parts": [{"text": m.content}]}
            for m in history
        ]
        self._last_calls: dict[str, str] = {}

    @property
    def base_url(self) -> str:
        return (self.config.base_url or GEMINI_BASE_URL).rstrip("/")

    async def send_message(self, text: str) -> ModelTurn:
        self.contents.append({"role": "user", "parts": [{"text": text}]})
        return await self._complete()

    async def send_tool_results(self, results: list[FunctionResult]) -> ModelTurn:
        parts = []
        for result in results:
            name = self._last_calls.get(result.call_id, result.name)
            parts.append({
                "functionResponse": {"name": name, "response": {"result": result.result}},
            })
        self.contents.append({"role": "user", "parts": parts})
        return await self._complete()

    async def _complete(self) -> ModelTurn:
        payload: dict[str, Any] = {
            "contents": self.contents,
            "systemInstruction": {"parts": [{"text": self.system_prompt}]},
            "generationConfig": {"maxOutputTokens": self.settings.max_tokens},
        }
        tools = to_gemini_tools(self.tools)
        if tools:
            payload["tools"] = tools

        data = await self._post(
            f"{self.base_url}/models/{self.config.model}:generateContent",
            payload,
            headers={"x-goog-api-key": self.config.api_key},
        )
        try:
            turn, content = parse_gemini_response(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise self._malformed(e) from e
        self.contents.append(content)
        self._last_calls = {call.id: call.name for call in turn.tool_calls}
        return turn
