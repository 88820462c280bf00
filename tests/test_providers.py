"""
Tests for the vendor adapters.

Each adapter is driven against an httpx.MockTransport that records the
outgoing requests, so wire formats are checked without network access.
"""

import json

import httpx
import pytest

from vibecontrol.config import ProviderConfig, ProviderFamily, ProviderSettings
from vibecontrol.errors import ProviderError
from vibecontrol.providers.anthropic import AnthropicChat, parse_anthropic_response
from vibecontrol.providers.base import ToolDef
from vibecontrol.providers.factory import create_chat
from vibecontrol.providers.gemini import GeminiChat, parse_gemini_response, to_gemini_tools
from vibecontrol.providers.openai_compat import OpenAICompatibleChat, parse_openai_response
from vibecontrol.types import FunctionResult, HistoryMessage, Role

READ_TOOL = ToolDef(
    name="read_file",
    description="Read a file",
    parameters={
        "type": "object",
        "properties": {"path": {"type": "string", "description": "File path"}},
        "required": ["path"],
    },
)


class Recorder:
    """Mock transport handler replaying canned JSON bodies."""

    def __init__(self, *bodies, status_code=200):
        self.bodies = list(bodies)
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        body = self.bodies.pop(0) if self.bodies else {}
        return httpx.Response(self.status_code, json=body)

    def payload(self, index=-1):
        return json.loads(self.requests[index].content)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


def openai_message(content=None, tool_calls=None):
    message = {"role": "assistant", "content": content}
    if tool_calls:
        message["tool_calls"] = tool_calls
    return {"choices": [{"message": message}]}


class TestOpenAICompatible:
    """OpenAI /chat/completions and compatible vendors."""

    @pytest.mark.asyncio
    async def test_tool_call_round_trip(self):
        recorder = Recorder(
            openai_message(tool_calls=[{
                "id": "call_abc",
                "type": "function",
                "function": {"name": "read_file", "arguments": "{\"path\": \"a.py\"}"},
            }]),
            openai_message(content="It prints hello."),
        )
        config = ProviderConfig(ProviderFamily.OPENAI, "gpt-4o", "sk-test")
        chat = OpenAICompatibleChat(config, "system!", [READ_TOOL], client=recorder.client())

        turn = await chat.send_message("show a.py")
        assert turn.tool_calls[0].id == "call_abc"
        assert turn.tool_calls[0].arguments == {"path": "a.py"}

        final = await chat.send_tool_results(
            [FunctionResult(call_id="call_abc", name="read_file", result={"content": "x"})]
        )
        assert final.text == "It prints hello."
        assert not final.has_tool_calls

        first = recorder.requests[0]
        assert str(first.url) == "https://api.openai.com/v1/chat/completions"
        assert first.headers["Authorization"] == "Bearer sk-test"
        assert recorder.payload(0)["tool_choice"] == "auto"
        assert recorder.payload(0)["messages"][0] == {"role": "system", "content": "system!"}

        messages = recorder.payload(1)["messages"]
        assert messages[-2]["tool_calls"][0]["id"] == "call_abc"
        assert messages[-1] == {
            "role": "tool",
            "tool_call_id": "call_abc",
            "content": json.dumps({"content": "x"}),
        }
        await chat.aclose()

    @pytest.mark.asyncio
    async def test_compatible_vendor_uses_base_url(self):
        recorder = Recorder(openai_message(content="hi"))
        config = ProviderConfig(
            ProviderFamily.DEEPSEEK, "deepseek-chat", "key", base_url="https://api.deepseek.com/v1"
        )
        chat = create_chat(config, "sys", [], client=recorder.client())

        assert isinstance(chat, OpenAICompatibleChat)
        await chat.send_message("hello")

        assert str(recorder.requests[0].url) == "https://api.deepseek.com/v1/chat/completions"
        assert "tools" not in recorder.payload()

    @pytest.mark.asyncio
    async def test_history_forwarded(self):
        recorder = Recorder(openai_message(content="ok"))
        history = [
            HistoryMessage(Role.USER, "earlier question"),
            HistoryMessage(Role.ASSISTANT, "earlier answer"),
        ]
        config = ProviderConfig(ProviderFamily.OPENAI, "gpt-4o", "k")
        chat = OpenAICompatibleChat(config, "sys", [], history=history, client=recorder.client())

        await chat.send_message("now")

        roles = [m["role"] for m in recorder.payload()["messages"]]
        assert roles == ["system", "user", "assistant", "user"]

    def test_malformed_arguments_preserved(self):
        turn, _ = parse_openai_response(openai_message(tool_calls=[
            {"id": "c1", "function": {"name": "read_file", "arguments": "not json"}},
            {"function": {"name": "list_workspace_files", "arguments": ""}},
        ]))

        assert turn.tool_calls[0].arguments == {"raw": "not json"}
        assert turn.tool_calls[1].id == "call_1"
        assert turn.tool_calls[1].arguments == {}

    @pytest.mark.asyncio
    async def test_http_error_becomes_provider_error(self):
        recorder = Recorder({"error": "rate limited"}, status_code=429)
        config = ProviderConfig(ProviderFamily.OPENAI, "gpt-4o", "k")
        chat = OpenAICompatibleChat(config, "sys", [], client=recorder.client())

        with pytest.raises(ProviderError) as exc_info:
            await chat.send_message("hi")

        assert exc_info.value.status_code == 429
        assert exc_info.value.provider == "openai/gpt-4o"

    @pytest.mark.asyncio
    async def test_transport_error_becomes_provider_error(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(refuse))
        config = ProviderConfig(ProviderFamily.OPENAI, "gpt-4o", "k")
        chat = OpenAICompatibleChat(config, "sys", [], client=client)

        with pytest.raises(ProviderError, match="connection refused"):
            await chat.send_message("hi")

    @pytest.mark.asyncio
    async def test_malformed_body_becomes_provider_error(self):
        recorder = Recorder({"choices": []})
        config = ProviderConfig(ProviderFamily.OPENAI, "gpt-4o", "k")
        chat = OpenAICompatibleChat(config, "sys", [], client=recorder.client())

        with pytest.raises(ProviderError, match="malformed"):
            await chat.send_message("hi")


class TestAnthropic:
    """Anthropic Messages API."""

    @pytest.mark.asyncio
    async def test_tool_use_round_trip(self):
        recorder = Recorder(
            {"content": [
                {"type": "text", "text": "Let me look. "},
                {"type": "tool_use", "id": "toolu_1", "name": "read_file", "input": {"path": "a.py"}},
                {"type": "tool_use", "id": "toolu_2", "name": "read_file", "input": {"path": "b.py"}},
            ]},
            {"content": [{"type": "text", "text": "Both files print."}]},
        )
        config = ProviderConfig(ProviderFamily.ANTHROPIC, "claude-sonnet-4-20250514", "ak")
        chat = AnthropicChat(
            config, "sys", [READ_TOOL], settings=ProviderSettings(max_tokens=1234), client=recorder.client()
        )

        turn = await chat.send_message("compare")
        assert turn.text == "Let me look. "
        assert [c.id for c in turn.tool_calls] == ["toolu_1", "toolu_2"]

        await chat.send_tool_results([
            FunctionResult("toolu_1", "read_file", "A"),
            FunctionResult("toolu_2", "read_file", "B"),
        ])

        request = recorder.requests[0]
        assert str(request.url) == "https://api.anthropic.com/v1/messages"
        assert request.headers["x-api-key"] == "ak"
        assert request.headers["anthropic-version"] == "2023-06-01"

        first = recorder.payload(0)
        assert first["system"] == "sys"
        assert first["max_tokens"] == 1234
        assert first["tools"][0]["input_schema"]["required"] == ["path"]

        results = recorder.payload(1)["messages"][-1]
        assert results["role"] == "user"
        assert [b["tool_use_id"] for b in results["content"]] == ["toolu_1", "toolu_2"]
        assert all(b["type"] == "tool_result" for b in results["content"])

    def test_text_only_response(self):
        turn = parse_anthropic_response({"content": [{"type": "text", "text": "hi"}]})

        assert turn.text == "hi"
        assert turn.tool_calls == ()


class TestGemini:
    """Gemini generateContent."""

    def test_tool_schema_uses_upper_case_types(self):
        tools = to_gemini_tools([READ_TOOL])
        declaration = tools[0]["functionDeclarations"][0]

        assert declaration["parameters"]["type"] == "OBJECT"
        assert declaration["parameters"]["properties"]["path"]["type"] == "STRING"
        assert declaration["parameters"]["required"] == ["path"]

    def test_synthesized_call_ids(self):
        turn, content = parse_gemini_response({"candidates": [{"content": {"role": "model", "parts": [
            {"functionCall": {"name": "read_file", "args": {"path": "a"}}},
            {"functionCall": {"name": "list_workspace_files", "args": {}}},
        ]}}]})

        assert [c.id for c in turn.tool_calls] == ["call_0", "call_1"]
        assert content["role"] == "model"

    def test_no_candidates_is_an_error(self):
        with pytest.raises(ValueError):
            parse_gemini_response({"promptFeedback": {"blockReason": "SAFETY"}})

    @pytest.mark.asyncio
    async def test_function_response_round_trip(self):
        recorder = Recorder(
            {"candidates": [{"content": {"role": "model", "parts": [
                {"functionCall": {"name": "read_file", "args": {"path": "a.py"}}},
            ]}}]},
            {"candidates": [{"content": {"role": "model", "parts": [{"text": "Done."}]}}]},
        )
        config = ProviderConfig(ProviderFamily.GEMINI, "gemini-2.0-flash", "gk")
        chat = GeminiChat(config, "sys", [READ_TOOL], client=recorder.client())

        turn = await chat.send_message("read it")
        final = await chat.send_tool_results([FunctionResult(turn.tool_calls[0].id, "read_file", "text")])

        assert final.text == "Done."
        request = recorder.requests[0]
        assert request.url.path == "/v1beta/models/gemini-2.0-flash:generateContent"
        assert request.headers["x-goog-api-key"] == "gk"
        assert recorder.payload(0)["systemInstruction"] == {"parts": [{"text": "sys"}]}

        last = recorder.payload(1)["contents"][-1]
        assert last["parts"] == [
            {"functionResponse": {"name": "read_file", "response": {"result": "text"}}}
        ]

    @pytest.mark.asyncio
    async def test_blocked_prompt_becomes_provider_error(self):
        recorder = Recorder({"promptFeedback": {"blockReason": "SAFETY"}})
        config = ProviderConfig(ProviderFamily.GEMINI, "gemini-2.0-flash", "gk")
        chat = GeminiChat(config, "sys", [], client=recorder.client())

        with pytest.raises(ProviderError, match="SAFETY"):
            await chat.send_message("hi")


class TestFactory:
    @pytest.mark.parametrize("family,expected", [
        (ProviderFamily.OPENAI, OpenAICompatibleChat),
        (ProviderFamily.GROK, OpenAICompatibleChat),
        (ProviderFamily.MISTRAL, OpenAICompatibleChat),
        (ProviderFamily.ANTHROPIC, AnthropicChat),
        (ProviderFamily.GEMINI, GeminiChat),
    ])
    @pytest.mark.asyncio
    async def test_dispatch_by_family(self, family, expected):
        chat = create_chat(ProviderConfig(family, "m", "k"), "sys", [])
        try:
            assert type(chat) is expected
        finally:
            await chat.aclose()
