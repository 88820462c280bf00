"""
ChatSession - the provider-agnostic conversation interface.

Every vendor family implements the same two calls, send_message() and
send_tool_results(), both returning a ModelTurn. Adapters keep their
vendor-native transcript private; nothing vendor-specific crosses this
boundary.

The adapters talk to vendor REST APIs over httpx. The abstraction is
thin on purpose: it only exists so the orchestration loop never needs
to know which backend is answering.
"""

import abc
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from vibecontrol.config import ProviderConfig, ProviderSettings
from vibecontrol.errors import ProviderError
from vibecontrol.types import FunctionResult, HistoryMessage, ModelTurn

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolDef:
    """
    Vendor-neutral tool declaration.

    parameters is a JSON Schema object:
    {"type": "object", "properties": {...}, "required": [...]}
    """
    name: str
    description: str
    parameters: dict[str, Any]

    @property
    def properties(self) -> dict[str, dict[str, Any]]:
        return self.parameters.get("properties", {})

    @property
    def required(self) -> list[str]:
        return list(self.parameters.get("required", []))


class ChatSession(abc.ABC):
    """
    A live conversation bound to one provider config for its lifetime.

    Sessions are request-scoped and never shared or persisted.
    """

    def __init__(
        self,
        config: ProviderConfig,
        system_prompt: str,
        tools: list[ToolDef],
        history: list[HistoryMessage] | None = None,
        settings: ProviderSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        self.system_prompt = system_prompt
        self.tools = list(tools)
        self.settings = settings or ProviderSettings()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(
                self.settings.request_timeout,
                connect=self.settings.connect_timeout,
            ),
        )
        self._load_history(history or [])

    @property
    def label(self) -> str:
        return self.config.label

    @abc.abstractmethod
    def _load_history(self, history: list[HistoryMessage]) -> None:
        """Seed the vendor transcript with prior plain-text messages."""

    @abc.abstractmethod
    async def send_message(self, text: str) -> ModelTurn:
        """Send a user message and return the model's turn."""

    @abc.abstractmethod
    async def send_tool_results(self, results: list[FunctionResult]) -> ModelTurn:
        """Send a batch of tool results, each addressed by its call id."""

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ChatSession":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def _post(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """POST a JSON payload and return the decoded body, or raise ProviderError."""
        logger.debug(f"[{self.label}] POST {url}")
        try:
            response = await self._client.post(url, json=payload, headers=headers, params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise ProviderError(
                f"{self.label}: HTTP {status}: {e.response.text[:200]}",
                provider=self.label,
                status_code=status,
            ) from e
        except httpx.HTTPError as e:
            raise ProviderError(f"{self.label}: {e}", provider=self.label) from e
        except ValueError as e:
            raise ProviderError(f"{self.label}: invalid JSON response", provider=self.label) from e

        if not isinstance(data, dict):
            raise ProviderError(f"{self.label}: unexpected response shape", provider=self.label)
        return data

    def _malformed(self, error: Exception) -> ProviderError:
        return ProviderError(f"{self.label}: malformed response ({error})", provider=self.label)
