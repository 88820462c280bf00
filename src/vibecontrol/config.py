"""
Configuration for VibeControl.

All configuration is loaded from environment variables. Which provider
adapters can be constructed depends solely on which credential variables
are present; the order of get_available_providers() is the fallback order.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class ProviderProtocol(str, Enum):
    """Wire protocol spoken by a vendor family."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"


class ProviderFamily(str, Enum):
    """Vendor tag carried by every ProviderConfig."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
    GROK = "grok"
    DEEPSEEK = "deepseek"
    MOONSHOT = "moonshot"
    ALIBABA = "alibaba"
    MISTRAL = "mistral"

    @property
    def protocol(self) -> ProviderProtocol:
        if self is ProviderFamily.ANTHROPIC:
            return ProviderProtocol.ANTHROPIC
        if self is ProviderFamily.GEMINI:
            return ProviderProtocol.GEMINI
        return ProviderProtocol.OPENAI


@dataclass(frozen=True)
class ProviderConfig:
    """One (vendor, model, credential) combination to try."""
    family: ProviderFamily
    model: str
    api_key: str = field(repr=False)
    base_url: str | None = None

    @property
    def label(self) -> str:
        return f"{self.family.value}/{self.model}"


@dataclass(frozen=True)
class CompatibleVendor:
    """An OpenAI-protocol vendor reachable through its own endpoint."""
    env_key: str
    family: ProviderFamily
    base_url: str
    models: tuple[str, ...]


OPENAI_COMPATIBLE_VENDORS: tuple[CompatibleVendor, ...] = (
    CompatibleVendor(
        env_key="DEEPSEEK_API_KEY",
        family=ProviderFamily.DEEPSEEK,
        base_url="https://api.deepseek.com/v1",
        models=("deepseek-chat", "deepseek-reasoner"),
    ),
    CompatibleVendor(
        env_key="MOONSHOT_API_KEY",
        family=ProviderFamily.MOONSHOT,
        base_url="https://api.moonshot.cn/v1",
        models=("moonshot-v1-128k", "moonshot-v1-32k"),
    ),
    CompatibleVendor(
        env_key="ALIBABA_API_KEY",
        family=ProviderFamily.ALIBABA,
        base_url="https://dashscope.aliyuncs.com/compatible-mode/v1",
        models=("qwen-turbo", "qwen-plus"),
    ),
    CompatibleVendor(
        env_key="MISTRAL_API_KEY",
        family=ProviderFamily.MISTRAL,
        base_url="https://api.mistral.ai/v1",
        models=("mistral-large-latest", "mistral-small-latest"),
    ),
    CompatibleVendor(
        env_key="GROK_API_KEY",
        family=ProviderFamily.GROK,
        base_url="https://api.x.ai/v1",
        models=("grok-3-mini-fast", "grok-3-mini"),
    ),
)

OPENAI_MODELS = ("gpt-4o", "gpt-4o-mini")
ANTHROPIC_MODELS = ("claude-sonnet-4-20250514", "claude-3-5-haiku-20241022")
GEMINI_MODELS = ("gemini-2.0-flash", "gemini-1.5-flash")

SUPPORTED_CREDENTIALS = (
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "GEMINI_API_KEY",
    "GOOGLE_API_KEY",
    *(vendor.env_key for vendor in OPENAI_COMPATIBLE_VENDORS),
)


def get_available_providers(environ: Mapping[str, str] | None = None) -> list[ProviderConfig]:
    """
    Return every constructible provider config in priority order.

    Native vendors come first (preferred model, then the cheaper one),
    followed by OpenAI-compatible third parties. A vendor is included
    only if its credential variable is set and non-empty.
    """
    env = os.environ if environ is None else environ
    providers: list[ProviderConfig] = []

    openai_key = env.get("OPENAI_API_KEY")
    if openai_key:
        providers.extend(
            ProviderConfig(ProviderFamily.OPENAI, model, openai_key)
            for model in OPENAI_MODELS
        )

    anthropic_key = env.get("ANTHROPIC_API_KEY")
    if anthropic_key:
        providers.extend(
            ProviderConfig(ProviderFamily.ANTHROPIC, model, anthropic_key)
            for model in ANTHROPIC_MODELS
        )

    gemini_key = env.get("GEMINI_API_KEY")
    if gemini_key:
        providers.extend(
            ProviderConfig(ProviderFamily.GEMINI, model, gemini_key)
            for model in GEMINI_MODELS
        )

    # A separate Google key is only worth trying if it is a different credential
    google_key = env.get("GOOGLE_API_KEY")
    if google_key and google_key != gemini_key:
        providers.extend(
            ProviderConfig(ProviderFamily.GEMINI, model, google_key)
            for model in GEMINI_MODELS
        )

    for vendor in OPENAI_COMPATIBLE_VENDORS:
        api_key = env.get(vendor.env_key)
        if api_key:
            providers.extend(
                ProviderConfig(vendor.family, model, api_key, base_url=vendor.base_url)
                for model in vendor.models
            )

    return providers


@dataclass
class ProviderSettings:
    """Transport settings shared by all provider adapters."""
    request_timeout: float = 120.0
    connect_timeout: float = 10.0
    max_tokens: int = 4096

    @classmethod
    def from_env(cls) -> "ProviderSettings":
        return cls(
            request_timeout=float(os.getenv("VIBE_PROVIDER_TIMEOUT", "120")),
            connect_timeout=float(os.getenv("VIBE_PROVIDER_CONNECT_TIMEOUT", "10")),
            max_tokens=int(os.getenv("VIBE_MAX_TOKENS", "4096")),
        )


@dataclass
class WorkspaceConfig:
    """
    Location of the workspace root.

    The root is canonicalized once here; every path-accepting tool
    call is verified against it.
    """
    root: Path = field(default_factory=Path.cwd)

    def __post_init__(self) -> None:
        self.root = Path(self.root).expanduser().resolve()

    @classmethod
    def from_env(cls) -> "WorkspaceConfig":
        root = os.getenv("VIBE_WORKSPACE_ROOT")
        return cls(root=Path(root)) if root else cls()


@dataclass
class LoopConfig:
    """
    Limits for the tool-orchestration loop.

    max_steps bounds tool round trips per user message, max_chars bounds
    the accumulated response text, read_char_limit bounds file content
    handed to the model.
    """
    max_steps: int = 6
    max_chars: int = 30_000
    read_char_limit: int = 20_000

    @classmethod
    def from_env(cls) -> "LoopConfig":
        return cls(
            max_steps=int(os.getenv("VIBE_MAX_STEPS", "6")),
            max_chars=int(os.getenv("VIBE_MAX_CHARS", "30000")),
            read_char_limit=int(os.getenv("VIBE_READ_CHAR_LIMIT", "20000")),
        )


@dataclass
class ApprovalConfig:
    """Lifetimes of pending approvals and granted tokens, in seconds."""
    request_ttl: float = 300.0
    token_ttl: float = 60.0

    @classmethod
    def from_env(cls) -> "ApprovalConfig":
        return cls(
            request_ttl=float(os.getenv("VIBE_APPROVAL_REQUEST_TTL", "300")),
            token_ttl=float(os.getenv("VIBE_APPROVAL_TOKEN_TTL", "60")),
        )


@dataclass
class ExecutorConfig:
    """Hard limits for a single command execution."""
    timeout: float = 30.0
    max_output_bytes: int = 1024 * 1024

    @classmethod
    def from_env(cls) -> "ExecutorConfig":
        return cls(
            timeout=float(os.getenv("VIBE_COMMAND_TIMEOUT", "30")),
            max_output_bytes=int(os.getenv("VIBE_COMMAND_MAX_OUTPUT", str(1024 * 1024))),
        )


@dataclass
class AppConfig:
    """Combined configuration for the whole service."""
    workspace: WorkspaceConfig
    loop: LoopConfig
    approval: ApprovalConfig
    executor: ExecutorConfig
    providers: ProviderSettings

    @classmethod
    def from_env(cls) -> "AppConfig":
        return cls(
            workspace=WorkspaceConfig.from_env(),
            loop=LoopConfig.from_env(),
            approval=ApprovalConfig.from_env(),
            executor=ExecutorConfig.from_env(),
            providers=ProviderSettings.from_env(),
        )
