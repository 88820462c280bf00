"""
Core types for VibeControl.

These are the shapes that cross component boundaries: the normalized
model turn produced by every provider adapter, the tool results fed
back to it, and the approval records held by the registry. Nothing
vendor-specific appears here.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Role(str, Enum):
    """Roles in the provider-neutral conversation history."""
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class HistoryMessage:
    """A prior plain-text message forwarded from the UI."""
    role: Role
    content: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HistoryMessage":
        role = Role.USER if data.get("role") == "user" else Role.ASSISTANT
        return cls(role=role, content=str(data.get("content", "")))


@dataclass(frozen=True)
class ToolCall:
    """
    A request from the model to execute a tool.

    The id is the vendor-issued call identifier, or a synthesized
    index for vendors that do not issue one. It travels with the
    result so adapters never correlate by array position.
    """
    id: str
    name: str
    arguments: dict[str, Any]


@dataclass(frozen=True)
class ModelTurn:
    """One model response: accumulated text plus requested tool calls."""
    text: str = ""
    tool_calls: tuple[ToolCall, ...] = ()

    @property
    def has_tool_calls(self) -> bool:
        return len(self.tool_calls) > 0


@dataclass(frozen=True)
class FunctionResult:
    """The result of one tool call, addressed back to the call that produced it."""
    call_id: str
    name: str
    result: Any


@dataclass
class ToolOutcome:
    """
    What the tool registry returns for a dispatched call.

    result is fed back to the model; artifact is an optional structured
    payload for the UI (workspace_tree, code_panel, approval_card).
    """
    result: Any
    artifact: dict[str, Any] | None = None
    success: bool = True


class NodeKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"


@dataclass
class FileNode:
    """An entry in a workspace listing."""
    name: str
    kind: NodeKind
    size: int | None = None
    children: list["FileNode"] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "type": self.kind.value}
        if self.kind == NodeKind.FILE:
            data["size"] = self.size
        else:
            data["children"] = [child.to_dict() for child in self.children or []]
        return data


@dataclass(frozen=True)
class PendingApproval:
    """A dangerous operation waiting for a human decision."""
    action: str
    reason: str
    command: str
    created_at: float


@dataclass(frozen=True)
class ActiveToken:
    """A one-time authorization to run exactly one command."""
    request_id: str
    command: str
    expires_at: float


@dataclass
class LoopResult:
    """Final result of one orchestration run."""
    response: str
    artifacts: list[dict[str, Any]] = field(default_factory=list)
    steps_taken: int = 0
    stopped_reason: str = "completed"
