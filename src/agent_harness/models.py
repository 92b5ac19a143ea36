# models.py
# Data contracts for the agent harness.
# No business logic lives here; pure schema and validation.

import json
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class Mode(str, Enum):
    """Permission level for a client. ask = read-only, agent = full access."""

    ASK = "ask"
    AGENT = "agent"


# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------


class ToolCall(BaseModel):
    """A single capability invocation requested by the model."""

    id: str
    name: str
    arguments: str = Field(default="{}", description="Raw JSON argument payload.")

    def to_wire(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


class ToolResult(BaseModel):
    """Outcome of one ToolCall, paired with it by id."""

    tool_call_id: str
    name: str
    content: str

    @classmethod
    def success(cls, call: ToolCall, result: dict[str, Any]) -> "ToolResult":
        return cls(tool_call_id=call.id, name=call.name, content=json.dumps(result))

    @classmethod
    def failure(cls, call: ToolCall, message: str) -> "ToolResult":
        return cls(tool_call_id=call.id, name=call.name, content=json.dumps({"error": message}))


class Message(BaseModel):
    """One conversation entry in OpenAI chat-completions shape."""

    role: Literal["system", "user", "assistant", "tool"]
    content: str | None = None
    tool_calls: list[ToolCall] = Field(default_factory=list)
    tool_call_id: str | None = None
    name: str | None = None

    @classmethod
    def from_result(cls, result: ToolResult) -> "Message":
        return cls(
            role="tool",
            content=result.content,
            tool_call_id=result.tool_call_id,
            name=result.name,
        )

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            wire["tool_calls"] = [call.to_wire() for call in self.tool_calls]
        if self.tool_call_id is not None:
            wire["tool_call_id"] = self.tool_call_id
        if self.name is not None:
            wire["name"] = self.name
        return wire


class ChatResult(BaseModel):
    """Terminal state of a conversation turn."""

    content: str
    conversation: list[Message]
    iterations: int


# ---------------------------------------------------------------------------
# Permissions
# ---------------------------------------------------------------------------


class Decision(BaseModel):
    """Gate verdict for one (capability, mode) pair."""

    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: str | None = None


# ---------------------------------------------------------------------------
# Edits
# ---------------------------------------------------------------------------


class EditAction(str, Enum):
    CREATED = "created"
    PATCHED = "patched"
    EDITED = "edited"
    REPLACED = "replaced"


class EditRequest(BaseModel):
    """Arguments of an edit_file call. `instructions` is advisory only."""

    target_file: str = Field(..., description="Path of the file to edit or create.")
    code_edit: str = Field(..., description="Full content, unified-diff hunks, or a partial edit with elision markers.")
    instructions: str | None = Field(default=None, description="Short description of the intended change.")


class EditResult(BaseModel):
    success: bool = True
    action: EditAction


class DiffOp(BaseModel):
    kind: Literal["context", "add", "delete"]
    text: str


class DiffHunk(BaseModel):
    """One unified-diff hunk. Starts are 0-indexed cursor positions."""

    old_start: int
    old_count: int
    new_start: int
    new_count: int
    ops: list[DiffOp] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Persistence records
# ---------------------------------------------------------------------------


class Memory(BaseModel):
    id: str
    title: str
    knowledge: str
    created: str
    updated: str | None = None


class Todo(BaseModel):
    id: str
    content: str
    status: Literal["pending", "in_progress", "completed", "cancelled"]


class LintRecord(BaseModel):
    """Common diagnostic record produced by every linter provider."""

    path: str
    line: int
    column: int = 0
    severity: Literal["error", "warning", "info"] = "error"
    message: str
    source: str = ""
