# harness.py
# Conversation loop and tool dispatch.
#
# The Harness owns control flow. The model is a passive responder: it either
# answers in plain text (turn done) or asks for tool calls, which are run
# through the permission gate and the capability registry and fed back.
#
# Control flow per turn:
#   AwaitingModel → plain content        → Done
#                 → tool calls           → DispatchingTools → AwaitingModel
#   iteration cap reached without Done   → MaxIterationsExceeded
#
# Tool calls of one batch run concurrently; each call's failure is captured as
# its own ToolResult and results are appended in request order.
#
# All terminal output is delegated to display.py; no formatting happens here.

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from agent_harness import display
from agent_harness.client import ChatModel, OpenAIChatModel
from agent_harness.config import Settings
from agent_harness.errors import MaxIterationsExceeded, ParseError
from agent_harness.lint import LinterProvider
from agent_harness.models import ChatResult, Message, Mode, ToolCall, ToolResult
from agent_harness.observer import ToolObserver
from agent_harness.permissions import PermissionGate, parse_mode, transition_mode
from agent_harness.registry import CapabilityRegistry, ToolContext
from agent_harness.tools import build_registry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# System Prompts
# ---------------------------------------------------------------------------

SYSTEM_PROMPT = """\
You are a coding agent working inside the user's workspace. You act only \
through the tools you are given; read before you edit and verify after.

When editing files with edit_file, code_edit may be one of:
  - the complete new file content;
  - unified-diff hunks starting with a header such as "@@ -10,5 +10,9 @@";
  - a partial edit where unchanged regions are replaced by a line
    "// ... existing code ..." (or "# ...", "/* ... */", "<!-- ... -->"
    spelling), with a few unchanged lines around every change so it can be
    located.
A target_file that does not exist is created with code_edit as its content.

Paths are relative to the workspace root unless absolute. When the task is \
complete, answer in plain text without calling any tool.\
"""

READONLY_PROMPT = """\
You are in ask mode: the workspace is read-only. Do not attempt to edit or \
delete files, run commands, or write memos or todos; those tools will be \
refused. Investigate with the read-only tools and answer.\
"""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _decode_arguments(raw: str) -> Any:
    """Decode a tool-call payload. Undecodable text is returned unchanged."""
    try:
        return json.loads(raw) if raw.strip() else {}
    except json.JSONDecodeError:
        return raw


# ---------------------------------------------------------------------------
# Harness
# ---------------------------------------------------------------------------


class Harness:
    """
    Drives one client's conversation with a model.

    Example:
        harness = Harness(Settings.from_env(), observer=ConsoleObserver())
        result = await harness.chat("Add a subtract function to calc.py")
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        model: ChatModel | None = None,
        registry: CapabilityRegistry | None = None,
        observer: ToolObserver | None = None,
        workspace: str | Path | None = None,
        linters: list[LinterProvider] | None = None,
    ) -> None:
        self.settings = settings or Settings.from_env()
        self.mode: Mode = parse_mode(self.settings.mode)
        self.registry = registry or build_registry()
        self.gate = PermissionGate(self.registry)
        self.workspace = Path(workspace or Path.cwd()).resolve()
        self.model = model or OpenAIChatModel.from_settings(self.settings)
        self.observer = observer or ToolObserver()
        self.linters = list(linters or [])

    # ------------------------------------------------------------------
    # Mode
    # ------------------------------------------------------------------

    def set_mode(self, value: str | Mode) -> Mode:
        """Switch mode. InvalidMode is raised before anything changes."""
        self.mode = transition_mode(self.mode, value)
        display.mode_changed(self.mode.value)
        return self.mode

    def tool_definitions(self, mode: Mode) -> list[dict[str, Any]]:
        """Tools advertised to the model; restricted ones are hidden in ask mode."""
        return self.registry.definitions(include_restricted=mode is Mode.AGENT)

    # ------------------------------------------------------------------
    # Invocation
    # ------------------------------------------------------------------

    def _context(self, observer: ToolObserver) -> ToolContext:
        return ToolContext(
            workspace=self.workspace,
            observer=observer,
            command_timeout=self.settings.command_timeout,
            state_dir=self.settings.state_dir,
            model=self.model,
            model_factory=lambda name: OpenAIChatModel.from_settings(self.settings, name),
            linters=self.linters,
        )

    async def execute(
        self,
        name: str,
        args: dict[str, Any],
        *,
        mode: Mode | None = None,
        observer: ToolObserver | None = None,
    ) -> dict[str, Any]:
        """
        Run one capability. UnknownCapability and PermissionDenied are raised
        before the handler is reached; handler errors propagate unchanged.
        """
        self.gate.require(name, self.mode if mode is None else mode)
        return await self.registry.execute(name, args, self._context(observer or self.observer))

    async def _invoke(self, call: ToolCall, mode: Mode, observer: ToolObserver) -> ToolResult:
        args = _decode_arguments(call.arguments)
        observer.tool_start(call.name, args)
        try:
            if not isinstance(args, dict):
                raise ParseError(f"Arguments for {call.name} must be a JSON object")
            result = await self.execute(call.name, args, mode=mode, observer=observer)
        except Exception as exc:
            message = str(exc) or type(exc).__name__
            logger.warning("Tool %s (%s) failed: %s", call.name, call.id, message)
            observer.tool_error(call.name, args, message)
            return ToolResult.failure(call, message)

        observer.tool_complete(call.name, args, result)
        return ToolResult.success(call, result)

    async def dispatch(
        self,
        calls: list[ToolCall],
        mode: Mode,
        observer: ToolObserver | None = None,
    ) -> list[ToolResult]:
        """Run a batch concurrently and return results in request order."""
        observer = observer or self.observer
        return list(await asyncio.gather(*(self._invoke(call, mode, observer) for call in calls)))

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def chat(
        self,
        prompt: str,
        messages: list[Message] | None = None,
        *,
        observer: ToolObserver | None = None,
    ) -> ChatResult:
        """
        Run one user turn to completion.

        `messages` belongs to the caller and only grows: the system prompt is
        put in front when missing, then the user prompt, model replies and
        tool results are appended. Raises MaxIterationsExceeded when the model
        keeps calling tools past the iteration cap.
        """
        conversation = messages if messages is not None else []
        if not conversation or conversation[0].role != "system":
            conversation.insert(0, Message(role="system", content=SYSTEM_PROMPT))

        mode = self.mode
        content = prompt if mode is Mode.AGENT else f"{prompt}\n\n{READONLY_PROMPT}"
        conversation.append(Message(role="user", content=content))
        tools = self.tool_definitions(mode)
        max_iterations = self.settings.max_iterations

        for iteration in range(1, max_iterations + 1):
            display.model_call(iteration, max_iterations)
            reply = await self.model.complete(conversation, tools)
            conversation.append(reply)

            if not reply.tool_calls:
                display.final_result(reply.content or "")
                return ChatResult(content=reply.content or "", conversation=conversation, iterations=iteration)

            display.tool_batch(len(reply.tool_calls))
            results = await self.dispatch(reply.tool_calls, mode, observer)
            conversation.extend(Message.from_result(result) for result in results)

        logger.error("Conversation stopped after %d iterations without a final answer", max_iterations)
        display.halt(f"Maximum iterations ({max_iterations}) reached")
        raise MaxIterationsExceeded(max_iterations)

    def run(self, prompt: str) -> str:
        """Synchronous convenience wrapper around chat()."""
        display.prompt_received(prompt)
        return asyncio.run(self.chat(prompt)).content
