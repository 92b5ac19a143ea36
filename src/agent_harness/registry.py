# registry.py
# Capability registry: name to tagged handler table.
# Entries are validated when registered and are immutable afterwards; the
# harness resolves every tool call through a single lookup.

import asyncio
import inspect
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable

from pydantic import BaseModel

from agent_harness.errors import RegistrationError, UnknownCapability
from agent_harness.observer import ToolObserver

_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

Handler = Callable[[Any, "ToolContext"], Awaitable[dict] | dict]


@dataclass
class ToolContext:
    """Everything a handler may touch besides its own arguments."""

    workspace: Path
    observer: ToolObserver = field(default_factory=ToolObserver)
    command_timeout: float = 300.0
    state_dir: Path | None = None
    model: Any = None
    model_factory: Callable[[str], Any] | None = None
    linters: list[Any] = field(default_factory=list)

    def resolve(self, path: str) -> Path:
        candidate = Path(path).expanduser()
        if not candidate.is_absolute():
            candidate = self.workspace / candidate
        return candidate


@dataclass(frozen=True)
class Capability:
    name: str
    handler: Handler
    args_model: type[BaseModel]
    restricted: bool = False
    description: str = ""

    def definition(self) -> dict[str, Any]:
        """OpenAI function-calling definition for this capability."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.args_model.model_json_schema(),
            },
        }


class CapabilityRegistry:
    def __init__(self, capabilities: list[Capability] | None = None) -> None:
        self._table: dict[str, Capability] = {}
        for capability in capabilities or []:
            self.register(capability)

    def register(self, capability: Capability) -> Capability:
        if not _NAME_RE.match(capability.name or ""):
            raise RegistrationError(f"Invalid capability name: {capability.name!r}")
        if capability.name in self._table:
            raise RegistrationError(f"Capability '{capability.name}' is already registered")
        if not callable(capability.handler):
            raise RegistrationError(f"Handler for '{capability.name}' is not callable")
        if not (inspect.isclass(capability.args_model) and issubclass(capability.args_model, BaseModel)):
            raise RegistrationError(f"Argument model for '{capability.name}' must be a pydantic model")
        self._table[capability.name] = capability
        return capability

    def get(self, name: str) -> Capability:
        try:
            return self._table[name]
        except KeyError:
            raise UnknownCapability(f"Unknown tool: {name}") from None

    def __contains__(self, name: object) -> bool:
        return name in self._table

    def names(self) -> list[str]:
        return list(self._table)

    def definitions(self, include_restricted: bool = True) -> list[dict[str, Any]]:
        return [
            capability.definition()
            for capability in self._table.values()
            if include_restricted or not capability.restricted
        ]

    async def execute(self, name: str, args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
        """
        Validate `args` against the capability's model and run its handler.

        Raises UnknownCapability for unregistered names; validation and handler
        errors propagate to the caller unchanged.
        """
        capability = self.get(name)
        params = capability.args_model.model_validate(args)
        if inspect.iscoroutinefunction(capability.handler):
            return await capability.handler(params, ctx)
        # Blocking handlers run on a worker thread.
        result = await asyncio.to_thread(capability.handler, params, ctx)
        if inspect.isawaitable(result):
            result = await result
        return result
