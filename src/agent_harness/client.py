# client.py
# Model client. The harness only needs `complete(messages, tools) -> Message`;
# OpenAIChatModel provides it over any OpenAI-compatible endpoint.

import logging
from pathlib import Path
from typing import Any, Protocol

from openai import AsyncOpenAI

from agent_harness.config import Engine, Settings, find_engine, load_engines
from agent_harness.errors import HarnessError
from agent_harness.models import Message, ToolCall

logger = logging.getLogger(__name__)


class ChatModel(Protocol):
    async def complete(self, messages: list[Message], tools: list[dict[str, Any]]) -> Message: ...


class OpenAIChatModel:
    def __init__(self, engine: Engine, api_key: str | None, client: AsyncOpenAI | None = None) -> None:
        self.engine = engine
        self._client = client or AsyncOpenAI(base_url=engine.base_url, api_key=api_key)

    @classmethod
    def from_settings(cls, settings: Settings, model: str | None = None) -> "OpenAIChatModel":
        engine = find_engine(load_engines(settings), model or settings.model)
        root = settings.engines_file.parent if settings.engines_file.exists() else Path.cwd()
        return cls(engine, engine.resolve_api_key(root))

    async def complete(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]],
        **options: Any,
    ) -> Message:
        request: dict[str, Any] = {
            "model": self.engine.model,
            "messages": [message.to_wire() for message in messages],
            **options,
        }
        if tools:
            request["tools"] = tools

        logger.debug("Calling %s with %d message(s), %d tool(s)", self.engine.name, len(messages), len(tools))
        response = await self._client.chat.completions.create(**request)
        if not response.choices:
            raise HarnessError("Invalid response format from LLM API")

        message = response.choices[0].message
        return Message(
            role="assistant",
            content=message.content,
            tool_calls=[
                ToolCall(id=call.id, name=call.function.name, arguments=call.function.arguments or "{}")
                for call in message.tool_calls or []
            ],
        )
