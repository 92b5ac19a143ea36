"""Shared fixtures for the agent harness tests."""

import json
from itertools import count

import pytest

from agent_harness.config import Settings
from agent_harness.harness import Harness
from agent_harness.models import Message, ToolCall
from agent_harness.observer import ToolObserver
from agent_harness.registry import ToolContext

_ids = count(1)


def tool_call(name: str, **args) -> ToolCall:
    return ToolCall(id=f"call_{next(_ids)}", name=name, arguments=json.dumps(args))


def assistant(content: str | None = None, calls: list[ToolCall] | None = None) -> Message:
    return Message(role="assistant", content=content, tool_calls=calls or [])


class ScriptedModel:
    """Returns the queued replies in order and records what it was sent."""

    def __init__(self, *replies: Message) -> None:
        self.replies = list(replies)
        self.requests: list[tuple[list[Message], list[dict]]] = []

    async def complete(self, messages, tools):
        self.requests.append((list(messages), tools))
        return self.replies.pop(0)


class LoopingModel:
    """Never stops asking for tools."""

    def __init__(self) -> None:
        self.calls = 0

    async def complete(self, messages, tools):
        self.calls += 1
        return assistant(calls=[tool_call("list_dir")])


class RecordingObserver(ToolObserver):
    def __init__(self) -> None:
        self.events: list[tuple] = []

    def tool_start(self, name, args):
        self.events.append(("start", name))

    def tool_complete(self, name, args, result):
        self.events.append(("complete", name))

    def tool_error(self, name, args, message):
        self.events.append(("error", name, message))

    def tool_output(self, name, stream, text):
        self.events.append(("output", name, stream, text))


@pytest.fixture
def workspace(tmp_path):
    root = tmp_path / "workspace"
    root.mkdir()
    return root


@pytest.fixture
def settings(tmp_path):
    return Settings(max_iterations=5, command_timeout=10, state_dir=tmp_path / "state")


@pytest.fixture
def ctx(workspace, tmp_path):
    return ToolContext(workspace=workspace, command_timeout=10, state_dir=tmp_path / "state")


@pytest.fixture
def make_harness(settings, workspace):
    def _make(model, **kwargs) -> Harness:
        return Harness(settings, model=model, workspace=workspace, **kwargs)

    return _make
