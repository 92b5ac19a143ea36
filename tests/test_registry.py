import asyncio
import threading

import pytest
from pydantic import BaseModel, ValidationError

from agent_harness.errors import RegistrationError, UnknownCapability
from agent_harness.registry import Capability, CapabilityRegistry
from agent_harness.tools import CAPABILITIES, build_registry


class EchoArgs(BaseModel):
    message: str


def _echo(args: EchoArgs, ctx) -> dict:
    return {"message": args.message}


async def _async_echo(args: EchoArgs, ctx) -> dict:
    return {"message": args.message.upper()}


def test_default_registry_has_every_capability():
    registry = build_registry()
    assert registry.names() == [c.name for c in CAPABILITIES]


def test_duplicate_name_rejected():
    registry = CapabilityRegistry([Capability("echo", _echo, EchoArgs)])
    with pytest.raises(RegistrationError, match="already registered"):
        registry.register(Capability("echo", _async_echo, EchoArgs))


@pytest.mark.parametrize("name", ["", "two words", "9lives", "semi;colon"])
def test_invalid_names_rejected(name):
    with pytest.raises(RegistrationError):
        CapabilityRegistry([Capability(name, _echo, EchoArgs)])


def test_handler_and_args_model_are_validated():
    with pytest.raises(RegistrationError, match="not callable"):
        CapabilityRegistry([Capability("echo", "not a function", EchoArgs)])
    with pytest.raises(RegistrationError, match="pydantic"):
        CapabilityRegistry([Capability("echo", _echo, dict)])


def test_lookup_miss_raises_unknown_capability():
    with pytest.raises(UnknownCapability, match="Unknown tool: nope"):
        CapabilityRegistry().get("nope")


def test_definitions_use_function_calling_shape():
    registry = CapabilityRegistry(
        [
            Capability("echo", _echo, EchoArgs, description="Echo a message."),
            Capability("shout", _async_echo, EchoArgs, restricted=True),
        ]
    )
    [definition] = registry.definitions(include_restricted=False)
    assert definition["type"] == "function"
    assert definition["function"]["name"] == "echo"
    assert definition["function"]["description"] == "Echo a message."
    assert definition["function"]["parameters"]["required"] == ["message"]
    assert len(registry.definitions()) == 2


@pytest.mark.asyncio
async def test_execute_runs_sync_and_async_handlers(ctx):
    registry = CapabilityRegistry(
        [Capability("echo", _echo, EchoArgs), Capability("shout", _async_echo, EchoArgs)]
    )
    assert await registry.execute("echo", {"message": "hi"}, ctx) == {"message": "hi"}
    assert await registry.execute("shout", {"message": "hi"}, ctx) == {"message": "HI"}


@pytest.mark.asyncio
async def test_execute_validates_arguments(ctx):
    registry = CapabilityRegistry([Capability("echo", _echo, EchoArgs)])
    with pytest.raises(ValidationError):
        await registry.execute("echo", {"text": "wrong field"}, ctx)


class WaitArgs(BaseModel):
    label: str


@pytest.mark.asyncio
async def test_sync_handlers_in_one_batch_run_concurrently(ctx):
    barrier = threading.Barrier(2, timeout=5)

    def _wait(args: WaitArgs, ctx) -> dict:
        barrier.wait()
        return {"label": args.label}

    registry = CapabilityRegistry([Capability("wait", _wait, WaitArgs)])

    results = await asyncio.gather(
        registry.execute("wait", {"label": "first"}, ctx),
        registry.execute("wait", {"label": "second"}, ctx),
    )

    assert results == [{"label": "first"}, {"label": "second"}]
