import asyncio
import json

import pytest
from pydantic import BaseModel

from agent_harness.errors import MaxIterationsExceeded
from agent_harness.harness import READONLY_PROMPT, SYSTEM_PROMPT
from agent_harness.models import Message, Mode, ToolCall
from agent_harness.registry import Capability, CapabilityRegistry

from conftest import LoopingModel, RecordingObserver, ScriptedModel, assistant, tool_call

# ---------------------------------------------------------------------------
# Termination
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_plain_reply_finishes_the_turn(make_harness):
    model = ScriptedModel(assistant("All done."))
    harness = make_harness(model)

    result = await harness.chat("hello")

    assert result.content == "All done."
    assert result.iterations == 1
    assert [m.role for m in result.conversation] == ["system", "user", "assistant"]
    assert result.conversation[0].content == SYSTEM_PROMPT


@pytest.mark.asyncio
async def test_model_that_always_calls_tools_hits_the_cap(make_harness, settings):
    model = LoopingModel()
    harness = make_harness(model)

    with pytest.raises(MaxIterationsExceeded) as excinfo:
        await harness.chat("loop forever")

    assert model.calls == settings.max_iterations
    assert excinfo.value.max_iterations == settings.max_iterations


@pytest.mark.asyncio
async def test_tool_results_are_fed_back_before_next_round_trip(make_harness, workspace):
    (workspace / "notes.txt").write_text("remember the milk")
    call = tool_call("read_file", target_file="notes.txt")
    model = ScriptedModel(assistant(calls=[call]), assistant("It says to remember the milk."))
    harness = make_harness(model)

    result = await harness.chat("what is in notes.txt?")

    assert result.iterations == 2
    tool_message = result.conversation[3]
    assert tool_message.role == "tool"
    assert tool_message.tool_call_id == call.id
    assert json.loads(tool_message.content) == {"content": "remember the milk"}
    sent, _ = model.requests[1]
    assert sent[-1].tool_call_id == call.id


# ---------------------------------------------------------------------------
# Conversation ownership
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_caller_conversation_is_extended_in_place(make_harness):
    history = [Message(role="system", content="custom system prompt")]
    harness = make_harness(ScriptedModel(assistant("first"), assistant("second")))

    await harness.chat("one", history)
    result = await harness.chat("two", history)

    assert result.conversation == history
    assert [m.role for m in history] == ["system", "user", "assistant", "user", "assistant"]
    assert history[0].content == "custom system prompt"


@pytest.mark.asyncio
async def test_ask_mode_appends_readonly_prompt_and_hides_restricted_tools(make_harness):
    model = ScriptedModel(assistant("ok"))
    harness = make_harness(model)
    harness.set_mode("ask")

    result = await harness.chat("look around")

    assert result.conversation[1].content == f"look around\n\n{READONLY_PROMPT}"
    _, tools = model.requests[0]
    names = {tool["function"]["name"] for tool in tools}
    assert "read_file" in names
    assert "edit_file" not in names
    assert "run_terminal_cmd" not in names


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_batch_failures_are_isolated_and_ordered(make_harness, workspace):
    (workspace / "present.txt").write_text("here")
    missing = tool_call("read_file", target_file="missing.txt")
    present = tool_call("read_file", target_file="present.txt")
    harness = make_harness(ScriptedModel())

    results = await harness.dispatch([missing, present], Mode.AGENT)

    assert [r.tool_call_id for r in results] == [missing.id, present.id]
    assert "error" in json.loads(results[0].content)
    assert json.loads(results[1].content) == {"content": "here"}


class NapArgs(BaseModel):
    seconds: float
    label: str


async def _nap(args: NapArgs, ctx) -> dict:
    await asyncio.sleep(args.seconds)
    return {"label": args.label}


@pytest.mark.asyncio
async def test_results_keep_request_order_when_calls_finish_out_of_order(make_harness):
    registry = CapabilityRegistry([Capability("nap", _nap, NapArgs)])
    harness = make_harness(ScriptedModel(), registry=registry)
    calls = [
        tool_call("nap", seconds=0.05, label="slow"),
        tool_call("nap", seconds=0, label="fast"),
    ]

    results = await harness.dispatch(calls, Mode.AGENT)

    assert [json.loads(r.content)["label"] for r in results] == ["slow", "fast"]


@pytest.mark.asyncio
async def test_ask_mode_refuses_edit_before_touching_disk(make_harness, workspace):
    harness = make_harness(ScriptedModel())
    call = tool_call("edit_file", target_file="new.txt", code_edit="data")

    [result] = await harness.dispatch([call], Mode.ASK)

    assert json.loads(result.content) == {"error": "edit_file is not allowed in ask mode"}
    assert not (workspace / "new.txt").exists()


@pytest.mark.asyncio
async def test_unknown_tool_and_bad_arguments_become_error_results(make_harness):
    harness = make_harness(ScriptedModel())
    unknown = tool_call("format_disk")
    garbled = ToolCall(id="bad", name="read_file", arguments="{not json")

    results = await harness.dispatch([unknown, garbled], Mode.AGENT)

    assert json.loads(results[0].content) == {"error": "Unknown tool: format_disk"}
    assert "must be a JSON object" in json.loads(results[1].content)["error"]


@pytest.mark.asyncio
async def test_edit_file_through_dispatch(make_harness, workspace):
    (workspace / "calc.py").write_text("a\nb\nc")
    harness = make_harness(ScriptedModel())
    call = tool_call(
        "edit_file",
        target_file="calc.py",
        instructions="insert x after b",
        code_edit="@@ -1,3 +1,4 @@\n a\n b\n+x\n c",
    )

    [result] = await harness.dispatch([call], Mode.AGENT)

    assert json.loads(result.content) == {"success": True, "action": "patched"}
    assert (workspace / "calc.py").read_text() == "a\nb\nx\nc"


@pytest.mark.asyncio
async def test_observer_sees_start_then_exactly_one_outcome(make_harness, workspace):
    (workspace / "ok.txt").write_text("fine")
    observer = RecordingObserver()
    harness = make_harness(ScriptedModel())
    calls = [tool_call("read_file", target_file="ok.txt"), tool_call("delete_file", target_file="ok.txt")]

    await harness.dispatch(calls, Mode.ASK, observer)

    by_tool = {}
    for event in observer.events:
        by_tool.setdefault(event[1], []).append(event[0])
    assert by_tool == {"read_file": ["start", "complete"], "delete_file": ["start", "error"]}
    assert (workspace / "ok.txt").exists()


@pytest.mark.asyncio
async def test_execute_raises_permission_errors_directly(make_harness):
    from agent_harness.errors import PermissionDenied, UnknownCapability

    harness = make_harness(ScriptedModel())
    with pytest.raises(PermissionDenied):
        await harness.execute("delete_file", {"target_file": "x"}, mode=Mode.ASK)
    with pytest.raises(UnknownCapability):
        await harness.execute("nope", {})
