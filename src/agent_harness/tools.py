# tools.py
# Capability implementations and the default registry.
# The harness resolves names through CapabilityRegistry and never calls these
# functions directly. Every handler takes (validated args, ToolContext) and
# returns a JSON-serialisable dict; failures are raised, not returned.

import asyncio
import fnmatch
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from agent_harness.editor import apply_edit
from agent_harness.errors import HarnessError, SubprocessFailure
from agent_harness.lint import collect_lints
from agent_harness.models import EditRequest, Message, Todo
from agent_harness.registry import Capability, CapabilityRegistry, ToolContext
from agent_harness.shell import run_program, run_shell, spawn_background
from agent_harness.store import MemoryStore, TodoStore

STATE_DIR_NAME = ".agent_harness"


def _state_dir(ctx: ToolContext) -> Path:
    return ctx.state_dir or ctx.workspace / STATE_DIR_NAME


# ---------------------------------------------------------------------------
# Read-only capabilities
# ---------------------------------------------------------------------------


class ReadFileArgs(BaseModel):
    target_file: str = Field(..., description="Path of the file to read.")
    offset: int | None = Field(default=None, ge=0, description="First line to return (0-based).")
    limit: int | None = Field(default=None, ge=1, description="Maximum number of lines to return.")


def _tool_read_file(args: ReadFileArgs, ctx: ToolContext) -> dict:
    content = ctx.resolve(args.target_file).read_text(encoding="utf-8")
    if args.offset is not None or args.limit is not None:
        lines = content.split("\n")
        start = args.offset or 0
        end = start + args.limit if args.limit else len(lines)
        content = "\n".join(lines[start:end])
    return {"content": content}


class ListDirArgs(BaseModel):
    target_directory: str | None = Field(default=None, description="Directory to list; defaults to the workspace.")
    ignore_globs: list[str] = Field(default_factory=list, description="Glob patterns of entries to hide.")


def _ignored(name: str, globs: list[str]) -> bool:
    return any(fnmatch.fnmatch(name, pattern.removeprefix("**/")) for pattern in globs)


def _tool_list_dir(args: ListDirArgs, ctx: ToolContext) -> dict:
    root = ctx.resolve(args.target_directory) if args.target_directory else ctx.workspace
    items = []
    for entry in sorted(root.iterdir(), key=lambda p: p.name):
        if entry.name.startswith(".") or _ignored(entry.name, args.ignore_globs):
            continue
        items.append({"name": entry.name, "type": "directory" if entry.is_dir() else "file"})
    return {"items": items}


class GlobFileSearchArgs(BaseModel):
    glob_pattern: str = Field(..., description="Glob to match, e.g. '*.py'. '**/' is implied.")
    target_directory: str | None = Field(default=None, description="Directory to search; defaults to the workspace.")


def _tool_glob_file_search(args: GlobFileSearchArgs, ctx: ToolContext) -> dict:
    root = ctx.resolve(args.target_directory) if args.target_directory else ctx.workspace
    pattern = args.glob_pattern.lstrip("/")
    if not pattern.startswith("**/"):
        pattern = "**/" + pattern
    matches = [path for path in root.glob(pattern) if path.is_file()]
    matches.sort(key=lambda p: p.stat().st_mtime, reverse=True)
    return {"files": [str(path) for path in matches]}


class GrepArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    pattern: str = Field(..., description="Regular expression to search for.")
    path: str | None = Field(default=None, description="File or directory to search.")
    glob: str | None = None
    type: str | None = None
    output_mode: Literal["content", "files_with_matches", "count"] = "content"
    before: int | None = Field(default=None, alias="-B")
    after: int | None = Field(default=None, alias="-A")
    context: int | None = Field(default=None, alias="-C")
    case_insensitive: bool = Field(default=False, alias="-i")
    head_limit: int | None = None
    multiline: bool = False

    def rg_argv(self) -> list[str]:
        argv = ["rg", self.pattern]
        if self.path:
            argv.append(self.path)
        if self.glob:
            argv += ["--glob", self.glob]
        if self.type:
            argv += ["--type", self.type]
        for flag, value in (("-B", self.before), ("-A", self.after), ("-C", self.context)):
            if value is not None:
                argv += [flag, str(value)]
        if self.case_insensitive:
            argv.append("-i")
        if self.multiline:
            argv += ["-U", "--multiline-dotall"]
        if self.output_mode == "files_with_matches":
            argv.append("-l")
        elif self.output_mode == "count":
            argv.append("-c")
        if self.head_limit is not None:
            argv += ["--max-count", str(self.head_limit)]
        return argv


async def _tool_grep(args: GrepArgs, ctx: ToolContext) -> dict:
    result = await run_program(args.rg_argv(), cwd=ctx.workspace, timeout=ctx.command_timeout)
    # ripgrep: 0 = matches, 1 = no matches, 2 = error
    if result.exit_code == 2:
        raise SubprocessFailure(f"ripgrep error: {result.stderr or 'ripgrep error'}")
    return {"content": result.stdout, "matches": result.exit_code == 0}


class ReadLintsArgs(BaseModel):
    paths: list[str] = Field(default_factory=list, description="Files to collect diagnostics for.")


async def _tool_read_lints(args: ReadLintsArgs, ctx: ToolContext) -> dict:
    records = await collect_lints([ctx.resolve(p) for p in args.paths], ctx.linters)
    return {"lints": [record.model_dump() for record in records]}


class WebSearchArgs(BaseModel):
    search_term: str = Field(..., description="Query to send to the search engine.")
    count: int = Field(default=10, description="Number of results (1-100).")


def _search(query: str, count: int) -> list[dict]:
    from ddgs import DDGS

    # Coerce the generator to a list to ensure actual execution
    return list(DDGS().text(query, max_results=count))


async def _tool_web_search(args: WebSearchArgs, ctx: ToolContext) -> dict:
    query = args.search_term.strip()
    if not query:
        raise ValueError("search_term is required")
    count = max(1, min(args.count, 100))
    hits = await asyncio.to_thread(_search, query, count)
    return {
        "results": [
            {"title": hit.get("title", ""), "url": hit.get("href", ""), "snippet": hit.get("body", "")}
            for hit in hits
        ]
    }


class ChatMessageArgs(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class LLMChatArgs(BaseModel):
    model: str | None = Field(default=None, description="Engine name; defaults to the harness model.")
    messages: list[ChatMessageArgs] = Field(..., min_length=1)


async def _tool_llm_chat(args: LLMChatArgs, ctx: ToolContext) -> dict:
    model = ctx.model_factory(args.model) if args.model and ctx.model_factory else ctx.model
    if model is None:
        raise HarnessError("No model configured for llm_chat")
    messages = [Message(role=m.role, content=m.content) for m in args.messages]
    reply = await model.complete(messages, [])
    return {"content": reply.content or ""}


# ---------------------------------------------------------------------------
# Restricted capabilities
# ---------------------------------------------------------------------------


def _tool_edit_file(args: EditRequest, ctx: ToolContext) -> dict:
    return apply_edit(ctx.resolve(args.target_file), args.code_edit).model_dump(mode="json")


class DeleteFileArgs(BaseModel):
    target_file: str = Field(..., description="Path of the file to delete.")


def _tool_delete_file(args: DeleteFileArgs, ctx: ToolContext) -> dict:
    path = ctx.resolve(args.target_file)
    if not path.exists():
        return {"success": True, "message": "File does not exist"}
    path.unlink()
    return {"success": True}


class RunTerminalCmdArgs(BaseModel):
    command: str = Field(..., description="Shell command to run in the workspace.")
    is_background: bool = Field(default=False, description="Detach and return the pid immediately.")


async def _tool_run_terminal_cmd(args: RunTerminalCmdArgs, ctx: ToolContext) -> dict:
    if args.is_background:
        pid = spawn_background(args.command, cwd=ctx.workspace)
        return {"pid": pid, "status": "background"}

    def sink(stream: str, text: str) -> None:
        ctx.observer.tool_output("run_terminal_cmd", stream, text)

    result = await run_shell(args.command, cwd=ctx.workspace, timeout=ctx.command_timeout, sink=sink)
    return {"exit_code": result.exit_code, "stdout": result.stdout, "stderr": result.stderr}


class UpdateMemoryArgs(BaseModel):
    action: Literal["create", "update", "delete"] = "create"
    title: str | None = None
    knowledge_to_store: str | None = None
    existing_knowledge_id: str | None = None


def _tool_update_memory(args: UpdateMemoryArgs, ctx: ToolContext) -> dict:
    store = MemoryStore(_state_dir(ctx) / "memories.json")
    if args.action == "create":
        if not args.title or not args.knowledge_to_store:
            raise ValueError("title and knowledge_to_store are required for create action")
        return {"success": True, "id": store.create(args.title, args.knowledge_to_store).id}
    if args.action == "update":
        if not (args.existing_knowledge_id and args.title and args.knowledge_to_store):
            raise ValueError("existing_knowledge_id, title, and knowledge_to_store are required for update action")
        store.update(args.existing_knowledge_id, args.title, args.knowledge_to_store)
        return {"success": True, "id": args.existing_knowledge_id}
    if not args.existing_knowledge_id:
        raise ValueError("existing_knowledge_id is required for delete action")
    store.delete(args.existing_knowledge_id)
    return {"success": True}


class TodoWriteArgs(BaseModel):
    merge: bool = False
    todos: list[Todo] = Field(..., min_length=1)


def _tool_todo_write(args: TodoWriteArgs, ctx: ToolContext) -> dict:
    todos = TodoStore(_state_dir(ctx) / "todos.json").write(args.todos, merge=args.merge)
    return {"success": True, "count": len(todos)}


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


CAPABILITIES: list[Capability] = [
    Capability("read_file", _tool_read_file, ReadFileArgs, description="Read a file, optionally a line range."),
    Capability("list_dir", _tool_list_dir, ListDirArgs, description="List the entries of a directory."),
    Capability("glob_file_search", _tool_glob_file_search, GlobFileSearchArgs, description="Find files by glob, newest first."),
    Capability("grep", _tool_grep, GrepArgs, description="Search file contents with ripgrep."),
    Capability("read_lints", _tool_read_lints, ReadLintsArgs, description="Collect linter diagnostics for files."),
    Capability("web_search", _tool_web_search, WebSearchArgs, description="Search the web."),
    Capability("llm_chat", _tool_llm_chat, LLMChatArgs, description="Ask a language model a one-off question."),
    Capability(
        "edit_file",
        _tool_edit_file,
        EditRequest,
        restricted=True,
        description=(
            "Create or edit a file. code_edit may be the full new content, unified-diff hunks, "
            "or a partial edit using '// ... existing code ...' markers for unchanged regions."
        ),
    ),
    Capability("delete_file", _tool_delete_file, DeleteFileArgs, restricted=True, description="Delete a file."),
    Capability("run_terminal_cmd", _tool_run_terminal_cmd, RunTerminalCmdArgs, restricted=True, description="Run a shell command."),
    Capability("update_memory", _tool_update_memory, UpdateMemoryArgs, restricted=True, description="Create, update or delete a memo."),
    Capability("todo_write", _tool_todo_write, TodoWriteArgs, restricted=True, description="Write or merge the todo list."),
]


def build_registry() -> CapabilityRegistry:
    return CapabilityRegistry(CAPABILITIES)
