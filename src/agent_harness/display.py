# display.py
# All terminal output for the agent harness.
#
# This module owns presentation entirely. harness.py never formats strings;
# it calls named functions here. Swap this file to change the entire UI.
#
# Colour language:
#   cyan   : conversation / routing events
#   blue   : model round trips
#   green  : success / confirmed
#   red    : failures, halts, denials
#   magenta: tool invocations and their output

import json
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.text import Text

from agent_harness.observer import ToolObserver

console = Console()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _label(tag: str, color: str) -> Text:
    t = Text()
    t.append(f" {tag} ", style=f"bold white on {color}")
    return t


def _mono(value: str, max_len: int = 120) -> str:
    if len(value) > max_len:
        return value[:max_len] + "…"
    return value


def _args(args: Any) -> str:
    try:
        return json.dumps(args)
    except (TypeError, ValueError):
        return str(args)


# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------


def banner(model: str, mode: str, workspace: str) -> None:
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]Agent Harness[/bold cyan]\n"
            "[dim]Permission-gated tool dispatch with model-authored file edits[/dim]\n\n"
            f"[dim]Model     :[/dim] [white]{model}[/white]\n"
            f"[dim]Mode      :[/dim] [white]{mode}[/white]\n"
            f"[dim]Workspace :[/dim] [white]{workspace}[/white]",
            border_style="cyan",
            padding=(1, 4),
        )
    )


def prompt_received(prompt: str) -> None:
    console.print()
    console.print(Rule("[cyan]NEW REQUEST[/cyan]", style="cyan"))
    console.print(
        Panel(
            f"[white]{prompt}[/white]",
            title=_label("USER PROMPT", "cyan"),
            border_style="cyan",
            padding=(0, 2),
        )
    )


def mode_changed(mode: str) -> None:
    console.print(_label("MODE", "cyan"), f"[cyan] → {mode}[/cyan]")


def model_call(iteration: int, max_iterations: int) -> None:
    console.print()
    console.print(
        _label("MODEL", "blue"),
        f"[blue] Round trip {iteration}/{max_iterations}…[/blue]",
    )


def tool_batch(count: int) -> None:
    console.print(Rule(f"[magenta]DISPATCH — {count} tool call(s)[/magenta]", style="magenta"))


# ---------------------------------------------------------------------------
# Tool invocations
# ---------------------------------------------------------------------------


def tool_start(name: str, args: Any) -> None:
    console.print(
        f"  [magenta]Call[/magenta]     [bold white]{name}[/bold white]"
        f"  [dim]{_mono(_args(args), 100)}[/dim]"
    )


def tool_complete(name: str, result: dict) -> None:
    console.print(f"  [bold green]✓ {name}[/bold green]  [dim]{_mono(_args(result), 100)}[/dim]")


def tool_error(name: str, message: str) -> None:
    console.print(f"  [bold red]✗ {name}[/bold red]  [red]{_mono(message, 160)}[/red]")


def tool_output(stream: str, text: str) -> None:
    style = "dim red" if stream == "stderr" else "dim white"
    console.print(Text(text.rstrip("\n"), style=style))


class ConsoleObserver(ToolObserver):
    """Renders every invocation event on the console."""

    def tool_start(self, name: str, args: Any) -> None:
        tool_start(name, args)

    def tool_complete(self, name: str, args: Any, result: dict) -> None:
        tool_complete(name, result)

    def tool_error(self, name: str, args: Any, message: str) -> None:
        tool_error(name, message)

    def tool_output(self, name: str, stream: str, text: str) -> None:
        tool_output(stream, text)


# ---------------------------------------------------------------------------
# Final result
# ---------------------------------------------------------------------------


def final_result(result: str) -> None:
    console.print()
    console.print(
        Panel(
            f"[white]{result}[/white]",
            title=_label("RESULT", "green"),
            border_style="green",
            padding=(1, 2),
        )
    )
    console.print()


def halt(reason: str) -> None:
    console.print()
    console.print(
        Panel(
            f"[bold white]{reason}[/bold white]",
            title=_label("HALT", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )
    console.print()
