# observer.py
# Per-invocation event sink. An instance is passed into each dispatch call;
# for every invocation the harness emits tool_start followed by exactly one
# of tool_complete or tool_error. The base class ignores everything.

from typing import Any


class ToolObserver:
    def tool_start(self, name: str, args: Any) -> None:
        pass

    def tool_complete(self, name: str, args: Any, result: dict[str, Any]) -> None:
        pass

    def tool_error(self, name: str, args: Any, message: str) -> None:
        pass

    def tool_output(self, name: str, stream: str, text: str) -> None:
        """Streamed stdout/stderr chunk from a running subprocess."""
