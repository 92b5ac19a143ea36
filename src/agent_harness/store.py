# store.py
# JSON-file persistence for memos and todos. Each store owns one file under
# the harness state directory and rewrites it whole on every change.

import json
import logging
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from pydantic import TypeAdapter, ValidationError

from agent_harness.models import Memory, Todo

logger = logging.getLogger(__name__)

_MEMORIES = TypeAdapter(list[Memory])
_TODOS = TypeAdapter(list[Todo])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _load(path: Path, adapter: TypeAdapter) -> list:
    if not path.exists():
        return []
    try:
        return adapter.validate_json(path.read_text(encoding="utf-8"))
    except (ValidationError, ValueError) as exc:
        logger.warning("Ignoring unreadable store %s: %s", path, exc)
        return []


def _save(path: Path, adapter: TypeAdapter, records: list) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(adapter.dump_python(records, mode="json", exclude_none=True), indent=2),
        encoding="utf-8",
    )


class MemoryStore:
    def __init__(self, path: Path) -> None:
        self.path = path

    def all(self) -> list[Memory]:
        return _load(self.path, _MEMORIES)

    def create(self, title: str, knowledge: str) -> Memory:
        memories = self.all()
        memory = Memory(
            id=f"memory_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}",
            title=title,
            knowledge=knowledge,
            created=_now(),
        )
        memories.append(memory)
        _save(self.path, _MEMORIES, memories)
        return memory

    def update(self, memory_id: str, title: str, knowledge: str) -> Memory:
        memories = self.all()
        memory = self._find(memories, memory_id)
        memory.title = title
        memory.knowledge = knowledge
        memory.updated = _now()
        _save(self.path, _MEMORIES, memories)
        return memory

    def delete(self, memory_id: str) -> None:
        memories = self.all()
        memories.remove(self._find(memories, memory_id))
        _save(self.path, _MEMORIES, memories)

    @staticmethod
    def _find(memories: list[Memory], memory_id: str) -> Memory:
        for memory in memories:
            if memory.id == memory_id:
                return memory
        raise KeyError(f"Memory with id {memory_id} not found")


class TodoStore:
    def __init__(self, path: Path) -> None:
        self.path = path

    def all(self) -> list[Todo]:
        return _load(self.path, _TODOS)

    def write(self, todos: Iterable[Todo], merge: bool = False) -> list[Todo]:
        """Replace the list, or with `merge` upsert by id keeping existing order."""
        if merge:
            by_id = {todo.id: todo for todo in self.all()}
            for todo in todos:
                by_id[todo.id] = todo
            result = list(by_id.values())
        else:
            result = list(todos)
        _save(self.path, _TODOS, result)
        return result
