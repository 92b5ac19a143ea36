# lint.py
# Linter provider interface. A provider wraps one static-analysis binary and
# turns its native output into LintRecord entries; none ship with the harness.

import logging
from pathlib import Path
from typing import Iterable, Protocol, runtime_checkable

from agent_harness.models import LintRecord

logger = logging.getLogger(__name__)


@runtime_checkable
class LinterProvider(Protocol):
    name: str
    suffixes: tuple[str, ...]

    async def lint(self, path: Path) -> list[LintRecord]: ...


def providers_for(path: Path, providers: Iterable[LinterProvider]) -> list[LinterProvider]:
    return [provider for provider in providers if path.suffix in provider.suffixes]


async def collect_lints(paths: Iterable[Path], providers: list[LinterProvider]) -> list[LintRecord]:
    records: list[LintRecord] = []
    for path in paths:
        for provider in providers_for(path, providers):
            logger.debug("Linting %s with %s", path, provider.name)
            records.extend(await provider.lint(path))
    return records
