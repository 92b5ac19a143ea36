# config.py
# Settings and LLM engine table.
#
# The environment (after .env is loaded) is read in exactly one place:
# Settings.from_env(). Engines come from an optional llm-engines.json; when it
# is absent a single OpenRouter engine keyed by OPENROUTER_API_KEY is used.

import json
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from agent_harness.errors import ConfigError
from agent_harness.models import Mode
from agent_harness.permissions import parse_mode

DEFAULT_MODEL = "openrouter/gemini-3-pro-preview"
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class Engine(BaseModel):
    """One entry of llm-engines.json."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    base_url: str = Field(..., alias="baseUrl")
    model: str
    key_path: str | None = Field(default=None, alias="keyPath")
    api_key: str | None = Field(default=None, exclude=True)

    def resolve_api_key(self, root: Path) -> str | None:
        if self.api_key:
            return self.api_key
        if not self.key_path:
            return None
        path = Path(self.key_path)
        if not path.is_absolute():
            path = root / path
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Failed to read API key from {self.key_path}: {exc}") from exc


class Settings(BaseModel):
    model: str = DEFAULT_MODEL
    mode: Mode = Mode.AGENT
    max_iterations: int = Field(default=100, ge=1)
    command_timeout: float = Field(default=300.0, gt=0)
    engines_file: Path = Path("llm-engines.json")
    state_dir: Path | None = None
    log_level: str = "INFO"
    openrouter_api_key: str | None = None

    @field_validator("mode", mode="before")
    @classmethod
    def _check_mode(cls, value):
        return parse_mode(value)

    @classmethod
    def from_env(cls, env_file: str | None = None) -> "Settings":
        load_dotenv(env_file)
        raw = {
            "model": os.getenv("AGENT_HARNESS_MODEL"),
            "mode": os.getenv("AGENT_HARNESS_MODE"),
            "max_iterations": os.getenv("AGENT_HARNESS_MAX_ITERATIONS"),
            "command_timeout": os.getenv("AGENT_HARNESS_COMMAND_TIMEOUT"),
            "engines_file": os.getenv("AGENT_HARNESS_ENGINES_FILE"),
            "state_dir": os.getenv("AGENT_HARNESS_STATE_DIR"),
            "log_level": os.getenv("AGENT_HARNESS_LOG_LEVEL"),
            "openrouter_api_key": os.getenv("OPENROUTER_API_KEY"),
        }
        try:
            return cls.model_validate({k: v for k, v in raw.items() if v is not None})
        except ValidationError as exc:
            raise ConfigError(f"Invalid settings: {exc}") from exc


def load_engines(settings: Settings) -> list[Engine]:
    path = settings.engines_file
    if not path.exists():
        return [
            Engine(
                name=DEFAULT_MODEL,
                base_url=OPENROUTER_BASE_URL,
                model=DEFAULT_MODEL.split("/", 1)[1],
                api_key=settings.openrouter_api_key,
            )
        ]
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return [Engine.model_validate(entry) for entry in data]
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc


def find_engine(engines: list[Engine], name: str) -> Engine:
    for engine in engines:
        if engine.name == name:
            return engine
    available = ", ".join(engine.name for engine in engines)
    raise ConfigError(f'Model "{name}" not found in llm-engines.json. Available models: {available}')
