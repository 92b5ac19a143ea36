# logging_utils.py
# Root logger setup. Console records go through rich so they interleave
# cleanly with display.py output; an optional file gets plain text.

import logging
from pathlib import Path

from rich.logging import RichHandler

from agent_harness.display import console

_CONFIGURED_ATTR = "_agent_harness_configured"


def configure_logging(level: int | str = logging.INFO, log_file: str | Path | None = None) -> None:
    """Install handlers on the root logger. Repeated calls only adjust the level."""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Avoid duplicate handlers if configure_logging() is called multiple times.
    if getattr(logger, _CONFIGURED_ATTR, False):
        return

    logger.addHandler(RichHandler(console=console, show_path=False, rich_tracebacks=True))

    if log_file is not None:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
                datefmt="%Y-%m-%dT%H:%M:%S%z",
            )
        )
        logger.addHandler(file_handler)

    setattr(logger, _CONFIGURED_ATTR, True)
    logging.getLogger(__name__).debug("Logging initialized (level=%s, file=%s)", level, log_file)
