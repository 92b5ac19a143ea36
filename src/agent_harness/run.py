# run.py
# Entry point. Config and wiring only; no logic lives here.
#
# Usage: agent-harness "Add a subtract function to calc.py"
# Model, mode and limits come from the environment / .env (see config.py).

import sys

from agent_harness import display
from agent_harness.config import Settings
from agent_harness.display import ConsoleObserver
from agent_harness.errors import MaxIterationsExceeded
from agent_harness.harness import Harness
from agent_harness.logging_utils import configure_logging


def main() -> None:
    settings = Settings.from_env()
    configure_logging(settings.log_level)

    prompt = " ".join(sys.argv[1:]).strip()
    if not prompt:
        display.halt('Usage: agent-harness "<prompt>"')
        raise SystemExit(2)

    harness = Harness(settings, observer=ConsoleObserver())
    display.banner(settings.model, harness.mode.value, str(harness.workspace))

    try:
        harness.run(prompt)
    except MaxIterationsExceeded:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
