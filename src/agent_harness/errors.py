# errors.py
# Exception taxonomy shared by the gate, the registry, the edit engine and
# the conversation loop. Filesystem failures are plain OSError and are not
# wrapped here.


class HarnessError(Exception):
    """Base class for every error raised by the harness itself."""


class ConfigError(HarnessError):
    """Raised when settings or the engine table cannot be resolved."""


class InvalidMode(HarnessError):
    """Raised for any mode value outside {ask, agent}. State is never touched."""


class UnknownCapability(HarnessError):
    """Raised when a capability name has no registry entry."""


class RegistrationError(HarnessError):
    """Raised when a capability cannot be registered (bad name, duplicate, bad handler)."""


class PermissionDenied(HarnessError):
    """Raised before any mutation when the current mode forbids a capability."""


class ParseError(HarnessError):
    """Raised when tool-call arguments are not a JSON object."""


class MaxIterationsExceeded(HarnessError):
    """Raised when the conversation hits its iteration cap without finishing."""

    def __init__(self, max_iterations: int) -> None:
        super().__init__(f"Maximum iterations ({max_iterations}) reached")
        self.max_iterations = max_iterations


class SubprocessTimeout(HarnessError):
    """Raised after a child process overran its timeout and was killed."""


class SubprocessFailure(HarnessError):
    """Raised when a child process cannot be spawned or reports a hard error."""
