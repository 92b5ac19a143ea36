# permissions.py
# Permission gate. Pure functions over (capability, mode); the current mode is
# owned by the caller and threaded through every call.

from agent_harness.errors import InvalidMode, PermissionDenied
from agent_harness.models import Decision, Mode
from agent_harness.registry import CapabilityRegistry

ALLOW = Decision(allowed=True)


def parse_mode(value: str | Mode) -> Mode:
    """Coerce a raw value to a Mode. Raises InvalidMode for anything else."""
    if isinstance(value, Mode):
        return value
    try:
        return Mode(value)
    except ValueError as exc:
        raise InvalidMode(f'Mode must be "ask" or "agent", got {value!r}') from exc


def transition_mode(current: Mode, requested: str | Mode) -> Mode:
    """
    Compute the next mode. Validation happens before anything changes, so a
    rejected request leaves the caller's state exactly as it was.
    """
    parse_mode(current)
    return parse_mode(requested)


class PermissionGate:
    """Answers whether a registered capability may run under a given mode."""

    def __init__(self, registry: CapabilityRegistry) -> None:
        self._registry = registry

    def authorize(self, name: str, mode: Mode) -> Decision:
        """
        Return allow or deny(reason). Raises UnknownCapability for names the
        registry does not know.
        """
        capability = self._registry.get(name)
        mode = parse_mode(mode)
        if capability.restricted and mode is Mode.ASK:
            return Decision(allowed=False, reason=f"{name} is not allowed in ask mode")
        return ALLOW

    def require(self, name: str, mode: Mode) -> None:
        """Raise PermissionDenied unless authorize() allows the call."""
        decision = self.authorize(name, mode)
        if not decision.allowed:
            raise PermissionDenied(decision.reason)
