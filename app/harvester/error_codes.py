from __future__ import annotations

"""Error code taxonomy for harvest failures.

Codes are included in structured logs and in per-partition telemetry so that
a run summary can explain why a partition ended early. Source exhaustion is
not an error and therefore has no exception type: it is a partition status.
"""


class ErrorCode:
    NAVIGATION = "navigation_error"
    QUERY = "query_error"
    CLICK = "click_error"
    TIMEOUT = "timeout"
    SESSION = "session_error"
    PERSISTENCE = "persistence_error"
    INTERNAL = "internal_error"


class HarvestError(Exception):
    def __init__(self, error_code: str, message: str) -> None:
        super().__init__(message)
        self.error_code = error_code

    def __str__(self) -> str:  # pragma: no cover - inherited behaviour
        return str(self.args[0]) if self.args else ""


class AutomationFailure(HarvestError):
    """Navigation, query or click failure against the automation surface."""


class AutomationTimeout(AutomationFailure):
    """A bounded wait on the automation surface expired."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.TIMEOUT, message)


class PersistenceFailure(HarvestError):
    """The destination file could not be read or written."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.PERSISTENCE, message)


__all__ = [
    "ErrorCode",
    "HarvestError",
    "AutomationFailure",
    "AutomationTimeout",
    "PersistenceFailure",
]
