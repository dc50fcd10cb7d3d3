from dataclasses import dataclass

from .constants import Severity


@dataclass(frozen=True)
class Notification:
    """A user-facing outcome message (success, error or info)."""

    title: str
    message: str
    severity: Severity = Severity.INFO

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR
