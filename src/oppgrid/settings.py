from dataclasses import dataclass
from pathlib import Path

from .models.constants import (
    EDIT_GRACE_MS,
    LOOKUP_BLUR_GRACE_MS,
    MIN_SEARCH_LENGTH,
    SEARCH_DEBOUNCE_MS,
    TASK_POLL_INTERVAL_MS,
)


@dataclass
class GridSettings:
    """Application settings and timing configuration."""

    data_dir: Path = Path("data")
    search_debounce_ms: int = SEARCH_DEBOUNCE_MS
    lookup_blur_grace_ms: int = LOOKUP_BLUR_GRACE_MS
    edit_grace_ms: int = EDIT_GRACE_MS
    min_search_length: int = MIN_SEARCH_LENGTH
    task_poll_interval_ms: int = TASK_POLL_INTERVAL_MS
    debug: bool = False

    @classmethod
    def from_argv(cls, argv: list[str]) -> "GridSettings":
        """Build settings from command-line flags.

        Recognized flags:
            -data <dir>: Directory holding opportunities.csv and accounts.csv
            -debounce <ms>: Lookup search debounce delay
            -debug: Console logging
        """
        settings = cls()
        args = list(argv)
        if "-debug" in args:
            settings.debug = True
        if "-data" in args:
            idx = args.index("-data")
            if idx + 1 >= len(args):
                raise ValueError("-data requires a directory")
            settings.data_dir = Path(args[idx + 1])
        if "-debounce" in args:
            idx = args.index("-debounce")
            if idx + 1 >= len(args):
                raise ValueError("-debounce requires a value in milliseconds")
            settings.search_debounce_ms = int(args[idx + 1])
        return settings
