"""Developer menu states and the debug log."""

from __future__ import annotations

import enum
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, TextIO


class DevMenu(enum.IntEnum):
    """Screens of the developer system menu."""

    MAIN = 0
    PLAYER_SELECT = 1
    STAGE_LIST_SELECT = 2
    STAGE_SELECT = 3
    MOD_MENU = 4


@dataclass
class DebugLog:
    """Echoes messages and appends them to a log file while enabled."""

    enabled: bool = False
    path: Path = Path("log.txt")
    echo: Optional[TextIO] = None

    def log(self, message: str, *args: object) -> Optional[str]:
        """Format and record a message; return it, or None when disabled."""
        if not self.enabled:
            return None
        text = message % args if args else message
        print(text, file=self.echo if self.echo is not None else sys.stdout)
        try:
            with open(self.path, "a", encoding="utf-8") as handle:
                handle.write(text + "\n")
        except OSError:
            pass
        return text