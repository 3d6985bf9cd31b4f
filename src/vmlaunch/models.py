"""
Plain data types shared across the launcher.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class Action(Enum):
    """What the user asked the launcher to do"""
    CREATE = "Create"
    START = "Start"

    @classmethod
    def parse(cls, value: str) -> "Action":
        """Case-insensitive lookup by the CLI spelling ('Create', 'start', ...)"""
        for action in cls:
            if action.value.lower() == value.strip().lower():
                return action
        choices = ", ".join(a.value for a in cls)
        raise ValueError(f"invalid action {value!r} (choose from {choices})")


class BootMode(Enum):
    FIRST_BOOT = "first-boot"   # installation media attached
    DISK_ONLY = "disk-only"


class VirtualizationSupport(Enum):
    ENABLED = "enabled"
    DISABLED = "disabled"
    UNKNOWN = "unknown"         # the host query itself failed


class CommandOutcome(Enum):
    SUCCEEDED = "succeeded"
    TOOL_NOT_FOUND = "tool-not-found"
    NON_ZERO_EXIT = "non-zero-exit"
    LAUNCH_FAILED = "launch-failed"    # found but could not be executed


@dataclass
class CommandResult:
    """Outcome of one external process invocation."""
    command: List[str]
    outcome: CommandOutcome
    returncode: Optional[int] = None
    output: str = ""
    dry_run: bool = field(default=False, compare=False)

    @property
    def succeeded(self) -> bool:
        return self.outcome == CommandOutcome.SUCCEEDED

    @property
    def tool(self) -> str:
        return self.command[0] if self.command else ""
