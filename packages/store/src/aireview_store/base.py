"""Abstract state store interface.

The CLI depends on BaseStateStore, not on where the state lives, and
aireview_core only sees the rotation half of it (read_rotation /
write_rotation), so the core has no dependency on this package.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path


class BaseStateStore(ABC):
    """Persistence for everything that outlives a single review run.

    Implementations never raise on I/O problems: a state file that cannot be
    read is treated as absent, and a failed write is logged and ignored.
    There is no cross-process locking; commits in one working copy are
    expected to run one at a time.
    """

    # ------------------------------------------------------------------ #
    # Reviewer rotation                                                   #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def read_rotation(self) -> str | None:
        """Return the reviewer last found unavailable, or None."""

    @abstractmethod
    def write_rotation(self, name: str | None) -> None:
        """Remember `name` as last unavailable; None clears the state."""

    # ------------------------------------------------------------------ #
    # Failure counter and lock                                            #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def read_fail_count(self) -> int:
        """Consecutive blocked commits so far; 0 when absent or unreadable."""

    @abstractmethod
    def write_fail_count(self, count: int) -> None: ...

    @abstractmethod
    def clear_fail_count(self) -> None: ...

    @abstractmethod
    def is_locked(self) -> bool: ...

    @abstractmethod
    def write_lock(self, fail_count: int) -> None: ...

    # ------------------------------------------------------------------ #
    # Report                                                              #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def save_report(self, report: dict) -> Path | None:
        """Write the per-reviewer report; return its path, or None if writing failed."""

    @abstractmethod
    def read_report(self) -> str | None:
        """Raw text of the last report, or None if there is none."""

    @property
    @abstractmethod
    def unlock_command(self) -> str:
        """Shell command an operator runs to clear the lock."""

    @property
    @abstractmethod
    def report_location(self) -> str: ...
