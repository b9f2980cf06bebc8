"""ControlFileStore: state kept as small files inside the git control directory.

Paths come from `git rev-parse --git-path`, so each linked worktree has its
own copy. Everything is plain text; an operator can inspect or delete it.

Files (names relative to the git directory):
  ai-review-rotation     reviewer name last found unavailable
  ai-review-fail-count   consecutive blocked commits, as a decimal integer
  ai-review.lock         lock marker: locked_after=<n> and locked_at=<iso time>
  ai-review-last.json    last per-reviewer report (path overridable)
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from aireview_store.base import BaseStateStore

logger = logging.getLogger(__name__)

ROTATION_FILE = "ai-review-rotation"
FAIL_COUNT_FILE = "ai-review-fail-count"
LOCK_FILE = "ai-review.lock"
REPORT_FILE = "ai-review-last.json"


class ControlFileStore(BaseStateStore):
    def __init__(self, rotation_path: Path, fail_count_path: Path, lock_path: Path, report_path: Path):
        self.rotation_path = Path(rotation_path)
        self.fail_count_path = Path(fail_count_path)
        self.lock_path = Path(lock_path)
        self.report_path = Path(report_path)

    @classmethod
    def in_directory(cls, control_dir: Path, report_path: Path | None = None) -> ControlFileStore:
        control_dir = Path(control_dir)
        return cls(
            rotation_path=control_dir / ROTATION_FILE,
            fail_count_path=control_dir / FAIL_COUNT_FILE,
            lock_path=control_dir / LOCK_FILE,
            report_path=report_path or control_dir / REPORT_FILE,
        )

    # ------------------------------------------------------------------ #
    # Reviewer rotation                                                   #
    # ------------------------------------------------------------------ #

    def read_rotation(self) -> str | None:
        return self._read_text(self.rotation_path) or None

    def write_rotation(self, name: str | None) -> None:
        if name is None:
            self._remove(self.rotation_path)
        else:
            self._write_text(self.rotation_path, f"{name}\n")

    # ------------------------------------------------------------------ #
    # Failure counter and lock                                            #
    # ------------------------------------------------------------------ #

    def read_fail_count(self) -> int:
        text = self._read_text(self.fail_count_path)
        if not text:
            return 0
        try:
            return max(0, int(text))
        except ValueError:
            logger.warning("Ignoring corrupt failure counter in %s: %r", self.fail_count_path, text)
            return 0

    def write_fail_count(self, count: int) -> None:
        self._write_text(self.fail_count_path, str(count))

    def clear_fail_count(self) -> None:
        self._remove(self.fail_count_path)

    def is_locked(self) -> bool:
        return self.lock_path.exists()

    def write_lock(self, fail_count: int) -> None:
        locked_at = datetime.now(timezone.utc).isoformat()
        self._write_text(self.lock_path, f"locked_after={fail_count}\nlocked_at={locked_at}\n")

    @property
    def unlock_command(self) -> str:
        return f'rm -f "{self.lock_path}" "{self.fail_count_path}"'

    # ------------------------------------------------------------------ #
    # Report                                                              #
    # ------------------------------------------------------------------ #

    def save_report(self, report: dict) -> Path | None:
        if self._write_text(self.report_path, json.dumps(report, indent=2)):
            return self.report_path
        return None

    def read_report(self) -> str | None:
        if not self.report_path.exists():
            return None
        return self._read_text(self.report_path, strip=False)

    @property
    def report_location(self) -> str:
        return str(self.report_path)

    # ------------------------------------------------------------------ #
    # Best-effort file helpers                                            #
    # ------------------------------------------------------------------ #

    @staticmethod
    def _read_text(path: Path, strip: bool = True) -> str | None:
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Could not read %s (%s); treating it as absent.", path, e)
            return None
        return text.strip() if strip else text

    @staticmethod
    def _write_text(path: Path, content: str) -> bool:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            logger.warning("Could not write %s: %s", path, e)
            return False
        return True

    @staticmethod
    def _remove(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove %s: %s", path, e)
