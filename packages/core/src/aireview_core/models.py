"""Review data models shared by the parser, the reviewers and the orchestrator.

Everything here is frozen: a reviewer builds one result per invocation and
the aggregator only ever reads it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Union


class ReviewerName(str, Enum):
    """The closed set of reviewer backends. Declaration order is the canonical priority."""

    CODEX = "codex"
    COPILOT = "copilot"
    CLAUDE = "claude"

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True)
class Finding:
    severity: str
    title: str
    details: str
    file: str | None = None
    line: int | None = None  # 1-based line in the new file

    def to_dict(self) -> dict:
        data: dict = {"severity": self.severity, "title": self.title, "details": self.details}
        if self.file is not None:
            data["file"] = self.file
        if self.line is not None:
            data["line"] = self.line
        return data

    @property
    def location(self) -> str:
        if not self.file:
            return "n/a"
        return f"{self.file}:{self.line}" if self.line else self.file


@dataclass(frozen=True)
class ReviewVerdict:
    status: str  # "pass" | "fail"
    summary: str
    findings: tuple[Finding, ...] = ()

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "summary": self.summary,
            "findings": [f.to_dict() for f in self.findings],
        }


@dataclass(frozen=True)
class TokenUsage:
    input_tokens: int | None = None
    output_tokens: int | None = None


@dataclass(frozen=True)
class Unavailable:
    """The reviewer could not produce a verdict (missing, offline, timed out, bad output)."""

    available = False


@dataclass(frozen=True)
class Available:
    verdict: ReviewVerdict
    usage: TokenUsage | None = None

    available = True


ReviewerResult = Union[Unavailable, Available]

UNAVAILABLE = Unavailable()


@dataclass
class ReviewSummary:
    """Result returned by run_review: enough for the CLI to persist the report and drive the lock.

    Decoupled from aireview_store so aireview_core has no dependency on the store layer.
    """

    passed: bool
    reason: str
    results: dict[ReviewerName, ReviewerResult] = field(default_factory=dict)
    unavailable: list[ReviewerName] = field(default_factory=list)
    skipped: bool = False  # True when there was nothing to review
    reviewed_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def report(self) -> dict | None:
        """The JSON report keyed by reviewer name, or None when no review ran."""
        if self.skipped:
            return None
        report: dict = {}
        for name in ReviewerName:
            result = self.results.get(name, UNAVAILABLE)
            report[name.value] = result.verdict.to_dict() if isinstance(result, Available) else {"status": "unavailable"}
        return report
