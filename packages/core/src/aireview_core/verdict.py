"""Combine per-reviewer results into one commit decision."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from aireview_core.models import Available, ReviewerName, ReviewerResult


@dataclass(frozen=True)
class Verdict:
    passed: bool
    reason: str


def _join_names(names: list[str]) -> str:
    if len(names) <= 1:
        return "".join(names)
    return f"{', '.join(names[:-1])} and {names[-1]}"


def aggregate(results: Mapping[ReviewerName, ReviewerResult]) -> Verdict:
    """Decide pass/fail; the first matching rule wins.

    1. nobody ran            → fail
    2. any status == "fail"  → fail
    3. any findings at all   → fail (a "pass" with findings still blocks the commit)
    4. otherwise             → pass

    Every available result is considered, not only the one that ended the fallback walk.
    """
    ordered = [name for name in ReviewerName if name in results]
    available = {name: results[name] for name in ordered if isinstance(results[name], Available)}

    if not available:
        everyone = _join_names([name.label for name in ReviewerName])
        return Verdict(False, f"{everyone} are all unavailable. At least one AI review is required.")

    rejected = [name.label for name, result in available.items() if result.verdict.status == "fail"]
    if rejected:
        return Verdict(False, f"AI review rejected by: {', '.join(rejected)}.")

    with_findings = [name.label for name, result in available.items() if result.verdict.findings]
    if with_findings:
        return Verdict(
            False,
            f"AI review has unresolved findings from: {', '.join(with_findings)}. Pass requires zero findings.",
        )

    return Verdict(True, f"AI review approved by: {', '.join(name.label for name in available)}.")
