"""Core review orchestration: fallback chain, rotation state, verdict."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Mapping, Protocol

from rich.console import Console

from aireview_core.config import ReviewConfig
from aireview_core.models import (
    UNAVAILABLE,
    Available,
    ReviewerName,
    ReviewerResult,
    ReviewSummary,
    ReviewVerdict,
)
from aireview_core.reviewers.base import BaseReviewer
from aireview_core.reviewers.claude import ClaudeReviewer
from aireview_core.reviewers.codex import CodexReviewer
from aireview_core.reviewers.copilot import CopilotReviewer
from aireview_core.verdict import aggregate

console = Console()
logger = logging.getLogger(__name__)

CANONICAL_ORDER: tuple[ReviewerName, ...] = tuple(ReviewerName)

_REVIEWER_CLASSES: dict[ReviewerName, type[BaseReviewer]] = {
    ReviewerName.CODEX: CodexReviewer,
    ReviewerName.COPILOT: CopilotReviewer,
    ReviewerName.CLAUDE: ClaudeReviewer,
}


class RotationStore(Protocol):
    """Where the last unavailable reviewer is remembered between runs."""

    def read_rotation(self) -> str | None: ...

    def write_rotation(self, name: str | None) -> None: ...


@dataclass
class ChainOutcome:
    # One entry per known reviewer; those never reached are UNAVAILABLE.
    results: dict[ReviewerName, ReviewerResult] = field(default_factory=dict)
    # Reviewers actually tried and found unavailable, in the order tried.
    unavailable: list[ReviewerName] = field(default_factory=list)


def build_reviewers(config: ReviewConfig, cwd: str | None = None) -> dict[ReviewerName, BaseReviewer]:
    return {name: cls(config, cwd=cwd) for name, cls in _REVIEWER_CLASSES.items()}


def fallback_order(demoted: str | None = None) -> list[ReviewerName]:
    """Canonical order, with the last-unavailable reviewer (if known) moved to the back."""
    order = list(CANONICAL_ORDER)
    try:
        name = ReviewerName(demoted) if demoted else None
    except ValueError:
        logger.debug("Ignoring unknown rotation state %r.", demoted)
        name = None
    if name is not None:
        order.remove(name)
        order.append(name)
    return order


async def run_chain(
    reviewers: Mapping[ReviewerName, BaseReviewer],
    prompt: str,
    order: list[ReviewerName],
    verbose: bool = False,
    skip_preflight: bool = False,
) -> ChainOutcome:
    """Try reviewers one at a time and stop at the first available result.

    Strictly sequential: a later reviewer only runs when every earlier one was unavailable.
    """
    outcome = ChainOutcome(results={name: UNAVAILABLE for name in CANONICAL_ORDER})
    previous: ReviewerName | None = None

    for name in order:
        if previous is None:
            console.print(f"Running {name.label} review...")
        else:
            console.print(f"[yellow]{previous.label} unavailable, falling back to {name.label} review...[/yellow]")

        result = await reviewers[name].invoke(prompt, verbose=verbose, skip_preflight=skip_preflight)
        outcome.results[name] = result
        if isinstance(result, Available):
            break
        outcome.unavailable.append(name)
        previous = name

    return outcome


def next_rotation_state(outcome: ChainOutcome) -> ReviewerName | None:
    """The reviewer to demote next run: the first one found unavailable, or None if none was."""
    return outcome.unavailable[0] if outcome.unavailable else None


def print_review(name: ReviewerName, result: ReviewerResult, tried: bool) -> None:
    if not isinstance(result, Available):
        console.print(f"\n[dim]{name.label}: {'unavailable, skipped' if tried else 'not run'}.[/dim]")
        return

    verdict: ReviewVerdict = result.verdict
    if verdict.status == "fail":
        label = f"[red]{name.label} review FAILED[/red]"
    elif verdict.findings:
        label = f"[yellow]{name.label} review has findings (pass requires zero)[/yellow]"
    else:
        label = f"[green]{name.label} review PASSED[/green]"

    console.print(f"\n[bold]{label}[/bold]:")
    console.print(f"Summary: {verdict.summary}", markup=False)
    for finding in verdict.findings:
        console.print(f"- [{finding.severity}] {finding.title} ({finding.location})", markup=False)
        console.print(f"  {finding.details}", markup=False)
    if result.usage is not None:
        console.print(
            f"[dim]Tokens: {result.usage.input_tokens or 0} in / {result.usage.output_tokens or 0} out[/dim]"
        )


def _read_rotation(state: RotationStore | None) -> str | None:
    if state is None:
        return None
    try:
        return state.read_rotation()
    except OSError as e:
        logger.warning("Could not read reviewer rotation state: %s", e)
        return None


def _write_rotation(state: RotationStore | None, name: ReviewerName | None) -> None:
    if state is None:
        return
    try:
        state.write_rotation(name.value if name is not None else None)
    except OSError as e:
        logger.warning("Could not persist reviewer rotation state: %s", e)


async def run_review(
    config: ReviewConfig,
    get_diff: Callable[[], str],
    build_prompt: Callable[[str], str],
    reviewers: Mapping[ReviewerName, BaseReviewer] | None = None,
    reviewer: ReviewerName | None = None,
    state: RotationStore | None = None,
    verbose: bool = False,
) -> ReviewSummary:
    """Run the full review pipeline and return a ReviewSummary.

    With `reviewer` set only that reviewer runs, without preflight and without
    touching rotation state. Otherwise reviewers are walked in fallback order.
    """
    diff = get_diff()
    if not diff.strip():
        console.print("AI review: no staged changes.")
        return ReviewSummary(passed=True, reason="No changes.", skipped=True)

    prompt = build_prompt(diff)
    if verbose:
        console.rule("Prompt", style="dim")
        console.out(prompt, highlight=False)

    reviewers = reviewers if reviewers is not None else build_reviewers(config)

    if reviewer is not None:
        outcome = await run_chain(reviewers, prompt, [reviewer], verbose=verbose, skip_preflight=True)
    else:
        order = fallback_order(_read_rotation(state))
        logger.debug("Reviewer order: %s", ", ".join(name.value for name in order))
        outcome = await run_chain(reviewers, prompt, order, verbose=verbose)
        _write_rotation(state, next_rotation_state(outcome))

    for name in CANONICAL_ORDER:
        tried = name in outcome.unavailable or isinstance(outcome.results[name], Available)
        print_review(name, outcome.results[name], tried)

    verdict = aggregate(outcome.results)
    console.print(f"\n[bold]{verdict.reason}[/bold]")

    return ReviewSummary(
        passed=verdict.passed,
        reason=verdict.reason,
        results=outcome.results,
        unavailable=outcome.unavailable,
    )
