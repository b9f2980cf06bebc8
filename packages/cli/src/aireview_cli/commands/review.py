"""review / diff commands: run the AI review and exit non-zero when it blocks."""

from __future__ import annotations

import asyncio
import subprocess
from typing import Callable

import click
from rich.console import Console

from aireview_cli.options import review_options
from aireview_core.models import ReviewerName, ReviewSummary
from aireview_core.orchestrator import build_reviewers, run_review
from aireview_core.prompt import build_policy_context, build_prompt
from aireview_core.vcs.git import get_diff_between_refs, get_staged_diff

console = Console()


def execute_review(
    obj: dict,
    get_diff: Callable[[], str],
    reviewer: ReviewerName | None = None,
    verbose: bool = False,
    diff_label: str = "Staged diff",
) -> ReviewSummary:
    """Run one review with the context's config and store, then persist the report.

    The CLI owns the bridge: aireview_core produces a ReviewSummary, the store
    persists rotation state and the report. A missing policy file or a failing
    git command becomes a ClickException (message, exit 1, no traceback).
    """
    config = obj["config"]
    store = obj["store"]
    cwd = obj["cwd"]

    def prompt_for(diff: str) -> str:
        context = build_policy_context(cwd, config.policy_file)
        return build_prompt(diff, context, config.prompt_header, diff_label, config.policy_file)

    try:
        summary = asyncio.run(
            run_review(
                config,
                get_diff,
                prompt_for,
                reviewers=build_reviewers(config, cwd=cwd),
                reviewer=reviewer,
                state=store,
                verbose=verbose,
            )
        )
    except FileNotFoundError as e:
        raise click.ClickException(str(e))
    except subprocess.CalledProcessError as e:
        detail = (e.stderr or "").strip() or f"exit code {e.returncode}"
        raise click.ClickException(f"{' '.join(e.cmd)} failed: {detail}")

    report = summary.report
    if report is not None:
        path = store.save_report(report)
        if path is not None:
            console.print(f"AI review raw report saved: {path}")
    return summary


@click.command("review")
@review_options
@click.pass_context
def review_cmd(ctx: click.Context, reviewer: ReviewerName | None, verbose: bool):
    """Run AI review for staged changes.

    \b
    Reviewers are tried in order Codex, Copilot, Claude until one answers;
    a reviewer found unavailable is moved to the back of the queue next time.
    """
    cwd = ctx.obj["cwd"]
    summary = execute_review(ctx.obj, lambda: get_staged_diff(cwd), reviewer=reviewer, verbose=verbose)
    ctx.exit(0 if summary.passed else 1)


@click.command("diff")
@click.argument("base")
@click.argument("head", default="HEAD")
@review_options
@click.pass_context
def diff_cmd(ctx: click.Context, base: str, head: str, reviewer: ReviewerName | None, verbose: bool):
    """Run AI review for the diff between BASE and HEAD (default: HEAD)."""
    cwd = ctx.obj["cwd"]
    summary = execute_review(
        ctx.obj,
        lambda: get_diff_between_refs(base, head, cwd=cwd),
        reviewer=reviewer,
        verbose=verbose,
        diff_label=f"Branch diff ({base}...{head})",
    )
    ctx.exit(0 if summary.passed else 1)
