"""pre-commit command: the lock-aware review run by the git hook.

State machine across commits (counter and lock live in the store):

    Unlocked(n) --pass--> Unlocked(0)      counter file removed
    Unlocked(n) --fail--> Unlocked(n + 1)  while n + 1 < fail_limit
    Unlocked(n) --fail--> Locked           once n + 1 reaches fail_limit
    Locked      --any---> Locked           no reviewer runs; an operator removes the lock

CI runs skip all of it: the hook only gates local commits.
"""

from __future__ import annotations

from typing import Callable

import click
from rich.console import Console

from aireview_cli.commands.review import execute_review
from aireview_cli.options import review_options
from aireview_core.config import ReviewConfig
from aireview_core.models import ReviewerName, ReviewSummary
from aireview_core.vcs.git import get_staged_diff
from aireview_store.base import BaseStateStore

console = Console()
err_console = Console(stderr=True)


def print_last_report(store: BaseStateStore) -> None:
    console.print(f"Last report: {store.report_location}", markup=False)
    report = store.read_report()
    if report is None:
        console.print("Review output: report file not found.")
        return
    console.print("Review output:")
    console.out(report, highlight=False)


def run_pre_commit(
    config: ReviewConfig,
    store: BaseStateStore,
    review_fn: Callable[[], ReviewSummary],
) -> int:
    """Run the lock-aware review and return the process exit code."""
    if config.ci:
        console.print("Skip AI review in CI.")
        return 0

    if store.is_locked():
        err_console.print("[red]AI hook lock is active. Commits are blocked until manual unlock.[/red]")
        err_console.print(f"To unlock: {store.unlock_command}", markup=False)
        print_last_report(store)
        return 1

    summary = review_fn()
    if summary.passed:
        store.clear_fail_count()
        return 0

    fail_count = store.read_fail_count() + 1
    store.write_fail_count(fail_count)

    if fail_count >= config.fail_limit:
        store.write_lock(fail_count)
        err_console.print(f"[red]AI hook rejected {fail_count} commits in a row. Hard lock is now active.[/red]")
        err_console.print(f"To unlock: {store.unlock_command}", markup=False)
    else:
        err_console.print("[red]AI hook rejected the commit. Commit blocked.[/red]")
        err_console.print(f"Consecutive AI-hook failures: {fail_count} (lock at {config.fail_limit}).")

    print_last_report(store)
    return 1


@click.command("pre-commit")
@review_options
@click.pass_context
def precommit_cmd(ctx: click.Context, reviewer: ReviewerName | None, verbose: bool):
    """Run the lock-aware pre-commit review (used by the installed git hook)."""
    cwd = ctx.obj["cwd"]
    code = run_pre_commit(
        ctx.obj["config"],
        ctx.obj["store"],
        lambda: execute_review(ctx.obj, lambda: get_staged_diff(cwd), reviewer=reviewer, verbose=verbose),
    )
    ctx.exit(code)
