"""Options shared by every command that runs a review."""

from __future__ import annotations

import functools
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from aireview_core.models import ReviewerName


def review_options(f):
    """Attach --codex/--copilot/--claude/--verbose to a command."""

    @click.option("--codex", "use_codex", is_flag=True, help="Force Codex reviewer only (no fallback).")
    @click.option("--copilot", "use_copilot", is_flag=True, help="Force Copilot reviewer only (no fallback).")
    @click.option("--claude", "use_claude", is_flag=True, help="Force Claude reviewer only (no fallback).")
    @click.option("--verbose", is_flag=True, help="Print the full prompt and raw reviewer output.")
    @functools.wraps(f)
    def wrapper(*args, use_codex: bool, use_copilot: bool, use_claude: bool, verbose: bool, **kwargs):
        reviewer = selected_reviewer(use_codex=use_codex, use_copilot=use_copilot, use_claude=use_claude)
        configure_logging(verbose)
        return f(*args, reviewer=reviewer, verbose=verbose, **kwargs)

    return wrapper


def selected_reviewer(use_codex: bool = False, use_copilot: bool = False, use_claude: bool = False):
    """Return the forced ReviewerName, None for the default fallback chain.

    Raises click.UsageError when more than one reviewer is forced.
    """
    flags = {
        ReviewerName.CODEX: use_codex,
        ReviewerName.COPILOT: use_copilot,
        ReviewerName.CLAUDE: use_claude,
    }
    chosen = [name for name, flag in flags.items() if flag]
    if len(chosen) > 1:
        raise click.UsageError("--claude, --codex, and --copilot are mutually exclusive.")
    return chosen[0] if chosen else None


def configure_logging(verbose: bool) -> None:
    # Diagnostics go to stderr so they never mix with the review text on stdout.
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_time=False, show_path=False)],
        force=True,
    )
    # Preflight HEAD requests are not interesting even in verbose mode.
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)
