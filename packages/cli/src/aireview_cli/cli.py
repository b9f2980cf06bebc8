"""CLI entry point for git-ai-review.

Commands:
  review       run AI review on staged changes
  diff         run AI review on the diff between two refs
  pre-commit   lock-aware review used by the git hook
  install      install .githooks/pre-commit and point core.hooksPath at it
"""

from __future__ import annotations

import importlib.metadata
import os
from pathlib import Path

import click
import yaml

from aireview_cli.commands.install import install_cmd
from aireview_cli.commands.precommit import precommit_cmd
from aireview_cli.commands.review import diff_cmd, review_cmd


def _build_store(config, cwd: str):
    """Instantiate the control-file store for the repository at cwd.

    This factory lives in cli.py so neither aireview_core nor aireview_store
    know about git path resolution or the config format.
    """
    from aireview_core.vcs.git import get_git_path
    from aireview_store.files import FAIL_COUNT_FILE, LOCK_FILE, REPORT_FILE, ROTATION_FILE, ControlFileStore

    def locate(name: str) -> Path:
        return Path(cwd) / get_git_path(name, cwd=cwd)

    report_path = Path(cwd) / config.report_path if config.report_path else locate(REPORT_FILE)
    return ControlFileStore(
        rotation_path=locate(ROTATION_FILE),
        fail_count_path=locate(FAIL_COUNT_FILE),
        lock_path=locate(LOCK_FILE),
        report_path=report_path,
    )


@click.group()
@click.version_option(
    version=importlib.metadata.version("git-ai-review"),
    prog_name="git-ai-review",
)
@click.option(
    "--config",
    "config_path",
    default=".ai-review.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="AI_REVIEW_CONFIG",
)
@click.pass_context
def main(ctx: click.Context, config_path: str):
    """Gate git commits on approval from AI code reviewers."""
    from aireview_core.config import load_config

    ctx.ensure_object(dict)

    cwd = os.getcwd()
    try:
        config = load_config(config_path)
    except (yaml.YAMLError, ValueError) as e:
        raise click.ClickException(f"Invalid configuration in {config_path}: {e}")

    ctx.obj["cwd"] = cwd
    ctx.obj["config"] = config
    ctx.obj["store"] = _build_store(config, cwd)


main.add_command(review_cmd)
main.add_command(diff_cmd)
main.add_command(precommit_cmd)
main.add_command(install_cmd)
