"""install command: point git at a versioned hooks directory with our pre-commit hook."""

from __future__ import annotations

import subprocess
from pathlib import Path

import click
from rich.console import Console

from aireview_core.vcs.git import set_hooks_path

console = Console()

HOOKS_DIR = ".githooks"

# Prefer the console script; fall back to the module when the hook runs
# outside the virtualenv that installed it.
HOOK_CONTENT = """\
#!/bin/sh
set -e

if command -v git-ai-review >/dev/null 2>&1; then
  exec git-ai-review pre-commit
fi

exec python3 -m aireview_cli pre-commit
"""


def install_pre_commit_hook(cwd: str) -> Path:
    hooks_dir = Path(cwd) / HOOKS_DIR
    hooks_dir.mkdir(parents=True, exist_ok=True)

    hook_path = hooks_dir / "pre-commit"
    hook_path.write_text(HOOK_CONTENT, encoding="utf-8")
    hook_path.chmod(0o755)
    set_hooks_path(HOOKS_DIR, cwd=cwd)
    return hook_path


@click.command("install")
@click.pass_context
def install_cmd(ctx: click.Context):
    """Install .githooks/pre-commit and set core.hooksPath."""
    try:
        hook_path = install_pre_commit_hook(ctx.obj["cwd"])
    except subprocess.CalledProcessError as e:
        raise click.ClickException((e.stderr or "").strip() or "git config failed")

    console.print(f"Installed pre-commit hook at {hook_path}", markup=False)
    console.print(f"Configured git core.hooksPath={HOOKS_DIR}", markup=False)
