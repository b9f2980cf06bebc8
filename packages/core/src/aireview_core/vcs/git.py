from __future__ import annotations

import subprocess


def git(args: list[str], cwd: str | None = None) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def get_staged_diff(cwd: str | None = None) -> str:
    return git(["diff", "--cached", "--no-color"], cwd=cwd)


def get_diff_between_refs(base: str, head: str = "HEAD", cwd: str | None = None) -> str:
    return git(["diff", "--no-color", f"{base}...{head}", "--"], cwd=cwd)


def get_git_path(name: str, cwd: str | None = None) -> str:
    """Return the path git uses for a file inside its control directory (worktree aware).

    Falls back to `.git/<name>` when git is unavailable or cwd is not a repository.
    """
    try:
        return git(["rev-parse", "--git-path", name], cwd=cwd)
    except (subprocess.CalledProcessError, FileNotFoundError):
        return f".git/{name}"


def list_tracked_markdown_files(cwd: str | None = None) -> list[str]:
    output = git(["ls-files", "*.md"], cwd=cwd)
    return [line.strip() for line in output.splitlines() if line.strip()]


def set_hooks_path(hooks_path: str, cwd: str | None = None) -> None:
    git(["config", "core.hooksPath", hooks_path], cwd=cwd)
