"""Review prompt assembly from repository policy documents and a diff.

The policy file (AGENTS.md by default) is the root of the context. Any
markdown file it mentions, either in backticks or as a bare path, is pulled
in as well so that rules split across several documents reach the reviewer.
References may use `*` and `?` wildcards; they are expanded against the
markdown files git tracks, never against the working tree, so untracked
scratch notes cannot leak into a review.
"""

from __future__ import annotations

import fnmatch
import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable

from aireview_core.schema import REVIEW_SCHEMA
from aireview_core.vcs.git import list_tracked_markdown_files

logger = logging.getLogger(__name__)

_BACKTICKED_MD_RE = re.compile(r"`([^`]+\.md)`", re.IGNORECASE)
_PLAIN_MD_RE = re.compile(r"\b([A-Za-z0-9_.*?/\-]+\.md)\b")


@dataclass
class PolicyContext:
    """Policy text handed to every reviewer."""

    # Full content of the root policy file.
    policy: str = ""

    # Rendered "--- FILE: path ---" blocks for each referenced markdown file.
    referenced: list[str] = field(default_factory=list)


def extract_referenced_markdown_files(text: str, policy_file: str = "AGENTS.md") -> list[str]:
    referenced: set[str] = set()
    for match in _BACKTICKED_MD_RE.finditer(text):
        value = match.group(1).strip()
        if value:
            referenced.add(value)
    for match in _PLAIN_MD_RE.finditer(text):
        value = match.group(1).strip()
        if value:
            referenced.add(value)

    referenced.discard(policy_file)
    return sorted({ref.replace("\\", "/") for ref in referenced})


def expand_markdown_reference(reference: str, tracked_md_files: list[str]) -> list[str]:
    if "*" not in reference and "?" not in reference:
        return [reference] if reference in tracked_md_files else []
    return [path for path in tracked_md_files if fnmatch.fnmatchcase(path, reference)]


def build_referenced_markdown_context(
    references: Iterable[str],
    tracked_md_files: list[str],
    read_markdown_file: Callable[[str], str],
    skipped_files: Iterable[str] = (),
) -> list[str]:
    """Render each tracked file matched by the references once, in reference order."""
    blocks: list[str] = []
    known = set(skipped_files)
    for reference in references:
        for path in expand_markdown_reference(reference, tracked_md_files):
            if path in known:
                continue
            known.add(path)
            blocks.append(f"--- FILE: {path} ---\n{read_markdown_file(path)}")
    return blocks


def build_policy_context(cwd: str = ".", policy_file: str = "AGENTS.md") -> PolicyContext:
    """Read the policy file and every tracked markdown file it references.

    Raises FileNotFoundError when the policy file itself is missing.
    """
    root = Path(cwd)
    policy_path = root / policy_file
    if not policy_path.is_file():
        raise FileNotFoundError(f"Policy file not found: {policy_path}")
    policy = policy_path.read_text(encoding="utf-8")

    references = extract_referenced_markdown_files(policy, policy_file)
    tracked = list_tracked_markdown_files(cwd=cwd) if references else []
    logger.debug("Policy %s references %d markdown file(s).", policy_file, len(references))

    return PolicyContext(
        policy=policy,
        referenced=build_referenced_markdown_context(
            references,
            tracked,
            lambda path: (root / path).read_text(encoding="utf-8"),
            skipped_files={policy_file},
        ),
    )


def build_prompt(
    diff: str,
    context: PolicyContext,
    header_lines: Iterable[str],
    diff_label: str = "Staged diff",
    policy_file: str = "AGENTS.md",
) -> str:
    lines = [*header_lines, "", f"Here is the full {policy_file} for reference:", context.policy]
    if context.referenced:
        lines += ["", f"Additional markdown files referenced by {policy_file} (full contents):", *context.referenced]
    lines += [
        "",
        "Respond with ONLY a JSON object matching this schema (no markdown, no backticks, no explanation):",
        json.dumps(REVIEW_SCHEMA, indent=2),
        "",
        f"{diff_label}:",
        diff,
    ]
    return "\n".join(lines)
