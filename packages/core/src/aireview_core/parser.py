"""Turn raw reviewer text into a validated ReviewVerdict.

Pure and side-effect free: reviewers call parse_review_output and map a
ParseError to "unavailable" themselves.

Validation is looser than REVIEW_SCHEMA: only `status` and `findings` are
required. A missing or empty `summary` is accepted and becomes "", and
malformed `file` / `line` values on a finding are dropped rather than
rejected, so a usable verdict is never discarded over its metadata.
"""

from __future__ import annotations

import json
import re

from aireview_core.models import Finding, ReviewVerdict

_VALID_STATUSES = ("pass", "fail")

# Only the outer fence the model wraps its answer in, not fences inside string values.
_LEADING_FENCE_RE = re.compile(r"^```[A-Za-z0-9_-]*\s*")
_TRAILING_FENCE_RE = re.compile(r"\s*```$")


class ParseError(ValueError):
    """Reviewer output is empty, not a JSON object, or not a valid verdict."""


def parse_review_output(raw: str) -> ReviewVerdict:
    text = (raw or "").strip()
    if not text:
        raise ParseError("Reviewer returned an empty response.")

    cleaned = _LEADING_FENCE_RE.sub("", text)
    cleaned = _TRAILING_FENCE_RE.sub("", cleaned).strip()

    # A well-formed document wins outright, even if a string value mentions "status" or braces.
    parsed = _load_object(cleaned)
    if parsed is None:
        start = cleaned.find("{")
        end = cleaned.rfind("}")
        if start != -1 and end > start:
            parsed = _load_object(cleaned[start : end + 1])
    if parsed is None:
        raise ParseError("Reviewer output does not contain a JSON object.")

    return _validate(parsed)


def _load_object(text: str) -> dict | None:
    try:
        value = json.loads(text)
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None


def _validate(data: dict) -> ReviewVerdict:
    status = data.get("status")
    if status not in _VALID_STATUSES:
        raise ParseError(f"Reviewer output has an invalid status: {status!r}.")

    findings = data.get("findings")
    if not isinstance(findings, list):
        raise ParseError("Reviewer output has an invalid findings list.")

    summary = data.get("summary")
    return ReviewVerdict(
        status=status,
        summary="" if summary is None else str(summary),
        findings=tuple(_finding(item) for item in findings),
    )


def _finding(item) -> Finding:
    if not isinstance(item, dict):
        raise ParseError("Reviewer output has a finding that is not an object.")

    file = item.get("file")
    line = item.get("line")
    # bool is an int subclass; `"line": true` is not a line number.
    if isinstance(line, bool) or not isinstance(line, int) or line < 1:
        line = None

    return Finding(
        severity=str(item.get("severity", "")),
        title=str(item.get("title", "")),
        details=str(item.get("details", "")),
        file=file if isinstance(file, str) and file else None,
        line=line,
    )
