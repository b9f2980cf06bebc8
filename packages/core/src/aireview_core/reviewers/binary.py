"""Locate a reviewer CLI executable.

Resolution order (stops at first success):
  1. Explicit override (<NAME>_BIN or `binaries:` in .ai-review.yml), verbatim
  2. PATH lookup of each candidate name
  3. App-bundle paths on macOS, for reviewers that ship inside a desktop app
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import sys
from typing import Iterable

logger = logging.getLogger(__name__)

# Candidate names outside this set are refused.
_SAFE_CANDIDATE_RE = re.compile(r"^[A-Za-z0-9_./-]+$")


def is_safe_candidate(name: str) -> bool:
    return bool(_SAFE_CANDIDATE_RE.match(name))


def resolve_binary(
    override: str | None,
    candidates: Iterable[str],
    app_bundle_paths: Iterable[str] = (),
) -> str | None:
    """Return a path (or command) for the reviewer binary, or None if it cannot be found.

    The override is trusted as-is: if it points nowhere, the failure surfaces
    when the process is spawned. Never raises.
    """
    if override and override.strip():
        return override.strip()

    for candidate in candidates:
        if not is_safe_candidate(candidate):
            logger.debug("Ignoring unsafe binary candidate %r.", candidate)
            continue
        path = shutil.which(candidate)
        if path:
            return path

    if sys.platform == "darwin":
        for bundle_path in app_bundle_paths:
            expanded = os.path.expanduser(bundle_path)
            if os.path.isfile(expanded) and os.access(expanded, os.X_OK):
                return expanded

    return None
