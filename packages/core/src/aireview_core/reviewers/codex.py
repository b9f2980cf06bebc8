from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path

from aireview_core.models import ReviewerName
from aireview_core.reviewers.base import BaseReviewer
from aireview_core.schema import REVIEW_SCHEMA

logger = logging.getLogger(__name__)


class CodexReviewer(BaseReviewer):
    """Codex CLI: reads the prompt on stdin, writes its final message to a result file.

    The schema file constrains the final message to the verdict shape, and the
    result file keeps it apart from Codex's noisy progress stream.
    """

    NAME = ReviewerName.CODEX
    BINARY_CANDIDATES = ("codex",)
    PREFLIGHT_URLS = ("https://api.openai.com/v1/models", "https://chatgpt.com")

    def build_command(self, binary: str, schema_path: Path, result_path: Path) -> list[str]:
        cmd = [
            binary,
            "exec",
            # No session files left behind in ~/.codex.
            "--ephemeral",
            # A reviewer reads the repository; it never edits it.
            "--sandbox",
            "read-only",
            "--output-schema",
            str(schema_path),
            "--output-last-message",
            str(result_path),
        ]
        model = self.config.model_for(self.NAME)
        if model:
            cmd += ["--model", model]
        cmd.append("-")  # prompt on stdin
        return cmd

    async def _run(self, binary: str, prompt: str, verbose: bool) -> str | None:
        with tempfile.TemporaryDirectory(prefix="ai-review-codex-") as temp_dir:
            schema_path = Path(temp_dir) / "schema.json"
            result_path = Path(temp_dir) / "result.json"
            schema_path.write_text(json.dumps(REVIEW_SCHEMA, indent=2), encoding="utf-8")

            result = await self._exec(self.build_command(binary, schema_path, result_path), prompt, verbose)
            if result.returncode != 0 or not result_path.exists():
                self._execution_failed(result)
                return None

            content = result_path.read_text(encoding="utf-8")
            if verbose:
                self._echo("Codex result file", content)
            logger.debug("Codex: read %d chars from result file.", len(content))
            return content
