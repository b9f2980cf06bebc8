from __future__ import annotations

import json
import logging

from aireview_core.models import ReviewerName, TokenUsage
from aireview_core.reviewers.base import BaseReviewer

logger = logging.getLogger(__name__)


class ClaudeReviewer(BaseReviewer):
    """Claude Code CLI in print mode with a JSON envelope around the answer.

    The envelope looks like {"type": "result", "result": "<answer>", "usage": {...}};
    the answer text is what gets parsed as the verdict.
    """

    NAME = ReviewerName.CLAUDE
    BINARY_CANDIDATES = ("claude",)
    # The desktop app bundles its own copy of the CLI.
    APP_BUNDLE_PATHS = (
        "/Applications/Claude.app/Contents/Resources/app/bin/claude",
        "~/Applications/Claude.app/Contents/Resources/app/bin/claude",
    )
    PREFLIGHT_URLS = ("https://api.anthropic.com",)

    def build_command(self, binary: str) -> list[str]:
        cmd = [
            binary,
            "-p",
            "--output-format",
            "json",
            "--no-session-persistence",
            "--max-turns",
            str(self.config.claude_max_turns),
            # Empty allow-list: the reviewer answers from the prompt and cannot act on the repo.
            "--allowedTools",
            "",
        ]
        model = self.config.model_for(self.NAME)
        if model:
            cmd += ["--model", model]
        return cmd

    async def _run(self, binary: str, prompt: str, verbose: bool) -> str | None:
        result = await self._exec(self.build_command(binary), prompt, verbose)
        if result.returncode != 0:
            self._execution_failed(result)
            return None

        stdout = result.stdout.strip()
        if not stdout:
            logger.warning("Claude: empty response, skipping.")
            return None
        return stdout

    def _unwrap(self, raw: str) -> tuple[str, TokenUsage | None]:
        """Decode the JSON envelope; anything that is not one is handed to the parser unchanged."""
        try:
            envelope = json.loads(raw)
        except json.JSONDecodeError:
            return raw, None
        if not isinstance(envelope, dict) or "result" not in envelope:
            return raw, None

        payload = envelope["result"]
        if not isinstance(payload, str):
            payload = json.dumps(payload)
        return payload, _usage(envelope.get("usage"))


def _usage(data) -> TokenUsage | None:
    if not isinstance(data, dict):
        return None
    input_tokens = data.get("input_tokens")
    output_tokens = data.get("output_tokens")
    return TokenUsage(
        input_tokens=input_tokens if isinstance(input_tokens, int) else None,
        output_tokens=output_tokens if isinstance(output_tokens, int) else None,
    )
