from __future__ import annotations

import logging

from aireview_core.models import ReviewerName
from aireview_core.reviewers.base import BaseReviewer

logger = logging.getLogger(__name__)


class CopilotReviewer(BaseReviewer):
    NAME = ReviewerName.COPILOT
    BINARY_CANDIDATES = ("copilot",)
    PREFLIGHT_URLS = ("https://api.github.com",)

    def build_command(self, binary: str) -> list[str]:
        # -s: print only the agent's answer, no interactive UI or usage stats.
        return [binary, "--model", self.config.model_for(self.NAME) or "gpt-5.3-codex", "-s"]

    async def _run(self, binary: str, prompt: str, verbose: bool) -> str | None:
        result = await self._exec(self.build_command(binary), prompt, verbose)
        if result.returncode != 0:
            self._execution_failed(result)
            return None

        stdout = result.stdout.strip()
        if not stdout:
            logger.warning("Copilot: empty response, skipping.")
            return None
        return stdout
