"""Base reviewer implementing the Template Method pattern.

All reviewer CLIs share the same invocation algorithm:
    invoke() → resolve binary → network preflight (unless skipped)
             → _run()    ← only this differs per reviewer (argv, stdin vs. result file)
             → _unwrap() ← optional envelope decoding
             → parse_review_output()

Subclasses declare their binary names, credential/preflight settings and
implement _run. Every failure mode collapses into UNAVAILABLE here, at the
adapter boundary.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import ClassVar

from rich.console import Console

from aireview_core.config import ReviewConfig
from aireview_core.models import UNAVAILABLE, Available, ReviewerName, ReviewerResult, TokenUsage
from aireview_core.parser import ParseError, parse_review_output
from aireview_core.reviewers.binary import resolve_binary
from aireview_core.reviewers.preflight import any_reachable
from aireview_core.reviewers.process import ProcessResult, ProcessTimeout, run_process

console = Console()
logger = logging.getLogger(__name__)


class BaseReviewer(ABC):
    NAME: ClassVar[ReviewerName]
    BINARY_CANDIDATES: ClassVar[tuple[str, ...]] = ()
    APP_BUNDLE_PATHS: ClassVar[tuple[str, ...]] = ()
    PREFLIGHT_URLS: ClassVar[tuple[str, ...]] = ()

    def __init__(self, config: ReviewConfig, cwd: str | None = None):
        self.config = config
        self.cwd = cwd

    @property
    def label(self) -> str:
        return self.NAME.label

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    async def invoke(self, prompt: str, verbose: bool = False, skip_preflight: bool = False) -> ReviewerResult:
        """Run one review and return its result. Never raises."""
        try:
            return await self._review(prompt, verbose, skip_preflight)
        except ProcessTimeout as e:
            logger.warning("%s: timed out after %gs, skipping.", self.label, e.timeout)
        except ParseError as e:
            logger.warning("%s: unusable review output (%s), skipping.", self.label, e)
        except Exception as e:
            logger.warning("%s: %s: %s, skipping.", self.label, type(e).__name__, e)
        return UNAVAILABLE

    # ------------------------------------------------------------------ #
    # Abstract: implement in each reviewer                                 #
    # ------------------------------------------------------------------ #

    @abstractmethod
    async def _run(self, binary: str, prompt: str, verbose: bool) -> str | None:
        """Invoke the CLI once and return the raw review text, or None if it failed.

        Implementations log their own failure reason before returning None.
        """

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    async def _review(self, prompt: str, verbose: bool, skip_preflight: bool) -> ReviewerResult:
        binary = self.resolve_binary()
        if binary is None:
            logger.warning(
                "%s: binary not found in PATH (or %s_BIN not set), skipping.",
                self.label,
                self.NAME.name,
            )
            return UNAVAILABLE

        if skip_preflight:
            logger.debug("%s: preflight skipped (reviewer selected explicitly).", self.label)
        elif self.config.has_credentials(self.NAME):
            logger.debug("%s: API credential present, preflight skipped.", self.label)
        elif not await any_reachable(self.PREFLIGHT_URLS, self.config.preflight_timeout_sec):
            logger.warning("%s: network preflight failed (%s), skipping.", self.label, ", ".join(self.PREFLIGHT_URLS))
            return UNAVAILABLE

        raw = await self._run(binary, prompt, verbose)
        if raw is None:
            return UNAVAILABLE

        payload, usage = self._unwrap(raw)
        return Available(verdict=parse_review_output(payload), usage=usage)

    def resolve_binary(self) -> str | None:
        return resolve_binary(
            self.config.binary_override(self.NAME),
            self.BINARY_CANDIDATES,
            self.APP_BUNDLE_PATHS,
        )

    def _unwrap(self, raw: str) -> tuple[str, TokenUsage | None]:
        """Split raw CLI output into (review payload, token usage). Plain-text reviewers pass through."""
        return raw, None

    async def _exec(self, argv: list[str], prompt: str, verbose: bool) -> ProcessResult:
        logger.debug("%s: running %s", self.label, " ".join(argv))
        result = await run_process(argv, prompt, timeout=self.config.timeout_sec, cwd=self.cwd)
        if verbose:
            self._echo(f"{self.label} exit code", str(result.returncode))
            self._echo(f"{self.label} stdout", result.stdout)
            self._echo(f"{self.label} stderr", result.stderr)
        return result

    def _execution_failed(self, result: ProcessResult) -> None:
        detail = result.error_text
        logger.warning("%s: execution failed%s, skipping.", self.label, f": {detail}" if detail else "")

    @staticmethod
    def _echo(title: str, text: str) -> None:
        console.rule(title, style="dim")
        # Raw model output may contain [brackets]; print it without markup.
        console.out(text or "(empty)", highlight=False)
