import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

import yaml

from aireview_core.models import ReviewerName

logger = logging.getLogger(__name__)

DEFAULT_PROMPT_HEADER_LINES: tuple[str, ...] = (
    "You are a strict reviewer for all AGENTS.md rules.",
    "Review ONLY the staged git diff provided below.",
    "Focus on: safety, architecture correctness, clean logic, componentization quality, "
    "likely regressions, maintainability.",
    "Do not comment on formatting-only changes unless they create risk.",
    "Return status=fail if any meaningful issue exists.",
)

DEFAULT_CONFIG: dict = {
    "timeout_ms": 180000,
    "preflight_timeout_sec": 8.0,
    "fail_limit": 10,
    "report_path": None,  # None = <git dir>/ai-review-last.json
    "prompt_header": None,  # None = DEFAULT_PROMPT_HEADER_LINES
    "claude_max_turns": 3,
    "policy_file": "AGENTS.md",
    "binaries": {},
    "models": {"copilot": "gpt-5.3-codex"},
}

# Environment variables that carry an API credential for each reviewer. When one is set
# the network preflight is skipped; the reviewer's own auth fails loudly if it is wrong.
CREDENTIAL_ENV: dict[ReviewerName, tuple[str, ...]] = {
    ReviewerName.CODEX: ("OPENAI_API_KEY", "CODEX_API_KEY"),
    ReviewerName.COPILOT: ("COPILOT_GITHUB_TOKEN", "GH_TOKEN", "GITHUB_TOKEN"),
    ReviewerName.CLAUDE: ("ANTHROPIC_API_KEY", "CLAUDE_CODE_OAUTH_TOKEN"),
}

_SCALAR_ENV = {
    "timeout_ms": "AI_REVIEW_TIMEOUT_MS",
    "preflight_timeout_sec": "AI_REVIEW_PREFLIGHT_TIMEOUT_SEC",
    "fail_limit": "AI_REVIEW_FAIL_LIMIT",
    "report_path": "AI_REVIEW_REPORT_PATH",
    "prompt_header": "AI_REVIEW_PROMPT_HEADER",
    "claude_max_turns": "CLAUDE_REVIEW_MAX_TURNS",
    "policy_file": "AI_REVIEW_POLICY_FILE",
}


@dataclass(frozen=True)
class ReviewConfig:
    """Immutable run configuration, built once by load_config and passed down explicitly."""

    timeout_ms: int = DEFAULT_CONFIG["timeout_ms"]
    preflight_timeout_sec: float = DEFAULT_CONFIG["preflight_timeout_sec"]
    fail_limit: int = DEFAULT_CONFIG["fail_limit"]
    report_path: Optional[str] = None
    prompt_header: tuple[str, ...] = DEFAULT_PROMPT_HEADER_LINES
    claude_max_turns: int = DEFAULT_CONFIG["claude_max_turns"]
    policy_file: str = DEFAULT_CONFIG["policy_file"]
    binaries: Mapping[str, str] = field(default_factory=dict)
    models: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_CONFIG["models"]))
    credentials: Mapping[str, bool] = field(default_factory=dict)
    ci: bool = False

    @property
    def timeout_sec(self) -> float:
        return self.timeout_ms / 1000

    def binary_override(self, name: ReviewerName) -> Optional[str]:
        return self.binaries.get(name.value)

    def model_for(self, name: ReviewerName) -> Optional[str]:
        return self.models.get(name.value) or None

    def has_credentials(self, name: ReviewerName) -> bool:
        return bool(self.credentials.get(name.value))


def resolve_prompt_header_lines(raw_value) -> tuple[str, ...]:
    """Accept a list of lines, a JSON array of lines, or newline-delimited text.

    Blank lines are dropped; an empty result falls back to the built-in header.
    """
    if isinstance(raw_value, (list, tuple)):
        candidates = [line for line in raw_value if isinstance(line, str)]
    else:
        value = (raw_value or "").strip()
        if not value:
            return DEFAULT_PROMPT_HEADER_LINES
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            candidates = [line for line in parsed if isinstance(line, str)]
        else:
            candidates = value.splitlines()

    lines = tuple(line.strip() for line in candidates if line.strip())
    return lines or DEFAULT_PROMPT_HEADER_LINES


def load_config(
    config_path: str = ".ai-review.yml",
    env: Optional[Mapping[str, str]] = None,
    cli_overrides: Optional[dict] = None,
) -> ReviewConfig:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .ai-review.yml in the current directory
      3. Environment variables
      4. CLI argument overrides
    """
    env = os.environ if env is None else env
    config = {
        **DEFAULT_CONFIG,
        "binaries": dict(DEFAULT_CONFIG["binaries"]),
        "models": dict(DEFAULT_CONFIG["models"]),
    }

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        if not isinstance(file_config, dict):
            raise ValueError(f"{path}: expected a mapping of settings, got {type(file_config).__name__}.")
        for key in ("binaries", "models"):
            config[key].update({str(k): str(v) for k, v in (file_config.pop(key, None) or {}).items()})
        config.update(file_config)

    for key, env_name in _SCALAR_ENV.items():
        value = (env.get(env_name) or "").strip()
        if value:
            config[key] = value

    for name in ReviewerName:
        binary = (env.get(f"{name.name}_BIN") or "").strip()
        if binary:
            config["binaries"][name.value] = binary
        model = (env.get(f"{name.name}_REVIEW_MODEL") or "").strip()
        if model:
            config["models"][name.value] = model

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    credentials = {
        name.value: any((env.get(var) or "").strip() for var in variables) for name, variables in CREDENTIAL_ENV.items()
    }

    return ReviewConfig(
        timeout_ms=_as_number(config, "timeout_ms", int),
        preflight_timeout_sec=_as_number(config, "preflight_timeout_sec", float),
        fail_limit=_as_number(config, "fail_limit", int),
        report_path=str(config["report_path"]) if config.get("report_path") else None,
        prompt_header=resolve_prompt_header_lines(config.get("prompt_header")),
        claude_max_turns=_as_number(config, "claude_max_turns", int),
        policy_file=str(config.get("policy_file") or DEFAULT_CONFIG["policy_file"]),
        binaries={k: v for k, v in config["binaries"].items() if v.strip()},
        models=config["models"],
        credentials=credentials,
        ci=is_ci_environment(env),
    )


def is_ci_environment(env: Mapping[str, str]) -> bool:
    return (env.get("CI") or "").strip().lower() in ("true", "1", "yes")


def _as_number(config: dict, key: str, kind):
    """Coerce a numeric setting; values that do not parse keep the default rather than abort the commit."""
    value = config.get(key)
    try:
        number = kind(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid %s=%r; using default %s.", key, value, DEFAULT_CONFIG[key])
        return DEFAULT_CONFIG[key]
    if number <= 0:
        logger.warning("Ignoring non-positive %s=%r; using default %s.", key, value, DEFAULT_CONFIG[key])
        return DEFAULT_CONFIG[key]
    return number
