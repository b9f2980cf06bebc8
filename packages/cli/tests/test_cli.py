"""Tests for the CLI entry point."""

import stat
import subprocess
from pathlib import Path

import pytest
from click.testing import CliRunner

from aireview_cli.cli import _build_store, main
from aireview_cli.commands.precommit import run_pre_commit
from aireview_core.config import ReviewConfig
from aireview_core.models import (
    UNAVAILABLE,
    Available,
    Finding,
    ReviewerName,
    ReviewSummary,
    ReviewVerdict,
)
from aireview_store.files import FAIL_COUNT_FILE, LOCK_FILE, REPORT_FILE, ControlFileStore

CODEX, COPILOT, CLAUDE = ReviewerName.CODEX, ReviewerName.COPILOT, ReviewerName.CLAUDE


def _passed():
    return ReviewSummary(
        passed=True,
        reason="AI review approved by: Codex.",
        results={CODEX: Available(ReviewVerdict("pass", "ok")), COPILOT: UNAVAILABLE, CLAUDE: UNAVAILABLE},
    )


def _failed():
    verdict = ReviewVerdict("fail", "bad", (Finding("high", "Bug", "Null deref", "a.py", 3),))
    return ReviewSummary(
        passed=False,
        reason="AI review rejected by: Codex.",
        results={CODEX: Available(verdict), COPILOT: UNAVAILABLE, CLAUDE: UNAVAILABLE},
    )


class StubReviewer:
    def __init__(self, result):
        self.result = result
        self.prompts = []

    async def invoke(self, prompt, verbose=False, skip_preflight=False):
        self.prompts.append(prompt)
        return self.result


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return Path.cwd()


def _patch_common(mocker, workspace, config=None):
    """Patch load_config and _build_store so tests never depend on the real environment or git."""
    cfg = config or ReviewConfig()
    mocker.patch("aireview_core.config.load_config", return_value=cfg)
    store = ControlFileStore.in_directory(workspace / ".git")
    mocker.patch("aireview_cli.cli._build_store", return_value=store)
    return cfg, store


def _invoke(args):
    return CliRunner().invoke(main, args)


# ---------------------------------------------------------------------------
# Reviewer selection flags
# ---------------------------------------------------------------------------


class TestReviewerFlags:
    def test_flags_mutually_exclusive(self, mocker, workspace):
        _patch_common(mocker, workspace)
        run = mocker.patch("aireview_cli.commands.review.run_review")

        result = _invoke(["review", "--codex", "--claude"])

        assert result.exit_code == 2
        assert "mutually exclusive" in result.output
        run.assert_not_called()

    def test_forced_reviewer_passed_through(self, mocker, workspace):
        _patch_common(mocker, workspace)
        run = mocker.patch("aireview_cli.commands.review.run_review", return_value=_passed())

        _invoke(["review", "--copilot"])

        assert run.call_args.kwargs["reviewer"] == COPILOT

    def test_default_uses_fallback_chain(self, mocker, workspace):
        _patch_common(mocker, workspace)
        run = mocker.patch("aireview_cli.commands.review.run_review", return_value=_passed())

        _invoke(["review"])

        assert run.call_args.kwargs["reviewer"] is None
        assert run.call_args.kwargs["verbose"] is False


# ---------------------------------------------------------------------------
# review / diff
# ---------------------------------------------------------------------------


class TestReviewCommand:
    def test_pass_exits_zero_and_saves_report(self, mocker, workspace):
        _patch_common(mocker, workspace)
        mocker.patch("aireview_cli.commands.review.run_review", return_value=_passed())

        result = _invoke(["review"])

        assert result.exit_code == 0
        report = (workspace / ".git" / REPORT_FILE).read_text()
        assert '"codex"' in report
        assert '"status": "unavailable"' in report

    def test_fail_exits_one(self, mocker, workspace):
        _patch_common(mocker, workspace)
        mocker.patch("aireview_cli.commands.review.run_review", return_value=_failed())

        assert _invoke(["review"]).exit_code == 1

    def test_no_changes_writes_no_report(self, mocker, workspace):
        _patch_common(mocker, workspace)
        skipped = ReviewSummary(passed=True, reason="No changes.", skipped=True)
        mocker.patch("aireview_cli.commands.review.run_review", return_value=skipped)

        result = _invoke(["review"])

        assert result.exit_code == 0
        assert not (workspace / ".git" / REPORT_FILE).exists()

    def test_end_to_end_with_stub_reviewers(self, mocker, workspace):
        _patch_common(mocker, workspace)
        (workspace / "AGENTS.md").write_text("Never log secrets.\n")
        mocker.patch("aireview_cli.commands.review.get_staged_diff", return_value="+print(token)")
        reviewers = {
            CODEX: StubReviewer(UNAVAILABLE),
            COPILOT: StubReviewer(Available(ReviewVerdict("pass", "clean"))),
            CLAUDE: StubReviewer(UNAVAILABLE),
        }
        mocker.patch("aireview_cli.commands.review.build_reviewers", return_value=reviewers)

        result = _invoke(["review"])

        assert result.exit_code == 0, result.output
        assert "approved by: Copilot" in result.output
        prompt = reviewers[COPILOT].prompts[0]
        assert "Never log secrets." in prompt
        assert prompt.endswith("Staged diff:\n+print(token)")
        assert reviewers[CLAUDE].prompts == []

    def test_missing_policy_file_is_an_error(self, mocker, workspace):
        _patch_common(mocker, workspace)
        mocker.patch("aireview_cli.commands.review.get_staged_diff", return_value="+x")
        mocker.patch("aireview_cli.commands.review.build_reviewers", return_value={})

        result = _invoke(["review"])

        assert result.exit_code == 1
        assert "Policy file not found" in result.output

    def test_git_failure_is_an_error(self, mocker, workspace):
        _patch_common(mocker, workspace)
        error = subprocess.CalledProcessError(128, ["git", "diff"], stderr="fatal: not a git repository")
        mocker.patch("aireview_cli.commands.review.get_staged_diff", side_effect=error)

        result = _invoke(["review"])

        assert result.exit_code == 1
        assert "not a git repository" in result.output

    def test_diff_command_uses_refs_and_label(self, mocker, workspace):
        _patch_common(mocker, workspace)
        (workspace / "AGENTS.md").write_text("Rules.\n")
        get_diff = mocker.patch("aireview_cli.commands.review.get_diff_between_refs", return_value="+y")
        reviewers = {name: StubReviewer(Available(ReviewVerdict("pass", "ok"))) for name in ReviewerName}
        mocker.patch("aireview_cli.commands.review.build_reviewers", return_value=reviewers)

        result = _invoke(["diff", "main", "feature"])

        assert result.exit_code == 0, result.output
        get_diff.assert_called_once_with("main", "feature", cwd=str(workspace))
        assert reviewers[CODEX].prompts[0].endswith("Branch diff (main...feature):\n+y")


# ---------------------------------------------------------------------------
# pre-commit
# ---------------------------------------------------------------------------


class TestPreCommitCommand:
    def test_ci_skips_review(self, mocker, workspace):
        _patch_common(mocker, workspace, config=ReviewConfig(ci=True))
        run = mocker.patch("aireview_cli.commands.review.run_review")

        result = _invoke(["pre-commit"])

        assert result.exit_code == 0
        assert "Skip AI review in CI." in result.output
        run.assert_not_called()

    def test_failure_increments_counter(self, mocker, workspace):
        _patch_common(mocker, workspace, config=ReviewConfig(fail_limit=3))
        mocker.patch("aireview_cli.commands.review.run_review", return_value=_failed())

        _invoke(["pre-commit"])
        result = _invoke(["pre-commit"])

        assert result.exit_code == 1
        assert "Consecutive AI-hook failures: 2 (lock at 3)." in result.output
        assert (workspace / ".git" / FAIL_COUNT_FILE).read_text() == "2"
        assert not (workspace / ".git" / LOCK_FILE).exists()

    def test_reaching_limit_locks(self, mocker, workspace):
        _patch_common(mocker, workspace, config=ReviewConfig(fail_limit=3))
        run = mocker.patch("aireview_cli.commands.review.run_review", return_value=_failed())

        results = [_invoke(["pre-commit"]) for _ in range(3)]

        assert [r.exit_code for r in results] == [1, 1, 1]
        assert "Hard lock is now active." in results[-1].output
        assert (workspace / ".git" / LOCK_FILE).read_text().startswith("locked_after=3")
        assert run.call_count == 3

    def test_locked_blocks_without_review(self, mocker, workspace):
        _, store = _patch_common(mocker, workspace, config=ReviewConfig(fail_limit=3))
        store.write_lock(3)
        run = mocker.patch("aireview_cli.commands.review.run_review", return_value=_passed())

        result = _invoke(["pre-commit"])

        assert result.exit_code == 1
        assert "AI hook lock is active" in result.output
        assert "To unlock:" in result.output
        run.assert_not_called()

    def test_pass_clears_counter(self, mocker, workspace):
        _, store = _patch_common(mocker, workspace)
        store.write_fail_count(4)
        mocker.patch("aireview_cli.commands.review.run_review", return_value=_passed())

        result = _invoke(["pre-commit"])

        assert result.exit_code == 0
        assert store.read_fail_count() == 0
        assert not (workspace / ".git" / FAIL_COUNT_FILE).exists()

    def test_failure_prints_last_report(self, mocker, workspace):
        _patch_common(mocker, workspace)
        mocker.patch("aireview_cli.commands.review.run_review", return_value=_failed())

        result = _invoke(["pre-commit"])

        assert "Review output:" in result.output
        assert "Null deref" in result.output


class TestRunPreCommit:
    def test_n_failures_then_lock(self, tmp_path):
        store = ControlFileStore.in_directory(tmp_path)
        config = ReviewConfig(fail_limit=2)
        reviews = []

        def review():
            reviews.append(1)
            return _failed()

        codes = [run_pre_commit(config, store, review) for _ in range(4)]

        assert codes == [1, 1, 1, 1]
        assert len(reviews) == 2
        assert store.is_locked()

    def test_pass_after_failures_resets(self, tmp_path):
        store = ControlFileStore.in_directory(tmp_path)
        config = ReviewConfig(fail_limit=3)

        run_pre_commit(config, store, _failed)
        run_pre_commit(config, store, _failed)
        assert run_pre_commit(config, store, _passed) == 0
        assert run_pre_commit(config, store, _failed) == 1

        assert store.read_fail_count() == 1
        assert not store.is_locked()

    def test_missing_report_mentioned(self, tmp_path, capsys):
        store = ControlFileStore.in_directory(tmp_path)
        run_pre_commit(ReviewConfig(), store, _failed)
        assert "report file not found" in capsys.readouterr().out


# ---------------------------------------------------------------------------
# Undecodable control files and bad configuration
# ---------------------------------------------------------------------------

GARBAGE = b"\xff\xfe\x00garbage"


class TestUndecodableState:
    def test_review_ignores_undecodable_rotation(self, mocker, workspace):
        _, store = _patch_common(mocker, workspace)
        store.rotation_path.parent.mkdir(parents=True, exist_ok=True)
        store.rotation_path.write_bytes(GARBAGE)
        (workspace / "AGENTS.md").write_text("Rules.\n")
        mocker.patch("aireview_cli.commands.review.get_staged_diff", return_value="+z")
        reviewers = {name: StubReviewer(Available(ReviewVerdict("pass", "ok"))) for name in ReviewerName}
        mocker.patch("aireview_cli.commands.review.build_reviewers", return_value=reviewers)

        result = _invoke(["review"])

        assert result.exit_code == 0, result.output
        assert len(reviewers[CODEX].prompts) == 1
        assert store.read_rotation() is None

    def test_pre_commit_restarts_undecodable_counter(self, mocker, workspace):
        _, store = _patch_common(mocker, workspace, config=ReviewConfig(fail_limit=3))
        store.fail_count_path.parent.mkdir(parents=True, exist_ok=True)
        store.fail_count_path.write_bytes(GARBAGE)
        mocker.patch("aireview_cli.commands.review.run_review", return_value=_failed())

        result = _invoke(["pre-commit"])

        assert result.exit_code == 1
        assert "Consecutive AI-hook failures: 1 (lock at 3)." in result.output
        assert store.read_fail_count() == 1

    def test_locked_with_undecodable_report(self, mocker, workspace):
        _, store = _patch_common(mocker, workspace)
        store.write_lock(10)
        store.report_path.write_bytes(GARBAGE)

        result = _invoke(["pre-commit"])

        assert result.exit_code == 1
        assert "report file not found" in result.output
        assert isinstance(result.exception, SystemExit)


class TestConfigErrors:
    def test_malformed_yaml_is_an_error(self, mocker, workspace):
        mocker.patch("aireview_cli.cli._build_store")
        (workspace / ".ai-review.yml").write_text("fail_limit: [unclosed\n")

        result = _invoke(["review"])

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output
        assert "Traceback" not in result.output

    def test_non_mapping_yaml_is_an_error(self, mocker, workspace):
        mocker.patch("aireview_cli.cli._build_store")
        (workspace / ".ai-review.yml").write_text("- a\n- b\n")

        result = _invoke(["pre-commit"])

        assert result.exit_code == 1
        assert "expected a mapping" in result.output


# ---------------------------------------------------------------------------
# install
# ---------------------------------------------------------------------------


class TestInstall:
    def test_writes_executable_hook(self, mocker, workspace):
        _patch_common(mocker, workspace)
        hooks_path = mocker.patch("aireview_cli.commands.install.set_hooks_path")

        result = _invoke(["install"])

        assert result.exit_code == 0, result.output
        hook = workspace / ".githooks" / "pre-commit"
        assert "git-ai-review pre-commit" in hook.read_text()
        assert stat.S_IMODE(hook.stat().st_mode) == 0o755
        hooks_path.assert_called_once_with(".githooks", cwd=str(workspace))

    def test_git_config_failure(self, mocker, workspace):
        _patch_common(mocker, workspace)
        error = subprocess.CalledProcessError(1, ["git", "config"], stderr="fatal: not in a git directory")
        mocker.patch("aireview_cli.commands.install.set_hooks_path", side_effect=error)

        result = _invoke(["install"])

        assert result.exit_code == 1
        assert "not in a git directory" in result.output


# ---------------------------------------------------------------------------
# _build_store
# ---------------------------------------------------------------------------


class TestBuildStore:
    def test_paths_resolved_through_git(self, mocker, tmp_path):
        mocker.patch(
            "aireview_core.vcs.git.get_git_path",
            side_effect=lambda name, cwd=None: f".git/worktrees/wt/{name}",
        )
        store = _build_store(ReviewConfig(), str(tmp_path))

        assert store.lock_path == tmp_path / ".git/worktrees/wt" / LOCK_FILE
        assert store.report_path == tmp_path / ".git/worktrees/wt" / REPORT_FILE

    def test_report_path_override(self, mocker, tmp_path):
        mocker.patch("aireview_core.vcs.git.get_git_path", side_effect=lambda name, cwd=None: f".git/{name}")
        store = _build_store(ReviewConfig(report_path="out/review.json"), str(tmp_path))

        assert store.report_path == tmp_path / "out/review.json"
        assert store.fail_count_path == Path(tmp_path) / ".git" / FAIL_COUNT_FILE
