"""Tests for the orchestration layer: run_summary, run_changelog and helpers."""

import types
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
import requests
from github import GithubException

from uman_core.config import DEFAULT_CONFIG
from uman_core.errors import ConfigurationError, ContextTooLargeError, MalformedDocumentError, ReleaseNotFoundError
from uman_core.reconcile import (
    ChangelogResult,
    SummaryResult,
    collect_pull_details,
    get_summarizer,
    persist_if_changed,
    render_prompt,
    resolve_releases,
    run_changelog,
    run_summary,
)
from uman_core.sections import END_LINE, START_LINE, ReplaceDelimitedSection


class FakeTarget:
    def __init__(self, body=""):
        self.body = body
        self.writes = []

    def read(self):
        return self.body

    def write(self, body):
        self.writes.append(body)
        self.body = body

    def describe(self):
        return "fake document"


class StubSummarizer:
    def __init__(self, summary="- Customers can export CSV files.", tokens=None):
        self.summary = summary
        self.tokens = tokens
        self.prompts = []
        self.counted = []

    def count_tokens(self, prompt):
        self.counted.append(prompt)
        return self.tokens if self.tokens is not None else len(prompt)

    def summarize(self, prompt):
        self.prompts.append(prompt)
        return self.summary


def _config(**overrides):
    config = {**DEFAULT_CONFIG, "impact_labels": ["client impact"], "github_token": "gh-token"}
    config.update(overrides)
    return config


def _release(id, tag, draft=False, day=1):
    return types.SimpleNamespace(
        id=id,
        tag_name=tag,
        draft=draft,
        published_at=None if draft else datetime(2024, 3, day, tzinfo=timezone.utc),
        created_at=datetime(2024, 3, day, tzinfo=timezone.utc),
        target_commitish="main",
        body="",
    )


def _gh_commit(message, sha="a" * 40, login="alice"):
    return types.SimpleNamespace(
        sha=sha,
        commit=types.SimpleNamespace(message=message),
        author=types.SimpleNamespace(login=login),
    )


def _gh_pull(number, labels=(), body="Details."):
    return types.SimpleNamespace(
        number=number,
        title=f"Change {number}",
        user=types.SimpleNamespace(login="alice"),
        labels=[types.SimpleNamespace(name=name) for name in labels],
        body=body,
        changed_files=1,
        get_files=lambda: [
            types.SimpleNamespace(filename=f"f{number}.py", status="modified", additions=1, deletions=0, patch="+x")
        ],
    )


def _repo(releases, commit_messages=(), pulls=None, failing=()):
    """Mock repository serving releases, a comparison and pull requests by number."""
    pulls = pulls or {}
    repo = MagicMock()
    repo.get_releases.return_value = releases
    repo.compare.return_value.commits = [_gh_commit(m, sha=f"{i:040d}") for i, m in enumerate(commit_messages)]

    def get_pull(number):
        if number in failing:
            raise GithubException(404, {"message": "Not Found"}, None)
        return pulls[number]

    repo.get_pull.side_effect = get_pull
    return repo


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestGetSummarizer:
    def test_unknown_model_raises(self):
        with pytest.raises(ValueError, match="Unknown model"):
            get_summarizer(_config(model="llama"))

    def test_missing_key_raises_configuration_error(self):
        with pytest.raises(ConfigurationError, match="ANTHROPIC_API_KEY"):
            get_summarizer(_config(model="anthropic", anthropic_api_key=None))


class TestRenderPrompt:
    def test_substitutes_context(self):
        assert render_prompt("Before\n{context}\nAfter", "CTX") == "Before\nCTX\nAfter"

    def test_other_braces_untouched(self):
        assert render_prompt("{json} {context}", "x") == "{json} x"


class TestPersistIfChanged:
    def test_writes_once_when_changed(self):
        target = FakeTarget("Description")
        assert persist_if_changed(target, ReplaceDelimitedSection(), "table") is True
        assert target.writes == [f"Description\n{START_LINE}\ntable\n{END_LINE}"]

    def test_no_write_when_unchanged(self):
        target = FakeTarget(f"Description\n{START_LINE}\ntable\n{END_LINE}")
        assert persist_if_changed(target, ReplaceDelimitedSection(), "table") is False
        assert target.writes == []

    def test_malformed_document_never_written(self):
        target = FakeTarget(f"Description\n{START_LINE}\ntable")
        with pytest.raises(MalformedDocumentError):
            persist_if_changed(target, ReplaceDelimitedSection(), "table")
        assert target.writes == []


class TestResolveReleases:
    def test_draft_and_previous(self):
        draft = _release(3, "v1.2", draft=True)
        repo = _repo([draft, _release(1, "v1.0", day=1), _release(2, "v1.1", day=10)])
        current, previous = resolve_releases(repo)
        assert current is draft
        assert previous.tag_name == "v1.1"

    def test_by_tag(self):
        repo = _repo([_release(1, "v1.0", day=1), _release(2, "v1.1", day=10)])
        current, previous = resolve_releases(repo, tag="v1.1")
        assert current.tag_name == "v1.1"
        assert previous.tag_name == "v1.0"

    def test_older_tag_compares_against_earlier_release(self):
        repo = _repo([_release(3, "v1.2", day=20), _release(2, "v1.1", day=10), _release(1, "v1.0", day=1)])
        current, previous = resolve_releases(repo, tag="v1.1")
        assert previous.tag_name == "v1.0"

    def test_no_draft_raises(self):
        with pytest.raises(ReleaseNotFoundError):
            resolve_releases(_repo([_release(1, "v1.0")]))

    def test_unknown_tag_raises(self):
        with pytest.raises(ReleaseNotFoundError, match="v9"):
            resolve_releases(_repo([_release(1, "v1.0")]), tag="v9")


class TestCollectPullDetails:
    def test_failed_fetch_skips_only_that_pr(self):
        repo = _repo([], pulls={1: _gh_pull(1), 3: _gh_pull(3)}, failing={2})
        details, failed = collect_pull_details(repo, [1, 2, 3])
        assert [d.number for d in details] == [1, 3]
        assert failed == [2]

    def test_transport_error_skips_only_that_pr(self):
        pulls = {1: _gh_pull(1), 3: _gh_pull(3)}
        repo = MagicMock()

        def get_pull(number):
            if number == 2:
                raise requests.exceptions.ConnectionError("Connection reset by peer")
            return pulls[number]

        repo.get_pull.side_effect = get_pull
        details, failed = collect_pull_details(repo, [1, 2, 3])
        assert [d.number for d in details] == [1, 3]
        assert failed == [2]

    def test_failed_file_listing_skips_that_pr(self):
        broken = _gh_pull(2)
        broken.get_files = MagicMock(side_effect=requests.exceptions.ReadTimeout("timed out"))
        repo = _repo([], pulls={1: _gh_pull(1), 2: broken})
        details, failed = collect_pull_details(repo, [1, 2])
        assert [d.number for d in details] == [1]
        assert failed == [2]


# ---------------------------------------------------------------------------
# run_summary
# ---------------------------------------------------------------------------


RELEASES = [_release(2, "v1.1", draft=True, day=20), _release(1, "v1.0", day=1)]


class TestRunSummary:
    def _run(self, repo, target, summarizer=None, **config):
        summarizer = summarizer or StubSummarizer()
        result = run_summary(
            repo="umanai/app",
            config=_config(**config),
            make_target=lambda repo_obj, release: target,
            repo_obj=repo,
            summarizer=summarizer,
        )
        return result, summarizer

    def test_happy_path_writes_summary_once(self):
        repo = _repo(
            RELEASES,
            commit_messages=[
                "Merge pull request #12 from x/export",
                "Merge pull request #34 from umanai/development",
                "Merge pull request #13 from x/internal",
            ],
            pulls={12: _gh_pull(12, labels=["Client Impact"]), 13: _gh_pull(13, labels=["internal"])},
        )
        target = FakeTarget("Release notes")

        result, summarizer = self._run(repo, target)

        assert isinstance(result, SummaryResult)
        assert result.release_tag == "v1.1"
        assert result.previous_tag == "v1.0"
        assert result.pull_refs == [12, 13]
        assert result.impact_refs == [12]
        assert result.include_diffs is True
        assert result.written is True
        assert len(target.writes) == 1
        assert target.writes[0].endswith("\n\nRelease notes")
        assert "- Customers can export CSV files." in target.writes[0]
        repo.compare.assert_called_once_with("v1.0", "main")
        assert "## PR #12" in summarizer.prompts[0]
        assert "PR #13" not in summarizer.prompts[0]

    def test_no_previous_release_is_a_no_op(self):
        repo = _repo([_release(1, "v1.0", draft=True)])
        target = FakeTarget()
        result, summarizer = self._run(repo, target)
        assert result.previous_tag is None
        assert target.writes == []
        assert summarizer.prompts == []
        repo.compare.assert_not_called()

    def test_no_pull_requests_is_a_no_op(self):
        repo = _repo(RELEASES, commit_messages=["Fix typo"])
        target = FakeTarget()
        result, summarizer = self._run(repo, target)
        assert result.pull_refs == []
        assert target.writes == []
        assert summarizer.prompts == []

    def test_empty_impact_set_skips_provider(self):
        repo = _repo(
            RELEASES,
            commit_messages=["Merge pull request #5 from x/y"],
            pulls={5: _gh_pull(5, labels=["bug"])},
        )
        target = FakeTarget()
        result, summarizer = self._run(repo, target)
        assert result.impact_refs == []
        assert summarizer.counted == []
        assert summarizer.prompts == []
        assert target.writes == []

    def test_failed_fetch_does_not_abort(self):
        repo = _repo(
            RELEASES,
            commit_messages=["Merge pull request #1 from x/a", "Merge pull request #2 from x/b"],
            pulls={2: _gh_pull(2, labels=["client impact"])},
            failing={1},
        )
        target = FakeTarget()
        result, _ = self._run(repo, target)
        assert result.failed_refs == [1]
        assert result.impact_refs == [2]
        assert result.written is True

    def test_over_budget_drops_diffs(self):
        repo = _repo(
            RELEASES,
            commit_messages=["Merge pull request #1 from x/a"],
            pulls={1: _gh_pull(1, labels=["client impact"])},
        )
        summarizer = StubSummarizer()
        summarizer.count_tokens = MagicMock(side_effect=[2_000_000, 500_000])
        result, _ = self._run(repo, FakeTarget(), summarizer=summarizer, max_prompt_tokens=1_000_000)
        assert result.include_diffs is False
        assert result.tokens == 500_000
        assert "```diff" not in summarizer.prompts[0]

    def test_still_over_budget_aborts_before_provider_and_write(self):
        repo = _repo(
            RELEASES,
            commit_messages=["Merge pull request #1 from x/a"],
            pulls={1: _gh_pull(1, labels=["client impact"])},
        )
        summarizer = StubSummarizer(tokens=5_000)
        target = FakeTarget()
        with pytest.raises(ContextTooLargeError):
            self._run(repo, target, summarizer=summarizer, max_prompt_tokens=100)
        assert summarizer.prompts == []
        assert target.writes == []

    def test_provider_failure_aborts_before_write(self):
        repo = _repo(
            RELEASES,
            commit_messages=["Merge pull request #1 from x/a"],
            pulls={1: _gh_pull(1, labels=["client impact"])},
        )
        summarizer = StubSummarizer()
        summarizer.summarize = MagicMock(side_effect=RuntimeError("503"))
        target = FakeTarget()
        with pytest.raises(RuntimeError):
            self._run(repo, target, summarizer=summarizer)
        assert target.writes == []

    def test_replace_mode_converges(self):
        repo = _repo(
            RELEASES,
            commit_messages=["Merge pull request #1 from x/a"],
            pulls={1: _gh_pull(1, labels=["client impact"])},
        )
        target = FakeTarget("notes")
        first, _ = self._run(repo, target, summary_strategy="replace")
        second, _ = self._run(repo, target, summary_strategy="replace")
        assert first.written is True
        assert second.written is False
        assert len(target.writes) == 1

    def test_bad_strategy_fails_before_github(self):
        repo = _repo(RELEASES)
        with pytest.raises(ValueError):
            self._run(repo, FakeTarget(), summary_strategy="append")
        repo.get_releases.assert_not_called()


# ---------------------------------------------------------------------------
# run_changelog
# ---------------------------------------------------------------------------


class TestRunChangelog:
    def _pr(self, body, messages):
        pr = MagicMock()
        pr.number = 7
        pr.body = body
        pr.get_commits.return_value = [_gh_commit(m, sha=f"sha{i}") for i, m in enumerate(messages)]
        return pr

    def _run(self, repo, **kwargs):
        target = FakeTarget(repo.get_pull.return_value.body)
        result = run_changelog(
            repo="umanai/app",
            pr_number=7,
            config=_config(),
            make_target=lambda pr: target,
            repo_obj=repo,
            **kwargs,
        )
        return result, target

    def test_writes_commit_table(self):
        repo = MagicMock()
        repo.get_pull.return_value = self._pr("Description", ["Fix crash", "Merge pull request #3 from x/y"])
        result, target = self._run(repo)
        assert isinstance(result, ChangelogResult)
        assert result.rows == 1
        assert result.written is True
        assert len(target.writes) == 1
        assert "| Fix crash | sha0 | alice |" in target.writes[0]
        assert target.writes[0].startswith("Description\n")

    def test_prerelease_table(self):
        repo = MagicMock()
        repo.get_pull.return_value = self._pr("", ["Merge pull request #3 from x/y\n\nAdd export", "Fix crash"])
        result, target = self._run(repo, prerelease=True)
        assert result.rows == 1
        assert "### Changelog" in target.writes[0]
        assert "| Add export | alice |" in target.writes[0]

    def test_second_run_is_a_no_op(self):
        repo = MagicMock()
        repo.get_pull.return_value = self._pr("Description", ["Fix crash"])
        _, first_target = self._run(repo)
        repo.get_pull.return_value.body = first_target.body
        result, second_target = self._run(repo)
        assert result.written is False
        assert second_target.writes == []

    def test_empty_table_counts_zero_rows(self):
        repo = MagicMock()
        repo.get_pull.return_value = self._pr("", [])
        result, _ = self._run(repo)
        assert result.rows == 0

    def test_missing_pr_raises_configuration_error(self):
        repo = MagicMock()
        repo.get_pull.side_effect = GithubException(404, {"message": "Not Found"}, None)
        with pytest.raises(ConfigurationError, match="PR #7"):
            run_changelog(repo="umanai/app", pr_number=7, config=_config(), make_target=FakeTarget, repo_obj=repo)
