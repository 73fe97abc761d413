"""Tests for impact-summary context rendering and token budgeting.

Rendering and budgeting are tested separately: the budget tests use a mock
token counter so the number and order of measurements can be asserted.
"""

from unittest.mock import MagicMock

import pytest

from uman_core.errors import ContextTooLargeError
from uman_core.models import FileChange, PullRequestDetail
from uman_core.utils.context import (
    DIFF_CHAR_LIMIT,
    NO_DESCRIPTION,
    build_budgeted_context,
    build_context,
    render_pull_request,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _file(filename="src/export.py", patch="@@ -1 +1 @@\n-old\n+new", status="modified"):
    return FileChange(filename=filename, status=status, additions=1, deletions=1, patch=patch)


def _pr(number=12, title="Add export", body="Adds CSV export.", labels=("client impact",), files=None):
    files = (_file(),) if files is None else tuple(files)
    return PullRequestDetail(
        number=number,
        title=title,
        author="alice",
        labels=frozenset(labels),
        body=body,
        changed_files=len(files),
        files=files,
    )


def _char_counter():
    """Token counter that charges one token per character."""
    return MagicMock(side_effect=len)


# ---------------------------------------------------------------------------
# render_pull_request / build_context
# ---------------------------------------------------------------------------


class TestRenderPullRequest:
    def test_renders_metadata(self):
        text = render_pull_request(_pr(labels=("client impact", "bug")), include_diffs=False)
        assert "## PR #12: Add export" in text
        assert "Author: alice" in text
        assert "Labels: bug, client impact" in text
        assert "Adds CSV export." in text
        assert "Changed files: 1" in text

    def test_missing_description_uses_placeholder(self):
        assert NO_DESCRIPTION in render_pull_request(_pr(body=None), include_diffs=False)
        assert NO_DESCRIPTION in render_pull_request(_pr(body="   "), include_diffs=False)

    def test_with_diffs_includes_small_patch(self):
        text = render_pull_request(_pr(), include_diffs=True)
        assert "`src/export.py` (modified, +1/-1)" in text
        assert "+new" in text

    def test_without_diffs_lists_files_only(self):
        text = render_pull_request(_pr(), include_diffs=False)
        assert "`src/export.py` (modified, +1/-1)" in text
        assert "+new" not in text
        assert "Diff omitted" not in text

    def test_patch_at_limit_is_omitted(self):
        big = "+" + "x" * (DIFF_CHAR_LIMIT - 1)
        text = render_pull_request(_pr(files=[_file(patch=big)]), include_diffs=True)
        assert big not in text
        assert f"[Diff omitted: {DIFF_CHAR_LIMIT:,} characters]" in text

    def test_patch_below_limit_is_kept(self):
        patch = "+" + "x" * (DIFF_CHAR_LIMIT - 2)
        text = render_pull_request(_pr(files=[_file(patch=patch)]), include_diffs=True)
        assert patch in text

    def test_binary_file_without_patch(self):
        text = render_pull_request(_pr(files=[_file(filename="logo.png", patch=None)]), include_diffs=True)
        assert "`logo.png`" in text
        assert "[No diff available]" in text

    def test_no_files_section_when_files_not_fetched(self):
        assert "### Files" not in render_pull_request(_pr(files=[]), include_diffs=True)


class TestBuildContext:
    def test_preserves_impact_set_order(self):
        text = build_context([_pr(number=30), _pr(number=4)], include_diffs=False)
        assert text.index("PR #30") < text.index("PR #4")

    def test_empty_impact_set(self):
        assert build_context([], include_diffs=True) == ""

    def test_with_diffs_never_cheaper_than_without(self):
        impact_set = [_pr(number=1), _pr(number=2, files=[_file(patch="+" + "y" * 5000)])]
        with_diffs = build_context(impact_set, include_diffs=True)
        without_diffs = build_context(impact_set, include_diffs=False)
        assert len(with_diffs) >= len(without_diffs)


# ---------------------------------------------------------------------------
# build_budgeted_context
# ---------------------------------------------------------------------------


class TestBuildBudgetedContext:
    def test_within_budget_measures_once(self):
        counter = _char_counter()
        result = build_budgeted_context([_pr()], count_tokens=counter, max_tokens=1_000_000)
        assert counter.call_count == 1
        assert result.include_diffs is True
        assert "+new" in result.text
        assert result.without_diffs_tokens is None

    def test_over_budget_degrades_to_no_diffs(self):
        # Three PRs: 2,000,000 tokens with diffs, 500,000 without.
        counter = MagicMock(side_effect=[2_000_000, 500_000])
        impact_set = [_pr(number=1), _pr(number=2), _pr(number=3)]

        result = build_budgeted_context(impact_set, count_tokens=counter, max_tokens=1_000_000)

        assert counter.call_count == 2
        assert result.include_diffs is False
        assert result.tokens == 500_000
        assert result.with_diffs_tokens == 2_000_000
        assert "+new" not in result.text
        for n in (1, 2, 3):
            assert f"PR #{n}" in result.text

    def test_degrade_is_batch_wide(self):
        counter = MagicMock(side_effect=[11, 10])
        impact_set = [_pr(number=1), _pr(number=2, files=[_file(patch="+tiny")])]
        result = build_budgeted_context(impact_set, count_tokens=counter, max_tokens=10)
        assert "+new" not in result.text
        assert "+tiny" not in result.text

    def test_exactly_at_ceiling_is_accepted(self):
        counter = MagicMock(return_value=100)
        result = build_budgeted_context([_pr()], count_tokens=counter, max_tokens=100)
        assert result.include_diffs is True
        assert counter.call_count == 1

    def test_still_over_budget_raises_with_both_counts(self):
        counter = MagicMock(side_effect=[3_000_000, 1_500_000])
        with pytest.raises(ContextTooLargeError) as exc_info:
            build_budgeted_context([_pr()], count_tokens=counter, max_tokens=1_000_000)
        assert exc_info.value.with_diffs_tokens == 3_000_000
        assert exc_info.value.without_diffs_tokens == 1_500_000
        assert "3,000,000" in str(exc_info.value)
        assert "1,500,000" in str(exc_info.value)
        assert counter.call_count == 2

    def test_render_wraps_measured_text(self):
        counter = _char_counter()
        result = build_budgeted_context(
            [_pr()],
            count_tokens=counter,
            render=lambda context: f"PROMPT\n{context}",
        )
        assert result.text.startswith("PROMPT\n## PR #12")
        counter.assert_called_once_with(result.text)
