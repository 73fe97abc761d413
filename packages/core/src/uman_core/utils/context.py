"""Prompt context for the impact summary, bounded by a token budget.

The context describes every PR in the impact set: metadata, description and
the files it touched. Per-file diffs are the bulk of the text, so they are
the one thing the budget is allowed to take away.

Budgeting renders with diffs and measures. If that is over the ceiling it
renders once more without any diffs at all. Either every PR keeps its diffs
or none does, and the token counter is called at most twice.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from uman_core.errors import ContextTooLargeError
from uman_core.models import FileChange, PullRequestDetail

logger = logging.getLogger(__name__)

# Diffs at or above this many characters are replaced by a size placeholder
# even when diffs are included. Large generated files (lockfiles, snapshots)
# would otherwise dominate the prompt while adding nothing to the summary.
DIFF_CHAR_LIMIT = 2_000

DEFAULT_MAX_PROMPT_TOKENS = 1_000_000

NO_DESCRIPTION = "No description provided."


@dataclass
class BudgetedContext:
    """The rendering that fits the budget, plus the measurements behind the choice."""

    text: str
    include_diffs: bool
    tokens: int
    with_diffs_tokens: int
    without_diffs_tokens: int | None = None


def _render_file(file: FileChange, include_diffs: bool) -> str:
    line = f"- `{file.filename}` ({file.status}, +{file.additions}/-{file.deletions})"
    if not include_diffs:
        return line
    if file.patch is None:
        return line + "\n  [No diff available]"
    if len(file.patch) >= DIFF_CHAR_LIMIT:
        return line + f"\n  [Diff omitted: {len(file.patch):,} characters]"
    return line + f"\n```diff\n{file.patch}\n```"


def render_pull_request(pr: PullRequestDetail, include_diffs: bool) -> str:
    labels = ", ".join(sorted(pr.labels))
    description = pr.body.strip() if pr.body and pr.body.strip() else NO_DESCRIPTION
    lines = [
        f"## PR #{pr.number}: {pr.title}",
        f"Author: {pr.author or 'unknown'}",
        f"Labels: {labels}",
        f"Description:\n{description}",
        f"Changed files: {pr.changed_files}",
    ]
    if pr.files:
        lines.append("### Files")
        lines.extend(_render_file(f, include_diffs) for f in pr.files)
    return "\n".join(lines)


def build_context(impact_set: list[PullRequestDetail], include_diffs: bool) -> str:
    """Render every PR in the impact set, in the order given."""
    return "\n\n".join(render_pull_request(pr, include_diffs) for pr in impact_set)


def build_budgeted_context(
    impact_set: list[PullRequestDetail],
    count_tokens: Callable[[str], int],
    max_tokens: int = DEFAULT_MAX_PROMPT_TOKENS,
    render: Callable[[str], str] | None = None,
) -> BudgetedContext:
    """Return the richest rendering whose token count is within ``max_tokens``.

    ``render`` wraps the context into the final prompt; what gets measured is
    exactly what will be sent to the model. Raises ContextTooLargeError when
    the rendering without diffs is still over the ceiling.
    """
    wrap = render or (lambda context: context)

    with_diffs = wrap(build_context(impact_set, include_diffs=True))
    with_diffs_tokens = count_tokens(with_diffs)
    logger.debug("Context with diffs: %d tokens (limit %d)", with_diffs_tokens, max_tokens)
    if with_diffs_tokens <= max_tokens:
        return BudgetedContext(
            text=with_diffs,
            include_diffs=True,
            tokens=with_diffs_tokens,
            with_diffs_tokens=with_diffs_tokens,
        )

    logger.warning(
        "Context with diffs is %d tokens, over the %d limit; retrying without diffs.",
        with_diffs_tokens,
        max_tokens,
    )
    without_diffs = wrap(build_context(impact_set, include_diffs=False))
    without_diffs_tokens = count_tokens(without_diffs)
    if without_diffs_tokens > max_tokens:
        raise ContextTooLargeError(with_diffs_tokens, without_diffs_tokens, max_tokens)

    return BudgetedContext(
        text=without_diffs,
        include_diffs=False,
        tokens=without_diffs_tokens,
        with_diffs_tokens=with_diffs_tokens,
        without_diffs_tokens=without_diffs_tokens,
    )
