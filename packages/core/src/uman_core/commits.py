"""Commit classification and pull-request reference extraction.

Commit messages are matched against a small set of named rules. Each rule is
a single compiled pattern with a stable name so it can be tested on its own
against literal messages, and so log lines can say *which* rule dropped a
commit. Patterns without re.MULTILINE anchor ``^`` to the start of the whole
message, i.e. the commit subject.

Two consumers sit on top of the rules:

- extract_pull_refs(): which PRs landed between two releases (impact summary)
- render_changelog():  the Markdown table kept in a PR description
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from uman_core.models import CommitRecord

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDED_BRANCH = "development"

REFERENCE_STYLES = ("merge", "inline")


@dataclass(frozen=True)
class CommitRule:
    name: str
    pattern: re.Pattern

    def matches(self, message: str) -> bool:
        return self.pattern.search(message) is not None

    def capture(self, message: str) -> str | None:
        match = self.pattern.search(message)
        if match is None or not match.groups():
            return None
        return match.group(1)


MERGE_PULL_REQUEST = CommitRule("merge-pull-request", re.compile(r"^Merge pull request #(\d+)"))
INLINE_PULL_REFERENCE = CommitRule("inline-pull-reference", re.compile(r"\(#(\d+)\)"))
MERGE_BRANCH_OF = CommitRule("merge-branch-of", re.compile(r"^Merge branch '.+' of .+"))


def merge_into_branch(branch: str = DEFAULT_EXCLUDED_BRANCH) -> CommitRule:
    """Match merges whose subject says they went *into* the integration branch."""
    return CommitRule("merge-into-branch", re.compile(rf"^Merge .+ into {re.escape(branch)}(?=\s|$)"))


def merge_from_branch(branch: str = DEFAULT_EXCLUDED_BRANCH) -> CommitRule:
    """Match pull-request merges whose source is ``<owner>/<branch>``."""
    return CommitRule(
        "merge-from-branch",
        re.compile(rf"^Merge pull request #\d+ from [^\s/]+/{re.escape(branch)}(?=\s|$)"),
    )


def excluded_source_rules(branch: str = DEFAULT_EXCLUDED_BRANCH) -> list[CommitRule]:
    return [merge_from_branch(branch), merge_into_branch(branch)]


# ---------------------------------------------------------------------------
# Reference extraction
# ---------------------------------------------------------------------------


def extract_pull_refs(
    commits: list[CommitRecord],
    style: str = "merge",
    excluded_branch: str = DEFAULT_EXCLUDED_BRANCH,
) -> list[int]:
    """Return unique PR numbers mentioned by commits, in order of first appearance.

    ``style`` selects one rule for the whole run: ``"merge"`` reads
    ``Merge pull request #N`` subjects, ``"inline"`` reads a squash-style
    ``(#N)`` anywhere in the message. Housekeeping merges from or into the
    excluded integration branch never contribute a reference.
    """
    if style == "merge":
        rule = MERGE_PULL_REQUEST
    elif style == "inline":
        rule = INLINE_PULL_REFERENCE
    else:
        raise ValueError(f"Unknown reference style: {style!r}. Choose one of {REFERENCE_STYLES}.")

    exclusions = excluded_source_rules(excluded_branch)
    seen: set[int] = set()
    refs: list[int] = []

    for commit in commits:
        candidate = rule.capture(commit.message)
        if candidate is None:
            continue
        excluded_by = next((r.name for r in exclusions if r.matches(commit.message)), None)
        if excluded_by:
            logger.debug("Commit %s excluded by rule %s", commit.sha[:7], excluded_by)
            continue
        try:
            number = int(candidate)
        except ValueError:
            continue
        if number in seen:
            continue
        seen.add(number)
        refs.append(number)

    return refs


# ---------------------------------------------------------------------------
# Changelog table
# ---------------------------------------------------------------------------


def _row(*cells: str | None) -> str:
    # A missing value (unattributed commit) renders as an empty "| |" cell.
    line = "|"
    for cell in cells:
        line += f" {cell} |" if cell else " |"
    return line


def prerelease_commits(
    commits: list[CommitRecord], excluded_branch: str = DEFAULT_EXCLUDED_BRANCH
) -> list[CommitRecord]:
    """PR merge commits, minus merges into the integration branch."""
    into_branch = merge_into_branch(excluded_branch)
    return [c for c in commits if MERGE_PULL_REQUEST.matches(c.message) and not into_branch.matches(c.message)]


def direct_commits(commits: list[CommitRecord]) -> list[CommitRecord]:
    """Commits that are neither PR merges nor ``Merge branch 'x' of y`` syncs."""
    return [c for c in commits if not MERGE_PULL_REQUEST.matches(c.message) and not MERGE_BRANCH_OF.matches(c.message)]


def prerelease_rows(commits: list[CommitRecord], excluded_branch: str = DEFAULT_EXCLUDED_BRANCH) -> list[str]:
    """One ``| <PR title> | <author> |`` row per merged PR.

    GitHub puts the PR title on the last line of a merge commit message.
    """
    return [_row(c.message.split("\n")[-1], c.author_login) for c in prerelease_commits(commits, excluded_branch)]


def commit_rows(commits: list[CommitRecord]) -> list[str]:
    """One ``| <subject> | <sha> | <author> |`` row per direct commit."""
    return [_row(c.message.split("\n")[0], c.sha, c.author_login) for c in direct_commits(commits)]


def render_changelog(
    commits: list[CommitRecord],
    prerelease: bool = False,
    excluded_branch: str = DEFAULT_EXCLUDED_BRANCH,
) -> str:
    """Render the Markdown block that lives between the changelog sentinels."""
    if prerelease:
        title = "Changelog"
        header = "| PR | Author |\n|--------|--------|"
        rows = prerelease_rows(commits, excluded_branch)
    else:
        title = "Commits"
        header = "| Message | ID | Author |\n|--------|--------|--------|"
        rows = commit_rows(commits)
    return f"### {title}\n{header}\n" + "\n".join(rows)
