"""GitHub-backed document targets.

Each target wraps one PyGithub object that is already fetched by the caller,
so constructing a target never makes a network call. Writes go straight to
the REST API with no retry: a failed write is a failed run.
"""

from __future__ import annotations

import logging

from uman_store.base import DocumentTarget

logger = logging.getLogger(__name__)

# Hidden marker that identifies the comment this tool owns on an issue/PR.
SUMMARY_COMMENT_MARKER = "<!-- uman-changelog-summary -->"


class ReleaseBodyTarget(DocumentTarget):
    """The description of a GitHub release (usually the draft being prepared)."""

    def __init__(self, release):
        self._release = release

    def read(self) -> str:
        return self._release.body or ""

    def write(self, body: str) -> None:
        # update_release() requires the name; pass the current values through
        # so only the body changes.
        self._release.update_release(
            name=self._release.title or self._release.tag_name,
            message=body,
            draft=self._release.draft,
            prerelease=self._release.prerelease,
        )
        logger.debug("Updated body of release %s", self._release.tag_name)

    def describe(self) -> str:
        return f"release {self._release.tag_name}"


class PullRequestBodyTarget(DocumentTarget):
    """The description of a pull request."""

    def __init__(self, pr):
        self._pr = pr

    def read(self) -> str:
        return self._pr.body or ""

    def write(self, body: str) -> None:
        self._pr.edit(body=body)
        logger.debug("Updated body of PR #%d", self._pr.number)

    def describe(self) -> str:
        return f"PR #{self._pr.number}"


class IssueCommentTarget(DocumentTarget):
    """A single comment on an issue or PR, created on first write and edited afterwards.

    GitHub has no comment thread on releases, so summaries that should not
    touch the release body are posted to a tracking issue instead. The owned
    comment is found again by SUMMARY_COMMENT_MARKER, which read() hides and
    write() re-appends so body comparisons ignore it.
    """

    def __init__(self, issue):
        self._issue = issue
        self._comment = None
        self._looked_up = False

    def _find_comment(self):
        if not self._looked_up:
            self._comment = next(
                (c for c in self._issue.get_comments() if SUMMARY_COMMENT_MARKER in (c.body or "")),
                None,
            )
            self._looked_up = True
        return self._comment

    def read(self) -> str:
        comment = self._find_comment()
        if comment is None:
            return ""
        return (comment.body or "").replace(f"\n{SUMMARY_COMMENT_MARKER}", "").replace(SUMMARY_COMMENT_MARKER, "")

    def write(self, body: str) -> None:
        payload = f"{body}\n{SUMMARY_COMMENT_MARKER}"
        comment = self._find_comment()
        if comment is None:
            self._comment = self._issue.create_comment(payload)
            logger.debug("Created summary comment on #%d", self._issue.number)
        else:
            comment.edit(payload)
            logger.debug("Edited summary comment %s on #%d", comment.id, self._issue.number)

    def describe(self) -> str:
        return f"comment on #{self._issue.number}"
