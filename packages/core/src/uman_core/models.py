"""Snapshots of GitHub data consumed by the reconciliation pipeline.

PyGithub objects are lazy and make network calls on attribute access, so the
pipeline converts them into these plain dataclasses at the boundary. Every
function downstream of uman_core.gh works on snapshots only, which keeps the
commit rules, context builder and merge engine testable with literal fixtures.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class CommitRecord:
    sha: str
    message: str
    author_login: str | None = None

    @classmethod
    def from_github(cls, commit) -> CommitRecord:
        # commit.author is the linked GitHub account and is None for commits
        # whose email does not map to a user.
        author = commit.author.login if commit.author is not None else None
        return cls(sha=commit.sha, message=commit.commit.message or "", author_login=author)


@dataclass(frozen=True)
class FileChange:
    filename: str
    status: str
    additions: int = 0
    deletions: int = 0
    patch: str | None = None

    @classmethod
    def from_github(cls, file) -> FileChange:
        return cls(
            filename=file.filename,
            status=file.status,
            additions=file.additions or 0,
            deletions=file.deletions or 0,
            patch=file.patch,
        )


@dataclass
class PullRequestDetail:
    number: int
    title: str
    author: str | None
    labels: frozenset[str] = frozenset()
    body: str | None = None
    changed_files: int = 0
    files: tuple[FileChange, ...] = field(default_factory=tuple)

    @classmethod
    def from_github(cls, pr, files=()) -> PullRequestDetail:
        return cls(
            number=pr.number,
            title=pr.title or "",
            author=pr.user.login if pr.user is not None else None,
            labels=frozenset(label.name for label in pr.labels),
            body=pr.body,
            changed_files=pr.changed_files or 0,
            files=tuple(FileChange.from_github(f) for f in files),
        )


def has_impact_label(pr: PullRequestDetail, markers: list[str]) -> bool:
    """Return True if any label contains any marker phrase, case-insensitively."""
    lowered = [m.lower() for m in markers if m]
    return any(marker in label.lower() for label in pr.labels for marker in lowered)


def filter_impact_set(prs: list[PullRequestDetail], markers: list[str]) -> list[PullRequestDetail]:
    """Return the PRs carrying an impact label, preserving their order."""
    return [pr for pr in prs if has_impact_label(pr, markers)]
