from __future__ import annotations

from github import Github

from uman_core.models import CommitRecord, PullRequestDetail


def get_repo(repo_name: str, token: str):
    return Github(token).get_repo(repo_name)


def get_pull(repo, pr_number: int):
    return repo.get_pull(pr_number)


def list_releases(repo) -> list:
    """Return every release; PyGithub pages through the list lazily."""
    return list(repo.get_releases())


def find_draft_release(releases: list):
    return next((r for r in releases if r.draft), None)


def find_release_by_tag(releases: list, tag: str):
    return next((r for r in releases if r.tag_name == tag), None)


def _release_date(release):
    return release.published_at or release.created_at


def find_previous_release(releases: list, current):
    """Return the most recent published release other than ``current``, or None.

    A published ``current`` (picked by tag) only looks at releases published
    before it, so summarizing an older tag never compares backwards.
    """
    candidates = [r for r in releases if not r.draft and r.id != current.id]
    if not current.draft:
        candidates = [r for r in candidates if _release_date(r) < _release_date(current)]
    if not candidates:
        return None
    return max(candidates, key=_release_date)


def release_ref(release) -> str:
    """Git ref a release points at.

    A draft's tag usually does not exist yet, so compare against the branch
    or commit it will be cut from instead.
    """
    if release.draft:
        return release.target_commitish
    return release.tag_name


def compare_commits(repo, base: str, head: str) -> list[CommitRecord]:
    """Return the commits reachable from head but not base, oldest first."""
    comparison = repo.compare(base, head)
    return [CommitRecord.from_github(c) for c in comparison.commits]


def list_pull_commits(pr) -> list[CommitRecord]:
    return [CommitRecord.from_github(c) for c in pr.get_commits()]


def fetch_pull_detail(repo, pr_number: int) -> PullRequestDetail:
    """Fetch a PR and its changed files as a snapshot."""
    pr = get_pull(repo, pr_number)
    return PullRequestDetail.from_github(pr, files=list(pr.get_files()))
