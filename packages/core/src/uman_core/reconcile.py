"""Release reconciliation and changelog orchestration.

Both entry points are a straight line of steps with no retries. Everything
that can be decided locally (provider, prompt template, merge strategy) is
decided before the first GitHub call, and the document is written at most
once, after every other step has succeeded.

    run_summary:   current release → previous release → compare → PR refs
                   → PR details (fail-soft) → impact set → budgeted context
                   → summary → merge → persist if changed
    run_changelog: PR commits → table → merge → persist if changed
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

import requests
from github import GithubException
from rich.console import Console

from uman_core.commits import extract_pull_refs, render_changelog
from uman_core.config import load_prompt
from uman_core.errors import ConfigurationError, ReleaseNotFoundError
from uman_core.gh.repository import (
    compare_commits,
    fetch_pull_detail,
    find_draft_release,
    find_previous_release,
    find_release_by_tag,
    get_pull,
    get_repo,
    list_pull_commits,
    list_releases,
    release_ref,
)
from uman_core.models import PullRequestDetail, filter_impact_set
from uman_core.providers.anthropic import AnthropicSummarizer
from uman_core.providers.gemini import GeminiSummarizer
from uman_core.providers.openai import OpenAISummarizer
from uman_core.sections import DocumentMergeStrategy, ReplaceDelimitedSection, strategy_from_config
from uman_core.utils.context import DEFAULT_MAX_PROMPT_TOKENS, build_budgeted_context

console = Console()
logger = logging.getLogger(__name__)

_API_KEYS = {
    "gemini": ("gemini_api_key", "GEMINI_API_KEY"),
    "anthropic": ("anthropic_api_key", "ANTHROPIC_API_KEY"),
    "openai": ("openai_api_key", "OPENAI_API_KEY"),
}


@dataclass
class SummaryResult:
    """What run_summary decided, for the CLI to report on."""

    repo: str
    release_tag: str
    previous_tag: str | None = None
    pull_refs: list[int] = field(default_factory=list)
    failed_refs: list[int] = field(default_factory=list)
    impact_refs: list[int] = field(default_factory=list)
    include_diffs: bool | None = None
    tokens: int | None = None
    summary: str | None = None
    written: bool = False


@dataclass
class ChangelogResult:
    repo: str
    pr_number: int
    rows: int
    written: bool = False


def get_summarizer(config: dict):
    model = config["model"]
    if model not in _API_KEYS:
        raise ValueError(f"Unknown model provider: {model!r}. Choose 'gemini', 'anthropic' or 'openai'.")
    key_name, env_var = _API_KEYS[model]
    if not config.get(key_name):
        raise ConfigurationError(f"{env_var} environment variable is not set.")
    if model == "gemini":
        return GeminiSummarizer(api_key=config[key_name])
    if model == "anthropic":
        return AnthropicSummarizer(api_key=config[key_name])
    return OpenAISummarizer(api_key=config[key_name])


def render_prompt(template: str, context: str) -> str:
    # str.replace rather than str.format: custom templates may contain braces.
    return template.replace("{context}", context)


def persist_if_changed(target, strategy: DocumentMergeStrategy, block: str) -> bool:
    """Merge ``block`` into the target's document; write only if the text changed.

    Returns True when a write was issued.
    """
    body = target.read()
    merged = strategy.merge(body, block)
    if merged == body:
        console.print(f"[yellow]{target.describe()} is already up to date. Nothing to write.[/yellow]")
        return False
    target.write(merged)
    console.print(f"[green]Updated {target.describe()}.[/green]")
    return True


def resolve_releases(repo_obj, tag: str | None = None):
    """Return (current, previous) releases; previous may be None."""
    releases = list_releases(repo_obj)
    if tag:
        current = find_release_by_tag(releases, tag)
        if current is None:
            raise ReleaseNotFoundError(f"No release with tag {tag!r} found.")
    else:
        current = find_draft_release(releases)
        if current is None:
            raise ReleaseNotFoundError("No draft release found. Create a draft release or pass --tag.")
    return current, find_previous_release(releases, current)


def collect_pull_details(repo_obj, refs: list[int]) -> tuple[list[PullRequestDetail], list[int]]:
    """Fetch each referenced PR in order. A failed fetch skips that PR only.

    PyGithub raises GithubException for API errors but lets transport errors
    from requests through unwrapped, so both are caught.
    """
    details: list[PullRequestDetail] = []
    failed: list[int] = []
    for i, number in enumerate(refs, 1):
        console.print(f"[dim][[{i}/{len(refs)}]] Fetching PR #{number}[/dim]")
        try:
            details.append(fetch_pull_detail(repo_obj, number))
        except (GithubException, requests.exceptions.RequestException) as e:
            logger.warning("Could not fetch PR #%d, skipping it: %s", number, e)
            failed.append(number)
    return details, failed


def run_summary(
    repo: str,
    config: dict,
    make_target: Callable,
    tag: str | None = None,
    repo_obj=None,
    summarizer=None,
) -> SummaryResult:
    """Summarize the client-impact PRs of a release and merge the summary into a document.

    ``make_target`` receives the repository and the current release and
    returns the document target to merge into (the release body, a tracking
    comment, or a dry run).
    """
    summarizer = summarizer if summarizer is not None else get_summarizer(config)
    template = load_prompt(config)
    strategy = strategy_from_config(config)
    markers = config.get("impact_labels") or []
    max_tokens = config.get("max_prompt_tokens", DEFAULT_MAX_PROMPT_TOKENS)

    this_repo = repo_obj if repo_obj is not None else get_repo(repo, token=config["github_token"])

    current, previous = resolve_releases(this_repo, tag)
    result = SummaryResult(repo=repo, release_tag=current.tag_name)

    if previous is None:
        console.print("[yellow]No previous published release found. Nothing to summarize.[/yellow]")
        return result
    result.previous_tag = previous.tag_name

    base, head = release_ref(previous), release_ref(current)
    commits = compare_commits(this_repo, base, head)
    console.print(f"[cyan]Comparing {base}...{head}: {len(commits)} commit(s)[/cyan]")

    result.pull_refs = extract_pull_refs(
        commits,
        style=config.get("reference_style", "merge"),
        excluded_branch=config.get("excluded_branch", "development"),
    )
    if not result.pull_refs:
        console.print("[yellow]No pull requests found between the releases.[/yellow]")
        return result

    details, result.failed_refs = collect_pull_details(this_repo, result.pull_refs)
    impact_set = filter_impact_set(details, markers)
    result.impact_refs = [pr.number for pr in impact_set]
    if not impact_set:
        console.print(
            f"[yellow]None of {len(details)} pull request(s) carry an impact label "
            f"({', '.join(markers)}). Nothing to summarize.[/yellow]"
        )
        return result

    console.print(f"[cyan]{len(impact_set)} pull request(s) with client impact.[/cyan]")
    context = build_budgeted_context(
        impact_set,
        count_tokens=summarizer.count_tokens,
        max_tokens=max_tokens,
        render=lambda text: render_prompt(template, text),
    )
    result.include_diffs = context.include_diffs
    result.tokens = context.tokens
    if not context.include_diffs:
        console.print(
            f"[yellow]Diffs dropped: {context.with_diffs_tokens:,} tokens is over the "
            f"{max_tokens:,} limit ({context.tokens:,} without diffs).[/yellow]"
        )

    result.summary = summarizer.summarize(context.text)
    result.written = persist_if_changed(make_target(this_repo, current), strategy, result.summary)
    return result


def run_changelog(
    repo: str,
    pr_number: int,
    config: dict,
    make_target: Callable,
    prerelease: bool = False,
    repo_obj=None,
) -> ChangelogResult:
    """Keep the commit (or merged-PR) table in a pull request description current.

    ``make_target`` receives the pull request and returns the document target.
    """
    this_repo = repo_obj if repo_obj is not None else get_repo(repo, token=config["github_token"])

    try:
        this_pr = get_pull(this_repo, pr_number)
    except GithubException:
        raise ConfigurationError(f"PR #{pr_number} not found in {repo}.")

    commits = list_pull_commits(this_pr)
    block = render_changelog(
        commits,
        prerelease=prerelease,
        excluded_branch=config.get("excluded_branch", "development"),
    )
    # Title and two header lines precede the rows.
    rows = len([line for line in block.split("\n")[3:] if line])
    console.print(f"[cyan]PR #{pr_number}: {len(commits)} commit(s), {rows} table row(s).[/cyan]")

    written = persist_if_changed(make_target(this_pr), ReplaceDelimitedSection(), block)
    return ChangelogResult(repo=repo, pr_number=pr_number, rows=rows, written=written)
