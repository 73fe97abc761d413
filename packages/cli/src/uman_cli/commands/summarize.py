"""summarize command: write a client impact summary for a release."""

from __future__ import annotations

import click
from rich.console import Console

from uman_core.errors import ConfigurationError, UmanChangelogError
from uman_core.reconcile import SummaryResult, run_summary

console = Console()


def _report(result: SummaryResult) -> None:
    console.print(
        f"\n[bold]{result.release_tag}[/bold]"
        + (f" since {result.previous_tag}" if result.previous_tag else "")
        + f": {len(result.pull_refs)} PR(s), {len(result.impact_refs)} with client impact"
        + (f", {len(result.failed_refs)} could not be fetched" if result.failed_refs else "")
    )
    if result.tokens is not None:
        mode = "with diffs" if result.include_diffs else "without diffs"
        console.print(f"[dim]Prompt: {result.tokens:,} tokens ({mode}).[/dim]")


@click.command("summarize")
@click.option("--repo", default=None, help="GitHub repository in owner/name format. Defaults to $GITHUB_REPOSITORY.")
@click.option("--tag", default=None, help="Release tag to summarize. Defaults to the draft release.")
@click.option(
    "--model",
    type=click.Choice(["gemini", "anthropic", "openai"]),
    default=None,
    help="AI model provider. Overrides config file.",
)
@click.option(
    "--target",
    "target_kind",
    type=click.Choice(["release", "comment"]),
    default="release",
    show_default=True,
    help="Write the summary into the release body or a comment on --issue.",
)
@click.option("--issue", "issue_number", type=int, default=None, help="Issue or PR number for --target comment.")
@click.option("--dry-run", is_flag=True, help="Print the new document instead of writing it.")
@click.pass_context
def summarize_cmd(
    ctx,
    repo: str | None,
    tag: str | None,
    model: str | None,
    target_kind: str,
    issue_number: int | None,
    dry_run: bool,
):
    """Summarize the client-impact pull requests of a release.

    Compares the draft (or --tag) release with the previous published one,
    picks the merged pull requests carrying an impact label, and asks the
    model for a customer-facing summary.

    \b
    Required environment variables:
      GITHUB_TOKEN         GitHub token (or use gh CLI)
      GEMINI_API_KEY       Required when using --model gemini (default)
      ANTHROPIC_API_KEY    Required when using --model anthropic
      OPENAI_API_KEY       Required when using --model openai
    """
    from uman_cli.action_context import repo_from_env
    from uman_cli.auth import resolve_github_token
    from uman_cli.cli import _build_target
    from uman_core.config import load_config

    config_path = ctx.obj["config_path"] if ctx.obj else ".uman-changelog.yml"
    config = load_config(config_path, cli_overrides={"model": model})

    repo = repo or repo_from_env()
    if not repo:
        raise click.UsageError("No repository given. Pass --repo owner/name or set GITHUB_REPOSITORY.")
    if target_kind == "comment" and issue_number is None:
        raise click.UsageError("--target comment requires --issue <number>.")

    token = resolve_github_token()
    if not token:
        raise click.UsageError(
            "No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.\n"
            "Create a token at https://github.com/settings/tokens"
        )
    config["github_token"] = token

    def make_target(repo_obj, release):
        if target_kind == "comment":
            return _build_target("comment", None, dry_run=dry_run, repo=repo_obj, issue_number=issue_number)
        return _build_target("release", release, dry_run=dry_run)

    try:
        result = run_summary(repo=repo, config=config, make_target=make_target, tag=tag)
    except ConfigurationError as e:
        raise click.UsageError(str(e))
    except (UmanChangelogError, FileNotFoundError, ValueError) as e:
        raise click.ClickException(str(e))

    _report(result)
