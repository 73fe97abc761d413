"""changelog command: keep the commit table in a PR description up to date."""

from __future__ import annotations

import click
from rich.console import Console

from uman_core.errors import ConfigurationError, UmanChangelogError
from uman_core.reconcile import run_changelog

console = Console()


@click.command("changelog")
@click.option("--repo", default=None, help="GitHub repository in owner/name format. Defaults to $GITHUB_REPOSITORY.")
@click.option(
    "--pr",
    "pr_number",
    type=int,
    default=None,
    help="Pull request number. Defaults to the PR of the triggering GitHub Actions event.",
)
@click.option(
    "--prerelease",
    is_flag=True,
    envvar="INPUT_IS_PRERELEASE",
    help="List merged pull requests (release PR) instead of individual commits.",
)
@click.option("--dry-run", is_flag=True, help="Print the new description instead of writing it.")
@click.pass_context
def changelog_cmd(ctx, repo: str | None, pr_number: int | None, prerelease: bool, dry_run: bool):
    """Maintain a changelog table inside a pull request description.

    The table lives between <!-- START uman-changelog --> and
    <!-- END uman-changelog --> and is rewritten on every run; the rest of
    the description is never touched. When nothing changed, no update is sent.
    """
    from uman_cli.action_context import pr_number_from_event, repo_from_env
    from uman_cli.auth import resolve_github_token
    from uman_cli.cli import _build_target
    from uman_core.config import load_config

    config_path = ctx.obj["config_path"] if ctx.obj else ".uman-changelog.yml"
    config = load_config(config_path)

    repo = repo or repo_from_env()
    if not repo:
        raise click.UsageError("No repository given. Pass --repo owner/name or set GITHUB_REPOSITORY.")
    pr_number = pr_number if pr_number is not None else pr_number_from_event()
    if pr_number is None:
        raise click.UsageError("No pull request given. Pass --pr or run from a pull_request event.")

    token = resolve_github_token()
    if not token:
        raise click.UsageError(
            "No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.\n"
            "Create a token at https://github.com/settings/tokens"
        )
    config["github_token"] = token

    try:
        result = run_changelog(
            repo=repo,
            pr_number=pr_number,
            config=config,
            make_target=lambda pr: _build_target("pr", pr, dry_run=dry_run),
            prerelease=prerelease,
        )
    except ConfigurationError as e:
        raise click.UsageError(str(e))
    except UmanChangelogError as e:
        raise click.ClickException(str(e))

    state = "updated" if result.written else "unchanged"
    console.print(f"[bold]PR #{result.pr_number}[/bold]: {result.rows} row(s), description {state}.")
