"""CLI entry point for uman-changelog.

Commands:
  summarize   summarize client-impact PRs of a release into its notes
  changelog   maintain the commit table inside a pull request description
  init        write a starter config and GitHub Actions workflow
"""

from __future__ import annotations

import importlib.metadata
import logging

import click

from uman_cli.commands.changelog import changelog_cmd
from uman_cli.commands.init import init_cmd
from uman_cli.commands.summarize import summarize_cmd


def _build_target(kind: str, obj, dry_run: bool = False, repo=None, issue_number: int | None = None):
    """Instantiate the document target a command writes to.

    Target selection:
      kind: release → ReleaseBodyTarget   (the release body itself)
      kind: pr      → PullRequestBodyTarget
      kind: comment → IssueCommentTarget  (requires repo and issue_number)
      dry_run       → any of the above wrapped in DryRunTarget

    This factory lives in cli.py so neither uman_core nor uman_store
    know about CLI options.
    """
    from uman_store.dryrun import DryRunTarget
    from uman_store.github import IssueCommentTarget, PullRequestBodyTarget, ReleaseBodyTarget

    if kind == "release":
        target = ReleaseBodyTarget(obj)
    elif kind == "pr":
        target = PullRequestBodyTarget(obj)
    elif kind == "comment":
        if repo is None or issue_number is None:
            raise click.UsageError("--target comment requires --issue <number>.")
        target = IssueCommentTarget(repo.get_issue(issue_number))
    else:
        raise click.UsageError(f"Unknown target: {kind!r}")

    return DryRunTarget(target) if dry_run else target


@click.group()
@click.version_option(
    version=importlib.metadata.version("uman-changelog"),
    prog_name="uman-changelog",
)
@click.option(
    "--config",
    "config_path",
    default=".uman-changelog.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="UMAN_CHANGELOG_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Release impact summaries and PR changelog tables for GitHub."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


main.add_command(summarize_cmd)
main.add_command(changelog_cmd)
main.add_command(init_cmd)
