"""init command: write a starter config and GitHub Actions workflow.

Runs once per repository: records the model provider and impact label in
.uman-changelog.yml and generates a workflow that keeps PR changelog tables
current and summarizes the draft release when dispatched manually.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

import click
import yaml
from rich.console import Console

console = Console()

_API_KEY_ENV = {
    "gemini": "GEMINI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
}

_WORKFLOW_TEMPLATE = """\
name: uman-changelog

on:
  pull_request:
    types: [opened, synchronize, reopened]
  workflow_dispatch:

jobs:
  changelog:
    if: github.event_name == 'pull_request'
    runs-on: ubuntu-latest
    permissions:
      contents: read
      pull-requests: write

    steps:
      - name: Set up Python
        uses: actions/setup-python@v5
        with:
          python-version: "3.12"

      - name: Install uman-changelog
        run: pip install "uman-changelog[{provider}]=={version}"

      - name: Update PR changelog
        env:
          GITHUB_TOKEN: ${{{{ secrets.GITHUB_TOKEN }}}}
        run: uman-changelog changelog {prerelease_flag}

  summarize:
    if: github.event_name == 'workflow_dispatch'
    runs-on: ubuntu-latest
    permissions:
      contents: write
      pull-requests: read

    steps:
      - name: Set up Python
        uses: actions/setup-python@v5
        with:
          python-version: "3.12"

      - name: Install uman-changelog
        run: pip install "uman-changelog[{provider}]=={version}"

      - name: Summarize draft release
        env:
          GITHUB_TOKEN: ${{{{ secrets.GITHUB_TOKEN }}}}
          {api_key_env}: ${{{{ secrets.{api_key_env} }}}}
        run: uman-changelog summarize
"""


@click.command("init")
@click.option("--repo", default=None, help="GitHub repository (owner/name). Auto-detected from git remote.")
def init_cmd(repo: str | None):
    """Set up uman-changelog for a repository.

    Creates .uman-changelog.yml and optionally a GitHub Actions workflow.
    """
    console.print("\n[bold cyan]uman-changelog init[/bold cyan]\n")

    if repo is None:
        repo = _detect_repo_from_git()
        if repo:
            console.print(f"[dim]Detected repository: {repo}[/dim]")
        else:
            repo = click.prompt("GitHub repository (owner/name)")

    provider = click.prompt(
        "AI provider",
        type=click.Choice(list(_API_KEY_ENV)),
        default="gemini",
    )
    label = click.prompt("Label marking client-impacting pull requests", default="client impact")

    console.print("\nWhere should the summary go in the release notes?")
    console.print("  [bold]prepend[/bold]  collapsible region at the top (default)")
    console.print("  [bold]replace[/bold]  section between uman-changelog markers, rewritten each run")
    strategy = click.prompt("Summary placement", type=click.Choice(["prepend", "replace"]), default="prepend")

    config: dict = {"model": provider, "impact_labels": [label], "summary_strategy": strategy}
    _write_config(config)
    console.print("[green]Created .uman-changelog.yml[/green]")

    setup_ci = click.confirm("\nGenerate .github/workflows/uman-changelog.yml for GitHub Actions?", default=True)
    if setup_ci:
        prerelease = click.confirm("Is this repository's PR changelog for release PRs (list merged PRs)?", default=False)
        _write_workflow(provider, _API_KEY_ENV[provider], prerelease)
        console.print("[green]Created .github/workflows/uman-changelog.yml[/green]")
        console.print(
            f"\n[yellow]Remember to add [bold]{_API_KEY_ENV[provider]}[/bold] to your "
            "GitHub repository secrets (Settings → Secrets → Actions).[/yellow]"
        )

    console.print("\n[bold green]Setup complete![/bold green]")
    console.print(f"Summarize the draft release with: [bold]uman-changelog summarize --repo {repo}[/bold]")


def _detect_repo_from_git() -> str | None:
    """Try to detect the GitHub repo slug from the git remote URL."""
    try:
        result = subprocess.run(
            ["git", "remote", "get-url", "origin"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode != 0:
            return None
        url = result.stdout.strip()
        # https://github.com/owner/repo.git  →  owner/repo
        # git@github.com:owner/repo.git      →  owner/repo
        if "github.com" not in url:
            return None
        slug = url.split("github.com")[-1].lstrip("/:").removesuffix(".git")
        return slug if "/" in slug else None
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None


def _write_config(config: dict) -> None:
    """Write or update .uman-changelog.yml, preserving any existing keys."""
    path = Path(".uman-changelog.yml")
    existing: dict = {}
    if path.exists():
        existing = yaml.safe_load(path.read_text()) or {}
    existing.update(config)
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))


def _get_version() -> str:
    """Read the current uman-changelog version from the installed package metadata."""
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version("uman-changelog")
    except PackageNotFoundError:
        return "0.1.0"


def _write_workflow(provider: str, api_key_env: str, prerelease: bool) -> None:
    workflow_dir = Path(".github/workflows")
    workflow_dir.mkdir(parents=True, exist_ok=True)
    workflow_path = workflow_dir / "uman-changelog.yml"
    workflow_path.write_text(
        _WORKFLOW_TEMPLATE.format(
            provider=provider,
            api_key_env=api_key_env,
            version=_get_version(),
            prerelease_flag="--prerelease" if prerelease else "",
        )
    )
