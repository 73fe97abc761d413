import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "model": "gemini",
    "impact_labels": ["client impact"],  # case-insensitive substrings matched against PR labels
    "max_prompt_tokens": 1_000_000,
    "reference_style": "merge",  # "merge" = "Merge pull request #N", "inline" = squash "(#N)"
    "excluded_branch": "development",  # merges from/into this branch are housekeeping
    "summary_strategy": "prepend",  # "prepend" = <details> region on top, "replace" = sentinel section
    "summary_title": "Client impact summary",
    "replace_existing_summary": False,  # prepend mode: replace our previous region instead of stacking
    "prompt": None,  # None = use built-in prompt; set to a path string to override
}

BUILTIN_PROMPTS_DIR = Path(__file__).parent / "prompts"
_BUILTIN_PROMPT = BUILTIN_PROMPTS_DIR / "impact_summary.md"


def load_config(config_path: str = ".uman-changelog.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .uman-changelog.yml in the current directory
      3. CLI argument overrides
    """
    config = {**DEFAULT_CONFIG, "impact_labels": list(DEFAULT_CONFIG["impact_labels"])}

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    if isinstance(config["impact_labels"], str):
        config["impact_labels"] = [config["impact_labels"]]

    # Resolve credentials from environment variables
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["gemini_api_key"] = os.environ.get("GEMINI_API_KEY")
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")

    return config


def load_prompt(config: dict) -> str:
    """
    Load the impact summary prompt template.

    If ``prompt`` is set in config, loads from that path (relative to cwd).
    Otherwise falls back to the built-in template. The template must contain
    a ``{context}`` placeholder where the pull request context is inserted.
    """
    custom_path = config.get("prompt")
    if custom_path:
        p = Path(custom_path)
        if not p.exists():
            raise FileNotFoundError(f"Prompt file not found: {custom_path}")
        return p.read_text()

    if _BUILTIN_PROMPT.exists():
        return _BUILTIN_PROMPT.read_text()

    raise FileNotFoundError("No prompt configured and built-in default is missing.")
