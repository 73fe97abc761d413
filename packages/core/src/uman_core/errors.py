"""Exception hierarchy for uman-changelog.

Every fatal condition raised by uman_core derives from UmanChangelogError so
the CLI can turn any of them into a non-zero exit with a readable message,
while per-PR fetch failures (GithubException) are caught and absorbed inside
the orchestrator and never reach this layer.
"""

from __future__ import annotations


class UmanChangelogError(Exception):
    """Base class for all errors surfaced to the caller."""


class ConfigurationError(UmanChangelogError):
    """A credential, repository or release input is missing or invalid."""


class ReleaseNotFoundError(UmanChangelogError):
    """The release a mode depends on (draft or tagged) does not exist."""


class MalformedDocumentError(UmanChangelogError):
    """A START sentinel was found without a matching END sentinel after it."""


class ContextTooLargeError(UmanChangelogError):
    """The prompt exceeds the token ceiling even after dropping every diff."""

    def __init__(self, with_diffs_tokens: int, without_diffs_tokens: int, max_tokens: int):
        self.with_diffs_tokens = with_diffs_tokens
        self.without_diffs_tokens = without_diffs_tokens
        self.max_tokens = max_tokens
        super().__init__(
            f"Prompt exceeds the {max_tokens:,} token limit: "
            f"{with_diffs_tokens:,} tokens with diffs, {without_diffs_tokens:,} tokens without diffs."
        )
