"""Abstract document target interface.

A target is the one place a run reads its document body from and, at most
once, writes the merged body back to. The orchestrator depends on
DocumentTarget, not on a concrete GitHub object, so the persist step can
be swapped for a dry run or a mock in tests without touching core code.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class DocumentTarget(ABC):
    """A mutable Markdown document owned by people and partly managed by uman-changelog.

    Implementations must treat a missing body as the empty string and must
    not cache writes: every write() call is one external update.
    """

    @abstractmethod
    def read(self) -> str:
        """Return the current document body ("" when the document has none)."""

    @abstractmethod
    def write(self, body: str) -> None:
        """Replace the document body. Failures propagate to the caller."""

    @abstractmethod
    def describe(self) -> str:
        """Short human-readable name used in console output, e.g. ``PR #12``."""
