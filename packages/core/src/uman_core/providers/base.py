"""Base summarizer implementing the Template Method pattern.

All providers share the same contract:
    count_tokens(prompt) → int     ← used by the context budget
    summarize(prompt)    → _call_api() → _clean()

Subclasses implement two things only:
  - _call_api: make one raw generation call and return the text response
  - _count_tokens: measure a prompt in the provider's own tokens

There is no retry layer. A failed call raises straight through to the
orchestrator, which aborts the run before anything is written back to GitHub.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)

_MAX_TOKENS = 4096


class BaseSummarizer(ABC):
    MODEL: str = ""
    MAX_TOKENS: int = _MAX_TOKENS

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def count_tokens(self, prompt: str) -> int:
        tokens = self._count_tokens(prompt)
        logger.debug("%s counted %d tokens", self.__class__.__name__, tokens)
        return tokens

    def summarize(self, prompt: str) -> str:
        """Generate the summary text for a fully rendered prompt."""
        raw = self._call_api(prompt)
        summary = self._clean(raw or "")
        if not summary:
            raise ValueError(f"{self.__class__.__name__} returned an empty summary.")
        return summary

    # ------------------------------------------------------------------ #
    # Abstract: implement in each provider                                #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _call_api(self, prompt: str) -> str:
        """Make a single generation call and return the raw text response."""

    @abstractmethod
    def _count_tokens(self, prompt: str) -> int:
        """Return the number of input tokens ``prompt`` costs for this model."""

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    def _clean(self, raw: str) -> str:
        """Strip the outer ```markdown fence models like to wrap answers in."""
        cleaned = re.sub(r"^```(?:markdown|md)?\s*", "", raw.strip())
        cleaned = re.sub(r"\s*```$", "", cleaned.strip())
        return cleaned.strip()
