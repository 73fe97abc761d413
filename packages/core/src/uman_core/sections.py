"""Merging machine-generated blocks into human-edited documents.

A release body or PR description belongs to people; uman-changelog only owns
the region it marks. Two strategies exist and callers choose one explicitly:

ReplaceDelimitedSection
    Keeps exactly one region bounded by the START/END sentinel comments and
    rewrites it in place. Applying the same block twice is a no-op.

PrependNewRegion
    Puts a collapsible ``<details>`` region at the top of the body. By default
    every run adds a new region, so earlier summaries stay visible as history.
    With ``replace_existing=True`` a leading region with the same summary
    title is replaced instead, which makes repeated runs converge.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod

from uman_core.errors import MalformedDocumentError

START_LINE = "<!-- START uman-changelog -->"
END_LINE = "<!-- END uman-changelog -->"

# Matched as a prefix anywhere on the line so sentinels survive editors that
# add whitespace or trailing text around the comment.
_START_RE = re.compile(re.escape("<!-- START uman-changelog "))
_END_RE = re.compile(re.escape("<!-- END uman-changelog "))

DEFAULT_SUMMARY_TITLE = "Client impact summary"

# Closes a prepended summary region. Generated summaries may carry their own
# <details> blocks, so the region end is found by this marker, not </details>.
REGION_END_MARKER = "<!-- end uman-changelog summary -->"


def find_section(lines: list[str]) -> tuple[int | None, int | None]:
    """Return (start, end) line indexes of the sentinel region.

    ``end`` is the first END sentinel *after* start; an END that only appears
    before START does not close the region.
    """
    start = next((i for i, line in enumerate(lines) if _START_RE.search(line)), None)
    if start is None:
        return None, None
    end = next((i for i in range(start + 1, len(lines)) if _END_RE.search(lines[i])), None)
    return start, end


def merge_section(body: str | None, block: str) -> str:
    """Replace the sentinel region of ``body`` with ``block``, or append one.

    The sentinel lines are re-emitted in their canonical form; everything
    before START and after END is preserved byte for byte.
    """
    if _START_RE.search(block) or _END_RE.search(block):
        raise ValueError("Rendered block must not contain uman-changelog sentinel lines.")

    body = body or ""
    lines = body.split("\n")
    start, end = find_section(lines)

    if start is None:
        return f"{body}\n{START_LINE}\n{block}\n{END_LINE}"
    if end is None:
        raise MalformedDocumentError(
            f"Found '{START_LINE}' on line {start + 1} but no '{END_LINE}' after it. "
            "Fix the document by hand; it will not be rewritten automatically."
        )

    merged = lines[:start] + [START_LINE, block, END_LINE] + lines[end + 1 :]
    return "\n".join(merged)


def details_region(title: str, block: str) -> str:
    return f"<details><summary>{title}</summary>\n\n{block}\n\n{REGION_END_MARKER}\n</details>"


class DocumentMergeStrategy(ABC):
    """How a rendered block is combined with an existing document body."""

    @abstractmethod
    def merge(self, body: str | None, block: str) -> str:
        """Return the new document body. Must not mutate anything."""


class ReplaceDelimitedSection(DocumentMergeStrategy):
    def merge(self, body: str | None, block: str) -> str:
        return merge_section(body, block)


class PrependNewRegion(DocumentMergeStrategy):
    def __init__(self, title: str = DEFAULT_SUMMARY_TITLE, replace_existing: bool = False):
        self.title = title
        self.replace_existing = replace_existing
        # Leading region emitted by an earlier run, plus the blank-line separator.
        self._leading_re = re.compile(
            rf"\A<details><summary>{re.escape(title)}</summary>\n.*?"
            rf"\n{re.escape(REGION_END_MARKER)}\n</details>(?:\n\n)?",
            re.DOTALL,
        )

    def merge(self, body: str | None, block: str) -> str:
        if REGION_END_MARKER in block:
            raise ValueError("Summary block must not contain the region end marker.")
        body = body or ""
        if self.replace_existing:
            body = self._leading_re.sub("", body, count=1)
        region = details_region(self.title, block)
        return f"{region}\n\n{body}" if body else region


def strategy_from_config(config: dict) -> DocumentMergeStrategy:
    """Build the summary merge strategy named by ``summary_strategy``."""
    name = config.get("summary_strategy", "prepend")
    if name == "replace":
        return ReplaceDelimitedSection()
    if name == "prepend":
        return PrependNewRegion(
            title=config.get("summary_title") or DEFAULT_SUMMARY_TITLE,
            replace_existing=bool(config.get("replace_existing_summary", False)),
        )
    raise ValueError(f"Unknown summary strategy: {name!r}. Choose 'replace' or 'prepend'.")
