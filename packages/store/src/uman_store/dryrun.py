"""Dry-run target: reads from a real target, prints instead of writing.

Lets a user see exactly what would be written without touching GitHub.
Wrapping another target rather than returning a fixed body means the merge
still runs against the live document, so sentinel errors surface in a dry
run just as they would for real.
"""

from __future__ import annotations

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel

from uman_store.base import DocumentTarget

console = Console()


class DryRunTarget(DocumentTarget):
    def __init__(self, inner: DocumentTarget):
        self._inner = inner
        self.written: list[str] = []

    def read(self) -> str:
        return self._inner.read()

    def write(self, body: str) -> None:
        self.written.append(body)
        console.print(Panel(Markdown(body), title=f"Dry run: new body for {self._inner.describe()}"))

    def describe(self) -> str:
        return f"{self._inner.describe()} (dry run)"
