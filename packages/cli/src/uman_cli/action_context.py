"""Defaults taken from the GitHub Actions runner environment.

Inside a workflow, the repository and the triggering pull request are already
known; reading them here lets the workflow step run without repeating
``--repo`` and ``--pr``. Outside Actions both helpers return None.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


def repo_from_env() -> str | None:
    return os.environ.get("GITHUB_REPOSITORY") or None


def _load_event() -> dict:
    event_path = os.environ.get("GITHUB_EVENT_PATH")
    if not event_path or not Path(event_path).exists():
        return {}
    try:
        return json.loads(Path(event_path).read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as e:
        logger.warning("Could not parse GitHub event payload at %s: %s", event_path, e)
        return {}


def pr_number_from_event() -> int | None:
    """Return the pull request number of a ``pull_request`` event payload."""
    event = _load_event()
    pr = event.get("pull_request") or {}
    number = pr.get("number", event.get("number"))
    return number if isinstance(number, int) else None
