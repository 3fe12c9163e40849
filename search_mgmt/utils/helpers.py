"""Shared helper functions used by the walkthrough, CLI and HTTP app.

Centralises JSON rendering of management payloads and the random
sample-service name used by the walkthrough.
"""

from __future__ import annotations

import json
import random
import sys
from typing import TYPE_CHECKING, Any, TextIO

from search_mgmt.core.constants import SAMPLE_SERVICE_PREFIX

if TYPE_CHECKING:
    from search_mgmt.activities.walkthrough import WalkthroughStep

SEPARATOR = "-" * 60


def to_jsonable(payload: Any) -> Any:
    """Convert models (anything with ``to_dict``) and containers to plain JSON types."""
    if hasattr(payload, "to_dict"):
        return payload.to_dict()
    if isinstance(payload, dict):
        return {str(k): to_jsonable(v) for k, v in payload.items()}
    if isinstance(payload, (list, tuple)):
        return [to_jsonable(item) for item in payload]
    return payload


def format_json(payload: Any) -> str:
    """Pretty-print *payload* as indented JSON.

    Values that are not JSON serialisable fall back to ``str()``.
    """
    return json.dumps(to_jsonable(payload), indent=2, sort_keys=True, default=str)


def sample_service_name(rng: random.Random | None = None) -> str:
    """Return a random walkthrough service name such as ``sample48213``."""
    rng = rng or random.Random()
    return f"{SAMPLE_SERVICE_PREFIX}{rng.randint(1, 1_000_000)}"


class ConsoleReporter:
    """Walkthrough reporter that prints each step between separator lines.

    Args:
        stream: Output stream (defaults to ``sys.stdout``).
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def __call__(self, step: WalkthroughStep) -> None:
        out = self._stream or sys.stdout
        print(step.title, file=out)
        if step.request:
            print(step.request, file=out)
        print(SEPARATOR, file=out)
        if step.error:
            print(f"ERROR: {step.error}", file=out)
        elif step.skipped:
            print(f"SKIPPED: {step.note}", file=out)
        elif step.payload is not None:
            print(format_json(step.payload), file=out)
        print(SEPARATOR, file=out)
        print(file=out)
