"""Markdown cleanup for raw model output.

The model is told to answer with bare code but regularly wraps it in
markdown anyway. The passes below run in a fixed order; later patterns
assume the earlier ones already ran.
"""

from __future__ import annotations

import re

_FENCE_OPEN = re.compile(r"```(?:javascript|js|typescript|ts)?[ \t]*\n?", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"[ \t]*```")
_BOLD = re.compile(r"\*\*([^*]+)\*\*")
_HORIZONTAL_RULE = re.compile(r"^-{3,}[ \t]*(?:\n|$)", re.MULTILINE)
_HEADING = re.compile(r"^#+[ \t]*", re.MULTILINE)
_EXTRA_NEWLINES = re.compile(r"\n{3,}")


def _sanitize_once(text: str) -> str:
    text = _FENCE_OPEN.sub("", text)
    text = _FENCE_CLOSE.sub("", text)
    text = _BOLD.sub(r"\1", text)
    text = _HORIZONTAL_RULE.sub("", text)
    text = _HEADING.sub("", text)
    text = _EXTRA_NEWLINES.sub("\n\n", text)
    return text.strip()


def sanitize(raw_text: str) -> str:
    """Strip markdown artifacts from a model response.

    Removes code fences (keeping their contents), bold markers, horizontal
    rules and heading markers, collapses runs of blank lines and trims the
    result. Every pass only deletes characters, so repeating the pipeline
    until nothing changes terminates and makes the function idempotent.
    """
    if not raw_text:
        return ""

    current = raw_text
    while True:
        cleaned = _sanitize_once(current)
        if cleaned == current:
            return cleaned
        current = cleaned
