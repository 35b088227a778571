"""Single-slot cache of the last sanitized game, read by the code assistant.

Shared by every caller of the app it belongs to. It is not
scoped by user or session: whichever generation finished last wins, and
the assistant answers against that code.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class GenerationContextCache:
    def __init__(self) -> None:
        self._last_clean_code = ""

    def get(self) -> str:
        return self._last_clean_code

    def set(self, clean_code: str) -> None:
        """Overwrite the slot. Last writer wins."""
        self._last_clean_code = clean_code
        logger.debug(f"Generation context updated ({len(clean_code)} chars)")

    def clear(self) -> None:
        self._last_clean_code = ""
