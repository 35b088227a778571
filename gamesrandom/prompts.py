"""Prompt store: one system prompt per game library, plus the assistant template.

Read once while the app is being built. Any missing or unreadable file
raises StartupResourceMissing so the service never starts half-configured.
The store is frozen afterwards and shared by every request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping

from gamesrandom.errors import StartupResourceMissing

if TYPE_CHECKING:
    from pathlib import Path

    from gamesrandom.config import AppConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PromptStore:
    library_prompts: Mapping[str, str]
    assistant_template: str
    default_library: str

    def resolve(self, library: str | None) -> str:
        """Return the configured key for a library, or the default library.

        Unknown or missing keys fall back to the default.
        """
        key = (library or "").lower()
        if key in self.library_prompts:
            return key
        if library:
            logger.warning(f"Unknown library '{library}', using '{self.default_library}'")
        return self.default_library

    def system_prompt_for(self, library: str | None) -> str:
        return self.library_prompts[self.resolve(library)]

    def libraries(self) -> list[str]:
        return sorted(self.library_prompts)


def _read_resource(path: Path) -> str:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise StartupResourceMissing(f"Cannot read prompt file {path}: {e}") from e
    if not text.strip():
        raise StartupResourceMissing(f"Prompt file {path} is empty")
    return text


def load_prompts(config: AppConfig) -> PromptStore:
    """Read every configured prompt file into an immutable PromptStore."""
    prompts: dict[str, str] = {}
    for library, file in config.libraries.items():
        path = config.resolve_path(file)
        prompts[library] = _read_resource(path)
        logger.info(f"Loaded {library} prompt ({len(prompts[library])} chars) from {path}")

    assistant_path = config.resolve_path(config.assistant_prompt)
    assistant_template = _read_resource(assistant_path)
    logger.info(
        f"Loaded assistant template ({len(assistant_template)} chars) from {assistant_path}"
    )

    return PromptStore(
        library_prompts=MappingProxyType(prompts),
        assistant_template=assistant_template,
        default_library=config.default_library,
    )
