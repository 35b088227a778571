"""
Pytest configuration and shared fixtures.

No test talks to the network: the model is replaced by the stubs in
helpers.py and every config points at a temporary directory.

Usage:
    pytest tests/ -v
"""

import pytest

from gamesrandom.config import AppConfig
from gamesrandom.context_cache import GenerationContextCache
from gamesrandom.prompts import load_prompts

from helpers import ASSISTANT_PROMPT, P5JS_PROMPT, PHASER_PROMPT


@pytest.fixture
def prompt_dir(tmp_path):
    """Directory holding the three prompt files."""
    directory = tmp_path / "prompts"
    directory.mkdir()
    (directory / "p5js.txt").write_text(P5JS_PROMPT)
    (directory / "phaser.txt").write_text(PHASER_PROMPT)
    (directory / "assistant.txt").write_text(ASSISTANT_PROMPT)
    return directory


@pytest.fixture
def app_config(tmp_path, prompt_dir):
    return AppConfig(
        libraries={"p5js": "prompts/p5js.txt", "phaser": "prompts/phaser.txt"},
        assistant_prompt="prompts/assistant.txt",
        database_path="games.db",
        base_dir=str(tmp_path),
    )


@pytest.fixture
def prompts(app_config):
    return load_prompts(app_config)


@pytest.fixture
def context():
    return GenerationContextCache()
