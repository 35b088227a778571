"""Prompt loading at startup and config validation."""

import pytest
from pydantic import ValidationError

from gamesrandom.config import AppConfig, get_config, load_config
from gamesrandom.errors import StartupResourceMissing
from gamesrandom.prompts import load_prompts

from helpers import ASSISTANT_PROMPT, P5JS_PROMPT, PHASER_PROMPT


def test_loads_every_prompt(prompts):
    assert prompts.libraries() == ["p5js", "phaser"]
    assert prompts.system_prompt_for("p5js") == P5JS_PROMPT
    assert prompts.system_prompt_for("phaser") == PHASER_PROMPT
    assert prompts.assistant_template == ASSISTANT_PROMPT


def test_library_lookup_is_case_insensitive(prompts):
    assert prompts.system_prompt_for("PHASER") == PHASER_PROMPT


@pytest.mark.parametrize("library", [None, "", "unity"])
def test_unknown_library_falls_back_to_default_prompt(prompts, library):
    assert prompts.system_prompt_for(library) == P5JS_PROMPT


def test_resolve_returns_configured_key_or_default(prompts, caplog):
    assert prompts.resolve("PHASER") == "phaser"
    assert prompts.resolve(None) == "p5js"
    assert not caplog.records

    assert prompts.resolve("unity") == "p5js"
    assert "Unknown library 'unity'" in caplog.text


def test_prompt_store_is_read_only(prompts):
    with pytest.raises(TypeError):
        prompts.library_prompts["p5js"] = "changed"


def test_missing_prompt_file_fails_startup(app_config, prompt_dir):
    (prompt_dir / "phaser.txt").unlink()
    with pytest.raises(StartupResourceMissing, match="phaser.txt"):
        load_prompts(app_config)


def test_missing_assistant_template_fails_startup(app_config, prompt_dir):
    (prompt_dir / "assistant.txt").unlink()
    with pytest.raises(StartupResourceMissing):
        load_prompts(app_config)


def test_empty_prompt_file_fails_startup(app_config, prompt_dir):
    (prompt_dir / "p5js.txt").write_text("   \n")
    with pytest.raises(StartupResourceMissing, match="empty"):
        load_prompts(app_config)


def test_default_library_must_be_configured():
    with pytest.raises(ValidationError, match="default_library"):
        AppConfig(
            libraries={"p5js": "p5js.txt"},
            assistant_prompt="assistant.txt",
            default_library="phaser",
        )


def test_load_config_resolves_paths_next_to_the_file(tmp_path, prompt_dir):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        "libraries:\n"
        "  P5JS: prompts/p5js.txt\n"
        "  phaser: prompts/phaser.txt\n"
        "assistant_prompt: prompts/assistant.txt\n"
        "max_tokens: 5000\n"
    )

    config = load_config(str(config_file))

    assert get_config() is config
    assert config.max_tokens == 5000
    assert config.min_description_length == 5
    assert config.supported_libraries() == ["p5js", "phaser"]
    assert config.resolve_path("prompts/p5js.txt") == prompt_dir / "p5js.txt"
    assert load_prompts(config).system_prompt_for("p5js") == P5JS_PROMPT


def test_load_config_reports_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "nope.yaml"))
