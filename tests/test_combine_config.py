#!/usr/bin/env python3
import pytest

from helpers.combine_config import (
    DEFAULT_API_URL,
    DEFAULT_MODEL,
    ConfigurationError,
    load_config,
)


def test_defaults():
    cfg = load_config(environ={})
    assert cfg.api_key is None
    assert cfg.api_url == DEFAULT_API_URL
    assert cfg.model == DEFAULT_MODEL
    assert cfg.max_tokens == 4096
    assert cfg.temperature == 0.3
    with pytest.raises(ConfigurationError):
        cfg.require_api_key()


def test_overrides():
    cfg = load_config(environ={
        "CLAUDE_API_KEY": " sk-abc ",
        "CLAUDE_API_URL": "http://localhost:9999/v1/messages",
        "CLAUDE_MODEL": "claude-other",
        "CLAUDE_MAX_TOKENS": "1024",
        "CLAUDE_TEMPERATURE": "0",
        "CLAUDE_TIMEOUT": "30",
    })
    assert cfg.require_api_key() == "sk-abc"
    assert cfg.api_url == "http://localhost:9999/v1/messages"
    assert cfg.model == "claude-other"
    assert cfg.max_tokens == 1024
    assert cfg.temperature == 0.0
    assert cfg.timeout == 30.0


def test_blank_values_use_defaults():
    cfg = load_config(environ={"CLAUDE_API_KEY": "", "CLAUDE_MODEL": "  "})
    assert cfg.api_key is None
    assert cfg.model == DEFAULT_MODEL


def test_bad_number():
    with pytest.raises(ConfigurationError, match="CLAUDE_MAX_TOKENS"):
        load_config(environ={"CLAUDE_MAX_TOKENS": "lots"})


def test_dotenv_file(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("CLAUDE_API_KEY=from-dotenv\nCLAUDE_MODEL=claude-dotenv\n", encoding="utf-8")
    monkeypatch.setenv("CLAUDE_API_KEY", "placeholder")
    monkeypatch.delenv("CLAUDE_API_KEY")
    monkeypatch.setenv("CLAUDE_MODEL", "claude-from-env")

    cfg = load_config(dotenv_path=str(env_file))

    assert cfg.api_key == "from-dotenv"
    # real environment wins over .env
    assert cfg.model == "claude-from-env"
