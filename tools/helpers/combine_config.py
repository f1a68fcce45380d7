#!/usr/bin/env python3
"""
combine_config.py

Run configuration for the Claude-backed rule combination. Values are read once
at start-up from the environment (after loading an optional .env file) and
passed explicitly to whatever needs them. The local analyzer never sees this.

Environment variables:
  CLAUDE_API_KEY       required unless running --dry-run
  CLAUDE_API_URL       default https://api.anthropic.com/v1/messages
  CLAUDE_MODEL         default claude-3-7-sonnet-20250219
  CLAUDE_MAX_TOKENS    default 4096
  CLAUDE_TEMPERATURE   default 0.3
  CLAUDE_TIMEOUT       seconds, default 300
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import find_dotenv, load_dotenv

DEFAULT_API_URL = "https://api.anthropic.com/v1/messages"
DEFAULT_MODEL = "claude-3-7-sonnet-20250219"
DEFAULT_MAX_TOKENS = 4096
DEFAULT_TEMPERATURE = 0.3
DEFAULT_TIMEOUT = 300.0
ANTHROPIC_VERSION = "2023-06-01"


class ConfigurationError(RuntimeError):
    """Required configuration is missing or malformed."""


@dataclass(frozen=True)
class CombineConfig:
    api_key: Optional[str] = None
    api_url: str = DEFAULT_API_URL
    model: str = DEFAULT_MODEL
    max_tokens: int = DEFAULT_MAX_TOKENS
    temperature: float = DEFAULT_TEMPERATURE
    timeout: float = DEFAULT_TIMEOUT
    anthropic_version: str = ANTHROPIC_VERSION

    def require_api_key(self) -> str:
        if not self.api_key:
            raise ConfigurationError("CLAUDE_API_KEY not found in environment or .env file")
        return self.api_key


def _env_str(env: Mapping[str, str], name: str, default: Optional[str]) -> Optional[str]:
    val = env.get(name)
    if val is None:
        return default
    val = val.strip()
    return val if val else default


def _env_number(env: Mapping[str, str], name: str, default, cast):
    raw = _env_str(env, name, None)
    if raw is None:
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None


def load_config(environ: Optional[Mapping[str, str]] = None, dotenv_path: Optional[str] = None) -> CombineConfig:
    """Build a CombineConfig.

    With `environ=None` the process environment is used, after loading
    `dotenv_path` (or a .env found from the cwd) without overriding variables
    that are already set. Passing an explicit mapping skips .env loading.
    """
    if environ is None:
        load_dotenv(dotenv_path or find_dotenv(usecwd=True), override=False)
        environ = os.environ

    return CombineConfig(
        api_key=_env_str(environ, "CLAUDE_API_KEY", None),
        api_url=_env_str(environ, "CLAUDE_API_URL", DEFAULT_API_URL),
        model=_env_str(environ, "CLAUDE_MODEL", DEFAULT_MODEL),
        max_tokens=_env_number(environ, "CLAUDE_MAX_TOKENS", DEFAULT_MAX_TOKENS, int),
        temperature=_env_number(environ, "CLAUDE_TEMPERATURE", DEFAULT_TEMPERATURE, float),
        timeout=_env_number(environ, "CLAUDE_TIMEOUT", DEFAULT_TIMEOUT, float),
    )
