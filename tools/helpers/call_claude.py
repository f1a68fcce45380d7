#!/usr/bin/env python3
"""
call_claude.py

Send parsed rule records to the Claude Messages API and turn the reply into a
CombinedResult (analysis text, suggested format, combined rule files).

One request, one response: no retries, no streaming. Any failure is fatal for
the run, so nothing is written when the call or the parse fails.
"""
from __future__ import annotations

import json
import logging
import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import requests

from helpers import trace_log  # noqa: F401  (installs Logger.trace)
from helpers.combine_config import CombineConfig
from helpers.rule_files import RuleRecord

# Suppress the LibreSSL/OpenSSL compatibility warning from urllib3 v2
warnings.filterwarnings(
    "ignore",
    message="urllib3 v2 only supports OpenSSL 1.1.1+",
    module="urllib3",
)

LOG = logging.getLogger("call_claude")


class RemoteCallError(RuntimeError):
    """The API call failed (network, HTTP status, or unexpected envelope)."""


class ResponseFormatError(ValueError):
    """The model reply could not be read as the expected JSON structure."""


@dataclass(frozen=True)
class CombinedRule:
    filename: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    content: str = ""


@dataclass(frozen=True)
class CombinedResult:
    analysis: str
    suggested_format: str
    rules: List[CombinedRule] = field(default_factory=list)


PROMPT_HEADER = """
I have a set of development rules from two different systems: Windsurf (.md files) and Cursor (.mdc files).
Please analyze these rules and combine them into a unified set, eliminating duplicates and resolving conflicts.

Here are the rules:
"""

PROMPT_FOOTER = """
Please provide:
1. A combined set of rules that includes the best aspects of both systems
2. Identify any conflicts and explain how you resolved them
3. Suggest a unified format (either .md or .mdc or a new format)
4. Output the combined rules in the suggested format

Please format the output as a JSON object with this structure:
{
  "analysis": "Your analysis of the rules and conflicts",
  "suggestedFormat": "md" or "mdc",
  "combinedRules": [
    {
      "filename": "rule-name.ext",
      "metadata": { ... },
      "content": "rule content"
    }
  ]
}
"""


def _format_rule_for_prompt(rule: RuleRecord) -> str:
    return (
        f"\nFile: {rule.name}\n"
        f"Format: {rule.format}\n"
        f"Metadata: {json.dumps(rule.metadata, indent=2)}\n"
        f"Content:\n{rule.body}\n"
        "-------------------\n"
    )


def build_prompt(rules: Sequence[RuleRecord]) -> str:
    body = "\n".join(_format_rule_for_prompt(r) for r in rules)
    return PROMPT_HEADER + body + "\n" + PROMPT_FOOTER


def call_claude(prompt: str, config: CombineConfig) -> str:
    """POST one user message and return the text of the first content block."""
    api_key = config.require_api_key()
    payload = {
        "model": config.model,
        "messages": [{"role": "user", "content": prompt}],
        "max_tokens": config.max_tokens,
        "temperature": config.temperature,
    }
    headers = {
        "Content-Type": "application/json",
        "x-api-key": api_key,
        "anthropic-version": config.anthropic_version,
    }

    try:
        resp = requests.post(config.api_url, json=payload, headers=headers, timeout=config.timeout)
    except requests.RequestException as exc:
        LOG.error("[error] Error calling Claude API: %s", exc)
        raise RemoteCallError(f"Claude API request failed: {exc}") from exc

    if not resp.ok:
        LOG.error("[error] Error calling Claude API: HTTP %s %s", resp.status_code, resp.text)
        raise RemoteCallError(f"Claude API returned HTTP {resp.status_code}")

    try:
        data = resp.json()
        text = data["content"][0]["text"]
    except (ValueError, KeyError, IndexError, TypeError) as exc:
        raise RemoteCallError(f"Unexpected Claude API response envelope: {exc}") from exc
    if not isinstance(text, str):
        raise RemoteCallError("Unexpected Claude API response envelope: text is not a string")
    return text


# --- Lenient Markdown-aware JSON loader ---
def _strip_code_fences(text: str) -> str:
    lines = text.strip().splitlines()
    if lines and lines[0].strip().startswith("```"):
        for i in range(1, len(lines)):
            if lines[i].strip().startswith("```"):
                return "\n".join(lines[1:i])
    return text


def _extract_json_object(text: str) -> Optional[str]:
    """Return the first balanced {...} segment in text, honouring JSON strings."""
    start_idx = text.find("{")
    if start_idx < 0:
        return None
    depth = 0
    in_str = False
    esc = False
    for j in range(start_idx, len(text)):
        ch = text[j]
        if in_str:
            if esc:
                esc = False
            elif ch == "\\":
                esc = True
            elif ch == '"':
                in_str = False
            continue
        if ch == '"':
            in_str = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start_idx:j + 1]
    return None


def _loads_lenient(raw: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError:
        pass
    stripped = _strip_code_fences(raw)
    try:
        return json.loads(stripped)
    except ValueError:
        pass
    segment = _extract_json_object(stripped)
    if segment is None:
        raise ResponseFormatError("Could not parse Claude response as JSON")
    try:
        return json.loads(segment)
    except ValueError as exc:
        raise ResponseFormatError(f"Could not parse Claude response as JSON: {exc}") from exc


def _to_combined_rule(idx: int, item: Any) -> CombinedRule:
    if not isinstance(item, dict):
        raise ResponseFormatError(f"combinedRules[{idx}] is not an object")
    filename = item.get("filename")
    if not isinstance(filename, str) or not filename.strip():
        raise ResponseFormatError(f"combinedRules[{idx}] has no filename")
    metadata = item.get("metadata") or {}
    if not isinstance(metadata, dict):
        raise ResponseFormatError(f"combinedRules[{idx}].metadata is not an object")
    content = item.get("content")
    if not isinstance(content, str):
        raise ResponseFormatError(f"combinedRules[{idx}] has no content")
    return CombinedRule(filename=filename.strip(), metadata=metadata, content=content)


def parse_combined_response(text: str) -> CombinedResult:
    payload = _loads_lenient(text)
    if not isinstance(payload, dict):
        raise ResponseFormatError("Claude response is not a JSON object")
    items = payload.get("combinedRules")
    if not isinstance(items, list):
        raise ResponseFormatError("Claude response has no combinedRules array")

    return CombinedResult(
        analysis=str(payload.get("analysis") or ""),
        suggested_format=str(payload.get("suggestedFormat") or ""),
        rules=[_to_combined_rule(i, item) for i, item in enumerate(items)],
    )


def combine_rules_with_claude(rules: Sequence[RuleRecord], config: CombineConfig) -> CombinedResult:
    config.require_api_key()
    prompt = build_prompt(rules)
    LOG.info("[info] Sending %d rules to Claude (%s) at %s", len(rules), config.model, config.api_url)
    text = call_claude(prompt, config)
    LOG.trace("[trace] Claude reply: %d chars", len(text))
    return parse_combined_response(text)
