#!/usr/bin/env python3
"""
rule_files.py

Reading and writing rule files for the two sibling formats:
- Windsurf rules: *.md
- Cursor rules:   *.mdc

Both share the same shape, a front-matter style metadata block followed by the
rule body:

    ---
    description: Formatting rules
    globs: *.ts
    trigger: glob
    ---

    Body text...

Metadata values are kept as plain strings (no YAML typing); each line is split
on its first ':' only.

No side effects at import-time.
"""
from __future__ import annotations

import glob
import json
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

LOG = logging.getLogger("rule_files")

FORMAT_WINDSURF = "windsurf"
FORMAT_CURSOR = "cursor"

ANALYSIS_FILENAME = "analysis.md"

RE_RULE_FILE = re.compile(r"^---\n(.*?)\n---\n(.*)$", re.DOTALL)


@dataclass(frozen=True)
class RuleRecord:
    source_path: str
    metadata: Dict[str, str] = field(default_factory=dict)
    body: str = ""
    format: str = ""

    def __post_init__(self):
        if not self.format:
            object.__setattr__(self, "format", format_for_path(self.source_path))

    @property
    def name(self) -> str:
        return os.path.basename(self.source_path)


def format_for_path(path: str) -> str:
    return FORMAT_WINDSURF if path.endswith(".md") else FORMAT_CURSOR


def parse_metadata(section: str) -> Dict[str, str]:
    metadata: Dict[str, str] = {}
    for line in section.split("\n"):
        key, sep, value = line.partition(":")
        if not sep:
            continue
        key = key.strip()
        if key:
            metadata[key] = value.strip()
    return metadata


def parse_rule_text(path: str, text: str) -> RuleRecord:
    """Split raw file text into metadata + body.

    A file without a metadata block is still returned (with empty metadata)
    after logging a warning.
    """
    text = text.replace("\r\n", "\n")
    m = RE_RULE_FILE.match(text)
    if not m:
        LOG.warning("[warn] Could not extract metadata from %s", path)
        return RuleRecord(source_path=path, metadata={}, body=text.strip(), format=format_for_path(path))
    return RuleRecord(
        source_path=path,
        metadata=parse_metadata(m.group(1)),
        body=m.group(2).strip(),
        format=format_for_path(path),
    )


def read_rule_file(path: str) -> Optional[RuleRecord]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as exc:
        LOG.error("[error] Error reading %s: %s", path, exc)
        return None
    return parse_rule_text(path, text)


def discover_rule_files(rules_dir: str) -> Tuple[List[str], List[str]]:
    """Return (md_files, mdc_files) found recursively under rules_dir, sorted."""
    if not os.path.isdir(rules_dir):
        return [], []
    md_files = sorted(glob.glob(os.path.join(rules_dir, "**", "*.md"), recursive=True))
    mdc_files = sorted(glob.glob(os.path.join(rules_dir, "**", "*.mdc"), recursive=True))
    return md_files, mdc_files


def load_rules(paths: List[str]) -> List[RuleRecord]:
    rules: List[RuleRecord] = []
    for p in paths:
        rule = read_rule_file(p)
        if rule is not None:
            rules.append(rule)
    return rules


# ----------------------------
# Writer
# ----------------------------

def format_metadata_value(value: Any) -> str:
    """Render a JSON metadata value the way the rule tools expect it on disk.

    true/false/null stay lower-case and lists are comma-joined, so `globs` and
    `alwaysApply` read back exactly as hand-written rule files do.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join("" if v is None else format_metadata_value(v) for v in value)
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def format_rule_file(metadata: Mapping[str, Any], content: str) -> str:
    lines = ["---"]
    for key, value in metadata.items():
        lines.append(f"{key}: {format_metadata_value(value)}")
    lines.append("---")
    return "\n".join(lines) + "\n\n" + (content or "")


def format_analysis(analysis: str, suggested_format: str) -> str:
    return f"# Rules Combination Analysis\n\n{analysis}\n\nSuggested Format: {suggested_format}"


def _target_path(output_dir: str, filename: str) -> str:
    root = os.path.abspath(output_dir)
    target = os.path.abspath(os.path.join(root, filename))
    if os.path.commonpath([root, target]) != root or target == root:
        raise ValueError(f"Refusing to write rule outside {output_dir}: {filename!r}")
    return target


def write_combined_rules(result: Any, output_dir: str) -> List[str]:
    """Write analysis.md plus one file per combined rule into output_dir.

    `result` is a CombinedResult (analysis, suggested_format, rules). Every
    target path is checked before the first write.
    """
    targets = [(_target_path(output_dir, r.filename), r) for r in result.rules]

    os.makedirs(output_dir, exist_ok=True)

    written: List[str] = []
    analysis_path = os.path.join(output_dir, ANALYSIS_FILENAME)
    with open(analysis_path, "w", encoding="utf-8") as f:
        f.write(format_analysis(result.analysis, result.suggested_format))
    written.append(analysis_path)

    for path, rule in targets:
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(format_rule_file(rule.metadata, rule.content))
        LOG.info("[info] Wrote combined rule: %s", path)
        written.append(path)
    return written
