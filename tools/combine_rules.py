#!/usr/bin/env python3
"""
combine_rules.py

Combine Windsurf (.md) and Cursor (.mdc) rules.

Modes:
  --dry-run   Analyze the rules locally (formats, trigger types, potential
              duplicates and conflicts). No API calls, no API key needed.
  (default)   Send all rules to Claude, then write the combined rules plus an
              analysis.md into the output directory.

Usage:
  python tools/combine_rules.py --dry-run
  python tools/combine_rules.py --dry-run --json
  python tools/combine_rules.py --base-dir ~/src/project
  python tools/combine_rules.py --rules-dir rules/ --output-dir out/

Configuration (environment or .env): CLAUDE_API_KEY, CLAUDE_MODEL,
CLAUDE_API_URL, CLAUDE_MAX_TOKENS, CLAUDE_TEMPERATURE, CLAUDE_TIMEOUT.

Exit code:
  0  success (also when no rules are found)
  1  missing API key, API failure, unparsable reply, or write failure
  2  usage error (e.g. --json without --dry-run)
  130 interrupted (Ctrl-C)
"""
# --- import path bootstrap: allow `from helpers...` when run as tools/combine_rules.py ---
from __future__ import annotations
import os as _os, sys as _sys
_THIS_DIR = _os.path.dirname(_os.path.abspath(__file__))
if _THIS_DIR not in _sys.path:
    _sys.path.insert(0, _THIS_DIR)
# --- end import path bootstrap ---

import argparse
import json
import logging
import os
import sys
import time
from typing import List, Optional, Sequence

from helpers.call_claude import RemoteCallError, ResponseFormatError, combine_rules_with_claude
from helpers.combine_config import ConfigurationError, load_config
from helpers.rule_analysis import AnalysisReport, analyze_rules, report_to_dict
from helpers.rule_files import (
    ANALYSIS_FILENAME,
    FORMAT_CURSOR,
    FORMAT_WINDSURF,
    RuleRecord,
    discover_rule_files,
    load_rules,
    write_combined_rules,
)
from helpers.trace_log import setup_logger

LOG = logging.getLogger("combine_rules")

DEFAULT_RULES_SUBDIR = os.path.join(".windsurf", "rules")
DEFAULT_OUTPUT_SUBDIR = os.path.join(".windsurf", "combined-rules")

MISSING_KEY_HELP = """Error: CLAUDE_API_KEY not found

Please create a .env file in the same directory with:
CLAUDE_API_KEY=your_api_key_here

Optionally, you can also set:
CLAUDE_MODEL=claude-3-7-sonnet-20250219
CLAUDE_API_URL=https://api.anthropic.com/v1/messages

Or run with --dry-run to analyze without API calls"""


# ─────────────────────────────
# Pretty print
# ─────────────────────────────

def _hr(char: str = "─", width: int = 60) -> str:
    return char * width


def print_report(report: AnalysisReport, rules: Sequence[RuleRecord]) -> None:
    print()
    print(_hr("═"))
    print("Rule Analysis")
    print(_hr("─"))
    print(f"   Total rules: {report.total_rules}")
    print(f"   Windsurf (.md): {report.by_format.get(FORMAT_WINDSURF, 0)}")
    print(f"   Cursor (.mdc): {report.by_format.get(FORMAT_CURSOR, 0)}")

    print("\nTrigger Types:")
    for trigger, count in report.by_trigger.items():
        print(f"   {trigger}: {count}")

    if report.duplicates:
        print("\nPotential Duplicates:")
        for i, dup in enumerate(report.duplicates, start=1):
            print(f"   {i}. {dup.file_a} & {dup.file_b}")
            print(f"      Reason: {dup.reason}")
            if dup.description:
                print(f'      Description: "{dup.description}"')
            if dup.similarity is not None:
                print(f"      Similarity: {dup.similarity_percent}")

    if report.conflicts:
        print("\nPotential Conflicts:")
        for i, c in enumerate(report.conflicts, start=1):
            print(f"   {i}. {c.file_a} & {c.file_b}")
            print(f'      Glob: "{c.glob}"')
            print(f"      Different triggers: {c.trigger_a} vs {c.trigger_b}")

    print("\nFiles to be processed:")
    for r in rules:
        print(f"   {r.name} ({r.format})")

    print()
    print("Dry run complete!")
    print("   Run without --dry-run to perform actual combination with Claude API")
    print(_hr("═"))


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Combine Windsurf (.md) and Cursor (.mdc) rules using Claude.")
    parser.add_argument("-d", "--dry-run", action="store_true", help="Analyze locally only; no API calls.")
    parser.add_argument("--base-dir", default=None, help="Project directory (default: current directory).")
    parser.add_argument("--rules-dir", default=None, help=f"Rules directory (default: <base-dir>/{DEFAULT_RULES_SUBDIR}).")
    parser.add_argument("--output-dir", default=None, help=f"Output directory (default: <base-dir>/{DEFAULT_OUTPUT_SUBDIR}).")
    parser.add_argument("--env-file", default=None, help="Path to a .env file (default: nearest .env from the cwd).")
    parser.add_argument("--json", action="store_true", help="Print the dry-run analysis as JSON (requires --dry-run).")
    parser.add_argument("--quiet", action="store_true", help="INFO logging instead of TRACE.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    if args.json and not args.dry_run:
        parser.error("--json requires --dry-run")
    try:
        return _run(args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 130


def _run(args: argparse.Namespace) -> int:
    json_output = args.json
    # Keep stdout clean for the JSON document.
    setup_logger(verbose=not args.quiet, stream=sys.stderr if json_output else None)

    _start = time.perf_counter()
    base_dir = os.path.abspath(os.path.expanduser(args.base_dir or os.getcwd()))
    rules_dir = os.path.abspath(os.path.expanduser(args.rules_dir or os.path.join(base_dir, DEFAULT_RULES_SUBDIR)))
    output_dir = os.path.abspath(os.path.expanduser(args.output_dir or os.path.join(base_dir, DEFAULT_OUTPUT_SUBDIR)))

    config = None
    if args.dry_run:
        LOG.info("[info] Running in DRY-RUN mode - no API calls will be made")
    else:
        try:
            config = load_config(dotenv_path=args.env_file)
        except ConfigurationError as exc:
            LOG.error("[error] %s", exc)
            return 1
        if not config.api_key:
            print(MISSING_KEY_HELP, file=sys.stderr)
            return 1

    LOG.trace("[trace] rules_dir=%s output_dir=%s", rules_dir, output_dir)
    md_files, mdc_files = discover_rule_files(rules_dir)
    LOG.info("[info] Found %d .md files and %d .mdc files", len(md_files), len(mdc_files))

    rules = load_rules(md_files + mdc_files)
    if not rules:
        LOG.info("[info] No rules found to combine")
        return 0

    LOG.info("[info] Processing %d rules...", len(rules))

    if args.dry_run:
        report = analyze_rules(rules)
        if json_output:
            print(json.dumps(report_to_dict(report), indent=2))
        else:
            print_report(report, rules)
        LOG.trace("[trace] Done in %.2fs", time.perf_counter() - _start)
        return 0

    try:
        LOG.info("[info] Sending rules to Claude for analysis...")
        result = combine_rules_with_claude(rules, config)
        written = write_combined_rules(result, output_dir)
    except (ConfigurationError, RemoteCallError, ResponseFormatError, ValueError, OSError) as exc:
        LOG.error("[error] Error: %s", exc)
        return 1

    print()
    print(_hr("═"))
    print(f"Combination complete! Combined rules written to: {output_dir}")
    print(f"Analysis available at: {os.path.join(output_dir, ANALYSIS_FILENAME)}")
    print(f"Files written: {len(written)}")
    print(f"Done in {time.perf_counter() - _start:.2f}s • Success")
    print(_hr("═"))
    return 0


if __name__ == "__main__":
    sys.exit(main())
