#!/usr/bin/env python3
"""
rule_analysis.py

Local (offline) analysis of Windsurf/Cursor rule records:
- counts by format and by trigger type
- potential duplicates (same description, or similar body text)
- potential conflicts (same globs, different trigger)

Pure functions over RuleRecord sequences. No I/O, no logging, no config,
so the dry-run report is fully deterministic for a given input order.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from helpers.rule_files import FORMAT_CURSOR, FORMAT_WINDSURF, RuleRecord

REASON_SAME_DESCRIPTION = "Same description"
REASON_SIMILAR_CONTENT = "Similar content"

SIMILARITY_THRESHOLD = 0.8
UNKNOWN_TRIGGER = "unknown"


@dataclass(frozen=True)
class DuplicateCandidate:
    file_a: str
    file_b: str
    reason: str
    description: Optional[str] = None
    similarity: Optional[float] = None

    @property
    def similarity_percent(self) -> Optional[str]:
        if self.similarity is None:
            return None
        return f"{self.similarity * 100:.1f}%"


@dataclass(frozen=True)
class ConflictCandidate:
    file_a: str
    file_b: str
    glob: str
    trigger_a: Optional[str]
    trigger_b: Optional[str]


@dataclass(frozen=True)
class AnalysisReport:
    total_rules: int
    by_format: Dict[str, int] = field(default_factory=dict)
    by_trigger: Dict[str, int] = field(default_factory=dict)
    duplicates: Tuple[DuplicateCandidate, ...] = ()
    conflicts: Tuple[ConflictCandidate, ...] = ()


def _tokens(text: str) -> set:
    return set((text or "").lower().split())


def similarity(a: str, b: str) -> float:
    """Jaccard similarity of the lower-cased whitespace token sets of a and b.

    Two texts with no tokens at all score 0.0, never a match.
    """
    ta = _tokens(a)
    tb = _tokens(b)
    union = ta | tb
    if not union:
        return 0.0
    return len(ta & tb) / len(union)


def count_by_format(records: Sequence[RuleRecord]) -> Dict[str, int]:
    counts = {FORMAT_WINDSURF: 0, FORMAT_CURSOR: 0}
    for r in records:
        counts[r.format] = counts.get(r.format, 0) + 1
    return counts


def trigger_key(record: RuleRecord) -> str:
    # NOTE: alwaysApply is a Cursor boolean, not a trigger name; the fallback
    # is kept as-is so reports stay comparable with earlier runs.
    md = record.metadata
    return md.get("trigger") or md.get("alwaysApply") or UNKNOWN_TRIGGER


def count_by_trigger(records: Sequence[RuleRecord]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for r in records:
        key = trigger_key(r)
        counts[key] = counts.get(key, 0) + 1
    return counts


def _pairs(items: Sequence[Any]) -> Iterable[Tuple[Any, Any]]:
    for i in range(len(items)):
        for j in range(i + 1, len(items)):
            yield items[i], items[j]


def find_duplicates(records: Sequence[RuleRecord]) -> List[DuplicateCandidate]:
    out: List[DuplicateCandidate] = []
    for r1, r2 in _pairs(records):
        desc = r1.metadata.get("description")
        if desc and desc == r2.metadata.get("description"):
            out.append(DuplicateCandidate(
                file_a=r1.name,
                file_b=r2.name,
                reason=REASON_SAME_DESCRIPTION,
                description=desc,
            ))

        score = similarity(r1.body, r2.body)
        if score > SIMILARITY_THRESHOLD:
            out.append(DuplicateCandidate(
                file_a=r1.name,
                file_b=r2.name,
                reason=REASON_SIMILAR_CONTENT,
                similarity=score,
            ))
    return out


def find_conflicts(records: Sequence[RuleRecord]) -> List[ConflictCandidate]:
    glob_rules = [r for r in records if r.metadata.get("globs")]
    out: List[ConflictCandidate] = []
    for r1, r2 in _pairs(glob_rules):
        glob = r1.metadata["globs"]
        if glob != r2.metadata["globs"]:
            continue
        t1 = r1.metadata.get("trigger")
        t2 = r2.metadata.get("trigger")
        if t1 != t2:
            out.append(ConflictCandidate(
                file_a=r1.name,
                file_b=r2.name,
                glob=glob,
                trigger_a=t1,
                trigger_b=t2,
            ))
    return out


def analyze_rules(records: Sequence[RuleRecord]) -> AnalysisReport:
    records = list(records)
    return AnalysisReport(
        total_rules=len(records),
        by_format=count_by_format(records),
        by_trigger=count_by_trigger(records),
        duplicates=tuple(find_duplicates(records)),
        conflicts=tuple(find_conflicts(records)),
    )


def report_to_dict(report: AnalysisReport) -> Dict[str, Any]:
    """JSON-ready view of the report (same keys the old JS tool printed)."""
    duplicates = []
    for d in report.duplicates:
        item: Dict[str, Any] = {"files": [d.file_a, d.file_b], "reason": d.reason}
        if d.description is not None:
            item["description"] = d.description
        if d.similarity is not None:
            item["similarity"] = d.similarity_percent
        duplicates.append(item)

    return {
        "totalRules": report.total_rules,
        "byFormat": dict(report.by_format),
        "byTriggerType": dict(report.by_trigger),
        "duplicates": duplicates,
        "conflicts": [
            {
                "files": [c.file_a, c.file_b],
                "glob": c.glob,
                "triggers": [c.trigger_a, c.trigger_b],
            }
            for c in report.conflicts
        ],
    }
