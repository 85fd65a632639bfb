"""
Reconcile a student's completed-id set against a curriculum tree.

Completed ids come from an untrusted client (local storage in the browser), so they
may reference items that were since removed or never existed. Those ids are reported
as unmatched and otherwise ignored; nothing here raises on bad input.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from curriculum.tree import FlatCurriculum, HierarchicalCurriculum, flatten, parse_curriculum

MAX_REMAINING_TITLES = 3
FLAT_PHASE_ID = "all"
FLAT_PHASE_TITLE = "All Modules"
UNNAMED_PHASE_TITLE = "Unnamed Phase"


@dataclass
class ResolvedProgress:
    titles: list[str] = field(default_factory=list)
    unmatched_ids: list[str] = field(default_factory=list)


@dataclass
class PhaseProgress:
    phase_id: str
    phase_title: str
    total: int
    completed: int
    is_complete: bool
    remaining_titles: list[str] = field(default_factory=list)


@dataclass
class ProgressSummary:
    total_items: int = 0
    completed_items: int = 0
    phases: list[PhaseProgress] = field(default_factory=list)

    # Names used by the LLM-facing wording ("modules").
    @property
    def total_modules(self) -> int:
        return self.total_items

    @property
    def completed_modules(self) -> int:
        return self.completed_items

    @property
    def all_complete(self) -> bool:
        return bool(self.phases) and all(p.is_complete for p in self.phases)


def _normalize_ids(completed_ids: Optional[Iterable[Any]]) -> list[str]:
    if not completed_ids or isinstance(completed_ids, (str, bytes)):
        return []
    return [str(i) for i in completed_ids]


def resolve(tree: Any, completed_ids: Optional[Iterable[Any]]) -> ResolvedProgress:
    """
    Split ``completed_ids`` into titles of known items and unmatched ids, both in input order.

    An empty tree leaves every id unmatched; empty ids yield an empty result.
    """
    ids = _normalize_ids(completed_ids)
    if not ids:
        return ResolvedProgress()
    title_by_id = {entry.id: entry.title for entry in flatten(tree)}
    result = ResolvedProgress()
    for item_id in ids:
        title = title_by_id.get(item_id)
        if title:
            result.titles.append(title)
        else:
            result.unmatched_ids.append(item_id)
    return result


def _phase(phase_id: str, title: str, entries: list[tuple[str, str]], done: set[str]) -> PhaseProgress:
    # entries keep malformed (id-less) items so they still count towards the total
    completed = sum(1 for item_id, _ in entries if item_id and item_id in done)
    remaining = [t for item_id, t in entries if item_id and item_id not in done]
    total = len(entries)
    return PhaseProgress(
        phase_id=phase_id,
        phase_title=title,
        total=total,
        completed=completed,
        is_complete=completed == total and total > 0,
        remaining_titles=[t for t in remaining[:MAX_REMAINING_TITLES] if t],
    )


def compute(tree: Any, completed_ids: Optional[Iterable[Any]]) -> ProgressSummary:
    """
    Per-phase completion summary.

    Hierarchical trees yield one phase per section, in order. A flat tree is reported as
    a single synthetic "All Modules" phase. ``remaining_titles`` lists the first
    incomplete items in section order so the student always sees what comes next.
    """
    tree = parse_curriculum(tree)
    done = set(_normalize_ids(completed_ids))

    if isinstance(tree, HierarchicalCurriculum):
        phases = [
            _phase(
                section.id,
                section.title or UNNAMED_PHASE_TITLE,
                [(i.id, i.title) for i in section.items],
                done,
            )
            for section in tree.sections
        ]
    elif isinstance(tree, FlatCurriculum) and tree.modules:
        phases = [
            _phase(FLAT_PHASE_ID, FLAT_PHASE_TITLE, [(m.id, m.title) for m in tree.modules], done)
        ]
    else:
        phases = []

    return ProgressSummary(
        total_items=sum(p.total for p in phases),
        completed_items=sum(p.completed for p in phases),
        phases=phases,
    )
