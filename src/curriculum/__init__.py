"""
Curriculum progress engine: stable item ids, the tagged curriculum tree, progress
reconciliation and the LLM-facing progress summary. Pure functions, no I/O.
"""

from curriculum.ids import InvalidArgument, make_id, make_item_id, make_section_id, slugify
from curriculum.tree import (
    CurriculumItem,
    CurriculumSection,
    CurriculumTree,
    FlatCurriculum,
    FlatEntry,
    HierarchicalCurriculum,
    all_ids,
    flatten,
    iter_items,
    parse_curriculum,
)
from curriculum.progress import PhaseProgress, ProgressSummary, ResolvedProgress, compute, resolve
from curriculum.formatter import format_progress

__all__ = [
    "InvalidArgument",
    "make_id",
    "make_item_id",
    "make_section_id",
    "slugify",
    "CurriculumItem",
    "CurriculumSection",
    "CurriculumTree",
    "FlatCurriculum",
    "FlatEntry",
    "HierarchicalCurriculum",
    "all_ids",
    "flatten",
    "iter_items",
    "parse_curriculum",
    "PhaseProgress",
    "ProgressSummary",
    "ResolvedProgress",
    "compute",
    "resolve",
    "format_progress",
]
