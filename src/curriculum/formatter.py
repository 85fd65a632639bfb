"""
Render a ProgressSummary as the fixed-grammar block spliced into LLM instructions.

The wording is a contract: the progress reporting rules appended after this block
refer to the "phase summary format shown above" and to the COMPLETE marker. Items of
a complete phase are never listed.
"""

from __future__ import annotations

from curriculum.progress import MAX_REMAINING_TITLES, PhaseProgress, ProgressSummary

EMPTY_COURSE = "No modules in course."
HEADER = "COURSE PROGRESS (PHASE SUMMARY):"
COMPLETE_MARK = "✅ COMPLETE"
IN_PROGRESS_MARK = "IN PROGRESS"


def _phase_lines(phase: PhaseProgress) -> list[str]:
    head = f"{phase.phase_title} ({phase.completed}/{phase.total}):"
    if phase.is_complete:
        return [f"{head} {COMPLETE_MARK}"]

    lines = [f"{head} {IN_PROGRESS_MARK}"]
    if phase.remaining_titles:
        shown = phase.remaining_titles[:MAX_REMAINING_TITLES]
        more = (phase.total - phase.completed) - len(shown)
        remaining = f"Remaining (top {len(shown)}): {', '.join(shown)}"
        if more > 0:
            remaining += f" (+{more} more)"
        lines.append(remaining)
    return lines


def format_progress(summary: ProgressSummary) -> str:
    if summary.total_items == 0:
        return EMPTY_COURSE

    lines = [HEADER, f"Overall: {summary.completed_items}/{summary.total_items} complete", ""]
    for phase in summary.phases:
        lines.extend(_phase_lines(phase))

    if summary.all_complete:
        n = len(summary.phases)
        lines.extend(["", f"🎉 All phases complete ({n}/{n})"])
    return "\n".join(lines)
