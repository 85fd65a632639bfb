"""
Per-turn instructions for the course chat assistant.

Assembled fresh on every turn from the bot's system prompt, the student's progress
(recomputed from the completed ids the client sent) and a map from sidebar items to
the source files behind them.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Optional

from curriculum import (
    CurriculumItem,
    CurriculumTree,
    ProgressSummary,
    compute,
    format_progress,
    iter_items,
    parse_curriculum,
)

from api.prompt_builders.templates import build_from_template, splice_placeholder

DEFAULT_SYSTEM_PROMPT = "You are a helpful AI assistant."
PROGRESS_PLACEHOLDER = "{{PROGRESS_PLACEHOLDER}}"
# Bots created before the placeholder was renamed still carry the old token.
LEGACY_PROGRESS_PLACEHOLDER = "{{COMPLETED_MODULES_LIST}}"

TEMPLATE_PROGRESS_RULES = """{summary}

[PROGRESS REPORTING RULES]
When the user asks about their progress:
1. ALWAYS use the phase summary format shown above.
2. For complete phases: Show "Phase X: ✅ Complete" (do NOT enumerate completed modules).
3. For incomplete phases: Show "Phase X: a/b complete" and list ONLY remaining modules (max 3) + "and N more" if applicable.
4. If all phases are complete: Respond "All phases complete (N/N)" and list phase names only (no module enumeration).
5. NEVER enumerate completed modules if the phase is marked as COMPLETE.{celebration}"""

ALL_COMPLETE_NOTE = "\n\n🎉 ALL MODULES COMPLETE: The user has finished every single module. Congratulate them!"

TEMPLATE_PROGRESS_APPENDIX = "\n\n[CONTEXT: USER PROGRESS]\n{progress}"

TEMPLATE_CURRICULUM_MAP = (
    "\n\n[CURRICULUM STRUCTURE MAP]\n"
    "Use this map to locate the correct source file for user questions:\n"
    "{lines}"
)

# Upload-time file references look like "file_0_intro.pdf": index, then original name.
_UPLOAD_REF = re.compile(r"^file_\d+_(.+)$")


def build_progress_section(summary: ProgressSummary) -> str:
    """Formatter output, followed by the reporting rules when the course has items."""
    text = format_progress(summary)
    if summary.total_items == 0:
        return text
    all_done = summary.all_complete
    return build_from_template(
        TEMPLATE_PROGRESS_RULES,
        summary=text,
        celebration=ALL_COMPLETE_NOTE if all_done else "",
    )


def source_file_for(item: CurriculumItem) -> Optional[str]:
    """Name of the file an item's content comes from, or None when it has none."""
    if item.context_ref:
        ref = item.context_ref
        if ref.startswith("file_"):
            match = _UPLOAD_REF.match(ref)
            if match:
                return match.group(1)
            parts = ref.split("_")
            return "_".join(parts[2:]) if len(parts) >= 3 else ref
        # Provider file ids carry no name; the item title is the best reference.
        return item.title
    if item.type == "file" and item.source_ref:
        return item.title
    return None


def build_curriculum_map(tree: CurriculumTree) -> str:
    lines = []
    for item in iter_items(tree):
        source = source_file_for(item)
        if source:
            lines.append(f'Sidebar Item "{item.title}" is derived from file: "{source}"')
    return "\n".join(lines)


def build_turn_instructions(
    *,
    system_prompt: Optional[str],
    course_map: Any,
    completed_ids: Optional[Iterable[Any]],
    default_system_prompt: Optional[str] = None,
) -> str:
    """
    Base prompt with the progress section spliced into its placeholder (or appended
    under a heading when the prompt has none), then the curriculum structure map.
    """
    tree = parse_curriculum(course_map)
    progress = build_progress_section(compute(tree, completed_ids))

    instructions, replaced = splice_placeholder(
        system_prompt or default_system_prompt or DEFAULT_SYSTEM_PROMPT,
        (PROGRESS_PLACEHOLDER, LEGACY_PROGRESS_PLACEHOLDER),
        progress,
    )
    if not replaced:
        instructions += build_from_template(TEMPLATE_PROGRESS_APPENDIX, progress=progress)

    curriculum_map = build_curriculum_map(tree)
    if curriculum_map:
        instructions += build_from_template(TEMPLATE_CURRICULUM_MAP, lines=curriculum_map)
    return instructions
