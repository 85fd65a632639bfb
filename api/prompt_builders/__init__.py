"""
App prompt builders: per-turn LLM instructions for the course chat assistant.
"""

from api.prompt_builders.chat import (
    PROGRESS_PLACEHOLDER,
    build_curriculum_map,
    build_progress_section,
    build_turn_instructions,
)

__all__ = [
    "PROGRESS_PLACEHOLDER",
    "build_curriculum_map",
    "build_progress_section",
    "build_turn_instructions",
]
