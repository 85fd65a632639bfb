"""
Template helpers for prompt construction.

Two kinds of templates meet here: our own fixed templates (``{name}`` fields, filled
with str.format_map) and author-written system prompts, which may contain any braces
and only support literal ``{{TOKEN}}`` placeholders.
"""

from __future__ import annotations

from typing import Any, Iterable


class _SafeFormatDict(dict):
    """Mapping that returns empty string for missing keys (for str.format_map)."""

    def __missing__(self, key: str) -> str:
        return ""


def build_from_template(template: str, **kwargs: Any) -> str:
    """Fill one of our templates. Missing or None fields render as empty strings."""
    if not template:
        return ""
    safe = {k: ("" if v is None else v) for k, v in kwargs.items()}
    return template.format_map(_SafeFormatDict(safe))


def splice_placeholder(text: str, tokens: Iterable[str], value: str) -> tuple[str, bool]:
    """
    Replace the first of ``tokens`` found in author text with ``value``, verbatim.
    Returns the new text and whether a placeholder was found.
    """
    for token in tokens:
        if token in text:
            return text.replace(token, value, 1), True
    return text, False
