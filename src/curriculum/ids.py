"""
Deterministic identifiers for curriculum items.

An item id is the slug path of its titles, e.g. ``["Phase 1", "The Funnel Doctor"]``
becomes ``"phase-1/the-funnel-doctor"``. The same titles always produce the same id,
so ids computed by the authoring tool, the server and a student's browser agree
without any coordination.

Ids are stamped once when an item is created and are never regenerated from a later
title: student progress records reference them by value.
"""

from __future__ import annotations

import re
from typing import Iterable

_DISALLOWED = re.compile(r"[^a-z0-9\s_-]")
_SEPARATORS = re.compile(r"[\s_-]+")
_EDGE_HYPHENS = re.compile(r"^-+|-+$")


class InvalidArgument(ValueError):
    """Raised when an id cannot be derived from the given input."""


def slugify(text: str) -> str:
    """Lowercase, drop punctuation and collapse whitespace/underscores into single hyphens."""
    slug = str(text).lower().strip()
    slug = _DISALLOWED.sub("", slug)
    slug = _SEPARATORS.sub("-", slug)
    return _EDGE_HYPHENS.sub("", slug)


def make_id(path_segments: Iterable[str]) -> str:
    """
    Build an item id from its hierarchical path.

    Two distinct titles that slugify to the same text under the same parent produce
    the same id. That collision is a known limitation and is not disambiguated here.
    """
    if isinstance(path_segments, str):
        path_segments = [path_segments]
    segments = [str(s) for s in path_segments]
    if not segments:
        raise InvalidArgument("make_id requires at least one path segment")
    return "/".join(slugify(s) for s in segments)


def make_item_id(section_title: str, item_title: str) -> str:
    return make_id([section_title, item_title])


def make_section_id(section_title: str) -> str:
    return slugify(section_title)
