"""
Curriculum tree model.

A bot's course map is persisted in one of two historical shapes:

- flat: ``[{"id": "m1", "title": "Intro"}, ...]`` (legacy modules, no sections)
- hierarchical: ``[{"id": "phase-1", "title": "Phase 1", "items": [...]}, ...]``

The shape is decided once, at the storage boundary, by ``parse_curriculum``: the
tree is hierarchical when its first element carries an ``items`` field. This rule is
a permanent compatibility contract. Everything downstream works on the tagged
variants below and never inspects raw dictionaries.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Union

ITEM_TYPES = ("file", "video", "quiz", "link")


@dataclass(frozen=True)
class CurriculumItem:
    id: str
    title: str
    type: str = "file"
    source_ref: Optional[str] = None  # file backing a "file" item
    context_ref: Optional[str] = None  # transcript/PDF backing an external item
    external_url: Optional[str] = None


@dataclass(frozen=True)
class CurriculumSection:
    id: str
    title: str
    items: tuple[CurriculumItem, ...] = ()


@dataclass(frozen=True)
class FlatEntry:
    """A legacy flat-shape module, also the row type of ``flatten``."""
    id: str
    title: str


@dataclass(frozen=True)
class FlatCurriculum:
    modules: tuple[FlatEntry, ...] = ()

    def __len__(self) -> int:
        return len(self.modules)


@dataclass(frozen=True)
class HierarchicalCurriculum:
    sections: tuple[CurriculumSection, ...] = ()

    def __len__(self) -> int:
        return len(self.sections)


CurriculumTree = Union[FlatCurriculum, HierarchicalCurriculum]


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _optional_text(*values: Any) -> Optional[str]:
    for v in values:
        if isinstance(v, str) and v.strip():
            return v
    return None


def _parse_item(raw: dict) -> CurriculumItem:
    item_type = raw.get("type")
    return CurriculumItem(
        id=_text(raw.get("id")),
        title=_text(raw.get("title")),
        type=item_type if item_type in ITEM_TYPES else "file",
        source_ref=_optional_text(raw.get("source_ref"), raw.get("file_id")),
        context_ref=_optional_text(raw.get("context_ref"), raw.get("context_file_id")),
        external_url=_optional_text(raw.get("external_url")),
    )


def _parse_section(raw: dict) -> CurriculumSection:
    raw_items = raw.get("items")
    items: tuple[CurriculumItem, ...] = ()
    if isinstance(raw_items, list):
        items = tuple(_parse_item(i) for i in raw_items if isinstance(i, dict))
    return CurriculumSection(id=_text(raw.get("id")), title=_text(raw.get("title")), items=items)


def parse_curriculum(raw: Any) -> CurriculumTree:
    """
    Tag persisted course-map data with its shape.

    Accepts an already-tagged tree, a JSON string, or the decoded list. Anything
    unreadable becomes an empty flat tree; non-dict entries are dropped.
    """
    if isinstance(raw, (FlatCurriculum, HierarchicalCurriculum)):
        return raw
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError:
            return FlatCurriculum()
    if not isinstance(raw, list) or not raw:
        return FlatCurriculum()

    first = raw[0]
    if isinstance(first, dict) and "items" in first:
        return HierarchicalCurriculum(
            sections=tuple(_parse_section(s) for s in raw if isinstance(s, dict))
        )
    return FlatCurriculum(
        modules=tuple(
            FlatEntry(id=_text(m.get("id")), title=_text(m.get("title")))
            for m in raw
            if isinstance(m, dict)
        )
    )


def iter_items(tree: CurriculumTree) -> Iterator[CurriculumItem]:
    """Yield every hierarchical item in order. Flat trees carry no items."""
    if isinstance(tree, HierarchicalCurriculum):
        for section in tree.sections:
            yield from section.items


def flatten(tree: Any) -> list[FlatEntry]:
    """Ordered ``(id, title)`` view of the tree; entries missing an id or a title are skipped."""
    tree = parse_curriculum(tree)
    if isinstance(tree, HierarchicalCurriculum):
        entries = (FlatEntry(i.id, i.title) for i in iter_items(tree))
    else:
        entries = iter(tree.modules)
    return [e for e in entries if e.id and e.title]


def all_ids(tree: Any) -> set[str]:
    tree = parse_curriculum(tree)
    if isinstance(tree, HierarchicalCurriculum):
        return {i.id for i in iter_items(tree) if i.id}
    return {m.id for m in tree.modules if m.id}


def to_json(tree: CurriculumTree) -> list[dict]:
    if isinstance(tree, FlatCurriculum):
        return [{"id": m.id, "title": m.title} for m in tree.modules]
    out: list[dict] = []
    for section in tree.sections:
        items = []
        for i in section.items:
            d = {"id": i.id, "title": i.title, "type": i.type}
            if i.source_ref:
                d["source_ref"] = i.source_ref
            if i.context_ref:
                d["context_ref"] = i.context_ref
            if i.external_url:
                d["external_url"] = i.external_url
            items.append(d)
        out.append({"id": section.id, "title": section.title, "items": items})
    return out
