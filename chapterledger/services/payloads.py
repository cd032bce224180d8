"""Typed views over the JSON the model returns for each stage.

Model-authored content is schema-flexible, so unknown fields are kept
untouched; only the keys the pipeline depends on are checked.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional


class ModelSchemaError(ValueError):
    """Raised when a parsed model response lacks required top-level keys."""

    def __init__(self, stage: str, missing: List[str]) -> None:
        self.stage = stage
        self.missing = missing
        super().__init__(
            f"Model response for the {stage} stage is missing required keys: {', '.join(missing)}."
        )


@dataclass
class BriefBiblePayload:
    brief: Dict[str, Any]
    bible: Dict[str, Any]

    @property
    def core_concept(self) -> str:
        value = self.brief.get("coreConcept")
        return value.strip() if isinstance(value, str) else ""


@dataclass
class OutlinePayload:
    outline: Dict[str, Any]
    chapter_summaries: List[Dict[str, Any]]
    chapter_contracts: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class ChapterDraftPayload:
    prose: str
    title: Optional[str] = None
    continuity: Dict[str, Any] = field(default_factory=dict)


def parse_brief_bible(data: Mapping[str, Any]) -> BriefBiblePayload:
    brief = data.get("brief")
    bible = data.get("bible")
    missing = [
        key
        for key, value in (("brief", brief), ("bible", bible))
        if not isinstance(value, Mapping)
    ]
    if missing:
        raise ModelSchemaError("brief and bible", missing)
    return BriefBiblePayload(brief=dict(brief), bible=dict(bible))


def parse_outline(data: Mapping[str, Any]) -> OutlinePayload:
    """Validate the outline stage response.

    Chapter summaries and contracts without a usable integer ``index`` are
    dropped; indices are coerced to ``int`` and the first entry wins when the
    model repeats an index.
    """

    outline = data.get("outline")
    if not isinstance(outline, Mapping):
        raise ModelSchemaError("outline", ["outline"])

    summaries_raw = outline.get("chapterSummaries")
    if not isinstance(summaries_raw, list):
        raise ModelSchemaError("outline", ["outline.chapterSummaries"])

    summaries = _indexed_entries(summaries_raw)
    outline_doc = dict(outline)
    outline_doc["chapterSummaries"] = summaries

    contracts_raw = data.get("chapterContracts")
    contracts = _indexed_entries(contracts_raw) if isinstance(contracts_raw, list) else []

    return OutlinePayload(outline=outline_doc, chapter_summaries=summaries, chapter_contracts=contracts)


def parse_chapter_draft(data: Mapping[str, Any]) -> ChapterDraftPayload:
    prose = data.get("prose")
    if not isinstance(prose, str) or not prose.strip():
        raise ModelSchemaError("chapter", ["prose"])

    title_raw = data.get("title")
    title = title_raw.strip() if isinstance(title_raw, str) and title_raw.strip() else None

    continuity_raw = data.get("continuity")
    continuity = dict(continuity_raw) if isinstance(continuity_raw, Mapping) else {}

    return ChapterDraftPayload(prose=prose, title=title, continuity=continuity)


def coerce_index(value: Any) -> Optional[int]:
    """Return ``value`` as a non-negative chapter index, or ``None``."""

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float) and value.is_integer():
        return int(value) if value >= 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _indexed_entries(raw_entries: List[Any]) -> List[Dict[str, Any]]:
    entries: List[Dict[str, Any]] = []
    seen: set[int] = set()
    for item in raw_entries:
        if not isinstance(item, Mapping):
            continue
        index = coerce_index(item.get("index"))
        if index is None or index in seen:
            continue
        seen.add(index)
        entry = dict(item)
        entry["index"] = index
        entries.append(entry)
    return entries


__all__ = [
    "BriefBiblePayload",
    "ChapterDraftPayload",
    "ModelSchemaError",
    "OutlinePayload",
    "coerce_index",
    "parse_brief_bible",
    "parse_chapter_draft",
    "parse_outline",
]
