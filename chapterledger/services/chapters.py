"""Chapter record helpers.

Chapters are stored as plain JSON documents on the project::

    {"index": 0, "title": "...", "draftText": "...", "userText": "...",
     "continuity": {...} | None, "approved": False}

``index`` is the chapter's identity. The helpers here never mutate the lists
they receive; they return new lists for the caller to persist.
"""
from __future__ import annotations

import copy
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .payloads import coerce_index

Chapter = Dict[str, Any]

DEFAULT_APPROVAL_MIN_CHARS = 50

SOURCE_MODEL = "model"
SOURCE_MODEL_REGENERATE = "model-regenerate"
SOURCE_USER = "user"


class ChapterNotFoundError(LookupError):
    """Raised when a chapter index does not resolve to a chapter record."""

    def __init__(self, index: int) -> None:
        self.index = index
        super().__init__(f"Chapter {index} not found.")


def is_approved(user_text: Optional[str], *, threshold: int = DEFAULT_APPROVAL_MIN_CHARS) -> bool:
    """Return whether ``user_text`` counts as a meaningful user edit.

    A heuristic: the stripped text must be longer than ``threshold``
    characters.
    """

    if not user_text:
        return False
    return len(user_text.strip()) > threshold


def effective_text(chapter: Mapping[str, Any]) -> str:
    """User text when present, otherwise the model draft."""

    user_text = (chapter.get("userText") or "").strip()
    if user_text:
        return user_text
    return chapter.get("draftText") or ""


def empty_chapter(index: int, title: Optional[str] = None) -> Chapter:
    return {
        "index": index,
        "title": title or "",
        "draftText": "",
        "userText": "",
        "continuity": None,
        "approved": False,
    }


def chapter_index(chapter: Mapping[str, Any]) -> Optional[int]:
    return coerce_index(chapter.get("index"))


def sorted_chapters(chapters: Optional[Iterable[Mapping[str, Any]]]) -> List[Chapter]:
    """Return copies of ``chapters`` ordered by ascending index."""

    records = [dict(chapter) for chapter in chapters or [] if isinstance(chapter, Mapping)]
    return sorted(records, key=lambda chapter: chapter_index(chapter) or 0)


def find_chapter(chapters: Optional[Iterable[Mapping[str, Any]]], index: int) -> Optional[Mapping[str, Any]]:
    for chapter in chapters or []:
        if isinstance(chapter, Mapping) and chapter_index(chapter) == index:
            return chapter
    return None


def find_by_index(entries: Optional[Iterable[Any]], index: int) -> Optional[Dict[str, Any]]:
    """Return the outline summary or contract entry for ``index``."""

    for entry in entries or []:
        if isinstance(entry, Mapping) and coerce_index(entry.get("index")) == index:
            return dict(entry)
    return None


def reconcile_chapters(
    summaries: Iterable[Mapping[str, Any]],
    existing: Optional[Iterable[Mapping[str, Any]]],
) -> List[Chapter]:
    """Merge a fresh outline's chapter list with existing chapter records.

    The summaries decide which indices exist and what they are titled.
    Any record already present at a surviving index keeps its draft text,
    user text, continuity and approval flag.
    """

    existing_by_index: Dict[int, Mapping[str, Any]] = {}
    for chapter in existing or []:
        if not isinstance(chapter, Mapping):
            continue
        index = chapter_index(chapter)
        if index is not None:
            existing_by_index[index] = chapter

    reconciled: List[Chapter] = []
    for summary in summaries:
        index = coerce_index(summary.get("index"))
        if index is None:
            continue
        previous = existing_by_index.get(index) or {}
        reconciled.append(
            {
                "index": index,
                "title": summary.get("title") or previous.get("title") or "",
                "draftText": previous.get("draftText") or "",
                "userText": previous.get("userText") or "",
                "continuity": copy.deepcopy(previous.get("continuity")) or None,
                "approved": bool(previous.get("approved", False)),
            }
        )
    return reconciled


def replace_chapter(chapters: Iterable[Mapping[str, Any]], updated: Mapping[str, Any]) -> List[Chapter]:
    """Return ``chapters`` with the record at ``updated['index']`` swapped in.

    The record is appended when no chapter holds that index yet. The result
    is ordered by index.
    """

    index = chapter_index(updated)
    result = [dict(chapter) for chapter in chapters if chapter_index(chapter) != index]
    result.append(dict(updated))
    return sorted_chapters(result)


def apply_draft(
    chapter: Mapping[str, Any],
    *,
    prose: str,
    continuity: Mapping[str, Any],
    source: str,
    title: Optional[str] = None,
    threshold: int = DEFAULT_APPROVAL_MIN_CHARS,
) -> Chapter:
    """Return ``chapter`` carrying a fresh model draft.

    ``userText`` is left as it is; approval is recomputed from it so a new
    draft never approves itself.
    """

    updated = dict(chapter)
    if title:
        updated["title"] = title
    updated["draftText"] = prose
    updated["continuity"] = {**dict(continuity), "source": source}
    updated["approved"] = is_approved(updated.get("userText"), threshold=threshold)
    return updated


def apply_user_edit(
    chapters: Iterable[Mapping[str, Any]],
    index: int,
    text: Optional[str],
    *,
    continuity: Optional[Mapping[str, Any]] = None,
    threshold: int = DEFAULT_APPROVAL_MIN_CHARS,
) -> List[Chapter]:
    """Store a user edit on the chapter at ``index``.

    When ``continuity`` is supplied it replaces the chapter's facts and is
    tagged as user-sourced.
    """

    records = list(chapters)
    chapter = find_chapter(records, index)
    if chapter is None:
        raise ChapterNotFoundError(index)

    updated = dict(chapter)
    updated["userText"] = text or ""
    updated["approved"] = is_approved(updated["userText"], threshold=threshold)
    if continuity is not None:
        updated["continuity"] = {**dict(continuity), "source": SOURCE_USER}
    return replace_chapter(records, updated)


def previous_chapter_context(chapters: Iterable[Mapping[str, Any]], upto_index: int) -> List[Dict[str, Any]]:
    """Compact view of chapters before ``upto_index`` that carry content."""

    context: List[Dict[str, Any]] = []
    for chapter in sorted_chapters(chapters):
        index = chapter_index(chapter)
        if index is None or index >= upto_index:
            continue
        if not (chapter.get("continuity") or chapter.get("userText") or chapter.get("draftText")):
            continue
        context.append(
            {
                "index": index,
                "title": chapter.get("title") or "",
                "continuity": chapter.get("continuity") or None,
            }
        )
    return context


__all__ = [
    "Chapter",
    "ChapterNotFoundError",
    "DEFAULT_APPROVAL_MIN_CHARS",
    "SOURCE_MODEL",
    "SOURCE_MODEL_REGENERATE",
    "SOURCE_USER",
    "apply_draft",
    "apply_user_edit",
    "chapter_index",
    "effective_text",
    "empty_chapter",
    "find_by_index",
    "find_chapter",
    "is_approved",
    "previous_chapter_context",
    "reconcile_chapters",
    "replace_chapter",
    "sorted_chapters",
]
