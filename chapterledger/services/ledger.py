"""Continuity ledger engine.

The ledger is the rolling "last known state" of the story: who is where and
in what condition, which events happened in which order, and which plot
threads are still open. It is never authored directly. It is either merged
forward from one chapter's continuity facts or rebuilt by folding every
chapter's facts in index order.

Everything here is pure: inputs are never mutated and no I/O happens.
"""
from __future__ import annotations

import json
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional

Ledger = Dict[str, Any]

_STATE_KEYS = ("charactersState", "locationsState")


def default_ledger() -> Ledger:
    """Return an empty ledger."""

    return {
        "charactersState": {},
        "locationsState": {},
        "timeline": [],
        "openLoops": [],
    }


def copy_ledger(ledger: Optional[Mapping[str, Any]]) -> Ledger:
    """Return a normalised copy of ``ledger`` that is safe to modify."""

    result = default_ledger()
    if not isinstance(ledger, Mapping):
        return result

    for key in _STATE_KEYS:
        value = ledger.get(key)
        if isinstance(value, Mapping):
            result[key] = dict(value)
    for key in ("timeline", "openLoops"):
        value = ledger.get(key)
        if isinstance(value, list):
            result[key] = list(value)
    return result


def merge_ledger(ledger: Optional[Mapping[str, Any]], facts: Optional[Mapping[str, Any]]) -> Ledger:
    """Merge one chapter's continuity ``facts`` into ``ledger``.

    Character and location states are overlaid key by key, so a name the
    chapter does not mention keeps its previous state. Timeline events are
    appended without de-duplication. Open loops are unioned: existing loops
    keep their order and unseen loops follow in the order the chapter lists
    them.

    Chapter facts carry their events under ``timelineEvents``; a ledger
    carries them under ``timeline``. ``timeline`` is read only when
    ``timelineEvents`` is absent, so a ledger can be folded into another
    without doubling events.
    """

    merged = copy_ledger(ledger)
    if not isinstance(facts, Mapping):
        return merged

    for key in _STATE_KEYS:
        patch = facts.get(key)
        if isinstance(patch, Mapping):
            merged[key].update(patch)

    events_key = "timelineEvents" if "timelineEvents" in facts else "timeline"
    events = facts.get(events_key)
    if isinstance(events, list):
        merged["timeline"].extend(events)

    loops = facts.get("openLoops")
    if isinstance(loops, list):
        seen = {_loop_key(loop) for loop in merged["openLoops"]}
        for loop in loops:
            key = _loop_key(loop)
            if key in seen:
                continue
            seen.add(key)
            merged["openLoops"].append(loop)

    return merged


def rebuild_ledger_from_chapters(
    chapters: Optional[Iterable[Mapping[str, Any]]],
    stop_before_index: Optional[float] = None,
) -> Ledger:
    """Rebuild the ledger by folding chapter continuity in index order.

    Chapters whose index is at or beyond ``stop_before_index`` are left out
    entirely, which is what keeps a rewound ledger free of facts asserted by
    discarded chapters. ``None`` means no cutoff.
    """

    cutoff = math.inf if stop_before_index is None else stop_before_index
    ledger = default_ledger()
    for chapter in sorted(_chapter_records(chapters), key=_sort_key):
        index = _chapter_index(chapter)
        if index is not None and index >= cutoff:
            break
        continuity = chapter.get("continuity")
        if continuity:
            ledger = merge_ledger(ledger, continuity)
    return ledger


def _chapter_records(chapters: Optional[Iterable[Mapping[str, Any]]]) -> List[Mapping[str, Any]]:
    if not chapters:
        return []
    return [chapter for chapter in chapters if isinstance(chapter, Mapping)]


def _chapter_index(chapter: Mapping[str, Any]) -> Optional[int]:
    index = chapter.get("index")
    if isinstance(index, bool) or not isinstance(index, int):
        return None
    return index


def _sort_key(chapter: Mapping[str, Any]) -> int:
    index = _chapter_index(chapter)
    return 0 if index is None else index


def _loop_key(loop: Any) -> Any:
    # Loops are normally strings; the model occasionally emits objects.
    if isinstance(loop, (dict, list)):
        return json.dumps(loop, sort_keys=True, ensure_ascii=False)
    return loop


__all__ = [
    "Ledger",
    "copy_ledger",
    "default_ledger",
    "merge_ledger",
    "rebuild_ledger_from_chapters",
]
