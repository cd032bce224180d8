"""Rewind a project to an earlier chapter.

Rewinding is the only way chapter content and ledger state are discarded.
Records at or beyond the cutoff are deleted rather than blanked, so the
ledger can be rebuilt from exactly the records that remain.
"""
from __future__ import annotations

from typing import Any, List

from flask import current_app

from ..models import Project
from .ledger import rebuild_ledger_from_chapters
from .payloads import coerce_index
from .project_store import as_json_array, save_project


def clear_and_rewind_from_chapter(project: Project, chapter_index: int) -> Project:
    """Delete chapters and contracts from ``chapter_index`` on and rebuild the ledger."""

    chapters = _records_before(project.chapters, chapter_index)
    contracts = _records_before(project.chapter_contracts, chapter_index)

    project.chapters = chapters
    project.chapter_contracts = contracts
    project.continuity_ledger = rebuild_ledger_from_chapters(chapters)

    current_app.logger.info(
        "Rewound project %s to chapter %s (%d chapters kept)", project.id, chapter_index, len(chapters)
    )
    return save_project(project)


def _records_before(records: Any, cutoff: int) -> List[Any]:
    kept: List[Any] = []
    for record in as_json_array(records):
        index = coerce_index(record.get("index")) if isinstance(record, dict) else None
        # Records without a usable index are never rewound away.
        if index is None or index < cutoff:
            kept.append(record)
    return kept


__all__ = ["clear_and_rewind_from_chapter"]
