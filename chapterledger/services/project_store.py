"""Persistence helpers for project documents.

Every mutation reads the whole project and writes every document field back
(last write wins). JSON columns do not track in-place changes, so fields are
always reassigned with fresh copies before committing.
"""
from __future__ import annotations

import copy
import json
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from flask import current_app

from ..extensions import db
from ..models import Project
from .chapters import apply_user_edit
from .ledger import default_ledger, rebuild_ledger_from_chapters


class ProjectNotFoundError(LookupError):
    """Raised when a project identifier does not resolve."""

    def __init__(self, project_id: str) -> None:
        self.project_id = project_id
        super().__init__("Project not found")


INPUT_TEXT_DEFAULTS: Dict[str, str] = {
    "title": "",
    "coreConcept": "",
    "genre": "General Fiction",
    "subStyle": "",
    "tone": "Balanced",
    "voice": "3rd Person Limited",
    "targetAudience": "General Fiction",
    "ageRange": "18+",
    "humourLevel": "Medium",
    "characters": "",
    "locations": "",
    "additionalNotes": "",
}

INPUT_NUMBER_DEFAULTS: Dict[str, int] = {
    "totalChapters": 12,
    "chapterMinWords": 1500,
    "chapterMaxWords": 3000,
    "chapterTargetWords": 2000,
}


def normalize_inputs(inputs: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """Return ``inputs`` with every generation parameter present.

    Unknown keys are preserved. Counts that are missing, non-numeric or not
    positive fall back to their defaults.
    """

    normalized: Dict[str, Any] = dict(inputs or {})
    for key, default in INPUT_TEXT_DEFAULTS.items():
        value = normalized.get(key)
        normalized[key] = value if isinstance(value, str) and value else default
    for key, default in INPUT_NUMBER_DEFAULTS.items():
        normalized[key] = _positive_int(normalized.get(key), default)
    return normalized


def as_json_object_or_none(value: Any) -> Optional[Dict[str, Any]]:
    """Coerce ``value`` into a JSON object, boxing stray text as ``{"raw": ...}``."""

    if value is None:
        return None
    if isinstance(value, Mapping):
        return copy.deepcopy(dict(value))
    if isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            return None
        try:
            parsed = json.loads(trimmed)
        except json.JSONDecodeError:
            return {"raw": value}
        if isinstance(parsed, dict):
            return parsed
        return {"raw": value}
    return {"raw": str(value)}


def as_json_array(value: Any) -> List[Any]:
    """Coerce ``value`` into a JSON array."""

    if isinstance(value, list):
        return copy.deepcopy(value)
    if value is None:
        return []
    if isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            return []
        try:
            parsed = json.loads(trimmed)
        except json.JSONDecodeError:
            return [{"raw": value}]
        if isinstance(parsed, list):
            return parsed
        if isinstance(parsed, dict):
            return [parsed]
        return [{"raw": value}]
    if isinstance(value, Mapping):
        return [copy.deepcopy(dict(value))]
    return [{"raw": str(value)}]


def create_project(inputs: Optional[Mapping[str, Any]] = None) -> Project:
    now = datetime.utcnow()
    project = Project(
        created_at=now,
        updated_at=now,
        inputs=normalize_inputs(inputs),
        brief=None,
        bible=None,
        outline=None,
        chapter_contracts=[],
        chapters=[],
        continuity_ledger=default_ledger(),
    )
    db.session.add(project)
    db.session.commit()
    current_app.logger.info("Created project %s", project.id)
    return project


def get_project(project_id: str) -> Project:
    project = db.session.get(Project, project_id)
    if project is None:
        raise ProjectNotFoundError(project_id)

    # Rows written before the ledger was persisted get one derived on read.
    if not project.continuity_ledger:
        project.continuity_ledger = rebuild_ledger_from_chapters(as_json_array(project.chapters))
    return project


def save_project(project: Project) -> Project:
    """Write every document field of ``project`` back and bump ``updated_at``."""

    project.inputs = normalize_inputs(project.inputs)
    project.brief = as_json_object_or_none(project.brief)
    project.bible = as_json_object_or_none(project.bible)
    project.outline = as_json_object_or_none(project.outline)
    project.chapter_contracts = as_json_array(project.chapter_contracts)
    project.chapters = as_json_array(project.chapters)
    project.continuity_ledger = copy.deepcopy(project.continuity_ledger) or default_ledger()
    project.updated_at = datetime.utcnow()
    db.session.add(project)
    db.session.commit()
    return project


def update_project_inputs(project: Project, inputs: Mapping[str, Any]) -> Project:
    merged = dict(project.inputs or {})
    merged.update(inputs)
    project.inputs = normalize_inputs(merged)
    return save_project(project)


def save_user_edits(
    project: Project,
    chapter_index: int,
    text: Optional[str],
    *,
    continuity: Optional[Mapping[str, Any]] = None,
) -> Project:
    """Store a user's chapter text (and optional continuity override).

    The ledger is rebuilt because a continuity override may change facts
    asserted by a chapter in the middle of the book.
    """

    chapters = apply_user_edit(
        as_json_array(project.chapters),
        chapter_index,
        text,
        continuity=continuity,
        threshold=current_app.config.get("CHAPTER_APPROVAL_MIN_CHARS", 50),
    )
    project.chapters = chapters
    project.continuity_ledger = rebuild_ledger_from_chapters(chapters)
    current_app.logger.info("Saved user edits for chapter %s of project %s", chapter_index, project.id)
    return save_project(project)


def delete_project(project: Project) -> None:
    db.session.delete(project)
    db.session.commit()


def list_projects(limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """Summaries of the most recently updated projects."""

    resolved_limit = limit or current_app.config.get("PROJECT_LIST_LIMIT", 200)
    projects = (
        Project.query.order_by(Project.updated_at.desc()).limit(resolved_limit).all()
    )

    summaries: List[Dict[str, Any]] = []
    for project in projects:
        inputs = normalize_inputs(project.inputs)
        summaries.append(
            {
                "id": project.id,
                "title": inputs["title"] or "Untitled Project",
                "totalChapters": inputs["totalChapters"],
                "updatedAt": project.updated_at.isoformat() if project.updated_at else None,
                "inputs": inputs,
            }
        )
    return summaries


def _positive_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        number = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default
    return number if number > 0 else default


__all__ = [
    "INPUT_NUMBER_DEFAULTS",
    "INPUT_TEXT_DEFAULTS",
    "ProjectNotFoundError",
    "as_json_array",
    "as_json_object_or_none",
    "create_project",
    "delete_project",
    "get_project",
    "list_projects",
    "normalize_inputs",
    "save_project",
    "save_user_edits",
    "update_project_inputs",
]
