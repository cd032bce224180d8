from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict

from .extensions import db


def _new_project_id() -> str:
    return str(uuid.uuid4())


class Project(db.Model):
    """A book project persisted as a set of schemaless JSON documents.

    Brief, bible, outline, contracts, chapters and the continuity ledger are
    model-authored and change shape between stages, so they are stored as
    JSON columns rather than normalised tables.
    """

    __tablename__ = "projects"

    id = db.Column(db.String(36), primary_key=True, default=_new_project_id)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    inputs = db.Column(db.JSON, nullable=False, default=dict)
    brief = db.Column(db.JSON, nullable=True)
    bible = db.Column(db.JSON, nullable=True)
    outline = db.Column(db.JSON, nullable=True)
    chapter_contracts = db.Column(db.JSON, nullable=False, default=list)
    chapters = db.Column(db.JSON, nullable=False, default=list)
    continuity_ledger = db.Column(db.JSON, nullable=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
            "inputs": self.inputs or {},
            "brief": self.brief,
            "bible": self.bible,
            "outline": self.outline,
            "chapterContracts": self.chapter_contracts or [],
            "chapters": self.chapters or [],
            "continuityLedger": self.continuity_ledger,
        }

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Project {self.id}>"
