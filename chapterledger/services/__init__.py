"""Service layer for the continuity-ledger book pipeline."""

from __future__ import annotations

from .chapters import ChapterNotFoundError  # noqa: F401
from .generation import (  # noqa: F401
    generate_brief_and_bible,
    generate_next_chapter,
    generate_outline,
    regenerate_chapter,
)
from .ledger import merge_ledger, rebuild_ledger_from_chapters  # noqa: F401
from .model_client import ModelCallError  # noqa: F401
from .payloads import ModelSchemaError  # noqa: F401
from .project_store import ProjectNotFoundError  # noqa: F401
from .response_parser import ModelResponseParseError, parse_model_json  # noqa: F401
from .rewind import clear_and_rewind_from_chapter  # noqa: F401

__all__ = [
    "ChapterNotFoundError",
    "ModelCallError",
    "ModelResponseParseError",
    "ModelSchemaError",
    "ProjectNotFoundError",
    "clear_and_rewind_from_chapter",
    "generate_brief_and_bible",
    "generate_next_chapter",
    "generate_outline",
    "merge_ledger",
    "parse_model_json",
    "rebuild_ledger_from_chapters",
    "regenerate_chapter",
]
