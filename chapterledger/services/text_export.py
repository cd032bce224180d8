"""Helpers for exporting a project's chapters as Markdown text."""
from __future__ import annotations

from typing import Any, Mapping, Optional

from .chapters import effective_text, sorted_chapters


class ExportError(RuntimeError):
    """Raised when a book export cannot be produced."""


def _clean(value: Optional[str]) -> str:
    """Return ``value`` stripped of leading/trailing whitespace."""

    if not value:
        return ""
    return str(value).strip()


def book_title(project: Any) -> str:
    inputs = getattr(project, "inputs", None) or {}
    brief = getattr(project, "brief", None) or {}
    return (
        _clean(inputs.get("title"))
        or (_clean(brief.get("titleSuggestion")) if isinstance(brief, Mapping) else "")
        or "Untitled Book"
    )


def book_hook(project: Any) -> str:
    brief = getattr(project, "brief", None) or {}
    if not isinstance(brief, Mapping):
        return ""
    return _clean(brief.get("oneSentenceHook"))


def chapter_heading(chapter: Mapping[str, Any]) -> str:
    return f"Chapter {chapter.get('index')}: {_clean(chapter.get('title'))}"


def compile_book_markdown(project: Any) -> str:
    """Render ``project`` as Markdown: title, optional hook, then each chapter."""

    lines: list[str] = [f"# {book_title(project)}", ""]

    hook = book_hook(project)
    if hook:
        lines.extend([f"> {hook}", ""])

    for chapter in sorted_chapters(getattr(project, "chapters", None)):
        lines.extend([f"## {chapter_heading(chapter)}", ""])
        lines.extend([effective_text(chapter).strip(), ""])

    return "\n".join(lines) + "\n"


__all__ = ["ExportError", "book_hook", "book_title", "chapter_heading", "compile_book_markdown"]
