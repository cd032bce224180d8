"""Stage orchestration for the book pipeline.

Stages run in a fixed order: brief + bible, then outline, then chapter
drafts. Every entry point first makes sure the previous stage's output is
present and runs that stage itself when it is not, so calling
:func:`generate_next_chapter` on an empty project produces the brief, bible
and outline on the way.

Each stage waits on exactly one model call; everything else is in-memory
transformation followed by a wholesale save of the project document.
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from flask import current_app

from ..models import Project
from ..prompts import (
    CHAPTER_TASK,
    REGENERATE_TASK,
    SYSTEM_PROMPTS,
    build_style_card,
    build_user_canon,
    format_section,
)
from .chapters import (
    SOURCE_MODEL,
    SOURCE_MODEL_REGENERATE,
    ChapterNotFoundError,
    apply_draft,
    chapter_index,
    empty_chapter,
    find_by_index,
    find_chapter,
    previous_chapter_context,
    reconcile_chapters,
    replace_chapter,
    sorted_chapters,
)
from .ledger import copy_ledger, merge_ledger, rebuild_ledger_from_chapters
from .model_client import _get_model_client
from .payloads import coerce_index, parse_brief_bible, parse_chapter_draft, parse_outline
from .project_store import normalize_inputs, save_project
from .response_parser import DEFAULT_MAX_ATTEMPTS, parse_model_json

STAGE_EMPTY = "empty"
STAGE_HAS_BRIEF_BIBLE = "has_brief_bible"
STAGE_HAS_OUTLINE = "has_outline"
STAGE_HAS_CHAPTERS = "has_chapters"


def project_stage(project: Project) -> str:
    """Return how far ``project`` has progressed through the pipeline."""

    # Empty documents still count as generated; only a missing one reruns a stage.
    if project.brief is None or project.bible is None:
        return STAGE_EMPTY
    if project.outline is None:
        return STAGE_HAS_BRIEF_BIBLE
    if any(chapter.get("draftText") for chapter in project.chapters or [] if isinstance(chapter, Mapping)):
        return STAGE_HAS_CHAPTERS
    return STAGE_HAS_OUTLINE


def generate_brief_and_bible(project: Project) -> Project:
    """Generate the book brief and story bible, overwriting earlier ones."""

    current_app.logger.info("generate_brief_and_bible start for project %s", project.id)
    inputs = normalize_inputs(project.inputs)

    input_text = "\n\n".join(
        [
            build_style_card(inputs),
            build_user_canon(inputs),
            f"User Core Concept:\n{inputs['coreConcept']}",
            "Task:\n"
            "- Refine the book's hook, positioning, and themes.\n"
            "- Propose strong but flexible character and world scaffolding.",
        ]
    )

    data = _request_stage_json("brief_bible", input_text)
    payload = parse_brief_bible(data)

    project.brief = payload.brief
    project.bible = payload.bible
    if not inputs["coreConcept"] and payload.core_concept:
        inputs["coreConcept"] = payload.core_concept
    project.inputs = inputs

    saved = save_project(project)
    current_app.logger.info("generate_brief_and_bible complete for project %s", project.id)
    return saved


def generate_outline(project: Project) -> Project:
    """Generate the outline and chapter contracts, keeping chapter progress."""

    current_app.logger.info("generate_outline start for project %s", project.id)
    if project_stage(project) == STAGE_EMPTY:
        current_app.logger.info("generate_outline: missing brief/bible, generating first")
        project = generate_brief_and_bible(project)

    inputs = normalize_inputs(project.inputs)
    input_text = "\n\n".join(
        [
            build_style_card(inputs),
            format_section("Book Brief", project.brief),
            format_section("Bible", project.bible),
            f"User chapter count: {inputs['totalChapters']}",
            "Task:\n"
            "Create a chapter-by-chapter outline with strong beginning-middle-end logic.\n"
            'Then create a "chapter contract" per chapter that will guide drafting.\n'
            "Avoid filler arcs.",
        ]
    )

    data = _request_stage_json("outline", input_text)
    payload = parse_outline(data)

    chapters = reconcile_chapters(payload.chapter_summaries, project.chapters)
    project.outline = payload.outline
    project.chapter_contracts = payload.chapter_contracts
    project.chapters = chapters
    # Outline changes can add or drop chapters, so the ledger is rebuilt.
    project.continuity_ledger = rebuild_ledger_from_chapters(chapters)

    saved = save_project(project)
    current_app.logger.info(
        "generate_outline complete for project %s (%d chapters)", project.id, len(chapters)
    )
    return saved


def generate_next_chapter(project: Project) -> Project:
    """Draft the first chapter that has no draft yet.

    Returns the project unchanged when every outlined chapter is drafted.
    """

    current_app.logger.info("generate_next_chapter start for project %s", project.id)
    project = _ensure_outline(project)

    target = next_chapter_index(project)
    if target is None:
        current_app.logger.info("generate_next_chapter: all chapters already drafted")
        return project

    current_app.logger.info("generate_next_chapter: next index %s", target)
    chapters = sorted_chapters(project.chapters)
    chapter = find_chapter(chapters, target)
    if chapter is None:
        # Rewind removes records; the outline still describes the chapter.
        summary = find_by_index(_chapter_summaries(project), target) or {}
        chapter = empty_chapter(target, summary.get("title"))

    ledger = copy_ledger(project.continuity_ledger)
    input_text = _build_chapter_input(
        project,
        target,
        continuity_context={
            "ledger": ledger,
            "previousChapters": previous_chapter_context(chapters, target),
        },
        task=CHAPTER_TASK,
    )

    data = _request_stage_json("chapter", input_text)
    payload = parse_chapter_draft(data)

    updated = apply_draft(
        chapter,
        prose=payload.prose,
        continuity=payload.continuity,
        source=SOURCE_MODEL,
        title=payload.title,
        threshold=_approval_threshold(),
    )
    project.chapters = replace_chapter(chapters, updated)
    project.continuity_ledger = merge_ledger(ledger, updated["continuity"])

    saved = save_project(project)
    current_app.logger.info("generate_next_chapter: saved chapter %s", target)
    return saved


def regenerate_chapter(project: Project, index: int) -> Project:
    """Redraft the chapter at ``index`` without touching its user text.

    The model only sees continuity from chapters before ``index``. After the
    new facts are stored the ledger is rebuilt from every chapter record, so
    regenerating an early chapter changes the facts the ledger attributes to
    it while later chapters keep their own stored continuity. Callers that
    need later chapters to follow the new facts rewind them first.
    """

    current_app.logger.info("regenerate_chapter start for project %s, chapter %s", project.id, index)
    project = _ensure_outline(project)

    chapters = sorted_chapters(project.chapters)
    chapter = find_chapter(chapters, index)
    if chapter is None:
        raise ChapterNotFoundError(index)

    preview_chars = current_app.config.get("USER_TEXT_PREVIEW_CHARS", 2000)
    input_text = _build_chapter_input(
        project,
        index,
        continuity_context={
            "ledger": rebuild_ledger_from_chapters(chapters, stop_before_index=index),
            "previousChapters": previous_chapter_context(chapters, index),
        },
        task=REGENERATE_TASK,
        user_text_preview=(chapter.get("userText") or "")[:preview_chars],
    )

    data = _request_stage_json("chapter_regenerate", input_text)
    payload = parse_chapter_draft(data)

    updated = apply_draft(
        chapter,
        prose=payload.prose,
        continuity=payload.continuity,
        source=SOURCE_MODEL_REGENERATE,
        title=payload.title,
        threshold=_approval_threshold(),
    )
    chapters = replace_chapter(chapters, updated)
    project.chapters = chapters
    project.continuity_ledger = rebuild_ledger_from_chapters(chapters)

    saved = save_project(project)
    current_app.logger.info("regenerate_chapter: saved chapter %s", index)
    return saved


def next_chapter_index(project: Project) -> Optional[int]:
    """Lowest outlined or recorded index whose chapter has no draft."""

    indices = set()
    for summary in _chapter_summaries(project):
        index = coerce_index(summary.get("index")) if isinstance(summary, Mapping) else None
        if index is not None:
            indices.add(index)
    for chapter in project.chapters or []:
        if isinstance(chapter, Mapping):
            index = chapter_index(chapter)
            if index is not None:
                indices.add(index)

    for index in sorted(indices):
        chapter = find_chapter(project.chapters, index)
        if chapter is None or not chapter.get("draftText"):
            return index
    return None


def _ensure_outline(project: Project) -> Project:
    if project_stage(project) in (STAGE_EMPTY, STAGE_HAS_BRIEF_BIBLE):
        current_app.logger.info("No outline for project %s, generating first", project.id)
        return generate_outline(project)
    return project


def _chapter_summaries(project: Project) -> List[Any]:
    outline = project.outline if isinstance(project.outline, Mapping) else {}
    summaries = outline.get("chapterSummaries")
    return summaries if isinstance(summaries, list) else []


def _build_chapter_input(
    project: Project,
    index: int,
    *,
    continuity_context: Dict[str, Any],
    task: str,
    user_text_preview: Optional[str] = None,
) -> str:
    inputs = normalize_inputs(project.inputs)
    sections = [
        build_style_card(inputs),
        format_section("Book Brief", project.brief),
        format_section("Bible", project.bible),
        format_section("Chapter Summary", find_by_index(_chapter_summaries(project), index)),
        format_section("Chapter Contract", find_by_index(project.chapter_contracts, index)),
    ]
    if user_text_preview is not None:
        sections.append(f"Existing User Text (if any):\n{user_text_preview}")
    sections.extend(
        [
            format_section("Continuity Context", continuity_context),
            "User word targets:\n"
            f"- Target: {inputs['chapterTargetWords']}\n"
            f"- Range: {inputs['chapterMinWords']}-{inputs['chapterMaxWords']}",
            task,
        ]
    )
    return "\n\n".join(sections)


def _request_stage_json(stage: str, input_text: str) -> Dict[str, Any]:
    client = _get_model_client()
    text = client.complete(SYSTEM_PROMPTS[stage], input_text)
    current_app.logger.info("%s: model output length %d", stage, len(text or ""))
    max_attempts = current_app.config.get("JSON_SALVAGE_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS)
    data = parse_model_json(text, max_attempts=max_attempts)
    current_app.logger.info("%s: JSON parsed OK", stage)
    return data


def _approval_threshold() -> int:
    return current_app.config.get("CHAPTER_APPROVAL_MIN_CHARS", 50)


__all__ = [
    "STAGE_EMPTY",
    "STAGE_HAS_BRIEF_BIBLE",
    "STAGE_HAS_CHAPTERS",
    "STAGE_HAS_OUTLINE",
    "generate_brief_and_bible",
    "generate_next_chapter",
    "generate_outline",
    "next_chapter_index",
    "project_stage",
    "regenerate_chapter",
]
