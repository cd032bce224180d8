from __future__ import annotations

from typing import Any, Callable

from flask import Response, current_app, jsonify, request
from werkzeug.datastructures import MultiDict

from ..services.chapters import ChapterNotFoundError, find_chapter
from ..services.generation import (
    generate_brief_and_bible,
    generate_next_chapter,
    generate_outline,
    regenerate_chapter,
)
from ..services.model_client import ModelCallError
from ..services.payloads import ModelSchemaError, coerce_index
from ..services.pdf_export import compile_book_pdf
from ..services.project_store import (
    ProjectNotFoundError,
    create_project,
    delete_project,
    get_project,
    list_projects,
    save_user_edits,
    update_project_inputs,
)
from ..services.response_parser import ModelResponseParseError
from ..services.rewind import clear_and_rewind_from_chapter
from ..services.text_export import ExportError, compile_book_markdown
from . import bp
from .forms import ProjectInputsForm


@bp.errorhandler(ProjectNotFoundError)
@bp.errorhandler(ChapterNotFoundError)
def _not_found(exc: LookupError):
    return jsonify({"error": str(exc)}), 404


@bp.errorhandler(ModelCallError)
@bp.errorhandler(ModelResponseParseError)
@bp.errorhandler(ModelSchemaError)
def _model_failure(exc: Exception):
    current_app.logger.error("Generation failed: %s", exc)
    return jsonify({"error": str(exc)}), 502


@bp.errorhandler(ExportError)
def _export_failure(exc: ExportError):
    current_app.logger.error("Export failed: %s", exc)
    return jsonify({"error": str(exc)}), 500


@bp.route("", methods=["GET"])
def index():
    return jsonify(list_projects())


@bp.route("", methods=["POST"])
def create():
    payload = request.get_json(silent=True) or {}
    inputs = payload.get("inputs") if isinstance(payload.get("inputs"), dict) else None
    if inputs:
        form = _inputs_form(inputs)
        if not form.validate():
            return jsonify({"error": "Invalid project inputs.", "fields": form.errors}), 422
        inputs = form.submitted_inputs(inputs.keys())
    project = create_project(inputs)
    return jsonify(project.to_dict()), 201


@bp.route("/<project_id>", methods=["GET"])
def detail(project_id: str):
    return jsonify(get_project(project_id).to_dict())


@bp.route("/<project_id>/inputs", methods=["PUT"])
def update_inputs(project_id: str):
    project = get_project(project_id)
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Send the inputs as a JSON object."}), 400

    form = _inputs_form(payload)
    if not form.validate():
        return jsonify({"error": "Invalid project inputs.", "fields": form.errors}), 422

    project = update_project_inputs(project, form.submitted_inputs(payload.keys()))
    return jsonify(project.to_dict())


@bp.route("/<project_id>", methods=["DELETE"])
def delete(project_id: str):
    delete_project(get_project(project_id))
    return jsonify({"ok": True})


@bp.route("/<project_id>/brief-bible", methods=["POST"])
def brief_bible(project_id: str):
    return _run_stage(generate_brief_and_bible, project_id)


@bp.route("/<project_id>/outline", methods=["POST"])
def outline(project_id: str):
    return _run_stage(generate_outline, project_id)


@bp.route("/<project_id>/chapters/next", methods=["POST"])
def next_chapter(project_id: str):
    return _run_stage(generate_next_chapter, project_id)


@bp.route("/<project_id>/chapters/<int:chapter_index>/regenerate", methods=["POST"])
def regenerate(project_id: str, chapter_index: int):
    project = get_project(project_id)
    if find_chapter(project.chapters, chapter_index) is not None:
        # Later chapters were written against the facts being replaced.
        project = clear_and_rewind_from_chapter(project, chapter_index + 1)
    project = regenerate_chapter(project, chapter_index)
    return jsonify(project.to_dict())


@bp.route("/<project_id>/chapters/<int:chapter_index>/edits", methods=["PUT"])
def chapter_edits(project_id: str, chapter_index: int):
    project = get_project(project_id)
    payload = request.get_json(silent=True) or {}
    text = payload.get("text", payload.get("userText", ""))
    if text is not None and not isinstance(text, str):
        return jsonify({"error": "Chapter text must be a string."}), 400

    continuity = payload.get("continuity")
    if continuity is not None and not isinstance(continuity, dict):
        return jsonify({"error": "Continuity overrides must be a JSON object."}), 400

    project = save_user_edits(project, chapter_index, text, continuity=continuity)
    return jsonify(project.to_dict())


@bp.route("/<project_id>/chapters/rewind", methods=["POST"])
def rewind(project_id: str):
    project = get_project(project_id)
    payload = request.get_json(silent=True) or {}
    raw_index = payload.get("chapterIndex", payload.get("index", 0))
    chapter_index = coerce_index(raw_index)
    if chapter_index is None:
        return jsonify({"error": "Provide a non-negative chapterIndex to rewind from."}), 400

    project = clear_and_rewind_from_chapter(project, chapter_index)
    return jsonify(project.to_dict())


@bp.route("/<project_id>/download/markdown", methods=["GET"])
def download_markdown(project_id: str):
    markdown = compile_book_markdown(get_project(project_id))
    return Response(markdown, content_type="text/markdown; charset=utf-8")


@bp.route("/<project_id>/download/pdf", methods=["GET"])
def download_pdf(project_id: str):
    pdf_bytes = compile_book_pdf(get_project(project_id))
    return Response(
        pdf_bytes,
        mimetype="application/pdf",
        headers={"Content-Disposition": 'attachment; filename="book.pdf"'},
    )


def _run_stage(stage: Callable[[Any], Any], project_id: str):
    project = stage(get_project(project_id))
    return jsonify(project.to_dict())


def _inputs_form(values: dict) -> ProjectInputsForm:
    formdata = MultiDict({key: str(value) for key, value in values.items() if value is not None})
    return ProjectInputsForm(formdata=formdata)
