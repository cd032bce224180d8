"""Export a project's chapters as a paginated PDF document.

Text is normalised for the core Latin-1 fonts and wrapped manually before it
reaches FPDF, which keeps long unbroken words and typographic punctuation
from aborting the render.
"""
from __future__ import annotations

import re
import textwrap
import unicodedata
from typing import Any

from fpdf import FPDF

from .chapters import effective_text, sorted_chapters
from .text_export import ExportError, book_hook, book_title, chapter_heading

_PARAGRAPH_SPLIT = re.compile(r"\n{2,}")

_PDF_LATIN1_REPLACEMENTS = {
    ord("\u2010"): "-",  # hyphen
    ord("\u2011"): "-",  # non-breaking hyphen
    ord("\u2012"): "-",  # figure dash
    ord("\u2013"): "-",  # en dash
    ord("\u2014"): "-",  # em dash
    ord("\u2212"): "-",  # minus sign
    ord("\u2018"): "'",
    ord("\u2019"): "'",
    ord("\u201A"): "'",
    ord("\u201C"): '"',
    ord("\u201D"): '"',
    ord("\u201E"): '"',
    ord("\u00AB"): '"',
    ord("\u00BB"): '"',
    ord("\u2026"): "...",  # ellipsis
    ord("\u00A0"): " ",  # non-breaking space
    ord("\u2009"): " ",  # thin space
    ord("\u202F"): " ",  # narrow no-break space
    ord("\u200B"): "",  # zero-width space
    ord("\ufeff"): "",  # BOM
}


def pdf_safe_text(text: str) -> str:
    """Return ``text`` normalised for the PDF Latin-1 core fonts."""

    normalized = unicodedata.normalize("NFKC", text or "")
    normalized = normalized.replace("\t", " ")
    replaced = normalized.translate(_PDF_LATIN1_REPLACEMENTS)
    return replaced.encode("latin-1", "replace").decode("latin-1")


def _wrapped(text: str, *, width: int = 100) -> str:
    safe_text = pdf_safe_text(text)
    wrapped_lines = []
    for raw_line in safe_text.splitlines():
        if not raw_line:
            wrapped_lines.append("")
            continue
        chunks = textwrap.wrap(raw_line, width=width, break_long_words=True, break_on_hyphens=False)
        wrapped_lines.extend(chunks or [""])
    return "\n".join(wrapped_lines)


def _write_block(pdf: FPDF, width: float, height: float, text: str) -> None:
    sanitized = _wrapped(text)
    if not sanitized:
        return
    pdf.set_x(pdf.l_margin)
    pdf.multi_cell(width, height, sanitized)


def chapter_paragraphs(text: str) -> list[str]:
    """Split chapter text on blank lines, folding inner newlines to spaces."""

    paragraphs = []
    for block in _PARAGRAPH_SPLIT.split(text or ""):
        cleaned = block.replace("\n", " ").strip()
        if cleaned:
            paragraphs.append(cleaned)
    return paragraphs


def compile_book_pdf(project: Any) -> bytes:
    """Render ``project`` to PDF bytes: title page, hook, one page per chapter."""

    pdf = FPDF()
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.set_left_margin(15)
    pdf.set_right_margin(15)
    effective_width = pdf.w - pdf.l_margin - pdf.r_margin

    pdf.add_page()
    pdf.set_font("Times", "B", 20)
    _write_block(pdf, effective_width, 10, book_title(project))

    hook = book_hook(project)
    if hook:
        pdf.ln(4)
        pdf.set_font("Times", "I", 12)
        _write_block(pdf, effective_width, 6, hook)

    for chapter in sorted_chapters(getattr(project, "chapters", None)):
        pdf.add_page()
        pdf.set_font("Times", "B", 14)
        _write_block(pdf, effective_width, 10, chapter_heading(chapter))
        pdf.ln(2)

        pdf.set_font("Times", "", 12)
        for paragraph in chapter_paragraphs(effective_text(chapter)):
            _write_block(pdf, effective_width, 6.5, paragraph)
            pdf.ln(1.5)

    try:
        return bytes(pdf.output())
    except Exception as exc:  # pragma: no cover - renderer failure
        raise ExportError(f"Unable to export PDF: {exc}") from exc


__all__ = ["chapter_paragraphs", "compile_book_pdf", "pdf_safe_text"]
