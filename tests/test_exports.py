import sys
from pathlib import Path
from types import SimpleNamespace

sys.path.append(str(Path(__file__).resolve().parents[1]))

from chapterledger.services.pdf_export import chapter_paragraphs, compile_book_pdf, pdf_safe_text
from chapterledger.services.text_export import book_title, compile_book_markdown


def _project(**overrides):
    fields = {
        "inputs": {"title": ""},
        "brief": {"titleSuggestion": "The Bell Keeper", "oneSentenceHook": "A bell that should not ring."},
        "chapters": [
            {"index": 1, "title": "Fall", "draftText": "Model prose.", "userText": "Edited prose."},
            {"index": 0, "title": "Storm", "draftText": "Rain on glass.", "userText": ""},
        ],
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


def test_markdown_uses_effective_text_in_index_order():
    markdown = compile_book_markdown(_project())

    assert markdown == (
        "# The Bell Keeper\n"
        "\n"
        "> A bell that should not ring.\n"
        "\n"
        "## Chapter 0: Storm\n"
        "\n"
        "Rain on glass.\n"
        "\n"
        "## Chapter 1: Fall\n"
        "\n"
        "Edited prose.\n"
        "\n"
    )


def test_title_precedence():
    assert book_title(_project(inputs={"title": "  Mine  "})) == "Mine"
    assert book_title(_project()) == "The Bell Keeper"
    assert book_title(_project(brief=None)) == "Untitled Book"


def test_markdown_without_hook():
    markdown = compile_book_markdown(_project(brief=None, chapters=[]))

    assert markdown == "# Untitled Book\n\n"


def test_pdf_export_produces_pdf_bytes():
    long_word = "x" * 400
    project = _project(
        chapters=[
            {
                "index": 0,
                "title": "Storm — Part One",
                "draftText": f"“Rain,” she said…\n\n{long_word}",
                "userText": "",
            }
        ]
    )

    pdf_bytes = compile_book_pdf(project)

    assert isinstance(pdf_bytes, bytes)
    assert pdf_bytes.startswith(b"%PDF")


def test_pdf_safe_text_replaces_typographic_punctuation():
    assert pdf_safe_text("“Hi” — it’s…") == '"Hi" - it\'s...'
    assert pdf_safe_text("中") == "?"


def test_chapter_paragraphs():
    assert chapter_paragraphs("One\nline.\n\n\nTwo.\n\n  ") == ["One line.", "Two."]
