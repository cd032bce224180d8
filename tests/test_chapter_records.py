import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from chapterledger.services.chapters import (
    ChapterNotFoundError,
    apply_draft,
    apply_user_edit,
    effective_text,
    empty_chapter,
    is_approved,
    previous_chapter_context,
    reconcile_chapters,
    replace_chapter,
)


def test_approval_threshold_boundary():
    assert is_approved("x" * 51) is True
    assert is_approved("x" * 50) is False
    assert is_approved("   " + "x" * 50 + "\n\n") is False
    assert is_approved("") is False
    assert is_approved(None) is False


def test_approval_threshold_is_configurable():
    assert is_approved("short edit", threshold=5) is True
    assert is_approved("short edit", threshold=10) is False


def test_effective_text_prefers_user_text():
    chapter = empty_chapter(0, "Opening")
    assert effective_text(chapter) == ""

    chapter["draftText"] = "Model draft."
    assert effective_text(chapter) == "Model draft."

    chapter["userText"] = "   "
    assert effective_text(chapter) == "Model draft."

    chapter["userText"] = "Edited by hand."
    assert effective_text(chapter) == "Edited by hand."


def test_reconcile_preserves_progress_at_surviving_indices():
    drafted = {
        "index": 3,
        "title": "Old title",
        "draftText": "The storm broke over the harbour.",
        "userText": "The storm broke. " * 5,
        "continuity": {"charactersState": {"Mara": "Soaked"}, "source": "model"},
        "approved": True,
    }
    dropped = {
        "index": 5,
        "title": "Gone",
        "draftText": "Removed later.",
        "userText": "",
        "continuity": None,
        "approved": False,
    }
    summaries = [{"index": i, "title": f"New {i}", "summary": "..."} for i in range(5)]

    chapters = reconcile_chapters(summaries, [dropped, drafted])

    assert [chapter["index"] for chapter in chapters] == [0, 1, 2, 3, 4]
    kept = chapters[3]
    assert kept["title"] == "New 3"
    for key in ("draftText", "userText", "continuity", "approved"):
        assert kept[key] == drafted[key]
    assert chapters[0] == empty_chapter(0, "New 0")


def test_apply_draft_never_touches_user_text():
    chapter = {**empty_chapter(1, "Draft"), "userText": "Hand-written replacement " * 4}

    updated = apply_draft(
        chapter,
        prose="New prose.",
        continuity={"openLoops": ["The bell"]},
        source="model-regenerate",
        title="Bells",
    )

    assert updated["userText"] == chapter["userText"]
    assert updated["draftText"] == "New prose."
    assert updated["title"] == "Bells"
    assert updated["continuity"] == {"openLoops": ["The bell"], "source": "model-regenerate"}
    assert updated["approved"] is True


def test_fresh_draft_is_not_auto_approved():
    updated = apply_draft(empty_chapter(0), prose="x" * 500, continuity={}, source="model")

    assert updated["approved"] is False
    assert updated["title"] == ""


def test_apply_user_edit_tags_continuity_override():
    chapters = [empty_chapter(0, "One"), empty_chapter(1, "Two")]

    edited = apply_user_edit(
        chapters,
        1,
        "y" * 80,
        continuity={"charactersState": {"Ivo": "Missing"}},
    )

    assert edited[1]["userText"] == "y" * 80
    assert edited[1]["approved"] is True
    assert edited[1]["continuity"] == {"charactersState": {"Ivo": "Missing"}, "source": "user"}
    assert chapters[1]["userText"] == ""


def test_apply_user_edit_unknown_chapter():
    with pytest.raises(ChapterNotFoundError):
        apply_user_edit([empty_chapter(0)], 4, "text")


def test_replace_chapter_appends_and_orders():
    chapters = [empty_chapter(0), empty_chapter(2)]

    result = replace_chapter(chapters, empty_chapter(1, "Middle"))

    assert [chapter["index"] for chapter in result] == [0, 1, 2]
    assert result[1]["title"] == "Middle"


def test_previous_chapter_context_is_compact():
    chapters = [
        {**empty_chapter(0, "One"), "draftText": "Text", "continuity": {"openLoops": ["A"]}},
        empty_chapter(1, "Empty"),
        {**empty_chapter(2, "Three"), "userText": "Edited"},
        {**empty_chapter(3, "Four"), "draftText": "Later"},
    ]

    context = previous_chapter_context(chapters, 3)

    assert context == [
        {"index": 0, "title": "One", "continuity": {"openLoops": ["A"]}},
        {"index": 2, "title": "Three", "continuity": None},
    ]
