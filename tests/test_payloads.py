import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from chapterledger.services.payloads import (
    ModelSchemaError,
    coerce_index,
    parse_brief_bible,
    parse_chapter_draft,
    parse_outline,
)


def test_brief_bible_requires_both_sections():
    with pytest.raises(ModelSchemaError) as excinfo:
        parse_brief_bible({"brief": {"titleSuggestion": "Ash"}})

    assert excinfo.value.missing == ["bible"]


def test_brief_bible_exposes_core_concept():
    payload = parse_brief_bible(
        {"brief": {"coreConcept": "  A lighthouse keeper hears the sea.  "}, "bible": {"characters": []}}
    )

    assert payload.core_concept == "A lighthouse keeper hears the sea."
    assert payload.bible == {"characters": []}


def test_outline_normalises_indices_and_keeps_unknown_fields():
    payload = parse_outline(
        {
            "outline": {
                "overallArc": "Rise and fall",
                "chapterSummaries": [
                    {"index": "0", "title": "Start", "povCharacter": "Mara"},
                    {"index": 1.0, "title": "Middle"},
                    {"index": 1, "title": "Duplicate"},
                    {"title": "No index"},
                    "junk",
                ],
            },
            "chapterContracts": [{"index": 0, "mustInclude": ["storm"]}, {"index": -1}],
        }
    )

    assert [summary["index"] for summary in payload.chapter_summaries] == [0, 1]
    assert payload.chapter_summaries[0]["povCharacter"] == "Mara"
    assert payload.chapter_summaries[1]["title"] == "Middle"
    assert payload.outline["overallArc"] == "Rise and fall"
    assert payload.outline["chapterSummaries"] == payload.chapter_summaries
    assert payload.chapter_contracts == [{"index": 0, "mustInclude": ["storm"]}]


def test_outline_requires_chapter_summaries():
    with pytest.raises(ModelSchemaError):
        parse_outline({"outline": {"overallArc": "..."}})
    with pytest.raises(ModelSchemaError):
        parse_outline({"chapterContracts": []})


def test_chapter_draft_requires_prose():
    with pytest.raises(ModelSchemaError):
        parse_chapter_draft({"title": "Empty", "prose": "   "})


def test_chapter_draft_defaults():
    payload = parse_chapter_draft({"prose": "Rain.", "continuity": "not an object", "title": ""})

    assert payload.prose == "Rain."
    assert payload.title is None
    assert payload.continuity == {}


def test_coerce_index():
    assert coerce_index(3) == 3
    assert coerce_index("4") == 4
    assert coerce_index(2.0) == 2
    assert coerce_index(-1) is None
    assert coerce_index(True) is None
    assert coerce_index("two") is None
