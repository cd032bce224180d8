import json
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from chapterledger.services.ledger import (
    default_ledger,
    merge_ledger,
    rebuild_ledger_from_chapters,
)


def _chapter(index, continuity):
    return {
        "index": index,
        "title": f"Chapter {index}",
        "draftText": "Prose.",
        "userText": "",
        "continuity": continuity,
        "approved": False,
    }


def test_merge_overlays_state_and_appends_timeline():
    ledger = {
        "charactersState": {"Alice": "At the docks", "Bram": "Asleep"},
        "locationsState": {"Docks": "Foggy"},
        "timeline": ["Alice arrives"],
        "openLoops": ["Who sent the letter?"],
    }
    facts = {
        "charactersState": {"Alice": "Wounded, hiding in the chapel"},
        "locationsState": {"Chapel": "Boarded up"},
        "timelineEvents": ["Alice is shot", "Alice arrives"],
        "openLoops": ["Who fired the shot?", "Who sent the letter?"],
    }

    merged = merge_ledger(ledger, facts)

    assert merged["charactersState"] == {"Alice": "Wounded, hiding in the chapel", "Bram": "Asleep"}
    assert merged["locationsState"] == {"Docks": "Foggy", "Chapel": "Boarded up"}
    assert merged["timeline"] == ["Alice arrives", "Alice is shot", "Alice arrives"]
    assert merged["openLoops"] == ["Who sent the letter?", "Who fired the shot?"]
    # The input ledger is left untouched.
    assert ledger["charactersState"]["Alice"] == "At the docks"
    assert ledger["timeline"] == ["Alice arrives"]


def test_merge_without_facts_is_a_copy():
    ledger = default_ledger()
    ledger["timeline"].append("Opening")

    assert merge_ledger(ledger, None) == ledger
    assert merge_ledger(ledger, None) is not ledger
    assert merge_ledger(None, None) == default_ledger()


def test_merge_ignores_malformed_sections():
    merged = merge_ledger(
        default_ledger(),
        {"charactersState": "Alice is fine", "timelineEvents": "not a list", "openLoops": None},
    )

    assert merged == default_ledger()


def test_merge_reads_ledger_timeline_only_without_chapter_events():
    folded = merge_ledger(default_ledger(), {"timeline": ["Storm", "Rescue"]})
    pasted = merge_ledger(
        default_ledger(),
        {"timelineEvents": ["Storm"], "timeline": ["Storm"], "charactersState": {"Nia": "Wet"}},
    )

    assert folded["timeline"] == ["Storm", "Rescue"]
    assert pasted["timeline"] == ["Storm"]


def test_later_chapter_wins_incrementally_and_on_rebuild():
    first = _chapter(1, {"charactersState": {"Alice": "Hopeful"}, "timelineEvents": ["Day one"]})
    second = _chapter(2, {"charactersState": {"Alice": "Betrayed"}, "timelineEvents": ["Day two"]})

    incremental = merge_ledger(merge_ledger(default_ledger(), first["continuity"]), second["continuity"])
    rebuilt = rebuild_ledger_from_chapters([second, first])

    assert incremental["charactersState"]["Alice"] == "Betrayed"
    assert rebuilt["charactersState"]["Alice"] == "Betrayed"
    assert rebuilt["timeline"] == ["Day one", "Day two"]
    assert rebuilt == incremental


def test_rebuild_is_idempotent():
    chapters = [
        _chapter(2, {"openLoops": ["The key", "The map"], "timelineEvents": ["Storm"]}),
        _chapter(0, {"charactersState": {"Nia": "Curious"}, "openLoops": ["The map"]}),
        _chapter(1, None),
    ]

    first = rebuild_ledger_from_chapters(chapters)
    second = rebuild_ledger_from_chapters(chapters)

    assert json.dumps(first) == json.dumps(second)
    assert first["openLoops"] == ["The map", "The key"]


def test_rebuild_stops_before_cutoff():
    chapters = [
        _chapter(0, {"charactersState": {"Nia": "Curious"}}),
        _chapter(1, {"charactersState": {"Nia": "Afraid"}, "openLoops": ["The cellar"]}),
        _chapter(2, {"locationsState": {"Cellar": "Flooded"}}),
    ]

    ledger = rebuild_ledger_from_chapters(chapters, stop_before_index=1)

    assert ledger["charactersState"] == {"Nia": "Curious"}
    assert ledger["locationsState"] == {}
    assert ledger["openLoops"] == []


def test_rebuild_of_nothing_is_empty():
    assert rebuild_ledger_from_chapters([]) == default_ledger()
    assert rebuild_ledger_from_chapters(None) == default_ledger()
