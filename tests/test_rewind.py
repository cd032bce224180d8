import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from chapterledger import create_app
from chapterledger.config import TestConfig
from chapterledger.extensions import db
from chapterledger.services.project_store import (
    ProjectNotFoundError,
    create_project,
    get_project,
    list_projects,
    normalize_inputs,
    save_project,
    update_project_inputs,
)
from chapterledger.services.rewind import clear_and_rewind_from_chapter


@pytest.fixture
def app_ctx():
    app = create_app(TestConfig)
    ctx = app.app_context()
    ctx.push()
    db.create_all()
    yield app
    db.session.remove()
    db.drop_all()
    ctx.pop()


def _chapter(index, state):
    return {
        "index": index,
        "title": f"Chapter {index}",
        "draftText": f"Draft {index}",
        "userText": "",
        "continuity": {"charactersState": {"Mara": state}, "timelineEvents": [f"event {index}"]},
        "approved": False,
    }


@pytest.fixture
def drafted_project(app_ctx):
    project = create_project({"title": "Rewind"})
    project.outline = {"chapterSummaries": [{"index": i, "title": f"Chapter {i}"} for i in range(4)]}
    project.chapter_contracts = [{"index": i} for i in range(4)] + [{"note": "unindexed"}]
    project.chapters = [_chapter(i, f"state {i}") for i in range(4)]
    return save_project(project)


def test_rewind_deletes_records_from_cutoff(drafted_project):
    project = clear_and_rewind_from_chapter(drafted_project, 2)

    assert [chapter["index"] for chapter in project.chapters] == [0, 1]
    assert project.chapter_contracts == [{"index": 0}, {"index": 1}, {"note": "unindexed"}]
    assert project.continuity_ledger["charactersState"] == {"Mara": "state 1"}
    assert project.continuity_ledger["timeline"] == ["event 0", "event 1"]
    assert project.outline["chapterSummaries"][3]["index"] == 3


def test_rewind_to_zero_clears_everything(drafted_project):
    project = clear_and_rewind_from_chapter(drafted_project, 0)

    assert project.chapters == []
    assert project.continuity_ledger == {
        "charactersState": {},
        "locationsState": {},
        "timeline": [],
        "openLoops": [],
    }


def test_rewind_past_the_end_keeps_everything(drafted_project):
    project = clear_and_rewind_from_chapter(drafted_project, 10)

    assert len(project.chapters) == 4
    assert project.continuity_ledger["charactersState"] == {"Mara": "state 3"}


def test_rewind_is_persisted(drafted_project):
    clear_and_rewind_from_chapter(drafted_project, 1)
    db.session.expire_all()

    reloaded = get_project(drafted_project.id)
    assert [chapter["index"] for chapter in reloaded.chapters] == [0]


def test_get_unknown_project(app_ctx):
    with pytest.raises(ProjectNotFoundError):
        get_project("missing")


def test_normalize_inputs_defaults():
    inputs = normalize_inputs({"totalChapters": "0", "chapterTargetWords": "2500", "genre": "", "extra": 1})

    assert inputs["totalChapters"] == 12
    assert inputs["chapterTargetWords"] == 2500
    assert inputs["genre"] == "General Fiction"
    assert inputs["voice"] == "3rd Person Limited"
    assert inputs["extra"] == 1


def test_update_inputs_merges_and_lists(app_ctx):
    project = create_project({"title": "First", "genre": "Mystery"})
    update_project_inputs(project, {"totalChapters": 5})

    summaries = list_projects()

    assert summaries[0]["id"] == project.id
    assert summaries[0]["title"] == "First"
    assert summaries[0]["totalChapters"] == 5
    assert summaries[0]["inputs"]["genre"] == "Mystery"


def test_missing_ledger_is_rebuilt_on_read(drafted_project):
    drafted_project.continuity_ledger = None
    db.session.commit()
    db.session.expire_all()

    project = get_project(drafted_project.id)

    assert project.continuity_ledger["charactersState"] == {"Mara": "state 3"}
