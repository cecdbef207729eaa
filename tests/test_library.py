import json

import pytest

from hanyun.common import library as library_module
from hanyun.common.library import ACTIVITIES_KEY, UNCATEGORIZED, Library
from hanyun.common.records import apply_edits


@pytest.fixture
def frozen_clock(monkeypatch):
    monkeypatch.setattr(library_module, "now_millis", lambda: 1700000000000)


def test_first_save_assigns_identity_and_prepends(tmp_path, plan, frozen_clock):
    lib = Library(tmp_path)

    first = lib.save_plan(plan)
    second = lib.save_plan(plan.model_copy(update={"title": "第二个方案"}))

    assert first.id == "1700000000000"
    assert first.created_at == 1700000000000
    # 同一毫秒内保存，ID 顺延
    assert second.id == "1700000000001"
    assert [p.id for p in lib.plans] == [second.id, first.id]


def test_resave_replaces_in_place_and_keeps_created_at(tmp_path, plan, frozen_clock):
    lib = Library(tmp_path)
    saved = lib.save_plan(plan)
    lib.save_plan(plan.model_copy(update={"title": "另一个"}))

    updated = lib.update_plan(apply_edits(saved, title="修改后的标题"))

    assert updated.id == saved.id
    assert updated.created_at == saved.created_at
    assert len(lib.plans) == 2
    assert lib.plans[1].title == "修改后的标题"


def test_update_of_unsaved_plan_is_a_no_op(tmp_path, plan):
    lib = Library(tmp_path)

    assert lib.update_plan(plan) is plan
    assert lib.plans == []


def test_round_trip_through_disk(tmp_path, plan):
    lib = Library(tmp_path)
    saved = lib.save_plan(plan.model_copy(update={"image_url": "data:image/png;base64,AAAA"}))
    collection = lib.create_collection("HSK 3 购物", "口语课")
    lib.move_to_collection(saved.id, collection.id)

    reloaded = Library(tmp_path)

    assert reloaded.get_plan(saved.id) == lib.get_plan(saved.id)
    assert reloaded.collections == [collection]
    stored = json.loads((tmp_path / f"{ACTIVITIES_KEY}.json").read_text(encoding="utf-8"))
    assert stored[0]["imagePromptDescription"] == plan.image_prompt_description
    assert stored[0]["collectionId"] == collection.id


def test_corrupt_store_loads_empty(tmp_path):
    (tmp_path / f"{ACTIVITIES_KEY}.json").write_text("{not json", encoding="utf-8")

    assert Library(tmp_path).plans == []
    assert (tmp_path / f"{ACTIVITIES_KEY}.json.bak").read_text(encoding="utf-8") == "{not json"


def test_invalid_record_is_skipped_and_the_rest_survive_a_save(tmp_path, plan):
    valid = Library(tmp_path).save_plan(plan)
    store = tmp_path / f"{ACTIVITIES_KEY}.json"
    records = json.loads(store.read_text(encoding="utf-8"))
    # 旧版本记录：缺少教学目标等必填字段
    legacy = {"id": "1600000000000", "createdAt": 1600000000000, "title": "旧方案"}
    original = json.dumps(records + [legacy], ensure_ascii=False)
    store.write_text(original, encoding="utf-8")

    lib = Library(tmp_path)
    lib.save_plan(plan.model_copy(update={"title": "新方案"}))

    assert [p.title for p in Library(tmp_path).plans] == ["新方案", valid.title]
    assert (tmp_path / f"{ACTIVITIES_KEY}.json.bak").read_text(encoding="utf-8") == original


def test_clean_store_leaves_no_backup(tmp_path, plan):
    Library(tmp_path).save_plan(plan)

    assert len(Library(tmp_path).plans) == 1
    assert not (tmp_path / f"{ACTIVITIES_KEY}.json.bak").exists()


def test_delete(tmp_path, plan):
    lib = Library(tmp_path)
    saved = lib.save_plan(plan)

    assert lib.delete_plan(saved.id) is True
    assert lib.delete_plan(saved.id) is False
    assert Library(tmp_path).plans == []


def test_collection_labels_and_filtering(tmp_path, plan):
    lib = Library(tmp_path)
    a = lib.save_plan(plan)
    b = lib.save_plan(plan.model_copy(update={"title": "第二个"}))
    collection = lib.create_collection("复习课")

    moved = lib.move_to_collection(a.id, collection.id)
    dangling = lib.move_to_collection(b.id, "does-not-exist")

    assert lib.collection_label(moved) == "复习课"
    assert lib.collection_label(dangling) == UNCATEGORIZED
    assert [p.id for p in lib.plans_in(collection.id)] == [a.id]
    assert len(lib.plans_in()) == 2
    assert lib.move_to_collection(a.id, "").collection_id is None


def test_move_unknown_plan(tmp_path):
    with pytest.raises(KeyError):
        Library(tmp_path).move_to_collection("missing", "1")
