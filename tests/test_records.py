import pytest

from hanyun.common.records import (
    apply_edits,
    assign_collection,
    assign_identity,
    mark_status,
    new_batch,
    with_image,
    with_metadata,
)
from hanyun.common.types import PlanDraft, Scenario, ScenarioStatus


def test_metadata_copies_theme_and_level(plan, shopping_input):
    draft = PlanDraft.model_validate(plan.model_dump(include=set(PlanDraft.model_fields)))

    full = with_metadata(draft, shopping_input)

    assert (full.theme, full.level) == ("Shopping", "HSK 3")
    assert full.id is None and full.created_at is None


def test_identity_assigned_once(plan):
    first = assign_identity(plan, now=1700000000000)
    again = assign_identity(first, now=1800000000000)

    assert first.id == "1700000000000"
    assert first.created_at == 1700000000000
    assert (again.id, again.created_at) == (first.id, first.created_at)


@pytest.mark.parametrize("field", ["id", "created_at"])
def test_identity_fields_cannot_be_edited(plan, field):
    with pytest.raises(ValueError):
        apply_edits(assign_identity(plan, now=1), **{field: "2"})


def test_edits_are_validated(plan):
    edited = apply_edits(plan, title="新标题", steps=["一", "二"])

    assert edited.title == "新标题"
    assert edited.steps == ["一", "二"]
    with pytest.raises(ValueError):
        apply_edits(plan, title="")
    with pytest.raises(ValueError):
        apply_edits(plan, colour="red")


def test_image_is_never_cleared(plan):
    illustrated = with_image(plan, "data:image/png;base64,AAAA")

    assert with_image(illustrated, None).image_url == "data:image/png;base64,AAAA"
    assert with_image(illustrated, "data:image/png;base64,BBBB").image_url == "data:image/png;base64,BBBB"
    with pytest.raises(ValueError):
        apply_edits(illustrated, image_url=None)


def test_collection_assignment(plan):
    moved = assign_collection(plan, "42")

    assert moved.collection_id == "42"
    assert assign_collection(moved, "").collection_id is None


def test_new_batch_is_pending():
    scenarios = [Scenario(description=f"d{i}", dialogue=f"对话{i}") for i in range(3)]

    items = new_batch(scenarios, now=1700000000000)

    assert [i.id for i in items] == ["img_1700000000000_0", "img_1700000000000_1", "img_1700000000000_2"]
    assert all(i.status == ScenarioStatus.PENDING and i.image_url is None for i in items)


def test_scenario_status_transitions():
    item = new_batch([Scenario(description="d", dialogue="对话")], now=1)[0]

    done = mark_status(item, ScenarioStatus.COMPLETED, "data:image/png;base64,AAAA")

    assert done.status == ScenarioStatus.COMPLETED
    assert done.image_url == "data:image/png;base64,AAAA"
    assert item.status == ScenarioStatus.PENDING
