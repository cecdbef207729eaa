"""记录构建与更新函数：显式维护各类记录的字段约束。

约束：
- 方案的 `id` / `created_at` 只在首次保存时分配一次，之后不可修改；
- 方案的配图只会被新的成功生成结果替换，不会被清空；
- 情景条目以 `PENDING` 状态批量创建，状态迁移由编排器逐个推进。
"""

from typing import Any, Iterable, Optional

from hanyun.common.types import (
    ActivityPlan,
    PlanDraft,
    Scenario,
    ScenarioItem,
    ScenarioStatus,
    UserInput,
)
from hanyun.common.utils import now_millis

IDENTITY_FIELDS = frozenset({"id", "created_at"})


def with_metadata(draft: PlanDraft, user_input: UserInput) -> ActivityPlan:
    """把模型生成的草稿补充为完整方案：复制请求中的主题与水平。"""
    return ActivityPlan(**draft.model_dump(), theme=user_input.theme, level=user_input.level)


def assign_identity(plan: ActivityPlan, now: Optional[int] = None) -> ActivityPlan:
    """首次保存时分配 `id` 与 `created_at`；已分配的值保持不变。"""
    if plan.id and plan.created_at is not None:
        return plan
    timestamp = now if now is not None else now_millis()
    return plan.model_copy(update={
        "id": plan.id or str(timestamp),
        "created_at": plan.created_at if plan.created_at is not None else timestamp,
    })


def apply_edits(plan: ActivityPlan, **changes: Any) -> ActivityPlan:
    """按字段编辑方案，返回经过重新校验的新对象。

    不允许修改身份字段，也不允许通过编辑清空配图。
    """
    forbidden = IDENTITY_FIELDS.intersection(changes)
    if forbidden:
        raise ValueError(f"cannot edit identity fields: {', '.join(sorted(forbidden))}")
    if "image_url" in changes and changes["image_url"] is None:
        raise ValueError("image cannot be cleared")
    unknown = set(changes) - set(ActivityPlan.model_fields)
    if unknown:
        raise ValueError(f"unknown fields: {', '.join(sorted(unknown))}")
    return ActivityPlan.model_validate({**plan.model_dump(), **changes})


def with_image(plan: ActivityPlan, image_url: Optional[str]) -> ActivityPlan:
    """设置新配图；生成失败（`None`）时保留原图。"""
    if not image_url:
        return plan
    return plan.model_copy(update={"image_url": image_url})


def assign_collection(plan: ActivityPlan, collection_id: Optional[str]) -> ActivityPlan:
    """移动到合集；空字符串表示移出合集。"""
    return plan.model_copy(update={"collection_id": collection_id or None})


def new_batch(scenarios: Iterable[Scenario], now: Optional[int] = None) -> list[ScenarioItem]:
    """为每个情景创建一个 `PENDING` 状态的条目。"""
    timestamp = now if now is not None else now_millis()
    return [
        ScenarioItem(
            id=f"img_{timestamp}_{idx}",
            description=scenario.description,
            dialogue=scenario.dialogue,
        )
        for idx, scenario in enumerate(scenarios)
    ]


def mark_status(item: ScenarioItem, status: ScenarioStatus, image_url: Optional[str] = None) -> ScenarioItem:
    """推进情景条目的状态，完成时附带图片。"""
    update: dict[str, Any] = {"status": status}
    if image_url:
        update["image_url"] = image_url
    return item.model_copy(update=update)
