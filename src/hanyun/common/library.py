"""灵感库：以键值形式持久化已保存的方案与合集。

存储约定：
- 目录下两个条目：`hanyun_activities.json`（方案列表）与 `hanyun_collections.json`（合集列表）；
- 启动时读取一次，之后每次修改都整体重写对应条目，不做增量写入与版本迁移；
- 读取时逐条校验，不符合当前结构的记录被跳过，原文件另存为 `.bak`，不会在下次写入时悄悄丢失；
- 合集删除不在模型范围内：方案引用了不存在的合集时，显示为“未分类”。
"""

import json
import shutil
from pathlib import Path
from typing import Optional, Type

from pydantic import BaseModel, TypeAdapter, ValidationError

from hanyun.common.records import assign_collection, assign_identity
from hanyun.common.types import ActivityPlan, Collection
from hanyun.common.utils import get_logger, now_millis

logger = get_logger(__name__)

ACTIVITIES_KEY = "hanyun_activities"
COLLECTIONS_KEY = "hanyun_collections"
UNCATEGORIZED = "未分类 (Uncategorized)"

_plans_adapter = TypeAdapter(list[ActivityPlan])
_collections_adapter = TypeAdapter(list[Collection])


class Library:
    """本地灵感库。"""

    def __init__(self, directory: Path):
        self.directory = Path(directory).expanduser()
        self.plans: list[ActivityPlan] = self._read(ACTIVITIES_KEY, ActivityPlan)
        self.collections: list[Collection] = self._read(COLLECTIONS_KEY, Collection)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def _read(self, key: str, model: Type[BaseModel]) -> list:
        """逐条读取记录：无法解析的条目跳过，原文件备份为 `<key>.json.bak` 后再继续使用。"""
        path = self._path(key)
        if not path.exists():
            return []
        try:
            raw = json.loads(path.read_bytes())
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(f"Failed to load {key}: {e}")
            self._backup(path)
            return []
        if not isinstance(raw, list):
            logger.error(f"Failed to load {key}: expected a list, got {type(raw).__name__}")
            self._backup(path)
            return []

        records = []
        for idx, entry in enumerate(raw):
            try:
                records.append(model.model_validate(entry))
            except ValidationError as e:
                logger.warning(f"Skipping invalid record #{idx} in {key}: {e.error_count()} validation errors")
        if len(records) != len(raw):
            self._backup(path)
        return records

    def _backup(self, path: Path) -> None:
        # 下一次写入会整体覆盖，先保留原始内容
        backup = path.with_name(path.name + ".bak")
        shutil.copyfile(path, backup)
        logger.warning(f"Original {path.name} kept at {backup}")

    def _write(self, key: str, adapter: TypeAdapter, records: list) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self._path(key).write_bytes(adapter.dump_json(records, by_alias=True, exclude_none=True, indent=2))

    def _persist_plans(self) -> None:
        self._write(ACTIVITIES_KEY, _plans_adapter, self.plans)

    def _persist_collections(self) -> None:
        self._write(COLLECTIONS_KEY, _collections_adapter, self.collections)

    def _next_id(self, taken: set[str]) -> tuple[str, int]:
        # 毫秒时间戳作为 ID，同一毫秒内重复时顺延
        timestamp = now_millis()
        while str(timestamp) in taken:
            timestamp += 1
        return str(timestamp), timestamp

    def get_plan(self, plan_id: str) -> Optional[ActivityPlan]:
        return next((p for p in self.plans if p.id == plan_id), None)

    def save_plan(self, plan: ActivityPlan) -> ActivityPlan:
        """保存方案：首次保存分配 ID 并插入到最前，已存在则原位替换。"""
        if not plan.id:
            plan_id, timestamp = self._next_id({p.id for p in self.plans if p.id})
            plan = assign_identity(plan.model_copy(update={"id": plan_id}), now=timestamp)
        else:
            plan = assign_identity(plan)

        for idx, existing in enumerate(self.plans):
            if existing.id == plan.id:
                # created_at 以首次保存时的值为准
                if existing.created_at is not None:
                    plan = plan.model_copy(update={"created_at": existing.created_at})
                self.plans[idx] = plan
                break
        else:
            self.plans.insert(0, plan)
        self._persist_plans()
        logger.info(f"Saved plan {plan.id}: {plan.title}")
        return plan

    def update_plan(self, plan: ActivityPlan) -> ActivityPlan:
        """更新已保存的方案；未保存（无 ID）的方案原样返回。"""
        if plan.id and self.get_plan(plan.id) is not None:
            return self.save_plan(plan)
        return plan

    def delete_plan(self, plan_id: str) -> bool:
        remaining = [p for p in self.plans if p.id != plan_id]
        if len(remaining) == len(self.plans):
            return False
        self.plans = remaining
        self._persist_plans()
        return True

    def create_collection(self, name: str, description: str = "") -> Collection:
        collection_id, timestamp = self._next_id({c.id for c in self.collections})
        collection = Collection(id=collection_id, name=name, description=description, created_at=timestamp)
        self.collections.append(collection)
        self._persist_collections()
        return collection

    def move_to_collection(self, plan_id: str, collection_id: Optional[str]) -> ActivityPlan:
        """把方案移动到合集；不校验合集是否存在。"""
        plan = self.get_plan(plan_id)
        if plan is None:
            raise KeyError(plan_id)
        moved = assign_collection(plan, collection_id)
        self.plans = [moved if p.id == plan_id else p for p in self.plans]
        self._persist_plans()
        return moved

    def collection_label(self, plan: ActivityPlan) -> str:
        """方案所属合集的名称；无合集或合集已不存在时返回“未分类”。"""
        if not plan.collection_id:
            return UNCATEGORIZED
        collection = next((c for c in self.collections if c.id == plan.collection_id), None)
        return collection.name if collection else UNCATEGORIZED

    def plans_in(self, collection_id: Optional[str] = None) -> list[ActivityPlan]:
        """按合集筛选方案；不传合集时返回全部。"""
        if collection_id is None:
            return list(self.plans)
        return [p for p in self.plans if p.collection_id == collection_id]
