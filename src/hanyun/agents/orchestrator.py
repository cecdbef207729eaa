"""编排器（Orchestrator）：串联各个智能体与渲染器，完成从需求到可下载文件的流程。

核心职责：
- 方案：先生成文本，再以方案中的画面描述生成配图（配图失败不影响方案）；
- 课件：大纲 -> 按大纲撰写逐页内容 -> 渲染 `.pptx`；
- 练习题：生成题目 -> 渲染 `.doc`；
- 情景图片：设计情景 -> 逐个生成图片 -> 打包 ZIP。

重要约束与约定：
- 各步骤按数据依赖串行执行，不做并发与重试；
- 批量图片严格按顺序一次只生成一张：上一张进入 `COMPLETED` 或 `FAILED` 后才发起下一张请求；
- 编排器不保存任何记录，所有结果返回给调用方自行保存。
"""

from typing import AsyncIterator, Sequence

from hanyun.agents.archiver import build_archive
from hanyun.agents.builder import render_deck
from hanyun.agents.copywriter import CopywriterAgent
from hanyun.agents.exercise_writer import ExerciseWriterAgent
from hanyun.agents.image_generator import ImageGeneratorAgent
from hanyun.agents.outliner import OutlinerAgent
from hanyun.agents.planner import PlannerAgent
from hanyun.agents.scenario_writer import ScenarioWriterAgent
from hanyun.agents.worksheet import render_worksheet
from hanyun.common.client import GeminiClient
from hanyun.common.records import mark_status, new_batch, with_image
from hanyun.common.types import (
    ActivityPlan,
    Artifact,
    BatchConfig,
    DeckConfig,
    ExerciseConfig,
    Mode,
    OutlineItem,
    ScenarioItem,
    ScenarioStatus,
    UserInput,
)
from hanyun.common.utils import get_logger

logger = get_logger(__name__)


class LessonOrchestrator:
    """教学方案与配套材料的生成流程。"""

    def __init__(self, client: GeminiClient):
        self.planner = PlannerAgent(client)
        self.illustrator = ImageGeneratorAgent(client)
        self.outliner = OutlinerAgent(client)
        self.copywriter = CopywriterAgent(client)
        self.exercise_writer = ExerciseWriterAgent(client)
        self.scenario_writer = ScenarioWriterAgent(client)

    async def draft_plan(self, user_input: UserInput, mode: Mode, illustrate: bool = True) -> ActivityPlan:
        """生成方案并（可选）配图。"""
        logger.info(f"【方案生成】主题：\"{user_input.theme}\"，模式：{mode.value}")
        plan = await self.planner.generate_plan(user_input, mode)
        if illustrate and plan.image_prompt_description:
            logger.info("【方案配图】正在生成情景配图...")
            plan = with_image(plan, await self.illustrator.generate_image(plan.image_prompt_description))
        return plan

    async def illustrate(self, plan: ActivityPlan) -> ActivityPlan:
        """为已有方案重新生成配图；失败时保留原图。"""
        return with_image(plan, await self.illustrator.generate_image(plan.image_prompt_description))

    async def plan_outline(self, plan: ActivityPlan, requirements: str = "") -> list[OutlineItem]:
        logger.info(f"【课件大纲】正在为 \"{plan.title}\" 规划大纲...")
        return await self.outliner.generate_outline(plan, requirements)

    async def build_deck(self, plan: ActivityPlan, config: DeckConfig) -> Artifact:
        """按已确认的大纲生成逐页内容并渲染课件。"""
        logger.info(f"【课件生成】共 {len(config.outline)} 页，风格：{config.style.value}")
        deck = await self.copywriter.generate_slides(plan, config)
        return render_deck(deck.slides, config)

    async def build_worksheet(self, plan: ActivityPlan, config: ExerciseConfig) -> Artifact:
        """生成练习题并渲染为文档，文件名为 `<方案标题>_Exercises.doc`。"""
        logger.info(f"【练习题】题型：{[t.value for t in config.types]}，每种 {config.count} 题")
        schema = await self.exercise_writer.generate_exercises(plan, config)
        return render_worksheet(schema, config, f"{plan.title}_Exercises")

    async def prepare_batch(self, plan: ActivityPlan, config: BatchConfig) -> list[ScenarioItem]:
        """设计情景，返回全部处于 `PENDING` 状态的条目，供用户审阅修改。"""
        logger.info(f"【情景设计】教学重点：\"{config.focus_point}\"，数量：{config.count}")
        scenarios = await self.scenario_writer.generate_scenarios(plan, config)
        return new_batch(scenarios)

    async def stream_image_batch(self, items: Sequence[ScenarioItem]) -> AsyncIterator[list[ScenarioItem]]:
        """逐个生成情景图片，每次状态变化后产出一份当前列表的快照。

        同一时刻最多只有一个条目处于 `GENERATING`，条目按列表顺序进入终态。
        """
        current = list(items)
        total = len(current)
        for idx in range(total):
            current[idx] = mark_status(current[idx], ScenarioStatus.GENERATING)
            logger.info(f"【图片生成】正在生成第 {idx + 1}/{total} 张...")
            yield list(current)

            image_url = await self.illustrator.generate_image(current[idx].description)
            if image_url:
                current[idx] = mark_status(current[idx], ScenarioStatus.COMPLETED, image_url)
            else:
                logger.warning(f"【图片生成失败】第 {idx + 1} 张未能生成")
                current[idx] = mark_status(current[idx], ScenarioStatus.FAILED)
            yield list(current)

    async def run_image_batch(self, items: Sequence[ScenarioItem]) -> list[ScenarioItem]:
        """执行整批图片生成并返回最终状态。"""
        result = list(items)
        async for snapshot in self.stream_image_batch(items):
            result = snapshot
        return result

    def package_batch(self, items: Sequence[ScenarioItem], plan: ActivityPlan, focus_point: str) -> Artifact:
        return build_archive(items, plan, focus_point)
