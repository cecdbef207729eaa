"""MCP Server 定义：将编排器的能力以工具形式暴露给 MCP 客户端。

主要职责：
- `LessonTools` 实现四个工具：`generate_plan`、`generate_deck`、`generate_worksheet`、`generate_images`；
- 使用 FastMCP 创建服务器实例并注册这些工具；
- 方案以 JSON 文本返回并（可选）保存到灵感库，课件、练习题与情景图片包写入输出目录后返回文件路径；
- 工具内部捕获所有异常，以 `Error ...` 文本返回给客户端。
"""

from pathlib import Path
from typing import Callable, List, Optional

from fastmcp import FastMCP

from hanyun.agents.orchestrator import LessonOrchestrator
from hanyun.common.client import GeminiClient
from hanyun.common.config import load_settings
from hanyun.common.library import Library
from hanyun.common.types import (
    ActivityPlan,
    BatchConfig,
    DeckConfig,
    ExerciseConfig,
    ExerciseType,
    Mode,
    PPTStyle,
    ScenarioStatus,
    UserInput,
)
from hanyun.common.utils import check_api_key, get_logger

logger = get_logger(__name__)


class LessonTools:
    """MCP 工具集合。编排器按请求创建，缺少凭证时只影响对应请求。"""

    def __init__(
        self,
        orchestrator_factory: Callable[[], LessonOrchestrator],
        library: Library,
        output_dir: Path,
    ):
        self.orchestrator_factory = orchestrator_factory
        self.library = library
        self.output_dir = Path(output_dir)

    def _load(self, plan_id: str) -> ActivityPlan:
        plan = self.library.get_plan(plan_id)
        if plan is None:
            raise KeyError(f"plan {plan_id} not found")
        return plan

    async def generate_plan(
        self,
        theme: str,
        target_audience: str,
        level: str,
        native_language: str,
        activity_idea: Optional[str] = None,
        requirements: Optional[str] = None,
        save: bool = True,
    ) -> str:
        """生成对外汉语教学活动方案。提供 activity_idea 时完善已有灵感，否则全新生成。

        返回方案 JSON（保存后包含 id），失败时返回错误信息。
        """
        logger.info(f"Received request to generate plan for theme: {theme}")
        mode = Mode.RECORD if activity_idea else Mode.GENERATE
        try:
            user_input = UserInput(
                theme=theme,
                target_audience=target_audience,
                level=level,
                native_language=native_language,
                activity_idea=activity_idea,
                requirements=requirements,
            )
            # 配图只随保存的方案一起留存
            plan = await self.orchestrator_factory().draft_plan(user_input, mode, illustrate=save)
            if save:
                plan = self.library.save_plan(plan)
            return plan.model_dump_json(by_alias=True, exclude_none=True, exclude={"image_url"})
        except Exception as e:
            logger.error(f"Error generating plan: {e}")
            return f"Error generating plan: {e}"

    async def generate_deck(self, plan_id: str, style: str = PPTStyle.INK_WASH.value, requirements: str = "") -> str:
        """为灵感库中的方案生成课件（自动生成大纲），返回 .pptx 文件路径。"""
        logger.info(f"Received request to generate deck for plan: {plan_id}")
        try:
            plan = self._load(plan_id)
            orchestrator = self.orchestrator_factory()
            outline = await orchestrator.plan_outline(plan, requirements)
            config = DeckConfig(title=plan.title, style=PPTStyle(style), outline=outline)
            path = (await orchestrator.build_deck(plan, config)).write_to(self.output_dir)
            return f"Presentation generated successfully! File saved at: {path}"
        except Exception as e:
            logger.error(f"Error generating deck: {e}")
            return f"Error generating deck: {e}"

    async def generate_worksheet(
        self,
        plan_id: str,
        types: List[str],
        count: int = 3,
        include_answer_key: bool = True,
        include_pinyin: bool = False,
    ) -> str:
        """为灵感库中的方案生成练习题，返回 .doc 文件路径。

        types 取值：MULTIPLE_CHOICE, FILL_IN_BLANK, MATCHING, TRANSLATION, OPEN_ENDED。
        """
        logger.info(f"Received request to generate worksheet for plan: {plan_id}")
        try:
            plan = self._load(plan_id)
            config = ExerciseConfig(
                types=[ExerciseType(t) for t in types],
                count=count,
                include_answer_key=include_answer_key,
                include_pinyin=include_pinyin,
            )
            path = (await self.orchestrator_factory().build_worksheet(plan, config)).write_to(self.output_dir)
            return f"Worksheet generated successfully! File saved at: {path}"
        except Exception as e:
            logger.error(f"Error generating worksheet: {e}")
            return f"Error generating worksheet: {e}"

    async def generate_images(self, plan_id: str, focus_point: str, count: int = 3) -> str:
        """围绕教学重点设计情景并逐张生成图片，返回 .zip 文件路径（只包含生成成功的图片）。"""
        logger.info(f"Received request to generate images for plan: {plan_id}")
        try:
            plan = self._load(plan_id)
            config = BatchConfig(focus_point=focus_point, count=count)
            orchestrator = self.orchestrator_factory()
            items = await orchestrator.run_image_batch(await orchestrator.prepare_batch(plan, config))
            completed = sum(1 for item in items if item.status == ScenarioStatus.COMPLETED)
            path = orchestrator.package_batch(items, plan, config.focus_point).write_to(self.output_dir)
            return f"Images generated successfully! {completed}/{len(items)} scenes. File saved at: {path}"
        except Exception as e:
            logger.error(f"Error generating images: {e}")
            return f"Error generating images: {e}"


def create_server(tools: LessonTools) -> FastMCP:
    """创建 MCP 服务器并注册工具。"""
    mcp = FastMCP("HanYun Inspiration")
    mcp.tool()(tools.generate_plan)
    mcp.tool()(tools.generate_deck)
    mcp.tool()(tools.generate_worksheet)
    mcp.tool()(tools.generate_images)
    return mcp


def main():
    settings = load_settings()
    check_api_key(settings)
    tools = LessonTools(
        lambda: LessonOrchestrator(GeminiClient(settings)),
        Library(settings.library_dir),
        settings.output_dir,
    )
    # 以默认配置启动 MCP Server（FastMCP 会启动内置事件循环）
    create_server(tools).run()


if __name__ == "__main__":
    main()
