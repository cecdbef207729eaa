"""大纲策划（Outliner）智能体：为教学方案生成课件大纲。

核心职责：
- 根据方案标题、主题、水平与用户需求，生成逐页的标题与说明；
- 大纲结构约定为：标题页 -> 导入/热身 -> 核心内容 -> 课堂活动 -> 总结，5-10 页；
- 页数只在提示中约定，不做本地校验。

大纲生成后交给用户编辑，再作为 Copywriter 生成正文的约束。
"""

from hanyun.common.base_agent import BaseAgent, build_prompt
from hanyun.common.client import GeminiClient
from hanyun.common.types import ActivityPlan, OutlineItem, OutlineSchema
from hanyun.common.utils import get_logger

logger = get_logger(__name__)


class OutlinerAgent(BaseAgent):
    """大纲策划智能体：负责把方案转换为课件大纲。"""

    def __init__(self, client: GeminiClient):
        super().__init__(
            agent_name="PPT Outliner",
            description="Creates structured slide outlines for activity plans.",
            client=client,
        )
        self.prompt = build_prompt(
            "Create a structured PPT outline.",
            """
            You are a professional instructional designer.
            Create a PowerPoint outline (list of slides) for this activity:

            Title: {title}
            Theme: {theme}
            Level: {level}

            User Needs: {requirements}

            The outline should be logical: Title Slide -> Introduction/Warmup -> Core Content -> Activity -> Summary.
            Keep it between 5-10 slides.
            """,
        )

    async def generate_outline(self, plan: ActivityPlan, requirements: str = "") -> list[OutlineItem]:
        """生成课件大纲。"""
        logger.info(f"Generating outline for: {plan.title}")
        result = await self._generate(
            {
                "title": plan.title,
                "theme": plan.theme or "",
                "level": plan.level or "",
                "requirements": requirements,
            },
            OutlineSchema,
        )
        return result.outline
