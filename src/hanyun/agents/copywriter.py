"""文案撰写（Copywriter）智能体：按用户确认的大纲为每页课件生成要点与演讲备注。

核心职责：
- 把方案详情（标题、主题、水平、道具、步骤、模拟对话）与编号大纲一起写入提示；
- 要求模型严格按照大纲的页数与顺序输出 `DeckSchema`；
- 页数不一致时只记录告警，不做截断或补齐。
"""

from hanyun.common.base_agent import BaseAgent, build_prompt
from hanyun.common.client import GeminiClient
from hanyun.common.types import ActivityPlan, DeckConfig, DeckSchema, OutlineItem
from hanyun.common.utils import get_logger

logger = get_logger(__name__)


def describe_outline(outline: list[OutlineItem]) -> str:
    """把大纲转换为 `Slide n: 标题 (说明)` 的多行文本。"""
    return "\n".join(f"Slide {idx + 1}: {item.title} ({item.note})" for idx, item in enumerate(outline))


class CopywriterAgent(BaseAgent):
    """文案撰写智能体：负责逐页正文与备注的生成。"""

    def __init__(self, client: GeminiClient):
        super().__init__(
            agent_name="PPT Copywriter",
            description="Writes bullet points and speaker notes for every slide of an outline.",
            client=client,
        )
        self.prompt = build_prompt(
            "You are an expert PPT creator. Create clear, structured slides following the exact outline provided.",
            """
            You are a professional instructional designer creating a PowerPoint presentation for a Chinese language class.

            Activity Details:
            Title: {title}
            Theme: {theme}
            Level: {level}
            Props: {props}
            Steps: {steps}
            Simulation: {simulation}

            Constraint: You MUST follow this specific outline structure provided by the user:
            {outline}

            Generate the actual content (Bullet Points in Chinese/Target Language) and Speaker Notes for each slide defined in the outline.
            """,
        )

    async def generate_slides(self, plan: ActivityPlan, config: DeckConfig) -> DeckSchema:
        """按大纲生成每页课件内容。"""
        logger.info(f"Writing {len(config.outline)} slides for: {config.title}")
        deck = await self._generate(
            {
                "title": plan.title,
                "theme": plan.theme or "",
                "level": plan.level or "",
                "props": ", ".join(plan.props),
                "steps": "; ".join(plan.steps),
                "simulation": plan.simulation,
                "outline": describe_outline(config.outline),
            },
            DeckSchema,
        )
        if len(deck.slides) != len(config.outline):
            logger.warning(f"Outline has {len(config.outline)} slides but {len(deck.slides)} were generated")
        return deck
