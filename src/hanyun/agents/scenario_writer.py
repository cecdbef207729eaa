"""情景设计（Scenario Writer）智能体：围绕教学重点设计一批练习情景。

每个情景包含一段英文的图片生成描述和一段中文练习对话；
请求 `count` 个情景，实际数量以模型返回为准，不一致时记录告警。
"""

from hanyun.common.base_agent import BaseAgent, build_prompt
from hanyun.common.client import GeminiClient
from hanyun.common.types import ActivityPlan, BatchConfig, Scenario, ScenarioSchema
from hanyun.common.utils import get_logger

logger = get_logger(__name__)


class ScenarioWriterAgent(BaseAgent):
    """情景设计智能体。"""

    def __init__(self, client: GeminiClient):
        super().__init__(
            agent_name="Scenario Writer",
            description="Designs illustrated practice scenarios for a teaching focus.",
            client=client,
        )
        self.prompt = build_prompt(
            "You are a creative TCFL material designer. Output MUST be in valid JSON.",
            """
            You are designing illustrated practice scenarios for a Chinese language class.

            Activity Title: {title}
            Theme: {theme}
            Level: {level}
            Simulation context: {simulation_context}

            Teaching focus to practise: {focus_point}

            Create exactly {count} different scenarios. For each scenario provide:
            1. description: a detailed English prompt for an image generation model showing the scene (people, setting, action).
            2. dialogue: a short, natural Chinese dialogue (2-4 lines) that uses the teaching focus and matches the scene.
            Keep the language appropriate for level {level}.
            """,
        )

    async def generate_scenarios(self, plan: ActivityPlan, config: BatchConfig) -> list[Scenario]:
        """生成练习情景列表。"""
        logger.info(f"Generating {config.count} scenarios on '{config.focus_point}' for: {plan.title}")
        result = await self._generate(
            {
                "title": plan.title,
                "theme": plan.theme or "",
                "level": plan.level or "",
                "simulation_context": plan.simulation_context,
                "focus_point": config.focus_point,
                "count": config.count,
            },
            ScenarioSchema,
        )
        if len(result.scenarios) != config.count:
            logger.warning(f"Requested {config.count} scenarios, got {len(result.scenarios)}")
        return result.scenarios
