"""练习题（Exercise Writer）智能体：根据教学方案生成配套练习题。

核心职责：
- 按选中的题型与每种题型的数量组装提示；
- 解码为 `ExerciseSchema`，不调整题目顺序（按题型分组由渲染阶段负责）；
- 数量只请求不强制，不一致时记录告警。
"""

from collections import Counter

from hanyun.common.base_agent import BaseAgent, build_prompt
from hanyun.common.client import GeminiClient
from hanyun.common.types import ActivityPlan, ExerciseConfig, ExerciseSchema
from hanyun.common.utils import get_logger

logger = get_logger(__name__)


class ExerciseWriterAgent(BaseAgent):
    """练习题智能体。"""

    def __init__(self, client: GeminiClient):
        super().__init__(
            agent_name="Exercise Writer",
            description="Creates level-appropriate Chinese practice worksheets.",
            client=client,
        )
        self.prompt = build_prompt(
            "You are an expert assessment creator. Generate high-quality, level-appropriate Chinese exercises.",
            """
            You are a professional Chinese language teacher.
            Based on the following activity plan, identify the key vocabulary, grammar points, and cultural concepts covered.

            Activity Title: {title}
            Theme: {theme}
            Level: {level}
            Key points: {key_points}
            Content context: {simulation} and steps: {steps}

            Task: Create a practice worksheet.

            Requirements:
            1. Generate {count} questions PER selected type.
            2. The selected types are: {types}.
            3. Ensure the difficulty matches the level: {level}.
            4. For 'MULTIPLE_CHOICE', provide 3-4 options array.
            5. For 'MATCHING', provide pairs formatted clearly in the question or split them.
            6. Provide a correct answer for every question.
            """,
        )

    async def generate_exercises(self, plan: ActivityPlan, config: ExerciseConfig) -> ExerciseSchema:
        """生成练习题。"""
        types = [t.value for t in config.types]
        logger.info(f"Generating {config.count} exercises per type {types} for: {plan.title}")
        schema = await self._generate(
            {
                "title": plan.title,
                "theme": plan.theme or "",
                "level": plan.level or "",
                "key_points": "; ".join(plan.key_points),
                "simulation": plan.simulation,
                "steps": " ".join(plan.steps),
                "count": config.count,
                "types": ", ".join(types),
            },
            ExerciseSchema,
        )
        counts = Counter(item.type for item in schema.exercises)
        for exercise_type in config.types:
            if counts.get(exercise_type, 0) != config.count:
                logger.warning(
                    f"Requested {config.count} {exercise_type.value} questions, got {counts.get(exercise_type, 0)}"
                )
        return schema
