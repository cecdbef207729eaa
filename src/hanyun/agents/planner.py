"""方案设计（Planner）智能体：根据教学对象、水平与主题生成完整的教学活动方案。

核心职责：
- 按模式组装提示：RECORD 模式完善用户已有的灵感，GENERATE 模式全新设计；
- 调用文本模型并解码为 `PlanDraft`，再补充请求中的主题与水平；
- 生成失败（空响应、结构不符、后端不可用）原样抛给调用方。

实现要点：
- RECORD 模式必须提供灵感描述，否则在调用前直接拒绝；
- 返回的方案不含配图，配图由 Image Generator 单独生成。
"""

from hanyun.common.base_agent import BaseAgent, build_prompt
from hanyun.common.client import GeminiClient
from hanyun.common.records import with_metadata
from hanyun.common.types import ActivityPlan, Mode, PlanDraft, UserInput
from hanyun.common.utils import get_logger

logger = get_logger(__name__)

SYSTEM_INSTRUCTION = (
    "You are a helpful, creative, and professional TCFL consultant. Output MUST be in valid JSON."
)

BASE_CONTEXT = """
You are an expert Senior Teaching Chinese as a Foreign Language (TCFL) specialist.
Your task is to design a high-quality, engaging teaching activity based on the following constraints.

Target Audience: {target_audience}
Proficiency Level: {level}
Native Language (L1): {native_language}
Theme: {theme}
Specific Requirements: {requirements}
"""

MODE_INSTRUCTIONS = {
    Mode.RECORD: """
The user has a rough idea: "{activity_idea}".
Please expand this idea into a fully professional teaching activity plan.
State the teaching goals and the key/difficult points, explain the grammar points with structure, usage and examples,
refine the steps, suggest specific props, and write a realistic classroom simulation dialogue.
Ensure the tone is encouraging and culturally rich.
""",
    Mode.GENERATE: """
Please creatively generate a brand new, highly effective teaching activity idea suitable for this specific group.
State the teaching goals and the key/difficult points, explain the grammar points with structure, usage and examples,
design specific props, detailed teaching steps, and a realistic classroom simulation dialogue.
The activity should be interactive and culturally immersive.
""",
}


class PlannerAgent(BaseAgent):
    """方案设计智能体：负责把教学需求转换为结构化方案。"""

    def __init__(self, client: GeminiClient):
        super().__init__(
            agent_name="Activity Planner",
            description="Designs TCFL teaching activity plans.",
            client=client,
        )
        self.prompts = {
            mode: build_prompt(SYSTEM_INSTRUCTION, BASE_CONTEXT + instruction)
            for mode, instruction in MODE_INSTRUCTIONS.items()
        }

    def prompt_variables(self, user_input: UserInput, mode: Mode) -> dict[str, str]:
        """整理提示变量；RECORD 模式缺少灵感描述时抛出 `ValueError`。"""
        variables = {
            "target_audience": user_input.target_audience,
            "level": user_input.level,
            "native_language": user_input.native_language,
            "theme": user_input.theme,
            "requirements": user_input.requirements or "None",
        }
        if mode == Mode.RECORD:
            if not user_input.activity_idea or not user_input.activity_idea.strip():
                raise ValueError("An activity idea is required in RECORD mode")
            variables["activity_idea"] = user_input.activity_idea.strip()
        return variables

    async def generate_plan(self, user_input: UserInput, mode: Mode) -> ActivityPlan:
        """生成教学方案。

        参数：
            user_input: 教学对象、水平、母语、主题、要求（及 RECORD 模式下的灵感）。
            mode: 生成模式。

        返回：
            字段齐全、不含配图的 `ActivityPlan`。
        """
        variables = self.prompt_variables(user_input, mode)
        logger.info(f"Generating plan ({mode.value}) for theme: {user_input.theme}")
        draft = await self._generate(variables, PlanDraft, prompt=self.prompts[mode])
        return with_metadata(draft, user_input)
