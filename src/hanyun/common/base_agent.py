"""智能体基类：统一封装名称、描述、后端客户端与结构化调用。

核心职责：
- 保存注入的 `GeminiClient`，智能体本身不持有跨调用的状态；
- 约定子类在 `self.prompt` 中定义提示模板（系统指令 + 用户提示）；
- 提供 `_generate`，负责日志记录与错误透传。
"""

from typing import Any, Optional, Type, TypeVar

from langchain_core.prompts import ChatPromptTemplate
from pydantic import BaseModel

from hanyun.common.client import GeminiClient
from hanyun.common.errors import GenerationError
from hanyun.common.utils import get_logger

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


def build_prompt(system_instruction: str, template: str) -> ChatPromptTemplate:
    """由系统指令与用户提示模板组装 `ChatPromptTemplate`，并在末尾追加 JSON 格式说明。"""
    return ChatPromptTemplate.from_messages([
        ("system", system_instruction),
        ("human", template + "\n{format_instructions}"),
    ])


class BaseAgent:
    """所有生成类智能体的基类。"""

    prompt: ChatPromptTemplate

    def __init__(self, agent_name: str, description: str, client: GeminiClient):
        self.agent_name = agent_name
        self.description = description
        self.client = client

    async def _generate(
        self,
        variables: dict[str, Any],
        output_model: Type[M],
        prompt: Optional[ChatPromptTemplate] = None,
    ) -> M:
        """按 `prompt`（默认 `self.prompt`）调用文本模型，返回解码后的结构。

        任何生成错误都会记录日志并原样抛出，不做本地重试。
        """
        try:
            result = await self.client.complete_json(prompt or self.prompt, variables, output_model)
        except GenerationError as e:
            logger.error(f"[{self.agent_name}] Error generating {output_model.__name__}: {e}")
            raise
        logger.info(f"[{self.agent_name}] {output_model.__name__} generated successfully")
        return result
