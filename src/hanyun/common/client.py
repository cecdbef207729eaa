"""生成式后端客户端：显式构造、依赖注入到各个智能体。

核心职责：
- 构造时校验 API Key，缺失时抛出 `MissingCredential`；
- `complete_json`：以“系统指令 + 用户提示 + JSON 格式说明”调用文本模型，并显式解码为指定的 Pydantic 模型；
- `generate_image_parts`：调用图片模型，返回响应中的内容片段列表。

实现要点：
- 文本侧沿用 LangChain：`ChatPromptTemplate | ChatGoogleGenerativeAI | StrOutputParser`；
- 图片侧使用 `google-genai` 的异步接口，按片段扫描内联图片；
- 两个底层客户端都可以在构造时注入，便于测试替换。
"""

from typing import Any, Optional, Type, TypeVar

from google import genai
from google.genai import types as genai_types
from langchain_core.language_models import BaseChatModel
from langchain_core.output_parsers import PydanticOutputParser, StrOutputParser
from langchain_core.prompts import ChatPromptTemplate
from langchain_google_genai import ChatGoogleGenerativeAI
from pydantic import BaseModel, ValidationError

from hanyun.common.config import Settings
from hanyun.common.errors import BackendUnavailable, EmptyResponse, MissingCredential, SchemaViolation
from hanyun.common.utils import get_logger, strip_code_fence

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


def decode_response(text: str, output_model: Type[M]) -> M:
    """把模型返回的文本解码为指定结构，任何不匹配都视为 `SchemaViolation`。"""
    cleaned = strip_code_fence(text)
    try:
        return output_model.model_validate_json(cleaned)
    except ValidationError as e:
        raise SchemaViolation(f"Response does not match {output_model.__name__}: {e}") from e


class GeminiClient:
    """文本与图片生成后端的统一入口。"""

    def __init__(
        self,
        settings: Settings,
        chat_model: Optional[BaseChatModel] = None,
        image_client: Any = None,
    ):
        if not settings.api_key:
            raise MissingCredential("API Key is missing. Please check your configuration.")
        self.settings = settings
        # JSON 模式：要求模型直接输出可解析的 JSON 文本
        self.chat_model = chat_model or ChatGoogleGenerativeAI(
            model=settings.text_model,
            temperature=settings.temperature,
            google_api_key=settings.api_key,
            response_mime_type="application/json",
        )
        self.image_client = image_client or genai.Client(api_key=settings.api_key)

    async def complete_json(
        self,
        prompt: ChatPromptTemplate,
        variables: dict[str, Any],
        output_model: Type[M],
    ) -> M:
        """调用文本模型并解码为 `output_model`。

        参数：
            prompt: 包含 `{format_instructions}` 占位符的提示模板。
            variables: 模板变量。
            output_model: 期望的输出结构。

        异常：
            BackendUnavailable: 调用本身失败。
            EmptyResponse: 返回空文本。
            SchemaViolation: 返回文本无法解析为 `output_model`。
        """
        parser = PydanticOutputParser(pydantic_object=output_model)
        chain = prompt | self.chat_model | StrOutputParser()
        try:
            text = await chain.ainvoke({**variables, "format_instructions": parser.get_format_instructions()})
        except Exception as e:
            raise BackendUnavailable(f"Text generation failed: {e}") from e
        if not text or not text.strip():
            raise EmptyResponse(f"No text response for {output_model.__name__}.")
        return decode_response(text, output_model)

    async def generate_image_parts(self, prompt: str) -> list[Any]:
        """调用图片模型，返回首个候选结果的内容片段（可能为空列表）。"""
        response = await self.image_client.aio.models.generate_content(
            model=self.settings.image_model,
            contents=prompt,
            config=genai_types.GenerateContentConfig(response_modalities=["IMAGE", "TEXT"]),
        )
        candidates = getattr(response, "candidates", None) or []
        if not candidates or candidates[0].content is None:
            return []
        return list(candidates[0].content.parts or [])
