"""图片生成（Image Generator）智能体：根据情景描述生成课堂配图。

核心职责：
- 在描述外包裹固定的写实课堂风格前缀，请求图片模型生成；
- 扫描响应片段，返回首个内联图片的 data URI；
- 没有图片或调用出错时返回 `None`，不向上抛出异常。

实现要点：
- 配图只是可选的补充，失败不应阻断方案本身，因此这里吞掉错误并记录日志；
- 兼容 `inline_data.data` 为原始字节或 base64 文本两种情况。
"""

from typing import Any, Optional

from hanyun.common.client import GeminiClient
from hanyun.common.utils import encode_data_uri, get_logger

logger = get_logger(__name__)

STYLE_PREFIX = """
A photorealistic, high-quality image of a Chinese language classroom setting.
Style: Realistic, warm lighting, educational context.
Scene description: {description}
"""


def first_inline_image(parts: list[Any]) -> Optional[str]:
    """返回片段列表中首个内联图片的 data URI。"""
    for part in parts:
        inline = getattr(part, "inline_data", None)
        if inline is not None and getattr(inline, "data", None):
            return encode_data_uri(inline.data, getattr(inline, "mime_type", None))
    return None


class ImageGeneratorAgent:
    """图片生成智能体：返回可嵌入方案与课件的 data URI。"""

    def __init__(self, client: GeminiClient):
        self.agent_name = "Scene Illustrator"
        self.description = "Generates classroom scene images for activity plans."
        self.client = client

    async def generate_image(self, description: str) -> Optional[str]:
        """生成配图，失败时返回 `None`。"""
        logger.info(f"Generating image for: {description[:60]}")
        try:
            parts = await self.client.generate_image_parts(STYLE_PREFIX.format(description=description))
        except Exception as e:
            logger.error(f"Error generating image: {e}")
            return None

        image_url = first_inline_image(parts)
        if image_url is None:
            logger.warning("Image response contained no inline image data")
        else:
            logger.info("Image generated successfully")
        return image_url
