"""运行配置：从环境变量（及 `.env` 文件）读取模型、凭证与目录设置。

约定：
- API Key 优先读取 `GOOGLE_API_KEY`，其次兼容 `API_KEY`；
- 缺少 API Key 不会在加载阶段报错，而是在构造客户端时抛出 `MissingCredential`。
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

DEFAULT_TEXT_MODEL = "gemini-2.5-flash"
DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"


class Settings(BaseModel):
    """应用配置。"""
    api_key: Optional[str] = Field(default=None, description="Gemini API Key")
    text_model: str = Field(default=DEFAULT_TEXT_MODEL, description="文本生成模型")
    image_model: str = Field(default=DEFAULT_IMAGE_MODEL, description="图片生成模型")
    temperature: float = Field(default=0.7, description="文本生成温度")
    library_dir: Path = Field(default=Path.home() / ".hanyun", description="灵感库存储目录")
    output_dir: Path = Field(default=Path("output"), description="导出文件目录")


def load_settings() -> Settings:
    """加载 `.env` 后按环境变量构造配置，未设置的字段使用默认值。"""
    load_dotenv()
    values = {
        "api_key": os.getenv("GOOGLE_API_KEY") or os.getenv("API_KEY") or None,
        "text_model": os.getenv("HANYUN_TEXT_MODEL"),
        "image_model": os.getenv("HANYUN_IMAGE_MODEL"),
        "temperature": os.getenv("HANYUN_TEMPERATURE"),
        "library_dir": os.getenv("HANYUN_LIBRARY_DIR"),
        "output_dir": os.getenv("HANYUN_OUTPUT_DIR"),
    }
    return Settings(**{k: v for k, v in values.items() if v is not None})
