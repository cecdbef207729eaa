"""公共工具函数：统一日志配置、API Key 检查与若干文本/数据处理小工具。

包含：
- `get_logger`：配置并返回指定名称的 `logging.Logger`；
- `check_api_key`：检查 API Key 是否存在，缺失时仅告警不报错；
- `strip_code_fence`：清洗模型输出中 Markdown 三引号包裹的 JSON；
- `safe_filename`：把标题转换为可用作文件名的字符串；
- `decode_data_uri` / `encode_data_uri`：data URI 与二进制之间的转换；
- `now_millis`：当前时间的毫秒时间戳。
"""

import base64
import logging
import re
import time
from typing import Optional

from hanyun.common.config import Settings


def get_logger(name: str) -> logging.Logger:
    """获取带统一格式的 Logger。

    行为：
    - 设置日志级别为 INFO；
    - 设置日志格式包含时间、模块名、级别与消息；
    - 返回指定名称的 Logger。
    """
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    return logging.getLogger(name)


logger = get_logger(__name__)


def check_api_key(settings: Settings) -> bool:
    """检查外部模型所需的 API Key 是否存在。

    与直接抛错不同，这里只记录告警并返回 `False`：
    启动阶段缺少凭证不是致命错误，后续的生成调用会以 `BackendUnavailable` 失败。
    """
    if not settings.api_key:
        logger.warning("API Key is missing! Set GOOGLE_API_KEY (or API_KEY) in the environment.")
        return False
    return True


def strip_code_fence(text: str) -> str:
    """去掉模型输出外层的 ```json ... ``` 包裹。"""
    cleaned = text.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


_UNSAFE_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


def safe_filename(name: str, fallback: str = "untitled") -> str:
    """把任意标题转换为安全的文件名（保留中文，替换路径分隔符等非法字符）。"""
    cleaned = _UNSAFE_CHARS.sub("_", name).strip().strip(".")
    return cleaned or fallback


def decode_data_uri(uri: str) -> tuple[str, bytes]:
    """解析 `data:<mime>;base64,<data>`，返回 (mime, 原始字节)。

    不带 data 头的纯 base64 字符串按 PNG 处理。
    """
    if uri.startswith("data:"):
        header, _, payload = uri.partition(",")
        mime = header[5:].split(";")[0] or "application/octet-stream"
    else:
        mime, payload = "image/png", uri
    return mime, base64.b64decode(payload, validate=True)


def encode_data_uri(data: bytes | str, mime_type: Optional[str]) -> str:
    """把图片字节（或已编码的 base64 文本）封装为 data URI。"""
    if isinstance(data, bytes):
        data = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type or 'image/png'};base64,{data}"


def now_millis() -> int:
    """当前时间的毫秒时间戳。"""
    return int(time.time() * 1000)
