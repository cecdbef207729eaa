"""图片打包（Archiver）：把批量生成的情景图片与对话文本打包为 ZIP。

压缩包结构：
- `Practice_Images_<标题>/Dialogues.txt`：所有情景的编号、对话与描述；
- `Practice_Images_<标题>/Scene_<n>.<ext>`：仅包含成功生成图片的情景。

没有图片的情景不产生任何文件，也不报错；即使全部失败，压缩包中仍有对话文本。
"""

import io
import zipfile
from typing import Sequence

from hanyun.common.errors import ExportFailed
from hanyun.common.types import ActivityPlan, Artifact, ScenarioItem, ScenarioStatus
from hanyun.common.utils import decode_data_uri, get_logger, safe_filename

logger = get_logger(__name__)

ZIP_MIME = "application/zip"
# 固定时间戳，保证相同输入得到相同的压缩包
ENTRY_TIMESTAMP = (1980, 1, 1, 0, 0, 0)
IMAGE_EXTENSIONS = {"image/png": "png", "image/jpeg": "jpg", "image/webp": "webp", "image/gif": "gif"}


def build_transcript(items: Sequence[ScenarioItem], plan: ActivityPlan, focus_point: str) -> str:
    """生成对话文本：每个情景按 1 开始编号。"""
    lines = [f"Activity: {plan.title}\nTeaching Focus: {focus_point}\n\n"]
    for idx, item in enumerate(items, start=1):
        lines.append(f"Scene {idx}:\nDialogue: {item.dialogue}\nDescription: {item.description}\n\n")
    return "".join(lines)


def _write(archive: zipfile.ZipFile, name: str, data: bytes | str) -> None:
    info = zipfile.ZipInfo(name, date_time=ENTRY_TIMESTAMP)
    info.compress_type = zipfile.ZIP_DEFLATED
    archive.writestr(info, data)


def build_archive(items: Sequence[ScenarioItem], plan: ActivityPlan, focus_point: str) -> Artifact:
    """打包情景图片与对话文本。

    异常：
        ExportFailed: 压缩包序列化失败。
    """
    title = safe_filename(plan.title)
    folder = f"Practice_Images_{title}/"
    buffer = io.BytesIO()
    try:
        with zipfile.ZipFile(buffer, "w") as archive:
            archive.writestr(zipfile.ZipInfo(folder, date_time=ENTRY_TIMESTAMP), b"")
            _write(archive, folder + "Dialogues.txt", build_transcript(items, plan, focus_point))
            images = 0
            for idx, item in enumerate(items, start=1):
                if item.status != ScenarioStatus.COMPLETED or not item.image_url:
                    continue
                mime, data = decode_data_uri(item.image_url)
                _write(archive, f"{folder}Scene_{idx}.{IMAGE_EXTENSIONS.get(mime, 'png')}", data)
                images += 1
    except Exception as e:
        logger.error(f"Failed to zip files: {e}")
        raise ExportFailed("Failed to zip files.") from e

    logger.info(f"Archive built with {images} images and {len(items)} scenes")
    return Artifact(filename=f"{title}_Images.zip", mime_type=ZIP_MIME, data=buffer.getvalue())
