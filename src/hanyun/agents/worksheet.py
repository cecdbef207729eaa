"""练习题导出（Worksheet）：把练习题渲染为可用 Word 打开的 `.doc` 文档。

核心职责：
- 按题型分组（保持题型首次出现的顺序），每组输出带编号的中文题型标题；
- 有选项的题目输出选项列表，否则按题型输出作答空白；
- 可选追加分页的参考答案，分组方式与正文一致；
- 可选为所有文本片段加注拼音，单个片段注音失败时回退为原文，不影响整份文档。

实现要点：
- 使用 Jinja2 模板生成 HTML（开启自动转义，已注音的片段以 `Markup` 传入）；
- 输出为 UTF-8 BOM + HTML，MIME 类型 `application/msword`，文件名 `<filename>.doc`；
- 不写入任何时间戳，同样的输入总是得到字节级一致的输出。
"""

from pathlib import Path
from typing import Iterable

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup, escape

from hanyun.common.errors import ExportFailed
from hanyun.common.pinyin import annotate_pinyin
from hanyun.common.types import Artifact, ExerciseConfig, ExerciseItem, ExerciseSchema, ExerciseType
from hanyun.common.utils import get_logger, safe_filename

logger = get_logger(__name__)

DOC_MIME = "application/msword"
BOM = "\ufeff"

TYPE_LABELS = {
    ExerciseType.MULTIPLE_CHOICE: "一、选择题 (Multiple Choice)",
    ExerciseType.FILL_IN_BLANK: "二、填空题 (Fill in the Blanks)",
    ExerciseType.MATCHING: "三、连线题 (Matching)",
    ExerciseType.TRANSLATION: "四、翻译题 (Translation)",
    ExerciseType.OPEN_ENDED: "五、问答题 (Open Ended)",
}

# 无选项时的作答空白
BLANKS = {
    ExerciseType.FILL_IN_BLANK: Markup("<br/>_________________________"),
    ExerciseType.TRANSLATION: Markup("<br/>__________________________________________________"),
    ExerciseType.OPEN_ENDED: Markup("<br/><br/><br/>"),
}

ANSWER_KEY_LABEL = "参考答案 (Answer Key)"
NAME_LABEL = "姓名"
DATE_LABEL = "日期"


def _get_jinja_env() -> Environment:
    templates_dir = Path(__file__).parent / "templates"
    return Environment(
        loader=FileSystemLoader(str(templates_dir)),
        autoescape=select_autoescape(["html", "j2"]),
        keep_trailing_newline=True,
    )


def group_by_type(exercises: Iterable[ExerciseItem]) -> dict[ExerciseType, list[ExerciseItem]]:
    """按题型分组，保持题型首次出现的顺序与组内原有顺序。"""
    grouped: dict[ExerciseType, list[ExerciseItem]] = {}
    for item in exercises:
        grouped.setdefault(item.type, []).append(item)
    return grouped


class WorksheetRenderer:
    """练习题文档渲染器。"""

    def __init__(self, config: ExerciseConfig):
        self.config = config
        self.env = _get_jinja_env()

    def format_text(self, text: str) -> Markup:
        """转义文本，需要时加注拼音；注音失败只影响当前片段。"""
        if not self.config.include_pinyin or not text:
            return escape(text)
        try:
            return annotate_pinyin(text)
        except Exception as e:
            logger.error(f"Pinyin generation error for {text[:20]!r}: {e}")
            return escape(text)

    def render(self, schema: ExerciseSchema) -> str:
        fmt = self.format_text
        grouped = group_by_type(schema.exercises)

        groups = []
        for exercise_type, items in grouped.items():
            groups.append({
                "heading": fmt(TYPE_LABELS[exercise_type]),
                "questions": [
                    {
                        "question": fmt(item.question),
                        "options": [fmt(option) for option in item.options or []],
                        "blank": BLANKS.get(exercise_type),
                    }
                    for item in items
                ],
            })

        answer_key = None
        if self.config.include_answer_key:
            answer_key = {
                "heading": fmt(ANSWER_KEY_LABEL),
                "groups": [
                    {
                        "heading": fmt(TYPE_LABELS[exercise_type]),
                        "answers": [fmt(item.answer) for item in items],
                    }
                    for exercise_type, items in grouped.items()
                ],
            }

        template = self.env.get_template("worksheet.html.j2")
        return template.render(
            plain_title=schema.title,
            title=fmt(schema.title),
            name_label=fmt(NAME_LABEL),
            date_label=fmt(DATE_LABEL),
            groups=groups,
            answer_key=answer_key,
        )


def render_worksheet(schema: ExerciseSchema, config: ExerciseConfig, filename: str) -> Artifact:
    """把练习题渲染为 `.doc` 文档。

    参数：
        schema: 练习题卷（标题与题目列表）。
        config: 是否附参考答案、是否加注拼音。
        filename: 不含扩展名的文件名。

    异常：
        ExportFailed: 模板加载或渲染失败。
    """
    logger.info(f"Rendering worksheet: {schema.title} ({len(schema.exercises)} exercises)")
    try:
        html = WorksheetRenderer(config).render(schema)
    except Exception as e:
        logger.error(f"Error rendering worksheet: {e}")
        raise ExportFailed("Failed to create worksheet document.") from e
    return Artifact(
        filename=f"{safe_filename(filename)}.doc",
        mime_type=DOC_MIME,
        data=(BOM + html).encode("utf-8"),
    )
