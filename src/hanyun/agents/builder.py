"""排版构建（Builder）：把逐页课件内容写入 `.pptx` 文件。

核心职责：
- 按风格查表确定背景色、标题色、正文色、强调色与标题对齐方式；
- 每页依次写入：背景（纯色或用户上传的图片）、标题、项目符号正文（无要点时省略）、演讲者备注；
- 在内存中保存为二进制，返回 `Artifact`，文件名取自课件标题。

实现要点：
- 使用 `python-pptx`，16:9 画幅，基于空白版式手动放置文本框；
- 自定义背景以铺满整页的图片实现，且最先插入，保证位于最底层；
- 打包过程中的任何异常都转换为 `ExportFailed`，不返回半成品。
"""

import io
from dataclasses import dataclass
from typing import Sequence

from pptx import Presentation
from pptx.dml.color import RGBColor
from pptx.enum.shapes import MSO_CONNECTOR
from pptx.enum.text import PP_ALIGN
from pptx.oxml.ns import qn
from pptx.util import Inches, Pt

from hanyun.common.errors import ExportFailed
from hanyun.common.types import Artifact, DeckConfig, PPTStyle, SlideContent
from hanyun.common.utils import decode_data_uri, get_logger, safe_filename

logger = get_logger(__name__)

PPTX_MIME = "application/vnd.openxmlformats-officedocument.presentationml.presentation"
AUTHOR = "HanYun Inspiration"
BLANK_LAYOUT = 6


@dataclass(frozen=True)
class StylePalette:
    background: str
    title: str
    body: str
    accent: str
    title_align: PP_ALIGN = PP_ALIGN.CENTER
    title_rule: bool = False


STYLE_TABLE = {
    PPTStyle.INK_WASH: StylePalette("F0E7D8", "2C2C2C", "5C5042", "6C8C74", title_rule=True),
    PPTStyle.FESTIVE_RED: StylePalette("B93A32", "F0E7D8", "FFFFFF", "FFD700"),
    PPTStyle.MINIMALIST_ZEN: StylePalette("FFFFFF", "2C2C2C", "666666", "000000", title_align=PP_ALIGN.LEFT),
    # 自定义背景无法预知图片颜色，文字统一使用黑色
    PPTStyle.CUSTOM_UPLOAD: StylePalette("FFFFFF", "000000", "000000", "B93A32"),
}


def _set_bullet(paragraph, char: str = "•") -> None:
    """为段落设置项目符号（文本框默认没有项目符号）。"""
    pPr = paragraph._p.get_or_add_pPr()
    pPr.set("marL", str(Inches(0.35)))
    pPr.set("indent", str(-Inches(0.35)))
    pPr.append(pPr.makeelement(qn("a:buChar"), {"char": char}))


class DeckBuilder:
    """课件构建器：一次调用生成一个 `.pptx`。"""

    def __init__(self, config: DeckConfig):
        self.config = config
        self.palette = STYLE_TABLE[config.style]
        self.background_image = None
        if config.style == PPTStyle.CUSTOM_UPLOAD and config.custom_background:
            _, self.background_image = decode_data_uri(config.custom_background)

    def build(self, slides: Sequence[SlideContent]) -> bytes:
        prs = Presentation()
        prs.slide_width = Inches(13.333)
        prs.slide_height = Inches(7.5)
        prs.core_properties.title = self.config.title
        prs.core_properties.author = AUTHOR

        for slide_content in slides:
            self._add_slide(prs, slide_content)

        buffer = io.BytesIO()
        prs.save(buffer)
        return buffer.getvalue()

    def _add_slide(self, prs, content: SlideContent) -> None:
        slide = prs.slides.add_slide(prs.slide_layouts[BLANK_LAYOUT])
        palette = self.palette
        width = int(prs.slide_width * 0.9)
        left = Inches(0.5)

        # 背景
        if self.background_image is not None:
            slide.shapes.add_picture(
                io.BytesIO(self.background_image), 0, 0, width=prs.slide_width, height=prs.slide_height
            )
        else:
            fill = slide.background.fill
            fill.solid()
            fill.fore_color.rgb = RGBColor.from_string(palette.background)

        # 标题
        title_top, title_height = Inches(0.5), Inches(1)
        title_box = slide.shapes.add_textbox(left, title_top, width, title_height)
        title_box.name = "Title"
        title_frame = title_box.text_frame
        title_frame.word_wrap = True
        paragraph = title_frame.paragraphs[0]
        paragraph.alignment = palette.title_align
        run = paragraph.add_run()
        run.text = content.title
        run.font.name = "Arial"
        run.font.size = Pt(32)
        run.font.bold = True
        run.font.color.rgb = RGBColor.from_string(palette.title)

        if palette.title_rule:
            rule_y = title_top + title_height
            rule = slide.shapes.add_connector(MSO_CONNECTOR.STRAIGHT, left, rule_y, left + width, rule_y)
            rule.line.color.rgb = RGBColor.from_string(palette.accent)
            rule.line.width = Pt(1)

        # 正文要点
        if content.bullet_points:
            body_box = slide.shapes.add_textbox(left, Inches(1.8), width, Inches(4))
            body_box.name = "Body"
            body_frame = body_box.text_frame
            body_frame.word_wrap = True
            for idx, point in enumerate(content.bullet_points):
                paragraph = body_frame.paragraphs[0] if idx == 0 else body_frame.add_paragraph()
                paragraph.line_spacing = Pt(32)
                _set_bullet(paragraph)
                run = paragraph.add_run()
                run.text = point
                run.font.size = Pt(18)
                run.font.color.rgb = RGBColor.from_string(palette.body)

        # 演讲者备注
        if content.speaker_notes:
            slide.notes_slide.notes_text_frame.text = content.speaker_notes


def render_deck(slides: Sequence[SlideContent], config: DeckConfig) -> Artifact:
    """把课件内容渲染为 `.pptx`。

    参数：
        slides: 逐页内容，按顺序各生成一页。
        config: 标题、风格与可选的自定义背景。

    返回：
        `Artifact`，文件名为 `<标题>.pptx`。

    异常：
        ExportFailed: 背景图解码或打包失败。
    """
    logger.info(f"Building presentation: {config.title} ({config.style.value}, {len(slides)} slides)")
    try:
        data = DeckBuilder(config).build(slides)
    except Exception as e:
        logger.error(f"Error creating PPT file: {e}")
        raise ExportFailed("Failed to create PPT file.") from e
    filename = f"{safe_filename(config.title)}.pptx"
    logger.info(f"Presentation built: {filename}")
    return Artifact(filename=filename, mime_type=PPTX_MIME, data=data)
