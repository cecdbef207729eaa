"""拼音注音：把中文文本转换为带 `<ruby>` 注音的 HTML 片段。

行为：
- 连续的汉字串整体交给 `pypinyin` 取音（带声调符号），以便识别多音词；
- 每个汉字输出为 `<ruby>汉<rt>hàn</rt></ruby>`；
- 非汉字部分（英文、数字、标点）原样保留并做 HTML 转义。
"""

import re

from markupsafe import Markup, escape
from pypinyin import Style, lazy_pinyin

_HAN_RUN = re.compile(r"[\u3400-\u4dbf\u4e00-\u9fff\uf900-\ufaff]+")
_RUBY = Markup("<ruby>{}<rt>{}</rt></ruby>")


def annotate_pinyin(text: str) -> Markup:
    """为文本中的汉字加注拼音。

    若某段汉字无法逐字对应到读音，抛出 `ValueError`，由调用方决定回退方式。
    """
    fragments = []
    position = 0
    for match in _HAN_RUN.finditer(text):
        fragments.append(escape(text[position:match.start()]))
        run = match.group()
        readings = lazy_pinyin(run, style=Style.TONE)
        if len(readings) != len(run):
            raise ValueError(f"Cannot align pinyin for {run!r}")
        fragments.extend(_RUBY.format(char, reading) for char, reading in zip(run, readings))
        position = match.end()
    fragments.append(escape(text[position:]))
    return Markup("").join(fragments)
