import pytest

from hanyun.agents import worksheet
from hanyun.agents.worksheet import DOC_MIME, group_by_type, render_worksheet
from hanyun.common.errors import ExportFailed
from hanyun.common.types import ExerciseConfig, ExerciseItem, ExerciseSchema, ExerciseType

SCHEMA = ExerciseSchema(
    title="购物练习",
    exercises=[
        ExerciseItem(type=ExerciseType.FILL_IN_BLANK, question="苹果___钱一斤？", answer="多少"),
        ExerciseItem(
            type=ExerciseType.MULTIPLE_CHOICE,
            question="“太贵了”的意思是？",
            options=["A. too expensive", "B. too cheap", "C. just right"],
            answer="A",
        ),
        ExerciseItem(type=ExerciseType.FILL_IN_BLANK, question="便宜___儿吧！", answer="一点"),
        ExerciseItem(type=ExerciseType.OPEN_ENDED, question="你常去超市买什么？", answer="言之有理即可"),
    ],
)

FILL = "二、填空题 (Fill in the Blanks)"
CHOICE = "一、选择题 (Multiple Choice)"
OPEN = "五、问答题 (Open Ended)"
ANSWER_KEY = "参考答案 (Answer Key)"


def config(**overrides):
    values = {"types": [ExerciseType.FILL_IN_BLANK, ExerciseType.MULTIPLE_CHOICE], **overrides}
    return ExerciseConfig(**values)


def html_of(artifact) -> str:
    assert artifact.data.startswith(b"\xef\xbb\xbf")
    return artifact.data.decode("utf-8-sig")


def test_artifact_metadata():
    artifact = render_worksheet(SCHEMA, config(), "超市寻宝记_Exercises")

    assert artifact.filename == "超市寻宝记_Exercises.doc"
    assert artifact.mime_type == DOC_MIME


def test_groups_follow_first_appearance():
    grouped = group_by_type(SCHEMA.exercises)

    assert list(grouped) == [ExerciseType.FILL_IN_BLANK, ExerciseType.MULTIPLE_CHOICE, ExerciseType.OPEN_ENDED]
    assert [item.answer for item in grouped[ExerciseType.FILL_IN_BLANK]] == ["多少", "一点"]


def test_sections_and_numbering():
    html = html_of(render_worksheet(SCHEMA, config(include_answer_key=False), "ws"))

    assert html.index(FILL) < html.index(CHOICE) < html.index(OPEN)
    assert "<strong>1. 苹果___钱一斤？</strong>" in html
    assert "<strong>2. 便宜___儿吧！</strong>" in html
    assert "<strong>1. “太贵了”的意思是？</strong>" in html
    assert "<li>B. too cheap</li>" in html
    assert "姓名 (Name)" in html
    assert "<h1>购物练习</h1>" in html


def test_answer_space_depends_on_type():
    html = html_of(render_worksheet(SCHEMA, config(include_answer_key=False), "ws"))

    assert "_________________________" in html
    assert "<br/><br/><br/>" in html


def test_answer_key_is_optional():
    without_key = html_of(render_worksheet(SCHEMA, config(include_answer_key=False), "ws"))
    with_key = html_of(render_worksheet(SCHEMA, config(include_answer_key=True), "ws"))

    assert ANSWER_KEY not in without_key
    assert ANSWER_KEY in with_key
    key = with_key[with_key.index(ANSWER_KEY):]
    assert key.index(FILL) < key.index(CHOICE)
    assert "<li>1. 多少</li>" in key
    assert "<li>2. 一点</li>" in key
    assert "<li>1. 言之有理即可</li>" in key


def test_text_is_escaped():
    schema = ExerciseSchema(
        title="<b>练习</b>",
        exercises=[ExerciseItem(type=ExerciseType.TRANSLATION, question="Tom & Jerry <script>", answer="汤姆")],
    )

    html = html_of(render_worksheet(schema, config(types=[ExerciseType.TRANSLATION]), "ws"))

    assert "<script>" not in html
    assert "Tom &amp; Jerry &lt;script&gt;" in html
    assert "<title>&lt;b&gt;练习&lt;/b&gt;</title>" in html


def test_pinyin_annotation():
    html = html_of(render_worksheet(SCHEMA, config(include_pinyin=True), "ws"))

    assert "<ruby>苹<rt>píng</rt></ruby><ruby>果<rt>guǒ</rt></ruby>" in html
    assert "___" in html


def test_pinyin_failure_falls_back_to_plain_text(monkeypatch):
    def broken(text):
        if "苹果" in text:
            raise ValueError("dictionary unavailable")
        return worksheet.escape(text)

    monkeypatch.setattr(worksheet, "annotate_pinyin", broken)

    html = html_of(render_worksheet(SCHEMA, config(include_pinyin=True), "ws"))

    assert "<strong>1. 苹果___钱一斤？</strong>" in html
    assert "<strong>2. 便宜___儿吧！</strong>" in html


def test_rendering_is_deterministic():
    first = render_worksheet(SCHEMA, config(include_pinyin=True), "ws")
    second = render_worksheet(SCHEMA, config(include_pinyin=True), "ws")

    assert first.data == second.data


def test_template_failure_is_an_export_error(monkeypatch):
    def missing_template(self, name):
        raise OSError("template directory missing")

    monkeypatch.setattr(worksheet.Environment, "get_template", missing_template)

    with pytest.raises(ExportFailed):
        render_worksheet(SCHEMA, config(), "ws")
