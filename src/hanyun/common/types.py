"""公共数据模型：描述教学活动设计与各类导出物的核心结构。

包含：
- `UserInput` / `Mode`：生成教学方案的请求参数；
- `PlanDraft` / `ActivityPlan`：模型输出的方案草稿与持久化后的完整方案；
- `Collection`：灵感合集；
- `OutlineItem` / `SlideContent` / `DeckSchema` / `DeckConfig`：课件相关结构；
- `ExerciseItem` / `ExerciseSchema` / `ExerciseConfig`：练习题相关结构；
- `Scenario` / `ScenarioItem` / `BatchConfig`：情景图片批量生成相关结构；
- `Artifact`：渲染得到的可下载文件。

字段在 Python 中使用 snake_case，序列化（模型输出、本地存储）使用 camelCase 别名。
"""

from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """序列化时使用 camelCase 别名，同时允许按字段名构造。"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Mode(str, Enum):
    """生成模式：记录并完善已有灵感 / 全新生成灵感。"""
    RECORD = "RECORD"
    GENERATE = "GENERATE"


class UserInput(CamelModel):
    """教学方案生成请求。"""
    theme: str = Field(description="教学主题，例如 购物")
    target_audience: str = Field(description="教学对象，例如 儿童、成人、大学生")
    level: str = Field(description="学习者水平，例如 HSK 3")
    native_language: str = Field(description="学习者母语")
    activity_idea: Optional[str] = Field(default=None, description="已有的活动灵感（仅 RECORD 模式）")
    requirements: Optional[str] = Field(default=None, description="额外的具体要求")


class GrammarPoint(CamelModel):
    """语法点说明。"""
    point: str = Field(description="Name of the grammar point")
    structure: str = Field(description="Sentence pattern / structure formula")
    usage: str = Field(description="When and how the structure is used")
    examples: List[str] = Field(description="Example sentences in Chinese")


class PlanDraft(CamelModel):
    """模型输出的教学方案草稿（不含 id、时间、合集与图片）。"""
    title: str = Field(min_length=1, description="A creative, poetic Chinese title for the activity.")
    rationale: str = Field(description="Brief pedagogical rationale.")
    teaching_goals: List[str] = Field(description="Teaching goals of the activity.")
    key_points: List[str] = Field(description="Key and difficult points for the learners.")
    grammar_points: List[GrammarPoint] = Field(description="Grammar points practised in the activity.")
    props: List[str] = Field(description="List of materials or props needed.")
    steps: List[str] = Field(description="Step-by-step instructions for the teacher.")
    simulation_context: str = Field(description="The classroom situation in which the simulation takes place.")
    simulation: str = Field(description="A dialogue script or scenario simulation of the class.")
    image_prompt_description: str = Field(
        description="A detailed visual description of the simulation scene for image generation."
    )


class ActivityPlan(PlanDraft):
    """完整的教学活动方案（灵感），可保存到灵感库。"""
    id: Optional[str] = Field(default=None, description="首次保存时分配的数字字符串 ID")
    collection_id: Optional[str] = Field(default=None, description="所属合集 ID")
    created_at: Optional[int] = Field(default=None, description="首次保存的毫秒时间戳")
    theme: Optional[str] = Field(default=None, description="来自请求的主题")
    level: Optional[str] = Field(default=None, description="来自请求的水平")
    image_url: Optional[str] = Field(default=None, description="生成的配图（data URI）")


class Collection(CamelModel):
    """灵感合集：纯分组标签。"""
    id: str
    name: str
    description: str = ""
    created_at: int


class OutlineItem(CamelModel):
    """课件大纲中的单页。"""
    title: str = Field(description="Proposed title for the slide")
    note: str = Field(description="Brief description of what this slide covers")


class OutlineSchema(CamelModel):
    """课件大纲。"""
    outline: List[OutlineItem]


class SlideContent(CamelModel):
    """单页幻灯片的内容结构。"""
    title: str = Field(description="Slide headline/title")
    bullet_points: List[str] = Field(description="Key content points for the slide")
    speaker_notes: str = Field(description="Detailed notes for the teacher to say")


class DeckSchema(CamelModel):
    """整份课件的内容结构。"""
    slides: List[SlideContent]


class PPTStyle(str, Enum):
    """课件风格。"""
    INK_WASH = "INK_WASH"
    FESTIVE_RED = "FESTIVE_RED"
    MINIMALIST_ZEN = "MINIMALIST_ZEN"
    CUSTOM_UPLOAD = "CUSTOM_UPLOAD"


class DeckConfig(CamelModel):
    """课件生成配置。"""
    title: str
    style: PPTStyle = PPTStyle.INK_WASH
    custom_background: Optional[str] = Field(default=None, description="自定义背景图（data URI）")
    outline: List[OutlineItem] = Field(default_factory=list)

    @model_validator(mode="after")
    def _require_background(self) -> "DeckConfig":
        if self.style == PPTStyle.CUSTOM_UPLOAD and not self.custom_background:
            raise ValueError("CUSTOM_UPLOAD style requires a custom background image")
        return self


class ExerciseType(str, Enum):
    """练习题题型。"""
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    FILL_IN_BLANK = "FILL_IN_BLANK"
    MATCHING = "MATCHING"
    TRANSLATION = "TRANSLATION"
    OPEN_ENDED = "OPEN_ENDED"


class ExerciseItem(CamelModel):
    """单道练习题。"""
    type: ExerciseType = Field(
        description="One of MULTIPLE_CHOICE, FILL_IN_BLANK, MATCHING, TRANSLATION, OPEN_ENDED"
    )
    question: str = Field(description="The question text")
    options: Optional[List[str]] = Field(default=None, description="Options for multiple choice (A, B, C, D)")
    answer: str = Field(description="The correct answer")


class ExerciseSchema(CamelModel):
    """练习题卷。"""
    title: str = Field(description="Title of the worksheet")
    exercises: List[ExerciseItem]


class ExerciseConfig(CamelModel):
    """练习题生成与导出配置。"""
    types: List[ExerciseType] = Field(min_length=1, description="选中的题型")
    count: int = Field(default=3, ge=1, description="每种题型的题目数量")
    include_answer_key: bool = True
    include_pinyin: bool = False


class Scenario(CamelModel):
    """情景：图片生成描述 + 练习对话。"""
    description: str = Field(description="English prompt describing the scene for an image model")
    dialogue: str = Field(description="Short practice dialogue in Chinese using the teaching focus")


class ScenarioSchema(CamelModel):
    scenarios: List[Scenario]


class BatchConfig(CamelModel):
    """情景图片批量生成配置。"""
    focus_point: str = Field(description="教学重点，例如 把字句")
    count: int = Field(default=3, ge=1, le=5, description="情景数量")

    @field_validator("focus_point")
    @classmethod
    def _focus_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("focus point must not be blank")
        return value.strip()


class ScenarioStatus(str, Enum):
    """情景图片生成状态。"""
    PENDING = "PENDING"
    GENERATING = "GENERATING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class ScenarioItem(CamelModel):
    """批量生成任务中的单个情景。"""
    id: str
    description: str
    dialogue: str
    image_url: Optional[str] = None
    status: ScenarioStatus = ScenarioStatus.PENDING


class Artifact(BaseModel):
    """渲染得到的可下载文件。"""
    filename: str
    mime_type: str
    data: bytes

    def write_to(self, directory: Path) -> Path:
        """写入指定目录并返回文件路径。"""
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / self.filename
        path.write_bytes(self.data)
        return path
