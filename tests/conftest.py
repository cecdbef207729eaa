import base64
import io
import json
from types import SimpleNamespace

import pytest
from langchain_core.language_models import BaseChatModel
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from PIL import Image

from hanyun.common.client import GeminiClient
from hanyun.common.config import Settings
from hanyun.common.types import ActivityPlan, UserInput

PLAN_PAYLOAD = {
    "title": "超市寻宝记",
    "rationale": "通过真实购物情景练习询价与讨价还价。",
    "teachingGoals": ["能用“多少钱”询问价格", "能用“太贵了”表达意见"],
    "keyPoints": ["量词 斤/个/瓶", "“便宜一点儿吧”的语气"],
    "grammarPoints": [
        {
            "point": "……多少钱",
            "structure": "名词 + 多少钱（一 + 量词）",
            "usage": "询问商品价格",
            "examples": ["苹果多少钱一斤？", "这瓶水多少钱？"],
        }
    ],
    "props": ["价格标签", "玩具钱币", "购物篮"],
    "steps": ["热身：复习数字", "分组布置“超市”", "角色扮演购物", "全班分享"],
    "simulationContext": "教室被布置成一个小超市，学生分别扮演顾客和收银员。",
    "simulation": "顾客：苹果多少钱一斤？\n售货员：五块。\n顾客：太贵了，便宜一点儿吧！",
    "imagePromptDescription": "Students role-playing a supermarket checkout in a bright classroom.",
}


def plan_json(**overrides) -> str:
    return json.dumps({**PLAN_PAYLOAD, **overrides}, ensure_ascii=False)


class ExplodingChatModel(BaseChatModel):
    """每次调用都抛出网络错误的对话模型。"""

    @property
    def _llm_type(self) -> str:
        return "exploding"

    def _generate(self, messages, stop=None, run_manager=None, **kwargs):
        raise ConnectionError("network unreachable")


class FakeImageModels:
    """按顺序返回预设结果的图片接口，记录每次调用的提示。"""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    async def generate_content(self, model, contents, config=None):
        self.calls.append(contents)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def image_response(data, mime_type="image/png", with_text=True):
    parts = []
    if with_text:
        parts.append(SimpleNamespace(text="Here is your image", inline_data=None))
    parts.append(SimpleNamespace(text=None, inline_data=SimpleNamespace(data=data, mime_type=mime_type)))
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))])


def text_only_response():
    part = SimpleNamespace(text="Sorry, I can only describe it.", inline_data=None)
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))])


@pytest.fixture
def settings(tmp_path):
    return Settings(
        api_key="test-key",
        library_dir=tmp_path / "library",
        output_dir=tmp_path / "output",
    )


@pytest.fixture
def png_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (32, 18), (185, 58, 50)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def png_data_uri(png_bytes):
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")


@pytest.fixture
def make_client(settings):
    """构造注入了假模型的客户端：`responses` 为文本模型依次返回的内容，`images` 为图片接口依次返回的结果。"""

    def factory(responses=(), images=(), chat_model=None):
        image_models = FakeImageModels(images)
        client = GeminiClient(
            settings,
            chat_model=chat_model or FakeListChatModel(responses=list(responses) or ["{}"]),
            image_client=SimpleNamespace(aio=SimpleNamespace(models=image_models)),
        )
        client.image_models = image_models
        return client

    return factory


@pytest.fixture
def shopping_input():
    return UserInput(
        theme="Shopping",
        target_audience="Adults",
        level="HSK 3",
        native_language="English",
        activity_idea="Role play buying fruit at a market",
    )


@pytest.fixture
def plan():
    return ActivityPlan.model_validate({**PLAN_PAYLOAD, "theme": "Shopping", "level": "HSK 3"})
