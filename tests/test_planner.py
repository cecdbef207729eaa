import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from conftest import PLAN_PAYLOAD, ExplodingChatModel, plan_json
from hanyun.agents.planner import PlannerAgent
from hanyun.common.client import GeminiClient
from hanyun.common.config import Settings
from hanyun.common.errors import BackendUnavailable, EmptyResponse, MissingCredential, SchemaViolation
from hanyun.common.types import Mode, UserInput


async def test_record_mode_returns_complete_plan(make_client, shopping_input):
    agent = PlannerAgent(make_client([plan_json()]))

    plan = await agent.generate_plan(shopping_input, Mode.RECORD)

    assert plan.title == PLAN_PAYLOAD["title"]
    assert plan.theme == "Shopping"
    assert plan.level == "HSK 3"
    assert plan.grammar_points[0].examples == ["苹果多少钱一斤？", "这瓶水多少钱？"]
    assert plan.steps and plan.props and plan.teaching_goals
    assert plan.id is None
    assert plan.image_url is None


async def test_generate_mode_does_not_need_an_idea(make_client, shopping_input):
    agent = PlannerAgent(make_client([plan_json()]))
    user_input = shopping_input.model_copy(update={"activity_idea": None})

    plan = await agent.generate_plan(user_input, Mode.GENERATE)

    assert plan.theme == "Shopping"


async def test_record_mode_requires_an_idea(make_client, shopping_input):
    agent = PlannerAgent(make_client([plan_json()]))
    user_input = shopping_input.model_copy(update={"activity_idea": "   "})

    with pytest.raises(ValueError):
        await agent.generate_plan(user_input, Mode.RECORD)


def test_record_prompt_contains_the_idea(make_client, shopping_input):
    agent = PlannerAgent(make_client())
    variables = agent.prompt_variables(shopping_input, Mode.RECORD)

    messages = agent.prompts[Mode.RECORD].format_messages(**variables, format_instructions="")
    text = messages[-1].content

    assert "Role play buying fruit at a market" in text
    assert "HSK 3" in text
    assert variables["requirements"] == "None"


def test_generate_prompt_differs_from_record_prompt(make_client, shopping_input):
    agent = PlannerAgent(make_client())
    variables = agent.prompt_variables(shopping_input, Mode.GENERATE)

    text = agent.prompts[Mode.GENERATE].format_messages(**variables, format_instructions="")[-1].content

    assert "brand new" in text
    assert "activity_idea" not in variables


async def test_code_fenced_response_is_accepted(make_client, shopping_input):
    agent = PlannerAgent(make_client(["```json\n" + plan_json() + "\n```"]))

    plan = await agent.generate_plan(shopping_input, Mode.RECORD)

    assert plan.title == PLAN_PAYLOAD["title"]


async def test_empty_response(make_client, shopping_input):
    agent = PlannerAgent(make_client(["   "]))

    with pytest.raises(EmptyResponse):
        await agent.generate_plan(shopping_input, Mode.RECORD)


@pytest.mark.parametrize("payload", ["not json at all", plan_json(title=""), '{"title": "缺少其他字段"}'])
async def test_schema_violation(make_client, shopping_input, payload):
    agent = PlannerAgent(make_client([payload]))

    with pytest.raises(SchemaViolation):
        await agent.generate_plan(shopping_input, Mode.RECORD)


async def test_transport_failure(make_client, shopping_input):
    agent = PlannerAgent(make_client(chat_model=ExplodingChatModel()))

    with pytest.raises(BackendUnavailable):
        await agent.generate_plan(shopping_input, Mode.RECORD)


def test_missing_api_key_is_a_backend_failure():
    with pytest.raises(MissingCredential) as excinfo:
        GeminiClient(Settings(), chat_model=FakeListChatModel(responses=["{}"]), image_client=object())

    assert isinstance(excinfo.value, BackendUnavailable)


def test_user_input_accepts_camel_case():
    user_input = UserInput.model_validate({
        "theme": "Food",
        "targetAudience": "Kids",
        "level": "HSK 1",
        "nativeLanguage": "Spanish",
    })

    assert user_input.target_audience == "Kids"
    assert user_input.activity_idea is None
