import pytest
from conftest import FakeProvider
from langchain_core.language_models import FakeListChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from stepflow.core.config import EngineConfig
from stepflow.core.contracts import CompletionCheckResult, ModelContext, ModelRole, ParameterGenerationResult
from stepflow.functions import FunctionRegistry, PromptFunction, build_functions
from stepflow.functions.prompts import PLAN_FORMAT, build_prompt
from stepflow.llm.providers import LangChainProvider


def _provider(*responses):
    return LangChainProvider("fake", {"m1": FakeListChatModel(responses=list(responses))})


async def test_langchain_provider_generates():
    provider = _provider("hello there")
    assert provider.default_model == "m1"
    assert provider.supports_model("m1")
    assert not provider.supports_model("m2")
    assert await provider.generate("hi") == "hello there"


async def test_langchain_provider_streams():
    provider = _provider("abc")
    assert "".join([c async for c in provider.generate_stream("hi")]) == "abc"


async def test_langchain_provider_rejects_bad_input():
    provider = _provider("x")
    with pytest.raises(ValueError):
        await provider.generate("")
    with pytest.raises(ValueError):
        await provider.generate("hi", model="m2")


async def test_langchain_provider_structured():
    provider = _provider('```json\n{"is_complete": false, "reason": "one file left"}\n```')
    result = await provider.generate_structured("check", CompletionCheckResult)
    assert result.reason == "one file left"


def test_render_fills_variables_from_parameters():
    fn = PromptFunction(ModelRole.SUMMARIZER, FakeProvider("p"), build_prompt(ModelRole.SUMMARIZER))
    text = fn.render(ModelContext(goal="summarize notes", parameters={"content": "alpha beta", "results": [1, 2]}))
    assert "Goal: summarize notes" in text
    assert "alpha beta" in text
    assert "[\n  1,\n  2\n]" in text


def test_format_text_is_not_treated_as_template():
    fn = PromptFunction(ModelRole.PLANNER, FakeProvider("p"), build_prompt(ModelRole.PLANNER))
    text = fn.render(ModelContext(goal="g", parameters={"output_format": PLAN_FORMAT}))
    assert '"target_name": "<tool or function name>"' in text


def test_system_prompt_override():
    prompt = build_prompt(ModelRole.GENERATOR, "Write a haiku about {content}.")
    fn = PromptFunction(ModelRole.GENERATOR, FakeProvider("p"), prompt)
    assert "Write a haiku about rain." in fn.render(ModelContext(goal="g", parameters={"content": "rain"}))


async def test_structured_result_is_parsed():
    fn = PromptFunction(
        ModelRole.PARAMETER_GENERATOR,
        FakeProvider("p", '{"is_valid": true, "parameters": {"path": "a.txt"}}'),
        build_prompt(ModelRole.PARAMETER_GENERATOR),
        result_model=ParameterGenerationResult,
    )
    result = await fn.execute(ModelContext(goal="g"))
    assert result.is_success
    assert result.parsed_data.parameters == '{"path": "a.txt"}'


async def test_structured_parse_failure_is_unsuccessful():
    fn = PromptFunction(
        ModelRole.COMPLETION_CHECKER,
        FakeProvider("p", "I think so, yes."),
        build_prompt(ModelRole.COMPLETION_CHECKER),
        result_model=CompletionCheckResult,
    )
    result = await fn.execute(ModelContext(goal="g"))
    assert not result.is_success
    assert result.raw_response == "I think so, yes."
    assert "CompletionCheckResult" in result.error_message


async def test_json_reply_is_exposed_without_model():
    fn = PromptFunction(ModelRole.PLANNER, FakeProvider("p", '{"actions": []}'), build_prompt(ModelRole.PLANNER))
    result = await fn.execute(ModelContext(goal="g"))
    assert result.parsed_data == {"actions": []}

    fn = PromptFunction(ModelRole.GENERATOR, FakeProvider("p", "plain prose"), build_prompt(ModelRole.GENERATOR))
    assert (await fn.execute(ModelContext(goal="g"))).parsed_data is None


async def test_streaming_function_ends_with_result():
    fn = PromptFunction(
        ModelRole.SUMMARIZER, FakeProvider("p", ["The ", "answer"]), build_prompt(ModelRole.SUMMARIZER), streaming=True
    )
    chunks = [c async for c in fn.execute_stream(ModelContext(goal="g"))]
    assert [c.content for c in chunks[:-1]] == ["The ", "answer"]
    assert chunks[-1].is_final
    assert chunks[-1].parsed_result.raw_response == "The answer"


async def test_non_streaming_function_yields_single_final_chunk():
    fn = PromptFunction(ModelRole.GENERATOR, FakeProvider("p", "whole"), build_prompt(ModelRole.GENERATOR))
    chunks = [c async for c in fn.execute_stream(ModelContext(goal="g"))]
    assert len(chunks) == 1
    assert chunks[0].content == "whole"
    assert chunks[0].parsed_result.raw_response == "whole"


def test_build_functions_covers_every_role():
    registry = build_functions(FakeProvider("p"))
    assert set(registry.roles()) == set(ModelRole)
    assert isinstance(registry.get(ModelRole.EVALUATOR), PromptFunction)
    assert registry.get("CompletionChecker").result_model is CompletionCheckResult


def test_build_functions_applies_config_overrides():
    config = EngineConfig(engine_id="x", functions=[
        {"role": "summarizer", "streaming": True, "model": "m2"},
        {"role": "generator", "system_prompt": "Just say {content}"},
    ])
    registry = build_functions(FakeProvider("p"), config)
    summarizer = registry.get(ModelRole.SUMMARIZER)
    assert summarizer.supports_streaming
    assert summarizer.model == "m2"
    assert "Just say hi" in registry.get(ModelRole.GENERATOR).render(ModelContext(parameters={"content": "hi"}))


def test_registry_lookup_and_unregister():
    registry = build_functions(FakeProvider("p"))
    assert "planner" in registry
    assert registry.get("nonsense") is None
    assert registry.unregister("planner")
    assert not registry.unregister(ModelRole.PLANNER)
    assert ModelRole.PLANNER not in registry
    assert FunctionRegistry().roles() == []


async def test_langchain_provider_accepts_chat_messages():
    provider = _provider("done")
    messages = [SystemMessage(content="You are terse."), HumanMessage(content="hi")]
    assert await provider.generate(messages) == "done"
    with pytest.raises(ValueError):
        await provider.generate([SystemMessage(content=" "), HumanMessage(content="")])


async def test_function_sends_system_and_human_roles():
    provider = FakeProvider("p", '{"summary": "short"}')
    fn = PromptFunction(ModelRole.SUMMARIZER, provider, build_prompt(ModelRole.SUMMARIZER))
    result = await fn.execute(ModelContext(goal="g", parameters={"content": "alpha"}))
    assert result.is_success
    system, human = provider.prompts[0]
    assert isinstance(system, SystemMessage)
    assert isinstance(human, HumanMessage)
    assert "Goal: g" in human.content
    assert "Goal: g" not in system.content
