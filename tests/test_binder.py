import json

from conftest import RecordingTool, ScriptedFunction

from stepflow.core.bindings import BindingContext
from stepflow.core.contracts import ModelResult, ModelRole, ParameterGenerationResult
from stepflow.functions.registry import FunctionRegistry
from stepflow.orchestrator.binder import ParameterBinder, substitute


def test_index_into_array_bearing_property():
    bindings = BindingContext({"fileList": '{"files": ["a.txt", "b.txt"]}'})
    assert substitute("{fileList[1]}", bindings) == "b.txt"


def test_index_into_plain_array_and_structured_value():
    bindings = BindingContext({"names": ["x", "y"], "listing": {"items": [{"id": 7}]}})
    assert substitute("{names[0]}", bindings) == "x"
    assert substitute("{listing[0]}", bindings) == '{"id": 7}'


def test_whole_object_uses_content_priority():
    bindings = BindingContext({"fileList": {"Content": "hello", "Output": "world"}})
    assert substitute("{fileList}", bindings) == "hello"


def test_transformed_text_wins_over_content():
    bindings = BindingContext({"t": '{"content": "raw", "transformed_text": "RAW"}'})
    assert substitute("{t}", bindings) == "RAW"


def test_object_without_content_key_is_used_as_is():
    bindings = BindingContext({"obj": '{"a": 1}'})
    assert substitute("{obj}", bindings) == '{"a": 1}'


def test_missing_variable_is_left_verbatim():
    assert substitute("read {missingVar} now", BindingContext()) == "read {missingVar} now"


def test_property_lookup_is_case_insensitive():
    bindings = BindingContext({"res": '{"Path": "docs/a.md", "size": 3}'})
    assert substitute("{res.path}", bindings) == "docs/a.md"
    assert substitute("{res.size}", bindings) == "3"


def test_unresolvable_property_or_index_is_left_verbatim():
    bindings = BindingContext({"res": '{"files": ["a"]}', "text": "plain"})
    assert substitute("{res.nothing}", bindings) == "{res.nothing}"
    assert substitute("{res[5]}", bindings) == "{res[5]}"
    assert substitute("{text.prop}", bindings) == "{text.prop}"
    assert substitute("{text[0]}", bindings) == "{text[0]}"


def test_property_then_index():
    bindings = BindingContext({"res": {"data": {"rows": ["r0", "r1"]}}})
    assert substitute("{res.data}", bindings) == '{"rows": ["r0", "r1"]}'
    bindings.set("out", '{"result": {"x": 1}, "names": ["p", "q"]}')
    assert substitute("{out.names[1]}", bindings) == "q"


def test_values_are_escaped_inside_json_templates():
    bindings = BindingContext({"raw": 'He said "hi"\nbye'})
    out = substitute('{"content": "{raw}"}', bindings)
    assert json.loads(out) == {"content": 'He said "hi"\nbye'}


def test_substituted_text_is_not_rescanned():
    bindings = BindingContext({"a": "{b}", "b": "x"})
    assert substitute("{a}", bindings) == "{b}"


async def test_valid_parameters_pass_without_generation():
    generator = ScriptedFunction(ModelRole.PARAMETER_GENERATOR, "unused")
    binder = ParameterBinder(FunctionRegistry([generator]))
    bindings = BindingContext({"path": "a.txt"})
    result = await binder.process(RecordingTool("ReadFile"), '{"path": "{path}"}', "goal", "read", bindings)
    assert result.is_success
    assert result.processed_parameters == '{"path": "a.txt"}'
    assert generator.calls == []


async def test_invalid_parameters_fall_back_to_generator():
    generated = ModelResult(
        role=ModelRole.PARAMETER_GENERATOR,
        parsed_data=ParameterGenerationResult(is_valid=True, parameters={"path": "b.txt"}),
    )
    generator = ScriptedFunction(ModelRole.PARAMETER_GENERATOR, generated)
    binder = ParameterBinder(FunctionRegistry([generator]))
    bindings = BindingContext({"prev": "x"})
    result = await binder.process(RecordingTool("ReadFile"), '{"path": ', "the goal", "read b", bindings)
    assert result.is_success
    assert json.loads(result.processed_parameters) == {"path": "b.txt"}
    ctx = generator.calls[0]
    assert ctx.goal == "the goal"
    assert ctx.parameters["tool_name"] == "ReadFile"
    assert ctx.parameters["step_description"] == "read b"
    assert '"prev"' in ctx.parameters["bindings"]


async def test_empty_parameters_trigger_generation():
    generator = ScriptedFunction(ModelRole.PARAMETER_GENERATOR, {"is_valid": True, "parameters": "hello"})
    binder = ParameterBinder(FunctionRegistry([generator]))
    result = await binder.process(RecordingTool("echo"), None, "g", "d", BindingContext())
    assert result.is_success
    assert result.processed_parameters == "hello"


async def test_invalid_generation_fails_with_its_error():
    generator = ScriptedFunction(
        ModelRole.PARAMETER_GENERATOR, {"is_valid": False, "error_message": "path unknown"}
    )
    binder = ParameterBinder(FunctionRegistry([generator]))
    result = await binder.process(RecordingTool("ReadFile"), "", "g", "d", BindingContext())
    assert not result.is_success
    assert "path unknown" in result.error_message


async def test_no_generator_fails_with_message():
    binder = ParameterBinder(FunctionRegistry())
    result = await binder.process(RecordingTool("ReadFile"), "[1, 2", "g", "d", BindingContext())
    assert not result.is_success
    assert "no parameter generator" in result.error_message


async def test_tools_without_required_parameters_skip_validation():
    binder = ParameterBinder(FunctionRegistry())
    tool = RecordingTool("ListDirectory", requires_parameters=False)
    result = await binder.process(tool, None, "g", "d", BindingContext())
    assert result.is_success
    assert result.processed_parameters is None


async def test_functions_are_substituted_but_not_validated():
    binder = ParameterBinder(FunctionRegistry())
    bindings = BindingContext({"raw": "text"})
    result = await binder.process(None, "{raw} and {broken", "g", "d", bindings)
    assert result.is_success
    assert result.processed_parameters == "text and {broken"


async def test_generation_streams_through_callback():
    generator = ScriptedFunction(
        ModelRole.PARAMETER_GENERATOR,
        ModelResult(
            role=ModelRole.PARAMETER_GENERATOR,
            raw_response="thinking about it",
            parsed_data=ParameterGenerationResult(parameters='{"a": 1}'),
        ),
        streaming=True,
    )
    binder = ParameterBinder(FunctionRegistry([generator]))
    chunks = []
    result = await binder.process(RecordingTool("t"), "", "g", "d", BindingContext(), on_chunk=chunks.append)
    assert result.is_success
    assert result.processed_parameters == '{"a": 1}'
    assert "".join(chunks).strip() == "thinking about it"
