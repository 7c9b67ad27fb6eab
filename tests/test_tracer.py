import json

from logicmap.tracer import (
    LLMStepTracer,
    TraceStep,
    Variable,
    accumulate_variables,
    drop_trailing_termination_step,
    normalize_steps,
)


class FakeResponse:
    def __init__(self, content):
        self.content = content


class FakeLLM:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.prompts = []

    def invoke(self, messages):
        self.prompts.append(messages[0].content)
        if self.error is not None:
            raise self.error
        return FakeResponse(self.content)


RAW_STEPS = [
    {"step": 1, "line": 1, "variables": {"x": {"value": 1, "type": "int"}}, "explanation": "assign x", "output": ""},
    {"step": 2, "line": 2, "variables": [{"name": "y", "value": [1, 2], "type": "list"}], "explanation": "build y"},
    {"line": 3, "variables": {"z": "plain"}, "explanation": "z", "output": "done"},
]


def test_normalize_steps_accepts_both_variable_shapes():
    steps = normalize_steps(RAW_STEPS)
    assert [s.step for s in steps] == [1, 2, 3]
    assert steps[0].variables["x"] == Variable("1", "int", [])
    assert steps[1].variables["y"].value == "[1, 2]"
    assert steps[2].variables["z"] == Variable("plain")
    assert steps[2].output == "done"


def test_normalize_steps_drops_malformed_entries():
    steps = normalize_steps([{"line": "abc"}, "junk", {"step": "x", "line": "4"}])
    assert [(s.step, s.line) for s in steps] == [(3, 4)]
    assert normalize_steps(None) == []


def test_accumulate_variables_later_values_win():
    steps = normalize_steps(
        [
            {"line": 1, "variables": {"a": "1"}},
            {"line": 2, "variables": {"b": "2"}},
            {"line": 3, "variables": {"a": "3"}},
        ]
    )
    merged = accumulate_variables(steps, 2)
    assert {k: v.value for k, v in merged.items()} == {"a": "3", "b": "2"}
    assert {k: v.value for k, v in accumulate_variables(steps, 1).items()} == {"a": "1", "b": "2"}
    assert accumulate_variables(steps, -1) == {}


def _steps(last_explanation, last_vars=None, last_output=""):
    return [
        TraceStep(1, 1, {"i": Variable("2")}, "increment i", ""),
        TraceStep(2, 2, last_vars if last_vars is not None else {"i": Variable("2")}, last_explanation, last_output),
    ]


def test_trailing_termination_step_is_dropped():
    assert len(drop_trailing_termination_step(_steps("Loop finishes"))) == 1
    assert len(drop_trailing_termination_step(_steps("Condition false, exiting loop", {}))) == 1


def test_trailing_step_kept_when_it_does_something():
    assert len(drop_trailing_termination_step(_steps("Loop finishes", {"i": Variable("3")}))) == 2
    assert len(drop_trailing_termination_step(_steps("Loop finishes", last_output="bye"))) == 2
    assert len(drop_trailing_termination_step(_steps("print result"))) == 2
    assert len(drop_trailing_termination_step(_steps("Loop finishes")[:1])) == 1


def test_llm_tracer_parses_fenced_json():
    llm = FakeLLM("```json\n" + json.dumps(RAW_STEPS) + "\n```")
    steps = LLMStepTracer(llm).trace("x = 1\ny = [1, 2]\nz = 'plain'\n", "Python", {"n": 3})
    assert [s.line for s in steps] == [1, 2, 3]
    prompt = llm.prompts[0]
    assert "1: x = 1" in prompt
    assert "3: z = 'plain'" in prompt
    assert '{"n": 3}' in prompt


def test_llm_tracer_accepts_steps_wrapper():
    llm = FakeLLM(json.dumps({"steps": RAW_STEPS[:1]}))
    assert len(LLMStepTracer(llm).trace("x = 1", "Python")) == 1


def test_llm_tracer_failures_give_no_steps():
    assert LLMStepTracer(FakeLLM("not json")).trace("x = 1", "Python") == []
    assert LLMStepTracer(FakeLLM(error=ConnectionError("down"))).trace("x = 1", "Python") == []
    assert LLMStepTracer(None).trace("x = 1", "Python") == []
    llm = FakeLLM("[]")
    assert LLMStepTracer(llm).trace("   ", "Python") == []
    assert llm.prompts == []
