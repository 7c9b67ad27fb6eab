"""
Execution-step data consumed by the step highlighter.

Steps come from an external tracer (an LLM asked to simulate the program). This
module only normalizes what comes back and applies a best-effort cleanup; nothing
in the lowering passes depends on it.
"""

from __future__ import annotations

import json
import re
import time
from dataclasses import dataclass, field
from typing import Optional

from langchain.messages import HumanMessage
from langchain_ollama import ChatOllama

from logicmap.config import SETTINGS
from logicmap.log import log


@dataclass
class Variable:
    value: str
    type: str = ""
    history: list[str] = field(default_factory=list)


@dataclass
class TraceStep:
    step: int
    line: int
    variables: dict[str, Variable] = field(default_factory=dict)
    explanation: str = ""
    output: str = ""


def _as_text(value) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return "None"
    try:
        return json.dumps(value)
    except (TypeError, ValueError):
        return str(value)


def _normalize_variables(raw) -> dict[str, Variable]:
    """Accepts ``{name: {value, type}}``, ``{name: value}`` or ``[{name, value, type}]``."""
    out: dict[str, Variable] = {}
    if isinstance(raw, list):
        items = [(v.get("name"), v) for v in raw if isinstance(v, dict)]
    elif isinstance(raw, dict):
        items = list(raw.items())
    else:
        return out
    for name, data in items:
        if not name:
            continue
        if isinstance(data, Variable):
            out[str(name)] = data
        elif isinstance(data, dict) and "value" in data:
            history = data.get("history") or []
            out[str(name)] = Variable(
                _as_text(data.get("value")),
                str(data.get("type") or ""),
                [_as_text(h) for h in history] if isinstance(history, list) else [],
            )
        else:
            out[str(name)] = Variable(_as_text(data))
    return out


def normalize_steps(raw_steps) -> list[TraceStep]:
    """Coerce tracer output into TraceSteps; malformed entries are dropped."""
    steps: list[TraceStep] = []
    if not isinstance(raw_steps, list):
        return steps
    for i, raw in enumerate(raw_steps):
        if isinstance(raw, TraceStep):
            steps.append(raw)
            continue
        if not isinstance(raw, dict):
            continue
        try:
            line = int(raw.get("line"))
        except (TypeError, ValueError):
            continue
        try:
            number = int(raw.get("step", i + 1))
        except (TypeError, ValueError):
            number = i + 1
        steps.append(
            TraceStep(
                step=number,
                line=line,
                variables=_normalize_variables(raw.get("variables")),
                explanation=str(raw.get("explanation") or ""),
                output=str(raw.get("output") or ""),
            )
        )
    return steps


def accumulate_variables(steps: list[TraceStep], index: int) -> dict[str, Variable]:
    """Merge snapshots 0..index, later values winning (for tracers that report diffs only)."""
    merged: dict[str, Variable] = {}
    for step in steps[: max(0, index + 1)]:
        merged.update(step.variables)
    return merged


TERMINATION_RE = re.compile(
    r"finish|ends|exhausted|complete|terminates|condition false|exiting|leaving block|final check"
    r"|no more inputs|program ends|execution completes|processed all|check condition",
    re.IGNORECASE,
)


def drop_trailing_termination_step(steps: list[TraceStep]) -> list[TraceStep]:
    """
    Drop a final "loop finished / program ends" step.

    Heuristic: the last step goes only when its explanation reads like termination,
    it changes no variable and it prints nothing new. A legitimately final step that
    happens to match all three is dropped too.
    """
    if len(steps) < 2:
        return steps
    last = steps[-1]
    if not TERMINATION_RE.search(last.explanation or ""):
        return steps
    known = accumulate_variables(steps, len(steps) - 2)
    for name, var in last.variables.items():
        if name not in known or known[name].value != var.value:
            return steps
    if (last.output or "") != (steps[-2].output or ""):
        return steps
    return steps[:-1]


TRACE_PROMPT = """
You are a precise program execution tracer.

Simulate the {language} program below line by line and report every executed step.

STRICT RULES:
- Do NOT invent lines; use the line numbers shown
- Record variables in scope after the step, with their value and type
- "output" is the full program output so far
- Do NOT add a step for "loop finished" or "program ends"

OUTPUT FORMAT:
Return STRICT JSON only: a list of objects
{{"step": int, "line": int, "variables": {{"name": {{"value": str, "type": str}}}}, "explanation": str, "output": str}}

User input values: {inputs}

Program:
{code}

JSON:"""


class LLMStepTracer:
    """One LLM call per program; any failure yields no steps."""

    def __init__(self, llm):
        self.llm = llm

    def build_prompt(self, code: str, language: str, inputs: Optional[dict] = None) -> str:
        numbered = "\n".join(f"{i}: {line}" for i, line in enumerate((code or "").splitlines(), 1))
        return TRACE_PROMPT.format(language=language, inputs=json.dumps(inputs or {}), code=numbered)

    def trace(self, code: str, language: str, inputs: Optional[dict] = None) -> list[TraceStep]:
        if self.llm is None or not (code or "").strip():
            return []
        prompt = self.build_prompt(code, language, inputs)
        try:
            log("[LLM] Tracing program", "debug")
            t0 = time.perf_counter()
            resp = self.llm.invoke([HumanMessage(prompt)])
            log(f"[LLM] Completed in {time.perf_counter() - t0:.3f}s", "debug")
            content = (resp.content or "").strip()
            content = re.sub(r"^```(?:json)?\s*|\s*```$", "", content)
            data = json.loads(content)
        except Exception as e:
            log(f"[WARN] [LLM] Trace failed: {e}", "warning")
            return []
        if isinstance(data, dict):
            data = data.get("steps", [])
        return drop_trailing_termination_step(normalize_steps(data))


def build_default_tracer(model: Optional[str] = None) -> LLMStepTracer:
    llm = ChatOllama(
        model=model or SETTINGS.ollama_model,
        temperature=SETTINGS.llm_temperature,
        top_k=10,
        top_p=0.9,
    )
    return LLMStepTracer(llm)
