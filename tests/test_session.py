import asyncio

from logicmap.highlight import StepHighlighter
from logicmap.renderer import RenderError
from logicmap.session import RENDER_FAILED_MESSAGE, DiagramSession
from logicmap.tracer import normalize_steps

SVG = '<svg xmlns="http://www.w3.org/2000/svg"><g class="nodes"/></svg>'


class FakeRenderer:
    def __init__(self, delay=0.0, fail=False):
        self.delay = delay
        self.fail = fail
        self.calls = []
        self.started = None

    async def __call__(self, mermaid):
        self.calls.append(mermaid)
        if self.started is not None:
            self.started.set()
        await asyncio.sleep(self.delay)
        if self.fail:
            raise RenderError("renderer rejected the diagram")
        return SVG


class RecordingHighlighter:
    def __init__(self):
        self.graphs = []

    def graph_ready(self, svg_root, graph):
        self.graphs.append(graph)


def test_rapid_edits_are_debounced_into_one_render():
    async def scenario():
        renderer = FakeRenderer()
        session = DiagramSession("python", render=renderer, debounce=0.02)
        session.update_source("a = 1\n")
        session.update_source("a = 2\n")
        session.update_source("a = 3\n")
        await session.wait_idle()
        return session, renderer

    session, renderer = asyncio.run(scenario())
    assert len(renderer.calls) == 1
    assert "a = 3" in renderer.calls[0]
    assert "a = 3" in session.diagram
    assert session.svg == SVG
    assert session.error is None
    assert session.generation == 3


def test_stale_render_result_is_discarded():
    async def scenario():
        renderer = FakeRenderer(delay=0.05)
        renderer.started = asyncio.Event()
        highlighter = RecordingHighlighter()
        session = DiagramSession("python", render=renderer, highlighter=highlighter, debounce=0.01)
        session.update_source("first = 1\n")
        await renderer.started.wait()
        session.update_source("second = 2\n")
        await session.wait_idle()
        return session, renderer, highlighter

    session, renderer, highlighter = asyncio.run(scenario())
    assert len(renderer.calls) == 2
    assert session.renders == 2
    assert "second = 2" in session.diagram
    assert "first = 1" not in session.diagram
    # only the latest diagram reached the highlighter
    assert len(highlighter.graphs) == 1
    assert highlighter.graphs[0] is session.graph
    assert [n.raw for n in session.graph.nodes] == ["second = 2"]


def test_render_failure_sets_error_and_keeps_previous_diagram():
    async def scenario():
        renderer = FakeRenderer()
        session = DiagramSession("python", render=renderer, debounce=0)
        session.update_source("ok = 1\n")
        await session.wait_idle()
        good = (session.diagram, session.svg)

        renderer.fail = True
        session.update_source("ok = 2\n")
        await session.wait_idle()
        failed = (session.diagram, session.svg, session.error)

        renderer.fail = False
        session.update_source("ok = 3\n")
        await session.wait_idle()
        return good, failed, session

    good, failed, session = asyncio.run(scenario())
    assert failed == (good[0], good[1], RENDER_FAILED_MESSAGE)
    assert "ok = 3" in session.diagram
    assert session.error is None


def test_session_without_renderer_still_compiles():
    async def scenario():
        session = DiagramSession("python", debounce=0)
        session.update_source("if x:\n    y = 1\n")
        await session.wait_idle()
        return session

    session = asyncio.run(scenario())
    assert session.svg is None
    assert "flowchart TD" in session.diagram
    assert not session.graph.is_empty()


def test_unsupported_language_never_renders():
    async def scenario():
        renderer = FakeRenderer()
        session = DiagramSession("cobol", render=renderer, debounce=0)
        session.update_source("MOVE 1 TO X.")
        await session.wait_idle()
        return session, renderer

    session, renderer = asyncio.run(scenario())
    assert renderer.calls == []
    assert session.diagram == ""


def test_rendered_svg_reaches_the_step_highlighter():
    async def scenario():
        highlighter = StepHighlighter()
        session = DiagramSession("python", render=FakeRenderer(), highlighter=highlighter, debounce=0)
        session.update_source("x = 1\n")
        await session.wait_idle()
        return session, highlighter

    session, highlighter = asyncio.run(scenario())
    assert highlighter.is_graph_ready
    assert highlighter.graph is session.graph


class StepRecorder:
    def __init__(self):
        self.calls = []

    def graph_ready(self, svg_root, graph):
        pass

    def show_step(self, step, variables=None):
        self.calls.append((step.line, {k: v.value for k, v in variables.items()}))
        return []


def test_show_step_accumulates_for_diff_reporting_languages():
    steps = normalize_steps([{"line": 1, "variables": {"a": "1"}}, {"line": 2, "variables": {"b": "2"}}])
    recorder = StepRecorder()
    session = DiagramSession("Java", highlighter=recorder)
    session.show_step(steps, 1)
    session.set_language("Python")
    session.show_step(steps, 1)
    assert recorder.calls == [(2, {"a": "1", "b": "2"}), (2, {"b": "2"})]
    assert session.show_step(steps, 5) == []


def test_unexpected_render_exception_still_reports_failure():
    async def broken_render(mermaid):
        raise OSError("mmdc wrote no file")

    async def scenario():
        session = DiagramSession("python", render=broken_render, debounce=0)
        session.update_source("x = 1\n")
        await session.wait_idle()
        return session

    session = asyncio.run(scenario())
    assert session.error == RENDER_FAILED_MESSAGE
    assert session.svg is None
    assert session.diagram == ""
