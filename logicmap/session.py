"""
Editor-facing diagram session.

Rapid edits are debounced, only one render runs at a time, and a result that
arrives after a newer edit was requested is thrown away instead of replacing the
newer diagram.
"""

from __future__ import annotations

import asyncio
import xml.etree.ElementTree as ET
from typing import Awaitable, Callable, Optional

from logicmap.compiler import compile_source
from logicmap.config import SETTINGS
from logicmap.graph import Graph
from logicmap.highlight import StepHighlighter
from logicmap.languages import resolve_language
from logicmap.log import log
from logicmap.tracer import TraceStep, accumulate_variables

RENDER_FAILED_MESSAGE = "Diagram failed to render. Try simpler code or retry."


class DiagramSession:
    def __init__(
        self,
        language: str,
        render: Optional[Callable[[str], Awaitable[str]]] = None,
        highlighter: Optional[StepHighlighter] = None,
        debounce: Optional[float] = None,
    ):
        self.language = language
        self.render = render
        self.highlighter = highlighter
        self.debounce = SETTINGS.debounce_seconds if debounce is None else debounce

        self.generation = 0
        self.graph = Graph()
        self.diagram = ""
        self.svg: Optional[str] = None
        self.error: Optional[str] = None
        self.renders = 0

        self._render_lock = asyncio.Lock()
        self._debouncing: set[asyncio.Task] = set()
        self._tasks: set[asyncio.Task] = set()

    def update_source(self, code: str) -> asyncio.Task:
        """
        Request a regeneration for ``code``.

        Requests still waiting out their debounce are cancelled. A request that is
        already rendering runs to completion and its result is discarded as stale.
        """
        self.generation += 1
        for task in self._debouncing:
            task.cancel()
        self._debouncing.clear()
        task = asyncio.get_running_loop().create_task(self._regenerate(self.generation, code))
        self._debouncing.add(task)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def set_language(self, language: str) -> None:
        self.language = language

    def show_step(self, steps: list[TraceStep], index: int) -> list[str]:
        """Highlight ``steps[index]``; diff-reporting languages see the accumulated variables."""
        if self.highlighter is None or not 0 <= index < len(steps):
            return []
        step = steps[index]
        lang = resolve_language(self.language)
        if lang is not None and lang.accumulates_variables:
            variables = accumulate_variables(steps, index)
        else:
            variables = step.variables
        return self.highlighter.show_step(step, variables)

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def is_stale(self, generation: int) -> bool:
        return generation != self.generation

    async def _regenerate(self, generation: int, code: str) -> Optional[str]:
        await asyncio.sleep(self.debounce)
        self._debouncing.discard(asyncio.current_task())
        if self.is_stale(generation):
            return None

        graph, diagram = compile_source(code, self.language)

        async with self._render_lock:
            if self.is_stale(generation):
                return None
            svg = None
            if self.render is not None and diagram:
                try:
                    svg = await self.render(diagram)
                    self.renders += 1
                except Exception as e:
                    log(f"[WARN] [RENDER] {type(e).__name__}: {e}", "warning")
                    if not self.is_stale(generation):
                        self.error = RENDER_FAILED_MESSAGE
                    return None
            if self.is_stale(generation):
                log(f"[RENDER] Discarding stale diagram (generation {generation})", "debug")
                return None
            self.graph = graph
            self.diagram = diagram
            self.svg = svg
            self.error = None
            self._notify_highlighter(svg, graph)
        return diagram

    def _notify_highlighter(self, svg: Optional[str], graph: Graph) -> None:
        if self.highlighter is None or not svg:
            return
        try:
            root = ET.fromstring(svg)
        except ET.ParseError as e:
            log(f"[WARN] [RENDER] Rendered SVG is not parseable: {e}", "warning")
            return
        self.highlighter.graph_ready(root, graph)
