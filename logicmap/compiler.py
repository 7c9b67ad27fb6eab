"""
Entry points: source text + language label -> Graph IR / Mermaid diagram text.

Neither function raises. Parse failures, unsupported languages and lowering bugs
all degrade to an empty Graph (and, for ``generate_diagram``, the fallback diagram).
"""

from __future__ import annotations

import time
from typing import Optional

from logicmap.config import SETTINGS, Settings
from logicmap.graph import Graph, GraphBuilder
from logicmap.languages import Language, LanguageFamily, resolve_language
from logicmap.log import log
from logicmap.lowering.csharp import CSharpAdapter
from logicmap.lowering.imperative import ImperativeLowering
from logicmap.lowering.java import JavaAdapter
from logicmap.lowering.javascript import JavaScriptAdapter
from logicmap.lowering.python_ast import python_statements
from logicmap.lowering.sql import lower_sql
from logicmap.mermaid import FALLBACK_DIAGRAM, assemble_diagram, validate_mermaid
from logicmap.parsers import parse_python, parse_tree_sitter
from logicmap.sanitize import LabelMode

ADAPTERS = {
    LanguageFamily.JAVA: JavaAdapter,
    LanguageFamily.CSHARP: CSharpAdapter,
    LanguageFamily.JAVASCRIPT: JavaScriptAdapter,
    LanguageFamily.TYPESCRIPT: JavaScriptAdapter,
}


def _statements(code: str, lang: Language):
    if lang.family is LanguageFamily.PYTHON:
        tree = parse_python(code)
        return None if tree is None else python_statements(code, tree)
    tree = parse_tree_sitter(code, lang.grammar)
    if tree is None:
        return None
    return ADAPTERS[lang.family](code.encode("utf8")).convert_program(tree.root_node)


def lower(code: str, language: Optional[str], settings: Settings = SETTINGS) -> Graph:
    """Lower ``code`` to a Graph. Empty Graph for empty input, unsupported language or a failed parse."""
    lang = resolve_language(language)
    if lang is None:
        log(f"[WARN] Unsupported language: {language!r}", "warning")
        return Graph()
    if not code or not code.strip():
        return Graph()

    max_label = settings.strict_max_label if lang.label_mode is LabelMode.STRICT else settings.lenient_max_label
    builder = GraphBuilder(lang.label_mode, max_label)
    t0 = time.perf_counter()
    try:
        if lang.family is LanguageFamily.SQL:
            lower_sql(code, lang.dialect, builder)
        else:
            stmts = _statements(code, lang)
            if stmts is None:
                return Graph()
            ImperativeLowering(builder).lower_program(stmts)
    except Exception as e:
        log(f"[WARN] Lowering failed for {lang.family.value}: {e}", "warning")
        return Graph()
    graph = builder.build()
    log(f"[TIME] Lowered {lang.family.value} in {time.perf_counter() - t0:.3f}s "
        f"({len(graph.nodes)} nodes, {len(graph.edges)} edges)", "debug")
    return graph


def compile_source(code: str, language: Optional[str], settings: Settings = SETTINGS) -> tuple[Graph, str]:
    """
    Graph and full Mermaid text for ``code``.

    The text is "" for empty input or an unsupported language, and ``FALLBACK_DIAGRAM``
    when the input is non-empty but nothing meaningful could be drawn.
    """
    if not code or not code.strip() or resolve_language(language) is None:
        return Graph(), ""
    graph = lower(code, language, settings)
    diagram = assemble_diagram(graph, settings)
    if not diagram:
        return graph, FALLBACK_DIAGRAM
    ok, err = validate_mermaid(diagram)
    if not ok:
        log(f"[WARN] Generated diagram failed validation: {err}", "warning")
        return graph, FALLBACK_DIAGRAM
    return graph, diagram


def generate_diagram(code: str, language: Optional[str], settings: Settings = SETTINGS) -> str:
    return compile_source(code, language, settings)[1]
