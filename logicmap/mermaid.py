"""
Graph IR -> Mermaid flowchart text, plus the diagram-level header.
"""

from __future__ import annotations

import json
import re
from typing import Optional

from logicmap.config import SETTINGS, Settings
from logicmap.graph import EdgeStyle, Graph, Node, Shape

# Shape -> (open, close) around the quoted label
SHAPE_BRACKETS = {
    Shape.PROCESS: ("[", "]"),
    Shape.DECISION: ("{", "}"),
    Shape.LOOP: ("{{", "}}"),
    Shape.TERMINAL: ("((", "))"),
    Shape.STADIUM: ("([", "])"),
    Shape.SUBROUTINE: ("[[", "]]"),
    Shape.FLAG: (">", "]"),
    Shape.DATABASE: ("[(", ")]"),
}

FALLBACK_DIAGRAM = 'flowchart TD\n  nError["Analysis Incomplete"] --> nHelp["Try simpler code"]\n'

_INDENT = "  "


def init_config(settings: Settings = SETTINGS) -> dict:
    return {
        "flowchart": {
            "defaultRenderer": settings.renderer_hint,
            "nodeSpacing": settings.node_spacing,
            "rankSpacing": settings.rank_spacing,
        },
        "maxTextSize": settings.max_text_size,
        "themeVariables": {
            "clusterBkg": "transparent",
            "clusterBorder": "transparent",
            "mainBkg": "transparent",
            "nodeBkg": "transparent",
        },
    }


def init_header(settings: Settings = SETTINGS) -> str:
    return f"%%{{init: {json.dumps(init_config(settings), separators=(',', ':'))} }}%%\n"


def render_node(node: Node) -> str:
    if node.shape is Shape.MERGE:
        return f"{node.id}(( ))"
    open_, close = SHAPE_BRACKETS.get(node.shape, SHAPE_BRACKETS[Shape.PROCESS])
    return f'{node.id}{open_}"{node.label}"{close}'


def render_edge(src: str, dst: str, label: Optional[str], style: EdgeStyle) -> str:
    arrow = "-.->" if style is EdgeStyle.DASHED else "-->"
    if label:
        return f'{src} {arrow}|"{label}"| {dst}'
    return f"{src} {arrow} {dst}"


def _render_scope(graph: Graph, parent: Optional[str], depth: int, out: list[str]) -> None:
    pad = _INDENT * depth
    for node in graph.children_of(parent):
        if node.shape is Shape.SUBGRAPH:
            out.append(f'{pad}subgraph {node.id} ["{node.label}"]')
            out.append(f"{pad}{_INDENT}direction TB")
            _render_scope(graph, node.id, depth + 1, out)
            out.append(f"{pad}end")
        else:
            out.append(pad + render_node(node))


def render_mermaid(graph: Graph) -> str:
    """Node/edge text for a graph, starting with the ``flowchart`` directive."""
    lines = [f"flowchart {graph.direction}"]
    _render_scope(graph, None, 1, lines)
    for e in graph.edges:
        lines.append(_INDENT + render_edge(e.src, e.dst, e.label, e.style))
    for nid, css in graph.styles:
        lines.append(f"{_INDENT}style {nid} {css}")
    return "\n".join(lines) + "\n"


_DIRECTIVE_RE = re.compile(r"^(\s*(?:flowchart|graph))\s+(?:LR|RL|BT|TB)\b", re.MULTILINE)
_SUBGRAPH_DIRECTION_RE = re.compile(r"^(\s*direction)\s+(?:LR|RL|BT)\b", re.MULTILINE)


def force_top_down(text: str) -> str:
    text = _DIRECTIVE_RE.sub(r"\1 TD", text or "")
    return _SUBGRAPH_DIRECTION_RE.sub(r"\1 TB", text)


def is_degenerate(graph: Graph, settings: Settings = SETTINGS) -> bool:
    if graph is None or graph.is_empty():
        return True
    body = render_mermaid(graph).split("\n", 1)[1].strip()
    return len(body) < settings.min_diagram_chars


def assemble_diagram(graph: Graph, settings: Settings = SETTINGS) -> str:
    """Header + body, forced top-down. Empty string when the graph carries nothing meaningful."""
    if is_degenerate(graph, settings):
        return ""
    return init_header(settings) + force_top_down(render_mermaid(graph))


def validate_mermaid(mermaid: str) -> tuple[bool, Optional[str]]:
    if not mermaid or not mermaid.strip():
        return False, "Empty flowchart"
    if not re.search(r"^\s*flowchart\s+\w+", mermaid, re.MULTILINE):
        return False, "Missing flowchart declaration"
    depth = 0
    for line in mermaid.splitlines():
        s = line.strip()
        if s.startswith("%%"):
            continue
        if s.startswith("subgraph "):
            depth += 1
        elif s == "end":
            depth -= 1
            if depth < 0:
                return False, "Unbalanced subgraph/end"
        if s.count("-->") + s.count("-.->") > 1:
            return False, "Multiple edges in one line"
        if s.count('"') % 2:
            return False, f"Unbalanced quotes: {s[:60]}"
    if depth != 0:
        return False, "Unbalanced subgraph/end"
    return True, None
