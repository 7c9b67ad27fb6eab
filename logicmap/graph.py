"""
Graph IR shared by every lowering pass.

Node ids never carry shape syntax: the shape lives on the Node and is only turned
into bracket text by ``logicmap.mermaid``.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional

from logicmap.sanitize import LabelMode, sanitize_label


class Shape(enum.Enum):
    PROCESS = "process"
    DECISION = "decision"
    LOOP = "loop"
    TERMINAL = "terminal"
    STADIUM = "stadium"
    SUBROUTINE = "subroutine"
    FLAG = "flag"
    DATABASE = "database"
    MERGE = "merge"
    SUBGRAPH = "subgraph"


class EdgeStyle(enum.Enum):
    SOLID = "solid"
    DASHED = "dashed"


@dataclass
class Node:
    id: str
    shape: Shape
    label: str
    source_line: Optional[int] = None
    parent: Optional[str] = None
    raw: str = ""  # unsanitized source text behind the label

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shape": self.shape.value,
            "label": self.label,
            "source_line": self.source_line,
            "parent": self.parent,
            "raw": self.raw,
        }


@dataclass(frozen=True)
class Edge:
    src: str
    dst: str
    label: Optional[str] = None
    style: EdgeStyle = EdgeStyle.SOLID

    def to_dict(self) -> dict:
        return {"from": self.src, "to": self.dst, "label": self.label, "style": self.style.value}


@dataclass
class Graph:
    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)
    direction: str = "TD"
    styles: list[tuple[str, str]] = field(default_factory=list)  # (node_id, css)

    def is_empty(self) -> bool:
        return not self.nodes

    def node(self, node_id: str) -> Optional[Node]:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    def nodes_by_shape(self, shape: Shape) -> list[Node]:
        return [n for n in self.nodes if n.shape is shape]

    def nodes_on_line(self, line: int) -> list[Node]:
        return [n for n in self.nodes if n.source_line == line and n.shape is not Shape.MERGE]

    def outgoing(self, node_id: str) -> list[Edge]:
        return [e for e in self.edges if e.src == node_id]

    def incoming(self, node_id: str) -> list[Edge]:
        return [e for e in self.edges if e.dst == node_id]

    def children_of(self, parent: Optional[str]) -> list[Node]:
        return [n for n in self.nodes if n.parent == parent]

    def to_dict(self) -> dict:
        return {
            "direction": self.direction,
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
            "styles": [{"node": nid, "css": css} for nid, css in self.styles],
        }


class GraphBuilder:
    """
    Owns one lowering invocation's id counter, node list and edge list.
    A fresh builder per call keeps concurrent lowerings independent.
    """

    def __init__(self, mode: LabelMode = LabelMode.LENIENT, max_label: Optional[int] = None):
        self.mode = mode
        self.max_label = max_label
        self.nodes: list[Node] = []
        self.edges: list[Edge] = []
        self.styles: list[tuple[str, str]] = []
        self._next_id = 1
        self._seen_edges: set[Edge] = set()
        self._parent_stack: list[str] = []

    def _allocate(self, prefix: str, line: Optional[int]) -> str:
        n = self._next_id
        self._next_id += 1
        if prefix == "L" and line is not None:
            return f"L{line}_{n}"
        if prefix == "L":
            return f"N{n}"
        return f"{prefix}{n}"

    def label(self, text: str) -> str:
        return sanitize_label(text, self.mode, self.max_label)

    def new_node(self, shape: Shape, text: str, line: Optional[int] = None, prefix: str = "L") -> str:
        nid = self._allocate(prefix, line)
        parent = self._parent_stack[-1] if self._parent_stack else None
        self.nodes.append(Node(nid, shape, self.label(text), line, parent, text or ""))
        return nid

    def new_merge(self) -> str:
        nid = self._allocate("M", None)
        parent = self._parent_stack[-1] if self._parent_stack else None
        self.nodes.append(Node(nid, Shape.MERGE, "", None, parent))
        return nid

    def add_edge(self, src: Optional[str], dst: Optional[str], label: Optional[str] = None,
                 style: EdgeStyle = EdgeStyle.SOLID) -> None:
        if not src or not dst:
            return
        edge = Edge(src, dst, self.label(label) if label else None, style)
        if edge in self._seen_edges:
            return
        self._seen_edges.add(edge)
        self.edges.append(edge)

    def open_subgraph(self, text: str, line: Optional[int] = None) -> str:
        sid = self._allocate("S", None)
        parent = self._parent_stack[-1] if self._parent_stack else None
        self.nodes.append(Node(sid, Shape.SUBGRAPH, self.label(text), line, parent, text or ""))
        self._parent_stack.append(sid)
        return sid

    def close_subgraph(self) -> None:
        if self._parent_stack:
            self._parent_stack.pop()

    def add_style(self, node_id: str, css: str) -> None:
        self.styles.append((node_id, css))

    def build(self) -> Graph:
        return Graph(list(self.nodes), list(self.edges), "TD", list(self.styles))
