"""logicmap - source code to Mermaid control-flow diagrams."""

from logicmap.compiler import compile_source, generate_diagram, lower
from logicmap.graph import Edge, EdgeStyle, Graph, Node, Shape
from logicmap.highlight import StepHighlighter, fit_zoom
from logicmap.sanitize import LabelMode, sanitize_label
from logicmap.session import DiagramSession
from logicmap.tracer import TraceStep, Variable

__version__ = "0.1.0"

__all__ = [
    "compile_source",
    "generate_diagram",
    "lower",
    "Edge",
    "EdgeStyle",
    "Graph",
    "Node",
    "Shape",
    "StepHighlighter",
    "fit_zoom",
    "LabelMode",
    "sanitize_label",
    "DiagramSession",
    "TraceStep",
    "Variable",
]
