"""
Step highlighting on a rendered Mermaid SVG.

The renderer owns the SVG; this module only mutates it in place (ElementTree):
shape styles of the nodes that belong to the current step's source line, plus
variable values injected into their labels. Every mutation is reversible: original
styles and labels are cached the first time a node is touched.

Events:
- ``graph_ready(svg_root, graph)``: a new diagram is in the container
- ``resized(container_width, chart_width)``: layout pass; the first one after a
  new graph centers the current step once
- ``show_step(step)``: user moved to another step
"""

from __future__ import annotations

import copy
import re
import xml.etree.ElementTree as ET
from typing import Callable, Optional

from logicmap.config import SETTINGS, Settings
from logicmap.graph import Graph, Shape
from logicmap.tracer import TraceStep, Variable

HIGHLIGHT_STYLES = {
    "light": "fill: #dcfce7 !important; stroke: #16a34a !important; stroke-width: 3px !important;",
    "dark": "fill: #064e3b !important; stroke: #4ade80 !important; stroke-width: 3px !important;",
}
VALUE_COLORS = {"light": "#16a34a", "dark": "#4ade80"}
ANNOTATION_COLORS = {"light": "#b45309", "dark": "#fbbf24"}
ANNOTATION_BORDERS = {"light": "#d97706", "dark": "#fbbf24"}

SHAPE_TAGS = {"rect", "circle", "ellipse", "polygon", "path"}
ANNOTATION_CLASS = "annotation-div"

_ELEMENT_ID_RE = re.compile(r"^flowchart-(.+)-\d+$")


def local_name(tag) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _namespace(tag: str) -> str:
    return tag[: tag.index("}") + 1] if tag.startswith("{") else ""


def _classes(el: ET.Element) -> list[str]:
    return (el.get("class") or "").split()


def fit_zoom(container_width: float, chart_width: float, settings: Settings = SETTINGS) -> float:
    """Fit-to-width ratio, never above natural size and never below the readability floor."""
    if not container_width or not chart_width or container_width <= 0 or chart_width <= 0:
        return 1.0
    ratio = (container_width - settings.zoom_buffer_px) / chart_width
    return max(settings.zoom_min, min(settings.zoom_max, ratio))


def find_label_element(node_el: ET.Element) -> Optional[ET.Element]:
    """Innermost element carrying the node's label text (HTML label or plain SVG text)."""
    label = None
    for el in node_el.iter():
        if "nodeLabel" in _classes(el) or local_name(el.tag) == "foreignObject":
            label = el
            break
    if label is not None:
        for el in label.iter():
            if local_name(el.tag) == "p":
                return el
        # div > span.nodeLabel: descend to the last single-child element
        while len(label) == 1 and local_name(label[0].tag) != "br":
            label = label[0]
        return label
    for el in node_el.iter():
        if local_name(el.tag) == "text":
            return el
    return None


class StepHighlighter:
    def __init__(
        self,
        theme: str = "light",
        scroll_to: Optional[Callable[[str], None]] = None,
        input_values: Optional[dict] = None,
        settings: Settings = SETTINGS,
    ):
        self.theme = theme if theme in HIGHLIGHT_STYLES else "light"
        self.scroll_to = scroll_to or (lambda element_id: None)
        self.input_values = dict(input_values or {})
        self.settings = settings

        self.svg: Optional[ET.Element] = None
        self.graph: Optional[Graph] = None
        self.elements: dict[str, ET.Element] = {}  # node id -> <g> element
        self.labels: dict[str, Optional[ET.Element]] = {}
        self.is_graph_ready = False
        self.initial_centered = False
        self.zoom = 1.0

        self.current: Optional[TraceStep] = None
        self.variables: dict[str, Variable] = {}
        self.highlighted: list[str] = []
        self._label_snapshots: dict[str, ET.Element] = {}

    # -- events ---------------------------------------------------------------

    def graph_ready(self, svg_root: ET.Element, graph: Graph) -> None:
        self.svg = svg_root
        self.graph = graph
        self.elements = self._index(svg_root, graph)
        self.labels = {nid: find_label_element(el) for nid, el in self.elements.items()}
        self._label_snapshots = {}
        self.highlighted = []
        self.is_graph_ready = True
        self.initial_centered = False
        if self.current is not None:
            self._apply()

    def resized(self, container_width: Optional[float] = None, chart_width: Optional[float] = None) -> float:
        if container_width is not None and chart_width is not None:
            self.zoom = fit_zoom(container_width, chart_width, self.settings)
        if self.is_graph_ready and not self.initial_centered and self.current is not None:
            ids = self._apply()
            if ids:
                self.scroll_to(self.elements[ids[0]].get("id"))
                self.initial_centered = True
        return self.zoom

    def show_step(self, step: TraceStep, variables: Optional[dict[str, Variable]] = None) -> list[str]:
        """Highlight ``step``; returns the ids of the highlighted IR nodes."""
        self.current = step
        raw = variables if variables is not None else step.variables
        self.variables = {
            str(k): v if isinstance(v, Variable) else Variable(str(v)) for k, v in (raw or {}).items()
        }
        if not self.is_graph_ready:
            return []
        ids = self._apply()
        if ids and self.initial_centered:
            self.scroll_to(self.elements[ids[0]].get("id"))
        return ids

    def set_theme(self, theme: str) -> None:
        self.theme = theme if theme in HIGHLIGHT_STYLES else "light"
        if self.is_graph_ready and self.current is not None:
            self._apply()

    # -- internals ------------------------------------------------------------

    @staticmethod
    def _index(svg_root: ET.Element, graph: Graph) -> dict[str, ET.Element]:
        known = {n.id: n for n in graph.nodes}
        out: dict[str, ET.Element] = {}
        for el in svg_root.iter():
            el_id = el.get("id")
            if not el_id:
                continue
            m = _ELEMENT_ID_RE.match(el_id)
            nid = m.group(1) if m else el_id
            node = known.get(nid)
            if node is None or nid in out:
                continue
            classes = _classes(el)
            if node.shape is Shape.SUBGRAPH and "cluster" in classes:
                out[nid] = el
            elif m and "node" in classes:
                out[nid] = el
        return out

    def clear(self) -> None:
        for nid, el in self.elements.items():
            for shape in el.iter():
                if local_name(shape.tag) in SHAPE_TAGS and "data-original-style" in shape.attrib:
                    original = shape.attrib.pop("data-original-style")
                    if original:
                        shape.set("style", original)
                    else:
                        shape.attrib.pop("style", None)
            self._restore_label(nid)
        self.highlighted = []

    def _apply(self) -> list[str]:
        self.clear()
        if self.graph is None or self.current is None:
            return []
        ids = [n.id for n in self.graph.nodes_on_line(self.current.line) if n.id in self.elements]
        style = HIGHLIGHT_STYLES[self.theme]
        for nid in ids:
            el = self.elements[nid]
            for shape in el.iter():
                if local_name(shape.tag) in SHAPE_TAGS:
                    if "data-original-style" not in shape.attrib:
                        shape.set("data-original-style", shape.get("style", ""))
                    shape.set("style", style)
            if self.variables:
                self._inject_variables(nid)
        self.highlighted = ids
        return ids

    def _restore_label(self, nid: str) -> None:
        snap = self._label_snapshots.get(nid)
        label = self.labels.get(nid)
        if snap is None or label is None or label.get("data-original") is None:
            return
        tail = label.tail
        original_text = label.get("data-original")
        label.clear()
        label.text = snap.text
        label.attrib.update(snap.attrib)
        label.set("data-original", original_text)
        label.extend(copy.deepcopy(child) for child in snap)
        label.tail = tail

    def _inject_variables(self, nid: str) -> None:
        label = self.labels.get(nid)
        if label is None:
            return
        if nid not in self._label_snapshots:
            self._label_snapshots[nid] = copy.deepcopy(label)
        original = label.get("data-original")
        if original is None:
            original = "".join(label.itertext())
            label.set("data-original", original)

        names = [n for n in self.variables if n]
        annotations = []
        for name in names:
            if name in self.input_values or re.search(rf"\b{re.escape(name)}\s*=(?!=)", original):
                annotations.append(f"{name} = {self.variables[name].value}")

        ns = _namespace(label.tag)
        svg_text = local_name(label.tag) in ("text", "tspan")
        inline_tag = ns + ("tspan" if svg_text else "span")

        tail = label.tail
        keep = {k: v for k, v in label.attrib.items()}
        label.clear()
        label.attrib.update(keep)
        label.tail = tail

        if names:
            pattern = re.compile(
                r"\b(" + "|".join(re.escape(n) for n in sorted(names, key=len, reverse=True)) + r")\b(?!\s*=(?!=))"
            )
            pos = 0
            last: Optional[ET.Element] = None
            label.text = ""
            for m in pattern.finditer(original):
                chunk = original[pos : m.start()]
                if last is None:
                    label.text += chunk
                else:
                    last.tail = (last.tail or "") + chunk
                last = ET.SubElement(label, inline_tag)
                last.set("style", f"font-weight:900; color:{VALUE_COLORS[self.theme]}")
                last.text = self.variables[m.group(1)].value
                pos = m.end()
            rest = original[pos:]
            if last is None:
                label.text += rest
            else:
                last.tail = (last.tail or "") + rest
        else:
            label.text = original

        if annotations:
            note = ET.SubElement(label, ns + ("tspan" if svg_text else "div"))
            note.set("class", ANNOTATION_CLASS)
            note.set(
                "style",
                f"font-size: 11px; color: {ANNOTATION_COLORS[self.theme]}; font-weight: bold; "
                f"margin-top: 4px; border-top: 1px dashed {ANNOTATION_BORDERS[self.theme]}; padding-top: 4px;",
            )
            note.text = ", ".join(annotations)
