import logging
import os
import sys
from xml.sax.saxutils import escape

import pytest

# Determine the repository root (assumes tests/ is in the repository root)
repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if repo_root not in sys.path:
    sys.path.insert(0, repo_root)

from logicmap.graph import Graph, Shape  # noqa: E402
from logicmap.parsers import load_parser  # noqa: E402


@pytest.fixture(autouse=True)
def setup_logging():
    logger = logging.getLogger("logicmap")
    logger.setLevel(logging.DEBUG)
    yield
    # the CLI installs a handler bound to this test's stderr
    logger.handlers[:] = []
    logger.propagate = True


def labels(graph: Graph, shape: Shape) -> list[str]:
    """Unsanitized source text of every node with ``shape``, in emission order."""
    return [n.raw for n in graph.nodes_by_shape(shape)]


def edge_between(graph: Graph, src_raw: str, dst_raw: str):
    src = [n.id for n in graph.nodes if n.raw == src_raw]
    dst = [n.id for n in graph.nodes if n.raw == dst_raw]
    for e in graph.edges:
        if e.src in src and e.dst in dst:
            return e
    return None


def require_grammar(name: str) -> None:
    pytest.importorskip("tree_sitter_language_pack")
    if load_parser(name) is None:
        pytest.skip(f"tree-sitter grammar '{name}' unavailable")


SVG_NS = "http://www.w3.org/2000/svg"
XHTML_NS = "http://www.w3.org/1999/xhtml"


def mermaid_like_svg(graph: Graph) -> str:
    """
    A rendered-diagram stand-in with the element layout Mermaid produces:
    ``<g class="node" id="flowchart-<id>-<k>">`` holding a shape and an HTML label,
    ``<g class="cluster" id="<id>">`` for subgraphs.
    """
    clusters = []
    nodes = []
    for k, n in enumerate(graph.nodes):
        text = escape(n.raw)
        if n.shape is Shape.SUBGRAPH:
            clusters.append(
                f'<g class="cluster default" id="{n.id}"><rect style="fill:#ffffde" width="200" height="100"/>'
                f'<g class="cluster-label"><foreignObject><div xmlns="{XHTML_NS}">'
                f'<span class="nodeLabel"><p>{text}</p></span></div></foreignObject></g></g>'
            )
            continue
        shape = "circle" if n.shape is Shape.MERGE else "polygon" if n.shape is Shape.DECISION else "rect"
        nodes.append(
            f'<g class="node default" id="flowchart-{n.id}-{k}">'
            f'<{shape} class="label-container" style="fill:#ececff"/>'
            f'<g class="label"><foreignObject width="80" height="24"><div xmlns="{XHTML_NS}">'
            f'<span class="nodeLabel"><p>{text}</p></span></div></foreignObject></g></g>'
        )
    return (
        f'<svg xmlns="{SVG_NS}" id="mermaid-1"><g class="root">'
        f'<g class="clusters">{"".join(clusters)}</g>'
        f'<g class="nodes">{"".join(nodes)}</g>'
        "</g></svg>"
    )


@pytest.fixture
def python_if_else():
    return "if x > 5:\n    print(1)\nelse:\n    print(2)\n"


@pytest.fixture
def python_counter():
    return "x = 1\nwhile x < 3:\n    x = x + 1\nprint(x)\n"


@pytest.fixture
def java_program():
    return (
        "public class Main {\n"
        "    public static void main(String[] args) {\n"
        "        int total = 0;\n"
        "        for (int i = 0; i < 3; i++) {\n"
        "            total += i;\n"
        "        }\n"
        "        if (total > 2) {\n"
        '            System.out.println("big");\n'
        "        } else if (total > 0) {\n"
        '            System.out.println("small");\n'
        "        } else {\n"
        '            System.out.println("zero");\n'
        "        }\n"
        "    }\n"
        "}\n"
    )


@pytest.fixture
def javascript_program():
    return (
        "function check(n) {\n"
        "  for (let i = 0; i < n; i++) {\n"
        "    console.log(i);\n"
        "  }\n"
        "  if (n > 1) {\n"
        '    return "many";\n'
        "  } else if (n === 1) {\n"
        '    return "one";\n'
        "  }\n"
        '  return "none";\n'
        "}\n"
    )


@pytest.fixture
def csharp_program():
    return (
        "using System;\n"
        "class Program {\n"
        "    static void Main() {\n"
        "        foreach (var item in items) {\n"
        "            Console.WriteLine(item);\n"
        "        }\n"
        "        using (var f = Open()) {\n"
        "            f.Read();\n"
        "        }\n"
        "    }\n"
        "}\n"
    )
