from conftest import edge_between, labels, require_grammar

from logicmap.compiler import generate_diagram, lower
from logicmap.graph import EdgeStyle, Shape
from logicmap.lowering.javascript import split_promise_chain
from logicmap.lowering.tree_sitter_base import extract_paren_group_after, split_top_level, strip_parens
from logicmap.mermaid import validate_mermaid


def test_extract_paren_group_after_handles_nesting():
    assert extract_paren_group_after("for", "for (let i = 0; i < xs.length; i++) {") == "let i = 0; i < xs.length; i++"
    assert extract_paren_group_after("if", "if (ok(a, (b))) x();") == "ok(a, (b))"
    assert extract_paren_group_after("while", "while (f(\")\"))") == 'f(")")'
    assert extract_paren_group_after("for", "foreach x") == ""


def test_split_top_level_respects_nesting():
    assert split_top_level("int i = 0; i < f(a; b); i++") == ["int i = 0", "i < f(a; b)", "i++"]
    assert split_top_level(";;") == ["", "", ""]


def test_strip_parens_only_strips_a_wrapping_pair():
    assert strip_parens("(x > 5)") == "x > 5"
    assert strip_parens("(a) && (b)") == "(a) && (b)"


def test_split_promise_chain():
    parts = split_promise_chain("fetch(url).then(r => r.json()).catch(err => log(err));")
    assert parts == ["fetch(url)", "then(r => r.json())", "catch(err => log(err))"]
    assert split_promise_chain("a.b(c)") == ["a.b(c)"]


# -- Java -------------------------------------------------------------------


def test_java_class_method_and_counted_loop(java_program):
    require_grammar("java")
    g = lower(java_program, "java")
    assert labels(g, Shape.SUBGRAPH) == ["Class: Main"]
    assert labels(g, Shape.STADIUM) == ["Func: main"]

    loops = g.nodes_by_shape(Shape.LOOP)
    assert [n.raw for n in loops] == ["i < 3"]
    assert edge_between(g, "int i = 0", "i < 3") is not None
    assert edge_between(g, "i < 3", "total += i;") is not None
    assert edge_between(g, "total += i;", "i++") is not None
    assert edge_between(g, "i++", "i < 3").label == "Repeat"


def test_java_else_if_chain(java_program):
    require_grammar("java")
    g = lower(java_program, "java")
    decisions = g.nodes_by_shape(Shape.DECISION)
    assert [d.raw for d in decisions] == ["total > 2", "total > 0"]
    assert edge_between(g, "total > 2", "total > 0").label == "No"
    for d in decisions:
        assert sorted(e.label for e in g.outgoing(d.id)) == ["No", "Yes"]
    assert len(g.nodes_by_shape(Shape.MERGE)) == 1


def test_java_try_catch_finally():
    require_grammar("java")
    code = (
        "class T {\n"
        "    void run() {\n"
        "        try {\n"
        "            work();\n"
        "        } catch (IOException e) {\n"
        "            log(e);\n"
        "        } finally {\n"
        "            close();\n"
        "        }\n"
        "    }\n"
        "}\n"
    )
    g = lower(code, "java")
    assert labels(g, Shape.FLAG) == ["Try", "Catch: IOException e"]
    e = edge_between(g, "Try", "Catch: IOException e")
    assert (e.label, e.style) == ("Exception", EdgeStyle.DASHED)
    fin = g.nodes_by_shape(Shape.SUBROUTINE)
    assert [(n.raw, n.source_line) for n in fin] == [("Finally", 7)]
    assert edge_between(g, "Finally", "close();") is not None


def test_java_switch_is_decision_chain():
    require_grammar("java")
    code = (
        "class S {\n"
        "    void f(int day) {\n"
        "        switch (day) {\n"
        "            case 1:\n"
        "                a();\n"
        "                break;\n"
        "            case 2:\n"
        "                b();\n"
        "                break;\n"
        "            default:\n"
        "                c();\n"
        "        }\n"
        "    }\n"
        "}\n"
    )
    g = lower(code, "java")
    assert labels(g, Shape.DECISION) == ["day is 1", "day is 2"]
    assert edge_between(g, "day is 1", "a();").label == "Yes"
    assert edge_between(g, "day is 2", "c();").label == "No"
    assert "break;" not in [n.raw for n in g.nodes]
    assert len(g.nodes_by_shape(Shape.MERGE)) == 1


def test_java_diagram_is_valid(java_program):
    require_grammar("java")
    assert validate_mermaid(generate_diagram(java_program, "Java")) == (True, None)


def test_malformed_java_never_raises():
    require_grammar("java")
    text = generate_diagram("class { void (", "java")
    assert validate_mermaid(text)[0]


# -- JavaScript / TypeScript --------------------------------------------------


def test_javascript_function_loop_and_branches(javascript_program):
    require_grammar("javascript")
    g = lower(javascript_program, "javascript")
    assert labels(g, Shape.STADIUM) == ["Func: check"]
    # strict labels: ':' and '<' swapped for lookalikes
    assert g.nodes_by_shape(Shape.STADIUM)[0].label == "Func： check"
    assert labels(g, Shape.LOOP) == ["i < n"]
    assert g.nodes_by_shape(Shape.LOOP)[0].label == "i ＜ n"
    assert edge_between(g, "i++", "i < n").label == "Repeat"
    assert labels(g, Shape.DECISION) == ["n > 1", "n === 1"]
    assert labels(g, Shape.TERMINAL) == ['return "many";', 'return "one";', 'return "none";']


def test_javascript_promise_chain_splits_into_steps():
    require_grammar("javascript")
    g = lower("fetch(url).then(r => r.json()).catch(err => log(err));\n", "javascript")
    assert labels(g, Shape.PROCESS) == ["fetch(url)", "then(r => r.json())", "catch(err => log(err))"]
    assert len(g.edges) == 2
    assert {n.source_line for n in g.nodes} == {1}


def test_javascript_arrow_function_constant():
    require_grammar("javascript")
    g = lower("const add = (a, b) => {\n  return a + b;\n};\n", "javascript")
    assert labels(g, Shape.STADIUM) == ["Func: add"]
    assert labels(g, Shape.TERMINAL) == ["return a + b;"]


def test_javascript_switch():
    require_grammar("javascript")
    code = "switch (x) {\n  case 1:\n    a();\n    break;\n  default:\n    b();\n}\n"
    g = lower(code, "javascript")
    assert labels(g, Shape.DECISION) == ["x is 1"]
    assert edge_between(g, "x is 1", "b();").label == "No"


def test_typescript_skips_type_declarations():
    require_grammar("typescript")
    code = "interface P { x: number }\nlet total: number = 0;\n"
    g = lower(code, "TypeScript")
    assert labels(g, Shape.PROCESS) == ["let total: number = 0;"]


# -- C# -----------------------------------------------------------------------


def test_csharp_foreach_and_using(csharp_program):
    require_grammar("csharp")
    g = lower(csharp_program, "C#")
    assert labels(g, Shape.SUBGRAPH) == ["Class: Program"]
    assert labels(g, Shape.STADIUM) == ["Func: Main"]
    assert labels(g, Shape.LOOP) == ["foreach (var item in items)"]
    assert edge_between(g, "Console.WriteLine(item);", "foreach (var item in items)").label == "Repeat"
    process = labels(g, Shape.PROCESS)
    assert "using (var f = Open())" in process
    assert process[-1] == "End Using"
    assert "using System;" not in [n.raw for n in g.nodes]
    assert validate_mermaid(generate_diagram(csharp_program, "C#"))[0]
