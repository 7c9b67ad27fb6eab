from __future__ import annotations

import re

from logicmap.lowering.statements import Stmt, StmtKind, simple
from logicmap.lowering.tree_sitter_base import TreeSitterAdapter

_CHAIN_CALL_RE = re.compile(r"\.\s*(then|catch|finally)\s*\(")
_FUNCTION_VALUES = {"arrow_function", "function_expression", "function", "generator_function"}


def split_promise_chain(text: str) -> list[str]:
    """Split ``a().then(f).catch(g)`` at its top-level ``.then/.catch/.finally`` calls."""
    cuts = []
    depth = 0
    in_str = False
    str_ch = ""
    i = 0
    while i < len(text):
        ch = text[i]
        if in_str:
            if ch == "\\":
                i += 2
                continue
            if ch == str_ch:
                in_str = False
        elif ch in ("'", '"', "`"):
            in_str = True
            str_ch = ch
        elif ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth = max(0, depth - 1)
        elif ch == "." and depth == 0 and _CHAIN_CALL_RE.match(text, i):
            cuts.append(i)
        i += 1
    if not cuts:
        return [text]
    parts = []
    prev = 0
    for c in cuts:
        parts.append(text[prev:c])
        prev = c + 1  # drop the leading dot
    parts.append(text[prev:])
    return [p.strip().rstrip(";").strip() for p in parts if p.strip()]


class JavaScriptAdapter(TreeSitterAdapter):
    """JavaScript, TypeScript and TSX share one node vocabulary."""

    SKIP_TYPES = {
        "import_statement",
        "empty_statement",
        "hash_bang_line",
        "export_clause",
        "interface_declaration",
        "type_alias_declaration",
        "ambient_declaration",
        "function_signature",
    }
    BLOCK_TYPES = {"program", "statement_block", "class_body"}
    WRAPPER_TYPES = {"export_statement", "labeled_statement"}
    LOOP_TYPES = {"while_statement", "for_in_statement"}
    SWITCH_GROUP_TYPES = {"switch_case", "switch_default"}
    FUNCTION_TYPES = {"function_declaration", "generator_function_declaration", "method_definition"}
    CLASS_TYPES = {"class_declaration", "abstract_class_declaration", "internal_module", "module"}

    def convert_simple(self, node) -> Stmt:
        if node.type in ("lexical_declaration", "variable_declaration"):
            fn = self._function_declarator(node)
            if fn is not None:
                return fn
        text = self.text(node)
        if node.type == "expression_statement" and _CHAIN_CALL_RE.search(text):
            parts = split_promise_chain(text)
            if len(parts) > 1:
                line = self.line(node)
                return Stmt(StmtKind.BLOCK, line, body=[simple(p, line) for p in parts])
        return super().convert_simple(node)

    def _function_declarator(self, node):
        """``const f = (...) => { ... }`` lowers like a function declaration."""
        declarators = [c for c in node.named_children if c.type == "variable_declarator"]
        if len(declarators) != 1:
            return None
        value = self.field(declarators[0], "value")
        if value is None or value.type not in _FUNCTION_VALUES:
            return None
        body = self.field(value, "body")
        if body is None or body.type != "statement_block":
            return None
        prefix = "Async Func" if self.text(value).lstrip().startswith("async") else "Func"
        name = self.text(self.field(declarators[0], "name")) or "anonymous"
        return Stmt(StmtKind.FUNCTION, self.line(node), text=f"{prefix}: {name}", body=self.convert_block(body))
