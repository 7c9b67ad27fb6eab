"""
Shared tree-sitter adapter: turns a grammar's statement nodes into ``Stmt`` records.

Subclasses only declare which node types play which role; the generic walk below
handles headers, bodies, else-if chains, catch / finally clauses and switch groups
the same way for every C-family grammar.
"""

from __future__ import annotations

import re
from typing import Optional

from logicmap.log import log
from logicmap.lowering.statements import SKIP, Case, Handler, Stmt, StmtKind, simple
from logicmap.parsers import first_error


def extract_paren_group_after(keyword: str, text: str) -> str:
    """
    Inside of the parenthesized header that follows ``keyword``.
    Example: for (let i = 0; i < xs.length; i++) -> "let i = 0; i < xs.length; i++"
    """
    m = re.search(rf"\b{re.escape(keyword)}\s*\(", text or "")
    if not m:
        return ""
    start = m.end()
    depth = 1
    quote = ""
    escaped = False
    for i, ch in enumerate(text[start:], start):
        if quote:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote:
                quote = ""
        elif ch in "'\"`":
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return text[start:i]
    return ""


def split_top_level(s: str, sep: str = ";") -> list[str]:
    """Split by ``sep`` at depth 0 (nested ()/[]/{} and quotes respected). Empty parts are kept."""
    out: list[str] = []
    depth = 0
    curr: list[str] = []
    in_str = False
    str_ch = ""
    for ch in s or "":
        if in_str:
            curr.append(ch)
            if ch == str_ch:
                in_str = False
            continue
        if ch in ("'", '"', "`"):
            in_str = True
            str_ch = ch
        elif ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth = max(0, depth - 1)
        elif ch == sep and depth == 0:
            out.append("".join(curr).strip())
            curr = []
            continue
        curr.append(ch)
    out.append("".join(curr).strip())
    return out


def strip_parens(text: str) -> str:
    """Drop one pair of parentheses wrapping the whole text: "(x > 5)" -> "x > 5"."""
    text = (text or "").strip()
    if not (text.startswith("(") and text.endswith(")")):
        return text
    depth = 0
    for i, ch in enumerate(text):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0 and i != len(text) - 1:
                return text
    return text[1:-1].strip()


class TreeSitterAdapter:
    COMMENT_TYPES = {"comment", "line_comment", "block_comment"}
    SKIP_TYPES: set[str] = set()
    BLOCK_TYPES: set[str] = set()
    WRAPPER_TYPES: set[str] = set()  # single-statement wrappers, e.g. export / global statements
    IF_TYPES = {"if_statement"}
    LOOP_TYPES: set[str] = set()
    DO_TYPES = {"do_statement"}
    FOR_TYPES = {"for_statement"}
    TRY_TYPES = {"try_statement"}
    SWITCH_TYPES = {"switch_statement"}
    SWITCH_GROUP_TYPES: set[str] = set()
    RESOURCE_TYPES: set[str] = set()
    TERMINAL_TYPES = {"return_statement", "throw_statement"}
    FUNCTION_TYPES: set[str] = set()
    CLASS_TYPES: set[str] = set()
    CLASS_KEYWORDS = {
        "class": "Class",
        "interface": "Interface",
        "namespace": "Namespace",
        "enum": "Enum",
        "struct": "Struct",
        "record": "Record",
    }

    CATCH_TYPE = "catch_clause"
    FINALLY_TYPE = "finally_clause"
    BREAK_TYPE = "break_statement"

    def __init__(self, source: bytes):
        self.source = source

    # -- node helpers ---------------------------------------------------------

    def text(self, node) -> str:
        if node is None:
            return ""
        return self.source[node.start_byte : node.end_byte].decode("utf8", "replace")

    def span(self, start: int, end: int) -> str:
        return self.source[start:end].decode("utf8", "replace")

    @staticmethod
    def line(node) -> Optional[int]:
        if node is None:
            return None
        return node.start_point[0] + 1

    @staticmethod
    def field(node, name: str):
        return node.child_by_field_name(name) if node is not None else None

    def statement_children(self, node) -> list:
        return [c for c in node.named_children if c.type not in self.COMMENT_TYPES]

    def body_of(self, node):
        body = self.field(node, "body")
        if body is not None:
            return body
        kids = self.statement_children(node)
        return kids[-1] if kids else None

    def header(self, node, body=None) -> str:
        """Source text of ``node`` up to where its body starts (the statement head)."""
        end = body.start_byte if body is not None else node.end_byte
        head = self.span(node.start_byte, end)
        head = re.sub(r"\s+", " ", head).strip()
        return head.rstrip("{").rstrip(":").strip()

    # -- conversion -----------------------------------------------------------

    def convert_program(self, root) -> list[Stmt]:
        err = first_error(root)
        if err is not None:
            log(f"[WARN] [PARSE] {type(self).__name__}: syntax error near line {err[0]} ({err[1]}), lowering best-effort", "warning")
        return self.convert_block(root)

    def convert_block(self, node) -> list[Stmt]:
        if node is None:
            return []
        if node.type in self.BLOCK_TYPES:
            return [self.convert(c) for c in self.statement_children(node)]
        return [self.convert(node)]

    def convert(self, node) -> Stmt:
        t = node.type
        line = self.line(node)

        if t in self.COMMENT_TYPES or t in self.SKIP_TYPES:
            return SKIP
        if t in self.BLOCK_TYPES:
            return Stmt(StmtKind.BLOCK, line, body=self.convert_block(node))
        if t in self.WRAPPER_TYPES:
            kids = self.statement_children(node)
            inner = [k for k in kids if k.type not in ("identifier", "statement_identifier")]
            return self.convert(inner[-1]) if inner else simple(self.text(node), line)
        if t in self.IF_TYPES:
            return self.convert_if(node)
        if t in self.FOR_TYPES:
            return self.convert_for(node)
        if t in self.DO_TYPES:
            return self.convert_do(node)
        if t in self.LOOP_TYPES:
            body = self.body_of(node)
            return Stmt(StmtKind.LOOP, line, text=self.header(node, body), body=self.convert_block(body))
        if t in self.TRY_TYPES:
            return self.convert_try(node)
        if t in self.SWITCH_TYPES:
            return self.convert_switch(node)
        if t in self.RESOURCE_TYPES:
            return self.convert_resource(node)
        if t in self.TERMINAL_TYPES:
            return Stmt(StmtKind.TERMINAL, line, text=self.text(node))
        if t in self.FUNCTION_TYPES:
            return self.convert_function(node)
        if t in self.CLASS_TYPES:
            return self.convert_class(node)
        if t == "ERROR":
            log(f"[WARN] [PARSE] Unparsed region at line {line}", "warning")
        return self.convert_simple(node)

    def convert_simple(self, node) -> Stmt:
        kids = self.statement_children(node)
        if node.type == "expression_statement" and len(kids) == 1 and kids[0].type in self.SWITCH_TYPES:
            return self.convert_switch(kids[0])
        return simple(self.text(node), self.line(node))

    def convert_if(self, node) -> Stmt:
        cond = self.field(node, "condition")
        consequence = self.field(node, "consequence")
        alternative = self.field(node, "alternative")
        if alternative is not None and alternative.type == "else_clause":
            kids = self.statement_children(alternative)
            alternative = kids[0] if kids else None
        return Stmt(
            StmtKind.IF,
            self.line(node),
            text=self.header(node, consequence),
            cond=strip_parens(self.text(cond)),
            body=self.convert_block(consequence),
            orelse=self.convert_block(alternative),
        )

    def convert_for(self, node) -> Stmt:
        body = self.body_of(node)
        head = self.header(node, body)
        parts = split_top_level(extract_paren_group_after("for", head))
        if len(parts) != 3:
            return Stmt(StmtKind.LOOP, self.line(node), text=head, body=self.convert_block(body))
        init, cond, update = parts
        return Stmt(
            StmtKind.COUNTED_LOOP,
            self.line(node),
            text=head,
            init=init,
            cond=cond or "forever",
            update=update,
            body=self.convert_block(body),
        )

    def convert_do(self, node) -> Stmt:
        body = self.body_of(node)
        cond = self.field(node, "condition")
        text = f"do while {strip_parens(self.text(cond))}" if cond is not None else "do while"
        return Stmt(StmtKind.LOOP, self.line(node), text=text, body=self.convert_block(body))

    def handler_label(self, clause) -> str:
        body = self.body_of(clause)
        head = self.header(clause, body)
        head = re.sub(r"^catch\b", "", head).strip()
        head = strip_parens(head)
        return f"Catch: {head}" if head else "Catch"

    def convert_try(self, node) -> Stmt:
        handlers = []
        finalbody = None
        final_line = None
        for child in self.statement_children(node):
            if child.type == self.CATCH_TYPE:
                handlers.append(Handler(self.handler_label(child), self.line(child), self.convert_block(self.body_of(child))))
            elif child.type == self.FINALLY_TYPE:
                finalbody = self.convert_block(self.body_of(child))
                final_line = self.line(child)
        return Stmt(
            StmtKind.TRY,
            self.line(node),
            text="Try",
            body=self.convert_block(self.field(node, "body")),
            handlers=handlers,
            finalbody=finalbody,
            final_line=final_line,
        )

    def convert_resource(self, node) -> Stmt:
        body = self.body_of(node)
        return Stmt(
            StmtKind.RESOURCE,
            self.line(node),
            text=self.header(node, body),
            body=self.convert_block(body),
            close_label="End Using",
        )

    def switch_subject(self, node) -> str:
        subject = self.field(node, "condition") or self.field(node, "value")
        if subject is None:
            return extract_paren_group_after("switch", self.header(node, self.body_of(node)))
        return strip_parens(self.text(subject))

    def case_parts(self, group) -> tuple[str, list]:
        """(label text, statement nodes) of one switch group."""
        kids = list(group.children)
        colons = [i for i, c in enumerate(kids) if not c.is_named and c.type in (":", "->")]
        if colons:
            cut = colons[-1]
            label = self.span(group.start_byte, kids[cut].start_byte)
            stmts = [c for c in kids[cut + 1 :] if c.is_named and c.type not in self.COMMENT_TYPES]
        else:
            labels = [c for c in kids if c.is_named and "label" in c.type]
            stmts = [c for c in kids if c.is_named and "label" not in c.type and c.type not in self.COMMENT_TYPES]
            label = " ".join(self.text(c) for c in labels)
        body_field = group.children_by_field_name("body")
        if body_field:
            stmts = [c for c in body_field if c.type not in self.COMMENT_TYPES]
        return label, stmts

    def convert_switch(self, node) -> Stmt:
        subject = self.switch_subject(node)
        body = self.body_of(node)
        cases = []
        for group in self.statement_children(body) if body is not None else []:
            if group.type not in self.SWITCH_GROUP_TYPES:
                continue
            label, stmt_nodes = self.case_parts(group)
            values = [v.strip().rstrip(":").strip() for v in re.split(r"\bcase\b", label)]
            values = [v for v in values if v]
            is_default = group.type == "switch_default" or any(v.startswith("default") for v in values)
            values = [v for v in values if not v.startswith("default")]
            if stmt_nodes and stmt_nodes[-1].type == self.BREAK_TYPE:
                stmt_nodes = stmt_nodes[:-1]
            stmts: list[Stmt] = []
            for s in stmt_nodes:
                stmts += self.convert_block(s)
            case_label = f"{subject} is {' or '.join(values)}" if values else "default"
            cases.append(Case(case_label, self.line(group), stmts, is_default))
        return Stmt(StmtKind.SWITCH, self.line(node), text=self.header(node, body), cond=subject, cases=cases)

    def function_name(self, node) -> str:
        name = self.field(node, "name")
        return self.text(name) if name is not None else "anonymous"

    def convert_function(self, node) -> Stmt:
        body = self.field(node, "body")
        stmts = self.convert_block(body) if body is not None else []
        prefix = "Async Func" if self.text(node).lstrip().startswith("async") else "Func"
        return Stmt(StmtKind.FUNCTION, self.line(node), text=f"{prefix}: {self.function_name(node)}", body=stmts)

    def convert_class(self, node) -> Stmt:
        kind = "Class"
        for keyword, pretty in self.CLASS_KEYWORDS.items():
            if re.search(rf"\b{keyword}\b", self.header(node, self.field(node, "body"))):
                kind = pretty
                break
        body = self.field(node, "body")
        if body is not None:
            members = self.convert_block(body)
        else:
            # file-scoped namespace: members are direct children
            name = self.field(node, "name")
            skip = name.start_byte if name is not None else -1
            members = [self.convert(c) for c in self.statement_children(node) if c.start_byte != skip]
        return Stmt(StmtKind.CLASS, self.line(node), text=f"{kind}: {self.function_name(node)}", body=members)
