from __future__ import annotations

import ast
from typing import Optional

from logicmap.lowering.statements import SKIP, Case, Handler, Stmt, StmtKind, simple

_SKIPPED = (ast.Import, ast.ImportFrom, ast.Global, ast.Nonlocal)


class PythonAdapter:
    """Maps stdlib ``ast`` statements onto ``Stmt`` records."""

    def __init__(self, source: str):
        self.source = source
        self.lines = source.splitlines()

    def segment(self, node: Optional[ast.AST]) -> str:
        if node is None:
            return ""
        return ast.get_source_segment(self.source, node) or ""

    def header(self, node: ast.stmt) -> str:
        """First source line of a compound statement, without its trailing colon."""
        idx = node.lineno - 1
        raw = self.lines[idx] if 0 <= idx < len(self.lines) else ""
        body = getattr(node, "body", None)
        if body and body[0].lineno == node.lineno:
            # one-liner, e.g. "for i in x: print(i)"; col_offset counts utf-8 bytes
            raw = raw.encode("utf8")[: body[0].col_offset].decode("utf8", "ignore")
        return raw.strip().rstrip(":").strip()

    def _keyword_line(self, start: int, end: int, keyword: str) -> Optional[int]:
        """Last line in (start, end] whose text starts with ``keyword``."""
        for lineno in range(min(end, len(self.lines)), start, -1):
            if self.lines[lineno - 1].strip().startswith(keyword):
                return lineno
        return None

    def convert_block(self, stmts: list[ast.stmt]) -> list[Stmt]:
        return [self.convert(s) for s in stmts]

    def convert(self, node: ast.stmt) -> Stmt:
        line = getattr(node, "lineno", None)

        if isinstance(node, _SKIPPED):
            return SKIP
        if isinstance(node, ast.Expr) and isinstance(node.value, ast.Constant) and isinstance(node.value.value, str):
            return SKIP  # docstring / bare string

        if isinstance(node, ast.If):
            return Stmt(
                StmtKind.IF,
                line,
                text=self.header(node),
                cond=self.segment(node.test),
                body=self.convert_block(node.body),
                orelse=self.convert_block(node.orelse),
            )

        if isinstance(node, (ast.For, ast.AsyncFor, ast.While)):
            return Stmt(
                StmtKind.LOOP,
                line,
                text=self.header(node),
                body=self.convert_block(node.body),
                orelse=self.convert_block(node.orelse),
            )

        if isinstance(node, ast.Try) or type(node).__name__ == "TryStar":
            return self._convert_try(node)

        if isinstance(node, (ast.With, ast.AsyncWith)):
            return Stmt(
                StmtKind.RESOURCE,
                line,
                text=self.header(node),
                body=self.convert_block(node.body),
                close_label="Exit With",
            )

        if isinstance(node, ast.Match):
            return self._convert_match(node)

        if isinstance(node, (ast.Return, ast.Raise)):
            return Stmt(StmtKind.TERMINAL, line, text=self.segment(node))

        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            prefix = "Async Func" if isinstance(node, ast.AsyncFunctionDef) else "Func"
            return Stmt(StmtKind.FUNCTION, line, text=f"{prefix}: {node.name}", body=self.convert_block(node.body))

        if isinstance(node, ast.ClassDef):
            return Stmt(StmtKind.CLASS, line, text=f"Class: {node.name}", body=self.convert_block(node.body))

        return simple(self.segment(node) or type(node).__name__.lower(), line)

    def _convert_try(self, node) -> Stmt:
        handlers = []
        for h in node.handlers:
            label = f"Except: {self.segment(h.type)}" if h.type is not None else "Except"
            handlers.append(Handler(label, h.lineno, self.convert_block(h.body)))

        finalbody = None
        final_line = None
        if node.finalbody:
            finalbody = self.convert_block(node.finalbody)
            prev_end = node.lineno
            for part in (node.body, node.orelse, *(h.body for h in node.handlers)):
                if part:
                    prev_end = max(prev_end, part[-1].end_lineno or part[-1].lineno)
            final_line = self._keyword_line(prev_end, node.finalbody[0].lineno, "finally")

        return Stmt(
            StmtKind.TRY,
            node.lineno,
            text="Try",
            body=self.convert_block(node.body),
            orelse=self.convert_block(node.orelse),
            handlers=handlers,
            finalbody=finalbody,
            final_line=final_line,
        )

    def _convert_match(self, node: ast.Match) -> Stmt:
        subject = self.segment(node.subject)
        cases = []
        for c in node.cases:
            pattern = self.segment(c.pattern)
            is_default = isinstance(c.pattern, ast.MatchAs) and c.pattern.pattern is None and c.guard is None
            label = f"{subject} is {pattern}"
            if c.guard is not None:
                label += f" if {self.segment(c.guard)}"
            cases.append(Case(label, c.pattern.lineno, self.convert_block(c.body), is_default))
        return Stmt(StmtKind.SWITCH, node.lineno, text=self.header(node), cond=subject, cases=cases)


def python_statements(source: str, tree: ast.Module) -> list[Stmt]:
    return PythonAdapter(source).convert_block(tree.body)
