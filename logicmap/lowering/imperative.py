"""
Shared lowering for imperative languages.

Walks ``Stmt`` lists while carrying the "current predecessor": a list of pending
exits ``(node_id, edge_label, edge_style)`` that the next emitted node links from.
An empty list means the branch has terminated (return / throw) or that the walk
starts with no predecessor (top of a module, class member).
"""

from __future__ import annotations

from typing import Optional

from logicmap.graph import EdgeStyle, GraphBuilder, Shape
from logicmap.lowering.statements import Stmt, StmtKind

Pending = tuple[str, Optional[str], EdgeStyle]


def _pending(node_id: str, label: Optional[str] = None) -> list[Pending]:
    return [(node_id, label, EdgeStyle.SOLID)]


class ImperativeLowering:
    def __init__(self, builder: GraphBuilder):
        self.b = builder
        self._dispatch = {
            StmtKind.SIMPLE: self._lower_simple,
            StmtKind.IF: self._lower_if,
            StmtKind.LOOP: self._lower_loop,
            StmtKind.COUNTED_LOOP: self._lower_counted_loop,
            StmtKind.TRY: self._lower_try,
            StmtKind.SWITCH: self._lower_switch,
            StmtKind.RESOURCE: self._lower_resource,
            StmtKind.TERMINAL: self._lower_terminal,
            StmtKind.FUNCTION: self._lower_function,
            StmtKind.CLASS: self._lower_class,
            StmtKind.BLOCK: self._lower_nested_block,
            StmtKind.SKIP: self._lower_skip,
        }
        missing = set(StmtKind) - set(self._dispatch)
        if missing:
            raise NotImplementedError(f"No lowering for {sorted(k.value for k in missing)}")

    def lower_program(self, stmts: list[Stmt]) -> list[Pending]:
        return self.lower_block(stmts, [])

    def lower_block(self, stmts: list[Stmt], preds: list[Pending]) -> list[Pending]:
        for stmt in stmts:
            preds = self.lower_stmt(stmt, preds)
        return preds

    def lower_stmt(self, stmt: Stmt, preds: list[Pending]) -> list[Pending]:
        return self._dispatch[stmt.kind](stmt, preds)

    def link(self, preds: list[Pending], dst: str) -> None:
        for src, label, style in preds:
            self.b.add_edge(src, dst, label, style)

    def _merge(self, exits: list[Pending]) -> list[Pending]:
        if not exits:
            return []
        m = self.b.new_merge()
        self.link(exits, m)
        return _pending(m)

    def _lower_simple(self, stmt: Stmt, preds: list[Pending]) -> list[Pending]:
        n = self.b.new_node(Shape.PROCESS, stmt.text, stmt.line)
        self.link(preds, n)
        return _pending(n)

    def _lower_if(self, stmt: Stmt, preds: list[Pending]) -> list[Pending]:
        d = self.b.new_node(Shape.DECISION, stmt.cond or stmt.text, stmt.line)
        self.link(preds, d)

        exits: list[Pending] = []
        cur = stmt
        while True:
            exits += self.lower_block(cur.body, _pending(d, "Yes"))
            # else-if: chain the next Decision straight off "No"
            if len(cur.orelse) == 1 and cur.orelse[0].kind is StmtKind.IF:
                cur = cur.orelse[0]
                nxt = self.b.new_node(Shape.DECISION, cur.cond or cur.text, cur.line)
                self.b.add_edge(d, nxt, "No")
                d = nxt
                continue
            exits += self.lower_block(cur.orelse, _pending(d, "No"))
            break
        return self._merge(exits)

    def _back_edges(self, exits: list[Pending], target: str) -> None:
        for src, _, style in exits:
            if src != target:
                self.b.add_edge(src, target, "Repeat", style)

    def _lower_loop(self, stmt: Stmt, preds: list[Pending]) -> list[Pending]:
        loop = self.b.new_node(Shape.LOOP, stmt.text, stmt.line)
        self.link(preds, loop)
        self._back_edges(self.lower_block(stmt.body, _pending(loop)), loop)
        after = _pending(loop)
        if stmt.orelse:
            after = self.lower_block(stmt.orelse, after)
        return after

    def _lower_counted_loop(self, stmt: Stmt, preds: list[Pending]) -> list[Pending]:
        if stmt.init:
            init = self.b.new_node(Shape.PROCESS, stmt.init, stmt.line)
            self.link(preds, init)
            preds = _pending(init)
        cond = self.b.new_node(Shape.LOOP, stmt.cond or stmt.text, stmt.line)
        self.link(preds, cond)

        exits = self.lower_block(stmt.body, _pending(cond))
        if stmt.update and exits:
            upd = self.b.new_node(Shape.PROCESS, stmt.update, stmt.line)
            self.link(exits, upd)
            exits = _pending(upd)
        self._back_edges(exits, cond)
        return _pending(cond)

    def _lower_try(self, stmt: Stmt, preds: list[Pending]) -> list[Pending]:
        entry = self.b.new_node(Shape.FLAG, stmt.text or "Try", stmt.line)
        self.link(preds, entry)

        exits = self.lower_block(stmt.body, _pending(entry))
        if stmt.orelse:
            exits = self.lower_block(stmt.orelse, exits)
        for h in stmt.handlers:
            hn = self.b.new_node(Shape.FLAG, h.label, h.line)
            self.b.add_edge(entry, hn, "Exception", EdgeStyle.DASHED)
            exits += self.lower_block(h.body, _pending(hn))

        after = self._merge(exits)
        if stmt.finalbody is None:
            return after
        fin = self.b.new_node(Shape.SUBROUTINE, "Finally", stmt.final_line)
        if after:
            self.link(after, fin)
        else:
            # every path terminated; finally still runs on the way out
            self.b.add_edge(entry, fin, None, EdgeStyle.DASHED)
        fin_exits = self.lower_block(stmt.finalbody, _pending(fin))
        return fin_exits if after else []

    def _lower_switch(self, stmt: Stmt, preds: list[Pending]) -> list[Pending]:
        default = next((c for c in stmt.cases if c.is_default), None)
        cases = [c for c in stmt.cases if not c.is_default]
        if not cases:
            return self.lower_block(default.body, preds) if default else preds

        exits: list[Pending] = []
        pending = preds
        for case in cases:
            d = self.b.new_node(Shape.DECISION, case.label, case.line)
            self.link(pending, d)
            exits += self.lower_block(case.body, _pending(d, "Yes"))
            pending = _pending(d, "No")
        exits += self.lower_block(default.body, pending) if default else pending
        return self._merge(exits)

    def _lower_resource(self, stmt: Stmt, preds: list[Pending]) -> list[Pending]:
        head = self.b.new_node(Shape.PROCESS, stmt.text, stmt.line)
        self.link(preds, head)
        exits = self.lower_block(stmt.body, _pending(head))
        if not exits:
            return []
        close = self.b.new_node(Shape.PROCESS, stmt.close_label or "Close", stmt.line)
        self.link(exits, close)
        return _pending(close)

    def _lower_terminal(self, stmt: Stmt, preds: list[Pending]) -> list[Pending]:
        t = self.b.new_node(Shape.TERMINAL, stmt.text, stmt.line)
        self.link(preds, t)
        return []

    def _lower_function(self, stmt: Stmt, preds: list[Pending]) -> list[Pending]:
        f = self.b.new_node(Shape.STADIUM, stmt.text, stmt.line)
        self.link(preds, f)
        self.lower_block(stmt.body, _pending(f))
        return _pending(f)

    def _lower_class(self, stmt: Stmt, preds: list[Pending]) -> list[Pending]:
        before = len(self.b.nodes)
        self.b.open_subgraph(stmt.text, stmt.line)
        try:
            for member in stmt.body:
                self.lower_block([member], [])
            if len(self.b.nodes) == before + 1:
                # Mermaid needs at least one node inside a subgraph
                self.b.new_node(Shape.PROCESS, stmt.text, stmt.line)
        finally:
            self.b.close_subgraph()
        return preds

    def _lower_nested_block(self, stmt: Stmt, preds: list[Pending]) -> list[Pending]:
        return self.lower_block(stmt.body, preds)

    def _lower_skip(self, stmt: Stmt, preds: list[Pending]) -> list[Pending]:
        return preds
