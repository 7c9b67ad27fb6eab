"""
SQL lowering: clause extraction + logical execution order.

A query is not walked as a tree. Its top-level clauses are pulled out (structurally
through the tree-sitter SQL grammar when it gives a clean parse, otherwise with a
keyword scan over the comment-stripped text), ranked by the dialect's logical
execution order and chained one node per clause.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Optional

from logicmap.graph import GraphBuilder, Shape
from logicmap.languages import SqlDialect
from logicmap.log import log
from logicmap.parsers import parse_tree_sitter


class Clause(enum.Enum):
    CTE = "cte"
    SOURCE = "source"
    JOIN = "join"
    LATERAL = "lateral"
    WHERE = "where"
    GROUP_BY = "group_by"
    HAVING = "having"
    WINDOW = "window"
    SELECT = "select"
    DISTRIBUTE = "distribute"
    ORDER_BY = "order_by"
    LIMIT = "limit"
    STATEMENT = "statement"  # DML head, or a whole statement with no recognizable clause


SPARK_RANKS = {
    Clause.CTE: 0,
    Clause.SOURCE: 1,
    Clause.JOIN: 2,
    Clause.LATERAL: 3,
    Clause.WHERE: 4,
    Clause.GROUP_BY: 5,
    Clause.HAVING: 6,
    Clause.WINDOW: 7,
    Clause.SELECT: 8,
    Clause.DISTRIBUTE: 9,
    Clause.ORDER_BY: 10,
    Clause.LIMIT: 11,
    Clause.STATEMENT: 12,
}

STANDARD_RANKS = {
    Clause.CTE: 0,
    Clause.SOURCE: 1,
    Clause.JOIN: 2,
    Clause.LATERAL: 2,
    Clause.WHERE: 3,
    Clause.GROUP_BY: 4,
    Clause.HAVING: 5,
    Clause.WINDOW: 6,
    Clause.SELECT: 7,
    Clause.DISTRIBUTE: 8,
    Clause.ORDER_BY: 8,
    Clause.LIMIT: 9,
    Clause.STATEMENT: 10,
}

CLAUSE_SHAPES = {
    Clause.CTE: Shape.FLAG,
    Clause.SOURCE: Shape.DATABASE,
    Clause.JOIN: Shape.DATABASE,
    Clause.LATERAL: Shape.LOOP,
    Clause.WHERE: Shape.DECISION,
    Clause.GROUP_BY: Shape.PROCESS,
    Clause.HAVING: Shape.DECISION,
    Clause.WINDOW: Shape.PROCESS,
    Clause.SELECT: Shape.STADIUM,
    Clause.DISTRIBUTE: Shape.SUBROUTINE,
    Clause.ORDER_BY: Shape.PROCESS,
    Clause.LIMIT: Shape.SUBROUTINE,
    Clause.STATEMENT: Shape.PROCESS,
}

SPARK_STYLES = {
    Clause.SOURCE: "fill:#e65100,color:#fff,stroke:#bf360c",
    Clause.JOIN: "fill:#e65100,color:#fff,stroke:#bf360c",
    Clause.LATERAL: "fill:#ffccbc,stroke:#bf360c",
    Clause.DISTRIBUTE: "fill:#fff9c4,stroke:#fbc02d",
    Clause.SELECT: "fill:#e8f5e9,stroke:#2e7d32",
    Clause.WHERE: "fill:#fff3e0,stroke:#e65100",
    Clause.HAVING: "fill:#fff3e0,stroke:#e65100",
    Clause.CTE: "fill:#e1f5fe,stroke:#0277bd",
}


def ranks_for(dialect: SqlDialect) -> dict[Clause, int]:
    return SPARK_RANKS if dialect is SqlDialect.SPARK else STANDARD_RANKS


@dataclass
class ClauseMatch:
    kind: Clause
    text: str
    line: int
    pos: int  # offset in the source; ties within a rank keep textual order


# -- keyword scan -------------------------------------------------------------

_KEYWORDS = [
    (Clause.LATERAL, r"LATERAL\s+VIEW(?:\s+OUTER)?"),
    (Clause.JOIN, r"(?:(?:NATURAL\s+)?(?:LEFT|RIGHT|FULL|INNER|CROSS)\s+(?:OUTER\s+|SEMI\s+|ANTI\s+)?|(?:LEFT\s+)?(?:SEMI|ANTI)\s+)?JOIN|(?:CROSS|OUTER)\s+APPLY"),
    (Clause.GROUP_BY, r"GROUP\s+BY"),
    (Clause.ORDER_BY, r"ORDER\s+BY"),
    (Clause.DISTRIBUTE, r"(?:DISTRIBUTE|CLUSTER|SORT)\s+BY"),
    (Clause.SELECT, r"SELECT"),
    (Clause.SOURCE, r"FROM"),
    (Clause.WHERE, r"WHERE"),
    (Clause.HAVING, r"HAVING"),
    (Clause.WINDOW, r"WINDOW"),
    (Clause.LIMIT, r"LIMIT|OFFSET|FETCH\s+(?:FIRST|NEXT)"),
]
_KEYWORD_RE = re.compile(
    "|".join(rf"(?P<{kind.name}>\b(?:{pat})\b)" for kind, pat in _KEYWORDS),
    re.IGNORECASE,
)
_CTE_RE = re.compile(r"^\s*WITH\b", re.IGNORECASE)
_TOP_RE = re.compile(r"^SELECT\s+(?:DISTINCT\s+)?(TOP\s*\(?\s*\d+\s*\)?(?:\s+PERCENT)?)", re.IGNORECASE)


def strip_sql_comments(sql: str) -> str:
    """Blank out ``--`` and ``/* */`` comments, keeping newlines so line numbers survive."""
    sql = re.sub(r"/\*[\s\S]*?\*/", lambda m: re.sub(r"[^\n]", " ", m.group(0)), sql or "")
    return re.sub(r"--[^\n]*", lambda m: " " * len(m.group(0)), sql)


def _depth_map(sql: str) -> list[int]:
    """Paren depth at every offset; -1 inside string literals / quoted identifiers."""
    out = []
    depth = 0
    quote = ""
    for ch in sql:
        if quote:
            out.append(-1)
            if ch == quote:
                quote = ""
            continue
        if ch in ("'", '"', "`"):
            quote = ch
            out.append(-1)
            continue
        if ch == "[":
            quote = "]"
            out.append(-1)
            continue
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth = max(0, depth - 1)
        out.append(depth)
    return out


def split_statements(sql: str) -> list[tuple[int, str]]:
    """(offset, text) for every top-level ``;``-separated statement."""
    depth = _depth_map(sql)
    out = []
    start = 0
    for i, ch in enumerate(sql):
        if ch == ";" and depth[i] == 0:
            out.append((start, sql[start:i]))
            start = i + 1
    out.append((start, sql[start:]))
    return [(off, s) for off, s in out if s.strip()]


def _line_at(sql: str, pos: int) -> int:
    return sql.count("\n", 0, pos) + 1


def scan_clauses(sql: str, dialect: SqlDialect) -> list[list[ClauseMatch]]:
    """Keyword scan: one clause list per statement, top-level (depth 0) keywords only."""
    sql = strip_sql_comments(sql)
    result = []
    for offset, stmt in split_statements(sql):
        depth = _depth_map(stmt)
        marks: list[tuple[int, Clause]] = []
        cte = _CTE_RE.match(stmt)
        if cte:
            marks.append((cte.end() - 4, Clause.CTE))
        for m in _KEYWORD_RE.finditer(stmt):
            if depth[m.start()] != 0:
                continue
            marks.append((m.start(), Clause[m.lastgroup]))
        marks.sort(key=lambda x: x[0])

        clauses = []
        head = stmt[: marks[0][0]] if marks else ""
        if head.strip():
            # DML head (UPDATE t SET ..., INSERT INTO t, DELETE) applies after the query part
            first = len(head) - len(head.lstrip())
            text = re.sub(r"\s+", " ", head).strip()
            clauses.append(ClauseMatch(Clause.STATEMENT, text, _line_at(sql, offset + first), offset + first))
        for i, (pos, kind) in enumerate(marks):
            end = marks[i + 1][0] if i + 1 < len(marks) else len(stmt)
            text = re.sub(r"\s+", " ", stmt[pos:end]).strip().rstrip(",")
            if not text:
                continue
            clauses.extend(_split_top(kind, text, offset + pos, sql, dialect))
        if not clauses and stmt.strip():
            first = len(stmt) - len(stmt.lstrip())
            clauses.append(ClauseMatch(Clause.STATEMENT, re.sub(r"\s+", " ", stmt).strip(), _line_at(sql, offset + first), offset + first))
        result.append(clauses)
    return result


def _split_top(kind: Clause, text: str, pos: int, sql: str, dialect: SqlDialect) -> list[ClauseMatch]:
    line = _line_at(sql, pos)
    if kind is Clause.SELECT and dialect is not SqlDialect.SPARK:
        top = _TOP_RE.match(text)
        if top:
            select_text = (text[: top.start(1)] + text[top.end(1) :]).replace("  ", " ")
            return [
                ClauseMatch(Clause.SELECT, select_text.strip(), line, pos),
                ClauseMatch(Clause.LIMIT, top.group(1).strip(), line, pos),
            ]
    return [ClauseMatch(kind, text, line, pos)]


# -- structural (tree-sitter) -------------------------------------------------

_NODE_CLAUSES = {
    "cte": Clause.CTE,
    "from": Clause.SOURCE,
    "join": Clause.JOIN,
    "cross_join": Clause.JOIN,
    "lateral_join": Clause.JOIN,
    "where": Clause.WHERE,
    "group_by": Clause.GROUP_BY,
    "having": Clause.HAVING,
    "window_clause": Clause.WINDOW,
    "select": Clause.SELECT,
    "order_by": Clause.ORDER_BY,
    "limit": Clause.LIMIT,
    "offset": Clause.LIMIT,
}
_CONTAINERS = {"program", "statement", "from", "set_operation", "transaction", "block"}


def _collect(node, out: list) -> None:
    for child in node.named_children:
        kind = _NODE_CLAUSES.get(child.type)
        if kind is not None:
            out.append((child, kind))
        if child.type in _CONTAINERS:
            _collect(child, out)


def structural_clauses(sql: str) -> Optional[list[list[ClauseMatch]]]:
    """Clause lists from the tree-sitter SQL grammar, or None when it cannot be trusted."""
    tree = parse_tree_sitter(sql, "sql")
    if tree is None or tree.root_node.has_error:
        return None
    source = sql.encode("utf8")
    statements = [c for c in tree.root_node.named_children if c.type == "statement"] or [tree.root_node]
    result = []
    for stmt in statements:
        found: list = []
        _collect(stmt, found)
        found.sort(key=lambda x: x[0].start_byte)
        clauses = []
        for i, (node, kind) in enumerate(found):
            end = node.end_byte
            if i + 1 < len(found):
                end = min(end, found[i + 1][0].start_byte)
            text = source[node.start_byte : end].decode("utf8", "replace")
            text = re.sub(r"\s+", " ", text).strip().rstrip(",")
            if text:
                prefix = len(source[: node.start_byte].decode("utf8", "replace"))
                clauses.append(ClauseMatch(kind, text, node.start_point[0] + 1, prefix))
        if not clauses:
            return None
        result.append(clauses)
    return result


def extract_clauses(sql: str, dialect: SqlDialect) -> list[list[ClauseMatch]]:
    scanned = scan_clauses(sql, dialect)
    if dialect is SqlDialect.SPARK:
        return scanned
    structured = structural_clauses(strip_sql_comments(sql))
    if structured is None or len(structured) != len(scanned):
        return scanned
    merged = []
    for parsed, regex in zip(structured, scanned):
        if {c.kind for c in regex} - {c.kind for c in parsed}:
            # grammar missed something the keyword scan saw (e.g. T-SQL TOP)
            log("[SQL] Structural parse incomplete, using keyword scan", "debug")
            return scanned
        merged.append(parsed)
    return merged


def lower_sql(sql: str, dialect: SqlDialect, builder: GraphBuilder) -> None:
    ranks = ranks_for(dialect)
    prev: Optional[str] = None
    for clauses in extract_clauses(sql, dialect):
        ordered = sorted(clauses, key=lambda c: (ranks[c.kind], c.pos))
        for c in ordered:
            nid = builder.new_node(CLAUSE_SHAPES[c.kind], c.text, c.line, prefix="Q")
            builder.add_edge(prev, nid)
            if dialect is SqlDialect.SPARK and c.kind in SPARK_STYLES:
                builder.add_style(nid, SPARK_STYLES[c.kind])
            prev = nid
