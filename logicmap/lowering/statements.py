"""
Closed statement variant shared by the imperative-language adapters.

Every adapter (stdlib ``ast`` for Python, tree-sitter for Java / C# / JavaScript)
maps its own node types onto ``StmtKind``; ``ImperativeLowering`` only ever sees
these records.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional


class StmtKind(enum.Enum):
    SIMPLE = "simple"  # assignment / call / declaration / break / continue
    IF = "if"
    LOOP = "loop"  # while, foreach, do-while, for-in
    COUNTED_LOOP = "counted_loop"  # for (init; cond; update)
    TRY = "try"
    SWITCH = "switch"
    RESOURCE = "resource"  # with / using / try-with-resources
    TERMINAL = "terminal"  # return / throw / raise
    FUNCTION = "function"
    CLASS = "class"  # class / interface / namespace container
    BLOCK = "block"  # nested statement list lowered inline
    SKIP = "skip"  # comments, imports, docstrings


@dataclass
class Handler:
    label: str
    line: Optional[int]
    body: list["Stmt"] = field(default_factory=list)


@dataclass
class Case:
    label: str
    line: Optional[int]
    body: list["Stmt"] = field(default_factory=list)
    is_default: bool = False


@dataclass
class Stmt:
    kind: StmtKind
    line: Optional[int] = None
    text: str = ""
    cond: str = ""
    body: list["Stmt"] = field(default_factory=list)
    orelse: list["Stmt"] = field(default_factory=list)
    handlers: list[Handler] = field(default_factory=list)
    finalbody: Optional[list["Stmt"]] = None  # None: no finally clause at all
    final_line: Optional[int] = None
    init: str = ""
    update: str = ""
    cases: list[Case] = field(default_factory=list)
    close_label: str = ""


def simple(text: str, line: Optional[int]) -> Stmt:
    return Stmt(StmtKind.SIMPLE, line, text)


SKIP = Stmt(StmtKind.SKIP)
