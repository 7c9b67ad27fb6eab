"""
Parser front-ends.

tree-sitter grammars come from ``tree_sitter_language_pack``. Each grammar is loaded
once; a grammar that fails to load is remembered as unsupported and never retried.
Python goes through the stdlib ``ast`` module instead.
"""

from __future__ import annotations

import ast
import threading
from typing import Optional

from tree_sitter_language_pack import get_parser

from logicmap.log import log

_PARSERS: dict = {}
_UNSUPPORTED: set[str] = set()
_LOCK = threading.Lock()


def load_parser(grammar: str):
    """Return a cached tree-sitter Parser for ``grammar`` or None when it cannot be loaded."""
    if not grammar or grammar in _UNSUPPORTED:
        return None
    with _LOCK:
        parser = _PARSERS.get(grammar)
        if parser is not None:
            return parser
        if grammar in _UNSUPPORTED:
            return None
        try:
            parser = get_parser(grammar)
        except Exception as e:
            log(f"[WARN] [PARSE] Grammar '{grammar}' unavailable: {e}", "warning")
            _UNSUPPORTED.add(grammar)
            return None
        _PARSERS[grammar] = parser
        log(f"[PARSE] Loaded grammar '{grammar}'", "debug")
        return parser


def parse_tree_sitter(code: str, grammar: str):
    parser = load_parser(grammar)
    if parser is None:
        return None
    try:
        return parser.parse((code or "").encode("utf8"))
    except Exception as e:
        log(f"[WARN] [PARSE] {grammar} parse failed: {e}", "warning")
        return None


def parse_python(code: str) -> Optional[ast.Module]:
    try:
        return ast.parse(code or "")
    except (SyntaxError, ValueError) as e:
        log(f"[WARN] [PARSE] python parse failed: {e}", "warning")
        return None


def first_error(node) -> Optional[tuple[int, str]]:
    """(1-based line, node type) of the first ERROR / missing node in a tree-sitter tree."""
    if node is None:
        return None
    if node.type == "ERROR" or node.is_missing:
        return node.start_point[0] + 1, node.type
    if not node.has_error:
        return None
    for child in node.children:
        found = first_error(child)
        if found:
            return found
    return None
