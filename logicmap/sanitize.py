"""
Label sanitizing for Mermaid node / edge labels.

Two modes:
- LENIENT: labels are emitted inside double quotes, so only the quote itself, HTML
  specials and backslashes need care. Brackets are left readable.
- STRICT: every character Mermaid treats as syntax is swapped for its full-width
  lookalike, so the label reads the same but can never be parsed as diagram syntax.
"""

from __future__ import annotations

import enum
import re
from typing import Optional

from logicmap.config import SETTINGS
from logicmap.log import log


class LabelMode(enum.Enum):
    LENIENT = "lenient"
    STRICT = "strict"


_LENIENT_ESCAPES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "'",
    "\\": "\\\\",
}

# ASCII structural char -> full-width lookalike
STRICT_HOMOGLYPHS = {
    "&": "＆",
    "<": "＜",
    ">": "＞",
    '"': "＂",
    "'": "＇",
    "(": "（",
    ")": "）",
    "[": "［",
    "]": "］",
    "{": "｛",
    "}": "｝",
    ";": "；",
    "#": "＃",
    "|": "｜",
    "%": "％",
    "@": "＠",
    ":": "：",
    "^": "＾",
    "\\": "＼",
}

LENIENT_PROTECTED = frozenset('"<>')
STRICT_PROTECTED = frozenset(STRICT_HOMOGLYPHS)

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def collapse_whitespace(text: str) -> str:
    text = _CONTROL_CHARS_RE.sub("", text)
    return re.sub(r"\s+", " ", text).strip()


def default_max_len(mode: LabelMode) -> int:
    return SETTINGS.strict_max_label if mode is LabelMode.STRICT else SETTINGS.lenient_max_label


def truncate(text: str, max_len: int, ellipsis: str = SETTINGS.ellipsis) -> str:
    if max_len <= 0 or len(text) <= max_len:
        return text
    return text[:max_len].rstrip() + ellipsis


def escape_label(text: str, mode: LabelMode) -> str:
    table = STRICT_HOMOGLYPHS if mode is LabelMode.STRICT else _LENIENT_ESCAPES
    return "".join(table.get(ch, ch) for ch in text)


def sanitize_label(raw, mode: LabelMode = LabelMode.LENIENT, max_len: Optional[int] = None) -> str:
    """Collapse whitespace, truncate, then escape. Never raises; ``None``/empty gives ``""``."""
    if raw is None:
        return ""
    limit = default_max_len(mode) if max_len is None else max_len
    text = ""
    try:
        text = truncate(collapse_whitespace(str(raw)), limit)
        return escape_label(text, mode)
    except Exception as e:
        log(f"[WARN] Label sanitize failed ({e}); falling back to plain text", "warning")
        return "".join(ch for ch in text if ch not in STRICT_PROTECTED)


def has_unescaped(label: str, mode: LabelMode) -> bool:
    protected = STRICT_PROTECTED if mode is LabelMode.STRICT else LENIENT_PROTECTED
    return any(ch in protected for ch in label)
