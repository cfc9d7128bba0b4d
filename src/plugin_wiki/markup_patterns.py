"""Regex building blocks for the wiki markup.

Pages are authored against browser regular expressions, whose ``\\d``,
``\\s`` and ``.`` differ from Python's on ``str``: ``\\d`` is ASCII only,
``\\s`` excludes ``\\x1c``-``\\x1f`` and ``\\x85`` but includes ``\\ufeff``,
and ``.`` also stops at ``\\r``, ``\\u2028`` and ``\\u2029``. The classes
below spell those sets out.
"""

from __future__ import annotations

_WHITESPACE_CODES = (
    0x09,
    0x0A,
    0x0B,
    0x0C,
    0x0D,
    0x20,
    0xA0,
    0x1680,
    *range(0x2000, 0x200B),
    0x2028,
    0x2029,
    0x202F,
    0x205F,
    0x3000,
    0xFEFF,
)
_LINE_TERMINATOR_CODES = (0x0A, 0x0D, 0x2028, 0x2029)


def _class_body(codes: tuple[int, ...]) -> str:
    return "".join(f"\\u{code:04x}" for code in codes)


DIGIT = "[0-9]"
WHITESPACE = f"[{_class_body(_WHITESPACE_CODES)}]"
LINE_CHAR = f"[^{_class_body(_LINE_TERMINATOR_CODES)}]"

_WHITESPACE_CHARS = "".join(chr(code) for code in _WHITESPACE_CODES)


def strip_whitespace(text: str) -> str:
    """Trim leading and trailing characters of the ``WHITESPACE`` set only."""
    return text.strip(_WHITESPACE_CHARS)
