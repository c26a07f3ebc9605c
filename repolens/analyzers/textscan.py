"""Small helpers for pattern matching over raw source text.

These are not parsers. They only know enough about brackets and quotes to
pull a balanced literal out of a file and split it at top-level commas.
"""
from __future__ import annotations

_OPENERS = {"{": "}", "[": "]", "(": ")"}
_CLOSERS = {v: k for k, v in _OPENERS.items()}
_QUOTES = {"'", '"', "`"}


def balanced_block(text: str, open_index: int) -> str | None:
    """Return the text between the bracket at ``open_index`` and its match.

    Brackets inside string literals are ignored. Returns None when the
    bracket is never closed.
    """
    if open_index >= len(text) or text[open_index] not in _OPENERS:
        return None
    stack = [text[open_index]]
    i = open_index + 1
    quote: str | None = None
    while i < len(text):
        ch = text[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in _QUOTES:
            quote = ch
        elif ch in _OPENERS:
            stack.append(ch)
        elif ch in _CLOSERS:
            if not stack or stack[-1] != _CLOSERS[ch]:
                return None
            stack.pop()
            if not stack:
                return text[open_index + 1:i]
        i += 1
    return None


def block_after(text: str, start: int, opener: str = "{", window: int = 200) -> str | None:
    """Find the first ``opener`` at or after ``start`` and return its block."""
    index = text.find(opener, start, start + window)
    if index < 0:
        return None
    return balanced_block(text, index)


def split_top_level(text: str, sep: str = ",") -> list[str]:
    """Split on ``sep`` only where no bracket or string is open."""
    parts: list[str] = []
    depth = 0
    quote: str | None = None
    current: list[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if quote:
            current.append(ch)
            if ch == "\\" and i + 1 < len(text):
                current.append(text[i + 1])
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in _QUOTES:
            quote = ch
            current.append(ch)
        elif ch in _OPENERS:
            depth += 1
            current.append(ch)
        elif ch in _CLOSERS:
            depth = max(0, depth - 1)
            current.append(ch)
        elif ch == sep and depth == 0:
            parts.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
        i += 1
    tail = "".join(current).strip()
    if tail:
        parts.append(tail)
    return [p for p in parts if p]


def blank_comments(text: str) -> str:
    """Replace ``//`` and ``/* */`` comments with spaces.

    Offsets and newlines are kept, so positions found in the result index
    the original text. Comment markers inside string literals are left alone.
    """
    out = list(text)
    i = 0
    quote: str | None = None
    while i < len(text):
        ch = text[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote or ch == "\n":
                quote = None
        elif ch in ('"', "'"):
            quote = ch
        elif text.startswith("//", i):
            end = text.find("\n", i)
            end = len(text) if end < 0 else end
            out[i:end] = " " * (end - i)
            i = end
            continue
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            end = len(text) if end < 0 else end + 2
            out[i:end] = [c if c == "\n" else " " for c in text[i:end]]
            i = end
            continue
        i += 1
    return "".join(out)


def unique(items) -> list[str]:
    """Order-preserving de-duplication."""
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        if item and item not in seen:
            seen.add(item)
            out.append(item)
    return out
