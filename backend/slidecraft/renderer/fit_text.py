"""
Greedy word wrap against a text zone.

Width is approximated from the font size (about 0.55em per character) so
the result is deterministic and identical on every surface, independent of
which fonts happen to be installed.
"""

import math
import re
from typing import List

from slidecraft.renderer.inline_format import is_complete_highlight, visible_text

CHAR_WIDTH_EM = 0.55

HIGHLIGHT_TOKEN_RE = re.compile(r"\{\{(?:#[\da-fA-F]{6}|[a-z]+)\}\}.+?\{\{/\}\}", re.S)


def chars_per_line(width: float, font_size: float) -> int:
    return max(1, math.floor(width / (font_size * CHAR_WIDTH_EM)))


def _tokens(paragraph: str) -> List[str]:
    """Whitespace tokens, with each {{color}}...{{/}} span kept as a single token."""
    trimmed = paragraph.strip()
    if not trimmed:
        return []
    result = []
    last = 0
    for match in HIGHLIGHT_TOKEN_RE.finditer(trimmed):
        result.extend(trimmed[last:match.start()].split())
        result.append(match.group(0))
        last = match.end()
    result.extend(trimmed[last:].split())
    return result or [trimmed]


def _wrap_paragraph(paragraph: str, max_chars: int, max_lines: int) -> List[str]:
    lines: List[str] = []
    current = ""
    current_len = 0

    for token in _tokens(paragraph):
        token_len = len(visible_text(token))
        candidate_len = current_len + 1 + token_len if current else token_len
        if candidate_len <= max_chars:
            current = f"{current} {token}" if current else token
            current_len = candidate_len
            continue

        if current:
            lines.append(current)
            if len(lines) >= max_lines:
                return lines

        if token_len > max_chars:
            if is_complete_highlight(token):
                lines.append(token)
                if len(lines) >= max_lines:
                    return lines
            else:
                for i in range(0, len(token), max_chars):
                    lines.append(token[i:i + max_chars])
                    if len(lines) >= max_lines:
                        return lines
            current, current_len = "", 0
        else:
            current, current_len = token, token_len

    if current:
        lines.append(current)
    return lines


def fit_text_to_zone(text: str, zone) -> List[str]:
    """
    Wrap text into at most zone.max_lines lines of the zone's width.

    User newlines start a new paragraph; an empty paragraph becomes an empty
    line. Words past the last line are dropped (no ellipsis).
    """
    if not text or not text.strip():
        return []

    max_chars = chars_per_line(zone.w, zone.font_size)
    lines: List[str] = []
    remaining = zone.max_lines

    for paragraph in text.split("\n"):
        if remaining <= 0:
            break
        if not paragraph.strip():
            lines.append("")
            remaining -= 1
            continue
        wrapped = _wrap_paragraph(paragraph, max_chars, remaining)
        lines.extend(wrapped)
        remaining -= len(wrapped)

    return lines[:zone.max_lines]


def shorten_text_to_zone(text: str, zone) -> str:
    """Text cut down to what fits the zone, as a single string."""
    return " ".join(fit_text_to_zone(text, zone)).strip()
