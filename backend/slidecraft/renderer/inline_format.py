"""
Inline formatting for slide text.

Slide text is stored plain; highlights live beside it as character spans.
At render time spans are injected as lightweight markers and every wrapped
line is parsed back into typed runs:

- **bold**                      -> bold run
- {{yellow}}word{{/}}           -> colored run (named highlight color)
- {{#facc15}}word{{/}}          -> colored run (explicit hex)
- unclosed {{name}} / {{#hex}}  -> colors the rest of the line
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional

# Preset highlight colors with good contrast on dark backgrounds
HIGHLIGHT_COLORS = {
    "yellow": "#facc15",
    "amber": "#fbbf24",
    "orange": "#fb923c",
    "lime": "#a3e635",
    "green": "#4ade80",
    "cyan": "#22d3ee",
    "sky": "#38bdf8",
    "pink": "#f472b6",
    "rose": "#fb7185",
    "white": "#ffffff",
}
DEFAULT_HIGHLIGHT_COLOR = HIGHLIGHT_COLORS["yellow"]

_TAG = r"\{\{(#[\da-fA-F]{6}|[a-z]+)\}\}"
CLOSED_COLOR_RE = re.compile(_TAG + r"(.+?)\{\{/\}\}", re.S)
UNCLOSED_COLOR_RE = re.compile(_TAG + r"(.*)", re.S)
BOLD_RE = re.compile(r"\*\*(.+?)\*\*", re.S)
OPEN_TAG_RE = re.compile(r"\{\{(?:#[\da-fA-F]{6}|[a-z]+)\}\}")
CLOSE_TAG_RE = re.compile(r"\{\{/\}\}")
COMPLETE_HIGHLIGHT_RE = re.compile(r"^" + _TAG + r".+\{\{/\}\}$", re.S)


@dataclass(frozen=True)
class TextRun:
    """One styled piece of a rendered line."""
    text: str
    kind: str = "plain"  # plain | bold | color
    color: Optional[str] = None


@dataclass(frozen=True)
class HighlightSpan:
    """Character range [start, end) of a stored field, tagged with a color."""
    start: int
    end: int
    color: str = DEFAULT_HIGHLIGHT_COLOR


def resolve_highlight_color(key: str) -> str:
    if key.startswith("#"):
        return key
    return HIGHLIGHT_COLORS.get(key, DEFAULT_HIGHLIGHT_COLOR)


def parse_inline_formatting(text: str) -> List[TextRun]:
    """Parse a line of slide text into ordered runs."""
    runs: List[TextRun] = []
    remaining = text.replace("***", "**")

    while remaining:
        color_match = CLOSED_COLOR_RE.search(remaining)
        bold_match = BOLD_RE.search(remaining)
        unclosed_match = UNCLOSED_COLOR_RE.search(remaining)

        color_at = color_match.start() if color_match else -1
        bold_at = bold_match.start() if bold_match else -1
        unclosed_at = unclosed_match.start() if unclosed_match else -1

        if color_at >= 0 and (bold_at < 0 or color_at <= bold_at):
            if color_at:
                runs.append(TextRun(remaining[:color_at]))
            runs.append(TextRun(
                color_match.group(2), "color", resolve_highlight_color(color_match.group(1))
            ))
            remaining = remaining[color_match.end():]
        elif bold_at >= 0 and (unclosed_at < 0 or bold_at <= unclosed_at):
            if bold_at:
                runs.append(TextRun(remaining[:bold_at]))
            runs.append(TextRun(bold_match.group(1), "bold"))
            remaining = remaining[bold_match.end():]
        elif unclosed_at >= 0:
            if unclosed_at:
                runs.append(TextRun(remaining[:unclosed_at]))
            rest = unclosed_match.group(2)
            if rest:
                runs.append(TextRun(rest, "color", resolve_highlight_color(unclosed_match.group(1))))
            break
        else:
            runs.append(TextRun(remaining))
            break

    return runs


def strip_highlight_markers(text: str) -> str:
    """Remove {{name}}, {{#hex}} and {{/}} tags, keeping the inner text."""
    return CLOSE_TAG_RE.sub("", OPEN_TAG_RE.sub("", text))


def visible_text(text: str) -> str:
    """Text as it will be painted: highlight tags and bold markers removed."""
    return strip_highlight_markers(text).replace("***", "**").replace("**", "")


def is_complete_highlight(token: str) -> bool:
    return bool(COMPLETE_HIGHLIGHT_RE.match(token))


def coerce_spans(raw) -> List[HighlightSpan]:
    """Build spans from stored JSON ({start, end, color}); malformed entries are dropped."""
    spans = []
    for item in raw or []:
        if isinstance(item, HighlightSpan):
            spans.append(item)
            continue
        if not isinstance(item, dict):
            continue
        try:
            start = int(item["start"])
            end = int(item["end"])
        except (KeyError, TypeError, ValueError):
            continue
        color = item.get("color") or DEFAULT_HIGHLIGHT_COLOR
        spans.append(HighlightSpan(start, end, str(color)))
    return spans


def _clamp(spans: Iterable[HighlightSpan], length: int) -> List[HighlightSpan]:
    clamped = []
    for span in spans:
        start = max(0, min(span.start, length))
        end = max(0, min(span.end, length))
        if end > start:
            clamped.append(HighlightSpan(start, end, span.color))
    return clamped


def _expand_to_words(text: str, span: HighlightSpan) -> Optional[HighlightSpan]:
    start, end = span.start, span.end
    # Trim whitespace at the edges first so "  word" does not grow into the previous word
    while start < end and text[start].isspace():
        start += 1
    while end > start and text[end - 1].isspace():
        end -= 1
    if start >= end:
        return None
    while start > 0 and not text[start - 1].isspace():
        start -= 1
    while end < len(text) and not text[end].isspace():
        end += 1
    return HighlightSpan(start, end, span.color)


def _trim(text: str, span: HighlightSpan) -> Optional[HighlightSpan]:
    start, end = span.start, span.end
    while start < end and text[start].isspace():
        start += 1
    while end > start and text[end - 1].isspace():
        end -= 1
    if start >= end:
        return None
    return HighlightSpan(start, end, span.color)


def normalize_highlight_spans(text: str, spans: Iterable[HighlightSpan]) -> List[HighlightSpan]:
    """
    Word-align spans and resolve overlaps.

    Each span grows outward to whole words. Spans are applied in the given
    order and a later span replaces whatever part of an earlier one it
    overlaps. Output is sorted by start and never overlaps.
    """
    placed: List[HighlightSpan] = []
    for span in _clamp(spans, len(text)):
        expanded = _expand_to_words(text, span)
        if expanded is None:
            continue
        kept = []
        for existing in placed:
            if existing.end <= expanded.start or existing.start >= expanded.end:
                kept.append(existing)
                continue
            for piece in (
                HighlightSpan(existing.start, expanded.start, existing.color),
                HighlightSpan(expanded.end, existing.end, existing.color),
            ):
                if piece.end > piece.start:
                    trimmed = _trim(text, piece)
                    if trimmed is not None:
                        kept.append(trimmed)
        kept.append(expanded)
        placed = kept
    return sorted(placed, key=lambda s: (s.start, s.end))


def _marker_color(color: str) -> str:
    """Markers only carry 6-digit hex colors."""
    if color in HIGHLIGHT_COLORS:
        return HIGHLIGHT_COLORS[color]
    clean = color.lstrip("#")
    if len(clean) == 3:
        clean = "".join(ch * 2 for ch in clean)
    if re.fullmatch(r"[\da-fA-F]{6}", clean):
        return "#" + clean
    return DEFAULT_HIGHLIGHT_COLOR


def inject_highlight_markers(text: str, spans: Iterable[HighlightSpan]) -> str:
    """
    Wrap span ranges of plain text in {{#hex}}...{{/}} markers.

    Spans are clamped to the text and sorted by start; the part of a span
    already covered by an earlier one is skipped.
    """
    ordered = sorted(_clamp(spans, len(text)), key=lambda s: s.start)
    if not ordered:
        return text

    out = []
    last_end = 0
    for span in ordered:
        start = max(span.start, last_end)
        if start >= span.end:
            continue
        if start > last_end:
            out.append(text[last_end:start])
        color = _marker_color(span.color)
        out.append(f"{{{{{color}}}}}{text[start:span.end]}{{{{/}}}}")
        last_end = span.end
    if last_end < len(text):
        out.append(text[last_end:])
    return "".join(out)
