"""Tests for inline formatting and highlight spans."""

from slidecraft.renderer.inline_format import (
    DEFAULT_HIGHLIGHT_COLOR,
    HIGHLIGHT_COLORS,
    HighlightSpan,
    TextRun,
    coerce_spans,
    inject_highlight_markers,
    normalize_highlight_spans,
    parse_inline_formatting,
    strip_highlight_markers,
    visible_text,
)


def test_parse_plain_line() -> None:
    assert parse_inline_formatting("just text") == [TextRun("just text")]


def test_parse_bold_and_color_runs() -> None:
    runs = parse_inline_formatting("Grow **fast** with {{#22c55e}}less{{/}} effort")
    assert runs == [
        TextRun("Grow "),
        TextRun("fast", "bold"),
        TextRun(" with "),
        TextRun("less", "color", "#22c55e"),
        TextRun(" effort"),
    ]


def test_parse_named_color_and_triple_asterisks() -> None:
    runs = parse_inline_formatting("{{pink}}hot{{/}} and ***loud***")
    assert runs[0] == TextRun("hot", "color", HIGHLIGHT_COLORS["pink"])
    assert TextRun("loud", "bold") in runs


def test_parse_unclosed_color_runs_to_end_of_line() -> None:
    runs = parse_inline_formatting("before {{#ff0000}}rest of line")
    assert runs == [TextRun("before "), TextRun("rest of line", "color", "#ff0000")]


def test_strip_and_visible_text() -> None:
    assert strip_highlight_markers("a {{#ffffff}}b{{/}} c") == "a b c"
    assert visible_text("**a** {{cyan}}b{{/}}") == "a b"


def test_coerce_spans_drops_malformed_entries() -> None:
    spans = coerce_spans([{"start": 0, "end": 3}, {"start": "x"}, "junk", {"end": 4}])
    assert spans == [HighlightSpan(0, 3, DEFAULT_HIGHLIGHT_COLOR)]


def test_normalize_is_noop_on_aligned_disjoint_spans() -> None:
    text = "one two three"
    spans = [HighlightSpan(0, 3, "#ff0000"), HighlightSpan(8, 13, "#00ff00")]
    assert normalize_highlight_spans(text, spans) == spans


def test_normalize_expands_partial_words_outward() -> None:
    text = "make money online"
    # "ney onl" covers the tail of "money" and the head of "online"
    result = normalize_highlight_spans(text, [HighlightSpan(7, 14, "#ff0000")])
    assert result == [HighlightSpan(5, 17, "#ff0000")]
    assert text[5:17] == "money online"


def test_normalize_later_span_wins_on_overlap() -> None:
    text = "alpha beta gamma"
    first = HighlightSpan(0, 16, "#ff0000")
    second = HighlightSpan(6, 10, "#00ff00")
    result = normalize_highlight_spans(text, [first, second])

    assert result == [
        HighlightSpan(0, 5, "#ff0000"),
        HighlightSpan(6, 10, "#00ff00"),
        HighlightSpan(11, 16, "#ff0000"),
    ]
    for a, b in zip(result, result[1:]):
        assert a.end <= b.start


def test_normalize_is_idempotent() -> None:
    text = "the quick brown fox jumps"
    spans = [HighlightSpan(2, 7, "#ff0000"), HighlightSpan(12, 22, "#0000ff")]
    once = normalize_highlight_spans(text, spans)
    assert normalize_highlight_spans(text, once) == once


def test_inject_markers_uses_six_digit_hex() -> None:
    text = "be bold today"
    marked = inject_highlight_markers(text, [HighlightSpan(3, 7, "lime"), HighlightSpan(8, 13, "#abc")])
    assert marked == f"be {{{{{HIGHLIGHT_COLORS['lime']}}}}}bold{{{{/}}}} {{{{#aabbcc}}}}today{{{{/}}}}"
    assert strip_highlight_markers(marked) == text


def test_inject_markers_skips_covered_part_of_overlap() -> None:
    marked = inject_highlight_markers("abcdef", [HighlightSpan(0, 4, "#111111"), HighlightSpan(2, 6, "#222222")])
    assert marked == "{{#111111}}abcd{{/}}{{#222222}}ef{{/}}"
