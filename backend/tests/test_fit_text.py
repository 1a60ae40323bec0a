"""Tests for zone word wrap."""

from types import SimpleNamespace

from slidecraft.renderer.fit_text import chars_per_line, fit_text_to_zone, shorten_text_to_zone


def zone(w=110, font_size=20, max_lines=2):
    return SimpleNamespace(w=w, font_size=font_size, max_lines=max_lines)


def test_chars_per_line_floors_and_never_hits_zero() -> None:
    assert chars_per_line(110, 20) == 10
    assert chars_per_line(5, 200) == 1


def test_words_past_last_line_are_dropped() -> None:
    text = "alpha beta gamma delta epsilon zeta eta"
    # 10 chars per line: "alpha beta" fits exactly, "gamma delta" would be 11
    assert fit_text_to_zone(text, zone()) == ["alpha beta", "gamma"]
    assert fit_text_to_zone(text, zone(max_lines=5)) == [
        "alpha beta", "gamma", "delta", "epsilon", "zeta eta",
    ]


def test_user_newlines_start_paragraphs_and_count_as_lines() -> None:
    assert fit_text_to_zone("one\n\ntwo", zone(max_lines=3)) == ["one", "", "two"]
    assert fit_text_to_zone("one\n\ntwo", zone(max_lines=2)) == ["one", ""]


def test_long_word_is_hard_broken() -> None:
    assert fit_text_to_zone("abcdefghijklmnop", zone(max_lines=3)) == ["abcdefghij", "klmnop"]


def test_highlight_token_measured_by_visible_text_and_kept_whole() -> None:
    lines = fit_text_to_zone("go {{#ff0000}}far away{{/}} now", zone(max_lines=3))
    assert lines == ["go", "{{#ff0000}}far away{{/}}", "now"]


def test_empty_text_yields_no_lines() -> None:
    assert fit_text_to_zone("", zone()) == []
    assert fit_text_to_zone("   ", zone()) == []


def test_shorten_joins_fitted_lines() -> None:
    assert shorten_text_to_zone("alpha beta gamma delta", zone()) == "alpha beta gamma"
