# tests/test_core/test_tokenizer.py
"""Tokenizer Tests
==================

Unit tests for `quire.core.Tokenizer`: the per-line classification scan,
bracket coloring and depth threading, the Markdown/HTML/plain special forms,
and language detection from file names.
"""

import pytest

from quire.core.Tokenizer import (
    Language,
    TokenKind,
    bracket_transition,
    highlight_line,
    language_for_path,
    lex_line,
)


def kinds(line: str, language: Language) -> list[tuple[str, TokenKind]]:
    return lex_line(line, language)


# --- Bracket coloring ---
def test_matched_brackets_share_one_color(palette, bracket_colors) -> None:
    """`{ ( ) }`: braces share one color, parentheses share a different one."""
    segments, depth_out = highlight_line("{ ( ) }", Language.RUST, palette, 0, bracket_colors)

    assert segments == [
        ("{", "b0"),
        (" ", "default"),
        ("(", "b1"),
        (" ", "default"),
        (")", "b1"),
        (" ", "default"),
        ("}", "b0"),
    ]
    assert depth_out == 0


def test_incoming_depth_selects_color(palette, bracket_colors) -> None:
    segments, depth_out = highlight_line("}", Language.RUST, palette, 3, bracket_colors)
    # Closing bracket decrements first: depth 2 selects the third color.
    assert segments == [("}", "b2")]
    assert depth_out == 2


def test_unmatched_closers_never_go_below_zero(palette, bracket_colors) -> None:
    segments, depth_out = highlight_line(")) (", Language.GO, palette, 0, bracket_colors)
    assert segments[0] == (")", "b0")
    assert segments[1] == (")", "b0")
    assert segments[-1] == ("(", "b0")
    assert depth_out == 1


def test_highlight_requires_three_bracket_colors(palette) -> None:
    with pytest.raises(ValueError):
        highlight_line("{}", Language.RUST, palette, 0, ("a", "b"))


# --- Special forms ---
def test_markdown_heading_is_one_span(palette, bracket_colors) -> None:
    segments, depth_out = highlight_line("# Title", Language.MARKDOWN, palette, 0, bracket_colors)
    assert segments == [("# Title", "heading")]
    assert depth_out == 0


def test_markdown_body_line_is_one_default_span() -> None:
    assert kinds("some *text* (x)", Language.MARKDOWN) == [
        ("some *text* (x)", TokenKind.DEFAULT)
    ]


def test_html_comment_swallows_rest_of_line(palette, bracket_colors) -> None:
    segments, _ = highlight_line("<!-- a --> rest", Language.HTML_XML, palette, 0, bracket_colors)
    assert segments == [("<!-- a --> rest", "comment")]


def test_html_tag_attributes_and_values() -> None:
    line = '<a href="x">link</a>'
    tokens = kinds(line, Language.HTML_XML)

    assert "".join(text for text, _ in tokens) == line
    assert tokens[:6] == [
        ("<a", TokenKind.TAG),
        (" ", TokenKind.DEFAULT),
        ("href", TokenKind.ATTRIBUTE),
        ("=", TokenKind.DEFAULT),
        ('"x"', TokenKind.STRING),
        (">", TokenKind.TAG),
    ]
    assert tokens[-2:] == [("</a", TokenKind.TAG), (">", TokenKind.TAG)]


def test_html_self_closing_tag() -> None:
    tokens = kinds("<br/>", Language.HTML_XML)
    assert tokens == [("<br", TokenKind.TAG), ("/>", TokenKind.TAG)]


def test_plain_language_is_not_scanned(palette, bracket_colors) -> None:
    segments, depth_out = highlight_line("fn main() {", Language.PLAIN, palette, 0, bracket_colors)
    assert segments == [("fn main() {", "default")]
    assert depth_out == 0


def test_empty_line_has_no_segments(palette, bracket_colors) -> None:
    assert highlight_line("", Language.RUST, palette, 2, bracket_colors) == ([], 2)


# --- Generic scan ---
def test_keywords_identifiers_and_numbers() -> None:
    assert kinds("let x = 42;", Language.RUST) == [
        ("let", TokenKind.KEYWORD),
        (" ", TokenKind.DEFAULT),
        ("x", TokenKind.DEFAULT),
        (" ", TokenKind.DEFAULT),
        ("=", TokenKind.DEFAULT),
        (" ", TokenKind.DEFAULT),
        ("42", TokenKind.NUMBER),
        (";", TokenKind.DEFAULT),
    ]


def test_keyword_table_is_per_language() -> None:
    assert kinds("def", Language.PYTHON) == [("def", TokenKind.KEYWORD)]
    assert kinds("def", Language.RUST) == [("def", TokenKind.DEFAULT)]


def test_number_run_includes_underscores_and_dots() -> None:
    assert kinds("1_000.5x", Language.PYTHON) == [
        ("1_000.5", TokenKind.NUMBER),
        ("x", TokenKind.DEFAULT),
    ]


def test_line_comment_runs_to_end_and_hides_brackets() -> None:
    tokens = kinds("let a = 1; // note {", Language.RUST)
    assert tokens[-1] == ("// note {", TokenKind.COMMENT)
    assert bracket_transition("let a = 1; // note {", Language.RUST, 0) == 0


def test_block_comment_closed_on_same_line_resumes_scan() -> None:
    assert kinds("x /* c */ y", Language.CSS) == [
        ("x", TokenKind.DEFAULT),
        (" ", TokenKind.DEFAULT),
        ("/* c */", TokenKind.COMMENT),
        (" ", TokenKind.DEFAULT),
        ("y", TokenKind.DEFAULT),
    ]


def test_unclosed_block_comment_runs_to_end() -> None:
    tokens = kinds("a /* open {", Language.PHP)
    assert tokens[-1] == ("/* open {", TokenKind.COMMENT)
    assert bracket_transition("a /* open {", Language.PHP, 0) == 0


@pytest.mark.parametrize("language", [Language.RUST, Language.JSTS, Language.GO])
def test_slash_star_is_not_a_comment_in_c_family(language) -> None:
    tokens = kinds("a /* {", language)
    assert TokenKind.COMMENT not in {kind for _text, kind in tokens}
    assert bracket_transition("a /* {", language, 0) == 1


def test_block_comment_continuation_heuristic() -> None:
    assert kinds("   * inside a comment", Language.CSS) == [
        ("   * inside a comment", TokenKind.COMMENT)
    ]
    assert kinds("*/ $x = 1;", Language.PHP) == [("*/ $x = 1;", TokenKind.COMMENT)]
    # Only CSS and PHP use the heuristic.
    assert kinds(" * x", Language.RUST)[1] == ("*", TokenKind.DEFAULT)


def test_strings_honor_escapes_and_both_quotes() -> None:
    line = 's = "a\\"b" + \'c\''
    strings = [text for text, kind in kinds(line, Language.PYTHON) if kind is TokenKind.STRING]
    assert strings == ['"a\\"b"', "'c'"]


def test_unterminated_string_ends_at_line_end() -> None:
    assert kinds('"abc (', Language.JSTS) == [('"abc (', TokenKind.STRING)]


def test_non_ascii_identifier_characters_are_single_defaults() -> None:
    tokens = kinds("é1", Language.GO)
    assert tokens == [("é", TokenKind.DEFAULT), ("1", TokenKind.NUMBER)]


@pytest.mark.parametrize(
    "line, language",
    [
        ("fn main() { println!(\"hi {}\", x); } // done", Language.RUST),
        ("  <div class='a' id=main>text<!-- c", Language.HTML_XML),
        ("if [ \"$x\" ]; then echo 'y'; fi # end", Language.SHELL),
        ("{\"key\": [1, 2.5, \"v\"]}", Language.JSON),
        ("@media (max-width: 10px) { a { color: red; } }", Language.CSS),
        ("<?php /* a */ $x = 'b'; ?>", Language.PHP),
    ],
)
def test_segments_cover_the_line_exactly(line, language, palette, bracket_colors) -> None:
    segments, _ = highlight_line(line, language, palette, 0, bracket_colors)
    assert "".join(text for text, _style in segments) == line
    assert all(text for text, _style in segments)


def test_lex_line_returns_a_fresh_list() -> None:
    first = lex_line("a(b)", Language.GO)
    first.append(("junk", TokenKind.DEFAULT))
    assert lex_line("a(b)", Language.GO)[-1] == (")", TokenKind.CLOSE_BRACKET)


# --- Language detection ---
@pytest.mark.parametrize(
    "path, expected",
    [
        ("src/main.rs", Language.RUST),
        ("MAIN.RS", Language.RUST),
        ("app.test.tsx", Language.JSTS),
        ("style.scss", Language.CSS),
        ("index.HTML", Language.HTML_XML),
        ("notes.md", Language.MARKDOWN),
        ("Cargo.toml", Language.JSON),
        ("run.sh", Language.SHELL),
    ],
)
def test_language_from_extension_table(path, expected) -> None:
    assert language_for_path(path) is expected


def test_language_falls_back_to_pygments_filename_lookup() -> None:
    assert language_for_path("tool.pyw") is Language.PYTHON
    assert language_for_path("SConstruct") is Language.PYTHON


def test_language_for_unknown_names_is_plain() -> None:
    assert language_for_path("Makefile") is Language.PLAIN
    assert language_for_path("README") is Language.PLAIN
    assert language_for_path(None) is Language.PLAIN


def test_language_guessed_from_shebang() -> None:
    content = "#!/usr/bin/env python3\nprint('hi')\n"
    assert language_for_path("deploy", content) is Language.PYTHON
