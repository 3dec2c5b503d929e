# quire/core/Tokenizer.py
"""Tokenizer Module for the quire editing core
=============================================
This module classifies a single line of source text into styled segments.
It is a lexical, best-effort highlighter: every line is scanned on its own and
the only state carried between lines is the bracket nesting depth, which the
caller threads from one line into the next.

Key Features:
-------------
- A closed set of supported languages (`Language`) with static keyword and
  comment-marker tables.
- `lex_line()` produces `(text, TokenKind)` pairs that cover the line exactly
  once; `highlight_line()` maps them onto a `Palette` and the 3-color bracket
  cycle supplied by the theme.
- Matched brackets always share one color: opening brackets use the current
  depth and then increment, closing brackets decrement first.
- Dedicated scanners replace the generic scan for Markdown, HTML/XML and plain
  text.
- `language_for_path()` resolves a language from a file name, falling back to
  Pygments lexer detection for names the extension table does not cover.

Known limitations:
------------------
Block comments are not tracked across lines. For CSS/PHP a line whose trimmed
text starts with ``*`` is treated as the middle of a block comment.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Sequence, Union

from pygments.lexers import get_lexer_for_filename, guess_lexer
from pygments.util import ClassNotFound


logger = logging.getLogger(__name__)


class Language(Enum):
    """Languages the tokenizer knows how to scan."""

    PLAIN = "plain"
    RUST = "rust"
    PYTHON = "python"
    JSTS = "jsts"
    GO = "go"
    PHP = "php"
    CSS = "css"
    HTML_XML = "html_xml"
    SHELL = "shell"
    JSON = "json"
    MARKDOWN = "markdown"


class TokenKind(Enum):
    """Lexical class assigned to each scanned segment."""

    DEFAULT = "default"
    KEYWORD = "keyword"
    STRING = "string"
    NUMBER = "number"
    COMMENT = "comment"
    HEADING = "heading"
    TAG = "tag"
    ATTRIBUTE = "attribute"
    OPEN_BRACKET = "open_bracket"
    CLOSE_BRACKET = "close_bracket"


@dataclass(frozen=True)
class Palette:
    """Style values for each token kind.

    The values are opaque to the tokenizer (curses attributes, xterm indices,
    hex strings...); they are copied verbatim into the output segments.
    """

    default: Any = 0
    keyword: Any = 0
    string: Any = 0
    number: Any = 0
    comment: Any = 0
    heading: Any = 0
    tag: Any = 0
    attribute: Any = 0

    def style_for(self, kind: TokenKind) -> Any:
        """Returns the style for a non-bracket token kind."""
        return getattr(self, kind.value, self.default)


@dataclass(frozen=True)
class CommentMarkers:
    """Comment syntax for one language."""

    line_prefix: Optional[str] = None
    block_delims: Optional[tuple[str, str]] = None


# A styled segment: (text, style). A line is a list of them.
Segment = tuple[str, Any]

OPEN_BRACKETS = frozenset("{([")
CLOSE_BRACKETS = frozenset("})]")
_QUOTES = frozenset("\"'")
_NUMBER_TAIL = frozenset("_.")

_NO_COMMENTS = CommentMarkers()
_SLASH_SLASH = CommentMarkers("//")
_SLASH_STAR = CommentMarkers(None, ("/*", "*/"))
_HASH = CommentMarkers("#")

# C-family languages only know "//"; "/*" opens a comment in PHP and CSS alone.
COMMENT_MARKERS: dict[Language, CommentMarkers] = {
    Language.RUST: _SLASH_SLASH,
    Language.JSTS: _SLASH_SLASH,
    Language.GO: _SLASH_SLASH,
    Language.PHP: _SLASH_STAR,
    Language.CSS: _SLASH_STAR,
    Language.PYTHON: _HASH,
    Language.SHELL: _HASH,
}

# Languages where a line starting with "*" is taken as a block-comment body.
_BLOCK_CONTINUATION_LANGUAGES = frozenset({Language.PHP, Language.CSS})

KEYWORDS: dict[Language, frozenset[str]] = {
    Language.RUST: frozenset({
        "fn", "let", "mut", "impl", "trait", "struct", "enum", "match", "if", "else",
        "for", "while", "loop", "pub", "use", "mod", "crate", "self", "super", "return",
        "async", "await", "move", "const", "static", "where", "in", "break", "continue",
        "type", "dyn",
    }),
    Language.PYTHON: frozenset({
        "def", "class", "if", "elif", "else", "for", "while", "try", "except", "return",
        "import", "from", "as", "with", "async", "await", "yield", "lambda", "pass",
        "None", "True", "False",
    }),
    Language.JSTS: frozenset({
        "function", "const", "let", "var", "class", "if", "else", "for", "while",
        "return", "import", "from", "export", "default", "async", "await", "try",
        "catch", "switch", "case", "break", "continue", "interface", "type", "extends",
        "implements",
    }),
    Language.GO: frozenset({
        "package", "import", "func", "var", "const", "type", "struct", "interface",
        "map", "chan", "go", "defer", "select", "if", "else", "switch", "case",
        "default", "for", "range", "return", "break", "continue", "fallthrough",
    }),
    Language.PHP: frozenset({
        "function", "class", "interface", "trait", "public", "private", "protected",
        "static", "if", "else", "elseif", "switch", "case", "default", "for", "foreach",
        "while", "do", "return", "new", "use", "namespace", "try", "catch", "finally",
        "fn",
    }),
    # "@media" and friends can never match: "@" is not an identifier character.
    Language.CSS: frozenset({
        "@media", "@supports", "@keyframes", "display", "position", "color",
        "background", "border", "margin", "padding", "width", "height", "font", "grid",
        "flex",
    }),
    Language.SHELL: frozenset({
        "if", "then", "else", "fi", "for", "do", "done", "while", "case", "esac",
        "function", "export", "local",
    }),
}

EXTENSIONS: dict[str, Language] = {
    "rs": Language.RUST,
    "py": Language.PYTHON, "pyi": Language.PYTHON,
    **dict.fromkeys(("js", "jsx", "ts", "tsx", "mjs", "cjs", "mts", "cts"), Language.JSTS),
    "go": Language.GO,
    "php": Language.PHP, "phtml": Language.PHP,
    **dict.fromkeys(("css", "scss", "sass", "less"), Language.CSS),
    **dict.fromkeys(
        ("html", "htm", "xml", "svg", "xhtml", "vue", "svelte", "astro", "jsp", "erb",
         "hbs", "ejs"),
        Language.HTML_XML,
    ),
    **dict.fromkeys(("sh", "bash", "zsh", "fish", "ksh"), Language.SHELL),
    **dict.fromkeys(("json", "jsonc", "toml", "yaml", "yml"), Language.JSON),
    "md": Language.MARKDOWN, "markdown": Language.MARKDOWN,
}

# Pygments lexer aliases that map onto one of our languages.
PYGMENTS_ALIASES: dict[str, Language] = {
    "rust": Language.RUST,
    "python": Language.PYTHON, "python3": Language.PYTHON, "py": Language.PYTHON,
    "javascript": Language.JSTS, "js": Language.JSTS,
    "typescript": Language.JSTS, "ts": Language.JSTS,
    "go": Language.GO, "golang": Language.GO,
    "php": Language.PHP,
    "css": Language.CSS, "scss": Language.CSS, "sass": Language.CSS, "less": Language.CSS,
    "html": Language.HTML_XML, "xml": Language.HTML_XML,
    "bash": Language.SHELL, "sh": Language.SHELL, "zsh": Language.SHELL,
    "shell": Language.SHELL,
    "json": Language.JSON, "toml": Language.JSON, "yaml": Language.JSON,
    "markdown": Language.MARKDOWN, "md": Language.MARKDOWN,
}


def is_ident_char(ch: str) -> bool:
    """True for ASCII letters, ASCII digits and underscore."""
    return ch.isascii() and (ch.isalnum() or ch == "_")


def _is_ascii_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


# ---------------------------------------------------------------------------
# Language detection
# ---------------------------------------------------------------------------
def _language_from_lexer(lexer: Any) -> Optional[Language]:
    for alias in getattr(lexer, "aliases", []):
        language = PYGMENTS_ALIASES.get(alias.lower())
        if language is not None:
            return language
    return None


def language_for_path(
    path: Union[str, Path, None], content: Optional[str] = None
) -> Language:
    """Resolves the language for a file.

    Priority: extension table > Pygments lexer by filename > Pygments guess
    from a shebang line in `content` > `Language.PLAIN`.
    """
    if path is None:
        return Language.PLAIN
    path = Path(path)
    ext = path.suffix.lower().lstrip(".")
    if ext in EXTENSIONS:
        return EXTENSIONS[ext]

    try:
        lexer = get_lexer_for_filename(path.name)
        language = _language_from_lexer(lexer)
        if language is not None:
            logger.debug(f"Pygments: Detected '{lexer.name}' for '{path.name}'.")
            return language
    except ClassNotFound:
        logger.debug(f"Pygments: No lexer for filename '{path.name}'.")

    if content and content.startswith("#!"):
        try:
            lexer = guess_lexer(content[:10000])
            language = _language_from_lexer(lexer)
            if language is not None:
                logger.debug(f"Pygments: Guessed '{lexer.name}' from shebang.")
                return language
        except ClassNotFound:
            logger.debug("Pygments: Content guess failed.")

    return Language.PLAIN


# ---------------------------------------------------------------------------
# Scanners
# ---------------------------------------------------------------------------
def _string_end(line: str, start: int, *, escapes: bool = True) -> int:
    """Index just past the string literal opening at `start` (same line only)."""
    quote = line[start]
    n = len(line)
    j = start + 1
    while j < n:
        c = line[j]
        j += 1
        if escapes and c == "\\" and j < n:
            j += 1
            continue
        if c == quote:
            break
    return j


def _lex_code(line: str, language: Language) -> list[tuple[str, TokenKind]]:
    """Generic scan shared by all programming languages."""
    if language in _BLOCK_CONTINUATION_LANGUAGES and line.lstrip().startswith("*"):
        return [(line, TokenKind.COMMENT)]

    markers = COMMENT_MARKERS.get(language, _NO_COMMENTS)
    keywords = KEYWORDS.get(language, frozenset())
    tokens: list[tuple[str, TokenKind]] = []
    n = len(line)
    i = 0
    while i < n:
        if markers.line_prefix and line.startswith(markers.line_prefix, i):
            tokens.append((line[i:], TokenKind.COMMENT))
            break
        if markers.block_delims and line.startswith(markers.block_delims[0], i):
            opener, closer = markers.block_delims
            close_at = line.find(closer, i + len(opener))
            if close_at == -1:
                tokens.append((line[i:], TokenKind.COMMENT))
                break
            end = close_at + len(closer)
            tokens.append((line[i:end], TokenKind.COMMENT))
            i = end
            continue

        ch = line[i]
        if ch in _QUOTES:
            end = _string_end(line, i)
            tokens.append((line[i:end], TokenKind.STRING))
            i = end
            continue
        if _is_ascii_digit(ch):
            j = i + 1
            while j < n and (_is_ascii_digit(line[j]) or line[j] in _NUMBER_TAIL):
                j += 1
            tokens.append((line[i:j], TokenKind.NUMBER))
            i = j
            continue
        if is_ident_char(ch):
            j = i + 1
            while j < n and is_ident_char(line[j]):
                j += 1
            word = line[i:j]
            kind = TokenKind.KEYWORD if word in keywords else TokenKind.DEFAULT
            tokens.append((word, kind))
            i = j
            continue

        if ch in OPEN_BRACKETS:
            tokens.append((ch, TokenKind.OPEN_BRACKET))
        elif ch in CLOSE_BRACKETS:
            tokens.append((ch, TokenKind.CLOSE_BRACKET))
        else:
            tokens.append((ch, TokenKind.DEFAULT))
        i += 1
    return tokens


def _lex_tag(tag: str) -> list[tuple[str, TokenKind]]:
    """Splits one `<...>` region into tag name, attributes and values.

    Whitespace is kept as default-styled segments so the output still covers
    the input exactly.
    """
    tokens: list[tuple[str, TokenKind]] = []
    close = ""
    body = tag
    if body.endswith("/>"):
        body, close = body[:-2], "/>"
    elif body.endswith(">"):
        body, close = body[:-1], ">"

    n = len(body)
    i = 1
    while i < n and not body[i].isspace():
        i += 1
    tokens.append((body[:i], TokenKind.TAG))

    while i < n:
        ch = body[i]
        if ch.isspace():
            j = i + 1
            while j < n and body[j].isspace():
                j += 1
            tokens.append((body[i:j], TokenKind.DEFAULT))
            i = j
        elif ch in _QUOTES:
            end = _string_end(body, i, escapes=False)
            tokens.append((body[i:end], TokenKind.STRING))
            i = end
        else:
            j = i
            while j < n and not body[j].isspace() and body[j] != "=":
                j += 1
            if j > i:
                tokens.append((body[i:j], TokenKind.ATTRIBUTE))
            if j < n and body[j] == "=":
                tokens.append(("=", TokenKind.DEFAULT))
                j += 1
                if j < n and body[j] in _QUOTES:
                    end = _string_end(body, j, escapes=False)
                    tokens.append((body[j:end], TokenKind.STRING))
                    j = end
                else:
                    k = j
                    while k < n and not body[k].isspace():
                        k += 1
                    if k > j:
                        tokens.append((body[j:k], TokenKind.DEFAULT))
                    j = k
            i = j

    if close:
        tokens.append((close, TokenKind.TAG))
    return tokens


def _lex_markup(line: str) -> list[tuple[str, TokenKind]]:
    """HTML/XML scan: comments, tag regions and quoted text."""
    tokens: list[tuple[str, TokenKind]] = []
    n = len(line)
    i = 0
    while i < n:
        if line.startswith("<!--", i):
            # No search for "-->": the rest of the line is comment.
            tokens.append((line[i:], TokenKind.COMMENT))
            break
        ch = line[i]
        if ch == "<":
            end = line.find(">", i + 1)
            end = n if end == -1 else end + 1
            tokens.extend(_lex_tag(line[i:end]))
            i = end
            continue
        if ch in _QUOTES:
            end = _string_end(line, i, escapes=False)
            tokens.append((line[i:end], TokenKind.STRING))
            i = end
            continue
        tokens.append((ch, TokenKind.DEFAULT))
        i += 1
    return tokens


@functools.lru_cache(maxsize=4096)
def _lex_cached(line: str, language: Language) -> tuple[tuple[str, TokenKind], ...]:
    if language is Language.PLAIN:
        return ((line, TokenKind.DEFAULT),)
    if language is Language.MARKDOWN:
        kind = TokenKind.HEADING if line.startswith("#") else TokenKind.DEFAULT
        return ((line, kind),)
    if language is Language.HTML_XML:
        return tuple(_lex_markup(line))
    return tuple(_lex_code(line, language))


def lex_line(line: str, language: Language) -> list[tuple[str, TokenKind]]:
    """Classifies `line` into `(text, TokenKind)` pairs.

    The concatenated texts always equal `line`. An empty line yields no
    segments.
    """
    if not line:
        return []
    return list(_lex_cached(line, language))


def highlight_line(
    line: str,
    language: Language,
    palette: Palette,
    depth: int,
    bracket_colors: Sequence[Any],
) -> tuple[list[Segment], int]:
    """Styles one line and threads the bracket depth through it.

    Args:
        line: The raw line text, without a line terminator.
        language: Language used to pick the scanner and tables.
        palette: Styles for non-bracket tokens.
        depth: Bracket nesting depth entering the line.
        bracket_colors: Exactly three styles cycled by depth.

    Returns:
        A tuple `(segments, depth_out)` where `segments` is a list of
        `(text, style)` pairs covering the line once and `depth_out` is the
        nesting depth leaving the line.
    """
    if len(bracket_colors) != 3:
        raise ValueError(f"bracket_colors must hold 3 entries, got {len(bracket_colors)}")

    segments: list[Segment] = []
    current = depth
    for text, kind in lex_line(line, language):
        if kind is TokenKind.OPEN_BRACKET:
            segments.append((text, bracket_colors[current % 3]))
            current += 1
        elif kind is TokenKind.CLOSE_BRACKET:
            current = max(current - 1, 0)
            segments.append((text, bracket_colors[current % 3]))
        else:
            segments.append((text, palette.style_for(kind)))
    return segments, current


def bracket_transition(line: str, language: Language, depth: int) -> int:
    """Returns the depth leaving `line` given the depth entering it."""
    current = depth
    for _text, kind in lex_line(line, language):
        if kind is TokenKind.OPEN_BRACKET:
            current += 1
        elif kind is TokenKind.CLOSE_BRACKET:
            current = max(current - 1, 0)
    return current
