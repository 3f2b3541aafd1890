"""Nord lexer — scans source text into a stream of tokens."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Iterator

from nord.errors import LexerError


# ---------------------------------------------------------------------------
# Token types
# ---------------------------------------------------------------------------

class TokenType(Enum):
    # Literals
    IDENTIFIER = auto()
    INTEGER = auto()
    BOOLEAN = auto()
    STRING = auto()

    # Keywords
    LET = auto()
    FN = auto()
    IF = auto()
    THEN = auto()
    ELSE = auto()
    BLOCK = auto()
    CONTINUE = auto()
    BREAK = auto()
    RETURN = auto()
    END = auto()

    # Punctuation
    DOUBLE_COLON = auto()  # ::
    COLON = auto()         # :
    ARROW = auto()         # ->
    FAT_ARROW = auto()     # =>
    AT = auto()            # @
    HASH = auto()          # #
    DOLLAR = auto()        # $
    BANG = auto()          # !
    DOT = auto()           # .
    COMMA = auto()         # ,
    LPAREN = auto()        # (
    RPAREN = auto()        # )
    LBRACE = auto()        # {
    RBRACE = auto()        # }
    LBRACKET = auto()      # [
    RBRACKET = auto()      # ]
    EQUALS = auto()        # =
    SEMICOLON = auto()     # ;

    # Operators
    PLUS = auto()          # +
    MINUS = auto()         # -
    STAR = auto()          # *
    SLASH = auto()         # /
    PERCENT = auto()       # %
    DOUBLE_EQUALS = auto() # ==
    NOT_EQUALS = auto()    # !=
    LT = auto()            # <
    LTE = auto()           # <=
    GT = auto()            # >
    GTE = auto()           # >=
    AND_AND = auto()       # &&
    OR_OR = auto()         # ||

    EOF = auto()


# ---------------------------------------------------------------------------
# Lookup tables
# ---------------------------------------------------------------------------

KEYWORDS: dict[str, TokenType] = {
    "let": TokenType.LET,
    "fn": TokenType.FN,
    "if": TokenType.IF,
    "then": TokenType.THEN,
    "else": TokenType.ELSE,
    "block": TokenType.BLOCK,
    "continue": TokenType.CONTINUE,
    "break": TokenType.BREAK,
    "return": TokenType.RETURN,
    "end": TokenType.END,
}

BOOLEANS: dict[str, bool] = {"true": True, "false": False}

# Two-character operators are matched before the single-character table.
DOUBLE_CHAR_TOKENS: dict[str, TokenType] = {
    "::": TokenType.DOUBLE_COLON,
    "->": TokenType.ARROW,
    "=>": TokenType.FAT_ARROW,
    "==": TokenType.DOUBLE_EQUALS,
    "!=": TokenType.NOT_EQUALS,
    "<=": TokenType.LTE,
    ">=": TokenType.GTE,
    "&&": TokenType.AND_AND,
    "||": TokenType.OR_OR,
}

SINGLE_CHAR_TOKENS: dict[str, TokenType] = {
    ":": TokenType.COLON,
    "@": TokenType.AT,
    "#": TokenType.HASH,
    "$": TokenType.DOLLAR,
    "!": TokenType.BANG,
    ".": TokenType.DOT,
    ",": TokenType.COMMA,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    "=": TokenType.EQUALS,
    ";": TokenType.SEMICOLON,
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.STAR,
    "/": TokenType.SLASH,
    "%": TokenType.PERCENT,
    "<": TokenType.LT,
    ">": TokenType.GT,
}

ESCAPES: dict[str, str] = {
    "\\": "\\",
    '"': '"',
    "n": "\n",
    "t": "\t",
    "r": "\r",
}

WHITESPACE = " \t\n\r\f"

DIGITS = "0123456789"

INT64_MAX = 2**63 - 1


# ---------------------------------------------------------------------------
# Token dataclass
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Token:
    """One lexical unit.

    ``value`` holds the payload: the name for identifiers, an ``int`` for
    integers, a ``bool`` for booleans, the decoded text for strings and the
    lexeme for everything else. ``start``/``end`` are character offsets.
    """
    type: TokenType
    value: Any
    line: int
    column: int
    start: int = 0
    end: int = 0

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, L{self.line}:{self.column})"


# ---------------------------------------------------------------------------
# Lexer
# ---------------------------------------------------------------------------

class Lexer:
    """Scans Nord source text and produces Token objects on demand."""

    def __init__(self, source: str) -> None:
        self.source = source
        self.pos: int = 0
        self.line: int = 1
        self.col: int = 1

    # -- Character-level helpers -------------------------------------------

    def _current(self) -> str:
        """Return the character at the current position, or '' at EOF."""
        if self.pos < len(self.source):
            return self.source[self.pos]
        return ""

    def peek(self) -> str:
        """Look ahead one character without consuming it."""
        next_pos = self.pos + 1
        if next_pos < len(self.source):
            return self.source[next_pos]
        return ""

    def advance(self) -> str:
        """Consume and return the current character, advancing position."""
        ch = self._current()
        self.pos += 1
        if ch == "\n":
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        return ch

    # -- Main entry points -------------------------------------------------

    def tokenize(self) -> list[Token]:
        """Scan the entire source and return a list of tokens ending with EOF."""
        return list(self.tokens())

    def tokens(self) -> Iterator[Token]:
        """Yield tokens lazily, ending with EOF.

        A ``LexerError`` is raised at the point the bad input is reached, so
        a parser pulling from this generator sees every token before it.
        """
        while self.pos < len(self.source):
            ch = self._current()

            if ch in WHITESPACE:
                self.advance()
                continue

            if ch == '"':
                yield self._read_string()
                continue

            if ch in DIGITS:
                yield self._read_integer()
                continue

            if ch.isascii() and (ch.isalpha() or ch == "_"):
                yield self._read_identifier()
                continue

            pair = ch + self.peek()
            if pair in DOUBLE_CHAR_TOKENS:
                yield self._read_symbol(DOUBLE_CHAR_TOKENS[pair], 2)
                continue

            if ch in SINGLE_CHAR_TOKENS:
                yield self._read_symbol(SINGLE_CHAR_TOKENS[ch], 1)
                continue

            raise LexerError(
                f"Unexpected character: {ch!r}",
                self.line,
                self.col,
                start=self.pos,
                end=self.pos + 1,
                text=ch,
            )

        yield Token(TokenType.EOF, "", self.line, self.col, self.pos, self.pos)

    # -- Token readers -----------------------------------------------------

    def _read_symbol(self, token_type: TokenType, length: int) -> Token:
        start, line, col = self.pos, self.line, self.col
        for _ in range(length):
            self.advance()
        return Token(token_type, self.source[start:self.pos], line, col, start, self.pos)

    def _read_string(self) -> Token:
        """Read a double-quoted string, decoding escape sequences."""
        start = self.pos
        start_line = self.line
        start_col = self.col
        self.advance()  # consume opening "

        value_chars: list[str] = []

        while self.pos < len(self.source):
            ch = self._current()
            if ch == '"':
                self.advance()  # consume closing "
                return Token(
                    TokenType.STRING, "".join(value_chars), start_line, start_col, start, self.pos
                )
            if ch == "\n":
                break
            if ch == "\\":
                esc_line, esc_col, esc_pos = self.line, self.col, self.pos
                self.advance()
                code = self._current()
                if code not in ESCAPES:
                    raise LexerError(
                        f"Invalid escape sequence: \\{code}",
                        esc_line,
                        esc_col,
                        start=esc_pos,
                        end=min(esc_pos + 2, len(self.source)),
                        text=self.source[esc_pos:esc_pos + 2],
                    )
                value_chars.append(ESCAPES[code])
                self.advance()
                continue
            value_chars.append(ch)
            self.advance()

        # Hit a newline or end of source before the closing quote
        raise LexerError(
            "Unterminated string literal",
            start_line,
            start_col,
            start=start,
            end=self.pos,
            text=self.source[start:self.pos],
        )

    def _read_integer(self) -> Token:
        """Read a decimal integer literal: [0-9]+"""
        start = self.pos
        start_line = self.line
        start_col = self.col

        while self.pos < len(self.source) and self._current() in DIGITS:
            self.advance()

        text = self.source[start:self.pos]
        value = int(text)
        if value > INT64_MAX:
            raise LexerError(
                f"Integer literal out of range: {text}",
                start_line,
                start_col,
                start=start,
                end=self.pos,
                text=text,
            )
        return Token(TokenType.INTEGER, value, start_line, start_col, start, self.pos)

    def _read_identifier(self) -> Token:
        """Read an identifier, keyword or boolean: [_a-zA-Z][_0-9a-zA-Z]*"""
        start = self.pos
        start_line = self.line
        start_col = self.col

        while self.pos < len(self.source) and (
            self._current().isascii() and (self._current().isalnum() or self._current() == "_")
        ):
            self.advance()

        word = self.source[start:self.pos]
        if word in BOOLEANS:
            return Token(TokenType.BOOLEAN, BOOLEANS[word], start_line, start_col, start, self.pos)
        token_type = KEYWORDS.get(word, TokenType.IDENTIFIER)
        return Token(token_type, word, start_line, start_col, start, self.pos)
