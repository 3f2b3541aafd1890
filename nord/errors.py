"""Nord error types with source location info."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from nord.lexer import Token


class NordError(Exception):
    def __init__(self, message: str, line: int = 0, column: int = 0):
        self.message = message
        self.line = line
        self.column = column
        super().__init__(f"Line {line}, Col {column}: {message}")


class LexerError(NordError):
    """Raised by the token source before a token could be classified."""

    def __init__(
        self,
        message: str,
        line: int = 0,
        column: int = 0,
        start: int = 0,
        end: int = 0,
        text: str = "",
    ):
        self.start = start
        self.end = end
        self.text = text
        super().__init__(message, line, column)


class ParseError(NordError):
    """Raised when the next token fits no alternative of the grammar.

    ``token`` is the offending token; at end of input it is the EOF token.
    """

    def __init__(self, message: str, token: Token | None = None):
        self.token = token
        line = token.line if token is not None else 0
        column = token.column if token is not None else 0
        super().__init__(message, line, column)


class ConfigError(NordError):
    pass


class FormatError(NordError):
    """Raised when a tree holds a node the formatter cannot render."""
