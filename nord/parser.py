"""Nord parser — recursive-descent parser producing an AST from tokens."""

from __future__ import annotations

from typing import Iterable, Iterator

from nord.lexer import Token, TokenType
from nord.errors import ParseError
from nord.ast_nodes import (
    Expr,
    Opcode,
    Num,
    Boolean,
    String,
    Identifier,
    Constant,
    IfElse,
    Let,
    Array,
    Object,
    Lambda,
    Block,
    BinaryOp,
    UnaryOp,
    Call,
    Index,
    Member,
)


# Binary tiers, loosest first.  Each tier parses its operands with the next
# one and loops while the lookahead is one of its operators.
ASSIGNMENT_OPS = {TokenType.EQUALS: Opcode.ASSIGN}
OR_OPS = {TokenType.OR_OR: Opcode.OR}
AND_OPS = {TokenType.AND_AND: Opcode.AND}
COMPARISON_OPS = {
    TokenType.DOUBLE_EQUALS: Opcode.EQUAL,
    TokenType.NOT_EQUALS: Opcode.NOT_EQUAL,
    TokenType.LT: Opcode.LESS,
    TokenType.LTE: Opcode.LESS_EQUAL,
    TokenType.GT: Opcode.GREATER,
    TokenType.GTE: Opcode.GREATER_EQUAL,
}
ADDITIVE_OPS = {
    TokenType.PLUS: Opcode.ADD,
    TokenType.MINUS: Opcode.SUB,
}
MULTIPLICATIVE_OPS = {
    TokenType.STAR: Opcode.MUL,
    TokenType.SLASH: Opcode.DIV,
    TokenType.PERCENT: Opcode.MOD,
}
UNARY_OPS = {
    TokenType.MINUS: Opcode.NEG,
    TokenType.BANG: Opcode.NOT,
}

LITERAL_TYPES = {
    TokenType.INTEGER: Num,
    TokenType.BOOLEAN: Boolean,
    TokenType.STRING: String,
}

# Tokens that can begin an expression; a bare body is empty when the
# lookahead is anything else.
EXPRESSION_START = {
    TokenType.IF,
    TokenType.LET,
    TokenType.LBRACKET,
    TokenType.HASH,
    TokenType.FN,
    TokenType.BLOCK,
    TokenType.MINUS,
    TokenType.BANG,
    TokenType.LPAREN,
    TokenType.IDENTIFIER,
    TokenType.INTEGER,
    TokenType.BOOLEAN,
    TokenType.STRING,
}


def describe(tok: Token) -> str:
    """Human-readable name of a token for error messages."""
    if tok.type == TokenType.EOF:
        return "end of input"
    return f"{tok.type.name} ({tok.value!r})"


class Parser:
    """Recursive-descent parser for the Nord language.

    Pulls tokens from any iterable (usually ``Lexer(source).tokens()``) and
    produces a single root ``Expr``.  Only the lookahead the grammar needs
    is buffered; the source is never rewound.
    """

    def __init__(self, tokens: Iterable[Token]) -> None:
        self._source: Iterator[Token] = iter(tokens)
        self._buffer: list[Token] = []
        self._last: Token | None = None
        self._exhausted: bool = False

    # -- Navigation helpers ------------------------------------------------

    def _fill(self, count: int) -> None:
        """Make sure at least *count* tokens are buffered."""
        while len(self._buffer) < count:
            if self._exhausted:
                self._buffer.append(self._eof())
                continue
            # LexerError raised by the token source propagates unchanged.
            tok = next(self._source, None)
            if tok is None:
                self._exhausted = True
                continue
            if tok.type == TokenType.EOF:
                self._exhausted = True
            self._buffer.append(tok)

    def _eof(self) -> Token:
        """Synthesise an EOF token just past the last token seen."""
        last = self._buffer[-1] if self._buffer else self._last
        if last is None:
            return Token(TokenType.EOF, "", 1, 1, 0, 0)
        if last.type == TokenType.EOF:
            return last
        return Token(
            TokenType.EOF, "", last.line, last.column + (last.end - last.start), last.end, last.end
        )

    def current(self) -> Token:
        """Return the token at the current position (EOF past the end)."""
        self._fill(1)
        return self._buffer[0]

    def advance(self) -> Token:
        """Consume and return the current token."""
        tok = self.current()
        if tok.type != TokenType.EOF:
            self._buffer.pop(0)
            self._last = tok
        return tok

    def expect(self, token_type: TokenType, what: str | None = None) -> Token:
        """Consume the current token if it matches *token_type*, else raise ParseError."""
        tok = self.current()
        if tok.type != token_type:
            raise self._unexpected(tok, what or token_type.name)
        return self.advance()

    def match(self, *types: TokenType) -> Token | None:
        """If the current token matches any of *types*, consume and return it; else None."""
        if self.current().type in types:
            return self.advance()
        return None

    def at_end(self) -> bool:
        """Check whether the current token is EOF."""
        return self.current().type == TokenType.EOF

    def _unexpected(self, tok: Token, expected: str) -> ParseError:
        if tok.type == TokenType.EOF:
            return ParseError(f"Unexpected end of input, expected {expected}", tok)
        return ParseError(f"Expected {expected} but got {describe(tok)}", tok)

    # -- Top-level ---------------------------------------------------------

    def parse(self) -> Expr:
        """Parse the full token stream into a single root expression."""
        expr = self.parse_expression()
        if not self.at_end():
            tok = self.current()
            raise ParseError(f"Unexpected token {describe(tok)} after expression", tok)
        return expr

    # -- Expression dispatch -----------------------------------------------

    def parse_expression(self) -> Expr:
        """Parse any expression form, choosing the branch from one token."""
        tok_type = self.current().type

        if tok_type == TokenType.IF:
            return self.parse_if()
        if tok_type == TokenType.LET:
            return self.parse_let()
        if tok_type == TokenType.LBRACKET:
            return self.parse_array()
        if tok_type == TokenType.HASH:
            return self.parse_object()
        if tok_type == TokenType.FN:
            return self.parse_lambda()
        if tok_type == TokenType.BLOCK:
            return self.parse_block()

        return self.parse_assignment()

    def parse_if(self) -> IfElse:
        """Parse ``if <cond> then <body> [else <body>] end``."""
        tok = self.expect(TokenType.IF)
        cond = self.parse_expression()
        self.expect(TokenType.THEN, "'then'")
        then_branch = self.parse_bare_block()

        else_branch = None
        if self.match(TokenType.ELSE):
            else_branch = self.parse_bare_block()

        self.expect(TokenType.END, "'end'")
        return IfElse(
            cond=cond,
            then_branch=then_branch,
            else_branch=else_branch,
            line=tok.line,
            col=tok.column,
        )

    def parse_let(self) -> Let:
        """Parse ``let <identifier> = <expr>``."""
        tok = self.expect(TokenType.LET)
        name_tok = self.expect(TokenType.IDENTIFIER, "identifier")
        self.expect(TokenType.EQUALS, "'='")
        value = self.parse_expression()
        return Let(name=name_tok.value, value=value, line=tok.line, col=tok.column)

    def parse_array(self) -> Array:
        """Parse ``[expr, expr, ...]``."""
        tok = self.expect(TokenType.LBRACKET)
        elements: list[Expr] = []

        if self.current().type != TokenType.RBRACKET:
            elements.append(self.parse_expression())
            while self.match(TokenType.COMMA):
                elements.append(self.parse_expression())

        self.expect(TokenType.RBRACKET, "',' or ']'")
        return Array(elements=tuple(elements), line=tok.line, col=tok.column)

    def parse_object(self) -> Object:
        """Parse ``#{ name: expr, name: expr, ... }``."""
        tok = self.expect(TokenType.HASH)
        self.expect(TokenType.LBRACE, "'{'")
        pairs: list[tuple[str, Expr]] = []

        if self.current().type != TokenType.RBRACE:
            pairs.append(self._parse_object_field())
            while self.match(TokenType.COMMA):
                pairs.append(self._parse_object_field())

        self.expect(TokenType.RBRACE, "',' or '}'")
        return Object(fields=tuple(pairs), line=tok.line, col=tok.column)

    def _parse_object_field(self) -> tuple[str, Expr]:
        key_tok = self.expect(TokenType.IDENTIFIER, "field name")
        self.expect(TokenType.COLON, "':'")
        return key_tok.value, self.parse_expression()

    def parse_lambda(self) -> Lambda:
        """Parse ``fn ( [param] ) <expr>``."""
        tok = self.expect(TokenType.FN)
        self.expect(TokenType.LPAREN, "'('")
        param = None
        param_tok = self.match(TokenType.IDENTIFIER)
        if param_tok is not None:
            param = param_tok.value
        self.expect(TokenType.RPAREN, "')'")
        body = self.parse_expression()
        return Lambda(param=param, body=body, line=tok.line, col=tok.column)

    # -- Blocks ------------------------------------------------------------

    def parse_block(self) -> Block:
        """Parse ``block <body> end``."""
        tok = self.expect(TokenType.BLOCK)
        body = self.parse_bare_block(tok)
        self.expect(TokenType.END, "'end'")
        return body

    def parse_bare_block(self, opener: Token | None = None) -> Block:
        """Parse a possibly empty ``;``-separated body with no delimiters.

        The enclosing construct owns the tokens around the body, so this
        stops at the first token that cannot continue the sequence.
        """
        tok = opener or self.current()
        return Block(body=tuple(self.parse_body()), line=tok.line, col=tok.column)

    def parse_body(self) -> list[Expr]:
        if self.current().type not in EXPRESSION_START:
            return []
        return self.parse_sequence()

    def parse_sequence(self) -> list[Expr]:
        """Parse one or more ``;``-separated expressions."""
        exprs = [self.parse_expression()]
        while self.match(TokenType.SEMICOLON):
            exprs.append(self.parse_expression())
        return exprs

    # -- Operator precedence chain -----------------------------------------

    def _parse_binary_tier(self, operators: dict[TokenType, Opcode], operand) -> Expr:
        """Parse ``operand (OP operand)*`` folding to the left."""
        left = operand()
        while self.current().type in operators:
            op_tok = self.advance()
            right = operand()
            left = BinaryOp(
                left=left,
                op=operators[op_tok.type],
                right=right,
                line=op_tok.line,
                col=op_tok.column,
            )
        return left

    def parse_assignment(self) -> Expr:
        """Parse ``=`` (loosest tier, left-associative: ``(a = b) = c``)."""
        return self._parse_binary_tier(ASSIGNMENT_OPS, self.parse_or)

    def parse_or(self) -> Expr:
        return self._parse_binary_tier(OR_OPS, self.parse_and)

    def parse_and(self) -> Expr:
        return self._parse_binary_tier(AND_OPS, self.parse_comparison)

    def parse_comparison(self) -> Expr:
        """Parse equality and relational operators, all at one tier."""
        return self._parse_binary_tier(COMPARISON_OPS, self.parse_additive)

    def parse_additive(self) -> Expr:
        return self._parse_binary_tier(ADDITIVE_OPS, self.parse_multiplicative)

    def parse_multiplicative(self) -> Expr:
        return self._parse_binary_tier(MULTIPLICATIVE_OPS, self.parse_unary)

    def parse_unary(self) -> Expr:
        """Parse prefix ``-`` and ``!``; ``- -x`` nests to the right."""
        if self.current().type in UNARY_OPS:
            op_tok = self.advance()
            operand = self.parse_unary()
            return UnaryOp(
                op=UNARY_OPS[op_tok.type],
                operand=operand,
                line=op_tok.line,
                col=op_tok.column,
            )
        return self.parse_postfix()

    def parse_postfix(self) -> Expr:
        """Parse call ``(arg?)``, index ``[i]`` and member ``.name`` chains."""
        node = self.parse_primary()

        while True:
            if self.current().type == TokenType.LPAREN:
                node = self._parse_call(node)
            elif self.current().type == TokenType.LBRACKET:
                node = self._parse_index(node)
            elif self.current().type == TokenType.DOT:
                self.advance()  # consume '.'
                field_tok = self.expect(TokenType.IDENTIFIER, "field name")
                node = Member(
                    callee=node,
                    field=field_tok.value,
                    line=field_tok.line,
                    col=field_tok.column,
                )
            else:
                break

        return node

    def _parse_call(self, callee: Expr) -> Call:
        """Parse a call with zero or one argument: ``(arg?)``."""
        lparen = self.expect(TokenType.LPAREN)
        arg = None
        if self.current().type != TokenType.RPAREN:
            arg = self.parse_expression()
        self.expect(TokenType.RPAREN, "')'")
        return Call(callee=callee, arg=arg, line=lparen.line, col=lparen.column)

    def _parse_index(self, callee: Expr) -> Index:
        lbracket = self.expect(TokenType.LBRACKET)
        index = self.parse_expression()
        self.expect(TokenType.RBRACKET, "']'")
        return Index(callee=callee, index=index, line=lbracket.line, col=lbracket.column)

    def parse_primary(self) -> Expr:
        """Parse an atom or a parenthesized expression."""
        tok = self.current()

        if tok.type in LITERAL_TYPES:
            self.advance()
            atom = LITERAL_TYPES[tok.type](value=tok.value)
            return Constant(value=atom, line=tok.line, col=tok.column)

        if tok.type == TokenType.IDENTIFIER:
            self.advance()
            return Constant(value=Identifier(name=tok.value), line=tok.line, col=tok.column)

        # Grouped expression: ( expr )
        if tok.type == TokenType.LPAREN:
            self.advance()  # consume '('
            node = self.parse_expression()
            self.expect(TokenType.RPAREN, "')'")
            return node

        raise self._unexpected(tok, "expression")
