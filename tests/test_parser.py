"""Tests for Nord parser — expression forms, precedence and failures."""

import threading

import pytest

from nord.lexer import Lexer, Token, TokenType
from nord.parser import Parser
from nord.ast_nodes import (
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
from nord.errors import LexerError, ParseError


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def parse(src: str):
    """Convenience: lex + parse source and return the root expression."""
    return Parser(Lexer(src).tokens()).parse()


def num(n: int) -> Constant:
    return Constant(Num(n))


def ident(name: str) -> Constant:
    return Constant(Identifier(name))


def binop(left, op: Opcode, right) -> BinaryOp:
    return BinaryOp(left=left, op=op, right=right)


# ---------------------------------------------------------------------------
# Atoms
# ---------------------------------------------------------------------------

class TestAtoms:
    def test_integer(self):
        assert parse("42") == num(42)

    def test_boolean(self):
        assert parse("true") == Constant(Boolean(True))
        assert parse("false") == Constant(Boolean(False))

    def test_string(self):
        assert parse('"hi there"') == Constant(String("hi there"))

    def test_identifier(self):
        assert parse("foo") == ident("foo")

    def test_parenthesized(self):
        assert parse("((7))") == num(7)

    def test_location_recorded(self):
        node = parse("\n  x")
        assert (node.line, node.col) == (2, 3)


# ---------------------------------------------------------------------------
# Precedence and associativity
# ---------------------------------------------------------------------------

class TestPrecedence:
    def test_mul_binds_tighter_than_add(self):
        assert parse("1 + 2 * 3") == binop(num(1), Opcode.ADD, binop(num(2), Opcode.MUL, num(3)))

    def test_parentheses_override(self):
        assert parse("(1 + 2) * 3") == binop(binop(num(1), Opcode.ADD, num(2)), Opcode.MUL, num(3))

    def test_sub_left_associative(self):
        assert parse("1 - 2 - 3") == binop(binop(num(1), Opcode.SUB, num(2)), Opcode.SUB, num(3))

    def test_div_mod_left_associative(self):
        assert parse("8 / 4 % 3") == binop(binop(num(8), Opcode.DIV, num(4)), Opcode.MOD, num(3))

    def test_comparisons_share_one_tier(self):
        assert parse("a < b < c") == binop(
            binop(ident("a"), Opcode.LESS, ident("b")), Opcode.LESS, ident("c")
        )
        assert parse("a == b != c") == binop(
            binop(ident("a"), Opcode.EQUAL, ident("b")), Opcode.NOT_EQUAL, ident("c")
        )

    def test_comparison_below_additive(self):
        assert parse("a + 1 >= b") == binop(
            binop(ident("a"), Opcode.ADD, num(1)), Opcode.GREATER_EQUAL, ident("b")
        )

    def test_and_binds_tighter_than_or(self):
        assert parse("a || b && c") == binop(
            ident("a"), Opcode.OR, binop(ident("b"), Opcode.AND, ident("c"))
        )

    def test_and_below_comparison(self):
        assert parse("a > 1 && b <= 2") == binop(
            binop(ident("a"), Opcode.GREATER, num(1)),
            Opcode.AND,
            binop(ident("b"), Opcode.LESS_EQUAL, num(2)),
        )

    def test_assignment_loosest(self):
        assert parse("x = a || b") == binop(
            ident("x"), Opcode.ASSIGN, binop(ident("a"), Opcode.OR, ident("b"))
        )

    def test_assignment_left_associative(self):
        assert parse("a = b = c") == binop(
            binop(ident("a"), Opcode.ASSIGN, ident("b")), Opcode.ASSIGN, ident("c")
        )

    @pytest.mark.parametrize("symbol, opcode", [
        ("==", Opcode.EQUAL),
        ("!=", Opcode.NOT_EQUAL),
        ("<", Opcode.LESS),
        ("<=", Opcode.LESS_EQUAL),
        (">", Opcode.GREATER),
        (">=", Opcode.GREATER_EQUAL),
        ("+", Opcode.ADD),
        ("-", Opcode.SUB),
        ("*", Opcode.MUL),
        ("/", Opcode.DIV),
        ("%", Opcode.MOD),
        ("&&", Opcode.AND),
        ("||", Opcode.OR),
        ("=", Opcode.ASSIGN),
    ])
    def test_every_binary_operator(self, symbol, opcode):
        assert parse(f"a {symbol} b") == binop(ident("a"), opcode, ident("b"))


class TestUnary:
    def test_double_negation(self):
        assert parse("- -5") == UnaryOp(Opcode.NEG, UnaryOp(Opcode.NEG, num(5)))

    def test_adjacent_minus_signs(self):
        assert parse("--5") == parse("- -5")

    def test_not(self):
        assert parse("!ok") == UnaryOp(Opcode.NOT, ident("ok"))

    def test_mixed_prefixes(self):
        assert parse("!-x") == UnaryOp(Opcode.NOT, UnaryOp(Opcode.NEG, ident("x")))

    def test_unary_binds_tighter_than_mul(self):
        assert parse("-a * b") == binop(UnaryOp(Opcode.NEG, ident("a")), Opcode.MUL, ident("b"))

    def test_unary_in_right_operand(self):
        assert parse("a - -b") == binop(ident("a"), Opcode.SUB, UnaryOp(Opcode.NEG, ident("b")))

    def test_postfix_binds_tighter_than_unary(self):
        assert parse("-f(1)") == UnaryOp(Opcode.NEG, Call(ident("f"), num(1)))


# ---------------------------------------------------------------------------
# Postfix chains
# ---------------------------------------------------------------------------

class TestPostfix:
    def test_call_without_argument(self):
        assert parse("f()") == Call(ident("f"), None)

    def test_call_with_argument(self):
        assert parse("f(1 + 2)") == Call(ident("f"), binop(num(1), Opcode.ADD, num(2)))

    def test_call_argument_can_be_any_expression(self):
        node = parse("map(fn(x) x)")
        assert node == Call(ident("map"), Lambda("x", ident("x")))

    def test_index(self):
        assert parse("a[0]") == Index(ident("a"), num(0))

    def test_member(self):
        assert parse("a.b") == Member(ident("a"), "b")

    def test_chained_calls(self):
        assert parse("f()()[0]") == Index(Call(Call(ident("f"), None), None), num(0))

    def test_call_index_member(self):
        assert parse("f(1)[0].x") == Member(
            Index(Call(ident("f"), num(1)), num(0)), "x"
        )

    def test_member_call_chain_left_to_right(self):
        assert parse("a.b(c).d[e]") == Index(
            Member(Call(Member(ident("a"), "b"), ident("c")), "d"), ident("e")
        )

    def test_postfix_on_parenthesized(self):
        assert parse("(fn() 1)()") == Call(Lambda(None, num(1)), None)

    def test_member_requires_identifier(self):
        with pytest.raises(ParseError, match="field name"):
            parse("a.1")

    def test_two_arguments_rejected(self):
        with pytest.raises(ParseError) as exc:
            parse("f(1, 2)")
        assert exc.value.token.type == TokenType.COMMA


# ---------------------------------------------------------------------------
# If / Let / Lambda
# ---------------------------------------------------------------------------

class TestIf:
    def test_if_without_else(self):
        assert parse("if true then 1 end") == IfElse(
            Constant(Boolean(True)), Block((num(1),)), None
        )

    def test_if_with_else(self):
        assert parse("if c then 1 else 2 end") == IfElse(
            ident("c"), Block((num(1),)), Block((num(2),))
        )

    def test_branches_are_sequences(self):
        node = parse("if c then a; b else d; e; f end")
        assert node.then_branch.body == (ident("a"), ident("b"))
        assert node.else_branch.body == (ident("d"), ident("e"), ident("f"))

    def test_empty_then(self):
        assert parse("if c then end") == IfElse(ident("c"), Block(()), None)

    def test_empty_else_kept_distinct_from_missing(self):
        node = parse("if c then 1 else end")
        assert node.else_branch == Block(())
        assert node.else_branch is not None

    def test_condition_is_full_expression(self):
        node = parse("if let x = 1 then x end")
        assert node.cond == Let("x", num(1))

    def test_nested_if(self):
        node = parse("if a then if b then 1 end else 2 end")
        assert node.then_branch.body[0] == IfElse(ident("b"), Block((num(1),)), None)
        assert node.else_branch.body == (num(2),)

    def test_missing_end(self):
        with pytest.raises(ParseError) as exc:
            parse("if true then 1")
        assert exc.value.token.type == TokenType.EOF
        assert "end of input" in exc.value.message

    def test_missing_then(self):
        with pytest.raises(ParseError, match="'then'"):
            parse("if true 1 end")

    def test_trailing_semicolon_rejected(self):
        with pytest.raises(ParseError) as exc:
            parse("if c then 1; end")
        assert exc.value.token.type == TokenType.END


class TestLet:
    def test_let(self):
        assert parse("let x = 1 + 2") == Let("x", binop(num(1), Opcode.ADD, num(2)))

    def test_let_value_is_full_expression(self):
        assert parse("let f = fn(x) x") == Let("f", Lambda("x", ident("x")))

    def test_let_value_can_assign(self):
        assert parse("let x = y = 2") == Let("x", binop(ident("y"), Opcode.ASSIGN, num(2)))

    def test_let_requires_identifier(self):
        with pytest.raises(ParseError, match="identifier"):
            parse("let 1 = 2")

    def test_let_has_no_type_annotation(self):
        with pytest.raises(ParseError):
            parse("let x: int = 2")


class TestLambda:
    def test_no_parameter(self):
        assert parse("fn() 1") == Lambda(None, num(1))

    def test_one_parameter(self):
        assert parse("fn(x) x * x") == Lambda("x", binop(ident("x"), Opcode.MUL, ident("x")))

    def test_curried(self):
        assert parse("fn(a) fn(b) a + b") == Lambda(
            "a", Lambda("b", binop(ident("a"), Opcode.ADD, ident("b")))
        )

    def test_block_body(self):
        node = parse("fn() block 1; 2 end")
        assert node.body == Block((num(1), num(2)))

    def test_two_parameters_rejected(self):
        with pytest.raises(ParseError):
            parse("fn(a, b) a")

    def test_missing_body(self):
        with pytest.raises(ParseError) as exc:
            parse("fn(x)")
        assert exc.value.token.type == TokenType.EOF


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------

class TestArray:
    def test_elements_in_order(self):
        node = parse("[1, 2, 3]")
        assert node == Array((num(1), num(2), num(3)))
        assert [e.value.value for e in node.elements] == [1, 2, 3]

    def test_duplicates_kept(self):
        assert parse("[1, 1]") == Array((num(1), num(1)))

    def test_empty(self):
        node = parse("[]")
        assert node == Array(())
        assert node.elements == ()

    def test_nested(self):
        assert parse("[[], [1]]") == Array((Array(()), Array((num(1),))))

    def test_trailing_comma_rejected(self):
        with pytest.raises(ParseError) as exc:
            parse("[1, 2,]")
        assert exc.value.token.type == TokenType.RBRACKET

    def test_unclosed(self):
        with pytest.raises(ParseError, match="end of input"):
            parse("[1, 2")

    def test_array_not_an_operand(self):
        with pytest.raises(ParseError):
            parse("1 + [2]")

    def test_parenthesized_array_is_an_operand(self):
        assert parse("([1])[0]") == Index(Array((num(1),)), num(0))


class TestObject:
    def test_fields_in_order(self):
        node = parse('#{b: 1, a: "x"}')
        assert node == Object((("b", num(1)), ("a", Constant(String("x")))))

    def test_duplicate_keys_kept(self):
        node = parse("#{a: 1, a: 2}")
        assert [name for name, _ in node.fields] == ["a", "a"]

    def test_empty(self):
        assert parse("#{}") == Object(())

    def test_hash_requires_brace(self):
        with pytest.raises(ParseError, match="'\\{'"):
            parse("#[1]")

    def test_string_key_rejected(self):
        with pytest.raises(ParseError, match="field name"):
            parse('#{"a": 1}')

    def test_trailing_comma_rejected(self):
        with pytest.raises(ParseError):
            parse("#{a: 1,}")


# ---------------------------------------------------------------------------
# Blocks
# ---------------------------------------------------------------------------

class TestBlock:
    def test_empty_block(self):
        assert parse("block end") == Block(())

    def test_single(self):
        assert parse("block 1 end") == Block((num(1),))

    def test_sequence(self):
        node = parse("block let x = 1; x + 1 end")
        assert node == Block((Let("x", num(1)), binop(ident("x"), Opcode.ADD, num(1))))

    def test_nested_blocks(self):
        assert parse("block block end end") == Block((Block(()),))

    def test_missing_end(self):
        with pytest.raises(ParseError) as exc:
            parse("block 1; 2")
        assert exc.value.token.type == TokenType.EOF

    def test_leading_semicolon_rejected(self):
        with pytest.raises(ParseError):
            parse("block ; 1 end")

    def test_top_level_sequence_rejected(self):
        with pytest.raises(ParseError, match="after expression") as exc:
            parse("1; 2")
        assert exc.value.token.type == TokenType.SEMICOLON


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

class TestFailures:
    def test_empty_input(self):
        with pytest.raises(ParseError, match="end of input"):
            parse("")

    def test_leftover_tokens(self):
        with pytest.raises(ParseError) as exc:
            parse("1 2")
        assert exc.value.token.value == 2
        assert exc.value.column == 3

    def test_unclosed_paren(self):
        with pytest.raises(ParseError, match="'\\)'"):
            parse("(1 + 2")

    def test_unused_keyword(self):
        with pytest.raises(ParseError) as exc:
            parse("return 1")
        assert exc.value.token.type == TokenType.RETURN

    def test_dangling_operator(self):
        with pytest.raises(ParseError, match="end of input"):
            parse("1 +")

    def test_lexical_error_passes_through(self):
        with pytest.raises(LexerError):
            parse("1 + ?")

    def test_lexical_error_is_not_parse_error(self):
        try:
            parse('"open')
        except LexerError as e:
            assert not isinstance(e, ParseError)
        else:
            pytest.fail("expected LexerError")


# ---------------------------------------------------------------------------
# Token stream contract
# ---------------------------------------------------------------------------

class TestTokenStream:
    def test_accepts_token_list(self):
        tokens = Lexer("1 + 2").tokenize()
        assert Parser(tokens).parse() == binop(num(1), Opcode.ADD, num(2))

    def test_stream_without_eof(self):
        tokens = [
            Token(TokenType.IDENTIFIER, "f", 1, 1, 0, 1),
            Token(TokenType.LPAREN, "(", 1, 2, 1, 2),
            Token(TokenType.RPAREN, ")", 1, 3, 2, 3),
        ]
        assert Parser(tokens).parse() == Call(ident("f"), None)

    def test_synthesised_eof_location(self):
        tokens = [
            Token(TokenType.IF, "if", 1, 1, 0, 2),
            Token(TokenType.BOOLEAN, True, 1, 4, 3, 7),
        ]
        with pytest.raises(ParseError) as exc:
            Parser(tokens).parse()
        assert exc.value.token.type == TokenType.EOF
        assert exc.value.token.start == 7
        assert exc.value.column == 8

    def test_empty_stream(self):
        with pytest.raises(ParseError) as exc:
            Parser([]).parse()
        assert exc.value.token.type == TokenType.EOF

    def test_tokens_pulled_lazily(self):
        pulled = []

        def source():
            for tok in Lexer("a + b").tokens():
                pulled.append(tok)
                yield tok

        parser = Parser(source())
        assert parser.current().value == "a"
        assert len(pulled) == 1
        parser.parse()
        assert pulled[-1].type == TokenType.EOF

    def test_independent_parsers(self):
        first = Parser(Lexer("1").tokens())
        second = Parser(Lexer("2").tokens())
        assert second.parse() == num(2)
        assert first.parse() == num(1)

    def test_parsers_on_separate_threads(self):
        results = {}

        def work(i):
            results[i] = Parser(Lexer(f"block let x{i} = {i}; x{i} * {i} end").tokens()).parse()

        threads = [threading.Thread(target=work, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(results) == list(range(8))
        for i, tree in results.items():
            assert tree == Block((
                Let(f"x{i}", num(i)),
                binop(ident(f"x{i}"), Opcode.MUL, num(i)),
            ))
