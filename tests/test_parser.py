"""Tests for the expression tokenizer and parser."""

import pytest

from formcalc._expr import ExpressionParseError, compile_expression, extract_references, parse_expression
from formcalc._expr._ast import BinaryExpr, BinaryOp, Conditional, FieldRef, FuncCall, Literal, UnaryExpr, UnaryOp
from formcalc._expr._parser import MAX_DEPTH
from formcalc._expr._tokenizer import TokenKind, tokenize


class TestTokenize:
    """Tests for tokenize()."""

    def test_kinds_and_positions(self) -> None:
        tokens = tokenize("price * 1.5")
        assert [t.kind for t in tokens] == [TokenKind.IDENT, TokenKind.STAR, TokenKind.NUMBER, TokenKind.EOF]
        assert [t.pos for t in tokens] == [0, 6, 8, 11]

    def test_longest_operator_wins(self) -> None:
        tokens = tokenize("a === b !== c <= d")
        assert [t.kind for t in tokens[:-1]] == [
            TokenKind.IDENT,
            TokenKind.EQ,
            TokenKind.IDENT,
            TokenKind.NE,
            TokenKind.IDENT,
            TokenKind.LE,
            TokenKind.IDENT,
        ]

    def test_keywords(self) -> None:
        kinds = [t.kind for t in tokenize("true false null")[:-1]]
        assert kinds == [TokenKind.TRUE, TokenKind.FALSE, TokenKind.NULL]

    def test_numbers(self) -> None:
        values = [t.value for t in tokenize("1 2.5 .5 1e3 2E-2")[:-1]]
        assert values == ["1", "2.5", ".5", "1e3", "2E-2"]

    def test_dot_after_identifier_is_member_access(self) -> None:
        kinds = [t.kind for t in tokenize("price.value")[:-1]]
        assert kinds == [TokenKind.IDENT, TokenKind.DOT, TokenKind.IDENT]

    def test_string_escapes(self) -> None:
        tokens = tokenize(r"'it\'s' + " + '"a\\nb"')
        assert tokens[0].value == "it's"
        assert tokens[2].value == "a\nb"

    def test_unterminated_string(self) -> None:
        with pytest.raises(ExpressionParseError, match="Unterminated string") as exc_info:
            tokenize("'abc")
        assert exc_info.value.pos == 0

    def test_unexpected_character(self) -> None:
        with pytest.raises(ExpressionParseError, match="Unexpected character") as exc_info:
            tokenize("a # b")
        assert exc_info.value.pos == 2
        assert exc_info.value.token == "#"

    @pytest.mark.parametrize("source", ["x²", "café", "²"])
    def test_non_ascii_letters_and_digits(self, source: str) -> None:
        with pytest.raises(ExpressionParseError, match="Unexpected character"):
            tokenize(source)


class TestParseExpression:
    """Tests for parse_expression()."""

    def test_literal(self) -> None:
        assert parse_expression("42") == Literal(42)
        assert parse_expression("2.5") == Literal(2.5)
        assert parse_expression("'hi'") == Literal("hi")
        assert parse_expression("null") == Literal(None)

    def test_multiplication_binds_tighter(self) -> None:
        tree = parse_expression("a + b * c")
        assert isinstance(tree, BinaryExpr)
        assert tree.op == BinaryOp.ADD
        assert isinstance(tree.right, BinaryExpr)
        assert tree.right.op == BinaryOp.MUL

    def test_left_associative(self) -> None:
        tree = parse_expression("a - b - c")
        assert isinstance(tree, BinaryExpr)
        assert isinstance(tree.left, BinaryExpr)
        assert tree.left.op == BinaryOp.SUB

    def test_parentheses(self) -> None:
        tree = parse_expression("(a + b) * c")
        assert isinstance(tree, BinaryExpr)
        assert tree.op == BinaryOp.MUL

    def test_logical_precedence(self) -> None:
        tree = parse_expression("a || b && c")
        assert isinstance(tree, BinaryExpr)
        assert tree.op == BinaryOp.OR
        assert isinstance(tree.right, BinaryExpr)
        assert tree.right.op == BinaryOp.AND

    def test_unary(self) -> None:
        tree = parse_expression("!-a")
        assert tree == UnaryExpr(UnaryOp.NOT, UnaryExpr(UnaryOp.NEG, FieldRef(("a",), pos=2)))

    def test_ternary_is_right_associative(self) -> None:
        tree = parse_expression("a ? 1 : b ? 2 : 3")
        assert isinstance(tree, Conditional)
        assert isinstance(tree.else_expr, Conditional)

    def test_strict_equality_alias(self) -> None:
        assert parse_expression("a === 1") == parse_expression("a == 1")

    def test_dotted_reference(self) -> None:
        tree = parse_expression("price.value")
        assert tree == FieldRef(("price", "value"), pos=0)
        assert tree.name == "price.value"

    def test_function_call(self) -> None:
        tree = parse_expression("round(x, 2)")
        assert isinstance(tree, FuncCall)
        assert tree.name == "round"
        assert len(tree.args) == 2

    @pytest.mark.parametrize(
        ("source", "message"),
        [
            ("", "Empty expression"),
            ("a +", "Unexpected end of expression"),
            ("(a + b", "expected '\\)'"),
            ("a b", "expected end of expression"),
            ("a ? b", "':' in conditional"),
            ("a.", "a name after '.'"),
            ("* 2", "Unexpected token '\\*'"),
        ],
    )
    def test_syntax_errors(self, source: str, message: str) -> None:
        with pytest.raises(ExpressionParseError, match=message):
            parse_expression(source)

    def test_error_reports_position_and_token(self) -> None:
        with pytest.raises(ExpressionParseError) as exc_info:
            parse_expression("a + * b")
        assert exc_info.value.pos == 4
        assert exc_info.value.token == "*"

    def test_unknown_function(self) -> None:
        with pytest.raises(ExpressionParseError, match="Unknown function 'eval'"):
            parse_expression("eval('1')")

    def test_wrong_arity(self) -> None:
        with pytest.raises(ExpressionParseError, match="takes 1 argument"):
            parse_expression("abs(1, 2)")

    def test_nesting_limit(self) -> None:
        source = "(" * (MAX_DEPTH + 1) + "1" + ")" * (MAX_DEPTH + 1)
        with pytest.raises(ExpressionParseError, match="nested deeper"):
            parse_expression(source)

    def test_nesting_within_limit(self) -> None:
        depth = MAX_DEPTH // 2
        assert parse_expression("(" * depth + "1" + ")" * depth) == Literal(1)

    def test_long_unary_chain_is_bounded(self) -> None:
        with pytest.raises(ExpressionParseError, match="nested deeper"):
            parse_expression("-" * (MAX_DEPTH * 2) + "1")


class TestReferences:
    """Tests for extract_references() and compile_expression()."""

    def test_first_use_order_without_duplicates(self) -> None:
        tree = parse_expression("b + a * b + max(c, a)")
        assert extract_references(tree) == ("b", "a", "c")

    def test_function_names_are_not_references(self) -> None:
        assert extract_references(parse_expression("round(x)")) == ("x",)

    def test_dotted_references_reported_whole(self) -> None:
        tree = parse_expression("x.valid ? result.total : 0")
        assert extract_references(tree) == ("x.valid", "result.total")

    def test_compile_is_cached(self) -> None:
        first = compile_expression("weight / 2")
        assert compile_expression("weight / 2") is first
        assert first.references == ("weight",)
        assert first.source == "weight / 2"

    def test_compile_propagates_parse_errors(self) -> None:
        with pytest.raises(ExpressionParseError):
            compile_expression("1 +")
