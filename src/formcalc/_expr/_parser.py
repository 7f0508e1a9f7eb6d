"""Recursive descent parser for the expression language.

Grammar (precedence low to high):
    expr            -> or_expr ("?" expr ":" expr)?
    or_expr         -> and_expr ("||" and_expr)*
    and_expr        -> equality ("&&" equality)*
    equality        -> comparison (("==" | "!=") comparison)*
    comparison      -> additive (("<" | ">" | "<=" | ">=") additive)*
    additive        -> multiplicative (("+" | "-") multiplicative)*
    multiplicative  -> unary (("*" | "/" | "%") unary)*
    unary           -> ("-" | "!") unary | primary
    primary         -> NUMBER | STRING | "true" | "false" | "null"
                     | IDENT "(" (expr ("," expr)*)? ")"
                     | IDENT ("." IDENT)*
                     | "(" expr ")"

``===`` and ``!==`` are tokenized as ``==`` and ``!=``. Only functions from
the fixed library may be called.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from ._ast import BinaryExpr, BinaryOp, Conditional, Expr, FieldRef, FuncCall, Literal, UnaryExpr, UnaryOp
from ._errors import ExpressionParseError
from ._functions import FUNCTIONS
from ._tokenizer import Token, TokenKind, tokenize

# Nesting depth beyond which an expression is rejected instead of recursing further.
MAX_DEPTH = 64

_BINARY_LEVELS: tuple[dict[TokenKind, BinaryOp], ...] = (
    {TokenKind.OR: BinaryOp.OR},
    {TokenKind.AND: BinaryOp.AND},
    {TokenKind.EQ: BinaryOp.EQ, TokenKind.NE: BinaryOp.NE},
    {TokenKind.LT: BinaryOp.LT, TokenKind.GT: BinaryOp.GT, TokenKind.LE: BinaryOp.LE, TokenKind.GE: BinaryOp.GE},
    {TokenKind.PLUS: BinaryOp.ADD, TokenKind.MINUS: BinaryOp.SUB},
    {TokenKind.STAR: BinaryOp.MUL, TokenKind.SLASH: BinaryOp.DIV, TokenKind.PERCENT: BinaryOp.MOD},
)


class _Parser:
    def __init__(self, tokens: list[Token]) -> None:
        self.tokens = tokens
        self.pos = 0
        self.depth = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.pos]

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return tok

    def expect(self, kind: TokenKind, what: str) -> Token:
        tok = self.current
        if tok.kind != kind:
            raise _unexpected(tok, f"expected {what}")
        return self.advance()

    def parse_expr(self) -> Expr:
        self.depth += 1
        if self.depth > MAX_DEPTH:
            msg = f"Expression nested deeper than {MAX_DEPTH} levels"
            raise ExpressionParseError(msg, self.current.pos, self.current.value)
        try:
            condition = self.parse_binary(0)
            if self.current.kind != TokenKind.QUESTION:
                return condition
            self.advance()
            then_expr = self.parse_expr()
            self.expect(TokenKind.COLON, "':' in conditional expression")
            else_expr = self.parse_expr()
            return Conditional(condition=condition, then_expr=then_expr, else_expr=else_expr)
        finally:
            self.depth -= 1

    def parse_binary(self, level: int) -> Expr:
        if level == len(_BINARY_LEVELS):
            return self.parse_unary()
        ops = _BINARY_LEVELS[level]
        left = self.parse_binary(level + 1)
        while self.current.kind in ops:
            op = ops[self.advance().kind]
            right = self.parse_binary(level + 1)
            left = BinaryExpr(op=op, left=left, right=right)
        return left

    def parse_unary(self) -> Expr:
        if self.current.kind in (TokenKind.MINUS, TokenKind.NOT):
            op = UnaryOp.NEG if self.advance().kind == TokenKind.MINUS else UnaryOp.NOT
            self.depth += 1
            if self.depth > MAX_DEPTH:
                msg = f"Expression nested deeper than {MAX_DEPTH} levels"
                raise ExpressionParseError(msg, self.current.pos, self.current.value)
            try:
                operand = self.parse_unary()
            finally:
                self.depth -= 1
            return UnaryExpr(op=op, operand=operand)
        return self.parse_primary()

    def parse_primary(self) -> Expr:
        tok = self.current

        match tok.kind:
            case TokenKind.LPAREN:
                self.advance()
                expr = self.parse_expr()
                self.expect(TokenKind.RPAREN, "')'")
                return expr
            case TokenKind.NUMBER:
                self.advance()
                return Literal(value=_number_value(tok.value))
            case TokenKind.STRING:
                self.advance()
                return Literal(value=tok.value)
            case TokenKind.TRUE:
                self.advance()
                return Literal(value=True)
            case TokenKind.FALSE:
                self.advance()
                return Literal(value=False)
            case TokenKind.NULL:
                self.advance()
                return Literal(value=None)
            case TokenKind.IDENT:
                if self.tokens[self.pos + 1].kind == TokenKind.LPAREN:
                    return self._parse_func_call()
                return self._parse_field_ref()
            case _:
                raise _unexpected(tok, "expected a value")

    def _parse_func_call(self) -> FuncCall:
        name_tok = self.advance()
        function = FUNCTIONS.get(name_tok.value)
        if function is None:
            msg = f"Unknown function '{name_tok.value}' at position {name_tok.pos}"
            raise ExpressionParseError(msg, name_tok.pos, name_tok.value)
        self.expect(TokenKind.LPAREN, "'('")

        args: list[Expr] = []
        if self.current.kind != TokenKind.RPAREN:
            args.append(self.parse_expr())
            while self.current.kind == TokenKind.COMMA:
                self.advance()
                args.append(self.parse_expr())
        self.expect(TokenKind.RPAREN, "')' after function arguments")

        arity_error = function.check_arity(len(args))
        if arity_error is not None:
            raise ExpressionParseError(arity_error, name_tok.pos, name_tok.value)
        return FuncCall(name=name_tok.value, args=tuple(args))

    def _parse_field_ref(self) -> FieldRef:
        first = self.advance()
        path = [first.value]
        while self.current.kind == TokenKind.DOT:
            self.advance()
            segment = self.expect(TokenKind.IDENT, "a name after '.'")
            path.append(segment.value)
        return FieldRef(path=tuple(path), pos=first.pos)


def _number_value(text: str) -> int | float:
    if text.isdigit():
        return int(text)
    return float(text)


def _unexpected(tok: Token, expectation: str) -> ExpressionParseError:
    if tok.kind == TokenKind.EOF:
        msg = f"Unexpected end of expression at position {tok.pos}: {expectation}"
    else:
        msg = f"Unexpected token {tok.value!r} at position {tok.pos}: {expectation}"
    return ExpressionParseError(msg, tok.pos, tok.value)


def parse_expression(source: str) -> Expr:
    """Parse an expression string into a syntax tree.

    Args:
        source: Expression string, e.g. ``"weight / pow(height / 100, 2)"``.

    Returns:
        The root node of the parsed tree.

    Raises:
        ExpressionParseError: If the source is empty or does not match the grammar.

    """
    tokens = tokenize(source)
    if tokens[0].kind == TokenKind.EOF:
        msg = "Empty expression"
        raise ExpressionParseError(msg, 0, "")

    parser = _Parser(tokens)
    expr = parser.parse_expr()

    if parser.current.kind != TokenKind.EOF:
        raise _unexpected(parser.current, "expected end of expression")
    return expr


def extract_references(expr: Expr) -> tuple[str, ...]:
    """Return the field references read by a tree, in first-use order.

    Dotted references are reported whole (``price.value``); callers decide
    which prefix names a field.
    """
    seen: dict[str, None] = {}
    stack: list[Expr] = [expr]
    while stack:
        node = stack.pop()
        match node:
            case FieldRef():
                seen.setdefault(node.name)
            case UnaryExpr(operand=operand):
                stack.append(operand)
            case BinaryExpr(left=left, right=right):
                stack.extend((right, left))
            case Conditional(condition=condition, then_expr=then_expr, else_expr=else_expr):
                stack.extend((else_expr, then_expr, condition))
            case FuncCall(args=args):
                stack.extend(reversed(args))
            case _:
                pass
    return tuple(seen)


@dataclass(frozen=True, slots=True)
class CompiledExpression:
    """A parsed expression ready to evaluate.

    Attributes:
        source: The original expression string.
        tree: Root of the syntax tree. Never mutated after compilation.
        references: Field references read by the tree, in first-use order.

    """

    source: str
    tree: Expr
    references: tuple[str, ...]


@lru_cache(maxsize=1024)
def compile_expression(source: str) -> CompiledExpression:
    """Parse and analyse an expression, caching the result by source string.

    Raises:
        ExpressionParseError: If the source does not match the grammar.

    """
    tree = parse_expression(source)
    return CompiledExpression(source=source, tree=tree, references=extract_references(tree))
