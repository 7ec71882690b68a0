"""
Operator-precedence parser for SmallLang.

The parser owns the current token. Every production reads it, consumes what
it recognizes and leaves the cursor on the first token it did not use.
"""

from typing import Dict, List

from . import errors
from .lexer import Lexer, Token, TokenKind
from .nodes import (Assign, Binary, Call, Expr, Function, Number, Prototype,
                    Variable, anonymous)

# Higher binds tighter. Anything missing has no precedence and ends a
# binary expression.
BINOP_PRECEDENCE = {"<": 10, "+": 20, "-": 20, "*": 40}


class Parser:
    def __init__(self, lexer: Lexer, precedence: Dict[str, int] = None):
        self.lexer = lexer
        self.precedence = dict(BINOP_PRECEDENCE if precedence is None else precedence)
        self.current = Token(TokenKind.EOF, "")

    def advance(self) -> Token:
        self.current = self.lexer.next_token()
        return self.current

    def _is_char(self, c: str) -> bool:
        return self.current.kind == TokenKind.CHAR and self.current.value == c

    def _token_precedence(self) -> int:
        if self.current.kind != TokenKind.CHAR:
            return -1
        prec = self.precedence.get(self.current.value, 0)
        return prec if prec > 0 else -1

    # --------------------- Expressions ---------------------
    # expression ::= primary binoprhs
    def parse_expression(self) -> Expr:
        lhs = self._parse_primary(allow_assign=True)
        return self._parse_binop_rhs(0, lhs)

    # primary ::= identifierexpr | numberexpr | parenexpr
    def _parse_primary(self, allow_assign=False) -> Expr:
        if self.current.kind == TokenKind.IDENTIFIER:
            return self._parse_identifier_expr(allow_assign)
        if self.current.kind == TokenKind.NUMBER:
            return self._parse_number_expr()
        if self._is_char("("):
            return self._parse_paren_expr()
        raise errors.UnknownTokenInExpression()

    def _parse_number_expr(self) -> Number:
        result = Number(self.current.value)
        self.advance()
        return result

    # parenexpr ::= '(' expression ')'
    def _parse_paren_expr(self) -> Expr:
        self.advance()  # '('
        expr = self.parse_expression()
        if not self._is_char(")"):
            raise errors.ExpectedCloseParen()
        self.advance()
        return expr

    # identifierexpr
    #   ::= identifier
    #   ::= identifier '(' (expression (',' expression)*)? ')'
    #   ::= identifier '=' expression
    def _parse_identifier_expr(self, allow_assign: bool) -> Expr:
        name = self.current.value
        self.advance()

        if allow_assign and self._is_char("="):
            self.advance()
            return Assign(name, self.parse_expression())

        if not self._is_char("("):
            return Variable(name)

        self.advance()  # '('
        args: List[Expr] = []
        if not self._is_char(")"):
            while True:
                args.append(self.parse_expression())
                if self._is_char(")"):
                    break
                if not self._is_char(","):
                    raise errors.ExpectedCommaOrCloseParen()
                self.advance()
        self.advance()  # ')'
        return Call(name, tuple(args))

    # binoprhs ::= (binop primary)*
    def _parse_binop_rhs(self, min_prec: int, lhs: Expr) -> Expr:
        while True:
            prec = self._token_precedence()
            if prec < min_prec:
                return lhs

            op = self.current.value
            self.advance()
            rhs = self._parse_primary()

            # Let a tighter operator on the right take rhs as its lhs first.
            if prec < self._token_precedence():
                rhs = self._parse_binop_rhs(prec + 1, rhs)

            lhs = Binary(op, lhs, rhs)

    # --------------------- Top level ---------------------
    # prototype ::= identifier '(' identifier* ')'
    def parse_prototype(self) -> Prototype:
        if self.current.kind != TokenKind.IDENTIFIER:
            raise errors.ExpectedFnName()
        name = self.current.value
        self.advance()

        if not self._is_char("("):
            raise errors.ExpectedOpenParenInPrototype()

        params = []
        while self.advance().kind == TokenKind.IDENTIFIER:
            params.append(self.current.value)
        if not self._is_char(")"):
            raise errors.ExpectedCloseParenInPrototype()
        self.advance()
        return Prototype(name, tuple(params))

    # definition ::= 'fn' prototype expression
    def parse_definition(self) -> Function:
        self.advance()  # 'fn'
        proto = self.parse_prototype()
        return Function(proto, self.parse_expression())

    # extern ::= 'incl' prototype
    def parse_extern(self) -> Prototype:
        self.advance()  # 'incl'
        return self.parse_prototype()

    # toplevelexpr ::= expression
    def parse_toplevel_expr(self) -> Function:
        return anonymous(self.parse_expression())
