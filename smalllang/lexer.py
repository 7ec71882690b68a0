"""
Lexer for SmallLang: character stream -> tokens, one character of lookahead.
"""

from collections import namedtuple
from enum import Enum
from typing import TextIO

from .errors import LexError


class TokenKind(Enum):
    EOF = -1
    DEF = -2
    EXTERN = -3
    IDENTIFIER = -4
    NUMBER = -5
    CHAR = -6


# kind is a TokenKind; value is the identifier string, the float for NUMBER,
# the single character for CHAR and '' for EOF.
Token = namedtuple("Token", "kind value")

KEYWORDS = {
    "fn": TokenKind.DEF,
    "incl": TokenKind.EXTERN,
}


def _is_alpha(c: str) -> bool:
    return c.isascii() and c.isalpha()


def _is_alnum(c: str) -> bool:
    return c.isascii() and c.isalnum()


def _is_digit(c: str) -> bool:
    return c.isascii() and c.isdigit()


class Lexer:
    """Pull tokens off a text stream one at a time.

    The stream is read a single character per call so an interactive session
    never blocks for more input than the token it is building needs. EOF is
    the empty string, as returned by ``read(1)`` at end of stream.
    """

    def __init__(self, stream: TextIO):
        self.stream = stream
        self.last = " "

    def _advance(self):
        self.last = self.stream.read(1)

    def next_token(self) -> Token:
        while self.last.isspace():
            self._advance()

        if _is_alpha(self.last):
            ident = ""
            while _is_alnum(self.last):
                ident += self.last
                self._advance()
            kind = KEYWORDS.get(ident, TokenKind.IDENTIFIER)
            return Token(kind, ident)

        if _is_digit(self.last) or self.last == ".":
            literal = ""
            while _is_digit(self.last) or self.last == ".":
                literal += self.last
                self._advance()
            try:
                return Token(TokenKind.NUMBER, float(literal))
            except ValueError:
                raise LexError(literal) from None

        if self.last == "#":
            while self.last and self.last not in "\r\n":
                self._advance()
            if self.last:
                return self.next_token()

        if not self.last:
            return Token(TokenKind.EOF, "")

        char = self.last
        self._advance()
        return Token(TokenKind.CHAR, char)

    def tokens(self):
        """Yield tokens up to and including EOF."""
        while True:
            tok = self.next_token()
            yield tok
            if tok.kind == TokenKind.EOF:
                return
