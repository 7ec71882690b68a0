"""
Shared fixtures for the SmallLang tests.
"""

import io

import pytest

from smalllang import JITSession, Repl
from smalllang.lexer import Lexer
from smalllang.parser import Parser


@pytest.fixture
def session():
    return JITSession()


@pytest.fixture
def repl(session):
    """Run source text through a REPL on the shared session.

    Returns (stdout, stderr) as written by the REPL itself.
    """
    def run(source):
        out, err = io.StringIO(), io.StringIO()
        status = Repl(session, io.StringIO(source), out, err).run()
        assert status == 0
        return out.getvalue(), err.getvalue()
    return run


@pytest.fixture
def make_parser():
    """Build a parser over text, already positioned on the first token."""
    def build(text):
        parser = Parser(Lexer(io.StringIO(text)))
        parser.advance()
        return parser
    return build
