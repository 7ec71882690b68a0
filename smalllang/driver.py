"""
The REPL: prompt, read one top-level construct, lower it, run it.
"""

import io
import logging
import sys
from typing import List, TextIO

from . import errors
from .lexer import Lexer, TokenKind
from .parser import Parser
from .session import JITSession

LOG = logging.getLogger(__name__)

PROMPT = "ready> "


class Repl:
    def __init__(self, session: JITSession, stdin: TextIO = None,
                 stdout: TextIO = None, stderr: TextIO = None):
        self.session = session
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout
        self.stderr = stderr or sys.stderr
        self.parser = Parser(Lexer(self.stdin))
        self.results: List[float] = []

    def _prompt(self):
        print(PROMPT, end="", file=self.stdout, flush=True)

    def _report(self, exc: errors.SmallLangError):
        print(exc.report(), file=self.stderr, flush=True)

    def _next_token(self):
        # A malformed literal is consumed by the lexer before it raises, so
        # trying again reads past it.
        while True:
            try:
                self.parser.advance()
                return
            except errors.LexError as exc:
                self._report(exc)

    def run(self) -> int:
        """Loop until EOF. Returns the process exit status."""
        self._prompt()
        self._next_token()
        while True:
            self._prompt()
            tok = self.parser.current
            try:
                if tok.kind == TokenKind.EOF:
                    print("Exiting.", file=self.stdout, flush=True)
                    return 0
                if tok.kind == TokenKind.CHAR and tok.value == ";":
                    self._next_token()
                elif tok.kind == TokenKind.DEF:
                    self.handle_definition()
                elif tok.kind == TokenKind.EXTERN:
                    self.handle_extern()
                else:
                    self.handle_toplevel_expression()
            except errors.JITError as exc:
                self._report(exc)
                return 1

    # --------------------- Handlers ---------------------
    def _parse(self, production):
        try:
            return production()
        except (errors.LexError, errors.ParseError) as exc:
            self._report(exc)
            self._next_token()
            return None

    def handle_definition(self):
        fn = self._parse(self.parser.parse_definition)
        if fn is None:
            return
        try:
            ir_text = self.session.define(fn)
        except errors.CodegenError as exc:
            self._report(exc)
            return
        print("Parsed a function definition:", file=self.stdout, flush=True)
        print(ir_text, file=self.stderr, flush=True)

    def handle_extern(self):
        proto = self._parse(self.parser.parse_extern)
        if proto is None:
            return
        ir_text = self.session.declare(proto)
        print("Parsed an extern:", file=self.stdout, flush=True)
        print(ir_text, file=self.stderr, flush=True)

    def handle_toplevel_expression(self):
        fn = self._parse(self.parser.parse_toplevel_expr)
        if fn is None:
            return
        try:
            ir_text = self.session.lower_toplevel(fn)
            print("Parsed a top-level expr:", file=self.stdout, flush=True)
            print(ir_text, file=self.stderr, flush=True)
            result = self.session.run_toplevel()
        except errors.CodegenError as exc:
            self._report(exc)
            return
        self.results.append(result)
        print(f"Evaluated to: {result:f}", file=self.stdout, flush=True)


def evaluate(source: str, session: JITSession = None) -> List[float]:
    """Run ``source`` through a REPL and return every evaluated value."""
    repl = Repl(session or JITSession(), io.StringIO(source), io.StringIO(), io.StringIO())
    repl.run()
    return repl.results


def main() -> int:
    logging.basicConfig(level=logging.WARNING, format="%(name)s: %(message)s")
    try:
        session = JITSession()
    except errors.JITError as exc:
        print(exc.report(), file=sys.stderr)
        return 1
    return Repl(session).run()
