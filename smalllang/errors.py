"""
Error taxonomy for SmallLang.

Every error the REPL can report derives from SmallLangError. The driver prints
``prefix + message`` on stderr and resynchronizes; nothing below the driver
catches these.
"""


class SmallLangError(Exception):
    prefix = "Error: "
    message = "error"

    def __init__(self, message=None):
        super().__init__(message or self.message)

    def report(self) -> str:
        return f"{self.prefix}{self}"


# --------------------- Lexing ---------------------
class LexError(SmallLangError):
    message = "Invalid number literal"

    def __init__(self, literal: str):
        self.literal = literal
        super().__init__(f"{self.message}: {literal}")


# --------------------- Parsing ---------------------
class ParseError(SmallLangError):
    pass


class UnknownTokenInExpression(ParseError):
    message = "Unknown token when expecting an expression"


class ExpectedCloseParen(ParseError):
    message = "expected ')'"


class ExpectedCommaOrCloseParen(ParseError):
    message = "Expected ')' or ',' in argument list"


class ExpectedFnName(ParseError):
    message = "Expected function name in prototype"


class ExpectedOpenParenInPrototype(ParseError):
    message = "Expected '(' in prototype"


class ExpectedCloseParenInPrototype(ParseError):
    message = "Expected ')' in prototype"


# --------------------- Codegen ---------------------
class CodegenError(SmallLangError):
    prefix = "LLVM Error: "


class UnknownVariable(CodegenError):
    message = "Unknown variable name"

    def __init__(self, name: str):
        self.name = name
        super().__init__()


class UnknownFunction(CodegenError):
    message = "Unknown Function Referenced"

    def __init__(self, name: str):
        self.name = name
        super().__init__()


class ArityMismatch(CodegenError):
    message = "Incorrect # args passed"

    def __init__(self, name: str, expected: int, got: int):
        self.name = name
        self.expected = expected
        self.got = got
        super().__init__()


class InvalidOperator(CodegenError):
    message = "invalid binary operator"

    def __init__(self, op: str):
        self.op = op
        super().__init__()


class VerificationError(CodegenError):
    message = "Function failed verification"


class UnresolvedSymbol(CodegenError):
    message = "Unresolved external symbol"

    def __init__(self, names):
        self.names = list(names)
        super().__init__(f"{self.message}: {', '.join(self.names)}")


# --------------------- JIT ---------------------
class JITError(SmallLangError):
    """Execution engine failure; the REPL cannot continue after one."""
    prefix = "JIT Error: "
