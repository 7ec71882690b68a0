"""
SmallLang: an interactive, JIT-compiled expression language on llvmlite.
"""

from .driver import Repl, evaluate, main
from .session import JITSession, SessionConfig

__version__ = "0.1.0"
