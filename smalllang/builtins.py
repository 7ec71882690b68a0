"""
Host functions callable from JIT-compiled code.

Each one is a Python callable exposed as a C function pointer and registered
in the process symbol table, so ``incl putchard(x)`` links against it like any
other host symbol.
"""

import ctypes
import ctypes.util
import logging
import sys

import llvmlite.binding as llvm

LOG = logging.getLogger(__name__)

HOST_FN = ctypes.CFUNCTYPE(ctypes.c_double, ctypes.c_double)


@HOST_FN
def putchard(x):
    sys.stderr.write(chr(int(x) & 0xFF))
    sys.stderr.flush()
    return 0.0


@HOST_FN
def printd(x):
    sys.stderr.write("%f\n" % x)
    sys.stderr.flush()
    return 0.0


HOST_FUNCTIONS = {
    "putchard": putchard,
    "printd": printd,
}

_registered = False


def register():
    """Make the host functions and the C math library visible to the JIT."""
    global _registered
    if _registered:
        return
    for name, cfunc in HOST_FUNCTIONS.items():
        llvm.add_symbol(name, ctypes.cast(cfunc, ctypes.c_void_p).value)

    libm = ctypes.util.find_library("m")
    if libm:
        llvm.load_library_permanently(libm)
    else:
        LOG.debug("no C math library found; relying on symbols already loaded")
    _registered = True
