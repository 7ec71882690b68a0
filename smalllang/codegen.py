"""
AST -> llvmlite IR lowering.

Every value is a double. Variables resolve only against the current
function's parameters and the names it has assigned so far; there is no
enclosing scope.
"""

import logging
from contextlib import contextmanager
from typing import Dict

import llvmlite.ir as ir

from . import errors
from .nodes import Assign, Binary, Call, Function, Number, Prototype, Variable

LOG = logging.getLogger(__name__)

DOUBLE = ir.DoubleType()


class CodeGen:
    def __init__(self, session):
        self.session = session
        self.named_values: Dict[str, ir.Value] = {}
        # Optimized IR of the last function lowered with verification.
        self.last_ir = ""

    @property
    def module(self) -> ir.Module:
        return self.session.module

    @property
    def builder(self) -> ir.IRBuilder:
        return self.session.builder

    # --------------------- Functions ---------------------
    def lower_prototype(self, proto: Prototype) -> ir.Function:
        fnty = ir.FunctionType(DOUBLE, [DOUBLE] * proto.arity)
        function = ir.Function(self.module, fnty, name=proto.name)
        for arg, name in zip(function.args, proto.params):
            arg.name = name
        return function

    def lower_function(self, node: Function, replay=False) -> ir.Function:
        """Lower a definition into the current module.

        A declaration already in the module is reused and given a body. With
        ``replay`` the definition is being re-emitted for a call site in
        another function: the builder and named values of that function are
        preserved, and verification is left to the whole-module check before
        JIT handoff. A failure discards the current module; its other
        functions live on in the session maps.
        """
        function = self.module.globals.get(node.proto.name)
        if function is None:
            function = self.lower_prototype(node.proto)
        else:
            for arg, name in zip(function.args, node.proto.params):
                if arg.name != name:
                    arg.name = name

        with self._function_scope(replay):
            self.builder.position_at_end(function.append_basic_block("entry"))
            for arg, name in zip(function.args, node.proto.params):
                self.named_values[name] = arg
            try:
                self.builder.ret(self.lower_expr(node.body))
                if not replay:
                    self.last_ir = self.session.verify_and_optimize(function)
            except errors.SmallLangError:
                # A replayed definition fails inside its caller, which discards
                # the module once the error reaches it.
                if not replay:
                    self.session.discard_module()
                raise
        return function

    @contextmanager
    def _function_scope(self, replay):
        if not replay:
            self.named_values.clear()
            yield
            return
        saved = self.session.builder, self.named_values
        self.session.builder = ir.IRBuilder()
        self.named_values = {}
        try:
            yield
        finally:
            self.session.builder, self.named_values = saved

    def _get_function(self, name: str) -> ir.Function:
        function = self.module.globals.get(name)
        if function is not None:
            return function
        if name in self.session.definitions:
            LOG.debug("re-emitting definition of %s into %s", name, self.module.name)
            return self.lower_function(self.session.definitions[name], replay=True)
        if name in self.session.prototypes:
            LOG.debug("re-emitting declaration of %s into %s", name, self.module.name)
            return self.lower_prototype(self.session.prototypes[name])
        raise errors.UnknownFunction(name)

    # --------------------- Expressions ---------------------
    def lower_expr(self, node) -> ir.Value:
        if isinstance(node, Number):
            return ir.Constant(DOUBLE, node.value)

        if isinstance(node, Variable):
            try:
                return self.named_values[node.name]
            except KeyError:
                LOG.debug("unknown variable %r", node.name)
                raise errors.UnknownVariable(node.name) from None

        if isinstance(node, Binary):
            return self._lower_binary(node)

        if isinstance(node, Call):
            callee = self._get_function(node.callee)
            if len(callee.args) != len(node.args):
                raise errors.ArityMismatch(node.callee, len(callee.args), len(node.args))
            args = [self.lower_expr(arg) for arg in node.args]
            return self.builder.call(callee, args, "calltmp")

        if isinstance(node, Assign):
            value = self.lower_expr(node.value)
            self.named_values[node.target] = value
            return value

        raise TypeError(f"Unsupported node: {node.__class__.__name__}")

    def _lower_binary(self, node: Binary) -> ir.Value:
        lhs = self.lower_expr(node.lhs)
        rhs = self.lower_expr(node.rhs)

        if node.op == "+":
            return self.builder.fadd(lhs, rhs, "addtmp")
        if node.op == "-":
            return self.builder.fsub(lhs, rhs, "subtmp")
        if node.op == "*":
            return self.builder.fmul(lhs, rhs, "multmp")
        if node.op == "<":
            cmp = self.builder.fcmp_unordered("<", lhs, rhs, "cmptmp")
            return self.builder.uitofp(cmp, DOUBLE, "booltmp")
        raise errors.InvalidOperator(node.op)
