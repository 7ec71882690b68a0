"""
JIT session: owns the IR module, builder, function pass pipeline, execution
engine and the process-wide prototype and definition maps.

Each top-level expression is lowered into the current module, that module is
moved into the engine under its own resource tracker, the session immediately
starts a fresh module, and the tracker is removed once the expression has run.
"""

import ctypes
import logging
from dataclasses import dataclass
from typing import Dict, Tuple

import llvmlite.binding as llvm
import llvmlite.ir as ir

from . import builtins, errors
from .codegen import CodeGen
from .nodes import ANON_EXPR_NAME, Function, Prototype

LOG = logging.getLogger(__name__)

llvm.initialize_native_target()
llvm.initialize_native_asmprinter()

# Each entry lists the llvmlite method suffixes that provide one pass; the
# first one the installed release has is used.
FUNCTION_PASSES = (
    ("instruction_combine",),
    ("reassociate",),
    ("gvn", "new_gvn"),
    ("simplify_cfg",),
)


@dataclass
class SessionConfig:
    module_name: str = "small_lang"
    optimize: bool = True
    speed_level: int = 2
    passes: Tuple[Tuple[str, ...], ...] = FUNCTION_PASSES


class ResourceTracker:
    """Scopes the modules added to the engine so they unload together."""

    def __init__(self, engine: llvm.ExecutionEngine):
        self.engine = engine
        self.modules = []

    def add(self, llmod: llvm.ModuleRef):
        try:
            self.engine.add_module(llmod)
            self.modules.append(llmod)
            self.engine.finalize_object()
        except RuntimeError as exc:
            raise errors.JITError(str(exc)) from exc
        LOG.debug("added module %s to the engine", llmod.name)

    def remove(self):
        while self.modules:
            llmod = self.modules.pop()
            self.engine.remove_module(llmod)
            LOG.debug("removed module %s from the engine", llmod.name)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.remove()


class JITSession:
    def __init__(self, config: SessionConfig = None):
        self.config = config or SessionConfig()
        self.prototypes: Dict[str, Prototype] = {}
        self.definitions: Dict[str, Function] = {}

        try:
            target = llvm.Target.from_default_triple()
            self.target_machine = target.create_target_machine()
            # The engine takes ownership of its target machine; the pass
            # builder gets its own.
            backing_mod = llvm.parse_assembly("")
            self.engine = llvm.create_mcjit_compiler(backing_mod, target.create_target_machine())
            builtins.register()
        except RuntimeError as exc:
            raise errors.JITError(f"failed to create the JIT: {exc}") from exc

        self.module = None
        self.builder = None
        self._pass_methods = None
        self.codegen = CodeGen(self)
        self.reset_module_and_passes()

    # --------------------- Module lifecycle ---------------------
    def reset_module_and_passes(self):
        self.module = ir.Module(name=self.config.module_name)
        self.module.triple = self.target_machine.triple
        self.module.data_layout = str(self.engine.target_data)
        self.builder = ir.IRBuilder()
        self._build_passes()
        LOG.debug("started fresh module %s", self.module.name)

    def _build_passes(self):
        pto = llvm.create_pipeline_tuning_options(speed_level=self.config.speed_level)
        self.pass_builder = llvm.create_pass_builder(self.target_machine, pto)
        self.fpm = llvm.create_new_function_pass_manager()
        if self._pass_methods is None:
            self._pass_methods = self._resolve_passes(self.fpm)
        for method in self._pass_methods:
            getattr(self.fpm, method)()

    def _resolve_passes(self, fpm):
        methods = []
        for candidates in self.config.passes:
            for suffix in candidates:
                if hasattr(fpm, f"add_{suffix}_pass"):
                    methods.append(f"add_{suffix}_pass")
                    break
            else:
                LOG.warning("llvmlite provides none of %s; pass skipped", ", ".join(candidates))
        return methods

    def discard_module(self):
        """Drop the current module after a failed entry.

        Definitions and prototypes it held are retained in the maps and are
        re-emitted on demand.
        """
        LOG.debug("discarding module %s", self.module.name)
        self.reset_module_and_passes()

    def create_resource_tracker(self) -> ResourceTracker:
        return ResourceTracker(self.engine)

    # --------------------- Verification and optimization ---------------------
    def _parse_module(self) -> llvm.ModuleRef:
        try:
            llmod = llvm.parse_assembly(str(self.module))
            llmod.verify()
        except RuntimeError as exc:
            detail = str(exc).strip()
            LOG.debug("module rejected:\n%s", detail)
            first_line = detail.splitlines()[0] if detail else ""
            raise errors.VerificationError(f"{errors.VerificationError.message}: {first_line}") from exc
        return llmod

    def _optimize(self, llfunc):
        if self.config.optimize:
            self.fpm.run(llfunc, self.pass_builder)

    def verify_and_optimize(self, function: ir.Function) -> str:
        """Verify the module holding ``function`` and return its optimized IR."""
        llmod = self._parse_module()
        llfunc = llmod.get_function(function.name)
        self._optimize(llfunc)
        return str(llfunc)

    def _compile_module(self) -> llvm.ModuleRef:
        llmod = self._parse_module()
        called = set()
        for llfunc in llmod.functions:
            if llfunc.is_declaration:
                continue
            self._optimize(llfunc)
            for block in llfunc.blocks:
                for instr in block.instructions:
                    if instr.opcode == "call":
                        called.add(list(instr.operands)[-1].name)

        unresolved = [
            llfunc.name for llfunc in llmod.functions
            if llfunc.is_declaration and llfunc.name in called
            and not llfunc.name.startswith("llvm.")
            and llvm.address_of_symbol(llfunc.name) is None
        ]
        if unresolved:
            raise errors.UnresolvedSymbol(unresolved)
        return llmod

    # --------------------- Top-level handlers ---------------------
    def declare(self, proto: Prototype) -> str:
        """Emit an extern declaration and remember it across modules."""
        existing = self.module.globals.get(proto.name)
        if existing is not None and (not existing.is_declaration
                                     or len(existing.args) != proto.arity):
            self.reset_module_and_passes()
            existing = None
        function = existing if existing is not None else self.codegen.lower_prototype(proto)
        self.prototypes[proto.name] = proto
        self.definitions.pop(proto.name, None)
        return str(function)

    def define(self, fn: Function) -> str:
        """Lower a function definition; return its optimized IR."""
        name = fn.proto.name
        self.prototypes[name] = fn.proto

        existing = self.module.globals.get(name)
        if existing is not None and (not existing.is_declaration
                                     or len(existing.args) != fn.proto.arity):
            # Everything in the module is retained in the maps, so a fresh
            # module loses nothing and drops the stale body.
            LOG.debug("redefining %s in a fresh module", name)
            self.reset_module_and_passes()

        self.codegen.lower_function(fn)
        self.definitions[name] = fn
        return self.codegen.last_ir

    def lower_toplevel(self, fn: Function) -> str:
        """Lower an anonymous top-level expression into the current module."""
        self.codegen.lower_function(fn)
        return self.codegen.last_ir

    def run_toplevel(self) -> float:
        """JIT the current module, run the anonymous expression and unload it."""
        try:
            llmod = self._compile_module()
        except errors.CodegenError:
            self.discard_module()
            raise

        with self.create_resource_tracker() as tracker:
            try:
                tracker.add(llmod)
            finally:
                self.reset_module_and_passes()
            address = self.engine.get_function_address(ANON_EXPR_NAME)
            if not address:
                raise errors.JITError(f"symbol {ANON_EXPR_NAME} not found")
            cfunc = ctypes.CFUNCTYPE(ctypes.c_double)(address)
            return cfunc()
