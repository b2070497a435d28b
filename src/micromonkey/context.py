"""Monkey execution context."""

import logging
from typing import Any, List, Optional

from .builtins import BUILTINS
from .compiler import Compiler
from .opcodes import disassemble
from .parser import Parser
from .symbol_table import SymbolTable
from .values import NULL, MonkeyArray, MonkeyHash, MonkeyValue
from .vm import MAX_FRAMES, STACK_SIZE, VM, GlobalStore


class Context:
    """Monkey execution context that keeps its globals between evaluations."""

    def __init__(
        self,
        stack_size: int = STACK_SIZE,
        max_frames: int = MAX_FRAMES,
    ):
        """Create a new Monkey context.

        Args:
            stack_size: Maximum number of values on the operand stack
            max_frames: Maximum call depth
        """
        self._logger = logging.getLogger("Context")
        self.stack_size = stack_size
        self.max_frames = max_frames

        self._symbol_table = SymbolTable()
        for i, builtin in enumerate(BUILTINS):
            self._symbol_table.define_builtin(i, builtin.name)
        self._constants: List[Any] = []
        self._globals = GlobalStore()

    def _compile(self, code: str, filename: Optional[str]) -> Compiler:
        program = Parser(code, filename).parse()
        compiler = Compiler.new_with_state(self._symbol_table, self._constants)
        compiler.compile(program)
        return compiler

    def eval_raw(self, code: str, filename: Optional[str] = None) -> Optional[MonkeyValue]:
        """Evaluate Monkey code and return the last popped Monkey value.

        Returns None when the code popped nothing (for example a lone let).
        """
        compiler = self._compile(code, filename)
        vm = VM(
            compiler.bytecode(),
            globals=self._globals,
            stack_size=self.stack_size,
            max_frames=self.max_frames,
        )
        result = vm.run()
        self._logger.debug("Evaluated %d constants total", len(self._constants))
        return result

    def eval(self, code: str, filename: Optional[str] = None) -> Any:
        """Evaluate Monkey code and return the result.

        Args:
            code: Monkey source code to evaluate
            filename: Name used in syntax error messages

        Returns:
            The result of evaluating the code, converted to Python types

        Raises:
            MonkeySyntaxError: If the code has syntax errors
            MonkeyCompileError: If the code refers to an undefined variable
            MonkeyRuntimeError: If execution fails
        """
        return self._to_python(self.eval_raw(code, filename))

    def disassemble(self, code: str) -> str:
        """Compile code against this context's state and disassemble it."""
        return disassemble(self._compile(code, None).bytecode().instructions)

    def _to_python(self, value: Optional[MonkeyValue]) -> Any:
        """Convert a Monkey value to Python."""
        if value is None or value is NULL:
            return None
        if isinstance(value, MonkeyArray):
            return [self._to_python(elem) for elem in value.elements]
        if isinstance(value, MonkeyHash):
            return {
                pair.key: self._to_python(pair.value)
                for pair in value.pairs.values()
            }
        return value
