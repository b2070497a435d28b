"""
micro-monkey - the Monkey programming language on a bytecode VM

A small dynamically-typed language with first-class closures, arrays and
hashes, compiled to a compact bytecode and executed by a stack-based virtual
machine, implemented entirely in Python with no external dependencies.
"""

__version__ = "0.1.0"

from .compiler import Bytecode, CompiledFunction, Compiler
from .context import Context
from .errors import (
    MonkeyCompileError,
    MonkeyError,
    MonkeyRuntimeError,
    MonkeySyntaxError,
    UnknownOpcodeError,
)
from .lexer import Lexer
from .opcodes import OpCode, disassemble, make, read_operands
from .parser import Parser
from .symbol_table import Symbol, SymbolScope, SymbolTable
from .values import NULL
from .vm import VM, GlobalStore

__all__ = [
    "Bytecode",
    "CompiledFunction",
    "Compiler",
    "Context",
    "GlobalStore",
    "Lexer",
    "MonkeyCompileError",
    "MonkeyError",
    "MonkeyRuntimeError",
    "MonkeySyntaxError",
    "NULL",
    "OpCode",
    "Parser",
    "Symbol",
    "SymbolScope",
    "SymbolTable",
    "UnknownOpcodeError",
    "VM",
    "disassemble",
    "make",
    "read_operands",
]
