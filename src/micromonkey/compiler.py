"""Bytecode compiler - compiles AST to bytecode."""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from .ast_nodes import (
    ArrayLiteral,
    BlockStatement,
    BooleanLiteral,
    CallExpression,
    ExpressionStatement,
    FunctionLiteral,
    HashLiteral,
    Identifier,
    IfExpression,
    IndexExpression,
    InfixExpression,
    IntegerLiteral,
    LetStatement,
    Node,
    NullLiteral,
    PrefixExpression,
    Program,
    ReturnStatement,
    StringLiteral,
)
from .builtins import BUILTINS
from .errors import MonkeyCompileError
from .opcodes import OpCode, make
from .symbol_table import Symbol, SymbolScope, SymbolTable


# Operand value used for jumps until the target is known
_PLACEHOLDER = 9999

# Largest value a 2-byte operand can hold
_MAX_U16 = 0xFFFF


@dataclass
class CompiledFunction:
    """A compiled function body, stored in the constant pool."""
    instructions: bytes
    num_locals: int = 0
    num_parameters: int = 0
    name: str = ""

    def __repr__(self) -> str:
        label = self.name or "anonymous"
        return f"CompiledFunction[{label}]"


@dataclass
class Bytecode:
    """Output of a compilation: instructions plus the constant pool."""
    instructions: bytes
    constants: List[Any]


@dataclass
class EmittedInstruction:
    """Opcode and position of an instruction already in the buffer."""
    opcode: OpCode
    position: int


@dataclass
class CompilationScope:
    """Instruction buffer of one function body being compiled."""
    instructions: bytearray = field(default_factory=bytearray)
    last_instruction: Optional[EmittedInstruction] = None
    previous_instruction: Optional[EmittedInstruction] = None


_INFIX_OPCODES = {
    "+": OpCode.ADD,
    "-": OpCode.SUB,
    "*": OpCode.MUL,
    "/": OpCode.DIV,
    "==": OpCode.EQUAL,
    "!=": OpCode.NOT_EQUAL,
    "<": OpCode.LESS_THAN,
}

_PREFIX_OPCODES = {
    "-": OpCode.MINUS,
    "!": OpCode.BANG,
}


class Compiler:
    """Compiles AST to bytecode."""

    def __init__(
        self,
        symbol_table: Optional[SymbolTable] = None,
        constants: Optional[List[Any]] = None,
    ):
        self._logger = logging.getLogger("Compiler")

        if symbol_table is None:
            symbol_table = SymbolTable()
            for i, builtin in enumerate(BUILTINS):
                symbol_table.define_builtin(i, builtin.name)

        self.symbol_table = symbol_table
        self.constants: List[Any] = constants if constants is not None else []
        self.scopes: List[CompilationScope] = [CompilationScope()]

    @classmethod
    def new_with_state(cls, symbol_table: SymbolTable, constants: List[Any]) -> "Compiler":
        """Create a compiler that continues from an earlier one's symbols and constants."""
        return cls(symbol_table=symbol_table, constants=constants)

    @property
    def scope_index(self) -> int:
        return len(self.scopes) - 1

    def _current_scope(self) -> CompilationScope:
        return self.scopes[-1]

    def current_instructions(self) -> bytearray:
        return self.scopes[-1].instructions

    def bytecode(self) -> Bytecode:
        """Return the instructions of the outermost scope and the constant pool."""
        return Bytecode(bytes(self.current_instructions()), self.constants)

    def compile(self, node: Node) -> None:
        """Compile a node and everything below it."""
        if isinstance(node, Program):
            for stmt in node.statements:
                self.compile(stmt)

        elif isinstance(node, (LetStatement, ReturnStatement, ExpressionStatement, BlockStatement)):
            self._compile_statement(node)

        else:
            self._compile_expression(node)

    # ---- Emitting ----

    def add_constant(self, value: Any) -> int:
        """Append a constant to the pool and return its index."""
        if len(self.constants) > _MAX_U16:
            raise MonkeyCompileError(f"too many constants (limit is {_MAX_U16 + 1})")
        self.constants.append(value)
        return len(self.constants) - 1

    def emit(self, op: OpCode, *operands: int) -> int:
        """Append an instruction, return its position."""
        try:
            instruction = make(op, *operands)
        except ValueError as e:
            raise MonkeyCompileError(str(e)) from e

        scope = self._current_scope()
        pos = len(scope.instructions)
        scope.instructions += instruction

        scope.previous_instruction = scope.last_instruction
        scope.last_instruction = EmittedInstruction(op, pos)
        return pos

    def last_instruction_is(self, op: OpCode) -> bool:
        last = self._current_scope().last_instruction
        return last is not None and last.opcode == op

    def remove_last_pop(self) -> None:
        """Drop the trailing pop so the value stays on the stack."""
        scope = self._current_scope()
        del scope.instructions[scope.last_instruction.position:]
        scope.last_instruction = scope.previous_instruction

    def replace_last_pop_with_return(self) -> None:
        scope = self._current_scope()
        pos = scope.last_instruction.position
        self._replace_instruction(pos, make(OpCode.RETURN_VALUE))
        scope.last_instruction = EmittedInstruction(OpCode.RETURN_VALUE, pos)

    def _replace_instruction(self, pos: int, new_instruction: bytes) -> None:
        instructions = self.current_instructions()
        instructions[pos:pos + len(new_instruction)] = new_instruction

    def change_operand(self, op_pos: int, operand: int) -> None:
        """Rewrite the operand of the instruction at ``op_pos`` in place."""
        op = OpCode(self.current_instructions()[op_pos])
        try:
            new_instruction = make(op, operand)
        except ValueError as e:
            raise MonkeyCompileError(f"jump target {operand} out of range") from e
        self._replace_instruction(op_pos, new_instruction)

    # ---- Scopes ----

    def enter_scope(self) -> None:
        """Start a new function body with its own buffer and symbol table."""
        self.scopes.append(CompilationScope())
        self.symbol_table = SymbolTable(self.symbol_table)

    def leave_scope(self) -> bytes:
        """Finish the current function body and return its instructions."""
        scope = self.scopes.pop()
        self.symbol_table = self.symbol_table.outer
        return bytes(scope.instructions)

    def _load_symbol(self, symbol: Symbol) -> None:
        if symbol.scope == SymbolScope.GLOBAL:
            self.emit(OpCode.GET_GLOBAL, symbol.index)
        elif symbol.scope == SymbolScope.LOCAL:
            self.emit(OpCode.GET_LOCAL, symbol.index)
        elif symbol.scope == SymbolScope.BUILTIN:
            self.emit(OpCode.GET_BUILTIN, symbol.index)
        elif symbol.scope == SymbolScope.FREE:
            self.emit(OpCode.GET_FREE, symbol.index)
        elif symbol.scope == SymbolScope.FUNCTION:
            self.emit(OpCode.CURRENT_CLOSURE)

    # ---- Statements ----

    def _compile_statement(self, node: Node) -> None:
        """Compile a statement."""
        if isinstance(node, ExpressionStatement):
            self._compile_expression(node.expression)
            self.emit(OpCode.POP)

        elif isinstance(node, LetStatement):
            if isinstance(node.value, FunctionLiteral):
                # Defined first so a global function can call itself
                symbol = self.symbol_table.define(node.name.name)
                self._compile_expression(node.value)
            else:
                # let x = x + 1 reads the previous binding
                self._compile_expression(node.value)
                symbol = self.symbol_table.define(node.name.name)
            if symbol.scope == SymbolScope.GLOBAL:
                self.emit(OpCode.SET_GLOBAL, symbol.index)
            else:
                self.emit(OpCode.SET_LOCAL, symbol.index)

        elif isinstance(node, ReturnStatement):
            if node.return_value is None:
                self.emit(OpCode.RETURN)
            else:
                self._compile_expression(node.return_value)
                self.emit(OpCode.RETURN_VALUE)

        elif isinstance(node, BlockStatement):
            for stmt in node.statements:
                self._compile_statement(stmt)

        else:
            raise MonkeyCompileError(f"Cannot compile statement: {type(node).__name__}")

    def _compile_branch(self, block: BlockStatement) -> None:
        """Compile an if/else block so that it leaves exactly one value."""
        self._compile_statement(block)
        if self.last_instruction_is(OpCode.POP):
            self.remove_last_pop()
        elif not self.last_instruction_is(OpCode.RETURN_VALUE) and not self.last_instruction_is(OpCode.RETURN):
            self.emit(OpCode.NULL)

    # ---- Expressions ----

    def _compile_expression(self, node: Node) -> None:
        """Compile an expression."""
        if isinstance(node, IntegerLiteral):
            self.emit(OpCode.CONSTANT, self.add_constant(node.value))

        elif isinstance(node, StringLiteral):
            self.emit(OpCode.CONSTANT, self.add_constant(node.value))

        elif isinstance(node, BooleanLiteral):
            self.emit(OpCode.TRUE if node.value else OpCode.FALSE)

        elif isinstance(node, NullLiteral):
            self.emit(OpCode.NULL)

        elif isinstance(node, Identifier):
            symbol = self.symbol_table.resolve(node.name)
            if symbol is None:
                raise MonkeyCompileError(f"undefined variable {node.name}")
            self._load_symbol(symbol)

        elif isinstance(node, PrefixExpression):
            op = _PREFIX_OPCODES.get(node.operator)
            if op is None:
                raise MonkeyCompileError(f"unknown operator {node.operator}")
            self._compile_expression(node.right)
            self.emit(op)

        elif isinstance(node, InfixExpression):
            if node.operator == ">":
                # a > b is b < a
                self._compile_expression(node.right)
                self._compile_expression(node.left)
                self.emit(OpCode.LESS_THAN)
                return

            op = _INFIX_OPCODES.get(node.operator)
            if op is None:
                raise MonkeyCompileError(f"unknown operator {node.operator}")
            self._compile_expression(node.left)
            self._compile_expression(node.right)
            self.emit(op)

        elif isinstance(node, IfExpression):
            self._compile_expression(node.condition)
            jump_not_truthy = self.emit(OpCode.JUMP_NOT_TRUTHY, _PLACEHOLDER)

            self._compile_branch(node.consequence)

            jump = self.emit(OpCode.JUMP, _PLACEHOLDER)
            self.change_operand(jump_not_truthy, len(self.current_instructions()))

            if node.alternative is None:
                self.emit(OpCode.NULL)
            else:
                self._compile_branch(node.alternative)

            self.change_operand(jump, len(self.current_instructions()))

        elif isinstance(node, ArrayLiteral):
            for element in node.elements:
                self._compile_expression(element)
            self.emit(OpCode.ARRAY, len(node.elements))

        elif isinstance(node, HashLiteral):
            for key, value in node.pairs:
                self._compile_expression(key)
                self._compile_expression(value)
            self.emit(OpCode.HASH, len(node.pairs) * 2)

        elif isinstance(node, IndexExpression):
            self._compile_expression(node.left)
            self._compile_expression(node.index)
            self.emit(OpCode.INDEX)

        elif isinstance(node, FunctionLiteral):
            self._compile_function(node)

        elif isinstance(node, CallExpression):
            self._compile_expression(node.function)
            for arg in node.arguments:
                self._compile_expression(arg)
            self.emit(OpCode.CALL, len(node.arguments))

        else:
            raise MonkeyCompileError(f"Cannot compile expression: {type(node).__name__}")

    def _compile_function(self, node: FunctionLiteral) -> None:
        """Compile a function literal into a closure instruction."""
        self.enter_scope()

        if node.name:
            self.symbol_table.define_function_name(node.name)

        for param in node.parameters:
            self.symbol_table.define(param.name)

        self._compile_statement(node.body)

        if self.last_instruction_is(OpCode.POP):
            self.replace_last_pop_with_return()
        if not (self.last_instruction_is(OpCode.RETURN_VALUE)
                or self.last_instruction_is(OpCode.RETURN)):
            self.emit(OpCode.RETURN)

        free_symbols = self.symbol_table.free_symbols
        num_locals = self.symbol_table.num_definitions
        instructions = self.leave_scope()

        # Captured values are pushed from the enclosing scope, in resolution order
        for symbol in free_symbols:
            self._load_symbol(symbol)

        compiled = CompiledFunction(
            instructions=instructions,
            num_locals=num_locals,
            num_parameters=len(node.parameters),
            name=node.name,
        )
        self._logger.debug(
            "Compiled function %s: %d bytes, %d locals, %d free",
            compiled.name or "<anonymous>",
            len(instructions),
            num_locals,
            len(free_symbols),
        )
        self.emit(OpCode.CLOSURE, self.add_constant(compiled), len(free_symbols))
