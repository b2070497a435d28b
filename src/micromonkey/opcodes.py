"""Bytecode opcodes for the Monkey VM.

Every instruction is one opcode byte followed by zero or more fixed-width
operands.  Operands are unsigned and encoded most-significant byte first, so
the stream can be decoded from the opcode byte alone.
"""

from dataclasses import dataclass
from enum import IntEnum, auto
from typing import Dict, List, Tuple

from .errors import UnknownOpcodeError


class OpCode(IntEnum):
    """Bytecode operation codes."""

    # Constants
    CONSTANT = auto()         # Push constant from pool: u16 constant index
    TRUE = auto()
    FALSE = auto()
    NULL = auto()

    # Stack
    POP = auto()              # Pop and discard top of stack

    # Arithmetic
    ADD = auto()
    SUB = auto()
    MUL = auto()
    DIV = auto()

    # Comparison (a > b is compiled as b < a)
    EQUAL = auto()
    NOT_EQUAL = auto()
    LESS_THAN = auto()

    # Unary
    MINUS = auto()            # Unary minus
    BANG = auto()             # Logical NOT

    # Control flow
    JUMP_NOT_TRUTHY = auto()  # Pop condition, jump if falsy: u16 absolute offset
    JUMP = auto()             # Unconditional jump: u16 absolute offset

    # Variables
    GET_GLOBAL = auto()       # u16 global slot
    SET_GLOBAL = auto()       # u16 global slot
    GET_LOCAL = auto()        # u8 local slot
    SET_LOCAL = auto()        # u8 local slot
    GET_BUILTIN = auto()      # u8 builtin index
    GET_FREE = auto()         # u8 free variable index
    CURRENT_CLOSURE = auto()  # Push the closure being executed

    # Collections
    ARRAY = auto()            # Build array: u16 element count
    HASH = auto()             # Build hash: u16 key + value count
    INDEX = auto()            # collection, key -> value

    # Functions
    CALL = auto()             # Call: u8 argument count
    RETURN_VALUE = auto()     # Return top of stack
    RETURN = auto()           # Return null
    CLOSURE = auto()          # Make closure: u16 constant index, u8 free count


@dataclass(frozen=True)
class Definition:
    """Mnemonic and operand byte widths of an opcode."""
    name: str
    operand_widths: Tuple[int, ...] = ()

    @property
    def size(self) -> int:
        """Total encoded size of an instruction, opcode byte included."""
        return 1 + sum(self.operand_widths)


DEFINITIONS: Dict[OpCode, Definition] = {
    OpCode.CONSTANT: Definition("constant", (2,)),
    OpCode.TRUE: Definition("true"),
    OpCode.FALSE: Definition("false"),
    OpCode.NULL: Definition("null"),
    OpCode.POP: Definition("pop"),
    OpCode.ADD: Definition("add"),
    OpCode.SUB: Definition("sub"),
    OpCode.MUL: Definition("mul"),
    OpCode.DIV: Definition("div"),
    OpCode.EQUAL: Definition("equal"),
    OpCode.NOT_EQUAL: Definition("not_equal"),
    OpCode.LESS_THAN: Definition("less_than"),
    OpCode.MINUS: Definition("minus"),
    OpCode.BANG: Definition("bang"),
    OpCode.JUMP_NOT_TRUTHY: Definition("jump_not_truthy", (2,)),
    OpCode.JUMP: Definition("jump", (2,)),
    OpCode.GET_GLOBAL: Definition("get_global", (2,)),
    OpCode.SET_GLOBAL: Definition("set_global", (2,)),
    OpCode.GET_LOCAL: Definition("get_local", (1,)),
    OpCode.SET_LOCAL: Definition("set_local", (1,)),
    OpCode.GET_BUILTIN: Definition("get_builtin", (1,)),
    OpCode.GET_FREE: Definition("get_free", (1,)),
    OpCode.CURRENT_CLOSURE: Definition("current_closure"),
    OpCode.ARRAY: Definition("array", (2,)),
    OpCode.HASH: Definition("hash", (2,)),
    OpCode.INDEX: Definition("index"),
    OpCode.CALL: Definition("call", (1,)),
    OpCode.RETURN_VALUE: Definition("return_value"),
    OpCode.RETURN: Definition("return"),
    OpCode.CLOSURE: Definition("closure", (2, 1)),
}


def lookup(op: int) -> Definition:
    """Return the definition for an opcode byte.

    Raises UnknownOpcodeError if the byte names no opcode.
    """
    try:
        return DEFINITIONS[OpCode(op)]
    except ValueError:
        raise UnknownOpcodeError(op) from None


def make(op: OpCode, *operands: int) -> bytes:
    """Encode one instruction.

    The operand count and every operand's range must match the opcode's
    definition; anything else is a programming error and raises ValueError.
    """
    definition = lookup(op)
    widths = definition.operand_widths
    if len(operands) != len(widths):
        raise ValueError(
            f"{definition.name} takes {len(widths)} operand(s), got {len(operands)}"
        )

    instruction = bytearray([op])
    for operand, width in zip(operands, widths):
        if not 0 <= operand < (1 << (8 * width)):
            raise ValueError(
                f"operand {operand} does not fit in {width} byte(s) for {definition.name}"
            )
        instruction += operand.to_bytes(width, "big")
    return bytes(instruction)


def read_uint16(ins: bytes, offset: int) -> int:
    """Read a big-endian 2-byte operand."""
    return (ins[offset] << 8) | ins[offset + 1]


def read_uint8(ins: bytes, offset: int) -> int:
    """Read a 1-byte operand."""
    return ins[offset]


def read_operands(definition: Definition, ins: bytes, offset: int = 0) -> Tuple[List[int], int]:
    """Decode the operands of one instruction.

    ``ins[offset:]`` must start right after the opcode byte.  Returns the
    operand values and the number of bytes consumed.
    """
    operands = []
    pos = offset
    for width in definition.operand_widths:
        if width == 2:
            operands.append(read_uint16(ins, pos))
        elif width == 1:
            operands.append(read_uint8(ins, pos))
        pos += width
    return operands, pos - offset


def _format_instruction(definition: Definition, operands: List[int]) -> str:
    expected = len(definition.operand_widths)
    if len(operands) != expected:
        return f"ERROR: operand len {len(operands)} does not match defined {expected}"
    return " ".join([definition.name] + [str(o) for o in operands])


def disassemble(instructions: bytes) -> str:
    """Render an instruction stream as offset-prefixed lines.

    Each line is ``<offset> <mnemonic> <operands...>`` with a four digit
    offset, for example ``0003 constant 2``.
    """
    lines = []
    i = 0
    while i < len(instructions):
        try:
            definition = lookup(instructions[i])
        except UnknownOpcodeError as e:
            lines.append(f"ERROR: {e}")
            break

        if i + definition.size > len(instructions):
            lines.append(f"{i:04d} ERROR: truncated {definition.name}")
            break

        operands, read = read_operands(definition, instructions, i + 1)
        lines.append(f"{i:04d} {_format_instruction(definition, operands)}")
        i += 1 + read

    return "".join(line + "\n" for line in lines)
