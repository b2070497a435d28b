"""Virtual machine for executing Monkey bytecode."""

import logging
from dataclasses import dataclass
from typing import List, Optional

from .builtins import BUILTINS
from .compiler import Bytecode, CompiledFunction
from .errors import MonkeyRuntimeError
from .opcodes import OpCode, read_uint16, read_uint8
from .values import (
    NULL,
    HashPair,
    MonkeyArray,
    MonkeyBuiltin,
    MonkeyClosure,
    MonkeyHash,
    MonkeyValue,
    hash_key,
    is_truthy,
    type_name,
)


STACK_SIZE = 2048
MAX_FRAMES = 1024
GLOBALS_SIZE = 65536

_OPERATOR_SYMBOLS = {
    OpCode.ADD: "+",
    OpCode.SUB: "-",
    OpCode.MUL: "*",
    OpCode.DIV: "/",
    OpCode.EQUAL: "==",
    OpCode.NOT_EQUAL: "!=",
    OpCode.LESS_THAN: "<",
}


class GlobalStore:
    """Fixed-size, index-addressed storage for global variables.

    A store outlives the VMs that use it, so successive evaluations (one VM
    each) can share their globals.
    """

    def __init__(self, size: int = GLOBALS_SIZE):
        self._values: List[MonkeyValue] = [NULL] * size

    def __getitem__(self, index: int) -> MonkeyValue:
        return self._values[index]

    def __setitem__(self, index: int, value: MonkeyValue) -> None:
        self._values[index] = value

    def __len__(self) -> int:
        return len(self._values)


@dataclass
class Frame:
    """Call frame on the call stack."""
    closure: MonkeyClosure
    base_pointer: int  # Stack index of the first local
    ip: int = 0  # Instruction pointer

    @property
    def instructions(self) -> bytes:
        return self.closure.fn.instructions


def _is_integer(value: MonkeyValue) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class VM:
    """Monkey virtual machine."""

    def __init__(
        self,
        bytecode: Bytecode,
        globals: Optional[GlobalStore] = None,
        stack_size: int = STACK_SIZE,
        max_frames: int = MAX_FRAMES,
    ):
        self._logger = logging.getLogger("VM")
        self.constants = bytecode.constants
        self.globals = globals if globals is not None else GlobalStore()
        self.stack_size = stack_size
        self.max_frames = max_frames

        main_fn = CompiledFunction(bytecode.instructions, name="<main>")
        self._main_closure = MonkeyClosure(main_fn)

        self.stack: List[MonkeyValue] = []
        self.frames: List[Frame] = []
        self.last_popped: Optional[MonkeyValue] = None

    def run(self) -> Optional[MonkeyValue]:
        """Run the program and return the last value popped off the stack.

        Returns None if nothing was popped.  Raises MonkeyRuntimeError on a
        type, arity or stack error; globals set before the error keep their
        new values.
        """
        self.stack = []
        self.frames = [Frame(self._main_closure, 0)]
        self.last_popped = None

        try:
            self._execute()
        except MonkeyRuntimeError as e:
            self._logger.debug("Halted on error: %s", e.message)
            raise
        return self.last_popped

    def _execute(self) -> None:
        """Main execution loop."""
        while True:
            frame = self.frames[-1]
            instructions = frame.instructions

            if frame.ip >= len(instructions):
                # Only the main frame can run off its end
                break

            op = instructions[frame.ip]
            frame.ip += 1
            self._execute_opcode(op, instructions, frame)

    def _execute_opcode(self, op: int, ins: bytes, frame: Frame) -> None:
        """Execute a single opcode."""

        # Constants
        if op == OpCode.CONSTANT:
            index = read_uint16(ins, frame.ip)
            frame.ip += 2
            self._push(self.constants[index])

        elif op == OpCode.TRUE:
            self._push(True)

        elif op == OpCode.FALSE:
            self._push(False)

        elif op == OpCode.NULL:
            self._push(NULL)

        # Stack
        elif op == OpCode.POP:
            self.last_popped = self.stack.pop()

        # Arithmetic
        elif op in (OpCode.ADD, OpCode.SUB, OpCode.MUL, OpCode.DIV):
            right = self.stack.pop()
            left = self.stack.pop()
            self._push(self._binary_operation(op, left, right))

        # Comparison
        elif op in (OpCode.EQUAL, OpCode.NOT_EQUAL, OpCode.LESS_THAN):
            right = self.stack.pop()
            left = self.stack.pop()
            self._push(self._comparison(op, left, right))

        # Unary
        elif op == OpCode.BANG:
            self._push(not is_truthy(self.stack.pop()))

        elif op == OpCode.MINUS:
            operand = self.stack.pop()
            if not _is_integer(operand):
                raise MonkeyRuntimeError(f"unsupported type for negation: {type_name(operand)}")
            self._push(-operand)

        # Control flow
        elif op == OpCode.JUMP:
            frame.ip = read_uint16(ins, frame.ip)

        elif op == OpCode.JUMP_NOT_TRUTHY:
            target = read_uint16(ins, frame.ip)
            frame.ip += 2
            if not is_truthy(self.stack.pop()):
                frame.ip = target

        # Variables
        elif op == OpCode.SET_GLOBAL:
            index = read_uint16(ins, frame.ip)
            frame.ip += 2
            self.globals[index] = self.stack.pop()

        elif op == OpCode.GET_GLOBAL:
            index = read_uint16(ins, frame.ip)
            frame.ip += 2
            self._push(self.globals[index])

        elif op == OpCode.SET_LOCAL:
            index = read_uint8(ins, frame.ip)
            frame.ip += 1
            self.stack[frame.base_pointer + index] = self.stack.pop()

        elif op == OpCode.GET_LOCAL:
            index = read_uint8(ins, frame.ip)
            frame.ip += 1
            self._push(self.stack[frame.base_pointer + index])

        elif op == OpCode.GET_BUILTIN:
            index = read_uint8(ins, frame.ip)
            frame.ip += 1
            self._push(BUILTINS[index])

        elif op == OpCode.GET_FREE:
            index = read_uint8(ins, frame.ip)
            frame.ip += 1
            self._push(frame.closure.free[index])

        elif op == OpCode.CURRENT_CLOSURE:
            self._push(frame.closure)

        # Collections
        elif op == OpCode.ARRAY:
            count = read_uint16(ins, frame.ip)
            frame.ip += 2
            self._push(MonkeyArray(self._pop_many(count)))

        elif op == OpCode.HASH:
            count = read_uint16(ins, frame.ip)
            frame.ip += 2
            self._push(self._build_hash(self._pop_many(count)))

        elif op == OpCode.INDEX:
            index = self.stack.pop()
            left = self.stack.pop()
            self._push(self._index(left, index))

        # Functions
        elif op == OpCode.CALL:
            arg_count = read_uint8(ins, frame.ip)
            frame.ip += 1
            self._call(arg_count)

        elif op == OpCode.RETURN_VALUE:
            self._return(self.stack.pop())

        elif op == OpCode.RETURN:
            self._return(NULL)

        elif op == OpCode.CLOSURE:
            const_index = read_uint16(ins, frame.ip)
            free_count = read_uint8(ins, frame.ip + 2)
            frame.ip += 3
            self._push_closure(const_index, free_count)

        else:
            raise NotImplementedError(f"Opcode not implemented: {op}")

    def _push(self, value: MonkeyValue) -> None:
        if len(self.stack) >= self.stack_size:
            raise MonkeyRuntimeError("stack overflow")
        self.stack.append(value)

    def _pop_many(self, count: int) -> List[MonkeyValue]:
        """Pop ``count`` values, returned in the order they were pushed."""
        start = len(self.stack) - count
        values = self.stack[start:]
        del self.stack[start:]
        return values

    def _binary_operation(self, op: int, left: MonkeyValue, right: MonkeyValue) -> MonkeyValue:
        if _is_integer(left) and _is_integer(right):
            if op == OpCode.ADD:
                return left + right
            if op == OpCode.SUB:
                return left - right
            if op == OpCode.MUL:
                return left * right
            if right == 0:
                raise MonkeyRuntimeError("division by zero")
            # Truncate toward zero
            quotient = abs(left) // abs(right)
            return -quotient if (left < 0) != (right < 0) else quotient

        if isinstance(left, str) and isinstance(right, str):
            if op != OpCode.ADD:
                raise MonkeyRuntimeError(f"unknown string operator: {_OPERATOR_SYMBOLS[op]}")
            return left + right

        raise MonkeyRuntimeError(
            f"unsupported types for binary operation: {type_name(left)} {type_name(right)}"
        )

    def _comparison(self, op: int, left: MonkeyValue, right: MonkeyValue) -> bool:
        if _is_integer(left) and _is_integer(right):
            if op == OpCode.EQUAL:
                return left == right
            if op == OpCode.NOT_EQUAL:
                return left != right
            return left < right

        if op == OpCode.LESS_THAN:
            raise MonkeyRuntimeError(
                f"unknown operator: < ({type_name(left)} {type_name(right)})"
            )

        equal = self._values_equal(left, right)
        return equal if op == OpCode.EQUAL else not equal

    def _values_equal(self, left: MonkeyValue, right: MonkeyValue) -> bool:
        """Booleans, null and strings compare by value, everything else by identity."""
        if type_name(left) != type_name(right):
            return False
        if isinstance(left, (bool, str)) or left is NULL:
            return left == right
        return left is right

    def _build_hash(self, items: List[MonkeyValue]) -> MonkeyHash:
        pairs = {}
        for i in range(0, len(items), 2):
            key = items[i]
            value = items[i + 1]
            hashed = hash_key(key)
            if hashed is None:
                raise MonkeyRuntimeError(f"unusable as hash key: {type_name(key)}")
            pairs[hashed] = HashPair(key, value)
        return MonkeyHash(pairs)

    def _index(self, left: MonkeyValue, index: MonkeyValue) -> MonkeyValue:
        """Index an array or hash; misses give NULL."""
        if isinstance(left, MonkeyArray) and _is_integer(index):
            if 0 <= index < len(left.elements):
                return left.elements[index]
            return NULL

        if isinstance(left, MonkeyHash):
            if hash_key(index) is None:
                raise MonkeyRuntimeError(f"unusable as hash key: {type_name(index)}")
            return left.get(index)

        raise MonkeyRuntimeError(f"index operator not supported: {type_name(left)}")

    def _call(self, arg_count: int) -> None:
        """Call the value sitting below ``arg_count`` arguments."""
        callee = self.stack[len(self.stack) - 1 - arg_count]

        if isinstance(callee, MonkeyClosure):
            fn = callee.fn
            if arg_count != fn.num_parameters:
                raise MonkeyRuntimeError(
                    f"wrong number of arguments: want={fn.num_parameters}, got={arg_count}"
                )
            if len(self.frames) >= self.max_frames:
                raise MonkeyRuntimeError(
                    f"stack overflow: maximum call depth of {self.max_frames} exceeded"
                )

            # Arguments become the first locals
            frame = Frame(callee, len(self.stack) - arg_count)
            extra_locals = fn.num_locals - arg_count
            if len(self.stack) + extra_locals > self.stack_size:
                raise MonkeyRuntimeError("stack overflow")
            self.stack.extend([NULL] * extra_locals)
            self.frames.append(frame)

        elif isinstance(callee, MonkeyBuiltin):
            args = self._pop_many(arg_count)
            self.stack.pop()  # The builtin itself
            result = callee.fn(*args)
            self._push(NULL if result is None else result)

        else:
            raise MonkeyRuntimeError("calling non-closure and non-builtin")

    def _return(self, value: MonkeyValue) -> None:
        if len(self.frames) == 1:
            # Top-level return ends the program with this value
            frame = self.frames[0]
            frame.ip = len(frame.instructions)
            self.stack.clear()
            self.last_popped = value
            return

        frame = self.frames.pop()
        # Drop locals, arguments and the callee
        del self.stack[frame.base_pointer - 1:]
        self._push(value)

    def _push_closure(self, const_index: int, free_count: int) -> None:
        fn = self.constants[const_index]
        if not isinstance(fn, CompiledFunction):
            raise MonkeyRuntimeError(f"not a function: {fn!r}")
        free = self._pop_many(free_count)
        self._push(MonkeyClosure(fn, free))
