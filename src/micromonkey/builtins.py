"""Builtin functions available to every Monkey program.

The order of BUILTINS is significant: a builtin's position is the operand of
the get_builtin instruction that loads it.  Argument errors are returned as
MonkeyErrorValue results rather than raised.
"""

from typing import List, Optional

from .values import (
    MonkeyArray,
    MonkeyBuiltin,
    MonkeyErrorValue,
    MonkeyValue,
    inspect,
    type_name,
)


def _wrong_arg_count(got: int, want: int) -> MonkeyErrorValue:
    return MonkeyErrorValue(f"wrong number of arguments. got={got}, want={want}")


def _len(*args: MonkeyValue):
    if len(args) != 1:
        return _wrong_arg_count(len(args), 1)
    arg = args[0]
    if isinstance(arg, str):
        return len(arg)
    if isinstance(arg, MonkeyArray):
        return len(arg.elements)
    return MonkeyErrorValue(f"argument to `len` not supported, got {type_name(arg)}")


def _puts(*args: MonkeyValue):
    for arg in args:
        print(inspect(arg))
    return None


def _array_argument(name: str, args) -> Optional[MonkeyErrorValue]:
    if not isinstance(args[0], MonkeyArray):
        return MonkeyErrorValue(f"argument to `{name}` must be ARRAY, got {type_name(args[0])}")
    return None


def _first(*args: MonkeyValue):
    if len(args) != 1:
        return _wrong_arg_count(len(args), 1)
    error = _array_argument("first", args)
    if error:
        return error
    elements = args[0].elements
    return elements[0] if elements else None


def _last(*args: MonkeyValue):
    if len(args) != 1:
        return _wrong_arg_count(len(args), 1)
    error = _array_argument("last", args)
    if error:
        return error
    elements = args[0].elements
    return elements[-1] if elements else None


def _rest(*args: MonkeyValue):
    if len(args) != 1:
        return _wrong_arg_count(len(args), 1)
    error = _array_argument("rest", args)
    if error:
        return error
    elements = args[0].elements
    if not elements:
        return None
    # Always a new list; never a view onto the argument
    return MonkeyArray(list(elements[1:]))


def _push(*args: MonkeyValue):
    if len(args) != 2:
        return _wrong_arg_count(len(args), 2)
    error = _array_argument("push", args)
    if error:
        return error
    return MonkeyArray(args[0].elements + [args[1]])


BUILTINS: List[MonkeyBuiltin] = [
    MonkeyBuiltin("len", _len),
    MonkeyBuiltin("puts", _puts),
    MonkeyBuiltin("first", _first),
    MonkeyBuiltin("last", _last),
    MonkeyBuiltin("rest", _rest),
    MonkeyBuiltin("push", _push),
]


def get_builtin_by_name(name: str) -> Optional[MonkeyBuiltin]:
    """Return the builtin called ``name``, or None."""
    for builtin in BUILTINS:
        if builtin.name == name:
            return builtin
    return None
