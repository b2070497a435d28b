"""Monkey runtime value types.

Integers, booleans and strings are plain Python ``int``, ``bool`` and ``str``.
Everything else has a small wrapper class here.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from .compiler import CompiledFunction


class MonkeyNull:
    """Monkey null value (singleton)."""

    _instance: Optional["MonkeyNull"] = None

    def __new__(cls) -> "MonkeyNull":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "null"

    def __str__(self) -> str:
        return "null"

    def __bool__(self) -> bool:
        return False


# Singleton instance
NULL = MonkeyNull()


# Type alias for Monkey values
MonkeyValue = Union[
    MonkeyNull,
    bool,
    int,
    str,
    "MonkeyArray",
    "MonkeyHash",
    "MonkeyClosure",
    "MonkeyBuiltin",
    "MonkeyErrorValue",
    "CompiledFunction",
]

HashKey = Tuple[str, Union[bool, int, str]]


class MonkeyArray:
    """Monkey array."""

    def __init__(self, elements: Optional[List[MonkeyValue]] = None):
        self.elements: List[MonkeyValue] = elements if elements is not None else []

    def __len__(self) -> int:
        return len(self.elements)

    def __repr__(self) -> str:
        return f"MonkeyArray({self.elements})"


@dataclass
class HashPair:
    """A key and value as stored in a hash."""
    key: MonkeyValue
    value: MonkeyValue


class MonkeyHash:
    """Monkey hash map.  Keys are integers, booleans or strings."""

    def __init__(self, pairs: Optional[Dict[HashKey, HashPair]] = None):
        self.pairs: Dict[HashKey, HashPair] = pairs if pairs is not None else {}

    def get(self, key: MonkeyValue) -> MonkeyValue:
        """Get the value stored under ``key`` or NULL."""
        pair = self.pairs.get(hash_key(key))
        if pair is None:
            return NULL
        return pair.value

    def __repr__(self) -> str:
        return f"MonkeyHash({self.pairs})"


@dataclass(eq=False)
class MonkeyClosure:
    """A compiled function paired with the free variables it captured."""
    fn: "CompiledFunction"
    free: List[MonkeyValue] = field(default_factory=list)

    def __repr__(self) -> str:
        return f"Closure[{id(self):#x}]"


@dataclass(eq=False)
class MonkeyBuiltin:
    """A host function callable from Monkey code."""
    name: str
    fn: Callable[..., Any]

    def __repr__(self) -> str:
        return f"builtin function {self.name}"


@dataclass
class MonkeyErrorValue:
    """Error returned as a value by a builtin."""
    message: str

    def __repr__(self) -> str:
        return f"ERROR: {self.message}"


def type_name(value: MonkeyValue) -> str:
    """Return the Monkey type name for a value."""
    if value is NULL:
        return "NULL"
    if isinstance(value, bool):
        return "BOOLEAN"
    if isinstance(value, int):
        return "INTEGER"
    if isinstance(value, str):
        return "STRING"
    if isinstance(value, MonkeyArray):
        return "ARRAY"
    if isinstance(value, MonkeyHash):
        return "HASH"
    if isinstance(value, MonkeyClosure):
        return "CLOSURE"
    if isinstance(value, MonkeyBuiltin):
        return "BUILTIN"
    if isinstance(value, MonkeyErrorValue):
        return "ERROR"
    return "COMPILED_FUNCTION"


def is_truthy(value: MonkeyValue) -> bool:
    """Only null and false are falsy."""
    if value is NULL:
        return False
    if isinstance(value, bool):
        return value
    return True


def hash_key(value: MonkeyValue) -> Optional[HashKey]:
    """Return the dictionary key for a hashable value, or None.

    The type name is part of the key so that ``1`` and ``true`` stay apart.
    """
    if isinstance(value, (bool, int, str)):
        return (type_name(value), value)
    return None


def inspect(value: MonkeyValue) -> str:
    """Render a value the way the REPL prints it."""
    if value is NULL:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, str)):
        return str(value)
    if isinstance(value, MonkeyArray):
        return "[" + ", ".join(inspect(e) for e in value.elements) + "]"
    if isinstance(value, MonkeyHash):
        items = (f"{inspect(p.key)}: {inspect(p.value)}" for p in value.pairs.values())
        return "{" + ", ".join(items) + "}"
    return repr(value)
