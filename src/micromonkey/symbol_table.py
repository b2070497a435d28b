"""Symbol table for the bytecode compiler.

Each function literal being compiled gets its own table, chained to the table
of the enclosing scope.  Resolving a name that lives in an enclosing function
turns it into a free variable of every table between the use and the
definition, so a closure only ever captures values from its direct parent.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional


class SymbolScope(Enum):
    """Address space a symbol lives in."""

    GLOBAL = "GLOBAL"
    LOCAL = "LOCAL"
    FREE = "FREE"
    BUILTIN = "BUILTIN"
    FUNCTION = "FUNCTION"


@dataclass(frozen=True)
class Symbol:
    """A resolved name: where to find it and at which index."""
    name: str
    scope: SymbolScope
    index: int


class SymbolTable:
    """Maps names to symbols for one lexical scope."""

    def __init__(self, outer: Optional["SymbolTable"] = None):
        self.outer = outer
        self.store: Dict[str, Symbol] = {}
        self.num_definitions = 0
        self.free_symbols: List[Symbol] = []

    def define(self, name: str) -> Symbol:
        """Allocate the next global or local slot for ``name``.

        Redefining a name binds it to a fresh slot; the old slot is left as is.
        """
        scope = SymbolScope.GLOBAL if self.outer is None else SymbolScope.LOCAL
        symbol = Symbol(name, scope, self.num_definitions)
        self.store[name] = symbol
        self.num_definitions += 1
        return symbol

    def define_builtin(self, index: int, name: str) -> Symbol:
        """Register a builtin at its fixed index."""
        symbol = Symbol(name, SymbolScope.BUILTIN, index)
        self.store[name] = symbol
        return symbol

    def define_function_name(self, name: str) -> Symbol:
        """Bind the name of the function being compiled to itself."""
        symbol = Symbol(name, SymbolScope.FUNCTION, 0)
        self.store[name] = symbol
        return symbol

    def _define_free(self, original: Symbol) -> Symbol:
        self.free_symbols.append(original)
        symbol = Symbol(original.name, SymbolScope.FREE, len(self.free_symbols) - 1)
        self.store[original.name] = symbol
        return symbol

    def resolve(self, name: str) -> Optional[Symbol]:
        """Look ``name`` up here, then in enclosing tables.

        Returns None when no table defines it.
        """
        symbol = self.store.get(name)
        if symbol is not None or self.outer is None:
            return symbol

        symbol = self.outer.resolve(name)
        if symbol is None:
            return None
        if symbol.scope in (SymbolScope.GLOBAL, SymbolScope.BUILTIN):
            return symbol
        return self._define_free(symbol)
