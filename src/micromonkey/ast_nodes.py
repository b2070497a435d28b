"""AST node types for the Monkey parser."""

from dataclasses import dataclass
from typing import List, Optional, Tuple


@dataclass
class Node:
    """Base class for all AST nodes."""

    def to_dict(self) -> dict:
        """Convert node to dictionary for testing/serialization."""
        result = {"type": self.__class__.__name__}
        for key, value in self.__dict__.items():
            if isinstance(value, Node):
                result[key] = value.to_dict()
            elif isinstance(value, list):
                result[key] = [
                    _to_dict_item(v)
                    for v in value
                ]
            else:
                result[key] = value
        return result


def _to_dict_item(value):
    if isinstance(value, Node):
        return value.to_dict()
    if isinstance(value, tuple):
        return [_to_dict_item(v) for v in value]
    return value


# Literals
@dataclass
class IntegerLiteral(Node):
    """Integer literal: 42"""
    value: int

    def __str__(self) -> str:
        return str(self.value)


@dataclass
class StringLiteral(Node):
    """String literal: "hello" """
    value: str

    def __str__(self) -> str:
        return self.value


@dataclass
class BooleanLiteral(Node):
    """Boolean literal: true, false"""
    value: bool

    def __str__(self) -> str:
        return "true" if self.value else "false"


@dataclass
class NullLiteral(Node):
    """Null literal: null"""

    def __str__(self) -> str:
        return "null"


@dataclass
class Identifier(Node):
    """Identifier: variable names"""
    name: str

    def __str__(self) -> str:
        return self.name


# Expressions
@dataclass
class PrefixExpression(Node):
    """Prefix expression: -x, !x"""
    operator: str
    right: Node

    def __str__(self) -> str:
        return f"({self.operator}{self.right})"


@dataclass
class InfixExpression(Node):
    """Infix expression: a + b"""
    operator: str
    left: Node
    right: Node

    def __str__(self) -> str:
        return f"({self.left} {self.operator} {self.right})"


@dataclass
class IfExpression(Node):
    """If expression: if (cond) { ... } else { ... }"""
    condition: Node
    consequence: "BlockStatement"
    alternative: Optional["BlockStatement"] = None

    def __str__(self) -> str:
        out = f"if{self.condition} {self.consequence}"
        if self.alternative is not None:
            out += f"else {self.alternative}"
        return out


@dataclass
class FunctionLiteral(Node):
    """Function literal: fn(a, b) { ... }

    ``name`` is filled in by the parser when the literal is the value of a
    let statement, so the body can refer to itself.
    """
    parameters: List[Identifier]
    body: "BlockStatement"
    name: str = ""

    def __str__(self) -> str:
        params = ", ".join(str(p) for p in self.parameters)
        label = f"<{self.name}>" if self.name else ""
        return f"fn{label}({params}) {self.body}"


@dataclass
class CallExpression(Node):
    """Call expression: f(a, b)"""
    function: Node
    arguments: List[Node]

    def __str__(self) -> str:
        args = ", ".join(str(a) for a in self.arguments)
        return f"{self.function}({args})"


@dataclass
class ArrayLiteral(Node):
    """Array literal: [1, 2, 3]"""
    elements: List[Node]

    def __str__(self) -> str:
        return "[" + ", ".join(str(e) for e in self.elements) + "]"


@dataclass
class HashLiteral(Node):
    """Hash literal: {"a": 1}

    Pairs are kept in source order.
    """
    pairs: List[Tuple[Node, Node]]

    def __str__(self) -> str:
        return "{" + ", ".join(f"{k}:{v}" for k, v in self.pairs) + "}"


@dataclass
class IndexExpression(Node):
    """Index expression: arr[1], hash["key"]"""
    left: Node
    index: Node

    def __str__(self) -> str:
        return f"({self.left}[{self.index}])"


# Statements
@dataclass
class LetStatement(Node):
    """Let statement: let x = 5;"""
    name: Identifier
    value: Node

    def __str__(self) -> str:
        return f"let {self.name} = {self.value};"


@dataclass
class ReturnStatement(Node):
    """Return statement: return x; or return;"""
    return_value: Optional[Node] = None

    def __str__(self) -> str:
        if self.return_value is None:
            return "return;"
        return f"return {self.return_value};"


@dataclass
class ExpressionStatement(Node):
    """Expression statement"""
    expression: Node

    def __str__(self) -> str:
        return str(self.expression)


@dataclass
class BlockStatement(Node):
    """Block statement: { ... }"""
    statements: List[Node]

    def __str__(self) -> str:
        return "".join(str(s) for s in self.statements)


@dataclass
class Program(Node):
    """Program node - root of AST"""
    statements: List[Node]

    def __str__(self) -> str:
        return "".join(str(s) for s in self.statements)
