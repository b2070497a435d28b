"""Monkey error types and exceptions."""

from typing import Optional


class MonkeyError(Exception):
    """Base class for all Monkey errors."""

    def __init__(self, message: str = "", name: str = "Error"):
        self.message = message
        self.name = name
        super().__init__(f"{name}: {message}" if message else name)


class MonkeySyntaxError(MonkeyError):
    """Monkey syntax error during lexing or parsing."""

    def __init__(
        self,
        message: str = "",
        line: int = 0,
        column: int = 0,
        filename: Optional[str] = None,
    ):
        self.line = line
        self.column = column
        self.filename = filename
        # Include position in the message if provided
        if line > 0:
            where = f"{filename}:" if filename else ""
            full_message = f"{where}line {line}, column {column}: {message}"
        else:
            full_message = message
        super().__init__(full_message, "SyntaxError")


class MonkeyCompileError(MonkeyError):
    """Error raised while compiling an AST to bytecode."""

    def __init__(self, message: str = ""):
        super().__init__(message, "CompileError")


class MonkeyRuntimeError(MonkeyError):
    """Error that halts the virtual machine."""

    def __init__(self, message: str = ""):
        super().__init__(message, "RuntimeError")


class UnknownOpcodeError(KeyError):
    """Raised when a byte does not name a defined opcode."""

    def __init__(self, opcode: int):
        self.opcode = opcode
        super().__init__(f"opcode {opcode} undefined")

    def __str__(self) -> str:
        return f"opcode {self.opcode} undefined"
