"""Monkey lexer (tokenizer)."""

from typing import Iterator, Optional

from .errors import MonkeySyntaxError
from .tokens import KEYWORDS, Token, TokenType


class Lexer:
    """Tokenizes Monkey source code."""

    def __init__(self, source: str, filename: Optional[str] = None):
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.column = 1
        self.length = len(source)

    def _error(self, message: str, line: int, column: int) -> MonkeySyntaxError:
        return MonkeySyntaxError(message, line, column, self.filename)

    def _current(self) -> str:
        """Get current character or empty string if at end."""
        if self.pos >= self.length:
            return ""
        return self.source[self.pos]

    def _peek(self, offset: int = 1) -> str:
        """Peek ahead at character."""
        pos = self.pos + offset
        if pos >= self.length:
            return ""
        return self.source[pos]

    def _advance(self) -> str:
        """Advance and return current character."""
        if self.pos >= self.length:
            return ""
        ch = self.source[self.pos]
        self.pos += 1
        if ch == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _skip_whitespace(self) -> None:
        """Skip whitespace and line comments."""
        while self.pos < self.length:
            ch = self._current()

            if ch in " \t\r\n":
                self._advance()
                continue

            if ch == "/" and self._peek() == "/":
                while self._current() and self._current() != "\n":
                    self._advance()
                continue

            break

    def _read_string(self) -> str:
        """Read a double-quoted string literal."""
        line = self.line
        column = self.column
        result = []
        self._advance()  # Skip opening quote

        while self._current() and self._current() != '"':
            ch = self._advance()

            if ch == "\\":
                escape = self._advance()
                if escape == "n":
                    result.append("\n")
                elif escape == "r":
                    result.append("\r")
                elif escape == "t":
                    result.append("\t")
                elif escape == "\\":
                    result.append("\\")
                elif escape == '"':
                    result.append('"')
                else:
                    # Unknown escape - keep it verbatim
                    result.append("\\" + escape)
            else:
                result.append(ch)

        if not self._current():
            raise self._error("Unterminated string literal", line, column)

        self._advance()  # Skip closing quote
        return "".join(result)

    def _read_number(self) -> int:
        """Read an integer literal."""
        start = self.pos
        while self._current() and self._current().isdigit():
            self._advance()
        return int(self.source[start:self.pos])

    def _read_identifier(self) -> str:
        """Read an identifier."""
        start = self.pos
        while self._current() and (self._current().isalnum() or self._current() == "_"):
            self._advance()
        return self.source[start:self.pos]

    def next_token(self) -> Token:
        """Get the next token."""
        self._skip_whitespace()

        line = self.line
        column = self.column

        if self.pos >= self.length:
            return Token(TokenType.EOF, None, line, column)

        ch = self._current()

        if ch == '"':
            value = self._read_string()
            return Token(TokenType.STRING, value, line, column)

        if ch.isdigit():
            value = self._read_number()
            return Token(TokenType.INT, value, line, column)

        if ch.isalpha() or ch == "_":
            value = self._read_identifier()
            token_type = KEYWORDS.get(value, TokenType.IDENT)
            return Token(token_type, value, line, column)

        self._advance()

        # Two character operators
        if ch == "=" and self._current() == "=":
            self._advance()
            return Token(TokenType.EQ, "==", line, column)

        if ch == "!" and self._current() == "=":
            self._advance()
            return Token(TokenType.NOT_EQ, "!=", line, column)

        single_char_tokens = {
            "=": TokenType.ASSIGN,
            "+": TokenType.PLUS,
            "-": TokenType.MINUS,
            "!": TokenType.BANG,
            "*": TokenType.ASTERISK,
            "/": TokenType.SLASH,
            "<": TokenType.LT,
            ">": TokenType.GT,
            "(": TokenType.LPAREN,
            ")": TokenType.RPAREN,
            "{": TokenType.LBRACE,
            "}": TokenType.RBRACE,
            "[": TokenType.LBRACKET,
            "]": TokenType.RBRACKET,
            ";": TokenType.SEMICOLON,
            ",": TokenType.COMMA,
            ":": TokenType.COLON,
        }

        if ch in single_char_tokens:
            return Token(single_char_tokens[ch], ch, line, column)

        raise self._error(f"Unexpected character: {ch!r}", line, column)

    def tokenize(self) -> Iterator[Token]:
        """Tokenize the entire source."""
        while True:
            token = self.next_token()
            yield token
            if token.type == TokenType.EOF:
                break
