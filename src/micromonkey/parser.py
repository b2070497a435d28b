"""Monkey parser - produces an AST from tokens."""

from typing import List, Optional, Tuple

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
from .errors import MonkeySyntaxError
from .lexer import Lexer
from .tokens import Token, TokenType


# Operator precedence (higher = binds tighter)
PRECEDENCE = {
    "==": 1, "!=": 1,
    "<": 2, ">": 2,
    "+": 3, "-": 3,
    "*": 4, "/": 4,
}

_BINARY_OPERATORS = {
    TokenType.EQ: "==",
    TokenType.NOT_EQ: "!=",
    TokenType.LT: "<",
    TokenType.GT: ">",
    TokenType.PLUS: "+",
    TokenType.MINUS: "-",
    TokenType.ASTERISK: "*",
    TokenType.SLASH: "/",
}


class Parser:
    """Recursive descent parser for Monkey."""

    def __init__(self, source: str, filename: Optional[str] = None):
        self.lexer = Lexer(source, filename)
        self.filename = filename
        self.current: Token = self.lexer.next_token()
        self.previous: Optional[Token] = None

    def _error(self, message: str) -> MonkeySyntaxError:
        """Create a syntax error at current position."""
        return MonkeySyntaxError(message, self.current.line, self.current.column, self.filename)

    def _advance(self) -> Token:
        """Advance to next token and return previous."""
        self.previous = self.current
        self.current = self.lexer.next_token()
        return self.previous

    def _check(self, *types: TokenType) -> bool:
        """Check if current token is one of the given types."""
        return self.current.type in types

    def _match(self, *types: TokenType) -> bool:
        """If current token matches, advance and return True."""
        if self._check(*types):
            self._advance()
            return True
        return False

    def _expect(self, token_type: TokenType, message: str) -> Token:
        """Expect a specific token type or raise error."""
        if self.current.type != token_type:
            raise self._error(message)
        return self._advance()

    def _is_at_end(self) -> bool:
        """Check if we've reached the end of input."""
        return self.current.type == TokenType.EOF

    def parse(self) -> Program:
        """Parse the entire program."""
        statements: List[Node] = []
        while not self._is_at_end():
            statements.append(self._parse_statement())
        return Program(statements)

    # ---- Statements ----

    def _parse_statement(self) -> Node:
        """Parse a statement."""
        if self._match(TokenType.LET):
            return self._parse_let_statement()

        if self._match(TokenType.RETURN):
            return self._parse_return_statement()

        return self._parse_expression_statement()

    def _parse_let_statement(self) -> LetStatement:
        """Parse let statement: let x = value;"""
        name = self._expect(TokenType.IDENT, "Expected identifier after 'let'")
        self._expect(TokenType.ASSIGN, "Expected '=' after let binding name")
        value = self._parse_expression()

        # Let a function literal know the name it is bound to
        if isinstance(value, FunctionLiteral):
            value.name = name.value

        self._match(TokenType.SEMICOLON)
        return LetStatement(Identifier(name.value), value)

    def _parse_return_statement(self) -> ReturnStatement:
        """Parse return statement: return value; or return;"""
        if self._check(TokenType.SEMICOLON, TokenType.RBRACE, TokenType.EOF):
            self._match(TokenType.SEMICOLON)
            return ReturnStatement(None)
        value = self._parse_expression()
        self._match(TokenType.SEMICOLON)
        return ReturnStatement(value)

    def _parse_expression_statement(self) -> ExpressionStatement:
        """Parse expression statement."""
        expr = self._parse_expression()
        self._match(TokenType.SEMICOLON)
        return ExpressionStatement(expr)

    def _parse_block_statement(self) -> BlockStatement:
        """Parse a block statement: { ... }"""
        self._expect(TokenType.LBRACE, "Expected '{'")
        statements: List[Node] = []
        while not self._check(TokenType.RBRACE) and not self._is_at_end():
            statements.append(self._parse_statement())
        self._expect(TokenType.RBRACE, "Expected '}'")
        return BlockStatement(statements)

    # ---- Expressions ----

    def _parse_expression(self) -> Node:
        """Parse an expression."""
        return self._parse_binary_expression(0)

    def _parse_binary_expression(self, min_precedence: int = 0) -> Node:
        """Parse binary expression with operator precedence."""
        left = self._parse_unary_expression()

        while True:
            op = _BINARY_OPERATORS.get(self.current.type)
            if op is None:
                break

            precedence = PRECEDENCE[op]
            if precedence < min_precedence:
                break

            self._advance()
            right = self._parse_binary_expression(precedence + 1)
            left = InfixExpression(op, left, right)

        return left

    def _parse_unary_expression(self) -> Node:
        """Parse prefix expression: -x, !x"""
        if self._check(TokenType.MINUS, TokenType.BANG):
            op = self._advance().value
            right = self._parse_unary_expression()
            return PrefixExpression(op, right)

        return self._parse_postfix_expression()

    def _parse_postfix_expression(self) -> Node:
        """Parse calls and index expressions."""
        expr = self._parse_primary_expression()

        while True:
            if self._match(TokenType.LPAREN):
                args = self._parse_expression_list(TokenType.RPAREN, "Expected ')' after arguments")
                expr = CallExpression(expr, args)
            elif self._match(TokenType.LBRACKET):
                index = self._parse_expression()
                self._expect(TokenType.RBRACKET, "Expected ']' after index")
                expr = IndexExpression(expr, index)
            else:
                break

        return expr

    def _parse_expression_list(self, end: TokenType, message: str) -> List[Node]:
        """Parse comma separated expressions up to the closing token."""
        items: List[Node] = []
        if not self._check(end):
            while True:
                items.append(self._parse_expression())
                if not self._match(TokenType.COMMA):
                    break
        self._expect(end, message)
        return items

    def _parse_primary_expression(self) -> Node:
        """Parse primary expression (literals, identifiers, grouped)."""
        if self._match(TokenType.INT):
            return IntegerLiteral(self.previous.value)

        if self._match(TokenType.STRING):
            return StringLiteral(self.previous.value)

        if self._match(TokenType.TRUE):
            return BooleanLiteral(True)

        if self._match(TokenType.FALSE):
            return BooleanLiteral(False)

        if self._match(TokenType.NULL):
            return NullLiteral()

        if self._match(TokenType.IDENT):
            return Identifier(self.previous.value)

        # Parenthesized expression
        if self._match(TokenType.LPAREN):
            expr = self._parse_expression()
            self._expect(TokenType.RPAREN, "Expected ')' after expression")
            return expr

        if self._match(TokenType.LBRACKET):
            elements = self._parse_expression_list(
                TokenType.RBRACKET, "Expected ']' after array elements"
            )
            return ArrayLiteral(elements)

        if self._match(TokenType.LBRACE):
            return self._parse_hash_literal()

        if self._match(TokenType.IF):
            return self._parse_if_expression()

        if self._match(TokenType.FUNCTION):
            return self._parse_function_literal()

        raise self._error(f"Unexpected token: {self.current.type.name}")

    def _parse_hash_literal(self) -> HashLiteral:
        """Parse hash literal: {key: value, ...}"""
        pairs: List[Tuple[Node, Node]] = []
        while not self._check(TokenType.RBRACE):
            key = self._parse_expression()
            self._expect(TokenType.COLON, "Expected ':' after hash key")
            value = self._parse_expression()
            pairs.append((key, value))
            if not self._match(TokenType.COMMA):
                break
        self._expect(TokenType.RBRACE, "Expected '}' after hash pairs")
        return HashLiteral(pairs)

    def _parse_if_expression(self) -> IfExpression:
        """Parse if expression: if (cond) { ... } else { ... }"""
        self._expect(TokenType.LPAREN, "Expected '(' after 'if'")
        condition = self._parse_expression()
        self._expect(TokenType.RPAREN, "Expected ')' after condition")
        consequence = self._parse_block_statement()
        alternative = None
        if self._match(TokenType.ELSE):
            alternative = self._parse_block_statement()
        return IfExpression(condition, consequence, alternative)

    def _parse_function_literal(self) -> FunctionLiteral:
        """Parse function literal: fn(a, b) { ... }"""
        self._expect(TokenType.LPAREN, "Expected '(' after 'fn'")
        params: List[Identifier] = []
        if not self._check(TokenType.RPAREN):
            while True:
                param = self._expect(TokenType.IDENT, "Expected parameter name")
                params.append(Identifier(param.value))
                if not self._match(TokenType.COMMA):
                    break
        self._expect(TokenType.RPAREN, "Expected ')' after parameters")
        body = self._parse_block_statement()
        return FunctionLiteral(params, body)
