"""
Recursive descent parser for tram.

Converts a token stream into an Abstract Syntax Tree (AST). Tokens are
pulled from the stream on demand, so a Lexer can be passed in directly
and lexical errors surface at the point the parser reaches them.
"""

from collections import deque
from contextlib import contextmanager
from typing import Deque, Iterable, Iterator, List, Optional
from .tokens import Token, TokenType, SourceSpan, COMPOUND_ASSIGNMENTS
from .ast import (
    # Expressions
    Expression, Literal, Identifier, UnaryOp, BinaryOp, LogicalOp,
    Assignment, Block, IfExpr, FunctionDef, FunctionCall,
    # Statements
    Statement, VarBinding, ExpressionStatement, Program,
)
from .errors import (
    error_unexpected_token,
    error_unexpected_eof,
    error_invalid_assignment_target,
    error_nesting_too_deep,
)
from .lexer import Lexer


LITERAL_TOKENS = {
    TokenType.INT_LITERAL,
    TokenType.FLOAT_LITERAL,
    TokenType.STRING_LITERAL,
    TokenType.BOOL_LITERAL,
    TokenType.NIL,
}

ASSIGNMENT_TOKENS = {TokenType.ASSIGN, *COMPOUND_ASSIGNMENTS}

# Each level costs several Python frames, so this stays well inside the
# default recursion limit
MAX_NESTING_DEPTH = 64


class Parser:
    """
    Recursive descent parser for tram.

    Usage:
        parser = Parser(Lexer(source), source=source)
        program = parser.parse_program()

    The parser implements standard precedence climbing for expressions:
        Lowest:  = += -= ... (right-associative, identifier targets only)
                 or
                 and
                 == !=
                 < > <= >=
                 + -
                 * / %
                 ** (power, right-associative)
        Highest: unary (not -), then call
    """

    # Operator precedence levels (higher = tighter binding)
    PRECEDENCE = {
        TokenType.OR: 1,
        TokenType.AND: 2,
        TokenType.EQ: 3,
        TokenType.NE: 3,
        TokenType.LT: 4,
        TokenType.GT: 4,
        TokenType.LE: 4,
        TokenType.GE: 4,
        TokenType.PLUS: 5,
        TokenType.MINUS: 5,
        TokenType.STAR: 6,
        TokenType.SLASH: 6,
        TokenType.PERCENT: 6,
        TokenType.DOUBLE_STAR: 7,  # Power (right-associative)
    }

    # Right-associative operators
    RIGHT_ASSOCIATIVE = {TokenType.DOUBLE_STAR}

    LOGICAL = {TokenType.AND, TokenType.OR}

    def __init__(self, tokens: Iterable[Token], filename: Optional[str] = None,
                 source: Optional[str] = None):
        self._tokens: Iterator[Token] = iter(tokens)
        self._buffer: Deque[Token] = deque()
        self._eof: Optional[Token] = None
        self._previous: Optional[Token] = None
        self.filename = filename
        self.source = source
        self._lines: Optional[List[str]] = None
        self._depth = 0

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _fill(self, count: int) -> None:
        """Make sure at least count tokens are buffered (EOF repeats)."""
        while len(self._buffer) < count:
            if self._eof is not None:
                self._buffer.append(self._eof)
                continue
            token = next(self._tokens, None)
            if token is None:
                # Stream ended without an EOF token; synthesize one
                end = self._previous.span.end if self._previous else None
                if end is None:
                    raise ValueError("token stream is empty")
                token = Token(TokenType.EOF, None, "", SourceSpan(end, end))
            if token.type == TokenType.EOF:
                self._eof = token
            self._buffer.append(token)

    def _current(self) -> Token:
        """Get current token."""
        return self._peek(0)

    def _peek(self, offset: int = 0) -> Token:
        """Peek at token at current position + offset."""
        self._fill(offset + 1)
        return self._buffer[offset]

    def _is_at_end(self) -> bool:
        """Check if at end of tokens."""
        return self._current().type == TokenType.EOF

    def _check(self, token_type: TokenType) -> bool:
        """Check if current token is of given type."""
        return self._current().type == token_type

    def _check_any(self, *token_types: TokenType) -> bool:
        """Check if current token is any of given types."""
        return self._current().type in token_types

    def _advance(self) -> Token:
        """Consume and return current token."""
        token = self._current()
        if token.type != TokenType.EOF:
            self._buffer.popleft()
        self._previous = token
        return token

    def _consume(self, token_type: TokenType, expected: str) -> Token:
        """Consume token of expected type, or raise error."""
        if self._check(token_type):
            return self._advance()
        self._error(expected)

    def _match(self, *token_types: TokenType) -> Optional[Token]:
        """Consume token if it matches any of the given types."""
        if self._current().type in token_types:
            return self._advance()
        return None

    def _source_line(self, line_num: int) -> Optional[str]:
        if self.source is None:
            return None
        if self._lines is None:
            self._lines = self.source.splitlines()
        if 1 <= line_num <= len(self._lines):
            return self._lines[line_num - 1]
        return None

    def _error(self, expected: str) -> None:
        """Raise a parser error."""
        token = self._current()
        line = self._source_line(token.span.start.line)
        if token.type == TokenType.EOF:
            raise error_unexpected_eof(expected, token.span, line)
        raise error_unexpected_token(expected, token.describe(), token.span, line)

    def _nesting_error(self):
        token = self._current()
        return error_nesting_too_deep(
            MAX_NESTING_DEPTH, token.span, self._source_line(token.span.start.line)
        )

    @contextmanager
    def _nested(self):
        """Enter one level of expression nesting, refusing past the limit."""
        if self._depth >= MAX_NESTING_DEPTH:
            raise self._nesting_error()
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1

    def _span_from(self, start: Token) -> SourceSpan:
        """Create a span from start token to the end of the last consumed token."""
        end_token = self._previous if self._previous is not None else start
        return SourceSpan(start.span.start, end_token.span.end)

    # =========================================================================
    # Expression Parsing (Precedence Climbing)
    # =========================================================================

    def _parse_expression(self) -> Expression:
        """Parse an expression."""
        with self._nested():
            return self._parse_assignment()

    def _parse_assignment(self) -> Expression:
        """Parse an assignment or compound assignment.

        x op= e is desugared to x = x op e.
        """
        expr = self._parse_binary_expr(1)

        if not self._check_any(*ASSIGNMENT_TOKENS):
            return expr

        op = self._advance()
        if not isinstance(expr, Identifier):
            raise error_invalid_assignment_target(
                SourceSpan(expr.span.start, op.span.end),
                self._source_line(expr.span.start.line),
            )

        with self._nested():
            value = self._parse_assignment()
        span = SourceSpan(expr.span.start, value.span.end)
        if op.type in COMPOUND_ASSIGNMENTS:
            value = BinaryOp(
                span=span,
                left=expr,
                operator=COMPOUND_ASSIGNMENTS[op.type],
                right=value,
            )
        return Assignment(span=span, target=expr, value=value)

    def _parse_binary_expr(self, min_precedence: int) -> Expression:
        """Parse binary expressions with precedence climbing."""
        left = self._parse_unary_expr()

        while True:
            op_token = self._current()
            precedence = self.PRECEDENCE.get(op_token.type)

            if precedence is None or precedence < min_precedence:
                break

            self._advance()  # consume operator

            # Right-associative operators use same precedence, others use precedence + 1
            next_precedence = precedence if op_token.type in self.RIGHT_ASSOCIATIVE else precedence + 1
            with self._nested():
                right = self._parse_binary_expr(next_precedence)

            node_type = LogicalOp if op_token.type in self.LOGICAL else BinaryOp
            left = node_type(
                span=SourceSpan(left.span.start, right.span.end),
                left=left,
                operator=op_token.type,
                right=right
            )

        return left

    def _parse_unary_expr(self) -> Expression:
        """Parse unary expressions (not, -)."""
        if self._check_any(TokenType.NOT, TokenType.MINUS):
            op = self._advance()
            with self._nested():
                operand = self._parse_unary_expr()
            return UnaryOp(
                span=SourceSpan(op.span.start, operand.span.end),
                operator=op.type,
                operand=operand
            )

        return self._parse_call_expr()

    def _parse_call_expr(self) -> Expression:
        """Parse a primary followed by any number of argument lists."""
        expr = self._parse_primary_expr()

        while self._check(TokenType.LPAREN):
            args = self._parse_arguments()
            expr = FunctionCall(
                span=SourceSpan(expr.span.start, self._previous.span.end),
                callee=expr,
                arguments=args,
            )

        return expr

    def _parse_arguments(self) -> tuple:
        """Parse a parenthesized argument list."""
        self._consume(TokenType.LPAREN, "'('")

        args = []
        if not self._check(TokenType.RPAREN):
            args.append(self._parse_expression())
            while self._match(TokenType.COMMA):
                if self._check(TokenType.RPAREN):
                    break  # Allow trailing comma
                args.append(self._parse_expression())

        self._consume(TokenType.RPAREN, "')'")
        return tuple(args)

    def _parse_primary_expr(self) -> Expression:
        """Parse primary expressions (literals, identifiers, grouped, etc.)."""
        token = self._current()

        if token.type in LITERAL_TOKENS:
            self._advance()
            return Literal(span=token.span, value=token.value, literal_type=token.type)

        if token.type == TokenType.IDENTIFIER:
            self._advance()
            return Identifier(span=token.span, name=token.value)

        if token.type == TokenType.LPAREN:
            self._advance()
            expr = self._parse_expression()
            self._consume(TokenType.RPAREN, "')'")
            return expr

        if token.type == TokenType.LBRACE:
            return self._parse_block()

        if token.type == TokenType.IF:
            return self._parse_if_expr()

        if token.type == TokenType.FN:
            return self._parse_function_def()

        self._error("expression")

    def _parse_if_expr(self) -> IfExpr:
        """Parse an if expression: if cond then expr [else expr]."""
        start = self._advance()  # consume 'if'
        condition = self._parse_expression()
        self._consume(TokenType.THEN, "'then'")
        then_branch = self._parse_expression()

        else_branch = None
        if self._match(TokenType.ELSE):
            else_branch = self._parse_expression()

        return IfExpr(
            span=self._span_from(start),
            condition=condition,
            then_branch=then_branch,
            else_branch=else_branch
        )

    def _parse_function_def(self) -> FunctionDef:
        """Parse a function literal: fn [name](params) body."""
        start = self._advance()  # consume 'fn'

        name = None
        if self._check(TokenType.IDENTIFIER):
            name = self._advance().value

        self._consume(TokenType.LPAREN, "'('")
        params = []
        if not self._check(TokenType.RPAREN):
            params.append(self._consume(TokenType.IDENTIFIER, "parameter name").value)
            while self._match(TokenType.COMMA):
                if self._check(TokenType.RPAREN):
                    break  # Allow trailing comma
                params.append(self._consume(TokenType.IDENTIFIER, "parameter name").value)
        self._consume(TokenType.RPAREN, "')'")

        body = self._parse_expression()
        return FunctionDef(
            span=self._span_from(start),
            parameters=tuple(params),
            body=body,
            name=name
        )

    def _parse_block(self) -> Block:
        """Parse a brace-delimited block."""
        start = self._consume(TokenType.LBRACE, "'{'")
        statements = self._parse_statements(TokenType.RBRACE)
        self._consume(TokenType.RBRACE, "'}'")

        statements, final_expr = _split_final_expression(statements)
        return Block(
            span=self._span_from(start),
            statements=statements,
            final_expression=final_expr
        )

    # =========================================================================
    # Statement Parsing
    # =========================================================================

    def _parse_statements(self, terminator: TokenType) -> List[Statement]:
        """Parse statements until terminator (or EOF), skipping stray ';'."""
        statements = []
        while True:
            while self._match(TokenType.SEMICOLON):
                pass
            if self._check(terminator) or self._is_at_end():
                break
            statements.append(self._parse_statement())
        return statements

    def _parse_statement(self) -> Statement:
        """Parse a single statement with its optional ';'."""
        if self._check(TokenType.LET):
            stmt = self._parse_var_binding()
        elif self._check(TokenType.FN) and self._peek(1).type == TokenType.IDENTIFIER:
            # fn name(...) body declares name in the current scope
            func = self._parse_function_def()
            stmt = VarBinding(span=func.span, name=func.name, initializer=func)
        else:
            expr = self._parse_expression()
            stmt = ExpressionStatement(span=expr.span, expression=expr)

        self._match(TokenType.SEMICOLON)
        return stmt

    def _parse_var_binding(self) -> VarBinding:
        """Parse let name [= initializer]."""
        start = self._advance()  # consume 'let'
        name = self._consume(TokenType.IDENTIFIER, "variable name").value

        initializer = None
        if self._match(TokenType.ASSIGN):
            initializer = self._parse_expression()

        return VarBinding(
            span=self._span_from(start),
            name=name,
            initializer=initializer
        )

    def parse_program(self) -> Program:
        """Parse a complete program."""
        start = self._current()
        statements = self._parse_statements(TokenType.EOF)
        end = self._consume(TokenType.EOF, "end of input")

        statements, final_expr = _split_final_expression(statements)
        return Program(
            span=SourceSpan(start.span.start, end.span.end),
            statements=statements,
            final_expression=final_expr
        )


def _split_final_expression(statements: List[Statement]) -> tuple:
    """Pull a trailing expression statement out as the block's value."""
    if statements and isinstance(statements[-1], ExpressionStatement):
        return tuple(statements[:-1]), statements[-1].expression
    return tuple(statements), None


def parse(tokens: Iterable[Token], filename: Optional[str] = None,
          source: Optional[str] = None) -> Program:
    """
    Convenience function to parse tokens into a program.

    Args:
        tokens: Tokens from the lexer (a list or a Lexer itself)
        filename: Optional filename for error messages
        source: Optional original source code for error messages

    Returns:
        Parsed Program AST

    Raises:
        ParserError: If parsing fails
    """
    parser = Parser(tokens, filename, source)
    try:
        return parser.parse_program()
    except RecursionError:
        # Called with most of the stack already in use
        raise parser._nesting_error() from None


def parse_source(source: str, filename: Optional[str] = None) -> Program:
    """Lex and parse source text in one pass."""
    return parse(Lexer(source, filename), filename, source)
