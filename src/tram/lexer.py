"""
Lexer for tram.

Converts source text into a stream of tokens for the parser.
Supports:
- Insignificant whitespace (statements may end with an optional ';')
- Single-line comments (#)
- Multi-line comments (/* */), which nest
- String literals with escape sequences
- Integer literals (decimal, hex, binary)
- Float literals (including scientific notation)
- All keywords and operators, with && || ! as aliases for and/or/not
"""

from typing import List, Optional, Iterator
from .tokens import Token, TokenType, SourceLocation, SourceSpan, KEYWORDS
from .errors import (
    error_unexpected_character,
    error_unterminated_string,
    error_unterminated_comment,
    error_invalid_escape_sequence,
    error_invalid_number_literal,
    error_invalid_hex_literal,
    error_invalid_binary_literal,
)


HEX_DIGITS = '0123456789abcdefABCDEF'

ESCAPE_CHARS = {
    'n': '\n',
    't': '\t',
    'r': '\r',
    '\\': '\\',
    '"': '"',
    "'": "'",
    '0': '\0',
}

# Operators that may be followed by '=' to form a second token type
OPERATOR_PAIRS = {
    '+': (TokenType.PLUS, TokenType.PLUS_ASSIGN),
    '-': (TokenType.MINUS, TokenType.MINUS_ASSIGN),
    '/': (TokenType.SLASH, TokenType.SLASH_ASSIGN),
    '%': (TokenType.PERCENT, TokenType.PERCENT_ASSIGN),
    '<': (TokenType.LT, TokenType.LE),
    '>': (TokenType.GT, TokenType.GE),
    '=': (TokenType.ASSIGN, TokenType.EQ),
    '!': (TokenType.NOT, TokenType.NE),
}

SINGLE_CHAR_TOKENS = {
    '(': TokenType.LPAREN,
    ')': TokenType.RPAREN,
    '{': TokenType.LBRACE,
    '}': TokenType.RBRACE,
    ',': TokenType.COMMA,
    ';': TokenType.SEMICOLON,
}


class Lexer:
    """
    Tokenizer for tram source text.

    Usage:
        lexer = Lexer(source_code)
        tokens = lexer.tokenize()

    Or for streaming:
        lexer = Lexer(source_code)
        for token in lexer:
            process(token)

    Every iteration starts over from the beginning of the source; a
    half-consumed stream cannot be resumed by a second loop.
    """

    def __init__(self, source: str, filename: Optional[str] = None):
        self.source = source
        self.filename = filename
        self._lines: Optional[List[str]] = None  # Cached line list
        self._reset()

    def _reset(self) -> None:
        self.pos = 0            # Current position in source
        self.line = 1           # Current line (1-indexed)
        self.column = 1         # Current column (1-indexed)

    @property
    def lines(self) -> List[str]:
        """Lazy-load line list for error reporting."""
        if self._lines is None:
            self._lines = self.source.splitlines()
        return self._lines

    def get_source_line(self, line_num: int) -> Optional[str]:
        """Get a specific line of source (1-indexed)."""
        if 1 <= line_num <= len(self.lines):
            return self.lines[line_num - 1]
        return None

    def _location(self) -> SourceLocation:
        """Get current source location."""
        return SourceLocation(self.line, self.column, self.pos, self.filename)

    def _span(self, start: SourceLocation) -> SourceSpan:
        """Create a span from start to current position."""
        return SourceSpan(start, self._location())

    def _peek(self, offset: int = 0) -> str:
        """Look at character at current position + offset without consuming."""
        idx = self.pos + offset
        if idx >= len(self.source):
            return '\0'
        return self.source[idx]

    def _advance(self) -> str:
        """Consume and return current character."""
        if self.pos >= len(self.source):
            return '\0'
        ch = self.source[self.pos]
        self.pos += 1
        if ch == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _match(self, expected: str) -> bool:
        """Consume character if it matches expected."""
        if not self._is_at_end() and self._peek() == expected:
            self._advance()
            return True
        return False

    def _is_at_end(self) -> bool:
        """Check if we've reached end of source."""
        return self.pos >= len(self.source)

    def _skip_comment(self) -> None:
        """Skip a single-line comment (# to end of line)."""
        while self._peek() != '\n' and not self._is_at_end():
            self._advance()

    def _skip_multiline_comment(self) -> None:
        """Skip /* ... */ comment."""
        start = self._location()
        self._advance()  # consume '/'
        self._advance()  # consume '*'
        depth = 1

        while not self._is_at_end() and depth > 0:
            if self._peek() == '/' and self._peek(1) == '*':
                self._advance()
                self._advance()
                depth += 1
            elif self._peek() == '*' and self._peek(1) == '/':
                self._advance()
                self._advance()
                depth -= 1
            else:
                self._advance()

        if depth > 0:
            raise error_unterminated_comment(
                self._span(start),
                self.get_source_line(start.line)
            )

    def _skip_trivia(self) -> None:
        """Skip whitespace and comments."""
        while not self._is_at_end():
            ch = self._peek()
            if ch in ' \t\r\n':
                self._advance()
            elif ch == '#':
                self._skip_comment()
            elif ch == '/' and self._peek(1) == '*':
                self._skip_multiline_comment()
            else:
                break

    def _make_token(self, token_type: TokenType, value, start: SourceLocation,
                    lexeme: Optional[str] = None) -> Token:
        """Create a token."""
        span = self._span(start)
        if lexeme is None:
            lexeme = self.source[start.offset:self.pos]
        return Token(token_type, value, lexeme, span)

    def _scan_string(self) -> Token:
        """Scan a single-line string literal."""
        start = self._location()
        quote = self._advance()  # consume opening quote

        chars = []
        while not self._is_at_end() and self._peek() != quote:
            ch = self._peek()
            if ch == '\n':
                raise error_unterminated_string(
                    self._span(start),
                    self.get_source_line(start.line)
                )
            if ch == '\\':
                self._advance()  # consume backslash
                chars.append(self._scan_escape_sequence())
            else:
                chars.append(self._advance())

        if self._is_at_end():
            raise error_unterminated_string(
                self._span(start),
                self.get_source_line(start.line)
            )

        self._advance()  # consume closing quote
        return self._make_token(TokenType.STRING_LITERAL, ''.join(chars), start)

    def _scan_escape_sequence(self) -> str:
        """Parse an escape sequence after backslash."""
        esc_start = self._location()
        if self._is_at_end():
            raise error_invalid_escape_sequence(
                "", self._span(esc_start), self.get_source_line(esc_start.line)
            )

        ch = self._advance()
        if ch in ESCAPE_CHARS:
            return ESCAPE_CHARS[ch]
        if ch in 'xu':
            width = 2 if ch == 'x' else 4
            digits = ''
            for _ in range(width):
                if self._peek() not in HEX_DIGITS or self._is_at_end():
                    break
                digits += self._advance()
            if len(digits) != width:
                raise error_invalid_escape_sequence(
                    ch + digits, self._span(esc_start),
                    self.get_source_line(esc_start.line)
                )
            return chr(int(digits, 16))
        raise error_invalid_escape_sequence(
            ch, self._span(esc_start), self.get_source_line(esc_start.line)
        )

    def _scan_number(self) -> Token:
        """Scan a numeric literal (int or float)."""
        start = self._location()

        # Check for hex or binary prefix
        if self._peek() == '0' and self._peek(1) in 'xX':
            return self._scan_prefixed_number(start, HEX_DIGITS, 16)
        if self._peek() == '0' and self._peek(1) in 'bB':
            return self._scan_prefixed_number(start, '01', 2)

        while self._peek().isdigit():
            self._advance()

        is_float = False
        if self._peek() == '.' and self._peek(1).isdigit():
            is_float = True
            self._advance()  # consume '.'
            while self._peek().isdigit():
                self._advance()

        # Scientific notation
        if self._peek() in 'eE':
            is_float = True
            self._advance()
            if self._peek() in '+-':
                self._advance()
            if not self._peek().isdigit():
                lexeme = self.source[start.offset:self.pos]
                raise error_invalid_number_literal(
                    lexeme, self._span(start), self.get_source_line(start.line)
                )
            while self._peek().isdigit():
                self._advance()

        # A number running straight into a letter, e.g. '12abc'
        if self._peek().isalpha() or self._peek() == '_':
            while self._peek().isalnum() or self._peek() == '_':
                self._advance()
            lexeme = self.source[start.offset:self.pos]
            raise error_invalid_number_literal(
                lexeme, self._span(start), self.get_source_line(start.line)
            )

        lexeme = self.source[start.offset:self.pos]
        if is_float:
            return self._make_token(TokenType.FLOAT_LITERAL, float(lexeme), start, lexeme)
        try:
            value = int(lexeme)
        except ValueError:
            # int() refuses decimal text longer than sys.get_int_max_str_digits()
            error = error_invalid_number_literal(
                lexeme[:16] + "...", self._span(start), self.get_source_line(start.line)
            )
            error.diagnostic.hints.append("integer literal has too many digits")
            raise error from None
        return self._make_token(TokenType.INT_LITERAL, value, start, lexeme)

    def _scan_prefixed_number(self, start: SourceLocation, digits: str, base: int) -> Token:
        """Scan a 0x... or 0b... integer literal."""
        self._advance()  # consume '0'
        self._advance()  # consume 'x' or 'b'
        raise_error = error_invalid_hex_literal if base == 16 else error_invalid_binary_literal

        while self._peek().isalnum() or self._peek() == '_':
            self._advance()

        lexeme = self.source[start.offset:self.pos]
        body = lexeme[2:].replace('_', '')
        if not body or any(ch not in digits for ch in body):
            raise raise_error(lexeme, self._span(start), self.get_source_line(start.line))
        return self._make_token(TokenType.INT_LITERAL, int(body, base), start, lexeme)

    def _scan_identifier_or_keyword(self) -> Token:
        """Scan an identifier or keyword."""
        start = self._location()

        while self._peek().isalnum() or self._peek() == '_':
            self._advance()

        lexeme = self.source[start.offset:self.pos]

        if lexeme in KEYWORDS:
            token_type = KEYWORDS[lexeme]
            if token_type == TokenType.BOOL_LITERAL:
                value = lexeme == 'true'
            elif token_type == TokenType.NIL:
                value = None
            else:
                value = lexeme
            return self._make_token(token_type, value, start, lexeme)

        return self._make_token(TokenType.IDENTIFIER, lexeme, start, lexeme)

    def _scan_token(self) -> Token:
        """Scan the next token."""
        self._skip_trivia()

        if self._is_at_end():
            return self._make_token(TokenType.EOF, None, self._location(), "")

        start = self._location()
        ch = self._peek()

        if ch in '"\'':
            return self._scan_string()

        if ch.isdigit():
            return self._scan_number()

        if ch.isalpha() or ch == '_':
            return self._scan_identifier_or_keyword()

        self._advance()

        # '*', '**', '*=', '**='
        if ch == '*':
            if self._match('*'):
                if self._match('='):
                    return self._make_token(TokenType.POWER_ASSIGN, "**=", start)
                return self._make_token(TokenType.DOUBLE_STAR, "**", start)
            if self._match('='):
                return self._make_token(TokenType.STAR_ASSIGN, "*=", start)
            return self._make_token(TokenType.STAR, "*", start)

        if ch == '&' and self._match('&'):
            return self._make_token(TokenType.AND, "&&", start)
        if ch == '|' and self._match('|'):
            return self._make_token(TokenType.OR, "||", start)

        if ch in OPERATOR_PAIRS:
            single, with_equals = OPERATOR_PAIRS[ch]
            if self._match('='):
                return self._make_token(with_equals, ch + '=', start)
            return self._make_token(single, ch, start)

        if ch in SINGLE_CHAR_TOKENS:
            return self._make_token(SINGLE_CHAR_TOKENS[ch], ch, start)

        raise error_unexpected_character(
            ch, self._span(start), self.get_source_line(start.line)
        )

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source, returning a list of tokens."""
        return list(self)

    def __iter__(self) -> Iterator[Token]:
        """Iterate over tokens, starting from the beginning of the source."""
        self._reset()
        while True:
            token = self._scan_token()
            yield token
            if token.type == TokenType.EOF:
                break


def tokenize(source: str, filename: Optional[str] = None) -> List[Token]:
    """
    Convenience function to tokenize source code.

    Args:
        source: The source code to tokenize
        filename: Optional filename for error messages

    Returns:
        List of tokens

    Raises:
        LexerError: If tokenization fails
    """
    lexer = Lexer(source, filename)
    return lexer.tokenize()
