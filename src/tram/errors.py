"""
Interpreter exceptions and diagnostics.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E4xx: Runtime errors
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List

from termcolor import colored

from .tokens import SourceSpan

ERROR_COLOR = "red"
VALUE_COLOR = "cyan"


class ErrorSeverity(Enum):
    """Severity levels for diagnostics. Every tram diagnostic stops the run."""
    ERROR = "error"


@dataclass
class Diagnostic:
    """A single diagnostic message."""
    code: str                       # E001, E101, E401, etc.
    message: str                    # Human-readable message
    severity: ErrorSeverity
    span: Optional[SourceSpan]
    source_line: Optional[str] = None   # The actual line of source code
    hints: List[str] = field(default_factory=list)

    @property
    def header(self) -> str:
        """The 'location: severity[code]: message' line."""
        if self.span is None:
            return f"{self.severity.value}[{self.code}]: {self.message}"
        return f"{self.span.start}: {self.severity.value}[{self.code}]: {self.message}"

    def caret_lines(self) -> List[str]:
        """Source line and caret underline, or nothing if no source is attached."""
        if self.span is None or self.source_line is None:
            return []
        line_num = str(self.span.start.line)
        col = self.span.start.column
        if self.span.start.line == self.span.end.line:
            end_col = self.span.end.column
        else:
            end_col = len(self.source_line) + 1
        underline_len = max(1, end_col - col)
        return [
            "    |",
            f"{line_num:>3} | {self.source_line}",
            f"    | {' ' * (col - 1)}{'^' * underline_len}",
        ]

    def format(self, show_source: bool = True) -> str:
        """Format the diagnostic for display."""
        parts = [self.header]
        if show_source:
            parts.extend(self.caret_lines())
        for hint in self.hints:
            parts.append(f"    = hint: {hint}")
        return "\n".join(parts)

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict for tooling integration."""
        data = {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "hints": self.hints,
        }
        if self.span is not None:
            data["range"] = {
                "start": {
                    "line": self.span.start.line,
                    "column": self.span.start.column,
                    "offset": self.span.start.offset,
                },
                "end": {
                    "line": self.span.end.line,
                    "column": self.span.end.column,
                    "offset": self.span.end.offset,
                },
            }
        return data


class DslError(Exception):
    """Base exception for all interpreter errors."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    @property
    def span(self) -> Optional[SourceSpan]:
        return self.diagnostic.span

    def __str__(self) -> str:
        return self.diagnostic.format()


class LexerError(DslError):
    """Error during lexical analysis (E0xx)."""
    pass


class ParserError(DslError):
    """Error during parsing (E1xx)."""

    def __init__(self, diagnostic: Diagnostic, expected: Optional[str] = None,
                 found: Optional[str] = None):
        super().__init__(diagnostic)
        self.expected = expected
        self.found = found


class RuntimeErrorKind(Enum):
    """The kinds of error the evaluator can raise."""
    TYPE_MISMATCH = "E401"
    UNDEFINED_VARIABLE = "E402"
    DIVISION_BY_ZERO = "E403"
    NOT_CALLABLE = "E404"
    ARITY_MISMATCH = "E405"
    STACK_OVERFLOW = "E406"
    DOMAIN_ERROR = "E407"

    @property
    def code(self) -> str:
        return self.value

    @property
    def title(self) -> str:
        """CamelCase name, e.g. 'DivisionByZero'."""
        return "".join(part.capitalize() for part in self.name.split("_"))


class EvalError(DslError):
    """Error during evaluation (E4xx)."""

    def __init__(self, kind: RuntimeErrorKind, message: str,
                 span: Optional[SourceSpan] = None, hints: Optional[List[str]] = None):
        diag = Diagnostic(
            code=kind.code,
            message=message,
            severity=ErrorSeverity.ERROR,
            span=span,
            hints=hints or [],
        )
        super().__init__(diag)
        self.kind = kind

    def with_span(self, span: SourceSpan) -> "EvalError":
        """Fill in the position if the raiser did not know it."""
        if self.diagnostic.span is None:
            self.diagnostic.span = span
        return self


def attach_source(error: DslError, source: str) -> DslError:
    """Attach the offending source line to an error's diagnostic, if missing."""
    diag = error.diagnostic
    if diag.source_line is None and diag.span is not None:
        lines = source.splitlines()
        line_num = diag.span.start.line
        if 1 <= line_num <= len(lines):
            diag.source_line = lines[line_num - 1]
    return error


# --- Lexer error codes ---

def error_unexpected_character(char: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E001: Unexpected character."""
    diag = Diagnostic(
        code="E001",
        message=f"unexpected character '{char}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return LexerError(diag)


def error_unterminated_string(span: SourceSpan, source_line: str = None) -> LexerError:
    """E002: Unterminated string literal."""
    diag = Diagnostic(
        code="E002",
        message="unterminated string literal",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["string literals must be closed with matching quotes on the same line"],
    )
    return LexerError(diag)


def error_unterminated_comment(span: SourceSpan, source_line: str = None) -> LexerError:
    """E004: Unterminated block comment."""
    diag = Diagnostic(
        code="E004",
        message="unterminated block comment (expected closing */)",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return LexerError(diag)


def error_invalid_escape_sequence(seq: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E005: Invalid escape sequence in string."""
    diag = Diagnostic(
        code="E005",
        message=f"invalid escape sequence '\\{seq}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["valid escape sequences: \\n, \\t, \\r, \\\", \\', \\\\, \\0, \\x##, \\u####"],
    )
    return LexerError(diag)


def error_invalid_number_literal(text: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E006: Invalid number literal."""
    diag = Diagnostic(
        code="E006",
        message=f"invalid number literal '{text}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return LexerError(diag)


def error_invalid_hex_literal(text: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E007: Invalid hexadecimal literal."""
    diag = Diagnostic(
        code="E007",
        message=f"invalid hexadecimal literal '{text}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["hex literals must contain at least one hex digit: 0x1, 0xFF, etc."],
    )
    return LexerError(diag)


def error_invalid_binary_literal(text: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E008: Invalid binary literal."""
    diag = Diagnostic(
        code="E008",
        message=f"invalid binary literal '{text}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["binary literals must contain only 0 and 1: 0b101, 0b1111, etc."],
    )
    return LexerError(diag)


# --- Parser error codes ---

def error_unexpected_token(expected: str, found: str, span: SourceSpan,
                           source_line: str = None) -> ParserError:
    """E101: Unexpected token."""
    diag = Diagnostic(
        code="E101",
        message=f"expected {expected}, found {found}",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ParserError(diag, expected=expected, found=found)


def error_unexpected_eof(expected: str, span: SourceSpan, source_line: str = None) -> ParserError:
    """E102: Unexpected end of input."""
    diag = Diagnostic(
        code="E102",
        message=f"unexpected end of input, expected {expected}",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ParserError(diag, expected=expected, found="end of input")


def error_invalid_assignment_target(span: SourceSpan, source_line: str = None) -> ParserError:
    """E103: Left side of an assignment is not an identifier."""
    diag = Diagnostic(
        code="E103",
        message="invalid assignment target",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["only a variable name may appear on the left of '='"],
    )
    return ParserError(diag, expected="identifier", found="expression")


def error_nesting_too_deep(limit: int, span: SourceSpan, source_line: str = None) -> ParserError:
    """E104: Expressions nested past the parser's limit."""
    diag = Diagnostic(
        code="E104",
        message=f"expression nested too deeply (limit is {limit} levels)",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["split the expression up with 'let' bindings"],
    )
    return ParserError(diag)


# --- Runtime error codes ---

def error_type_mismatch(message: str, span: SourceSpan = None) -> EvalError:
    """E401: Operand or argument of the wrong kind."""
    return EvalError(RuntimeErrorKind.TYPE_MISMATCH, message, span)


def error_undefined_variable(name: str, span: SourceSpan = None) -> EvalError:
    """E402: Read or assignment of an unbound name."""
    return EvalError(
        RuntimeErrorKind.UNDEFINED_VARIABLE,
        f"undefined variable '{name}'",
        span,
        hints=[f"declare it first with 'let {name} = ...'"],
    )


def error_division_by_zero(span: SourceSpan = None) -> EvalError:
    """E403: Division or modulo by zero."""
    return EvalError(RuntimeErrorKind.DIVISION_BY_ZERO, "division by zero", span)


def error_not_callable(type_name: str, span: SourceSpan = None) -> EvalError:
    """E404: Call of a non-function value."""
    return EvalError(
        RuntimeErrorKind.NOT_CALLABLE,
        f"value of type '{type_name}' is not callable",
        span,
    )


def error_arity_mismatch(name: str, expected: int, found: int,
                         span: SourceSpan = None) -> EvalError:
    """E405: Wrong number of arguments."""
    plural = "" if expected == 1 else "s"
    return EvalError(
        RuntimeErrorKind.ARITY_MISMATCH,
        f"'{name}' expects {expected} argument{plural}, got {found}",
        span,
    )


def error_stack_overflow(depth: int, span: SourceSpan = None) -> EvalError:
    """E406: Call depth limit exceeded."""
    return EvalError(
        RuntimeErrorKind.STACK_OVERFLOW,
        f"stack overflow (call depth exceeded {depth})",
        span,
        hints=["check for recursion without a base case"],
    )


def error_domain(message: str, span: SourceSpan = None) -> EvalError:
    """E407: Numeric result undefined or out of range."""
    return EvalError(RuntimeErrorKind.DOMAIN_ERROR, message, span)


# --- Rendering ---

def _paint(text: str, color: Optional[str], enabled: bool) -> str:
    if not enabled:
        return text
    # Whether to color is decided by Settings, not by termcolor's own tty check
    return colored(text, color, attrs=["bold"], force_color=True)


def render_diagnostic(diag: Diagnostic, color: bool = True) -> str:
    """Format a diagnostic for a terminal, highlighting the label and caret."""
    label = f"{diag.severity.value}[{diag.code}]: "
    header = _paint(label, ERROR_COLOR, color) + diag.message
    if diag.span is not None:
        header = _paint(f"{diag.span.start}: ", None, color) + header

    parts = [header]
    carets = diag.caret_lines()
    if carets:
        parts.extend(carets[:2])
        parts.append(_paint(carets[2], ERROR_COLOR, color))
    for hint in diag.hints:
        parts.append(f"    = hint: {hint}")
    return "\n".join(parts)


def render_value(text: str, color: bool = True) -> str:
    """Format a REPL result for a terminal."""
    return _paint(text, VALUE_COLOR, color)


def render_internal_error(exc: BaseException, color: bool = True) -> str:
    """Format an unexpected Python exception escaping the interpreter."""
    return (_paint("[internal] ", ERROR_COLOR, color)
            + _paint("error: ", ERROR_COLOR, color)
            + f"{type(exc).__name__}: {exc}")
