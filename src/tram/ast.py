"""
Abstract Syntax Tree (AST) node definitions for tram.

The AST represents the structure of a parsed program, which the
interpreter then evaluates directly. Nodes are frozen and hold their
children in tuples, so a tree never changes after parsing.
"""

from dataclasses import dataclass
from typing import Optional, Tuple, Union, Any, List
from abc import ABC
from .tokens import SourceSpan, TokenType, operator_symbol


# =============================================================================
# Base Classes
# =============================================================================

@dataclass(frozen=True)
class AstNode(ABC):
    """Base class for all AST nodes."""
    span: SourceSpan  # Source location for error reporting

    def accept(self, visitor: "AstVisitor") -> Any:
        """Accept a visitor for traversal."""
        method_name = f"visit_{self.__class__.__name__}"
        method = getattr(visitor, method_name, visitor.generic_visit)
        return method(self)


class AstVisitor(ABC):
    """Base class for AST visitors."""

    def generic_visit(self, node: AstNode) -> Any:
        """Default visit method."""
        raise NotImplementedError(f"No visitor for {node.__class__.__name__}")


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass(frozen=True)
class Expression(AstNode):
    """Base class for all expressions."""
    pass


@dataclass(frozen=True)
class Literal(Expression):
    """A literal value (int, float, string, bool, nil)."""
    value: Union[int, float, str, bool, None]
    literal_type: TokenType  # INT_LITERAL, FLOAT_LITERAL, STRING_LITERAL, BOOL_LITERAL, NIL


@dataclass(frozen=True)
class Identifier(Expression):
    """A variable or function name reference."""
    name: str


@dataclass(frozen=True)
class UnaryOp(Expression):
    """A unary operation (e.g., not x, -n)."""
    operator: TokenType  # MINUS or NOT
    operand: Expression


@dataclass(frozen=True)
class BinaryOp(Expression):
    """An arithmetic or comparison operation (e.g., a + b, x < y)."""
    left: Expression
    operator: TokenType
    right: Expression


@dataclass(frozen=True)
class LogicalOp(Expression):
    """A short-circuiting 'and' / 'or'."""
    left: Expression
    operator: TokenType  # AND or OR
    right: Expression


@dataclass(frozen=True)
class Assignment(Expression):
    """Rebinding of an existing variable: x = value."""
    target: Identifier
    value: Expression


@dataclass(frozen=True)
class Block(Expression):
    """A braced sequence of statements with its own scope.

    The block's value is final_expression when present, otherwise nil.
    """
    statements: Tuple["Statement", ...]
    final_expression: Optional[Expression] = None


@dataclass(frozen=True)
class IfExpr(Expression):
    """Conditional expression: if c then a [else b]."""
    condition: Expression
    then_branch: Expression
    else_branch: Optional[Expression] = None


@dataclass(frozen=True)
class FunctionDef(Expression):
    """A function literal: fn [name](params) body.

    A name, when given, is visible inside the body only.
    """
    parameters: Tuple[str, ...]
    body: Expression
    name: Optional[str] = None


@dataclass(frozen=True)
class FunctionCall(Expression):
    """A call (e.g., sqrt(2), make()(1))."""
    callee: Expression
    arguments: Tuple[Expression, ...]


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass(frozen=True)
class Statement(AstNode):
    """Base class for all statements."""
    pass


@dataclass(frozen=True)
class VarBinding(Statement):
    """A declaration: let name [= initializer]."""
    name: str
    initializer: Optional[Expression] = None


@dataclass(frozen=True)
class ExpressionStatement(Statement):
    """An expression evaluated for its side effects."""
    expression: Expression


@dataclass(frozen=True)
class Program(AstNode):
    """A complete program.

    Shaped like a Block, but evaluated directly in the global environment.
    """
    statements: Tuple[Statement, ...]
    final_expression: Optional[Expression] = None


# =============================================================================
# Visitor Helpers
# =============================================================================

class PrintVisitor(AstVisitor):
    """Debug visitor that renders the AST structure as indented lines."""

    def __init__(self, indent: int = 0, lines: Optional[List[str]] = None):
        self.indent = indent
        self.lines = lines if lines is not None else []

    def _print(self, text: str) -> None:
        self.lines.append("  " * self.indent + text)

    def _child(self) -> "PrintVisitor":
        return PrintVisitor(self.indent + 2, self.lines)

    def generic_visit(self, node: AstNode) -> None:
        self._print(f"{node.__class__.__name__}")
        for name, value in node.__dict__.items():
            if name == "span":
                continue
            if isinstance(value, AstNode):
                self._print(f"  {name}:")
                self._child().generic_visit(value)
            elif isinstance(value, tuple):
                self._print(f"  {name}: [")
                for item in value:
                    if isinstance(item, AstNode):
                        self._child().generic_visit(item)
                    else:
                        self._print(f"    {item!r}")
                self._print("  ]")
            elif isinstance(value, TokenType):
                self._print(f"  {name}: {operator_symbol(value)}")
            else:
                self._print(f"  {name}: {value!r}")


def format_ast(node: AstNode) -> str:
    """Render an AST node as an indented tree."""
    visitor = PrintVisitor()
    visitor.generic_visit(node)
    return "\n".join(visitor.lines)


def print_ast(node: AstNode) -> None:
    """Print an AST node for debugging."""
    print(format_ast(node))
