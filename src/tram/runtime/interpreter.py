"""
Tree-walking interpreter for tram.

Evaluates AST nodes directly against Values and Environments. Dispatch
goes through the visitor protocol: every concrete AST node class has a
visit_<ClassName> method here, and a node without one raises
NotImplementedError rather than falling through to a default.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from .values import (
    Value, ValueKind, Closure, NativeFunction, NIL,
    float_val, bool_val, string_val, closure_val, wrap_value,
)
from .environment import Environment
from .context import ExecutionContext
from .builtins import BuiltinFunction, BuiltinRegistry, get_builtin_registry
from .operators import binary_operation, unary_operation, checked_int

from ..ast import (
    AstNode, AstVisitor, Program, Block,
    VarBinding, ExpressionStatement,
    Literal, Identifier, UnaryOp, BinaryOp, LogicalOp, Assignment,
    IfExpr, FunctionDef, FunctionCall,
)
from ..config import Settings
from ..errors import (
    Diagnostic, DslError, EvalError, attach_source,
    error_undefined_variable, error_not_callable,
    error_arity_mismatch, error_stack_overflow,
)
from ..parser import parse_source
from ..tokens import SourceSpan, TokenType

logger = logging.getLogger(__name__)


@dataclass
class ExecutionResult:
    """Result of running a program."""
    success: bool
    value: Optional[Value] = None
    diagnostic: Optional[Diagnostic] = None
    error: Optional[DslError] = None

    @property
    def error_message(self) -> Optional[str]:
        """The rendered diagnostic, if the run failed."""
        if self.diagnostic is None:
            return None
        return self.diagnostic.format()


class Interpreter(AstVisitor):
    """
    Tree-walking interpreter for tram.

    Each interpreter owns its global environment and its own copy of the
    builtin registry; state carries over between execute() calls, which is
    what the REPL relies on.
    """

    def __init__(self, settings: Optional[Settings] = None,
                 registry: Optional[BuiltinRegistry] = None):
        """
        Initialize the interpreter.

        Args:
            settings: Limits such as max_call_depth (defaults to Settings())
            registry: Builtins to install (defaults to the standard set);
                the interpreter works on a copy
        """
        self.settings = settings or Settings()
        self.registry = (registry or get_builtin_registry()).copy()
        self.context = ExecutionContext(max_call_depth=self.settings.max_call_depth)
        self.registry.install(self.context.globals)

    @property
    def globals(self) -> Environment:
        return self.context.globals

    def register(self, name: str, arity: Optional[int],
                 implementation: Callable[..., Any], doc: str = "") -> BuiltinFunction:
        """
        Expose a Python callable to scripts as a global function.

        The implementation receives the argument Values positionally and
        may return a Value or a plain Python value (None, bool, int,
        float, str), which is wrapped.
        """
        func = self.registry.register(name, arity, implementation, doc)
        self.globals.define(name, func.to_value())
        return func

    def execute(self, source: str, filename: Optional[str] = None) -> Value:
        """
        Lex, parse and evaluate source in the global environment.

        Raises:
            LexerError, ParserError, EvalError: with the offending source
                line attached to the diagnostic
        """
        logger.debug("Executing %s", filename or "<input>")
        try:
            program = parse_source(source, filename)
            return self.evaluate(program)
        except DslError as e:
            attach_source(e, source)
            logger.debug("Execution of %s failed: %s", filename or "<input>",
                         e.diagnostic.header)
            raise

    def evaluate(self, node: AstNode, environment: Optional[Environment] = None) -> Value:
        """Evaluate a node in environment (default: the active one)."""
        scope = environment if environment is not None else self.context.current_scope
        with self.context.use_scope(scope), self.context.recursion_headroom():
            try:
                return node.accept(self)
            except RecursionError:
                raise error_stack_overflow(self.context.max_call_depth, node.span) from None

    def call_function(self, func: Value, args: List[Value],
                      span: Optional[SourceSpan] = None) -> Value:
        """Call a function value with already-evaluated arguments."""
        if not func.is_callable():
            raise error_not_callable(func.type_name, span)

        target = func.data
        if target.arity is not None and len(args) != target.arity:
            raise error_arity_mismatch(target.name or "<fn>", target.arity, len(args), span)

        with self.context.enter_call(span):
            if isinstance(target, NativeFunction):
                return self._call_native(target, args, span)
            return self._call_closure(target, args)

    def _call_native(self, func: NativeFunction, args: List[Value],
                     span: Optional[SourceSpan]) -> Value:
        try:
            result = wrap_value(func.implementation(*args))
            if result.kind == ValueKind.INT:
                result = checked_int(result.data)
            return result
        except EvalError as e:
            if span is not None:
                e.with_span(span)
            raise

    def _call_closure(self, closure: Closure, args: List[Value]) -> Value:
        frame = closure.env.child(f"call {closure.name or '<fn>'}")
        for param, arg in zip(closure.definition.parameters, args):
            frame.define(param, arg)
        with self.context.use_scope(frame):
            return closure.definition.body.accept(self)

    def _located(self, span: SourceSpan, fn: Callable[..., Value], *args) -> Value:
        """Run an operator, giving any error it raises the node's span."""
        try:
            return fn(*args)
        except EvalError as e:
            raise e.with_span(span)

    def _run_statements(self, statements, final_expression) -> Value:
        for stmt in statements:
            stmt.accept(self)
        if final_expression is None:
            return NIL
        return final_expression.accept(self)

    # =========================================================================
    # Statements
    # =========================================================================

    def visit_Program(self, node: Program) -> Value:
        return self._run_statements(node.statements, node.final_expression)

    def visit_Block(self, node: Block) -> Value:
        with self.context.new_scope("block"):
            return self._run_statements(node.statements, node.final_expression)

    def visit_VarBinding(self, node: VarBinding) -> Value:
        value = NIL if node.initializer is None else node.initializer.accept(self)
        self.context.current_scope.define(node.name, value)
        return NIL

    def visit_ExpressionStatement(self, node: ExpressionStatement) -> Value:
        return node.expression.accept(self)

    # =========================================================================
    # Expressions
    # =========================================================================

    def visit_Literal(self, node: Literal) -> Value:
        if node.literal_type == TokenType.INT_LITERAL:
            return self._located(node.span, checked_int, node.value)
        if node.literal_type == TokenType.FLOAT_LITERAL:
            return float_val(node.value)
        if node.literal_type == TokenType.STRING_LITERAL:
            return string_val(node.value)
        if node.literal_type == TokenType.BOOL_LITERAL:
            return bool_val(node.value)
        if node.literal_type == TokenType.NIL:
            return NIL
        raise NotImplementedError(f"Unknown literal type: {node.literal_type}")

    def visit_Identifier(self, node: Identifier) -> Value:
        value = self.context.current_scope.get(node.name)
        if value is None:
            raise error_undefined_variable(node.name, node.span)
        return value

    def visit_Assignment(self, node: Assignment) -> Value:
        value = node.value.accept(self)
        if not self.context.current_scope.assign(node.target.name, value):
            raise error_undefined_variable(node.target.name, node.target.span)
        return NIL

    def visit_UnaryOp(self, node: UnaryOp) -> Value:
        operand = node.operand.accept(self)
        return self._located(node.span, unary_operation, node.operator, operand)

    def visit_BinaryOp(self, node: BinaryOp) -> Value:
        left = node.left.accept(self)
        right = node.right.accept(self)
        return self._located(node.span, binary_operation, node.operator, left, right)

    def visit_LogicalOp(self, node: LogicalOp) -> Value:
        left = node.left.accept(self)
        if node.operator == TokenType.AND:
            if not left.is_truthy():
                return left
        elif left.is_truthy():
            return left
        return node.right.accept(self)

    def visit_IfExpr(self, node: IfExpr) -> Value:
        if node.condition.accept(self).is_truthy():
            return node.then_branch.accept(self)
        if node.else_branch is not None:
            return node.else_branch.accept(self)
        return NIL

    def visit_FunctionDef(self, node: FunctionDef) -> Value:
        env = self.context.current_scope
        if node.name is None:
            return closure_val(node, env)
        # The name is bound in a frame of its own so the body can recurse
        # without the literal leaking a binding into the enclosing scope
        env = env.child(f"fn {node.name}")
        value = closure_val(node, env)
        env.define(node.name, value)
        return value

    def visit_FunctionCall(self, node: FunctionCall) -> Value:
        callee = node.callee.accept(self)
        if not callee.is_callable():
            raise error_not_callable(callee.type_name, node.callee.span)
        args = [arg.accept(self) for arg in node.arguments]
        try:
            return self.call_function(callee, args, node.span)
        except RecursionError:
            raise error_stack_overflow(self.context.max_call_depth, node.span) from None


def run(source: str, filename: Optional[str] = None,
        interpreter: Optional[Interpreter] = None) -> ExecutionResult:
    """
    High-level API to run tram source in one call.

        from tram import run

        result = run('let sq = fn(x) x * x; sq(7)')
        if result.success:
            print(result.value)
        else:
            print(result.error_message)

    Script errors (lexing, parsing, evaluation) are reported in the
    result rather than raised.

    Args:
        source: Program text
        filename: Optional filename for error messages
        interpreter: Interpreter to run in (a fresh one by default)

    Returns:
        ExecutionResult with the program's value or its diagnostic
    """
    interpreter = interpreter or Interpreter()
    try:
        value = interpreter.execute(source, filename)
    except DslError as e:
        return ExecutionResult(success=False, diagnostic=e.diagnostic, error=e)
    return ExecutionResult(success=True, value=value)
