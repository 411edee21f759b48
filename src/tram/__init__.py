"""
tram - a small dynamically-typed scripting language.

This module provides:
- Lexer: Tokenizes tram source code
- Parser: Builds an AST from tokens
- Interpreter: Evaluates the AST directly (tree-walking)
- run: Lex, parse and evaluate in one call

Usage:
    from tram import run, Interpreter

    result = run('''
        fn fact(n) if n <= 1 then 1 else n * fact(n - 1)
        fact(5)
    ''')
    if result.success:
        print(result.value)          # 120
    else:
        print(result.error_message)

    # Or keep state across calls and expose host functions
    interp = Interpreter()
    interp.register("double", 1, lambda x: x.data * 2)
    interp.execute("let y = double(21)")
"""

import logging
from importlib.metadata import PackageNotFoundError, version

from .tokens import (
    Token,
    TokenType,
    SourceLocation,
    SourceSpan,
    KEYWORDS,
)

from .lexer import (
    Lexer,
    tokenize,
)

from .parser import (
    Parser,
    parse,
    parse_source,
)

from .ast import (
    AstNode,
    AstVisitor,
    Expression,
    Statement,
    Literal,
    Identifier,
    UnaryOp,
    BinaryOp,
    LogicalOp,
    Assignment,
    Block,
    IfExpr,
    FunctionDef,
    FunctionCall,
    VarBinding,
    ExpressionStatement,
    Program,
    format_ast,
    print_ast,
)

from .errors import (
    Diagnostic,
    ErrorSeverity,
    DslError,
    LexerError,
    ParserError,
    EvalError,
    RuntimeErrorKind,
    render_diagnostic,
)

from .config import Settings

from .runtime import (
    Interpreter,
    ExecutionResult,
    run,
    Value,
    ValueKind,
    Environment,
    BuiltinRegistry,
)

try:
    __version__ = version("tram")
except PackageNotFoundError:  # pragma: no cover - handled when package not installed
    __version__ = "unknown"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Tokens
    'Token',
    'TokenType',
    'SourceLocation',
    'SourceSpan',
    'KEYWORDS',

    # Lexer
    'Lexer',
    'tokenize',

    # Parser
    'Parser',
    'parse',
    'parse_source',

    # AST
    'AstNode',
    'AstVisitor',
    'Expression',
    'Statement',
    'Literal',
    'Identifier',
    'UnaryOp',
    'BinaryOp',
    'LogicalOp',
    'Assignment',
    'Block',
    'IfExpr',
    'FunctionDef',
    'FunctionCall',
    'VarBinding',
    'ExpressionStatement',
    'Program',
    'format_ast',
    'print_ast',

    # Errors
    'Diagnostic',
    'ErrorSeverity',
    'DslError',
    'LexerError',
    'ParserError',
    'EvalError',
    'RuntimeErrorKind',
    'render_diagnostic',

    # Config
    'Settings',

    # Runtime
    'Interpreter',
    'ExecutionResult',
    'run',
    'Value',
    'ValueKind',
    'Environment',
    'BuiltinRegistry',
]
