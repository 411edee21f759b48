"""
tram runtime - tree-walking interpreter.

This module provides:
- Interpreter: Evaluates programs against a global environment
- Value: Runtime values tagged with a ValueKind
- Environment: Chained frames of variable bindings
- ExecutionContext: Active frame and call depth tracking
- BuiltinRegistry: Natively implemented functions and constants
"""

from .values import (
    Value,
    ValueKind,
    Closure,
    NativeFunction,
    NIL,
    TRUE,
    FALSE,
    int_val,
    float_val,
    bool_val,
    string_val,
    number_val,
    closure_val,
    native_val,
    wrap_value,
    unwrap_value,
    unwrap_values,
    values_equal,
)

from .environment import Environment

from .context import ExecutionContext

from .builtins import (
    BuiltinFunction,
    BuiltinRegistry,
    get_builtin_registry,
)

from .interpreter import (
    Interpreter,
    ExecutionResult,
    run,
)

__all__ = [
    # Values
    'Value',
    'ValueKind',
    'Closure',
    'NativeFunction',
    'NIL',
    'TRUE',
    'FALSE',
    'int_val',
    'float_val',
    'bool_val',
    'string_val',
    'number_val',
    'closure_val',
    'native_val',
    'wrap_value',
    'unwrap_value',
    'unwrap_values',
    'values_equal',

    # Environment
    'Environment',
    'ExecutionContext',

    # Builtins
    'BuiltinFunction',
    'BuiltinRegistry',
    'get_builtin_registry',

    # Interpreter
    'Interpreter',
    'ExecutionResult',
    'run',
]
