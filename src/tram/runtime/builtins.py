"""
Built-in function registry for the tram interpreter.

Maps global names to natively implemented functions and constants.
Every Interpreter installs its own copy of the registry into its global
environment, so host registrations never leak between interpreters.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .values import (
    Value, ValueKind, NIL,
    int_val, float_val, string_val, number_val, native_val, wrap_value,
)
from .operators import power
from .environment import Environment
from ..errors import EvalError, RuntimeErrorKind, error_type_mismatch, error_domain

logger = logging.getLogger(__name__)


@dataclass
class BuiltinFunction:
    """
    A built-in function with its implementation.

    The implementation is called with the argument Values positionally
    and may return a Value or a plain Python value. An arity of None
    marks a variadic function.
    """
    name: str
    arity: Optional[int]
    implementation: Callable[..., Any]
    doc: str = ""

    def to_value(self) -> Value:
        return native_val(self.name, self.arity, self.implementation, self.doc)


def _number(func_name: str, value: Value):
    """Return the numeric payload of value or raise a type mismatch."""
    if not value.is_number():
        raise error_type_mismatch(
            f"{func_name}() expects a number, got '{value.type_name}'"
        )
    return value.data


def _domain_guarded(func_name: str, fn: Callable,
                    result: Callable[[Any], Value] = number_val) -> Callable[..., Value]:
    """Wrap a math function taking numbers, mapping Python errors to tram ones."""
    def impl(*args: Value) -> Value:
        numbers = [_number(func_name, arg) for arg in args]
        try:
            return result(fn(*numbers))
        except ValueError:
            shown = ", ".join(str(arg) for arg in args)
            raise error_domain(f"math domain error in {func_name}({shown})")
        except OverflowError:
            shown = ", ".join(str(arg) for arg in args)
            raise error_domain(f"{func_name}({shown}) is out of range")
    return impl


class BuiltinRegistry:
    """
    Registry of built-in functions and constants.

    Functions are registered by name and installed as ordinary global
    bindings with install().
    """

    def __init__(self, defaults: bool = True):
        self._functions: Dict[str, BuiltinFunction] = {}
        self._constants: Dict[str, Value] = {}
        if defaults:
            self._register_all()

    def get_function(self, name: str) -> Optional[BuiltinFunction]:
        """Look up a function by name."""
        return self._functions.get(name)

    def get_constant(self, name: str) -> Optional[Value]:
        """Look up a constant by name."""
        return self._constants.get(name)

    def names(self) -> List[str]:
        """All registered names, sorted."""
        return sorted(set(self._functions) | set(self._constants))

    def register(self, name: str, arity: Optional[int],
                 implementation: Callable[..., Any], doc: str = "") -> BuiltinFunction:
        """Register a function, replacing any function or constant of the same name."""
        if name in self._functions or name in self._constants:
            logger.debug("Overwriting builtin %s", name)
        self._constants.pop(name, None)
        func = BuiltinFunction(name, arity, implementation, doc)
        self._functions[name] = func
        return func

    def register_constant(self, name: str, value: Any) -> None:
        """Register a constant, replacing any function or constant of the same name."""
        if name in self._functions or name in self._constants:
            logger.debug("Overwriting builtin %s", name)
        self._functions.pop(name, None)
        self._constants[name] = wrap_value(value)

    def copy(self) -> "BuiltinRegistry":
        """An independent registry with the same entries."""
        other = BuiltinRegistry(defaults=False)
        other._functions = dict(self._functions)
        other._constants = dict(self._constants)
        return other

    def install(self, env: Environment) -> None:
        """Define every entry as a binding in env."""
        for name, value in self._constants.items():
            env.define(name, value)
        for name, func in self._functions.items():
            env.define(name, func.to_value())
        logger.debug("Installed %d builtins into %s",
                     len(self._functions) + len(self._constants), env.name)

    def _register_all(self) -> None:
        """Register all built-in functions."""
        self._register_math_functions()
        self._register_math_constants()
        self._register_utility_functions()

    # --- Math Functions ---

    def _register_math_functions(self) -> None:
        """Register mathematical functions."""

        # Always float, even for integral input
        real = {
            "sin": (1, math.sin, "Sine of x (radians)."),
            "cos": (1, math.cos, "Cosine of x (radians)."),
            "tan": (1, math.tan, "Tangent of x (radians)."),
            "asin": (1, math.asin, "Arc sine of x, in radians."),
            "acos": (1, math.acos, "Arc cosine of x, in radians."),
            "atan": (1, math.atan, "Arc tangent of x, in radians."),
            "atan2": (2, math.atan2, "Arc tangent of y/x, using both signs to pick the quadrant."),
            "sqrt": (1, math.sqrt, "Square root of x."),
            "exp": (1, math.exp, "e raised to the power x."),
            "ln": (1, math.log, "Natural logarithm of x."),
            "log10": (1, math.log10, "Base-10 logarithm of x."),
            "radians": (1, math.radians, "Convert degrees to radians."),
            "degrees": (1, math.degrees, "Convert radians to degrees."),
            "hypot": (2, math.hypot, "Euclidean distance sqrt(x*x + y*y)."),
        }
        for name, (arity, fn, doc) in real.items():
            self.register(name, arity, _domain_guarded(name, fn, float_val), doc)

        # Integer results
        rounding = {
            "floor": (math.floor, "Largest integer not greater than x."),
            "ceil": (math.ceil, "Smallest integer not less than x."),
            "round": (round, "x rounded to the nearest integer, ties to even."),
        }
        for name, (fn, doc) in rounding.items():
            self.register(name, 1, _domain_guarded(name, fn, int_val), doc)

        def _abs(x: Value) -> Value:
            return number_val(abs(_number("abs", x)))

        def _pow(base: Value, exp: Value) -> Value:
            _number("pow", base)
            _number("pow", exp)
            return power(base, exp)

        def _extremum(name: str, pick: Callable) -> Callable[..., Value]:
            def impl(*args: Value) -> Value:
                if not args:
                    raise EvalError(
                        RuntimeErrorKind.ARITY_MISMATCH,
                        f"'{name}' expects at least 1 argument, got 0",
                    )
                for arg in args:
                    _number(name, arg)
                return pick(args, key=lambda v: v.data)
            return impl

        self.register("abs", 1, _abs, "Absolute value of x.")
        self.register("pow", 2, _pow, "base raised to the power exp, like **.")
        self.register("min", None, _extremum("min", min), "Smallest of the arguments.")
        self.register("max", None, _extremum("max", max), "Largest of the arguments.")

    def _register_math_constants(self) -> None:
        self.register_constant("pi", math.pi)
        self.register_constant("tau", math.tau)
        self.register_constant("e", math.e)
        self.register_constant("inf", math.inf)

    # --- Utility Functions ---

    def _register_utility_functions(self) -> None:
        """Register general-purpose functions."""

        def _print_val(*args: Value) -> Value:
            print(" ".join(str(arg) for arg in args))
            return NIL

        def _str(x: Value) -> Value:
            return string_val(str(x))

        def _type(x: Value) -> Value:
            return string_val(x.type_name)

        def _len(s: Value) -> Value:
            if s.kind != ValueKind.STRING:
                raise error_type_mismatch(f"len() expects a string, got '{s.type_name}'")
            return int_val(len(s.data))

        self.register("print", None, _print_val,
                      "Write the arguments separated by spaces; returns nil.")
        self.register("str", 1, _str, "Display form of x as a string.")
        self.register("type", 1, _type, "Name of the type of x.")
        self.register("len", 1, _len, "Number of characters in a string.")


# Default registry shared as a template; interpreters take copies
_registry: Optional[BuiltinRegistry] = None


def get_builtin_registry() -> BuiltinRegistry:
    """Get the default built-in registry."""
    global _registry
    if _registry is None:
        _registry = BuiltinRegistry()
    return _registry
