"""
Runtime values for the tram interpreter.

A Value pairs a Python payload with a ValueKind tag. Numbers are Python
int/float, strings are Python str, nil is None, and functions are either
a Closure (user-defined) or a NativeFunction (host-implemented).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..ast import FunctionDef
    from .environment import Environment


class ValueKind(Enum):
    """Discriminator for runtime values."""
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    BOOL = "bool"
    NIL = "nil"
    FUNCTION = "function"


@dataclass(eq=False)
class Closure:
    """A user-defined function together with the environment it was defined in."""
    definition: "FunctionDef"
    env: "Environment" = field(repr=False)

    @property
    def name(self) -> Optional[str]:
        return self.definition.name

    @property
    def arity(self) -> int:
        return len(self.definition.parameters)


@dataclass(eq=False)
class NativeFunction:
    """
    A host-implemented function.

    The implementation receives the evaluated argument Values positionally.
    An arity of None accepts any number of arguments.
    """
    name: str
    arity: Optional[int]
    implementation: Callable[..., Any]
    doc: str = ""


_STRING_ESCAPES = {
    '\\': '\\\\',
    '"': '\\"',
    '\n': '\\n',
    '\t': '\\t',
    '\r': '\\r',
    '\0': '\\0',
}


@dataclass(frozen=True)
class Value:
    """
    A runtime value.

    The `data` field holds the Python payload.
    The `kind` field says how to interpret it.
    """
    data: Any
    kind: ValueKind

    def __repr__(self) -> str:
        if self.kind == ValueKind.STRING:
            return '"' + ''.join(_STRING_ESCAPES.get(ch, ch) for ch in self.data) + '"'
        return str(self)

    def __str__(self) -> str:
        """Display form, as written by print."""
        if self.kind == ValueKind.NIL:
            return "nil"
        if self.kind == ValueKind.BOOL:
            return "true" if self.data else "false"
        if self.kind == ValueKind.FLOAT:
            return repr(self.data)
        if self.kind == ValueKind.FUNCTION:
            if isinstance(self.data, NativeFunction):
                return f"<native fn {self.data.name}>"
            if self.data.name:
                return f"<fn {self.data.name}>"
            return "<fn>"
        return str(self.data)

    @property
    def type_name(self) -> str:
        return self.kind.value

    def is_truthy(self) -> bool:
        """Only false and nil are falsy."""
        if self.kind == ValueKind.NIL:
            return False
        if self.kind == ValueKind.BOOL:
            return bool(self.data)
        return True

    def is_number(self) -> bool:
        return self.kind in (ValueKind.INT, ValueKind.FLOAT)

    def is_callable(self) -> bool:
        return self.kind == ValueKind.FUNCTION


NIL = Value(None, ValueKind.NIL)
TRUE = Value(True, ValueKind.BOOL)
FALSE = Value(False, ValueKind.BOOL)


# Convenience constructors for primitive values

def int_val(n: int) -> Value:
    """Create an integer value."""
    return Value(int(n), ValueKind.INT)


def float_val(x: float) -> Value:
    """Create a float value."""
    return Value(float(x), ValueKind.FLOAT)


def bool_val(b: bool) -> Value:
    """Create a boolean value."""
    return TRUE if b else FALSE


def string_val(s: str) -> Value:
    """Create a string value."""
    return Value(str(s), ValueKind.STRING)


def closure_val(definition: "FunctionDef", env: "Environment") -> Value:
    """Create a function value from a function literal and its defining environment."""
    return Value(Closure(definition, env), ValueKind.FUNCTION)


def native_val(name: str, arity: Optional[int],
               implementation: Callable[..., Any], doc: str = "") -> Value:
    """Create a function value backed by a Python callable."""
    return Value(NativeFunction(name, arity, implementation, doc), ValueKind.FUNCTION)


def number_val(x) -> Value:
    """Create an int or float value matching the Python type of x."""
    if isinstance(x, int) and not isinstance(x, bool):
        return int_val(x)
    return float_val(x)


# Conversion between Values and plain Python objects

def wrap_value(data: Any) -> Value:
    """
    Wrap a plain Python object as a Value.

    Values pass through unchanged. Python callables become variadic
    natives that receive unwrapped arguments.
    """
    if isinstance(data, Value):
        return data
    if data is None:
        return NIL
    if isinstance(data, bool):
        return bool_val(data)
    if isinstance(data, int):
        return int_val(data)
    if isinstance(data, float):
        return float_val(data)
    if isinstance(data, str):
        return string_val(data)
    if isinstance(data, (Closure, NativeFunction)):
        return Value(data, ValueKind.FUNCTION)
    if callable(data):
        name = getattr(data, "__name__", "native")

        def call_python(*args: Value) -> Any:
            return data(*unwrap_values(args))

        return native_val(name, None, call_python)
    raise TypeError(f"cannot convert {type(data).__name__} to a tram value")


def unwrap_value(v: Value) -> Any:
    """Extract the raw Python data from a Value."""
    return v.data


def unwrap_values(values: List[Value]) -> List[Any]:
    """Extract raw data from a list of Values."""
    return [v.data for v in values]


def values_equal(left: Value, right: Value) -> bool:
    """
    Equality as seen by == and !=.

    Int and float compare numerically, functions by identity, and values
    of any other differing kinds are simply unequal.
    """
    if left.is_number() and right.is_number():
        return left.data == right.data
    if left.kind != right.kind:
        return False
    if left.kind == ValueKind.FUNCTION:
        return left.data is right.data
    return left.data == right.data
