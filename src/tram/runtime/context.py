"""
Execution context for the tram interpreter.

Tracks the active environment and the call depth while a program runs.
"""

import sys
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Optional

from .environment import Environment
from ..errors import error_stack_overflow
from ..tokens import SourceSpan

# Python frames consumed per tram call, used to size the host recursion limit
FRAMES_PER_CALL = 25
MAX_RECURSION_LIMIT = 10_000


@dataclass
class ExecutionContext:
    """
    The mutable state of one interpreter.

    Tracks:
    - The global environment and the currently active one
    - Call depth against max_call_depth
    """
    globals: Environment = field(default_factory=lambda: Environment(name="global"))
    current_scope: Optional[Environment] = None
    max_call_depth: int = 200
    call_depth: int = 0

    def __post_init__(self):
        if self.current_scope is None:
            self.current_scope = self.globals

    @contextmanager
    def new_scope(self, name: str = "block"):
        """
        Context manager to evaluate inside a new nested frame.

        Usage:
            with ctx.new_scope("block") as env:
                env.define("x", int_val(0))
        """
        with self.use_scope(self.current_scope.child(name)) as env:
            yield env

    @contextmanager
    def use_scope(self, env: Environment):
        """Make env the active frame for the duration of the block."""
        old_scope = self.current_scope
        self.current_scope = env
        try:
            yield env
        finally:
            self.current_scope = old_scope

    @contextmanager
    def enter_call(self, span: Optional[SourceSpan] = None):
        """Count one level of function call, failing past max_call_depth."""
        if self.call_depth >= self.max_call_depth:
            raise error_stack_overflow(self.max_call_depth, span)
        self.call_depth += 1
        try:
            yield
        finally:
            self.call_depth -= 1

    @contextmanager
    def recursion_headroom(self):
        """Raise the host recursion limit enough for max_call_depth tram calls."""
        wanted = min(self.max_call_depth * FRAMES_PER_CALL + 1000, MAX_RECURSION_LIMIT)
        old_limit = sys.getrecursionlimit()
        if wanted > old_limit:
            sys.setrecursionlimit(wanted)
        try:
            yield
        finally:
            sys.setrecursionlimit(old_limit)

