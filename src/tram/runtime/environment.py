"""
Lexical environments.

An Environment is one frame of bindings plus a link to the enclosing
frame. Frames are created for the global scope, for each block, for
each function call, and for the self-name of a named function literal.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional

from .values import Value


@dataclass(eq=False)
class Environment:
    """
    A single frame containing variable bindings.

    Frames form a chain via the `parent` field for lexical scoping.
    Closures hold on to the frame they were defined in, so a frame lives
    as long as any closure that captured it.
    """
    variables: Dict[str, Value] = field(default_factory=dict)
    parent: Optional["Environment"] = None
    name: str = "block"  # For debugging

    def __repr__(self) -> str:
        return f"Environment({self.name!r}, {sorted(self.variables)})"

    def chain(self) -> Iterator["Environment"]:
        """Iterate frames from this one out to the global frame."""
        env = self
        while env is not None:
            yield env
            env = env.parent

    def define(self, name: str, value: Value) -> None:
        """Bind a name in this frame, replacing any binding it already has here."""
        self.variables[name] = value

    def get(self, name: str) -> Optional[Value]:
        """Look up a variable in this frame or enclosing frames."""
        for env in self.chain():
            if name in env.variables:
                return env.variables[name]
        return None

    def assign(self, name: str, value: Value) -> bool:
        """
        Update an existing variable.

        Searches up the chain to find the frame that binds the name.
        Returns True if found and updated, False if not found.
        """
        for env in self.chain():
            if name in env.variables:
                env.variables[name] = value
                return True
        return False

    def contains(self, name: str) -> bool:
        """Check if a variable is bound in this frame or enclosing frames."""
        return any(name in env.variables for env in self.chain())

    def child(self, name: str = "block") -> "Environment":
        """Create a new frame nested inside this one."""
        return Environment(parent=self, name=name)
