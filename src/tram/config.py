"""Runtime settings, read from the environment."""

import os
import sys
from dataclasses import dataclass
from typing import Mapping, Optional

TRAM_MAX_CALL_DEPTH = "TRAM_MAX_CALL_DEPTH"
TRAM_COLOR = "TRAM_COLOR"
NO_COLOR = "NO_COLOR"

DEFAULT_MAX_CALL_DEPTH = 200

_FALSE_WORDS = ('0', 'false', 'no', 'off')
_TRUE_WORDS = ('1', 'true', 'yes', 'on')


@dataclass
class Settings:
    """Interpreter and driver settings."""
    max_call_depth: int = DEFAULT_MAX_CALL_DEPTH
    color: bool = True

    def __post_init__(self):
        if self.max_call_depth < 1:
            raise ValueError(f"max_call_depth must be positive, got {self.max_call_depth}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None,
                 stream=None) -> "Settings":
        """
        Build settings from environment variables.

        TRAM_MAX_CALL_DEPTH sets the call depth limit. Color output is on
        when stream (stdout by default) is a terminal, and is turned off by
        NO_COLOR or TRAM_COLOR=0. TRAM_COLOR=1 forces it on.
        """
        env = os.environ if environ is None else environ
        stream = sys.stdout if stream is None else stream

        max_depth = DEFAULT_MAX_CALL_DEPTH
        raw = env.get(TRAM_MAX_CALL_DEPTH)
        if raw:
            try:
                max_depth = int(raw)
            except ValueError:
                raise ValueError(f"{TRAM_MAX_CALL_DEPTH} must be an integer, got {raw!r}")
            if max_depth < 1:
                raise ValueError(f"{TRAM_MAX_CALL_DEPTH} must be positive, got {raw!r}")

        color = hasattr(stream, 'isatty') and stream.isatty()
        raw = env.get(TRAM_COLOR)
        if raw:
            word = raw.strip().lower()
            if word in _FALSE_WORDS:
                color = False
            elif word in _TRUE_WORDS:
                color = True
            else:
                raise ValueError(f"{TRAM_COLOR} must be 0 or 1, got {raw!r}")
        if env.get(NO_COLOR):
            color = False

        return cls(max_call_depth=max_depth, color=color)
