"""Platform abstraction layer."""

from .process import ProcessError, run, run_bytes

__all__ = [
    "ProcessError",
    "run",
    "run_bytes",
]
