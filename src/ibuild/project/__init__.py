"""Project initialization for ibuild."""

from .init import UNSUPPORTED_MESSAGE, exec_init

__all__ = ["UNSUPPORTED_MESSAGE", "exec_init"]
