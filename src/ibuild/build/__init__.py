"""
Build system components for ibuild.

This module provides:
- The Apple target registry and per-target pipeline stages
- Target selection with device fallback
- Xcode build-phase environment synthesis
- External command execution
"""

from .command_runner import CommandError, CommandOutput, CommandRunner
from .selection import call_for_targets_with_fallback, select_targets
from .target import Target, all_targets, default_key, for_arch, lookup, macos, name_list
from .xcode_env import synthesize

__all__ = [
    "CommandError",
    "CommandOutput",
    "CommandRunner",
    "Target",
    "all_targets",
    "call_for_targets_with_fallback",
    "default_key",
    "for_arch",
    "lookup",
    "macos",
    "name_list",
    "select_targets",
    "synthesize",
]
