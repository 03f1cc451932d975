"""CLI utility functions for ibuild.

This module provides common utilities used across CLI commands including:
- Parsing of the values Xcode passes to `xcode-script`
- Logging setup from the global verbosity flag
- Error report formatting
"""

import logging
import sys
from typing import List, Sequence

from ibuild.errors import Report
from ibuild.opts import NoiseLevel

# `PLATFORM_DISPLAY_NAME` when Xcode builds for the Mac
MACOS_PLATFORM_DISPLAY_NAME = "macOS"


def macos_from_platform(platform: str) -> bool:
    """Whether Xcode's `PLATFORM_DISPLAY_NAME` denotes the macOS host."""
    return platform == MACOS_PLATFORM_DISPLAY_NAME


def split_arches(values: Sequence[str]) -> List[str]:
    """Flatten `ARCHS` values; Xcode passes them space-separated."""
    arches = []
    for value in values:
        arches.extend(value.split())
    return arches


def configure_logging(noise_level: NoiseLevel) -> None:
    """Set up root logging for the process.

    Args:
        noise_level: 0 -v -> WARNING, -v -> INFO, -vv -> DEBUG
    """
    level = {
        NoiseLevel.POLITE: logging.WARNING,
        NoiseLevel.LOUD_AND_PROUD: logging.INFO,
        NoiseLevel.FRANKLY_QUITE_PEDANTIC: logging.DEBUG,
    }[noise_level]
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s", force=True)


class ErrorFormatter:
    """Formats and displays error messages with ANSI color codes."""

    # ANSI color codes
    RED = "\033[1;31m"
    GREEN = "\033[1;32m"
    YELLOW = "\033[1;33m"
    RESET = "\033[0m"

    @staticmethod
    def print_error(title: str, message: str) -> None:
        """Print formatted error message.

        Args:
            title: Error title (e.g., "Failed to build via `xcodebuild`")
            message: Error message details
        """
        print()
        print(f"{ErrorFormatter.RED}✗ {title}{ErrorFormatter.RESET}")
        print()
        print(message)
        print()

    @staticmethod
    def print_success(message: str) -> None:
        print()
        print(f"{ErrorFormatter.GREEN}✓ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def print_warning(message: str) -> None:
        print()
        print(f"{ErrorFormatter.YELLOW}✗ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def print_report(report: Report) -> None:
        """Print a Report; action requests are yellow, errors red."""
        if report.kind == "action_request":
            print()
            print(f"{ErrorFormatter.YELLOW}! {report.msg}{ErrorFormatter.RESET}")
            print()
            print(report.details)
            print()
        else:
            ErrorFormatter.print_error(report.msg, report.details)

    @staticmethod
    def handle_keyboard_interrupt() -> None:
        """Handle KeyboardInterrupt with standard formatting."""
        ErrorFormatter.print_warning("Interrupted")
        sys.exit(130)  # Standard exit code for SIGINT

    @staticmethod
    def handle_unexpected_error(error: Exception, verbose: bool = False) -> None:
        """Handle unexpected errors with standard formatting.

        Args:
            error: The exception to handle
            verbose: Whether to print traceback
        """
        message = f"{type(error).__name__}: {error}"
        ErrorFormatter.print_error("Unexpected error", message)

        if verbose:
            import traceback

            print("Traceback:")
            print(traceback.format_exc())

        sys.exit(1)
