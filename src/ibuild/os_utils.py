"""OS helpers."""

from pathlib import Path

from ibuild.build.command_runner import CommandRunner
from ibuild.env import Env


def open_file_with(application: str, path: Path, env: Env) -> None:
    """Open ``path`` with a macOS application (`open -a`).

    Raises:
        CommandError: If `open` fails
    """
    CommandRunner(env).run(["open", "-a", application, str(path)])
