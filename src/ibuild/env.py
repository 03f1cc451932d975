"""Explicit process environment for ibuild.

The inherited environment is captured once in an :class:`Env` and passed
around explicitly. Nothing in ibuild mutates ``os.environ``; PATH changes
and per-architecture overlays produce new mappings instead.
"""

import os
from pathlib import Path
from typing import Dict, Mapping, Optional

from ibuild.errors import EnvInitFailed, NoHomeDir

# Variables that must be present for the toolchain to work at all
REQUIRED_VARS = ("HOME", "PATH")


class Env:
    """Immutable snapshot of the environment handed to external tools.

    Usage:
        env = Env.new()
        env = env.prepend_to_path(Path.home() / ".cargo" / "bin")
        subprocess.run(cmd, env=env.merged({"RUST_BACKTRACE": "1"}))
    """

    def __init__(self, vars: Mapping[str, str]):
        self._vars: Dict[str, str] = dict(vars)

    @classmethod
    def new(cls, source: Optional[Mapping[str, str]] = None) -> "Env":
        """Capture the current process environment.

        Args:
            source: Environment to capture (default: ``os.environ``)

        Raises:
            EnvInitFailed: If HOME or PATH is missing
        """
        source = os.environ if source is None else source
        for var in REQUIRED_VARS:
            if not source.get(var):
                raise EnvInitFailed(var)
        return cls(source)

    @property
    def path(self) -> str:
        return self._vars["PATH"]

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self._vars.get(name, default)

    def prepend_to_path(self, path: Path) -> "Env":
        """Return a new Env whose PATH starts with ``path``."""
        vars = dict(self._vars)
        vars["PATH"] = os.pathsep.join([str(path), self._vars["PATH"]])
        return Env(vars)

    def explicit_env(self) -> Dict[str, str]:
        return dict(self._vars)

    def merged(self, overlay: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """Environment for one subprocess: this Env with ``overlay`` on top."""
        vars = dict(self._vars)
        if overlay:
            vars.update(overlay)
        return vars


def home_dir(env: Optional[Env] = None) -> Path:
    """Resolve the user's home directory.

    Raises:
        NoHomeDir: If no home directory can be determined
    """
    home = env.get("HOME") if env is not None else None
    if home:
        return Path(home)
    try:
        return Path.home()
    except RuntimeError as e:
        raise NoHomeDir(e) from e


def cargo_bin_dir(env: Optional[Env] = None) -> Path:
    return home_dir(env) / ".cargo" / "bin"
