"""Command Runner.

This module runs the external tools ibuild drives (cargo, xcodebuild,
ios-deploy, xcodegen, ditto) as child processes.

Design:
    - Wraps subprocess.Popen with an explicit, merged environment
    - Streams tool output unless asked to capture it
    - Raises CommandError carrying the command, return code and stderr
    - Terminates the whole child process tree on KeyboardInterrupt (psutil)
"""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional, Sequence, Union

import psutil

from ibuild.env import Env


class CommandError(Exception):
    """Raised when an external command can't be started or exits non-zero."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: Optional[int] = None,
        stderr: str = "",
        reason: str = "",
        stdout: str = "",
    ):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr
        self.stdout = stdout
        self.reason = reason
        super().__init__(self._format())

    def _format(self) -> str:
        cmd = " ".join(self.command)
        if self.reason:
            return f"`{cmd}` couldn't be run: {self.reason}"
        message = f"`{cmd}` exited with code {self.returncode}"
        if self.stderr.strip():
            message += f"\n{self.stderr.strip()}"
        return message


@dataclass
class CommandOutput:
    """Result of a successful command."""

    stdout: str
    stderr: str
    returncode: int


def kill_process_tree(pid: int, timeout: float = 3) -> int:
    """Terminate a process and all of its descendants.

    Children are terminated before their parents; anything still alive
    after ``timeout`` seconds is killed.

    Args:
        pid: Root process ID
        timeout: Seconds to wait for graceful termination

    Returns:
        Number of processes signalled
    """
    try:
        root = psutil.Process(pid)
        procs = root.children(recursive=True) + [root]
    except psutil.NoSuchProcess:
        return 0

    signalled: List[psutil.Process] = []
    for proc in reversed(procs):
        try:
            proc.terminate()
            signalled.append(proc)
            logging.debug(f"Terminated process {proc.pid}")
        except psutil.NoSuchProcess:
            pass

    _gone, alive = psutil.wait_procs(signalled, timeout=timeout)
    for proc in alive:
        try:
            proc.kill()
            logging.warning(f"Force killed stubborn process {proc.pid}")
        except psutil.NoSuchProcess:
            pass

    return len(signalled)


class CommandRunner:
    """Runs external commands against an explicit environment.

    Usage:
        runner = CommandRunner(env)
        runner.run(["cargo", "check", "--target", "aarch64-apple-ios"])
        output = runner.run(["ios-deploy", "--detect", "--json"], capture=True)
    """

    def __init__(self, env: Env):
        self.env = env

    def run(
        self,
        command: Sequence[Union[str, Path]],
        overlay: Optional[Mapping[str, str]] = None,
        cwd: Optional[Path] = None,
        capture: bool = False,
    ) -> CommandOutput:
        """Run a command to completion.

        Args:
            command: Program and arguments
            overlay: Extra environment variables layered over the Env
            cwd: Working directory
            capture: Capture stdout/stderr instead of inheriting the terminal

        Returns:
            CommandOutput (stdout/stderr are empty when not capturing)

        Raises:
            CommandError: If the command can't be started or exits non-zero
        """
        cmd = [str(part) for part in command]
        logging.info(f"Running: {' '.join(cmd)}")
        if overlay:
            for key in sorted(overlay):
                logging.debug(f"  {key}={overlay[key]}")

        pipe = subprocess.PIPE if capture else None
        try:
            proc = subprocess.Popen(
                cmd,
                cwd=cwd,
                env=self.env.merged(overlay),
                stdout=pipe,
                stderr=pipe,
                text=True,
            )
        except OSError as e:
            raise CommandError(cmd, reason=str(e)) from e

        try:
            stdout, stderr = proc.communicate()
        except KeyboardInterrupt:
            killed = kill_process_tree(proc.pid)
            logging.info(f"Interrupted; terminated {killed} process(es)")
            raise

        if proc.returncode != 0:
            raise CommandError(cmd, proc.returncode, stderr or "", stdout=stdout or "")

        return CommandOutput(stdout=stdout or "", stderr=stderr or "", returncode=proc.returncode)
