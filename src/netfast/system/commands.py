"""
Platform command execution.

Every interaction with the OS network stack goes through `run_command`, which
either returns the command's stdout or raises one of the typed errors from
`netfast.validation`.
"""

import ctypes
import logging
import os
import shlex
import subprocess
import sys
from dataclasses import dataclass
from typing import Optional, Sequence

from ..validation import (
    ErrorSeverity,
    ExecutionFailedError,
    UnsupportedPlatformError,
    error_from_output,
    handle_subprocess_error,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class CommandSpec:
    """A single external command for the current operating system."""

    argv: Sequence[str]
    # Text written to the command's stdin, if any.
    stdin: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    description: str = ""

    def display(self) -> str:
        return shlex.join(self.argv)


def current_platform() -> str:
    """
    Return the platform key used to pick a DNS backend.

    Raises:
        UnsupportedPlatformError: For anything other than Windows, macOS or Linux
    """
    if sys.platform.startswith("win"):
        return "windows"
    if sys.platform == "darwin":
        return "darwin"
    if sys.platform.startswith("linux"):
        return "linux"
    raise UnsupportedPlatformError(f"Unsupported operating system: {sys.platform}")


def is_elevated() -> bool:
    """Check whether the current process has administrator/root rights."""
    if os.name == "nt":
        try:
            return bool(ctypes.windll.shell32.IsUserAnAdmin())
        except (AttributeError, OSError) as e:
            logger.debug(f"IsUserAnAdmin unavailable: {e}")
            return False
    return os.geteuid() == 0


def run_command(spec: CommandSpec) -> str:
    """Execute a command and return its stdout.

    Args:
        spec: The command to execute.

    Returns:
        The command's stdout.

    Raises:
        PermissionDeniedError: The failure text indicates missing elevation.
        ExecutionFailedError: Non-zero exit, missing binary or timeout.
    """
    command = spec.display()
    logger.debug(f"Executing command: '{command}'")
    try:
        process = subprocess.run(
            list(spec.argv),
            input=spec.stdin,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=spec.timeout,
            check=False,
        )
    except FileNotFoundError as e:
        handle_subprocess_error(e, command, severity=ErrorSeverity.ERROR, reraise=False, logger=logger)
        raise ExecutionFailedError(f"Command not found '{spec.argv[0]}'", command=command) from e
    except PermissionError as e:
        raise error_from_output(f"permission denied: {e}", command=command) from e
    except subprocess.TimeoutExpired as e:
        handle_subprocess_error(e, command, severity=ErrorSeverity.ERROR, reraise=False, logger=logger)
        raise ExecutionFailedError(f"Command timed out after {spec.timeout}s", command=command) from e

    if process.returncode != 0:
        # netsh reports some errors on stdout, so classify both streams.
        output = "\n".join(part for part in (process.stderr, process.stdout) if part)
        error = error_from_output(output, command=command)
        logger.warning(
            f"Command '{command}' exited with {process.returncode}: "
            f"{type(error).__name__}: {error}"
        )
        raise error

    return process.stdout


def elevation_prompt_command(platform: Optional[str] = None) -> CommandSpec:
    """
    Build a no-op command that makes the OS show its elevation prompt.

    Succeeds only when the user grants administrator rights; a refusal
    surfaces as a `PermissionDeniedError` or `ExecutionFailedError`.
    """
    platform = platform or current_platform()
    if platform == "windows":
        argv = [
            "powershell", "-NoProfile", "-NonInteractive", "-Command",
            "Start-Process -FilePath cmd.exe -ArgumentList '/c','exit' -Verb RunAs -Wait",
        ]
    elif platform == "darwin":
        argv = [
            "osascript", "-e",
            'do shell script "echo granted" with administrator privileges',
        ]
    elif platform == "linux":
        argv = ["pkexec", "true"]
    else:
        raise UnsupportedPlatformError(f"Unsupported operating system: {platform}")
    return CommandSpec(argv=argv, timeout=120.0, description="request administrator rights")
