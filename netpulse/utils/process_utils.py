"""Subprocess helpers for the external commands the monitors shell out to."""
import subprocess
from typing import List, NamedTuple, Optional

from loguru import logger

from netpulse.utils.platform_utils import PlatformUtils


class CommandResult(NamedTuple):
    """Outcome of a finished command."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def output(self) -> str:
        """stdout and stderr joined, for tools that report errors on either stream."""
        return f"{self.stdout}\n{self.stderr}" if self.stderr else self.stdout


class ProcessUtils:
    """Utility class for running short-lived external commands."""

    @staticmethod
    def run_command_sync(cmd: List[str], timeout: Optional[float] = None) -> Optional[CommandResult]:
        """
        Run a command synchronously and return its output.

        Args:
            cmd: Command and arguments
            timeout: Timeout in seconds

        Returns:
            CommandResult, or None if the command could not be run or timed out

        Raises:
            FileNotFoundError: if the executable does not exist
        """
        if not cmd or not isinstance(cmd, list):
            raise ValueError("Invalid command: must be a non-empty list")

        proc = subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            creationflags=PlatformUtils.get_subprocess_flags(),
            startupinfo=PlatformUtils.get_startupinfo(),
        )
        try:
            stdout, stderr = proc.communicate(timeout=timeout)
            return CommandResult(proc.returncode, stdout or "", stderr or "")
        except subprocess.TimeoutExpired:
            logger.error(f"Command timed out: {' '.join(cmd)}")
            proc.kill()
            proc.communicate()  # Clean up
            return None
        except (OSError, subprocess.SubprocessError) as e:
            logger.error(f"Failed to run command {' '.join(cmd)}: {e}")
            return None
