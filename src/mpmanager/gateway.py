"""
Multipass command gateway.

Every interaction with the hypervisor goes through a single narrow
capability: a callable taking the command arguments and returning the
captured output, raising MultipassError when the command fails.
"""
import logging
import subprocess
from typing import Callable

# Any callable with this shape can replace the real gateway (tests use fakes).
CommandRunner = Callable[..., str]


class MultipassError(Exception):
    """A multipass command exited with an error."""

    def __init__(self, args: tuple[str, ...], returncode: int | None, stderr: str = "", reason: str | None = None):
        self.command_args = tuple(args)
        self.returncode = returncode
        self.stderr = stderr
        if reason is None:
            reason = f"exit status {returncode}"
        super().__init__(f"command failed: {reason}\nStderr: {stderr.strip()}")


class MultipassGateway:
    """Runs the multipass CLI and captures its output."""

    def __init__(self, binary: str = "multipass", timeout: float | None = None, logger: logging.Logger | None = None):
        self.binary = binary
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

    def __call__(self, *args: str) -> str:
        return self.run(*args)

    def run(self, *args: str) -> str:
        """
        Executes `multipass <args>` and returns its stripped stdout.

        Raises:
            MultipassError: on a non-zero exit status, a timeout or a missing binary
        """
        cmd = [self.binary, *args]
        self.logger.info("exec: %s %s", self.binary, " ".join(args))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as e:
            self.logger.error("exec error: %s", e)
            raise MultipassError(args, None, str(e), reason=f"{self.binary} not found") from e
        except subprocess.TimeoutExpired as e:
            self.logger.error("exec timeout after %ss: %s", self.timeout, " ".join(args))
            stderr = e.stderr if isinstance(e.stderr, str) else ""
            raise MultipassError(args, None, stderr, reason=f"timed out after {self.timeout}s") from e

        if result.returncode != 0:
            self.logger.error(
                "exec error: exit status %d; stderr: %s", result.returncode, result.stderr.strip()
            )
            raise MultipassError(args, result.returncode, result.stderr)
        return result.stdout.strip()

    def shell(self, name: str) -> int:
        """Opens an interactive shell in a VM, attached to the current terminal."""
        self.logger.info("exec: %s shell %s", self.binary, name)
        return subprocess.call([self.binary, "shell", name])
