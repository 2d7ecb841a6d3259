"""
Command execution abstraction.

Storage steps never call subprocess directly. They use the provided executor
so that tests can inject fixture output instead of running real commands
against block devices.
"""

from dataclasses import dataclass
from typing import List, Optional, Protocol

DEFAULT_TIMEOUT = 120.0


@dataclass
class RunResult:
    """Result of running a command (or reading a fixture)."""

    stdout: str
    stderr: str
    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def timed_out(self) -> bool:
        return self.returncode == -1

    @property
    def combined(self) -> str:
        """stdout and stderr joined, the way a terminal would show them."""
        parts = [p.strip() for p in (self.stdout, self.stderr) if p and p.strip()]
        return "\n".join(parts)


class Executor(Protocol):
    """Protocol for command execution. Implementations may run commands or read fixtures."""

    def __call__(self, cmd: List[str], *, timeout: Optional[float] = None) -> RunResult:
        """Execute command (or resolve to fixture). Returns stdout, stderr, returncode."""
        ...


def subprocess_executor(cmd: List[str], *, timeout: Optional[float] = None) -> RunResult:
    """Default implementation: run the command via subprocess."""
    import subprocess
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout or DEFAULT_TIMEOUT,
        )
        return RunResult(
            stdout=result.stdout or "",
            stderr=result.stderr or "",
            returncode=result.returncode,
        )
    except subprocess.TimeoutExpired as e:
        out = e.stdout
        if isinstance(out, bytes):
            out = out.decode(errors="replace")
        return RunResult(
            stdout=out or "",
            stderr=f"Command timed out after {e.timeout}s",
            returncode=-1,
        )
    except FileNotFoundError:
        return RunResult(stdout="", stderr="Command not found", returncode=127)


def make_executor(default_timeout: float = DEFAULT_TIMEOUT) -> Executor:
    """Create the default executor with a fallback timeout for calls that pass none."""
    def run(cmd: List[str], *, timeout: Optional[float] = None) -> RunResult:
        return subprocess_executor(cmd, timeout=timeout or default_timeout)
    return run
