"""Child-process execution for the ImageMagick command-line tool."""

import subprocess
import threading
import time
from dataclasses import dataclass
from typing import IO, List, Protocol, Sequence

import structlog

from magick_bridge.core.constants import STREAM_JOIN_TIMEOUT
from magick_bridge.core.exceptions import ProcessTimeoutError, ToolFailureError

logger = structlog.get_logger()


@dataclass(frozen=True)
class RunResult:
    """Result from one tool invocation.

    ``elapsed`` is wall-clock seconds from process start to exit.
    """

    exit_code: int
    stdout: str = ""
    stderr: str = ""
    elapsed: float = 0.0

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    @property
    def first_stderr_line(self) -> str:
        """First non-blank line of stderr, or an empty string."""
        for line in self.stderr.splitlines():
            if line.strip():
                return line.strip()
        return ""


class ProcessRunner(Protocol):
    """Runs a command and waits for it, bounded by ``timeout`` seconds.

    Implementations raise ProcessTimeoutError when the timeout elapses and
    never return a partial result.
    """

    def run(self, command: Sequence[str], timeout: float) -> RunResult: ...


def _drain(stream: IO[str], sink: List[str]) -> None:
    """Accumulate ``stream`` line by line until EOF."""
    try:
        with stream:
            for line in stream:
                sink.append(line)
    except (OSError, ValueError):
        # Pipe closed under us after a forced kill; the output so far stands.
        return


class SubprocessRunner:
    """ProcessRunner backed by :class:`subprocess.Popen`.

    No shell is involved; the argument list goes straight to the OS. Stdout
    and stderr are drained by two threads started right after launch, so a
    chatty child can never block on a full pipe buffer.
    """

    def __init__(self, join_timeout: float = STREAM_JOIN_TIMEOUT) -> None:
        self.join_timeout = join_timeout

    def run(self, command: Sequence[str], timeout: float) -> RunResult:
        cmd = [str(arg) for arg in command]
        logger.debug("Running external tool", command=cmd, timeout=timeout)

        start_time = time.monotonic()
        try:
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            raise ToolFailureError(
                f"Could not start '{cmd[0]}': {e.strerror or e}",
                details={"command": cmd},
            ) from e

        stdout_lines: List[str] = []
        stderr_lines: List[str] = []
        drainers = {
            "stdout": threading.Thread(
                target=_drain, args=(process.stdout, stdout_lines), daemon=True
            ),
            "stderr": threading.Thread(
                target=_drain, args=(process.stderr, stderr_lines), daemon=True
            ),
        }
        for drainer in drainers.values():
            drainer.start()

        try:
            try:
                exit_code = process.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                raise ProcessTimeoutError(
                    f"ImageMagick process timed out after {timeout:g}s",
                    details={"command": cmd, "timeout_seconds": timeout},
                ) from None
            elapsed = time.monotonic() - start_time

            for stream_name, drainer in drainers.items():
                drainer.join(self.join_timeout)
                if drainer.is_alive():
                    # Usually a grandchild still holding the pipe open
                    logger.debug(
                        "Output stream still open after exit, output may be truncated",
                        command=cmd,
                        stream=stream_name,
                    )

            return RunResult(
                exit_code=exit_code,
                stdout="".join(stdout_lines),
                stderr="".join(stderr_lines),
                elapsed=elapsed,
            )
        finally:
            if process.poll() is None:
                process.kill()
                process.wait()
                logger.debug("Killed lingering process", command=cmd)

    def __repr__(self) -> str:
        return f"SubprocessRunner(join_timeout={self.join_timeout})"
