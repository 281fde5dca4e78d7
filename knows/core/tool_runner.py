"""Run external diagnostic tools with bounded output."""

import subprocess
import threading
from dataclasses import dataclass
from typing import Optional, Sequence

from ..config import MAX_TOOL_OUTPUT_BYTES, TOOL_TIMEOUT_SECONDS
from ..errors import ToolInvocationError, ToolOutputTooLarge
from ..utils.logging_config import get_logger, PerfTimer

logger = get_logger('tool_runner')

STDERR_CHUNK = 4096


@dataclass(frozen=True)
class ToolResult:
    """Captured result of one tool invocation."""
    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def diagnostic(self) -> str:
        """Best text to show a user when the tool failed."""
        text = self.stderr.strip() or self.stdout.strip()
        return text or f"{self.args[0]} exited with status {self.returncode}"


class ToolRunner:
    """
    Runs a command synchronously and captures its output.

    Stdout and stderr are each read up to max_output bytes; anything beyond
    that kills the tool and raises ToolOutputTooLarge. Stderr is drained on
    its own thread so a chatty stderr can never block the stdout reader.
    """

    def __init__(self, max_output: int = MAX_TOOL_OUTPUT_BYTES,
                 timeout: float = TOOL_TIMEOUT_SECONDS):
        self.max_output = max_output
        self.timeout = timeout

    def run(self, args: Sequence[str]) -> ToolResult:
        """
        Run a tool and wait for it to finish.

        A non-zero exit is not an error here; callers decide what it means.

        Raises:
            ToolInvocationError: The tool could not be started or timed out.
            ToolOutputTooLarge: Stdout or stderr exceeded max_output bytes.
        """
        args = tuple(args)
        tool = args[0]
        logger.debug(f"Running {' '.join(args)}")

        with PerfTimer(f"tool {tool}", logger):
            try:
                proc = subprocess.Popen(
                    args,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                )
            except OSError as e:
                logger.error(f"Could not start {tool}: {e}")
                raise ToolInvocationError(tool, f"could not be started ({e})") from e

            expired = threading.Event()
            flooded = threading.Event()
            err_chunks: list[bytes] = []

            def expire():
                expired.set()
                proc.kill()

            def drain_stderr():
                size = 0
                for chunk in iter(lambda: proc.stderr.read(STDERR_CHUNK), b""):
                    size += len(chunk)
                    if size > self.max_output:
                        flooded.set()
                        proc.kill()
                        return
                    err_chunks.append(chunk)

            watchdog = threading.Timer(self.timeout, expire)
            reader = threading.Thread(target=drain_stderr, name=f"{tool}-stderr", daemon=True)
            watchdog.start()
            reader.start()
            try:
                data = proc.stdout.read(self.max_output + 1)
                if len(data) > self.max_output:
                    logger.error(f"{tool} output exceeded {self.max_output} bytes, killing it")
                    proc.kill()
                    raise ToolOutputTooLarge(tool, self.max_output)
                returncode = proc.wait()
            finally:
                watchdog.cancel()
                proc.stdout.close()
                if proc.poll() is None:
                    proc.wait()
                reader.join()
                proc.stderr.close()

            if expired.is_set():
                logger.error(f"{tool} timed out after {self.timeout}s")
                raise ToolInvocationError(tool, f"timed out after {self.timeout}s")
            if flooded.is_set():
                logger.error(f"{tool} stderr exceeded {self.max_output} bytes, killed it")
                raise ToolOutputTooLarge(tool, self.max_output)

        result = ToolResult(
            args=args,
            returncode=returncode,
            stdout=_decode(data),
            stderr=_decode(b"".join(err_chunks)),
        )
        if not result.ok:
            logger.debug(f"{tool} exited with status {returncode}")
        return result


def _decode(data: Optional[bytes]) -> str:
    if not data:
        return ""
    return data.decode('utf-8', errors='replace')
