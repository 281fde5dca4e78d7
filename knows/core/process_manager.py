"""Process termination."""

import sys
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import psutil

from .models import TerminationFailure, TerminationOutcome
from .repository import ListenerRepository
from .tool_runner import ToolRunner
from ..config import MAX_WORKERS
from ..errors import KnowsError, TerminationError
from ..utils.logging_config import get_logger, timed

logger = get_logger('process_manager')


class ProcessManager:
    """Terminates processes by pid or by the port they listen on."""

    def __init__(self, repository: Optional[ListenerRepository] = None,
                 runner: Optional[ToolRunner] = None,
                 platform: Optional[str] = None,
                 max_workers: int = MAX_WORKERS):
        self.repository = repository or ListenerRepository()
        self.runner = runner or ToolRunner()
        self.platform = platform or sys.platform
        self.max_workers = max_workers
        logger.debug(f"ProcessManager initialized (platform={self.platform})")

    @property
    def uses_taskkill(self) -> bool:
        return self.platform.startswith('win')

    def terminate_by_pid(self, pid: int) -> None:
        """
        Terminate a single process.

        A process that no longer exists counts as terminated.

        Raises:
            TerminationError: The OS or taskkill refused.
        """
        logger.info(f"Attempting to terminate process PID={pid}")
        if self.uses_taskkill:
            self._taskkill(pid)
        else:
            self._signal(pid)

    @timed
    def terminate_by_port(self, port: int) -> TerminationOutcome:
        """
        Terminate every process currently listening on a port.

        Listeners are re-resolved first. Each distinct pid is terminated
        once, and its result applies to every record it owns; a failure
        never stops the others.

        Args:
            port: Port number.

        Returns:
            TerminationOutcome in listener order.
        """
        matches = self.repository.filter_by_port(port)
        outcome = TerminationOutcome()
        if not matches:
            logger.info(f"No listeners on port {port}, nothing to terminate")
            return outcome

        pids = list(dict.fromkeys(record.pid for record in matches))
        workers = max(1, min(self.max_workers, len(pids)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            reasons = dict(zip(pids, pool.map(self._attempt, pids)))

        for record in matches:
            reason = reasons[record.pid]
            if reason is None:
                outcome.terminated.append(record)
            else:
                outcome.failed.append(TerminationFailure(record, reason))

        logger.info(
            f"Port {port}: {len(outcome.terminated)} terminated, {len(outcome.failed)} failed"
        )
        return outcome

    def _attempt(self, pid: int) -> Optional[str]:
        """Terminate one pid. Returns None on success, else the reason."""
        try:
            self.terminate_by_pid(pid)
            return None
        except KnowsError as e:
            return str(e)
        except Exception as e:
            logger.exception(f"Error terminating PID={pid}")
            return f"Error terminating process: {e}"

    def _signal(self, pid: int) -> None:
        try:
            proc = psutil.Process(pid)
            proc.terminate()  # SIGTERM
            logger.info(f"Sent SIGTERM to PID={pid}")
        except psutil.NoSuchProcess:
            logger.info(f"Process PID={pid} already gone")
        except psutil.AccessDenied as e:
            logger.error(f"Access denied when trying to terminate PID={pid}")
            raise TerminationError(pid, f"Access denied - cannot terminate PID {pid}") from e
        except (psutil.Error, OSError) as e:
            logger.error(f"Failed to terminate PID={pid}: {e}")
            raise TerminationError(pid, f"Failed to terminate PID {pid}: {e}") from e

    def _taskkill(self, pid: int) -> None:
        result = self.runner.run(["taskkill", "/PID", str(pid), "/T", "/F"])
        if not result.ok:
            logger.error(f"taskkill failed for PID={pid}: {result.diagnostic}")
            raise TerminationError(pid, result.diagnostic)
        logger.info(f"taskkill terminated PID={pid}")
