"""Resolve process ids to human-readable command strings."""

from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Optional, Protocol as TypingProtocol

import psutil

from .models import ListenerRecord
from ..config import MAX_WORKERS
from ..utils.logging_config import get_logger, timed

logger = get_logger('identity')


class ProcessTable(TypingProtocol):
    """Looks up the command for a single pid."""

    def lookup(self, pid: int) -> Optional[str]:
        ...


class PsutilProcessTable:
    """Process table backed by psutil."""

    def lookup(self, pid: int) -> Optional[str]:
        """
        Get the full command line for a pid, falling back to the process name.

        Returns:
            The command, or None if the process is gone or unreadable.
        """
        try:
            proc = psutil.Process(pid)
            with proc.oneshot():
                try:
                    cmdline = " ".join(proc.cmdline())
                except (psutil.AccessDenied, psutil.ZombieProcess):
                    cmdline = ""
                if cmdline:
                    return cmdline
                return proc.name() or None
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            logger.debug(f"Could not resolve command for PID={pid}")
            return None


class IdentityEnricher:
    """Fills in ListenerRecord.command, one lookup per distinct pid."""

    def __init__(self, table: Optional[ProcessTable] = None,
                 max_workers: int = MAX_WORKERS):
        self.table = table or PsutilProcessTable()
        self.max_workers = max_workers

    @timed
    def enrich(self, records: Iterable[ListenerRecord]) -> list[ListenerRecord]:
        """
        Return new records with commands resolved where possible.

        Records that already carry a command are passed through as-is.
        When the lookup fails the name reported by the listing tool is
        used; with neither, command stays None.
        """
        records = list(records)
        pids = sorted({r.pid for r in records if r.command is None})
        if not pids:
            return records

        commands = self._resolve(pids)
        resolved = sum(1 for c in commands.values() if c is not None)
        logger.debug(f"Resolved {resolved}/{len(pids)} pid(s)")

        return [
            r if r.command is not None else r.with_command(commands.get(r.pid) or r.reported_command)
            for r in records
        ]

    def _resolve(self, pids: list[int]) -> dict[int, Optional[str]]:
        workers = max(1, min(self.max_workers, len(pids)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = pool.map(self._safe_lookup, pids)
            return dict(zip(pids, results))

    def _safe_lookup(self, pid: int) -> Optional[str]:
        try:
            return self.table.lookup(pid)
        except Exception:
            logger.exception(f"Process table lookup failed for PID={pid}")
            return None
