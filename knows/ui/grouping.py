"""Grouping and snapshot helpers for the interactive picker."""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..core.models import ListenerRecord
from ..core.monitor import mark_new
from ..core.repository import ListenerRepository
from ..errors import KnowsError
from ..utils.logging_config import get_logger

logger = get_logger('ui.grouping')


@dataclass
class Snapshot:
    """One picker refresh: records, which keys are new, or why it failed."""
    records: list[ListenerRecord] = field(default_factory=list)
    new_keys: set[str] = field(default_factory=set)
    seen_keys: set[str] = field(default_factory=set)
    error: Optional[str] = None


def load_snapshot(repository: ListenerRepository, seen_keys: set[str]) -> Snapshot:
    """
    Query listeners and diff them against the previous refresh.

    Never raises; on failure the previous keys are kept and error is set.
    """
    try:
        records = repository.list_all()
    except KnowsError as e:
        logger.error(f"Refresh failed: {e}")
        return Snapshot(seen_keys=seen_keys, error=str(e))
    except Exception as e:
        logger.exception("Unexpected error during refresh")
        return Snapshot(seen_keys=seen_keys, error=f"Unexpected error: {e}")

    entries, current_keys = mark_new(seen_keys, records)
    return Snapshot(
        records=records,
        new_keys={e.record.key for e in entries if e.is_new},
        seen_keys=current_keys,
    )


def group_by_port(records: Iterable[ListenerRecord]) -> dict[int, list[ListenerRecord]]:
    """Group listeners by port, ports ascending, records in input order."""
    groups: dict[int, list[ListenerRecord]] = {}
    for record in records:
        groups.setdefault(record.port, []).append(record)
    return {port: groups[port] for port in sorted(groups)}


def port_choice_label(port: int, records: list[ListenerRecord]) -> str:
    return f"Port {port} ({len(records)} listener(s))"


def matches_filter(record: ListenerRecord, text: str) -> bool:
    """Case-insensitive substring match over port, protocol, pid, address and command."""
    if not text:
        return True
    searchable = f"{record.port} {record.protocol.value} {record.pid} {record.address} {record.command or ''}"
    return text.lower() in searchable.lower()
