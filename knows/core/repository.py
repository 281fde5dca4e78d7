"""Single read path for listening processes."""

from typing import Optional

from .identity import IdentityEnricher
from .models import ListenerRecord
from .sources import ListenerSource, select_source
from ..utils.logging_config import get_logger, timed

logger = get_logger('repository')


class ListenerRepository:
    """Discovers, enriches and orders listeners. Nothing is cached."""

    def __init__(self, source: Optional[ListenerSource] = None,
                 enricher: Optional[IdentityEnricher] = None):
        self.source = source or select_source()
        self.enricher = enricher or IdentityEnricher()
        logger.debug("ListenerRepository initialized")

    @timed
    def list_all(self) -> list[ListenerRecord]:
        """
        Get every listening process.

        Returns:
            Records sorted by (port, pid), duplicates removed.
        """
        raw = self.source.enumerate_listeners()
        # a socket shared by several fds is listed once per fd
        unique = list(dict.fromkeys(raw))
        enriched = self.enricher.enrich(unique)
        ordered = sorted(enriched, key=_display_order)
        logger.info(f"Found {len(ordered)} listener(s)")
        return ordered

    def filter_by_port(self, port: int) -> list[ListenerRecord]:
        """Get listeners bound to exactly this port."""
        return [r for r in self.list_all() if r.port == port]

    def filter_by_range(self, min_port: int, max_port: int) -> list[ListenerRecord]:
        """Get listeners with min_port <= port <= max_port. An inverted range is empty."""
        if min_port > max_port:
            logger.debug(f"Inverted range {min_port}-{max_port}, nothing to match")
            return []
        return [r for r in self.list_all() if min_port <= r.port <= max_port]


def _display_order(record: ListenerRecord) -> tuple:
    # (port, pid) first; the rest only makes ties deterministic
    return (record.port, record.pid, record.protocol.value, record.address, record.command or "")
