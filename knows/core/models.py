"""Data models for knows."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import NamedTuple, Optional


class Protocol(Enum):
    TCP = "TCP"
    UDP = "UDP"

    @classmethod
    def from_token(cls, token: str) -> "Protocol":
        """Map a raw tool token (any case) to a Protocol."""
        return cls(token.strip().upper())


@dataclass(frozen=True)
class ListenerRecord:
    """One listening socket bound to a process."""
    pid: int
    port: int
    protocol: Protocol
    address: str
    command: Optional[str] = None
    # Name as printed by the listing tool; used only when lookup fails
    reported_command: Optional[str] = field(default=None, compare=False, repr=False)

    @property
    def key(self) -> str:
        """Identity key used to spot new listeners between monitor renders."""
        return f"{self.protocol.value}:{self.port}:{self.pid}"

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.port, self.pid)

    def with_command(self, command: Optional[str]) -> "ListenerRecord":
        return replace(self, command=command)

    def to_dict(self) -> dict:
        """Serializable form; an unresolved command is left out."""
        data = {
            'pid': self.pid,
            'port': self.port,
            'protocol': self.protocol.value,
            'address': self.address,
        }
        if self.command is not None:
            data['command'] = self.command
        return data


@dataclass(frozen=True)
class TerminationFailure:
    """A record that could not be terminated, with the reason."""
    record: ListenerRecord
    reason: str


@dataclass
class TerminationOutcome:
    """Result of terminating every listener on a port."""
    terminated: list[ListenerRecord] = field(default_factory=list)
    failed: list[TerminationFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def total(self) -> int:
        return len(self.terminated) + len(self.failed)


@dataclass(frozen=True)
class WatchEntry:
    """A listener as shown by one monitor render."""
    record: ListenerRecord
    is_new: bool


def format_listener(record: ListenerRecord) -> str:
    """
    Build the display token shared by every output path.

    Example: ``TCP/3000 pid:4821 addr:* node server.js``
    """
    pieces = [
        f"{record.protocol.value}/{record.port}",
        f"pid:{record.pid}",
        f"addr:{record.address}",
    ]
    if record.command:
        pieces.append(record.command)
    return " ".join(pieces)


class PortRange(NamedTuple):
    """Inclusive port range."""
    min: int
    max: int

    def __str__(self) -> str:
        return f"{self.min}-{self.max}"
