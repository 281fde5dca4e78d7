"""Parsers for lsof and netstat listings."""

import re
from typing import Optional

from .models import ListenerRecord, Protocol
from ..utils.logging_config import get_logger

logger = get_logger('listener_parser')

# Protocol token anywhere on an lsof line, e.g. "IPv4 0x1 0t0 TCP *:3000 (LISTEN)"
LSOF_PROTOCOL_PATTERN = re.compile(r'\b(TCP|UDP)\b', re.IGNORECASE)

# host:port inside an lsof NAME column. Host may be *, IPv4, [IPv6] or a name.
LSOF_ADDRESS_PATTERN = re.compile(r'([\w.*:\[\]]+):(\d+)')

# Whole-token split on the rightmost colon: "0.0.0.0:8080", "[::]:445"
ADDRESS_TOKEN_PATTERN = re.compile(r'^(.*):(\d+)$')

NETSTAT_BANNERS = ('Proto', 'Active')

MIN_PORT = 1
MAX_PORT = 65535


def strip_brackets(host: str) -> str:
    """Unwrap an IPv6 literal written as [addr]."""
    if host.startswith('[') and host.endswith(']'):
        return host[1:-1]
    return host


def split_address(token: str) -> Optional[tuple[str, int]]:
    """
    Split a local-address token into (address, port).

    Uses the rightmost colon so IPv6 literals keep their own colons.

    Returns:
        (address, port) or None if the token has no numeric port.
    """
    match = ADDRESS_TOKEN_PATTERN.match(token)
    if not match:
        return None
    return strip_brackets(match.group(1)), int(match.group(2))


def _parse_pid(token: str) -> Optional[int]:
    try:
        pid = int(token)
    except ValueError:
        return None
    return pid if pid > 0 else None


def _valid_port(port: int) -> bool:
    return MIN_PORT <= port <= MAX_PORT


def parse_lsof_line(line: str) -> Optional[ListenerRecord]:
    """
    Parse one content line of `lsof -iTCP -sTCP:LISTEN -P -n`.

    Layout: COMMAND PID USER FD TYPE DEVICE SIZE/OFF NODE NAME
    Only the PID column and the host:port in NAME are required; anything
    that cannot be decoded yields None. COMMAND is truncated by lsof, so it
    is kept as reported_command and command stays unresolved.
    """
    parts = line.split()
    if len(parts) < 2:
        return None

    pid = _parse_pid(parts[1])
    if pid is None:
        return None

    protocol_match = LSOF_PROTOCOL_PATTERN.search(line)
    protocol = Protocol.from_token(protocol_match.group(1)) if protocol_match else Protocol.TCP

    address_match = LSOF_ADDRESS_PATTERN.search(line)
    if not address_match:
        return None

    port = int(address_match.group(2))
    if not _valid_port(port):
        return None

    return ListenerRecord(
        pid=pid,
        port=port,
        protocol=protocol,
        address=strip_brackets(address_match.group(1)),
        reported_command=parts[0],
    )


def parse_lsof_output(output: str) -> list[ListenerRecord]:
    """
    Parse full lsof output. The first line is the column header.

    Returns:
        One record per decodable line, in input order.
    """
    records: list[ListenerRecord] = []
    lines = output.splitlines()[1:]

    for line in lines:
        if not line.strip():
            continue
        record = parse_lsof_line(line)
        if record is None:
            logger.debug(f"Skipping undecodable lsof line: {line!r}")
            continue
        records.append(record)

    logger.debug(f"Parsed {len(records)} listener(s) from {len(lines)} lsof line(s)")
    return records


def parse_netstat_line(line: str) -> Optional[ListenerRecord]:
    """
    Parse one line of Windows `netstat -ano`.

    TCP:  Proto  Local  Foreign  State  PID   (state must be LISTENING)
    UDP:  Proto  Local  Foreign  PID          (no state column)
    """
    line = line.strip()
    if not line or line.startswith(NETSTAT_BANNERS):
        return None

    parts = line.split()
    if len(parts) < 4:
        return None

    proto = parts[0]
    if proto == 'TCP':
        if len(parts) < 5 or parts[3] != 'LISTENING':
            return None
        pid_token = parts[4]
    elif proto == 'UDP':
        pid_token = parts[3]
    else:
        return None

    address = split_address(parts[1])
    if address is None:
        return None
    host, port = address
    if not _valid_port(port):
        return None

    pid = _parse_pid(pid_token)
    if pid is None:
        return None

    return ListenerRecord(pid=pid, port=port, protocol=Protocol(proto), address=host)


def parse_netstat_output(output: str) -> list[ListenerRecord]:
    """Parse full netstat -ano output, keeping listeners only."""
    records = [
        record for record in map(parse_netstat_line, output.splitlines())
        if record is not None
    ]
    logger.debug(f"Parsed {len(records)} listener(s) from netstat output")
    return records
