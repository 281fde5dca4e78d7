"""Validation of user-supplied ports, ranges, intervals and formats."""

import re
from enum import Enum

from ..core.models import PortRange
from ..errors import ValidationError

RANGE_PATTERN = re.compile(r'^(\d+)\s*-\s*(\d+)$')


class OutputFormat(Enum):
    TEXT = "text"
    JSON = "json"
    CSV = "csv"


def parse_port(value: str) -> int:
    """Parse a port number in 1-65535."""
    try:
        port = int(str(value).strip())
    except ValueError:
        raise ValidationError(f"Invalid port: {value}") from None
    if port <= 0 or port > 65535:
        raise ValidationError(f"Invalid port: {value}")
    return port


def parse_interval(value: str) -> int:
    """Parse a positive refresh interval in milliseconds."""
    try:
        interval = int(str(value).strip())
    except ValueError:
        raise ValidationError(f"Invalid interval (ms): {value}") from None
    if interval <= 0:
        raise ValidationError(f"Invalid interval (ms): {value}")
    return interval


def parse_port_range(value: str) -> PortRange:
    """Parse "start-end" into an inclusive PortRange."""
    match = RANGE_PATTERN.match(value.strip())
    if not match:
        raise ValidationError(f"Invalid port range: {value}. Expected format start-end.")
    low = parse_port(match.group(1))
    high = parse_port(match.group(2))
    if low > high:
        raise ValidationError(f"Invalid port range: start {low} is greater than end {high}.")
    return PortRange(low, high)


def parse_format(value: str) -> OutputFormat:
    normalized = value.strip().lower()
    try:
        return OutputFormat(normalized)
    except ValueError:
        raise ValidationError(
            f"Invalid format: {value}. Expected one of text, json, or csv."
        ) from None
