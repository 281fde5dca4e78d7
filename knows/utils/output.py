"""
Output - renders listener lists as text, JSON or CSV and writes them out
"""

import csv
import io
import json
from pathlib import Path
from typing import Iterable, Optional

from ..core.models import ListenerRecord, format_listener
from .validation import OutputFormat

CSV_FIELDS = ["protocol", "port", "pid", "address", "command"]

EMPTY_MESSAGE = "No matching listening processes found."


def render_text(records: list[ListenerRecord]) -> str:
    if not records:
        return EMPTY_MESSAGE
    return "\n".join(format_listener(r) for r in records)


def render_json(records: list[ListenerRecord]) -> str:
    return json.dumps([r.to_dict() for r in records], indent=2)


def render_csv(records: list[ListenerRecord]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=CSV_FIELDS, lineterminator="\n")
    writer.writeheader()
    for record in records:
        row = record.to_dict()
        row.setdefault("command", "")
        writer.writerow(row)
    return buffer.getvalue().rstrip("\n")


def render_listeners(records: Iterable[ListenerRecord],
                     fmt: OutputFormat = OutputFormat.TEXT) -> str:
    """Render records in the requested format"""
    records = list(records)
    if fmt is OutputFormat.JSON:
        return render_json(records)
    if fmt is OutputFormat.CSV:
        return render_csv(records)
    return render_text(records)


def write_output(content: str, destination: Optional[str] = None) -> Optional[Path]:
    """
    Print content, or save it to a file when a destination is given.
    Returns the path written, if any.
    """
    if not destination:
        print(content)
        return None

    path = Path(destination)
    if not content.endswith("\n"):
        content += "\n"
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)
    print(f"Saved output to {path}")
    return path
