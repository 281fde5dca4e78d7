import pytest

from knows.core.models import ListenerRecord, Protocol
from knows.core.tool_runner import ToolResult


LSOF_OUTPUT = """\
COMMAND     PID   USER   FD   TYPE             DEVICE SIZE/OFF NODE NAME
postgres    812   dev    7u  IPv6 0x5f3a1c2b      0t0  TCP [::1]:5432 (LISTEN)
node       4821   dev   23u  IPv4 0x8b1d2e3f      0t0  TCP *:3000 (LISTEN)
postgres    812   dev    8u  IPv4 0x5f3a1c2c      0t0  TCP 127.0.0.1:5432 (LISTEN)
python3     551   dev    4u  IPv4 0x11aa22bb      0t0  TCP 0.0.0.0:4000 (LISTEN)
node       4821   dev   24u  IPv6 0x8b1d2e40      0t0  TCP [::]:3001 (LISTEN)
"""

NETSTAT_OUTPUT = """\

Active Connections

  Proto  Local Address          Foreign Address        State           PID
  TCP    0.0.0.0:135            0.0.0.0:0              LISTENING       1044
  TCP    0.0.0.0:8080           0.0.0.0:0              LISTENING       9912
  TCP    127.0.0.1:8080         127.0.0.1:52311        ESTABLISHED     9912
  TCP    [::]:445               [::]:0                 LISTENING       4
  UDP    0.0.0.0:5353           *:*                                    2260
  UDP    [::1]:1900             *:*                                    3412
"""


def make_record(pid, port, protocol=Protocol.TCP, address="*", command=None):
    return ListenerRecord(pid=pid, port=port, protocol=protocol, address=address, command=command)


class FakeSource:
    """Returns canned records and counts calls."""

    def __init__(self, *snapshots):
        self.snapshots = list(snapshots) or [[]]
        self.calls = 0

    def enumerate_listeners(self):
        index = min(self.calls, len(self.snapshots) - 1)
        self.calls += 1
        snapshot = self.snapshots[index]
        if isinstance(snapshot, Exception):
            raise snapshot
        return list(snapshot)


class FailingSource:
    def __init__(self, error):
        self.error = error

    def enumerate_listeners(self):
        raise self.error


class FakeProcessTable:
    """Maps pid -> command and records every lookup."""

    def __init__(self, commands=None):
        self.commands = commands or {}
        self.lookups = []

    def lookup(self, pid):
        self.lookups.append(pid)
        return self.commands.get(pid)


class FakeRunner:
    """Tool runner returning scripted results keyed by the tool name."""

    def __init__(self, results=None):
        self.results = results or {}
        self.calls = []

    def run(self, args):
        args = tuple(args)
        self.calls.append(args)
        result = self.results.get(args[0])
        if isinstance(result, Exception):
            raise result
        if result is None:
            return ToolResult(args=args, returncode=0, stdout="", stderr="")
        returncode, stdout, stderr = result
        return ToolResult(args=args, returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def fake_table():
    return FakeProcessTable({4821: "node server.js", 812: "postgres -D /var/lib/pg", 551: "python3 -m http.server 4000"})
