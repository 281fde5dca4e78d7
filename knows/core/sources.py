"""Platform discovery strategies: run the listing tool and parse it."""

import sys
from typing import Optional, Protocol as TypingProtocol

from .listener_parser import parse_lsof_output, parse_netstat_output
from .models import ListenerRecord
from .tool_runner import ToolRunner
from ..config import LSOF_COMMAND, NETSTAT_COMMAND
from ..errors import ToolInvocationError
from ..utils.logging_config import get_logger, timed

logger = get_logger('sources')


class ListenerSource(TypingProtocol):
    """Anything that can enumerate listening sockets."""

    def enumerate_listeners(self) -> list[ListenerRecord]:
        ...


class LsofSource:
    """Unix-like systems (Linux, macOS, BSD) via lsof."""

    name = "lsof"

    def __init__(self, runner: Optional[ToolRunner] = None):
        self.runner = runner or ToolRunner()

    @timed
    def enumerate_listeners(self) -> list[ListenerRecord]:
        result = self.runner.run(LSOF_COMMAND)
        if not result.ok:
            # lsof exits 1 when nothing matches, and also when it hits
            # sockets it cannot stat. Whatever it printed is still usable.
            errors = _lsof_errors(result.stderr)
            if not result.stdout.strip() and errors:
                raise ToolInvocationError("lsof", errors[0])
            logger.debug(f"lsof exited with {result.returncode}, parsing captured output anyway")
        return parse_lsof_output(result.stdout)


def _lsof_errors(stderr: str) -> list[str]:
    """Stderr lines that are real errors rather than lsof's stat() warnings."""
    return [
        line.strip() for line in stderr.splitlines()
        if line.strip() and 'WARNING' not in line
    ]


class NetstatSource:
    """Windows via netstat -ano."""

    name = "netstat"

    def __init__(self, runner: Optional[ToolRunner] = None):
        self.runner = runner or ToolRunner()

    @timed
    def enumerate_listeners(self) -> list[ListenerRecord]:
        result = self.runner.run(NETSTAT_COMMAND)
        if not result.ok and not result.stdout.strip():
            raise ToolInvocationError("netstat", result.diagnostic)
        return parse_netstat_output(result.stdout)


class StaticSource:
    """Serves canned tool output. Handy for tests and offline debugging."""

    def __init__(self, output: str, parser=parse_lsof_output):
        self.output = output
        self.parser = parser

    def enumerate_listeners(self) -> list[ListenerRecord]:
        return self.parser(self.output)


def select_source(platform: Optional[str] = None,
                  runner: Optional[ToolRunner] = None) -> ListenerSource:
    """
    Pick the discovery strategy for this platform.

    Args:
        platform: sys.platform style name. Defaults to the running platform.
        runner: Tool runner shared by the strategy.
    """
    platform = platform or sys.platform
    if platform.startswith('win'):
        source = NetstatSource(runner)
    else:
        source = LsofSource(runner)
    logger.debug(f"Using {source.name} discovery for platform {platform}")
    return source
