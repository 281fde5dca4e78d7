"""Exception types raised by knows."""


class KnowsError(Exception):
    """Base class for every error knows reports to the user."""


class ToolInvocationError(KnowsError):
    """An external tool could not run or produced no usable output."""

    def __init__(self, tool: str, message: str):
        self.tool = tool
        super().__init__(f"{tool}: {message}")


class ToolOutputTooLarge(ToolInvocationError):
    """An external tool wrote more output than we are willing to buffer."""

    def __init__(self, tool: str, limit: int):
        self.limit = limit
        super().__init__(tool, f"output exceeded {limit} bytes")


class TerminationError(KnowsError):
    """The OS or the termination tool refused to stop a process."""

    def __init__(self, pid: int, reason: str):
        self.pid = pid
        self.reason = reason
        super().__init__(reason)


class ConfigError(KnowsError):
    """The user configuration file could not be loaded."""


class ValidationError(KnowsError, ValueError):
    """A port, range, interval or format value was malformed."""
