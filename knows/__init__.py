"""knows - find out which processes are listening on which ports."""

__version__ = "1.0.0"
