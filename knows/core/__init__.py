from .models import (
    ListenerRecord, PortRange, Protocol, TerminationFailure, TerminationOutcome,
    WatchEntry, format_listener,
)
from .identity import IdentityEnricher, PsutilProcessTable
from .sources import LsofSource, NetstatSource, select_source
from .repository import ListenerRepository
from .process_manager import ProcessManager
from .monitor import ListenerMonitor, MonitorState

__all__ = [
    'ListenerRecord', 'PortRange', 'Protocol', 'TerminationFailure', 'TerminationOutcome',
    'WatchEntry', 'format_listener',
    'IdentityEnricher', 'PsutilProcessTable',
    'LsofSource', 'NetstatSource', 'select_source',
    'ListenerRepository', 'ProcessManager', 'ListenerMonitor', 'MonitorState',
]
