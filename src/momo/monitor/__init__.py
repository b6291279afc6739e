"""Background transfer monitoring."""

from momo.monitor.state import ActivityEntry, MonitorState
from momo.monitor.transfers import (
    DatabaseWalletSource,
    TransferEvent,
    TransferMonitor,
    extract_transfers,
)

__all__ = [
    "ActivityEntry",
    "DatabaseWalletSource",
    "MonitorState",
    "TransferEvent",
    "TransferMonitor",
    "extract_transfers",
]
