"""In-process dispatcher between HTTP callers and the polling Studio plugin.

Architecture (bottom-up):
- schemas: ToolCall / ToolResponse wire models and tool argument variants
- state: DispatcherState (queue, correlation table, change notifier)
"""

from studio_bridge.dispatcher.schemas import (
    DeliveryStatus,
    DispatcherStats,
    RunCode,
    ToolArgs,
    ToolCall,
    ToolResponse,
)
from studio_bridge.dispatcher.state import DispatcherState

__all__ = [
    "DeliveryStatus",
    "DispatcherStats",
    "DispatcherState",
    "RunCode",
    "ToolArgs",
    "ToolCall",
    "ToolResponse",
]
