"""
Bridge to the embedded JavaScript datastore.
"""

from lockbox_core.bridge.client import BridgeClient, CallbackFunction, CorrelationSlot
from lockbox_core.bridge.protocol import MessageHandler, ScriptHost

__all__ = [
    "BridgeClient",
    "CallbackFunction",
    "CorrelationSlot",
    "MessageHandler",
    "ScriptHost",
]
