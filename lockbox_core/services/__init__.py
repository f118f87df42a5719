"""
Business logic services for Lockbox.
"""

from lockbox_core.services.datastore_service import DataStoreService
from lockbox_core.services.fxa_service import FxAService, FxAStage
from lockbox_core.services.sync_service import (
    SyncNotification,
    SyncProfile,
    SyncReason,
    SyncService,
)

__all__ = [
    "DataStoreService",
    "FxAService",
    "FxAStage",
    "SyncNotification",
    "SyncProfile",
    "SyncReason",
    "SyncService",
]
