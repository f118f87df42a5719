"""
Background sync lifecycle coordinator.

Maps sync-engine notifications onto SyncState, pauses and resumes timed
syncs with the application lifecycle and keeps the cached login list fresh.
"""

import asyncio
from enum import StrEnum
from typing import Protocol

import structlog

from lockbox_core.actions import (
    ErrorAction,
    LifecycleAction,
    LifecycleEvent,
    SyncCommand,
    SyncCommandAction,
    SyncStateAction,
)
from lockbox_core.core.observable import ObservableValue
from lockbox_core.dispatcher import Dispatcher
from lockbox_core.exceptions import LockboxError, SyncError
from lockbox_core.models.item import Item
from lockbox_core.models.state import SyncState, SyncStatus

logger = structlog.get_logger(__name__)


class SyncReason(StrEnum):
    """Why a sync pass was requested."""

    SYNC_NOW = "sync_now"
    BACKGROUNDED = "backgrounded"
    STARTUP = "startup"
    SCHEDULED = "scheduled"


class SyncNotification(StrEnum):
    """Notifications posted by the sync engine."""

    ACCOUNT_VERIFIED = "FirefoxAccountVerified"
    DID_START_SYNCING = "ProfileDidStartSyncing"
    DID_FINISH_SYNCING = "ProfileDidFinishSyncing"


_NOTIFICATION_STATES = {
    SyncNotification.ACCOUNT_VERIFIED: SyncState.READY_TO_SYNC,
    SyncNotification.DID_START_SYNCING: SyncState.SYNCING,
    SyncNotification.DID_FINISH_SYNCING: SyncState.SYNCED,
}


class SyncProfile(Protocol):
    """Sync engine and local login storage of one account."""

    @property
    def is_syncing(self) -> bool: ...

    def has_syncable_account(self) -> bool: ...

    async def sync_everything(self, reason: SyncReason) -> None: ...

    async def get_all_logins(self) -> list[Item]: ...

    async def remove_all_logins(self) -> None: ...

    async def disconnect(self) -> None: ...


class SyncService:
    """
    Coordinates background sync for one profile.

    State changes are published through `state` and as SyncStateAction.
    sync() and reset() report failures as ErrorAction; they never raise.
    """

    def __init__(
        self,
        profile: SyncProfile,
        dispatcher: Dispatcher,
        *,
        sync_interval: float = 900.0,
    ) -> None:
        """
        Args:
            profile: Sync engine and login storage.
            dispatcher: Bus for state, error, lifecycle and command actions.
            sync_interval: Seconds between timed syncs.
        """
        self._profile = profile
        self._dispatcher = dispatcher
        self._sync_interval = sync_interval

        self.state: ObservableValue[SyncState] = ObservableValue()
        self.logins: ObservableValue[list[Item]] = ObservableValue()

        self._loop: asyncio.AbstractEventLoop | None = None
        self._timer: asyncio.Task[None] | None = None
        self._refreshes: set[asyncio.Task[None]] = set()
        self._unsubscribers = [
            dispatcher.register(LifecycleAction, self._on_lifecycle),
            dispatcher.register(SyncCommandAction, self._on_command),
        ]

    @property
    def timed_syncs_running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    async def start(self) -> None:
        """Publish the initial state, load the login list and begin timed syncs."""
        self._loop = asyncio.get_running_loop()
        if self._profile.has_syncable_account():
            self._set_state(SyncState.READY_TO_SYNC)
        else:
            self._set_state(SyncState.NOT_SYNCABLE)
        await self.refresh_logins()
        self._begin_timed_syncs()

    async def close(self) -> None:
        """Stop timed syncs and drop pending refreshes and subscriptions."""
        self._end_timed_syncs()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        refreshes = list(self._refreshes)
        for task in refreshes:
            task.cancel()
        await asyncio.gather(*refreshes, return_exceptions=True)

    async def sync(self) -> None:
        """Run an immediate sync pass."""
        logger.info("Sync requested")
        await self._sync_everything(SyncReason.SYNC_NOW)

    async def reset(self) -> None:
        """
        Stop syncing, disconnect the account and purge local logins.

        Ends in NOT_SYNCABLE once every step succeeded.
        """
        logger.info("Resetting sync")
        self._end_timed_syncs()
        try:
            if self._profile.is_syncing:
                await self._profile.sync_everything(SyncReason.BACKGROUNDED)
            await self._profile.disconnect()
            await self._profile.remove_all_logins()
        except Exception as e:
            self._report(e, "Sync reset failed", reason="reset")
            return
        self._set_state(SyncState.NOT_SYNCABLE)

    async def refresh_logins(self) -> None:
        """Reload the cached login list from the profile."""
        try:
            logins = await self._profile.get_all_logins()
        except Exception as e:
            logger.warning("Failed to load logins", error_type=type(e).__name__)
            self._dispatcher.dispatch(ErrorAction(e))
            return
        logger.debug("Logins refreshed", count=len(logins))
        self.logins.set(list(logins))

    def handle_notification(self, name: str) -> None:
        """
        Apply a sync-engine notification. Unknown names are ignored.

        Must be called on the event loop; see post_notification().
        """
        try:
            notification = SyncNotification(name)
        except ValueError:
            logger.debug("Ignoring notification", name=name)
            return
        self._set_state(_NOTIFICATION_STATES[notification])

    def post_notification(self, name: str) -> None:
        """Thread-safe variant of handle_notification()."""
        if self._loop is None:
            msg = "Sync service not started. Call start() first."
            raise RuntimeError(msg)
        self._loop.call_soon_threadsafe(self.handle_notification, name)

    # Internals

    def _set_state(self, state: SyncState) -> None:
        logger.debug("Sync state changed", status=str(state.status))
        self.state.set(state)
        self._dispatcher.dispatch(SyncStateAction(state=state))

        if state.status is SyncStatus.SYNCED:
            self._schedule_refresh()
        elif state.status is SyncStatus.NOT_SYNCABLE:
            self.logins.set([])

    def _schedule_refresh(self) -> None:
        task = asyncio.get_running_loop().create_task(self.refresh_logins())
        self._refreshes.add(task)
        task.add_done_callback(self._refreshes.discard)

    async def _sync_everything(self, reason: SyncReason) -> None:
        try:
            await self._profile.sync_everything(reason)
        except Exception as e:
            self._report(e, "Sync failed", reason=str(reason))

    def _report(self, error: Exception, event: str, *, reason: str) -> None:
        logger.warning(event, reason=reason, error_type=type(error).__name__)
        if not isinstance(error, LockboxError):
            cause = SyncError(event, reason=reason)
            cause.__cause__ = error
            error = cause
        self._set_state(SyncState.error(error))
        self._dispatcher.dispatch(ErrorAction(error))

    def _begin_timed_syncs(self) -> None:
        if self.timed_syncs_running:
            return
        self._timer = asyncio.get_running_loop().create_task(self._timed_syncs())

    def _end_timed_syncs(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def _timed_syncs(self) -> None:
        while True:
            await asyncio.sleep(self._sync_interval)
            if self._profile.has_syncable_account():
                await self._sync_everything(SyncReason.SCHEDULED)

    def _on_lifecycle(self, action: LifecycleAction) -> None:
        if action.event is LifecycleEvent.BACKGROUND:
            logger.debug("Pausing timed syncs")
            self._end_timed_syncs()
        else:
            logger.debug("Resuming timed syncs", lifecycle_event=str(action.event))
            self._begin_timed_syncs()

    async def _on_command(self, action: SyncCommandAction) -> None:
        if action.command is SyncCommand.SYNC:
            await self.sync()
        elif action.command is SyncCommand.RESET:
            await self.reset()
