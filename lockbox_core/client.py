"""
Lockbox client facade.

This is the main entry point for users of the library. It wires the
dispatcher, the datastore bridge, the sign-in flow, background sync and the
stores together behind one object.
"""

import asyncio
from typing import Protocol, Self

import httpx
import structlog

from lockbox_core.actions import (
    ClearUserInfoAction,
    LifecycleAction,
    LifecycleEvent,
    LoadUserInfoAction,
    ScopedKeyAction,
    SyncCommand,
    SyncCommandAction,
)
from lockbox_core.api.http_client import AsyncHttpClient
from lockbox_core.bridge.client import BridgeClient
from lockbox_core.bridge.protocol import ScriptHost
from lockbox_core.config import LockboxConfig
from lockbox_core.dispatcher import Dispatcher
from lockbox_core.models.item import Item
from lockbox_core.parser import ItemParser
from lockbox_core.services.datastore_service import DataStoreService
from lockbox_core.services.fxa_service import FxAService
from lockbox_core.services.sync_service import SyncProfile, SyncService
from lockbox_core.stores.datastore_store import DataStoreStore
from lockbox_core.stores.secret_store import InMemorySecretStore, SecretStore
from lockbox_core.stores.user_info_store import UserInfoStore

logger = structlog.get_logger(__name__)

UNLOCK_MESSAGE = "Unlock your Lockbox"


class BiometryGate(Protocol):
    """Local user-presence check (fingerprint, face, device passcode)."""

    async def authenticate(self, message: str) -> bool: ...


class LockboxClient:
    """
    Async client for the Lockbox password manager core.

    Example:
        ```python
        async with LockboxClient(script_host=host) as client:
            client.sign_in()  # LoadInitialURLAction carries the URL to show
            ...
            await client.handle_redirect_url(redirect)
            await client.open(uid)
            await client.list()
            print(client.datastore_store.items.value)
        ```

    Receiving a scoped key (from sign-in) initializes the datastore if it is
    not initialized yet and unlocks it otherwise.
    """

    def __init__(
        self,
        config: LockboxConfig | None = None,
        *,
        script_host: ScriptHost,
        profile: SyncProfile | None = None,
        secret_store: SecretStore | None = None,
        biometry_gate: BiometryGate | None = None,
        parser: ItemParser | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            config: Client configuration. Uses defaults if not provided.
            script_host: Engine running the JavaScript datastore.
            profile: Sync engine. Background sync is disabled without one.
            secret_store: Persistent secret storage. Defaults to in-memory.
            biometry_gate: Local authentication used by unlock_with_biometrics().
            parser: Item parser for the datastore.
            transport: Optional httpx transport for testing.
        """
        self._config = config or LockboxConfig()
        self._biometry_gate = biometry_gate

        self.dispatcher = Dispatcher()
        self._http = AsyncHttpClient(self._config, transport=transport)
        self._bridge = BridgeClient(
            script_host, self.dispatcher, callback_timeout=self._config.callback_timeout
        )

        self.datastore = DataStoreService(
            self._bridge,
            self.dispatcher,
            datastore_name=self._config.datastore_name,
            parser=parser,
        )
        self.fxa = FxAService(self._http, self.dispatcher, self._config)
        self.sync_service = (
            SyncService(profile, self.dispatcher, sync_interval=self._config.sync_interval)
            if profile is not None
            else None
        )

        secret_store = secret_store if secret_store is not None else InMemorySecretStore()
        self.datastore_store = DataStoreStore(self.dispatcher, secret_store)
        self.user_info_store = UserInfoStore(self.dispatcher, secret_store)

        self._unsubscribe_scoped_key = self.dispatcher.register(
            ScopedKeyAction, self._on_scoped_key
        )
        self._started = False
        self._start_lock = asyncio.Lock()

    async def __aenter__(self) -> Self:
        """Enter async context."""
        await self.start()
        return self

    async def __aexit__(
        self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object
    ) -> None:
        """Exit async context."""
        await self.close()

    async def start(self) -> None:
        """Load persisted state, start loading the datastore and begin sync."""
        async with self._start_lock:
            if self._started:
                return
            self.datastore_store.load()
            self.dispatcher.dispatch(LoadUserInfoAction())
            self.datastore.prepare()
            if self.sync_service is not None:
                await self.sync_service.start()
            self._started = True
            logger.debug("Client started")

    async def close(self) -> None:
        """Stop background work and release resources."""
        async with self._start_lock:
            self._unsubscribe_scoped_key()
            try:
                if self.sync_service is not None:
                    await self.sync_service.close()
                await self.dispatcher.drain()
            finally:
                await self._http.close()
                self.datastore_store.close()
                self.user_info_store.close()
                self._started = False

    # Sign-in

    def sign_in(self) -> str | None:
        """Start the Firefox Accounts flow. Returns the URL to display."""
        return self.fxa.initiate()

    async def handle_redirect_url(self, url: str) -> bool:
        """
        Finish sign-in if a navigation target is the redirect URI.

        Returns:
            True if the URL was the redirect and has been consumed.
        """
        if not self.fxa.matches_redirect(url):
            return False
        await self.fxa.handle_redirect_url(url)
        return True

    async def sign_out(self) -> None:
        """Forget the account and reset background sync."""
        self.fxa.cancel()
        self.dispatcher.dispatch(ClearUserInfoAction())
        if self.sync_service is not None:
            self.dispatcher.dispatch(SyncCommandAction(command=SyncCommand.RESET))
        await self.dispatcher.drain()

    # Datastore

    async def open(self, uid: str) -> None:
        await self.datastore.open(uid)

    async def list(self) -> None:
        await self.datastore.list()

    async def touch(self, item: Item) -> None:
        await self.datastore.touch(item)

    async def lock(self) -> None:
        await self.datastore.lock()

    async def unlock_with_biometrics(self, message: str = UNLOCK_MESSAGE) -> bool:
        """
        Unlock with the in-memory scoped key after a local user-presence check.

        Gate failures are ignored: the user can sign in again instead.

        Returns:
            True if the unlock call was issued.
        """
        scoped_key = self.user_info_store.scoped_key.value
        if scoped_key is None or self._biometry_gate is None:
            return False
        try:
            approved = await self._biometry_gate.authenticate(message)
        except Exception as e:
            logger.debug("Local authentication failed", error_type=type(e).__name__)
            return False
        if not approved:
            return False
        await self.datastore.unlock(scoped_key)
        return True

    # Lifecycle and sync

    def lifecycle(self, event: LifecycleEvent) -> None:
        self.dispatcher.dispatch(LifecycleAction(event=event))

    def sync(self) -> None:
        """Request an immediate sync. Completion shows up as sync state changes."""
        self.dispatcher.dispatch(SyncCommandAction(command=SyncCommand.SYNC))

    async def _on_scoped_key(self, action: ScopedKeyAction) -> None:
        await self.datastore.update_initialized()
        if self.datastore_store.initialized.value:
            await self.datastore.unlock(action.key)
        else:
            await self.datastore.initialize(action.key)
