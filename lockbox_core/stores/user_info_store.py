"""Signed-in account information."""

import structlog

from lockbox_core.actions import (
    ClearUserInfoAction,
    LoadUserInfoAction,
    OAuthInfoAction,
    ProfileInfoAction,
    ScopedKeyAction,
    UserInfoAction,
)
from lockbox_core.core.observable import ObservableValue
from lockbox_core.dispatcher import Dispatcher
from lockbox_core.models.user import OAuthInfo, ProfileInfo
from lockbox_core.stores.secret_store import KeychainIdentifier, SecretStore

logger = structlog.get_logger(__name__)

_PROFILE_IDENTIFIERS = (
    KeychainIdentifier.EMAIL,
    KeychainIdentifier.DISPLAY_NAME,
    KeychainIdentifier.AVATAR_URL,
)


class UserInfoStore:
    """
    Projects user info actions into observable account state.

    The profile is persisted in the secret store. Tokens and the scoped key
    stay in memory only.
    """

    def __init__(self, dispatcher: Dispatcher, secret_store: SecretStore) -> None:
        self._secret_store = secret_store

        self.profile_info: ObservableValue[ProfileInfo | None] = ObservableValue()
        self.oauth_info: ObservableValue[OAuthInfo] = ObservableValue()
        self.scoped_key: ObservableValue[str] = ObservableValue()

        self._unsubscribe = dispatcher.register(UserInfoAction, self._on_action)

    def close(self) -> None:
        self._unsubscribe()

    def _on_action(self, action: UserInfoAction) -> None:
        match action:
            case ProfileInfoAction(info=info):
                if self._save_profile_info(info):
                    self.profile_info.set(info)
                else:
                    logger.warning("Profile not saved, keeping previous value")
            case OAuthInfoAction(info=info):
                self.oauth_info.set(info)
            case ScopedKeyAction(key=key):
                self.scoped_key.set(key)
            case LoadUserInfoAction():
                self.profile_info.set(self._load_profile_info())
            case ClearUserInfoAction():
                self._clear()

    def _save_profile_info(self, info: ProfileInfo) -> bool:
        success = self._secret_store.save(KeychainIdentifier.EMAIL, info.email)
        if info.display_name is not None:
            success = success and self._secret_store.save(
                KeychainIdentifier.DISPLAY_NAME, info.display_name
            )
        if info.avatar is not None:
            success = success and self._secret_store.save(
                KeychainIdentifier.AVATAR_URL, info.avatar
            )
        return success

    def _load_profile_info(self) -> ProfileInfo | None:
        email = self._secret_store.retrieve(KeychainIdentifier.EMAIL)
        if email is None:
            return None
        return ProfileInfo(
            email=email,
            display_name=self._secret_store.retrieve(KeychainIdentifier.DISPLAY_NAME),
            avatar=self._secret_store.retrieve(KeychainIdentifier.AVATAR_URL),
        )

    def _clear(self) -> None:
        for identifier in _PROFILE_IDENTIFIERS:
            self._secret_store.delete(identifier)
        logger.info("User info cleared")
        self.profile_info.set(None)
