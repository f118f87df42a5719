from datetime import UTC, datetime

from lockbox_core.models.state import LoginStoreState, LoginStoreStatus, SyncState, SyncStatus
from lockbox_core.models.user import OAuthInfo


def test_errored_states_compare_by_status_only() -> None:
    assert LoginStoreState.errored(ValueError("a")) == LoginStoreState.errored(KeyError("b"))
    assert SyncState.error(ValueError("a")) == SyncState.error(KeyError("b"))


def test_errored_state_keeps_cause() -> None:
    cause = ValueError("a")
    state = LoginStoreState.errored(cause)

    assert state.status is LoginStoreStatus.ERRORED
    assert state.cause is cause


def test_named_states() -> None:
    assert LoginStoreState.LOCKED != LoginStoreState.UNLOCKED
    assert SyncState.SYNCED.status is SyncStatus.SYNCED
    assert SyncState.NOT_SYNCABLE == SyncState(SyncStatus.NOT_SYNCABLE)


def test_oauth_info_repr_hides_tokens() -> None:
    info = OAuthInfo(
        access_token="access-secret",
        refresh_token="refresh-secret",
        id_token=None,
        expires_at=datetime(2030, 1, 1, tzinfo=UTC),
        keys_jwe=None,
    )

    assert "secret" not in repr(info)
