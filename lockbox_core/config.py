"""
Lockbox client configuration.
"""

from dataclasses import dataclass


@dataclass(frozen=True, kw_only=True)
class LockboxConfig:
    """
    Attributes:
        oauth_url: Base URL of the Firefox Accounts OAuth server.
        profile_url: Base URL of the Firefox Accounts profile server.
        client_id: OAuth client identifier.
        redirect_uri: Redirect URI registered for the OAuth client.
        scope: Lockbox scope requested in addition to "profile openid".
        datastore_name: JavaScript variable holding the opened datastore.
        timeout: HTTP request timeout in seconds.
        user_agent: User-Agent header value.
        sync_interval: Seconds between timed syncs while in the foreground.
        callback_timeout: Seconds to wait for a datastore callback. None waits forever.
    """

    oauth_url: str = "https://oauth.accounts.firefox.com"
    profile_url: str = "https://profile.accounts.firefox.com"
    client_id: str = "98adfa37698f255b"
    redirect_uri: str = "https://lockbox.firefox.com/fxa/ios-redirect.html"
    scope: str = "https://identity.mozilla.com/apps/lockbox"
    datastore_name: str = "ds"
    timeout: float = 30.0
    user_agent: str = "Lockbox-Python/1.0"
    sync_interval: float = 900.0
    callback_timeout: float | None = None

    def __post_init__(self) -> None:
        if not self.datastore_name.isidentifier():
            msg = "datastore_name must be a valid JavaScript identifier"
            raise ValueError(msg)
        if not self.client_id:
            msg = "client_id must not be empty"
            raise ValueError(msg)
        if self.timeout <= 0:
            msg = "timeout must be positive"
            raise ValueError(msg)
        if self.sync_interval <= 0:
            msg = "sync_interval must be positive"
            raise ValueError(msg)
        if self.callback_timeout is not None and self.callback_timeout <= 0:
            msg = "callback_timeout must be positive"
            raise ValueError(msg)
