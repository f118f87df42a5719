"""
Firefox Accounts sign-in service.

Runs the OAuth 2.0 authorization-code flow with PKCE and the scoped-keys
extension: builds the authorization URL, validates the redirect, exchanges
the code, derives the Lockbox scoped key and fetches the profile.
"""

import json
import secrets
from collections.abc import Mapping
from enum import StrEnum

import httpx
import structlog

from lockbox_core.actions import (
    ErrorAction,
    FetchingUserInformationAction,
    FinishedFetchingUserInformationAction,
    LoadInitialURLAction,
    OAuthInfoAction,
    ProfileInfoAction,
    ScopedKeyAction,
)
from lockbox_core.api.endpoints.fxa import (
    AUTHORIZATION_PATH,
    get_profile_info,
    post_token_request,
)
from lockbox_core.api.http_client import AsyncHttpClient
from lockbox_core.config import LockboxConfig
from lockbox_core.crypto.key_manager import KeyManager, base64url_encode, sha256_base64url
from lockbox_core.dispatcher import Dispatcher
from lockbox_core.exceptions import (
    RedirectBadStateError,
    RedirectNoCodeError,
    RedirectNoStateError,
    UnexpectedDataFormatError,
)
from lockbox_core.models.user import AuthContext, OAuthInfo

logger = structlog.get_logger(__name__)


class FxAStage(StrEnum):
    IDLE = "idle"
    AWAITING_REDIRECT = "awaiting_redirect"
    FETCHING_USER_INFO = "fetching_user_info"
    COMPLETE = "complete"


class FxAService:
    """
    Firefox Accounts authentication flow.

    Stages: IDLE -> AWAITING_REDIRECT -> FETCHING_USER_INFO -> COMPLETE.
    Every failure is dispatched as ErrorAction. A failure after the code
    exchange has started returns the flow to IDLE; a rejected redirect leaves
    the pending flow in place.
    """

    def __init__(
        self,
        http_client: AsyncHttpClient,
        dispatcher: Dispatcher,
        config: LockboxConfig,
        *,
        key_manager: KeyManager | None = None,
    ) -> None:
        """
        Args:
            http_client: HTTP client for the OAuth and profile servers.
            dispatcher: Bus receiving the flow's actions.
            config: Client configuration (URLs, client id, scope).
            key_manager: Source of PKCE values and the ephemeral key.
        """
        self._http = http_client
        self._dispatcher = dispatcher
        self._config = config
        self._key_manager = key_manager if key_manager is not None else KeyManager()

        self._stage = FxAStage.IDLE
        self._context: AuthContext | None = None

    @property
    def stage(self) -> FxAStage:
        return self._stage

    @property
    def context(self) -> AuthContext | None:
        """Context of the flow awaiting its redirect, if any."""
        return self._context

    def initiate(self) -> str | None:
        """
        Start a new sign-in flow.

        Replaces any flow in progress and dispatches LoadInitialURLAction.

        Returns:
            The authorization URL, or None if the flow could not start.
        """
        try:
            jwk = self._key_manager.ephemeral_public_jwk()
        except Exception as e:
            logger.warning("Could not start sign-in flow", error_type=type(e).__name__)
            self._reset()
            self._dispatcher.dispatch(ErrorAction(e))
            return None

        code_verifier = base64url_encode(self._key_manager.random32())
        self._context = AuthContext(
            state=base64url_encode(self._key_manager.random32()),
            code_verifier=code_verifier,
            code_challenge=sha256_base64url(code_verifier),
            keys_jwk=base64url_encode(json.dumps(jwk).encode("utf-8")),
            flow_id=secrets.token_hex(16),
        )
        self._stage = FxAStage.AWAITING_REDIRECT

        url = self.authorization_url(self._context)
        logger.info("Sign-in flow started", flow_id=self._context.flow_id)
        self._dispatcher.dispatch(LoadInitialURLAction(url=url))
        return url

    def authorization_url(self, context: AuthContext) -> str:
        """Build the authorization URL for a flow context."""
        url = httpx.URL(
            self._config.oauth_url.rstrip("/") + AUTHORIZATION_PATH,
            params={
                "response_type": "code",
                "access_type": "offline",
                "client_id": self._config.client_id,
                "redirect_uri": self._config.redirect_uri,
                "scope": f"profile openid {self._config.scope}",
                "action": "signin",
                "keys_jwk": context.keys_jwk,
                "state": context.state,
                "code_challenge": context.code_challenge,
                "code_challenge_method": "S256",
            },
        )
        return str(url)

    def matches_redirect(self, url: str) -> bool:
        """Whether a navigation target is the configured redirect URI."""
        try:
            candidate = httpx.URL(url)
        except httpx.InvalidURL:
            return False
        expected = httpx.URL(self._config.redirect_uri)
        return (
            candidate.scheme == expected.scheme
            and candidate.host == expected.host
            and candidate.path == expected.path
        )

    async def handle_redirect(self, query_params: Mapping[str, str]) -> None:
        """
        Complete the flow from the redirect's query parameters.

        Args:
            query_params: Query of the redirect URL (state and code).
        """
        state = query_params.get("state")
        if not state:
            self._dispatcher.dispatch(ErrorAction(RedirectNoStateError()))
            return
        code = query_params.get("code")
        if not code:
            self._dispatcher.dispatch(ErrorAction(RedirectNoCodeError()))
            return

        context = self._context
        if context is None or not secrets.compare_digest(state, context.state):
            logger.warning("Redirect state mismatch", stage=str(self._stage))
            self._dispatcher.dispatch(ErrorAction(RedirectBadStateError()))
            return

        self._context = None
        self._stage = FxAStage.FETCHING_USER_INFO
        self._dispatcher.dispatch(FetchingUserInformationAction())

        try:
            await self._retrieve_user_information(code, context)
        except Exception as e:
            logger.warning("Sign-in failed", error_type=type(e).__name__)
            self._reset()
            self._dispatcher.dispatch(ErrorAction(e))
            return

        self._key_manager.clear()
        self._stage = FxAStage.COMPLETE
        logger.info("Sign-in complete", flow_id=context.flow_id)
        self._dispatcher.dispatch(FinishedFetchingUserInformationAction())

    async def handle_redirect_url(self, url: str) -> None:
        """Complete the flow from a full redirect URL."""
        await self.handle_redirect(httpx.URL(url).params)

    def cancel(self) -> None:
        """Abandon the flow in progress."""
        if self._stage is not FxAStage.IDLE:
            logger.info("Sign-in flow cancelled", stage=str(self._stage))
        self._reset()

    async def _retrieve_user_information(self, code: str, context: AuthContext) -> None:
        oauth_info = await post_token_request(
            self._http,
            self._config.oauth_url,
            client_id=self._config.client_id,
            code=code,
            code_verifier=context.code_verifier,
        )
        scoped_key = self._derive_scoped_key(oauth_info)

        self._dispatcher.dispatch(OAuthInfoAction(info=oauth_info))
        self._dispatcher.dispatch(ScopedKeyAction(key=scoped_key))

        profile = await get_profile_info(
            self._http, self._config.profile_url, oauth_info.access_token
        )
        self._dispatcher.dispatch(ProfileInfoAction(info=profile))

    def _derive_scoped_key(self, oauth_info: OAuthInfo) -> str:
        if not oauth_info.keys_jwe:
            msg = "Token response has no keys_jwe"
            raise UnexpectedDataFormatError(msg)

        plaintext = self._key_manager.decrypt_jwe(oauth_info.keys_jwe)
        try:
            keys = json.loads(plaintext)
        except ValueError as e:
            msg = "Scoped keys are not JSON"
            raise UnexpectedDataFormatError(msg) from e

        key = keys.get(self._config.scope) if isinstance(keys, dict) else None
        if not isinstance(key, dict):
            msg = "Scoped keys do not contain the requested scope"
            raise UnexpectedDataFormatError(msg, scope=self._config.scope)
        return json.dumps(key, separators=(",", ":"))

    def _reset(self) -> None:
        self._context = None
        self._stage = FxAStage.IDLE
        self._key_manager.clear()
