"""Firefox Accounts OAuth and profile endpoints."""

from datetime import UTC, datetime, timedelta
from typing import Any

import structlog

from lockbox_core.api.http_client import AsyncHttpClient
from lockbox_core.exceptions import (
    EmptyOAuthDataError,
    EmptyProfileInfoDataError,
    UnexpectedDataFormatError,
)
from lockbox_core.models.user import OAuthInfo, ProfileInfo

logger = structlog.get_logger(__name__)

TOKEN_PATH = "/v1/token"
PROFILE_PATH = "/v1/profile"
AUTHORIZATION_PATH = "/v1/authorization"


async def post_token_request(
    http: AsyncHttpClient,
    oauth_url: str,
    *,
    client_id: str,
    code: str,
    code_verifier: str,
) -> OAuthInfo:
    """
    Exchange an authorization code for tokens.

    Args:
        http: Configured async HTTP client.
        oauth_url: Base URL of the OAuth server.
        client_id: OAuth client identifier.
        code: Authorization code from the redirect.
        code_verifier: PKCE verifier of the current flow.

    Returns:
        Tokens and the keys_jwe bundle.

    Raises:
        EmptyOAuthDataError: If the server returned an empty body.
        UnexpectedDataFormatError: If required fields are missing.
    """
    data = await http.request(
        "POST",
        oauth_url.rstrip("/") + TOKEN_PATH,
        json={
            "grant_type": "authorization_code",
            "client_id": client_id,
            "code": code,
            "code_verifier": code_verifier,
        },
    )
    if not data:
        msg = "Token endpoint returned no data"
        raise EmptyOAuthDataError(msg)
    return _oauth_info_from_response(data)


async def get_profile_info(http: AsyncHttpClient, profile_url: str, access_token: str) -> ProfileInfo:
    """
    Fetch the signed-in account's profile.

    Args:
        http: Configured async HTTP client.
        profile_url: Base URL of the profile server.
        access_token: Bearer token from the token endpoint.

    Returns:
        Profile with email, display name and avatar.

    Raises:
        EmptyProfileInfoDataError: If the server returned an empty body.
        UnexpectedDataFormatError: If the email is missing.
    """
    data = await http.request(
        "GET",
        profile_url.rstrip("/") + PROFILE_PATH,
        headers={"Authorization": f"Bearer {access_token}"},
    )
    if not data:
        msg = "Profile endpoint returned no data"
        raise EmptyProfileInfoDataError(msg)

    email = data.get("email")
    if not isinstance(email, str):
        msg = "Profile has no email"
        raise UnexpectedDataFormatError(msg, endpoint=PROFILE_PATH)
    return ProfileInfo(
        email=email,
        display_name=_optional_str(data, "displayName"),
        avatar=_optional_str(data, "avatar"),
    )


def _oauth_info_from_response(data: dict[str, Any]) -> OAuthInfo:
    access_token = data.get("access_token")
    expires_in = data.get("expires_in")
    if not isinstance(access_token, str) or not access_token:
        msg = "Token response has no access_token"
        raise UnexpectedDataFormatError(msg, endpoint=TOKEN_PATH)
    if not isinstance(expires_in, int | float) or isinstance(expires_in, bool):
        msg = "Token response has no expires_in"
        raise UnexpectedDataFormatError(msg, endpoint=TOKEN_PATH)

    logger.debug("Token response received", expires_in=expires_in)
    return OAuthInfo(
        access_token=access_token,
        refresh_token=_optional_str(data, "refresh_token"),
        id_token=_optional_str(data, "id_token"),
        expires_at=datetime.now(UTC) + timedelta(seconds=expires_in),
        keys_jwe=_optional_str(data, "keys_jwe"),
    )


def _optional_str(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    return value if isinstance(value, str) else None
