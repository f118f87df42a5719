"""
Account-related domain models.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, kw_only=True)
class ProfileInfo:
    """
    Firefox Account profile.

    Attributes:
        email: Primary account email.
        display_name: Name chosen by the user, if any.
        avatar: Avatar image URL, if any.
    """

    email: str
    display_name: str | None = None
    avatar: str | None = None


@dataclass(frozen=True, kw_only=True)
class OAuthInfo:
    """
    Tokens and key material from the token endpoint.

    Held in memory only, never persisted.

    Attributes:
        access_token: Bearer token for the profile server.
        refresh_token: Token for refreshing access_token.
        id_token: OpenID Connect ID token.
        expires_at: When access_token expires.
        keys_jwe: Compact JWE holding the scoped keys.
    """

    access_token: str
    refresh_token: str | None
    id_token: str | None
    expires_at: datetime
    keys_jwe: str | None

    def __repr__(self) -> str:
        return f"OAuthInfo(expires_at={self.expires_at.isoformat()})"


@dataclass(frozen=True, kw_only=True)
class AuthContext:
    """
    Ephemeral per-flow authentication state.

    Generated fresh by every FxAService.initiate() call.

    Attributes:
        state: Random state nonce (base64url).
        code_verifier: PKCE code verifier (base64url).
        code_challenge: base64url(SHA-256(code_verifier)) without padding.
        keys_jwk: base64url encoded public JWK of the ephemeral ECDH key.
        flow_id: Identifier of this authentication attempt.
    """

    state: str
    code_verifier: str
    code_challenge: str
    keys_jwk: str
    flow_id: str
