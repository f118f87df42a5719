"""Firefox Accounts API endpoints."""

from lockbox_core.api.endpoints.fxa import get_profile_info, post_token_request

__all__ = ["get_profile_info", "post_token_request"]
