"""
Firefox Accounts client layer.

Provides async HTTP communication with the OAuth and profile servers.
"""

from lockbox_core.api.http_client import AsyncHttpClient, sanitize_for_log

__all__ = ["AsyncHttpClient", "sanitize_for_log"]
