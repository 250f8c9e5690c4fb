"""HTTP user resolver strategy.

Asks the user service who is signed in by forwarding the request's cookies.
"""

import logging

import httpx

from docassembly.core.exceptions import UpstreamFetchError
from docassembly.interfaces.user import BaseUserResolver

logger = logging.getLogger(__name__)


class HttpUserResolver(BaseUserResolver):
    """Resolves the current user through a cookie-authenticated endpoint.

    The endpoint must answer ``{"username": "..."}``. Without a configured
    endpoint every request resolves to ``default_username``.
    """

    def __init__(
        self,
        service_url: str | None,
        default_username: str = "dev",
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._service_url = service_url
        self._default_username = default_username
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    async def resolve_user(self, cookie_header: str | None) -> str:
        if not self._service_url:
            return self._default_username

        headers = {"Cookie": cookie_header} if cookie_header else {}
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_seconds, transport=self._transport
            ) as client:
                response = await client.get(self._service_url, headers=headers)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as e:
            logger.error(f"User service request failed: {e}")
            raise UpstreamFetchError(f"User service request failed: {e}") from e
        except ValueError as e:
            raise UpstreamFetchError("User service returned invalid JSON") from e

        username = payload.get("username") if isinstance(payload, dict) else None
        if not username:
            raise UpstreamFetchError("User service did not return a username")

        logger.debug(f"Resolved current user: {username}")
        return str(username)
