"""User resolution interface."""

from abc import ABC, abstractmethod


class BaseUserResolver(ABC):
    """Abstract base class for resolving the requesting user."""

    @abstractmethod
    async def resolve_user(self, cookie_header: str | None) -> str:
        """Resolve the username behind the forwarded cookies.

        Args:
            cookie_header: The raw ``Cookie`` header of the request, if any.

        Returns:
            The username.

        Raises:
            UpstreamFetchError: If the user cannot be resolved.
        """
