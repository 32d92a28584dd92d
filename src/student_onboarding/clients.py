"""
External service contracts and their HTTP adapters.

The submission workflow only depends on the abstract services below; the
httpx-backed implementations are what the CLI wires in. Tests use fakes.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, TypeVar

import httpx
from pydantic import ValidationError

from .errors import PersistenceError
from .payload import ProfileUpdateResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# Contracts
# =============================================================================

class ProfileService(ABC):
    """Persists the onboarding profile and issues a fresh access token."""

    @abstractmethod
    async def update_user(
        self,
        user_id: str,
        user_data: dict[str, Any],
        idempotency_key: str | None = None,
    ) -> ProfileUpdateResponse:
        ...


class ChatIdentityService(ABC):
    """Creates the user's identity on the messaging backend."""

    @abstractmethod
    async def setup_chat_user(self, user_id: str, profile_data: dict[str, Any]) -> bool:
        """Returns False (or raises) when the chat profile could not be created."""
        ...


async def bounded_call(awaitable: Awaitable[T], timeout: float | None) -> T:
    """Await an external call, giving up after `timeout` seconds when set."""
    if timeout is None:
        return await awaitable
    return await asyncio.wait_for(awaitable, timeout)


def _auth_headers(access_token: str | None) -> dict[str, str]:
    if not access_token:
        return {}
    return {"Authorization": f"Bearer {access_token}"}


# =============================================================================
# HTTP adapters
# =============================================================================

class HttpProfileService(ProfileService):
    """
    Profile update over HTTP.

    PUT {base_url}/users/{user_id} with {"userId", "userData"}.
    """

    def __init__(
        self,
        base_url: str,
        access_token: str | None = None,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self.access_token = access_token
        self.timeout = timeout
        self._transport = transport

    async def update_user(
        self,
        user_id: str,
        user_data: dict[str, Any],
        idempotency_key: str | None = None,
    ) -> ProfileUpdateResponse:
        headers = _auth_headers(self.access_token)
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key

        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            response = await client.put(
                f"/users/{user_id}",
                json={"userId": user_id, "userData": user_data},
                headers=headers,
            )
            response.raise_for_status()

        try:
            return ProfileUpdateResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise PersistenceError(f"Malformed profile update response: {e}")


class HttpChatIdentityService(ChatIdentityService):
    """
    Chat identity provisioning over HTTP.

    POST {base_url}/chat/users. A 2xx answer counts as success unless the body
    says {"success": false}.
    """

    def __init__(
        self,
        base_url: str,
        access_token: str | None = None,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self.access_token = access_token
        self.timeout = timeout
        self._transport = transport

    async def setup_chat_user(self, user_id: str, profile_data: dict[str, Any]) -> bool:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            response = await client.post(
                "/chat/users",
                json={"userId": user_id, "profileData": profile_data},
                headers=_auth_headers(self.access_token),
            )
            response.raise_for_status()

        if not response.content:
            return True
        try:
            data = response.json()
        except ValueError:
            logger.debug("Chat setup returned a non-JSON body; treating 2xx as success")
            return True
        if isinstance(data, dict):
            return bool(data.get("success", True))
        return True
