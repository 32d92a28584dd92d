"""
Session Bridge.

Moves the user's authenticated session onto the identity issued by a
successful profile update, in two phases:

1. refresh_session() - right after persistence: swap the live session for one
   carrying the new token and user fields, and store the token durably.
2. finalize() - when the user leaves the confirmation screen: sign out and
   sign back in from the stored token alone, then navigate.

The session object is always replaced whole, never patched field by field,
so nothing can observe a half-updated identity. finalize() is an explicit
AUTHENTICATED -> TRANSITIONING -> AUTHENTICATED | LOGGED_OUT transition.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

import httpx
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .clients import bounded_call
from .errors import InvalidTransitionError, SessionTransitionError
from .notifications import LOG_IN_AGAIN, LoggingNotifier, Notifier
from .payload import UserRecord
from .storage import TokenStorage

logger = logging.getLogger(__name__)


# =============================================================================
# Session model
# =============================================================================

class SessionUser(BaseModel):
    """User block of the live session. Unknown provider fields are kept."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="allow",
    )

    id: str | None = None
    name: str | None = None
    email: str | None = None
    role: str | None = None
    is_onboarding: bool = False
    image: str | None = None


class Session(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    user: SessionUser = Field(default_factory=SessionUser)
    access_token: str | None = None


def build_refreshed_session(
    current: Session | None,
    access_token: str,
    user: UserRecord,
) -> Session:
    """New session = current session with the issued token and user fields."""
    base_user = current.user if current else SessionUser()
    refreshed_user = base_user.model_copy(update={
        "id": user.user_id,
        "name": user.display_name,
        "role": user.role,
        "is_onboarding": user.is_onboarding,
        "image": user.profile_photo_url,
    })
    base = current or Session()
    return base.model_copy(update={"user": refreshed_user, "access_token": access_token})


# =============================================================================
# Contracts
# =============================================================================

class SessionProvider(ABC):
    """Authenticated session provider. Every operation may fail."""

    @abstractmethod
    async def current_session(self) -> Session | None:
        ...

    @abstractmethod
    async def update_session(self, session: Session) -> Session:
        ...

    @abstractmethod
    async def sign_out(self) -> None:
        ...

    @abstractmethod
    async def sign_in(self, access_token: str) -> Session | None:
        """Credential-less sign in from a previously issued token."""
        ...


class Navigator(ABC):
    @abstractmethod
    def navigate(self, path: str) -> None:
        ...


class NavigationTarget(Enum):
    MAIN_APP = "main_app"
    LOGIN = "login"


class SessionState(Enum):
    AUTHENTICATED = "authenticated"
    TRANSITIONING = "transitioning"
    LOGGED_OUT = "logged_out"


@dataclass
class SessionContext:
    """
    Explicitly passed authentication context.

    Holds the provider, durable storage and the bridge's view of the session.
    """
    provider: SessionProvider
    storage: TokenStorage
    token_key: str = "next-auth.session-token"
    session: Session | None = None
    state: SessionState = SessionState.AUTHENTICATED

    @property
    def stored_token(self) -> str | None:
        return self.storage.get(self.token_key)


# =============================================================================
# Bridge
# =============================================================================

class SessionBridge:
    """Owns every write to the live session and to durable token storage."""

    def __init__(
        self,
        context: SessionContext,
        navigator: Navigator,
        notifier: Notifier | None = None,
        main_app_path: str = "/portal/messages",
        login_path: str = "/login",
        timeout: float | None = None,
    ):
        self.context = context
        self.navigator = navigator
        self.notifier = notifier or LoggingNotifier()
        self.main_app_path = main_app_path
        self.login_path = login_path
        self.timeout = timeout

    async def refresh_session(self, access_token: str, user: UserRecord) -> Session:
        """
        Swap the live session for one carrying the issued token.

        The token is written to durable storage only after the provider has
        accepted the new session. If that write fails the provider is put back
        on the previous session before the error propagates.
        """
        ctx = self.context
        if ctx.state is not SessionState.AUTHENTICATED:
            raise InvalidTransitionError(f"Cannot refresh session while {ctx.state.value}")

        current = await bounded_call(ctx.provider.current_session(), self.timeout)
        refreshed = build_refreshed_session(current, access_token, user)
        accepted = await bounded_call(ctx.provider.update_session(refreshed), self.timeout)

        try:
            ctx.storage.set(ctx.token_key, access_token)
        except Exception:
            logger.error(f"Storing token for user {user.user_id} failed; restoring previous session")
            if current is None:
                await bounded_call(ctx.provider.sign_out(), self.timeout)
            else:
                await bounded_call(ctx.provider.update_session(current), self.timeout)
            raise

        ctx.session = accepted or refreshed
        logger.info(f"Session refreshed for user {user.user_id} (role={user.role})")
        return ctx.session

    async def finalize(self) -> NavigationTarget:
        """
        Re-establish the session from the issued token and navigate.

        Any failure ends LOGGED_OUT with the user sent to the login entry point.
        """
        ctx = self.context
        if ctx.state is SessionState.TRANSITIONING:
            raise InvalidTransitionError("Session transition already in progress")

        # Token is read before sign-out clears the session
        token = (ctx.session.access_token if ctx.session else None) or ctx.stored_token
        ctx.state = SessionState.TRANSITIONING

        try:
            session = await self._reauthenticate(token)
        except SessionTransitionError as e:
            logger.warning(f"Re-authentication failed: {e}")
            ctx.session = None
            ctx.state = SessionState.LOGGED_OUT
            self.notifier.info(LOG_IN_AGAIN)
            self.navigator.navigate(self.login_path)
            return NavigationTarget.LOGIN

        ctx.session = session
        ctx.state = SessionState.AUTHENTICATED
        self.navigator.navigate(self.main_app_path)
        return NavigationTarget.MAIN_APP

    async def _reauthenticate(self, token: str | None) -> Session:
        ctx = self.context
        try:
            await bounded_call(ctx.provider.sign_out(), self.timeout)
        except Exception as e:
            raise SessionTransitionError(f"Sign out failed: {e}") from e
        ctx.session = None

        if not token:
            raise SessionTransitionError("No access token available")

        try:
            session = await bounded_call(ctx.provider.sign_in(token), self.timeout)
        except Exception as e:
            raise SessionTransitionError(f"Sign in failed: {e}") from e
        if session is None:
            raise SessionTransitionError("Sign in rejected the token")
        return session


# =============================================================================
# HTTP provider
# =============================================================================

class HttpSessionProvider(SessionProvider):
    """
    Client-side session cache backed by the auth endpoint.

    sign_in() exchanges a bearer token at GET {base_url}/auth/session for the
    user it belongs to.
    """

    def __init__(
        self,
        base_url: str,
        session: Session | None = None,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self._session = session
        self._transport = transport

    async def current_session(self) -> Session | None:
        return self._session

    async def update_session(self, session: Session) -> Session:
        self._session = session
        return session

    async def sign_out(self) -> None:
        self._session = None

    async def sign_in(self, access_token: str) -> Session | None:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            response = await client.get(
                "/auth/session",
                headers={"Authorization": f"Bearer {access_token}"},
            )

        if response.status_code in (401, 403):
            logger.info("Auth endpoint rejected the token")
            return None
        response.raise_for_status()

        data = response.json()
        user_data = data.get("user", data) if isinstance(data, dict) else {}
        self._session = Session(
            user=SessionUser.model_validate(user_data),
            access_token=access_token,
        )
        return self._session
