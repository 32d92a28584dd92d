"""
Pytest configuration and fixtures for onboarding tests.

Every external contract (profile service, chat service, session provider,
navigation, notifications) has a fake here so the workflow can be driven
without a network.
"""

import os
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

# Set test environment before importing onboarding modules
os.environ["ONBOARDING_ENV"] = "development"

from student_onboarding.clients import ChatIdentityService, ProfileService
from student_onboarding.notifications import Notifier
from student_onboarding.payload import ProfileUpdateResponse, UserRecord
from student_onboarding.session import (
    Navigator,
    Session,
    SessionBridge,
    SessionContext,
    SessionProvider,
    SessionUser,
)
from student_onboarding.storage import MemoryTokenStorage
from student_onboarding.wizard import OnboardingWizard

TOKEN_KEY = "next-auth.session-token"


class FakeSessionProvider(SessionProvider):
    """In-memory session provider that records every call."""

    def __init__(
        self,
        session: Session | None = None,
        fail_update: bool = False,
        fail_sign_in: bool = False,
        reject_sign_in: bool = False,
    ):
        self.session = session
        self.fail_update = fail_update
        self.fail_sign_in = fail_sign_in
        self.reject_sign_in = reject_sign_in
        self.calls: list = []

    async def current_session(self) -> Session | None:
        return self.session

    async def update_session(self, session: Session) -> Session:
        self.calls.append("update_session")
        if self.fail_update:
            raise RuntimeError("session store unavailable")
        self.session = session
        return session

    async def sign_out(self) -> None:
        self.calls.append("sign_out")
        self.session = None

    async def sign_in(self, access_token: str) -> Session | None:
        self.calls.append(("sign_in", access_token))
        if self.fail_sign_in:
            raise RuntimeError("CredentialsSignin")
        if self.reject_sign_in:
            return None
        self.session = Session(user=SessionUser(id="user-1"), access_token=access_token)
        return self.session


class RecordingNavigator(Navigator):
    def __init__(self):
        self.paths: list[str] = []

    def navigate(self, path: str) -> None:
        self.paths.append(path)


class RecordingNotifier(Notifier):
    def __init__(self):
        self.messages: list[tuple[str, str]] = []

    def success(self, message: str) -> None:
        self.messages.append(("success", message))

    def error(self, message: str) -> None:
        self.messages.append(("error", message))

    def info(self, message: str) -> None:
        self.messages.append(("info", message))

    def of(self, level: str) -> list[str]:
        return [m for lvl, m in self.messages if lvl == level]


class FailingTokenStorage(MemoryTokenStorage):
    """Token storage whose writes always fail."""

    def set(self, key: str, value: str) -> None:
        raise OSError("disk full")


@pytest.fixture
def token_key():
    return TOKEN_KEY


@pytest.fixture
def make_provider():
    """Factory for a recording session provider; see FakeSessionProvider flags."""

    def _make(**kwargs) -> FakeSessionProvider:
        return FakeSessionProvider(**kwargs)

    return _make


@pytest.fixture
def failing_storage():
    return FailingTokenStorage()


@pytest.fixture
def make_bridge():
    """Factory for a SessionBridge; returns (bridge, navigator, notifier)."""

    def _make(provider, storage=None, session=None):
        context = SessionContext(
            provider=provider,
            storage=storage if storage is not None else MemoryTokenStorage(),
            token_key=TOKEN_KEY,
            session=session,
        )
        navigator = RecordingNavigator()
        notifier = RecordingNotifier()
        bridge = SessionBridge(context, navigator, notifier=notifier)
        return bridge, navigator, notifier

    return _make


@pytest.fixture
def valid_personal_details():
    """Step 1 values that pass every rule."""
    return {
        "firstName": "Ada",
        "lastName": "Lovelace",
        "phone": "0712345678",
        "address": "12 St James's Square, London",
        "subjects": ["Mathematics", "Physics"],
    }


@pytest.fixture
def user_record():
    return UserRecord(
        user_id="user-1",
        first_name="Ada",
        last_name="Lovelace",
        role="STUDENT",
        is_onboarding=True,
        profile_photo_url="https://cdn.example.com/ada.png",
    )


@pytest.fixture
def profile_response(user_record):
    return ProfileUpdateResponse(access_token="new-token", user=user_record)


@pytest.fixture
def existing_session():
    return Session(
        user=SessionUser(id="user-1", email="ada@example.com", role="USER"),
        access_token="old-token",
    )


@pytest.fixture
def make_harness(profile_response, existing_session):
    """
    Factory for a fully wired wizard with fakes.

    Returns a namespace with the wizard and every collaborator so tests can
    assert on calls and side effects.
    """

    def _make(
        chat_result=True,
        response=None,
        provider: FakeSessionProvider | None = None,
        storage: MemoryTokenStorage | None = None,
        timeout: float | None = None,
    ) -> SimpleNamespace:
        chat = AsyncMock(spec=ChatIdentityService)
        if isinstance(chat_result, BaseException):
            chat.setup_chat_user.side_effect = chat_result
        else:
            chat.setup_chat_user.return_value = chat_result

        profile = AsyncMock(spec=ProfileService)
        if isinstance(response, BaseException):
            profile.update_user.side_effect = response
        else:
            profile.update_user.return_value = response or profile_response

        provider = provider or FakeSessionProvider(session=existing_session)
        storage = storage if storage is not None else MemoryTokenStorage()
        context = SessionContext(
            provider=provider,
            storage=storage,
            token_key=TOKEN_KEY,
            session=provider.session,
        )
        navigator = RecordingNavigator()
        notifier = RecordingNotifier()
        wizard = OnboardingWizard(
            "user-1",
            profile_service=profile,
            chat_service=chat,
            session_context=context,
            navigator=navigator,
            notifier=notifier,
            timeout=timeout,
            nonce="fixed-nonce",
        )
        return SimpleNamespace(
            wizard=wizard,
            chat=chat,
            profile=profile,
            provider=provider,
            storage=storage,
            context=context,
            navigator=navigator,
            notifier=notifier,
        )

    return _make


@pytest.fixture
def fill_details():
    """Types step 1 values into a wizard, subject by subject."""

    def _fill(wizard, values: dict) -> None:
        for name in ("firstName", "lastName", "phone", "address"):
            wizard.set_field(name, values[name])
        subjects = values["subjects"]
        wizard.set_field("subjects.0", subjects[0])
        for subject in subjects[1:]:
            index = wizard.add_subject()
            wizard.set_field(f"subjects.{index}", subject)

    return _fill
