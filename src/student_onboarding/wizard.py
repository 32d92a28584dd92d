"""
Onboarding Wizard.

The user-action surface over the step controller, submission orchestrator and
session bridge. Whatever renders the wizard (the CLI, a web view) calls these
methods and reads back step, draft and errors to draw the current screen.
"""

import logging
from typing import Any

from .clients import (
    ChatIdentityService,
    HttpChatIdentityService,
    HttpProfileService,
    ProfileService,
)
from .config import OnboardingSettings, get_settings
from .errors import InvalidTransitionError
from .form_state import FormStateStore, ProfileDraft
from .notifications import LoggingNotifier, Notifier
from .session import (
    HttpSessionProvider,
    NavigationTarget,
    Navigator,
    Session,
    SessionBridge,
    SessionContext,
)
from .state import OnboardingStep, StepController, StepDefinition
from .storage import FileTokenStorage, TokenStorage
from .submission import SubmissionOrchestrator, SubmissionResult

logger = logging.getLogger(__name__)


class OnboardingWizard:
    """One student's onboarding run."""

    def __init__(
        self,
        user_id: str,
        profile_service: ProfileService,
        chat_service: ChatIdentityService,
        session_context: SessionContext,
        navigator: Navigator,
        notifier: Notifier | None = None,
        role: str = "STUDENT",
        min_phone_length: int = 9,
        main_app_path: str = "/portal/messages",
        login_path: str = "/login",
        timeout: float | None = None,
        nonce: str | None = None,
    ):
        self.user_id = user_id
        self.notifier = notifier or LoggingNotifier()
        self.store = FormStateStore(min_phone_length=min_phone_length)
        self.controller = StepController(self.store)
        self.bridge = SessionBridge(
            session_context,
            navigator,
            notifier=self.notifier,
            main_app_path=main_app_path,
            login_path=login_path,
            timeout=timeout,
        )
        self.orchestrator = SubmissionOrchestrator(
            user_id,
            self.controller,
            profile_service,
            chat_service,
            self.bridge,
            notifier=self.notifier,
            role=role,
            timeout=timeout,
            nonce=nonce,
        )

    @classmethod
    def from_settings(
        cls,
        user_id: str,
        navigator: Navigator,
        notifier: Notifier | None = None,
        session: Session | None = None,
        storage: TokenStorage | None = None,
        settings: OnboardingSettings | None = None,
    ) -> "OnboardingWizard":
        """Wire the HTTP services, file storage and session provider from settings."""
        settings = settings or get_settings()
        storage = storage or FileTokenStorage(settings.token_storage_path)
        access_token = (session.access_token if session else None) or storage.get(
            settings.session_token_key
        )

        context = SessionContext(
            provider=HttpSessionProvider(
                settings.api_base_url,
                session=session,
                timeout=settings.http_timeout_seconds,
            ),
            storage=storage,
            token_key=settings.session_token_key,
            session=session,
        )
        return cls(
            user_id,
            profile_service=HttpProfileService(
                settings.api_base_url,
                access_token=access_token,
                timeout=settings.http_timeout_seconds,
            ),
            chat_service=HttpChatIdentityService(
                settings.chat_api_base_url,
                access_token=access_token,
                timeout=settings.http_timeout_seconds,
            ),
            session_context=context,
            navigator=navigator,
            notifier=notifier,
            role=settings.student_role,
            min_phone_length=settings.min_phone_length,
            main_app_path=settings.main_app_path,
            login_path=settings.login_path,
            timeout=settings.external_call_timeout_seconds,
        )

    # ------------------------------------------------------------------
    # Screen state
    # ------------------------------------------------------------------

    @property
    def step(self) -> OnboardingStep:
        return self.controller.step

    @property
    def definition(self) -> StepDefinition:
        return self.controller.definition

    @property
    def draft(self) -> ProfileDraft:
        return self.store.get_all()

    @property
    def errors(self) -> dict[str, str]:
        return self.store.get_errors()

    @property
    def submitting(self) -> bool:
        """True while submission runs; the submit action is disabled."""
        return self.orchestrator.in_flight

    @property
    def can_remove_subject(self) -> bool:
        return self.store.subjects.can_remove

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    def set_field(self, name: str, value: Any) -> None:
        self._require_editable()
        self.store.set_field(name, value)

    def add_subject(self) -> int:
        self._require_editable()
        return self.store.add_subject()

    def remove_subject(self, index: int) -> bool:
        self._require_editable()
        return self.store.remove_subject(index)

    def next(self) -> bool:
        return self.controller.advance()

    def back(self) -> bool:
        return self.controller.retreat()

    async def submit(self) -> SubmissionResult:
        if self.step is not OnboardingStep.PROFILE_PICTURE:
            raise InvalidTransitionError(f"Submit is not available on {self.step.name}")
        return await self.orchestrator.submit()

    async def lets_go(self) -> NavigationTarget:
        """Leave the confirmation screen for the app (or the login page)."""
        if self.step is not OnboardingStep.CONFIRMATION:
            raise InvalidTransitionError(f"Cannot finish onboarding from {self.step.name}")
        return await self.bridge.finalize()

    def _require_editable(self) -> None:
        if self.controller.is_terminal:
            raise InvalidTransitionError("Confirmation step is read-only")
