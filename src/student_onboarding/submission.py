"""
Submission Orchestrator.

Runs the final-step workflow in strict order, stopping at the first failure:

    validate final step -> chat identity -> profile update -> token check
        -> session refresh -> confirmation step

Nothing is retried automatically. Every external failure is caught here,
logged with detail and turned into one user-visible notification; the user
stays on the current step and may submit again.
"""

import copy
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from .clients import ChatIdentityService, ProfileService, bounded_call
from .errors import (
    ChatProvisioningError,
    FormValidationError,
    MissingAccessTokenError,
    OnboardingError,
    PersistenceError,
)
from .notifications import PROFILE_CREATED, LoggingNotifier, Notifier
from .payload import make_idempotency_key
from .session import Session, SessionBridge
from .state import StepController

logger = logging.getLogger(__name__)


@dataclass
class SubmissionResult:
    """Outcome of one submit() call."""
    success: bool
    error: OnboardingError | None = None
    session: Session | None = None
    skipped: bool = False  # in flight or already sent; nothing was called


class SubmissionOrchestrator:
    """
    Drives the multi-call submission for one onboarding run.

    Only one workflow runs at a time: submit() while another is in flight is a
    no-op, as is submit() after a successful run.
    """

    def __init__(
        self,
        user_id: str,
        controller: StepController,
        profile_service: ProfileService,
        chat_service: ChatIdentityService,
        bridge: SessionBridge,
        notifier: Notifier | None = None,
        role: str = "STUDENT",
        timeout: float | None = None,
        nonce: str | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.user_id = user_id
        self.controller = controller
        self.profile_service = profile_service
        self.chat_service = chat_service
        self.bridge = bridge
        self.notifier = notifier or LoggingNotifier()
        self.role = role
        self.timeout = timeout
        self.idempotency_key = make_idempotency_key(user_id, nonce or secrets.token_hex(16))
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def submit(self) -> SubmissionResult:
        if self._in_flight:
            logger.info("Submission already in flight; ignoring submit")
            return SubmissionResult(success=False, skipped=True)
        if self.controller.submission.sent:
            logger.info("Submission already sent; ignoring submit")
            return SubmissionResult(success=False, skipped=True)

        self._in_flight = True
        try:
            session = await self._run()
        except FormValidationError as e:
            # Field errors are already in the store for display
            return SubmissionResult(success=False, error=e)
        except OnboardingError as e:
            logger.error(f"Onboarding submission failed for user {self.user_id}: {e}")
            self.notifier.error(e.user_message)
            self.controller.on_submission_result(False)
            return SubmissionResult(success=False, error=e)
        finally:
            self._in_flight = False

        self.notifier.success(PROFILE_CREATED)
        return SubmissionResult(success=True, session=session)

    async def _run(self) -> Session:
        controller = self.controller
        if not controller.prepare_submission():
            raise FormValidationError(controller.store.get_errors())

        submission = controller.submission
        # Chat and persistence both see the validated values
        await self._provision_chat_identity(copy.deepcopy(submission.fields))

        user_data = submission.finalize(self.role, now=self._clock())
        try:
            response = await bounded_call(
                self.profile_service.update_user(
                    self.user_id,
                    user_data,
                    idempotency_key=self.idempotency_key,
                ),
                self.timeout,
            )
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Error updating user: {e}") from e

        # A returned call is not a successful workflow without a token
        if not response.access_token:
            raise MissingAccessTokenError("No access token returned from server")
        if response.user is None:
            raise PersistenceError("No user record returned from server")

        try:
            session = await self.bridge.refresh_session(response.access_token, response.user)
        except OnboardingError:
            raise
        except Exception as e:
            raise PersistenceError(f"Session refresh failed: {e}") from e

        submission.mark_sent()
        controller.on_submission_result(True)
        logger.info(f"Onboarding submitted for user {self.user_id}")
        return session

    async def _provision_chat_identity(self, profile_data: dict) -> None:
        try:
            ok = await bounded_call(
                self.chat_service.setup_chat_user(self.user_id, profile_data),
                self.timeout,
            )
        except Exception as e:
            raise ChatProvisioningError(f"Chat profile setup raised: {e}") from e
        if not ok:
            raise ChatProvisioningError("Chat profile setup reported failure")
