"""Onboarding error taxonomy.

Every failure the wizard can hit maps to one of these classes, so callers can
tell a field problem (fix the input) from a workflow problem (retry the
submission) from a session problem (log in again).
"""


__all__ = [
    "OnboardingError",
    "FormValidationError",
    "ChatProvisioningError",
    "PersistenceError",
    "MissingAccessTokenError",
    "SessionTransitionError",
    "InvalidTransitionError",
]


class OnboardingError(Exception):
    """Base class for all onboarding errors.

    `user_message` is the only text ever shown to the user; the exception
    message itself may carry backend detail and is for logs only.
    """

    user_message = "An unexpected error occurred. Please try again."

    def __init__(self, message: str = "", user_message: str | None = None):
        super().__init__(message or self.user_message)
        if user_message is not None:
            self.user_message = user_message


class FormValidationError(OnboardingError):
    """One or more fields failed their rules.

    Recoverable: blocks step advancement only.
    """

    def __init__(self, errors: dict[str, str]):
        """Initialize FormValidationError.

        Args:
            errors: Field name to display message.
        """
        super().__init__(f"Invalid fields: {', '.join(sorted(errors))}")
        self.errors = dict(errors)


class ChatProvisioningError(OnboardingError):
    """Chat identity could not be set up. Submission aborted before persistence."""

    user_message = "Failed to set up chat profile"


class PersistenceError(OnboardingError):
    """Profile update failed. Nothing was committed to the session."""

    pass


class MissingAccessTokenError(PersistenceError):
    """Profile update returned without an access token.

    The network call succeeded but the workflow did not: without a token the
    session cannot be moved to the new role.
    """

    pass


class SessionTransitionError(OnboardingError):
    """Re-authentication from the issued token failed.

    Not retried; the user is sent to the login entry point.
    """

    user_message = "Please log in again."


class InvalidTransitionError(OnboardingError):
    """A state machine was asked for a transition its current state forbids."""

    pass
