"""
User-visible notifications.

The single channel through which the wizard talks to the user about
outcomes. Messages are always fixed, user-safe strings; error detail goes to
the log instead.
"""

import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)

PROFILE_CREATED = "Profile created successfully!"
UNEXPECTED_ERROR = "An unexpected error occurred. Please try again."
LOG_IN_AGAIN = "Please log in again."


class Notifier(ABC):
    @abstractmethod
    def success(self, message: str) -> None:
        ...

    @abstractmethod
    def error(self, message: str) -> None:
        ...

    @abstractmethod
    def info(self, message: str) -> None:
        ...


class LoggingNotifier(Notifier):
    """Routes notifications to the log. Default when nothing is rendering them."""

    def success(self, message: str) -> None:
        logger.info(f"[success] {message}")

    def error(self, message: str) -> None:
        logger.warning(f"[error] {message}")

    def info(self, message: str) -> None:
        logger.info(f"[info] {message}")
