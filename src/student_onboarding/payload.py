"""
Onboarding Payload Definition.

AccumulatedSubmission is the contract between the wizard and the profile
update endpoint. It is built incrementally as each step validates and
finalized once, at submission time, with the derived metadata the backend
expects (timestamp, role, onboarding flag).

ProfileUpdateResponse / UserRecord describe what comes back.
"""

import copy
import hashlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .errors import InvalidTransitionError


@dataclass
class AccumulatedSubmission:
    """
    Union of validated step values, keyed by wire name.

    Merges are last-writer-wins per field, so re-validating a step after going
    back produces the same result as a single forward pass.
    """

    fields: dict[str, Any] = field(default_factory=dict)
    merged_steps: list[int] = field(default_factory=list)
    sent: bool = False

    def merge(self, step: int, values: dict[str, Any]) -> None:
        """Merge one step's validated values."""
        if self.sent:
            raise InvalidTransitionError("Submission already sent")
        self.fields.update(copy.deepcopy(values))
        if step not in self.merged_steps:
            self.merged_steps.append(step)

    def finalize(self, role: str, now: datetime | None = None) -> dict[str, Any]:
        """
        Build the userData body for the profile update call.

        Does not mark the submission as sent; that only happens once the whole
        workflow has succeeded.
        """
        if self.sent:
            raise InvalidTransitionError("Submission already sent")
        created_at = (now or datetime.now(timezone.utc)).isoformat()
        return {
            **copy.deepcopy(self.fields),
            "createdAt": created_at,
            "role": role,
            "isOnboarding": True,
        }

    def mark_sent(self) -> None:
        self.sent = True

    def to_dict(self) -> dict:
        """Serialize for logging/debugging."""
        return {
            "fields": copy.deepcopy(self.fields),
            "merged_steps": list(self.merged_steps),
            "sent": self.sent,
        }


class UserRecord(BaseModel):
    """Canonical user record returned by the profile update call."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

    user_id: str
    first_name: str = ""
    last_name: str = ""
    role: str = ""
    is_onboarding: bool = False
    profile_photo_url: str | None = None

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class ProfileUpdateResponse(BaseModel):
    """Body of a profile update. `access_token` may be missing on a bad run."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    access_token: str | None = None
    user: UserRecord | None = None


def make_idempotency_key(user_id: str, nonce: str) -> str:
    """Stable key for one onboarding run: same user + nonce, same key."""
    return hashlib.sha256(f"{user_id}:{nonce}".encode("utf-8")).hexdigest()
