"""
FormState Store.

Holds what the user has typed so far, the per-field error mapping used for
display, and the subject list. Input is never blocked: rules only run when
`validate()` is called for a set of fields.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from .forms import MIN_PHONE_LENGTH, StepForm, validate_form

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProfileDraft:
    """Immutable snapshot of everything entered so far."""
    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    address: str = ""
    subjects: tuple[str, ...] = ("",)
    profile_photo_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize with wire (camelCase) names."""
        return {
            "firstName": self.first_name,
            "lastName": self.last_name,
            "phone": self.phone,
            "address": self.address,
            "subjects": list(self.subjects),
            "profilePhotoUrl": self.profile_photo_url,
        }


class SubjectList:
    """
    Ordered subject entries. Always holds at least one entry.

    New entries start empty; removing the only remaining entry does nothing.
    """

    def __init__(self, subjects: list[str] | None = None):
        self._items: list[str] = list(subjects) if subjects else [""]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

    def __getitem__(self, index: int) -> str:
        return self._items[index]

    @property
    def can_remove(self) -> bool:
        return len(self._items) > 1

    def append(self, value: str = "") -> int:
        """Add an entry and return its index."""
        self._items.append(value)
        return len(self._items) - 1

    def remove(self, index: int) -> bool:
        """Remove the entry at index. Returns False when nothing was removed."""
        if not self.can_remove:
            logger.debug("Refusing to remove the last subject")
            return False
        if not 0 <= index < len(self._items):
            return False
        del self._items[index]
        return True

    def set(self, index: int, value: str) -> None:
        self._items[index] = value

    def replace(self, values: list[str]) -> None:
        """Replace all entries; an empty list resets to a single empty entry."""
        self._items = list(values) if values else [""]

    def to_list(self) -> list[str]:
        return list(self._items)


# Wire name -> ProfileDraft attribute
_SCALAR_FIELDS = {
    "firstName": "first_name",
    "lastName": "last_name",
    "phone": "phone",
    "address": "address",
    "profilePhotoUrl": "profile_photo_url",
}


class FormStateStore:
    """Field values, display errors and subjects for one onboarding run."""

    def __init__(self, min_phone_length: int = MIN_PHONE_LENGTH):
        self.min_phone_length = min_phone_length
        self.subjects = SubjectList()
        self._values: dict[str, Any] = {name: "" for name in _SCALAR_FIELDS}
        self._values["profilePhotoUrl"] = None
        self._errors: dict[str, str] = {}

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def set_field(self, name: str, value: Any) -> None:
        """
        Set a field by wire name.

        `subjects` takes a whole list; `subjects.<i>` sets one entry.
        """
        if name == "subjects":
            self.subjects.replace(list(value or []))
        elif name.startswith("subjects."):
            index = _subject_index(name)
            if not 0 <= index < len(self.subjects):
                raise KeyError(name)
            self.subjects.set(index, value)
        elif name in _SCALAR_FIELDS:
            self._values[name] = value
        else:
            raise KeyError(name)

    def get_field(self, name: str) -> Any:
        if name == "subjects":
            return self.subjects.to_list()
        if name.startswith("subjects."):
            return self.subjects[_subject_index(name)]
        if name in _SCALAR_FIELDS:
            return self._values[name]
        raise KeyError(name)

    def add_subject(self) -> int:
        return self.subjects.append("")

    def remove_subject(self, index: int) -> bool:
        """Remove a subject entry and shift its error messages with it."""
        if not self.subjects.remove(index):
            return False
        shifted: dict[str, str] = {}
        for key, message in self._errors.items():
            if not key.startswith("subjects."):
                shifted[key] = message
                continue
            i = _subject_index(key)
            if i < index:
                shifted[key] = message
            elif i > index:
                shifted[f"subjects.{i - 1}"] = message
        self._errors = shifted
        return True

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def get_all(self) -> ProfileDraft:
        return ProfileDraft(
            first_name=self._values["firstName"],
            last_name=self._values["lastName"],
            phone=self._values["phone"],
            address=self._values["address"],
            subjects=tuple(self.subjects),
            profile_photo_url=self._values["profilePhotoUrl"],
        )

    def get_errors(self) -> dict[str, str]:
        return dict(self._errors)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, form_cls: type[StepForm]) -> StepForm | None:
        """
        Run a step form's rules against the current values.

        Errors for that form's fields are replaced; errors belonging to other
        steps are left as they are.
        """
        form, errors = validate_form(
            form_cls,
            self.get_all().to_dict(),
            min_phone_length=self.min_phone_length,
        )
        owned = set(form_cls.field_names())
        self._errors = {
            key: message
            for key, message in self._errors.items()
            if key.split(".", 1)[0] not in owned
        }
        self._errors.update(errors)
        return form

    def clear_errors(self) -> None:
        self._errors = {}


def _subject_index(name: str) -> int:
    try:
        return int(name.split(".", 1)[1])
    except ValueError:
        raise KeyError(name)
