"""
Onboarding Forms - declarative field rules per step.

Each step owns a form model carrying its own rule set:
- Personal details: names, phone, address, at least one subject
- Profile picture: optional photo URL

Rules are evaluated on demand (when the user tries to move on), never on every
keystroke. Field names on the wire are camelCase (`firstName`), matching the
backend's user record.
"""

import logging
from typing import Annotated, Any

from pydantic import (
    AfterValidator,
    AnyUrl,
    BaseModel,
    ConfigDict,
    TypeAdapter,
    ValidationError,
    ValidationInfo,
    field_validator,
)
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

logger = logging.getLogger(__name__)


# =============================================================================
# Messages
# =============================================================================

FIELD_MESSAGES = {
    "firstName": "First name is required!",
    "lastName": "Last name is required!",
    "phone": "Valid phone number is required!",
    "address": "Address is required!",
    "subjects": "Subject is required!",
    "profilePhotoUrl": "Valid URL is required!",
}

MIN_PHONE_LENGTH = 9

_url_adapter = TypeAdapter(AnyUrl)


# =============================================================================
# Rules
# =============================================================================

def _required(field_name: str, value: str) -> str:
    if not value:
        raise PydanticCustomError("required", FIELD_MESSAGES[field_name])
    return value


def _require_subject(value: str) -> str:
    return _required("subjects", value.strip())


Subject = Annotated[str, AfterValidator(_require_subject)]


class StepForm(BaseModel):
    """Base for step forms: camelCase aliases, frozen snapshots."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        str_strip_whitespace=True,
        validate_default=True,
    )

    @classmethod
    def field_names(cls) -> list[str]:
        """Wire names of the fields this form validates."""
        return [field.alias or name for name, field in cls.model_fields.items()]

    def to_payload(self) -> dict[str, Any]:
        """Validated values keyed by wire name."""
        return self.model_dump(mode="json", by_alias=True)


class PersonalDetailsForm(StepForm):
    """Step 1: who the student is and what they want to learn."""

    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    address: str = ""
    subjects: tuple[Subject, ...] = ("",)

    @field_validator("first_name")
    @classmethod
    def first_name_required(cls, v: str) -> str:
        return _required("firstName", v)

    @field_validator("last_name")
    @classmethod
    def last_name_required(cls, v: str) -> str:
        return _required("lastName", v)

    @field_validator("address")
    @classmethod
    def address_required(cls, v: str) -> str:
        return _required("address", v)

    @field_validator("phone")
    @classmethod
    def phone_min_length(cls, v: str, info: ValidationInfo) -> str:
        min_length = (info.context or {}).get("min_phone_length", MIN_PHONE_LENGTH)
        if len(v) < min_length:
            raise PydanticCustomError("min_length", FIELD_MESSAGES["phone"])
        return v

    @field_validator("subjects")
    @classmethod
    def at_least_one_subject(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if not v:
            raise PydanticCustomError("required", FIELD_MESSAGES["subjects"])
        return v


class ProfilePictureForm(StepForm):
    """Step 2: public profile picture. The URL comes from the upload widget."""

    profile_photo_url: str | None = None

    @field_validator("profile_photo_url")
    @classmethod
    def valid_url(cls, v: str | None) -> str | None:
        if v is None:
            return None
        try:
            _url_adapter.validate_python(v)
        except ValidationError:
            raise PydanticCustomError("url", FIELD_MESSAGES["profilePhotoUrl"])
        return v


# =============================================================================
# Validation
# =============================================================================

def errors_by_field(
    exc: ValidationError,
    form_cls: type[StepForm] | None = None,
) -> dict[str, str]:
    """
    Flatten a pydantic ValidationError into {field: message}.

    Nested locations become dotted names (`subjects.1`). Errors raised on a
    defaulted field carry its python name; with `form_cls` given, those are
    reported under the wire name too. Only the first error per field is kept;
    every error on a known field reports that field's message so type errors
    read the same as rule failures.
    """
    aliases = (
        {name: field.alias or name for name, field in form_cls.model_fields.items()}
        if form_cls else {}
    )
    errors: dict[str, str] = {}
    for err in exc.errors():
        loc = err.get("loc") or ("__root__",)
        loc = (aliases.get(str(loc[0]), loc[0]), *loc[1:])
        name = ".".join(str(part) for part in loc)
        if name in errors:
            continue
        errors[name] = FIELD_MESSAGES.get(str(loc[0]), err["msg"])
    return errors


def validate_form(
    form_cls: type[StepForm],
    values: dict[str, Any],
    min_phone_length: int = MIN_PHONE_LENGTH,
) -> tuple[StepForm | None, dict[str, str]]:
    """
    Validate values against a step form.

    Keys the form does not own are ignored, so the whole draft can be passed.

    Returns:
        (snapshot, errors) - snapshot is None when errors is non-empty
    """
    try:
        form = form_cls.model_validate(
            values,
            context={"min_phone_length": min_phone_length},
        )
    except ValidationError as e:
        errors = errors_by_field(e, form_cls)
        logger.info(f"{form_cls.__name__} rejected: {sorted(errors)}")
        return None, errors
    return form, {}
