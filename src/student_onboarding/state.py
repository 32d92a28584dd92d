"""
Onboarding Step Management.

Finite state machine over the onboarding steps. Forward moves are gated on the
current step's own rules; backward moves are free. Each validated step is
merged into the AccumulatedSubmission that the submission workflow sends.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from .errors import InvalidTransitionError
from .form_state import FormStateStore
from .forms import PersonalDetailsForm, ProfilePictureForm, StepForm
from .payload import AccumulatedSubmission

logger = logging.getLogger(__name__)


class OnboardingStep(Enum):
    """Onboarding steps."""
    PERSONAL_DETAILS = 1  # Names, phone, address, subjects
    PROFILE_PICTURE = 2   # Public profile picture, then submit
    CONFIRMATION = 3      # Terminal, read-only


@dataclass(frozen=True)
class StepDefinition:
    """
    One step and its own validation contract.

    `next_step` is the step `advance()` moves to. The last form step has none:
    only a successful submission reaches the confirmation step.
    """
    step: OnboardingStep
    title: str
    description: str
    form: type[StepForm] | None = None
    next_step: OnboardingStep | None = None
    previous_step: OnboardingStep | None = None

    @property
    def label(self) -> str:
        return f"Step {self.step.value} of {len(OnboardingStep)}"

    @property
    def is_terminal(self) -> bool:
        return self.form is None

    @property
    def fields(self) -> list[str]:
        return self.form.field_names() if self.form else []


STEPS: dict[OnboardingStep, StepDefinition] = {
    OnboardingStep.PERSONAL_DETAILS: StepDefinition(
        step=OnboardingStep.PERSONAL_DETAILS,
        title="Student Profile Details",
        description=(
            "Please fill in the details below to create your student profile. "
            "Fields marked with * are required."
        ),
        form=PersonalDetailsForm,
        next_step=OnboardingStep.PROFILE_PICTURE,
    ),
    OnboardingStep.PROFILE_PICTURE: StepDefinition(
        step=OnboardingStep.PROFILE_PICTURE,
        title="Public Profile",
        description=(
            "Now create your public profile which will be shown to "
            "prospective tutors and peers."
        ),
        form=ProfilePictureForm,
        previous_step=OnboardingStep.PERSONAL_DETAILS,
    ),
    OnboardingStep.CONFIRMATION: StepDefinition(
        step=OnboardingStep.CONFIRMATION,
        title="You're All Set!",
        description=(
            "Congratulations! You've successfully joined the community. "
            "Get ready to embark on your learning journey!"
        ),
    ),
}


def get_step_definition(step: OnboardingStep) -> StepDefinition:
    return STEPS[step]


class StepController:
    """
    Drives the step state machine.

    The controller never talks to the network; the submission workflow tells
    it how the submission went through `on_submission_result()`.
    """

    def __init__(
        self,
        store: FormStateStore,
        submission: AccumulatedSubmission | None = None,
        step: OnboardingStep = OnboardingStep.PERSONAL_DETAILS,
    ):
        self.store = store
        self.submission = submission or AccumulatedSubmission()
        self._step = step

    @property
    def step(self) -> OnboardingStep:
        return self._step

    @property
    def definition(self) -> StepDefinition:
        return STEPS[self._step]

    @property
    def is_terminal(self) -> bool:
        return self.definition.is_terminal

    def advance(self) -> bool:
        """
        Validate the current step and move forward.

        Returns False (state unchanged, errors in the store) when any of the
        current step's fields fail. On the last form step the values are
        merged but the step stays put until submission succeeds.
        """
        definition = self.definition
        if definition.is_terminal:
            logger.info("advance() ignored on terminal step")
            return False

        if not self._validate_and_merge(definition):
            return False

        if definition.next_step is not None:
            logger.info(f"Onboarding step {self._step.name} -> {definition.next_step.name}")
            self._step = definition.next_step
        return True

    def prepare_submission(self) -> bool:
        """Validate and merge the final form step without moving."""
        definition = self.definition
        if definition.is_terminal or definition.next_step is not None:
            raise InvalidTransitionError(f"Cannot submit from {self._step.name}")
        return self._validate_and_merge(definition)

    def retreat(self) -> bool:
        """Move back one step. No validation; entered values stay in the store."""
        previous = self.definition.previous_step
        if previous is None:
            return False
        logger.info(f"Onboarding step {self._step.name} -> {previous.name}")
        self._step = previous
        return True

    def on_submission_result(self, success: bool) -> None:
        """Success forces the confirmation step; failure changes nothing."""
        if not success:
            logger.info(f"Submission failed, staying on {self._step.name}")
            return
        logger.info(f"Onboarding step {self._step.name} -> CONFIRMATION")
        self._step = OnboardingStep.CONFIRMATION

    def _validate_and_merge(self, definition: StepDefinition) -> bool:
        form = self.store.validate(definition.form)
        if form is None:
            logger.info(f"Step {definition.step.name} rejected: {sorted(self.store.get_errors())}")
            return False
        self.submission.merge(definition.step.value, form.to_payload())
        return True
