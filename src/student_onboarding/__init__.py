"""
Student Onboarding Wizard.

Collects a new student's profile across steps, provisions their chat identity,
persists the profile and swaps the authenticated session to the new role.

Steps:
1. Personal Details - name, phone, address, preferred subjects
2. Public Profile - profile picture URL, then submission
3. Confirmation - terminal, read-only; "continue" finalizes the session
"""

from .state import OnboardingStep, StepController
from .payload import AccumulatedSubmission, ProfileUpdateResponse, UserRecord
from .wizard import OnboardingWizard

__version__ = "1.0.0"

__all__ = [
    "OnboardingStep",
    "StepController",
    "AccumulatedSubmission",
    "ProfileUpdateResponse",
    "UserRecord",
    "OnboardingWizard",
]
