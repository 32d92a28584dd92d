"""
Tests for the FormState store and subject list.
"""

import dataclasses

import pytest

from student_onboarding.form_state import FormStateStore, SubjectList
from student_onboarding.forms import PersonalDetailsForm, ProfilePictureForm


class TestSubjectList:
    """SubjectList always keeps at least one entry."""

    def test_starts_with_one_empty_entry(self):
        assert SubjectList().to_list() == [""]

    def test_removing_last_entry_is_noop(self):
        subjects = SubjectList(["Mathematics"])
        assert subjects.remove(0) is False
        assert subjects.to_list() == ["Mathematics"]
        assert not subjects.can_remove

    def test_append_then_remove(self):
        subjects = SubjectList(["Mathematics"])
        index = subjects.append()
        assert index == 1
        assert subjects.to_list() == ["Mathematics", ""]
        assert subjects.remove(0) is True
        assert subjects.to_list() == [""]

    def test_remove_out_of_range(self):
        subjects = SubjectList(["a", "b"])
        assert subjects.remove(5) is False
        assert len(subjects) == 2

    def test_replace_with_empty_resets(self):
        subjects = SubjectList(["a", "b"])
        subjects.replace([])
        assert subjects.to_list() == [""]


class TestFormStateStore:
    """Editing, snapshots and on-demand validation."""

    def test_set_and_get_fields(self):
        store = FormStateStore()
        store.set_field("firstName", "Ada")
        store.set_field("subjects.0", "Mathematics")
        assert store.get_field("firstName") == "Ada"
        assert store.get_field("subjects") == ["Mathematics"]
        assert store.get_field("subjects.0") == "Mathematics"

    def test_unknown_field(self):
        store = FormStateStore()
        with pytest.raises(KeyError):
            store.set_field("nickname", "Ada")

    def test_subject_index_out_of_range(self):
        store = FormStateStore()
        with pytest.raises(KeyError):
            store.set_field("subjects.3", "Physics")

    def test_set_field_never_validates(self):
        store = FormStateStore()
        store.set_field("phone", "1")
        assert store.get_errors() == {}

    def test_get_all_is_immutable_snapshot(self):
        store = FormStateStore()
        store.set_field("firstName", "Ada")
        draft = store.get_all()
        store.set_field("firstName", "Grace")
        assert draft.first_name == "Ada"
        with pytest.raises(dataclasses.FrozenInstanceError):
            draft.first_name = "Grace"

    def test_draft_to_dict_uses_wire_names(self, valid_personal_details):
        store = FormStateStore()
        for name, value in valid_personal_details.items():
            store.set_field(name, value)
        assert store.get_all().to_dict() == {**valid_personal_details, "profilePhotoUrl": None}

    def test_validate_sets_errors(self):
        store = FormStateStore()
        assert store.validate(PersonalDetailsForm) is None
        assert store.get_errors()["firstName"] == "First name is required!"

    def test_validate_only_touches_own_fields(self):
        store = FormStateStore()
        store.set_field("profilePhotoUrl", "nope")
        store.validate(ProfilePictureForm)
        store.validate(PersonalDetailsForm)
        errors = store.get_errors()
        assert "profilePhotoUrl" in errors
        assert "firstName" in errors

        store.set_field("profilePhotoUrl", "https://cdn.example.com/a.png")
        store.validate(ProfilePictureForm)
        errors = store.get_errors()
        assert "profilePhotoUrl" not in errors
        assert "firstName" in errors

    def test_fixing_fields_clears_their_errors(self, valid_personal_details):
        store = FormStateStore()
        store.validate(PersonalDetailsForm)
        for name, value in valid_personal_details.items():
            store.set_field(name, value)
        assert store.validate(PersonalDetailsForm) is not None
        assert store.get_errors() == {}

    def test_remove_subject_shifts_errors(self):
        store = FormStateStore()
        store.set_field("subjects", ["Mathematics", "", "", "Physics"])
        store.validate(PersonalDetailsForm)
        assert {"subjects.1", "subjects.2"} <= set(store.get_errors())

        assert store.remove_subject(1) is True
        errors = store.get_errors()
        assert "subjects.1" in errors
        assert "subjects.2" not in errors
        assert store.get_field("subjects") == ["Mathematics", "", "Physics"]

    def test_remove_last_subject_is_noop(self):
        store = FormStateStore()
        store.set_field("subjects.0", "Mathematics")
        assert store.remove_subject(0) is False
        assert store.get_field("subjects") == ["Mathematics"]

    def test_store_uses_configured_phone_length(self, valid_personal_details):
        store = FormStateStore(min_phone_length=12)
        for name, value in valid_personal_details.items():
            store.set_field(name, value)
        assert store.validate(PersonalDetailsForm) is None
        assert store.get_errors() == {"phone": "Valid phone number is required!"}
