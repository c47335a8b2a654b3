"""
Tests for the registration validator built from form configuration
"""
import pytest

from schemas.form import (
    BaseFieldConfig,
    BaseFieldsConfig,
    PhotoField,
    TeamMembersConfig,
    TextField,
    UrlField,
)
from services.errors import ValidationError
from services.schema_builder import build_validator, validator_for_form


def errors_for(validator, payload):
    with pytest.raises(ValidationError) as exc_info:
        validator.validate(payload)
    return exc_info.value.errors


class TestDefaultForm:
    """Validation with no form configuration"""

    def test_valid_submission(self, valid_submission):
        """Test a complete submission passes"""
        submission = validator_for_form(None).validate(valid_submission())
        assert submission.name == "Asha Verma"
        assert submission.group_size == 2
        assert len(submission.team_members) == 2
        assert submission.team_members[1].email == "ravi@example.com"
        assert submission.custom_field_data == {}

    def test_missing_name(self, valid_submission):
        payload = valid_submission()
        del payload["name"]
        errors = errors_for(validator_for_form(None), payload)
        assert errors["name"] == "Name is required"

    def test_short_name(self, valid_submission):
        errors = errors_for(validator_for_form(None), valid_submission(name="A"))
        assert errors["name"] == "Name must be at least 2 characters"

    def test_invalid_email(self, valid_submission):
        errors = errors_for(validator_for_form(None), valid_submission(email="not-an-email"))
        assert errors["email"] == "Invalid email address"

    def test_short_phone(self, valid_submission):
        errors = errors_for(validator_for_form(None), valid_submission(phone="12345"))
        assert errors["phone"] == "Phone number must be at least 10 digits"

    def test_group_size_out_of_range(self, valid_submission):
        errors = errors_for(validator_for_form(None), valid_submission(groupSize=5))
        assert errors["groupSize"] == "Group size must be between 1 and 4"

    def test_group_size_from_string(self, valid_submission):
        """Test form inputs that arrive as strings are coerced"""
        submission = validator_for_form(None).validate(valid_submission(groupSize="3"))
        assert submission.group_size == 3

    def test_all_errors_reported_together(self, valid_submission):
        errors = errors_for(validator_for_form(None), valid_submission(name="", email="x", phone=""))
        assert set(errors) >= {"name", "email", "phone"}


class TestTeamMembers:
    """Team members are required on every form"""

    def test_empty_team_rejected(self, valid_submission):
        errors = errors_for(validator_for_form(None), valid_submission(teamMembers=[]))
        assert errors["teamMembers"] == "At least one team member is required"

    def test_missing_team_rejected(self, valid_submission):
        payload = valid_submission()
        del payload["teamMembers"]
        errors = errors_for(validator_for_form(None), payload)
        assert errors["teamMembers"] == "At least one team member is required"

    def test_member_errors_are_indexed(self, valid_submission):
        payload = valid_submission(teamMembers=[
            {"name": "Asha Verma", "email": "asha@example.com", "phone": "9876543210"},
            {"name": "", "email": "ravi-at-example", "phone": "123"},
        ])
        errors = errors_for(validator_for_form(None), payload)
        assert errors["teamMembers.1.name"] == "Member name is required"
        assert errors["teamMembers.1.email"] == "Invalid email"
        assert errors["teamMembers.1.phone"] == "Phone number is required (minimum 10 digits)"
        assert not any(key.startswith("teamMembers.0") for key in errors)

    def test_member_email_required(self, valid_submission):
        payload = valid_submission(teamMembers=[{"name": "Asha Verma", "phone": "9876543210"}])
        errors = errors_for(validator_for_form(None), payload)
        assert errors["teamMembers.0.email"] == "Email is required"

    def test_team_size_limit(self, valid_submission):
        base_fields = BaseFieldsConfig(
            name=BaseFieldConfig(label="Name"),
            team_members=TeamMembersConfig(label="Team", max_team_members=1),
        )
        errors = errors_for(build_validator([], base_fields), valid_submission())
        assert errors["teamMembers"] == "At most 1 team members are allowed"


class TestBaseFieldConfiguration:
    """Enabled/required flags of the base fields"""

    def test_disabled_fields_are_not_validated(self, valid_submission):
        base_fields = BaseFieldsConfig(
            name=BaseFieldConfig(label="Name"),
            email=BaseFieldConfig(label="Email", enabled=False),
        )
        validator = build_validator([], base_fields)
        submission = validator.validate(valid_submission(email="not-an-email", phone="1"))
        assert submission.name == "Asha Verma"
        assert submission.email is None
        assert submission.phone is None
        assert submission.group_size is None

    def test_optional_field_accepts_empty_string(self, valid_submission):
        base_fields = BaseFieldsConfig(
            name=BaseFieldConfig(label="Name"),
            organization=BaseFieldConfig(label="Organization", required=False),
        )
        submission = build_validator([], base_fields).validate(valid_submission(organization=""))
        assert submission.organization is None

    def test_optional_field_still_checks_present_values(self, valid_submission):
        base_fields = BaseFieldsConfig(
            name=BaseFieldConfig(label="Name"),
            email=BaseFieldConfig(label="Email", required=False),
        )
        errors = errors_for(build_validator([], base_fields), valid_submission(email="nope"))
        assert errors["email"] == "Invalid email address"


class TestCustomFields:
    """Validation of admin-defined custom fields"""

    fields = [
        TextField(id="field_uid", label="In-Game UID", required=True),
        UrlField(id="field_portfolio", label="Portfolio", required=False),
        PhotoField(id="field_screenshot", label="Payment Screenshot", required=True),
    ]

    def test_required_custom_fields(self, valid_submission):
        errors = errors_for(build_validator(self.fields, None), valid_submission())
        assert errors["field_uid"] == "In-Game UID is required"
        assert errors["field_screenshot"] == "Photo is required"
        assert "field_portfolio" not in errors

    def test_custom_values_collected(self, valid_submission):
        payload = valid_submission(customFieldData={
            "field_uid": "  551234  ",
            "field_portfolio": "",
            "field_screenshot": "/uploads/pay.png",
        })
        submission = build_validator(self.fields, None).validate(payload)
        assert submission.custom_field_data == {
            "field_uid": "551234",
            "field_screenshot": "/uploads/pay.png",
        }

    def test_invalid_optional_url(self, valid_submission):
        payload = valid_submission(customFieldData={
            "field_uid": "551234",
            "field_portfolio": "not a url",
            "field_screenshot": "/uploads/pay.png",
        })
        errors = errors_for(build_validator(self.fields, None), payload)
        assert errors == {"field_portfolio": "Invalid URL"}

    def test_custom_field_sharing_base_key(self, valid_submission):
        """Test a custom field with a base key reads only customFieldData"""
        fields = [TextField(id="organization", label="Company", required=True)]
        validator = build_validator(fields, None)

        errors = errors_for(validator, valid_submission())
        assert errors == {"organization": "Company is required"}

        submission = validator.validate(valid_submission(customFieldData={"organization": "Acme"}))
        assert submission.organization == "Allahabad University"
        assert submission.custom_field_data == {"organization": "Acme"}

    def test_custom_field_data_cannot_override_base_fields(self, valid_submission):
        payload = valid_submission(customFieldData={
            "name": "Mallory",
            "email": "m@x.io",
            "teamMembers": [],
        })
        submission = build_validator([], None).validate(payload)
        assert submission.name == "Asha Verma"
        assert submission.email == "asha@example.com"
        assert len(submission.team_members) == 2
        assert submission.custom_field_data == {}

    def test_top_level_custom_values_are_ignored(self, valid_submission):
        payload = valid_submission(field_uid="551234", field_screenshot="/uploads/pay.png")
        errors = errors_for(build_validator(self.fields, None), payload)
        assert errors["field_uid"] == "In-Game UID is required"
        assert errors["field_screenshot"] == "Photo is required"

    def test_unknown_custom_ids_are_dropped(self, valid_submission):
        payload = valid_submission(customFieldData={
            "field_uid": "551234",
            "field_screenshot": "/uploads/pay.png",
            "field_unknown": "extra",
        })
        submission = build_validator(self.fields, None).validate(payload)
        assert "field_unknown" not in submission.custom_field_data

    def test_custom_field_data_must_be_object(self, valid_submission):
        errors = errors_for(build_validator(self.fields, None), valid_submission(customFieldData=["x"]))
        assert "customFieldData" in errors


class TestValidatorCache:

    def test_same_configuration_reuses_validator(self):
        fields = [TextField(id="field_uid", label="UID", required=True)]
        same = [TextField(id="field_uid", label="UID", required=True)]
        assert build_validator(fields, None) is build_validator(same, None)

    def test_different_configuration_builds_new_validator(self):
        required = [TextField(id="field_uid", label="UID", required=True)]
        optional = [TextField(id="field_uid", label="UID", required=False)]
        assert build_validator(required, None) is not build_validator(optional, None)

    def test_non_object_payload(self):
        errors = errors_for(validator_for_form(None), ["not", "an", "object"])
        assert errors == {"body": "Submission must be a JSON object"}
