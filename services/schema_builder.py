"""
Schema builder: turns an event form's field configuration into a validator
for registration submissions.

Base fields are validated only when the form enables them, custom fields are
validated according to their type, and team members are always validated:
every registration must name at least one person. The same configuration
always produces the same validator, so validators are cached on the canonical
JSON of (custom_fields, base_fields).
"""
import json
import logging
from functools import lru_cache
from typing import Annotated, Any, Callable, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, create_model
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticCustomError

from schemas.form import (
    DEFAULT_BASE_FIELDS,
    BaseFieldConfig,
    BaseFieldsConfig,
    EmailField,
    GroupSizeFieldConfig,
    PaymentField,
    PhoneField,
    PhotoField,
    TeamMembersConfig,
    TextareaField,
    TextField,
    UrlField,
    parse_base_fields,
    parse_custom_fields,
)
from schemas.registration import RegistrationSubmission
from services.errors import ValidationError
from utils.validators import MIN_PHONE_DIGITS, digit_count, is_email, is_url

logger = logging.getLogger(__name__)

Rule = Callable[[Any], Any]

MIN_NAME_LENGTH = 2
MIN_MEMBER_PHONE_LENGTH = 10


def _missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def string_rule(
    required: bool,
    required_message: str,
    check: Optional[Callable[[str], bool]] = None,
    invalid_message: str = "Invalid value",
) -> Rule:
    """
    Rule for a single string input

    Optional inputs accept None and "" and normalize both to None. Present
    values are stripped and must pass check.
    """
    def rule(value: Any) -> Optional[str]:
        if _missing(value):
            if required:
                raise PydanticCustomError("required", required_message)
            return None
        if not isinstance(value, str):
            raise PydanticCustomError("string_type", invalid_message)
        value = value.strip()
        if check is not None and not check(value):
            raise PydanticCustomError("invalid", invalid_message)
        return value

    return rule


def group_size_rule(config: GroupSizeFieldConfig) -> Rule:
    message = f"Group size must be between {config.min_size} and {config.max_size}"

    def rule(value: Any) -> Optional[int]:
        if _missing(value):
            if config.required:
                raise PydanticCustomError("required", "Group size is required")
            return None
        if isinstance(value, bool):
            raise PydanticCustomError("invalid", message)
        if isinstance(value, str):
            value = value.strip()
            if not value.isdigit():
                raise PydanticCustomError("invalid", message)
            value = int(value)
        if not isinstance(value, int) or not config.min_size <= value <= config.max_size:
            raise PydanticCustomError("invalid", message)
        return value

    return rule


def _min_length(length: int) -> Callable[[str], bool]:
    return lambda value: len(value) >= length


def _min_digits(value: str) -> bool:
    return digit_count(value) >= MIN_PHONE_DIGITS


class TeamMemberInput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Annotated[Optional[str], BeforeValidator(
        string_rule(True, "Member name is required")
    )] = Field(None, validate_default=True)
    email: Annotated[Optional[str], BeforeValidator(
        string_rule(True, "Email is required", is_email, "Invalid email")
    )] = Field(None, validate_default=True)
    phone: Annotated[Optional[str], BeforeValidator(
        string_rule(
            True,
            "Phone number is required (minimum 10 digits)",
            _min_length(MIN_MEMBER_PHONE_LENGTH),
            "Phone number is required (minimum 10 digits)",
        )
    )] = Field(None, validate_default=True)


def team_members_rule(config: Optional[TeamMembersConfig]) -> Rule:
    limit = config.max_team_members if config is not None and config.enabled else None

    def rule(value: Any) -> Any:
        if not isinstance(value, list) or not value:
            raise PydanticCustomError("too_short", "At least one team member is required")
        if limit is not None and len(value) > limit:
            raise PydanticCustomError("too_long", f"At most {limit} team members are allowed")
        return value

    return rule


def _base_rules(config: BaseFieldsConfig) -> List[Tuple[str, Any]]:
    """(payload key, annotation) for every enabled base field, then team members"""
    entries: List[Tuple[str, Any]] = []

    def enabled(field: Optional[BaseFieldConfig]) -> bool:
        return field is not None and field.enabled

    if enabled(config.name):
        entries.append(("name", Annotated[Optional[str], BeforeValidator(string_rule(
            config.name.required, "Name is required",
            _min_length(MIN_NAME_LENGTH), "Name must be at least 2 characters",
        ))]))
    if enabled(config.email):
        entries.append(("email", Annotated[Optional[str], BeforeValidator(string_rule(
            config.email.required, "Email is required", is_email, "Invalid email address",
        ))]))
    if enabled(config.phone):
        entries.append(("phone", Annotated[Optional[str], BeforeValidator(string_rule(
            config.phone.required, "Phone number is required",
            _min_digits, "Phone number must be at least 10 digits",
        ))]))
    if enabled(config.organization):
        entries.append(("organization", Annotated[Optional[str], BeforeValidator(string_rule(
            config.organization.required, "Organization is required",
            _min_length(MIN_NAME_LENGTH), "Organization must be at least 2 characters",
        ))]))
    if enabled(config.group_size):
        entries.append(("groupSize", Annotated[Optional[int], BeforeValidator(
            group_size_rule(config.group_size)
        )]))

    entries.append(("teamMembers", Annotated[List[TeamMemberInput], BeforeValidator(
        team_members_rule(config.team_members)
    )]))
    return entries


def _text_rule(field) -> Rule:
    return string_rule(field.required, f"{field.label} is required")


def _email_rule(field: EmailField) -> Rule:
    return string_rule(field.required, f"{field.label} is required", is_email, "Invalid email address")


def _phone_rule(field: PhoneField) -> Rule:
    return string_rule(
        field.required, f"{field.label} is required", _min_digits, "Phone number must be at least 10 digits"
    )


def _url_rule(field: UrlField) -> Rule:
    return string_rule(field.required, f"{field.label} is required", is_url, "Invalid URL")


def _photo_rule(field: PhotoField) -> Rule:
    return string_rule(field.required, "Photo is required")


CUSTOM_FIELD_RULES: Dict[type, Callable[[Any], Rule]] = {
    TextField: _text_rule,
    TextareaField: _text_rule,
    PaymentField: _text_rule,
    EmailField: _email_rule,
    PhoneField: _phone_rule,
    UrlField: _url_rule,
    PhotoField: _photo_rule,
}


class RegistrationValidator:
    """Validates registration payloads for one form configuration"""

    def __init__(self, custom_fields: Sequence[Any], base_fields: BaseFieldsConfig):
        self.custom_fields = list(custom_fields)
        self.base_fields = base_fields
        base_entries = _base_rules(base_fields)
        self.base_keys = [key for key, _ in base_entries]

        # Base values come from the top level of the payload and custom values
        # from customFieldData only, so neither can overwrite the other
        self.base_model = _payload_model("BasePayload", base_entries)
        self.custom_model = _payload_model("CustomFieldPayload", [
            (field.id, Annotated[Optional[str], BeforeValidator(CUSTOM_FIELD_RULES[type(field)](field))])
            for field in self.custom_fields
        ])

    def validate(self, payload: Any) -> RegistrationSubmission:
        """
        Validate a raw submission

        The payload carries base fields at the top level and custom field
        values under customFieldData keyed by field id. Keys that belong to
        neither are ignored. Raises ValidationError with one message per
        invalid field.
        """
        if not isinstance(payload, dict):
            raise ValidationError({"body": "Submission must be a JSON object"})

        base_values = {key: value for key, value in payload.items() if key != "customFieldData"}
        custom_values = payload.get("customFieldData") or {}
        if not isinstance(custom_values, dict):
            raise ValidationError({"customFieldData": "Custom field data must be an object"})

        errors: Dict[str, str] = {}
        base = _run(self.base_model, base_values, errors)
        custom = _run(self.custom_model, custom_values, errors)
        if errors:
            raise ValidationError(errors)

        submission = {key: base[key] for key in self.base_keys if key in base}
        submission["customFieldData"] = {
            field.id: custom[field.id]
            for field in self.custom_fields
            if custom.get(field.id) is not None
        }
        return RegistrationSubmission.model_validate(submission)


def _payload_model(name: str, entries: List[Tuple[str, Any]]) -> type:
    definitions = {
        f"field_{index}": (annotation, Field(None, alias=key, validate_default=True))
        for index, (key, annotation) in enumerate(entries)
    }
    return create_model(name, __config__=ConfigDict(extra="ignore"), **definitions)


def _run(model: type, values: Dict[str, Any], errors: Dict[str, str]) -> Dict[str, Any]:
    """Validate values against model, collecting messages keyed by dotted location"""
    try:
        return model.model_validate(values).model_dump(by_alias=True)
    except PydanticValidationError as exc:
        for error in exc.errors():
            key = ".".join(str(part) for part in error["loc"]) or "body"
            errors.setdefault(key, error["msg"])
        return {}


def _config_key(custom_fields: Sequence[Any], base_fields: Optional[BaseFieldsConfig]) -> str:
    return json.dumps(
        {
            "customFields": [field.model_dump(mode="json", by_alias=True) for field in custom_fields],
            "baseFields": base_fields.model_dump(mode="json", by_alias=True) if base_fields is not None else None,
        },
        sort_keys=True,
    )


@lru_cache(maxsize=64)
def _cached_validator(key: str) -> RegistrationValidator:
    config = json.loads(key)
    base_fields = parse_base_fields(config["baseFields"]) or DEFAULT_BASE_FIELDS
    logger.debug("Building registration validator for %d custom field(s)", len(config["customFields"]))
    return RegistrationValidator(parse_custom_fields(config["customFields"]), base_fields)


def build_validator(
    custom_fields: Sequence[Any],
    base_fields: Optional[BaseFieldsConfig],
) -> RegistrationValidator:
    """
    Validator for a form configuration

    A form without any base field configuration gets DEFAULT_BASE_FIELDS.
    """
    return _cached_validator(_config_key(custom_fields, base_fields))


def validator_for_form(form) -> RegistrationValidator:
    """Validator for an EventForm row, or the default form when there is none"""
    if form is None:
        return build_validator([], None)
    return build_validator(parse_custom_fields(form.custom_fields), parse_base_fields(form.base_fields))
