from pydantic import Field, AnyUrl, TypeAdapter, field_validator, model_validator
from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from models.event_form import ScanPolicy
from schemas.common import CamelModel


# Names the registration payload uses for base fields
BASE_FIELD_KEYS = ("name", "email", "phone", "organization", "groupSize", "teamMembers")


class CustomFieldBase(CamelModel):
    id: str = Field(..., min_length=1)
    label: str = Field(..., min_length=1)
    placeholder: Optional[str] = None
    required: bool = False
    help_text: Optional[str] = None


class TextField(CustomFieldBase):
    type: Literal["text"] = "text"


class EmailField(CustomFieldBase):
    type: Literal["email"] = "email"


class PhoneField(CustomFieldBase):
    type: Literal["phone"] = "phone"


class TextareaField(CustomFieldBase):
    type: Literal["textarea"] = "textarea"


class UrlField(CustomFieldBase):
    type: Literal["url"] = "url"


class PhotoField(CustomFieldBase):
    """Value is a reference to an uploaded image"""
    type: Literal["photo"] = "photo"


class PaymentField(CustomFieldBase):
    """Payment link shown to the registrant; value is the transaction id"""
    type: Literal["payment"] = "payment"
    payment_url: str

    @field_validator("payment_url")
    @classmethod
    def payment_url_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Payment URL is required for payment fields")
        return value.strip()


CustomFieldDefinition = Annotated[
    Union[TextField, EmailField, PhoneField, TextareaField, UrlField, PhotoField, PaymentField],
    Field(discriminator="type"),
]

_field_adapter = TypeAdapter(CustomFieldDefinition)


class BaseFieldConfig(CamelModel):
    label: str = ""
    placeholder: Optional[str] = None
    required: bool = True
    enabled: bool = True
    help_text: Optional[str] = None


class GroupSizeFieldConfig(BaseFieldConfig):
    min_size: int = Field(1, ge=1)
    max_size: int = Field(4, ge=1)

    @model_validator(mode="after")
    def check_bounds(self):
        if self.min_size > self.max_size:
            raise ValueError("minSize must not exceed maxSize")
        return self


class TeamMembersConfig(BaseFieldConfig):
    max_team_members: int = Field(4, ge=1)
    member_name_label: Optional[str] = None
    member_name_placeholder: Optional[str] = None
    member_email_label: Optional[str] = None
    member_email_placeholder: Optional[str] = None
    member_phone_label: Optional[str] = None
    member_phone_placeholder: Optional[str] = None
    registration_fee: Optional[float] = None
    registration_fee_description: Optional[str] = None


class BaseFieldsConfig(CamelModel):
    """
    Per-form configuration of the well-known registrant fields

    A field left out (None) is not part of the form at all.
    """
    name: Optional[BaseFieldConfig] = None
    email: Optional[BaseFieldConfig] = None
    phone: Optional[BaseFieldConfig] = None
    organization: Optional[BaseFieldConfig] = None
    group_size: Optional[GroupSizeFieldConfig] = None
    team_members: Optional[TeamMembersConfig] = None


DEFAULT_BASE_FIELDS = BaseFieldsConfig(
    name=BaseFieldConfig(label="Full Name"),
    email=BaseFieldConfig(label="Email Address"),
    phone=BaseFieldConfig(label="Phone Number"),
    organization=BaseFieldConfig(label="Organization"),
    group_size=GroupSizeFieldConfig(label="Group Size (Maximum 4 people)"),
)


class CustomLink(CamelModel):
    label: str
    url: AnyUrl


def check_custom_field_ids(fields: list) -> None:
    seen = set()
    for field in fields:
        if field.id in BASE_FIELD_KEYS:
            raise ValueError(f"Custom field id '{field.id}' collides with a base field")
        if field.id in seen:
            raise ValueError(f"Duplicate custom field id '{field.id}'")
        seen.add(field.id)


class EventFormCreate(CamelModel):
    title: str = Field(..., min_length=1)
    subtitle: Optional[str] = None
    description: Optional[str] = None
    hero_image_url: Optional[str] = None
    background_image_url: Optional[str] = None
    watermark_url: Optional[str] = None
    logo_url: Optional[str] = None
    custom_links: list[CustomLink] = Field(default_factory=list)
    custom_fields: list[CustomFieldDefinition] = Field(default_factory=list)
    base_fields: Optional[BaseFieldsConfig] = None
    scan_policy: ScanPolicy = ScanPolicy.GROUP
    success_title: Optional[str] = None
    success_message: Optional[str] = None

    @model_validator(mode="after")
    def check_field_ids(self):
        check_custom_field_ids(self.custom_fields)
        return self


class EventFormUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1)
    subtitle: Optional[str] = None
    description: Optional[str] = None
    hero_image_url: Optional[str] = None
    background_image_url: Optional[str] = None
    watermark_url: Optional[str] = None
    logo_url: Optional[str] = None
    custom_links: Optional[list[CustomLink]] = None
    custom_fields: Optional[list[CustomFieldDefinition]] = None
    base_fields: Optional[BaseFieldsConfig] = None
    scan_policy: Optional[ScanPolicy] = None
    success_title: Optional[str] = None
    success_message: Optional[str] = None

    @model_validator(mode="after")
    def check_field_ids(self):
        if self.custom_fields is not None:
            check_custom_field_ids(self.custom_fields)
        return self


class EventFormResponse(CamelModel):
    id: int
    title: str
    subtitle: Optional[str] = None
    description: Optional[str] = None
    hero_image_url: Optional[str] = None
    background_image_url: Optional[str] = None
    watermark_url: Optional[str] = None
    logo_url: Optional[str] = None
    custom_links: list[CustomLink] = Field(default_factory=list)
    custom_fields: list[CustomFieldDefinition] = Field(default_factory=list)
    base_fields: Optional[BaseFieldsConfig] = None
    scan_policy: ScanPolicy
    success_title: Optional[str] = None
    success_message: Optional[str] = None
    is_published: bool
    created_at: datetime
    updated_at: Optional[datetime] = None


def parse_custom_fields(raw: Optional[list]) -> list:
    """Rebuild field definitions from the JSON stored on an EventForm row"""
    return [_field_adapter.validate_python(item) for item in raw or []]


def parse_base_fields(raw: Optional[dict]) -> Optional[BaseFieldsConfig]:
    if raw is None:
        return None
    return BaseFieldsConfig.model_validate(raw)

