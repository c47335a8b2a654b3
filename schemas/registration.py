from pydantic import Field, field_validator
from datetime import datetime
from typing import Any, Optional

from models.registration import RegistrationStatus
from schemas.common import CamelModel
from utils.validators import blank_to_none, is_email


class TeamMember(CamelModel):
    name: str = Field(..., min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None


class RegistrationSubmission(CamelModel):
    """A submission that passed the form's validator"""
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    organization: Optional[str] = None
    group_size: Optional[int] = None
    team_members: list[TeamMember] = Field(default_factory=list)
    custom_field_data: dict[str, str] = Field(default_factory=dict)


class RegistrationUpdate(CamelModel):
    """Admin edit - shape checks only, the form's rules are not re-applied"""
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    organization: Optional[str] = None
    group_size: Optional[int] = Field(None, gt=0)
    custom_field_data: Optional[dict[str, str]] = None
    team_members: Optional[list[TeamMember]] = None

    @field_validator("email")
    @classmethod
    def email_shape(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not is_email(value):
            raise ValueError("Invalid email address")
        return value

    @field_validator("team_members")
    @classmethod
    def member_emails(cls, members: Optional[list[TeamMember]]) -> Optional[list[TeamMember]]:
        for member in members or []:
            member.email = blank_to_none(member.email)
            if member.email is not None and not is_email(member.email):
                raise ValueError(f"Invalid email for team member {member.name}")
        return members


class RegistrationResponse(CamelModel):
    id: str
    form_id: Optional[int] = None
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    organization: Optional[str] = None
    group_size: int
    team_members: list[TeamMember] = Field(default_factory=list)
    custom_field_data: dict[str, Any] = Field(default_factory=dict)
    scans: int
    max_scans: int
    has_qr: bool = Field(alias="hasQR")
    qr_code_data: Optional[str] = None
    status: RegistrationStatus
    created_at: datetime


class RegistrationListResponse(CamelModel):
    registrations: list[RegistrationResponse]
    total: int
    limit: Optional[int] = None
    offset: Optional[int] = None


class VerifiedRegistration(CamelModel):
    """Subset of the registration shown to gate staff"""
    id: str
    name: Optional[str] = None
    organization: Optional[str] = None
    group_size: int
    scans_used: int
    max_scans: int
    status: RegistrationStatus


class VerifyResponse(CamelModel):
    valid: bool
    message: str
    registration: Optional[VerifiedRegistration] = None


class ScanHistoryResponse(CamelModel):
    id: str
    ticket_id: str
    scanned_at: datetime
    valid: bool


class StatsResponse(CamelModel):
    total_registrations: int
    qr_codes_generated: int
    total_entries: int
    active_registrations: int
    exhausted_registrations: int
