from sqlalchemy import Column, String, DateTime, Boolean, Integer, Text, JSON, Enum, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from database.connection import Base


class RegistrationStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    CHECKED_IN = "checked-in"
    EXHAUSTED = "exhausted"
    INVALID = "invalid"


def derive_status(has_qr: bool, scans: int, max_scans: int) -> RegistrationStatus:
    """
    Status is a pure function of (has_qr, scans, max_scans)

    Every write path stores the value computed here so the column can be
    filtered on without recomputing.
    """
    if not has_qr:
        return RegistrationStatus.PENDING
    if scans >= max_scans:
        return RegistrationStatus.EXHAUSTED
    return RegistrationStatus.ACTIVE


class Registration(Base):
    """
    Registration model - one attendee or team submission, i.e. one ticket

    The id is the short ticket identifier printed in the QR verification URL.
    scans/status are only moved by the verification engine.
    """
    __tablename__ = "registrations"

    id = Column(String(16), primary_key=True)
    form_id = Column(Integer, ForeignKey("event_forms.id", ondelete="SET NULL"), nullable=True, index=True)
    name = Column(String, nullable=True)
    email = Column(String, nullable=True, index=True)
    phone = Column(String, nullable=True)
    organization = Column(String, nullable=True)
    group_size = Column(Integer, nullable=False, default=1)
    team_members = Column(JSON, nullable=False, default=list)
    custom_field_data = Column(JSON, nullable=False, default=dict)
    scans = Column(Integer, nullable=False, default=0)
    max_scans = Column(Integer, nullable=False, default=1)
    has_qr = Column(Boolean, nullable=False, default=False)
    qr_code_data = Column(Text, nullable=True)  # PNG data URI
    status = Column(
        Enum(
            RegistrationStatus,
            native_enum=False,
            length=16,
            values_callable=lambda e: [member.value for member in e],
        ),
        nullable=False,
        default=RegistrationStatus.PENDING,
        index=True,
    )
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    form = relationship("EventForm", back_populates="registrations")
    scan_history = relationship("ScanHistory", back_populates="registration", passive_deletes=True)

    def __repr__(self):
        return f"<Registration(id={self.id}, status={self.status}, scans={self.scans}/{self.max_scans})>"
