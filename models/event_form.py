from sqlalchemy import Column, String, DateTime, Boolean, Integer, Text, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from database.connection import Base


class ScanPolicy(str, enum.Enum):
    """How max_scans is derived for registrations of a form"""
    GROUP = "group"    # every group member may enter separately
    SINGLE = "single"  # one check-in per registration

    def max_scans_for(self, group_size: int) -> int:
        if self is ScanPolicy.SINGLE:
            return 1
        return max(1, group_size or 1)


class EventForm(Base):
    """
    EventForm model - admin-authored registration form template

    Only one form can be published at a time.
    custom_fields / base_fields hold the JSON dump of the pydantic field
    definitions from schemas.form.
    """
    __tablename__ = "event_forms"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String, nullable=False)
    subtitle = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    hero_image_url = Column(String, nullable=True)
    background_image_url = Column(String, nullable=True)
    watermark_url = Column(String, nullable=True)
    logo_url = Column(String, nullable=True)
    custom_links = Column(JSON, nullable=False, default=list)
    custom_fields = Column(JSON, nullable=False, default=list)
    base_fields = Column(JSON, nullable=True)
    scan_policy = Column(String(16), nullable=False, default=ScanPolicy.GROUP.value)
    success_title = Column(String, nullable=True)
    success_message = Column(Text, nullable=True)
    is_published = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    registrations = relationship("Registration", back_populates="form")

    def __repr__(self):
        return f"<EventForm(id={self.id}, title={self.title}, published={self.is_published})>"
