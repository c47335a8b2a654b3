from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid

from database.connection import Base


class ScanHistory(Base):
    """
    Append-only audit row, one per verification attempt on a known ticket

    Rows are never updated. They are only removed together with their
    registration.
    """
    __tablename__ = "scan_history"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    ticket_id = Column(String(16), ForeignKey("registrations.id", ondelete="CASCADE"), nullable=False, index=True)
    scanned_at = Column(DateTime, default=datetime.utcnow, index=True)
    valid = Column(Boolean, nullable=False)

    registration = relationship("Registration", back_populates="scan_history")

    def __repr__(self):
        return f"<ScanHistory(ticket_id={self.ticket_id}, valid={self.valid})>"
