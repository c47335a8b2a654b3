from database.connection import Base
from models.registration import Registration, RegistrationStatus, derive_status
from models.scan_history import ScanHistory
from models.event_form import EventForm, ScanPolicy

__all__ = ["Base", "Registration", "RegistrationStatus", "derive_status", "ScanHistory", "EventForm", "ScanPolicy"]
