"""
Ticket verification engine

The only code that moves a registration's scans/status. Each transition is a
single conditional UPDATE so concurrent scans of the same ticket, possibly
from several server processes, are counted exactly once: the row count of the
UPDATE decides the outcome.

    pending --issue--> active --scan--> ... --scan--> exhausted
       ^                                                  |
       +---------------------- revoke --------------------+

Scan history is appended after the scan decision is committed. A failed
append is logged and does not change the decision.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import case, delete, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.registration import Registration, RegistrationStatus
from models.scan_history import ScanHistory
from services.errors import ConflictError, NotFoundError
from services.registration_store import get_registration, require_registration, store_operation

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "Invalid ticket ID. Registration not found."
NOT_ISSUED_MESSAGE = "QR code not generated for this registration."
EXHAUSTED_MESSAGE = "Maximum entries reached. No entries remaining."


@dataclass
class ScanResult:
    valid: bool
    message: str
    registration: Optional[Registration] = None


def granted_message(remaining: int) -> str:
    if remaining <= 0:
        return "Entry granted. No entries remaining."
    if remaining == 1:
        return "Entry granted. 1 entry remaining."
    return f"Entry granted. {remaining} entries remaining."


def _append_history(db: Session, ticket_id: str, valid: bool) -> None:
    try:
        db.add(ScanHistory(ticket_id=ticket_id, valid=valid))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Could not record scan history for %s", ticket_id)


@store_operation
def issue_ticket(db: Session, registration_id: str, qr_code_data: str) -> Registration:
    """Attach a QR credential; only a registration without one can be issued"""
    result = db.execute(
        update(Registration)
        .where(Registration.id == registration_id, Registration.has_qr.is_(False))
        .values(
            has_qr=True,
            qr_code_data=qr_code_data,
            status=case(
                (Registration.scans >= Registration.max_scans, RegistrationStatus.EXHAUSTED.value),
                else_=RegistrationStatus.ACTIVE.value,
            ),
        )
        .execution_options(synchronize_session=False)
    )
    issued = result.rowcount == 1
    db.commit()

    registration = get_registration(db, registration_id)
    if registration is None:
        raise NotFoundError("Registration not found")
    if not issued:
        raise ConflictError("QR code already generated for this registration")

    logger.info("QR code issued for %s", registration_id)
    return registration


@store_operation
def scan_ticket(db: Session, ticket_id: str) -> ScanResult:
    """
    Decide whether a presented ticket grants entry

    Denials are results, not errors. Only granted entries are recorded in
    the scan history.
    """
    registration = get_registration(db, ticket_id)
    if registration is None:
        logger.info("Scan of unknown ticket %s", ticket_id)
        return ScanResult(valid=False, message=NOT_FOUND_MESSAGE)

    if not registration.has_qr:
        logger.info("Scan of %s denied: no QR code issued", ticket_id)
        return ScanResult(valid=False, message=NOT_ISSUED_MESSAGE, registration=registration)

    result = db.execute(
        update(Registration)
        .where(
            Registration.id == ticket_id,
            Registration.has_qr.is_(True),
            Registration.scans < Registration.max_scans,
        )
        .values(
            scans=Registration.scans + 1,
            status=case(
                (Registration.scans + 1 >= Registration.max_scans, RegistrationStatus.EXHAUSTED.value),
                else_=RegistrationStatus.ACTIVE.value,
            ),
        )
        .execution_options(synchronize_session=False)
    )
    granted = result.rowcount == 1
    db.commit()

    registration = get_registration(db, ticket_id)
    if registration is None:
        # Deleted between the read and the update
        logger.info("Scan of %s denied: registration deleted", ticket_id)
        return ScanResult(valid=False, message=NOT_FOUND_MESSAGE)

    if granted:
        remaining = max(0, registration.max_scans - registration.scans)
        logger.info("Scan of %s granted (%d/%d)", ticket_id, registration.scans, registration.max_scans)
        _append_history(db, ticket_id, True)
        return ScanResult(valid=True, message=granted_message(remaining), registration=registration)

    # Revoked between the read and the update
    if not registration.has_qr:
        return ScanResult(valid=False, message=NOT_ISSUED_MESSAGE, registration=registration)

    logger.info("Scan of %s denied: maximum entries reached", ticket_id)
    return ScanResult(valid=False, message=EXHAUSTED_MESSAGE, registration=registration)


@store_operation
def revoke_ticket(db: Session, registration_id: str) -> Registration:
    """Return a registration to pending, clearing its QR code and scan count"""
    result = db.execute(
        update(Registration)
        .where(Registration.id == registration_id)
        .values(
            has_qr=False,
            qr_code_data=None,
            scans=0,
            status=RegistrationStatus.PENDING.value,
        )
        .execution_options(synchronize_session=False)
    )
    found = result.rowcount > 0
    db.commit()
    if not found:
        raise NotFoundError("Registration not found")

    registration = require_registration(db, registration_id)
    logger.info("QR code revoked for %s", registration_id)
    return registration


@store_operation
def delete_registration(db: Session, registration_id: str) -> None:
    """Remove a registration and its scan history in one transaction"""
    require_registration(db, registration_id)
    db.execute(
        delete(ScanHistory)
        .where(ScanHistory.ticket_id == registration_id)
        .execution_options(synchronize_session=False)
    )
    db.execute(
        delete(Registration)
        .where(Registration.id == registration_id)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    logger.info("Registration %s deleted", registration_id)
