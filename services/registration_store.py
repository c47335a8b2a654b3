"""
Registration store: persistence of registrations, event forms and scan
history on top of a SQLAlchemy session.

Every function takes the request's session as its first argument. SQLAlchemy
failures are rolled back, logged and re-raised as StoreError.
"""
import functools
import logging
import random
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, case, func, or_, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from config import MAX_ID_ATTEMPTS, TICKET_PREFIX
from models.event_form import EventForm, ScanPolicy
from models.registration import Registration, RegistrationStatus, derive_status
from models.scan_history import ScanHistory
from schemas.form import EventFormCreate, EventFormUpdate
from schemas.registration import RegistrationSubmission, RegistrationUpdate
from services.errors import NotFoundError, StoreError

logger = logging.getLogger(__name__)

# Form columns stored as JSON documents
JSON_COLUMNS = {"custom_links", "custom_fields", "base_fields"}
NULLABLE_JSON_COLUMNS = {"base_fields"}


def store_operation(func_):
    """Roll back and wrap SQLAlchemy failures of a store function"""
    @functools.wraps(func_)
    def wrapper(db: Session, *args, **kwargs):
        try:
            return func_(db, *args, **kwargs)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Store operation %s failed", func_.__name__)
            raise StoreError(f"{func_.__name__} failed") from exc
    return wrapper


def status_expression(max_scans):
    """SQL form of derive_status for an issued-or-not row with the given budget"""
    return case(
        (Registration.has_qr.is_(False), RegistrationStatus.PENDING.value),
        (Registration.scans >= max_scans, RegistrationStatus.EXHAUSTED.value),
        else_=RegistrationStatus.ACTIVE.value,
    )


def generate_ticket_id() -> str:
    """Prefix plus four random digits; collisions are retried by the caller"""
    return f"{TICKET_PREFIX}{random.randint(1000, 9999)}"


def policy_for(form: Optional[EventForm]) -> ScanPolicy:
    if form is None:
        return ScanPolicy.GROUP
    return ScanPolicy(form.scan_policy)


# Registrations

@store_operation
def create_registration(
    db: Session,
    submission: RegistrationSubmission,
    form: Optional[EventForm] = None,
) -> Registration:
    group_size = submission.group_size or 1
    max_scans = policy_for(form).max_scans_for(group_size)

    for _ in range(MAX_ID_ATTEMPTS):
        ticket_id = generate_ticket_id()
        if db.query(Registration.id).filter(Registration.id == ticket_id).first():
            continue

        registration = Registration(
            id=ticket_id,
            form_id=form.id if form is not None else None,
            name=submission.name,
            email=submission.email,
            phone=submission.phone,
            organization=submission.organization,
            group_size=group_size,
            team_members=[member.model_dump() for member in submission.team_members],
            custom_field_data=dict(submission.custom_field_data),
            scans=0,
            max_scans=max_scans,
            has_qr=False,
            status=derive_status(False, 0, max_scans),
        )
        db.add(registration)
        try:
            db.commit()
        except IntegrityError:
            # Taken between the check and the insert
            db.rollback()
            logger.warning("Ticket id %s already taken, retrying", ticket_id)
            continue

        db.refresh(registration)
        logger.info("Registration %s created (form=%s, max_scans=%d)", ticket_id, registration.form_id, max_scans)
        return registration

    raise StoreError("Could not allocate a unique ticket id")


@store_operation
def get_registration(db: Session, registration_id: str) -> Optional[Registration]:
    return db.query(Registration).filter(Registration.id == registration_id).first()


def require_registration(db: Session, registration_id: str) -> Registration:
    registration = get_registration(db, registration_id)
    if registration is None:
        raise NotFoundError("Registration not found")
    return registration


@store_operation
def list_registrations(
    db: Session,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    form_id: Optional[int] = None,
) -> List[Registration]:
    query = db.query(Registration)
    if form_id is not None:
        query = query.filter(Registration.form_id == form_id)
    query = query.order_by(Registration.created_at.desc(), Registration.id)
    if offset is not None:
        query = query.offset(offset)
    if limit is not None:
        query = query.limit(limit)
    return query.all()


@store_operation
def count_registrations(db: Session, form_id: Optional[int] = None) -> int:
    query = db.query(func.count(Registration.id))
    if form_id is not None:
        query = query.filter(Registration.form_id == form_id)
    return query.scalar() or 0


@store_operation
def update_registration(db: Session, registration_id: str, changes: RegistrationUpdate) -> Registration:
    """
    Partial admin edit

    scans is never touched here. A group size change re-derives max_scans
    from the form's scan policy and recomputes status in the same statement.
    """
    registration = require_registration(db, registration_id)
    data = changes.model_dump(exclude_unset=True)

    for key in ("name", "email", "phone", "organization"):
        if key in data:
            setattr(registration, key, data[key])
    if data.get("custom_field_data") is not None:
        registration.custom_field_data = data["custom_field_data"]
    if data.get("team_members") is not None:
        registration.team_members = data["team_members"]
    db.flush()

    if data.get("group_size") is not None:
        group_size = data["group_size"]
        max_scans = policy_for(registration.form).max_scans_for(group_size)
        db.execute(
            update(Registration)
            .where(Registration.id == registration_id)
            .values(group_size=group_size, max_scans=max_scans, status=status_expression(max_scans))
            .execution_options(synchronize_session=False)
        )

    db.commit()
    db.refresh(registration)
    logger.info("Registration %s updated (%s)", registration_id, ", ".join(sorted(data)) or "no changes")
    return registration


@store_operation
def get_stats(db: Session, form_id: Optional[int] = None) -> Dict[str, int]:
    in_progress = and_(
        Registration.has_qr.is_(True),
        Registration.scans > 0,
        Registration.scans < Registration.max_scans,
    )
    query = db.query(
        func.count(Registration.id),
        func.sum(case((Registration.has_qr.is_(True), 1), else_=0)),
        func.sum(Registration.scans),
        func.sum(case((in_progress, 1), (Registration.status == RegistrationStatus.CHECKED_IN, 1), else_=0)),
        func.sum(case((Registration.status == RegistrationStatus.EXHAUSTED, 1), else_=0)),
    )
    if form_id is not None:
        query = query.filter(Registration.form_id == form_id)
    total, issued, entries, active, exhausted = query.one()

    return {
        "total_registrations": total or 0,
        "qr_codes_generated": issued or 0,
        "total_entries": entries or 0,
        "active_registrations": active or 0,
        "exhausted_registrations": exhausted or 0,
    }


# Scan history

@store_operation
def list_scan_history(db: Session, ticket_id: Optional[str] = None, limit: Optional[int] = None) -> List[ScanHistory]:
    query = db.query(ScanHistory)
    if ticket_id is not None:
        query = query.filter(ScanHistory.ticket_id == ticket_id)
    query = query.order_by(ScanHistory.scanned_at.desc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()


# Event forms

def _form_values(data, exclude_unset: bool = False) -> Dict[str, Any]:
    """Column values for a form model; JSON columns keep the camelCase wire format"""
    dumped = data.model_dump(mode="json", by_alias=True, exclude_unset=exclude_unset)
    values = {}
    for name, field in type(data).model_fields.items():
        alias = field.alias or name
        if alias not in dumped:
            continue
        value = dumped[alias]
        if value is None and (name in JSON_COLUMNS - NULLABLE_JSON_COLUMNS or name in ("title", "scan_policy")):
            continue
        values[name] = value
    return values


@store_operation
def create_form(db: Session, data: EventFormCreate) -> EventForm:
    form = EventForm(**_form_values(data), is_published=False)
    db.add(form)
    db.commit()
    db.refresh(form)
    logger.info("Event form %s created: %s", form.id, form.title)
    return form


@store_operation
def get_form(db: Session, form_id: int) -> Optional[EventForm]:
    return db.query(EventForm).filter(EventForm.id == form_id).first()


def require_form(db: Session, form_id: int) -> EventForm:
    form = get_form(db, form_id)
    if form is None:
        raise NotFoundError("Form not found")
    return form


@store_operation
def list_forms(db: Session) -> List[EventForm]:
    return db.query(EventForm).order_by(EventForm.updated_at.desc(), EventForm.id.desc()).all()


@store_operation
def update_form(db: Session, form_id: int, changes: EventFormUpdate) -> EventForm:
    form = require_form(db, form_id)
    for key, value in _form_values(changes, exclude_unset=True).items():
        setattr(form, key, value)
    form.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(form)
    return form


@store_operation
def delete_form(db: Session, form_id: int) -> None:
    form = require_form(db, form_id)
    db.execute(
        update(Registration)
        .where(Registration.form_id == form_id)
        .values(form_id=None)
        .execution_options(synchronize_session=False)
    )
    db.delete(form)
    db.commit()
    logger.info("Event form %s deleted", form_id)


@store_operation
def publish_form(db: Session, form_id: int) -> EventForm:
    """
    Publish one form and unpublish every other in a single UPDATE

    Readers of get_published_form never see zero or two published forms.
    """
    form = require_form(db, form_id)
    db.execute(
        update(EventForm)
        .where(or_(EventForm.is_published.is_(True), EventForm.id == form_id))
        .values(is_published=case((EventForm.id == form_id, True), else_=False))
        .execution_options(synchronize_session=False)
    )
    form.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(form)
    logger.info("Event form %s published", form_id)
    return form


@store_operation
def unpublish_form(db: Session, form_id: int) -> EventForm:
    form = require_form(db, form_id)
    form.is_published = False
    form.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(form)
    logger.info("Event form %s unpublished", form_id)
    return form


@store_operation
def get_published_form(db: Session) -> Optional[EventForm]:
    return (
        db.query(EventForm)
        .filter(EventForm.is_published.is_(True))
        .order_by(EventForm.updated_at.desc())
        .first()
    )
