from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session
from typing import Any, Optional

from database.connection import get_db
from schemas.form import EventFormResponse
from schemas.registration import RegistrationResponse
from services.registration_store import create_registration, get_published_form
from services.schema_builder import validator_for_form


router = APIRouter()


@router.post("/api/register", response_model=RegistrationResponse)
def register(payload: Any = Body(...), db: Session = Depends(get_db)):
    """
    Public registration endpoint
    Validates the submission against the published form (or the default
    form when none is published) and stores it as a pending registration
    """
    # Resolved once so the validator and the stored formId agree
    form = get_published_form(db)
    submission = validator_for_form(form).validate(payload)
    return create_registration(db, submission, form)


@router.get("/api/published-form", response_model=Optional[EventFormResponse])
def published_form(db: Session = Depends(get_db)):
    """The form the public registration page renders, or null"""
    return get_published_form(db)
