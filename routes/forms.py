from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from database.connection import get_db
from routes.admin import export_response, get_current_admin, parse_export_options
from schemas.form import EventFormCreate, EventFormResponse, EventFormUpdate
from schemas.registration import RegistrationListResponse, StatsResponse
from services.export import filter_registrations
from services import registration_store as store

router = APIRouter()


@router.post("/api/admin/forms", response_model=EventFormResponse)
def create_form(
    data: EventFormCreate,
    db: Session = Depends(get_db),
    admin: bool = Depends(get_current_admin)
):
    """New forms start unpublished"""
    return store.create_form(db, data)


@router.get("/api/admin/forms", response_model=List[EventFormResponse])
def list_forms(db: Session = Depends(get_db), admin: bool = Depends(get_current_admin)):
    return store.list_forms(db)


@router.get("/api/admin/forms/{form_id}", response_model=EventFormResponse)
def get_form(form_id: int, db: Session = Depends(get_db), admin: bool = Depends(get_current_admin)):
    return store.require_form(db, form_id)


@router.put("/api/admin/forms/{form_id}", response_model=EventFormResponse)
def update_form(
    form_id: int,
    changes: EventFormUpdate,
    db: Session = Depends(get_db),
    admin: bool = Depends(get_current_admin)
):
    return store.update_form(db, form_id, changes)


@router.delete("/api/admin/forms/{form_id}")
def delete_form(form_id: int, db: Session = Depends(get_db), admin: bool = Depends(get_current_admin)):
    """Registrations made through the form are kept and detached"""
    store.delete_form(db, form_id)
    return {"success": True}


@router.post("/api/admin/forms/{form_id}/publish", response_model=EventFormResponse)
def publish_form(form_id: int, db: Session = Depends(get_db), admin: bool = Depends(get_current_admin)):
    """Publishing a form unpublishes whichever form was live"""
    return store.publish_form(db, form_id)


@router.post("/api/admin/forms/{form_id}/unpublish", response_model=EventFormResponse)
def unpublish_form(form_id: int, db: Session = Depends(get_db), admin: bool = Depends(get_current_admin)):
    return store.unpublish_form(db, form_id)


@router.get("/api/admin/forms/{form_id}/registrations", response_model=RegistrationListResponse)
def form_registrations(
    form_id: int,
    limit: Optional[int] = Query(None, ge=1),
    offset: Optional[int] = Query(None, ge=0),
    db: Session = Depends(get_db),
    admin: bool = Depends(get_current_admin)
):
    store.require_form(db, form_id)
    return {
        "registrations": store.list_registrations(db, limit=limit, offset=offset, form_id=form_id),
        "total": store.count_registrations(db, form_id=form_id),
        "limit": limit,
        "offset": offset,
    }


@router.get("/api/admin/forms/{form_id}/stats", response_model=StatsResponse)
def form_stats(form_id: int, db: Session = Depends(get_db), admin: bool = Depends(get_current_admin)):
    store.require_form(db, form_id)
    return store.get_stats(db, form_id=form_id)


@router.get("/api/admin/forms/{form_id}/export")
def export_form(
    form_id: int,
    format: str = Query("csv"),
    filter: str = Query("all"),
    db: Session = Depends(get_db),
    admin: bool = Depends(get_current_admin)
):
    fmt, selection = parse_export_options(format, filter)
    store.require_form(db, form_id)
    registrations = filter_registrations(store.list_registrations(db, form_id=form_id), selection)
    return export_response(registrations, fmt, f"form-{form_id}-registrations")
