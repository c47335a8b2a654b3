from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Header, Query, Response
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
import logging
import jwt

import config
from database.connection import get_db
from schemas.registration import (
    RegistrationListResponse,
    RegistrationResponse,
    RegistrationUpdate,
    ScanHistoryResponse,
    StatsResponse,
)
from services.export import CONTENT_TYPES, ExportFilter, ExportFormat, export_registrations, filter_registrations
from services.mailer import check_email_connection, is_email_configured, send_qr_code_email
from services.qr_issuance import issue_qr
from services import registration_store as store
from services.verification import delete_registration, revoke_ticket
from utils.auth import create_admin_token, verify_admin_password, verify_admin_token

logger = logging.getLogger(__name__)

router = APIRouter()


class AdminLogin(BaseModel):
    password: str


def _bearer_token(authorization: Optional[str]) -> str:
    # Remove "Bearer " prefix if present
    return (authorization or "").replace("Bearer ", "").strip()


def get_current_admin(authorization: Optional[str] = Header(None)) -> bool:
    """
    Dependency to verify the admin JWT token
    Validates token signature, expiration and type
    """
    if not authorization:
        raise HTTPException(status_code=401, detail="Authorization header missing")

    try:
        if not verify_admin_token(_bearer_token(authorization)):
            raise HTTPException(status_code=401, detail="Invalid token type")
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token has expired - Please login again")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")

    return True


def parse_export_options(format: str, filter: str):
    try:
        return ExportFormat(format.lower()), ExportFilter(filter.lower())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unsupported export options: format={format}, filter={filter}")


def export_response(registrations, fmt: ExportFormat, name: str) -> Response:
    content = export_registrations(registrations, fmt)
    filename = f"{name}-{datetime.utcnow().strftime('%Y-%m-%d')}.{fmt.value}"
    return Response(
        content=content,
        media_type=CONTENT_TYPES[fmt],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/api/admin/login")
def admin_login(credentials: AdminLogin):
    """
    Admin login endpoint with JWT token generation
    Returns a signed token that expires after JWT_EXPIRATION_HOURS
    """
    if not verify_admin_password(credentials.password):
        logger.warning("Failed admin login attempt")
        raise HTTPException(status_code=401, detail="Invalid password")

    return {"success": True, "token": create_admin_token()}


@router.get("/api/admin/check")
def admin_check(authorization: Optional[str] = Header(None)):
    """Whether the caller holds a valid admin token"""
    token = _bearer_token(authorization)
    if not token:
        return {"isAdmin": False}
    try:
        return {"isAdmin": verify_admin_token(token)}
    except jwt.InvalidTokenError:
        return {"isAdmin": False}


@router.post("/api/admin/logout")
def admin_logout():
    """Tokens are stateless; the console discards its copy"""
    return {"success": True}


@router.get("/api/admin/registrations", response_model=RegistrationListResponse)
def list_registrations(
    limit: Optional[int] = Query(None, ge=1),
    offset: Optional[int] = Query(None, ge=0),
    db: Session = Depends(get_db),
    admin: bool = Depends(get_current_admin)
):
    return {
        "registrations": store.list_registrations(db, limit=limit, offset=offset),
        "total": store.count_registrations(db),
        "limit": limit,
        "offset": offset,
    }


@router.get("/api/admin/registrations/{registration_id}", response_model=RegistrationResponse)
def get_registration(
    registration_id: str,
    db: Session = Depends(get_db),
    admin: bool = Depends(get_current_admin)
):
    return store.require_registration(db, registration_id)


@router.put("/api/admin/registrations/{registration_id}", response_model=RegistrationResponse)
def update_registration(
    registration_id: str,
    changes: RegistrationUpdate,
    db: Session = Depends(get_db),
    admin: bool = Depends(get_current_admin)
):
    """Partial edit; scans and QR state are left to the verification engine"""
    return store.update_registration(db, registration_id, changes)


@router.delete("/api/admin/registrations/{registration_id}")
def remove_registration(
    registration_id: str,
    db: Session = Depends(get_db),
    admin: bool = Depends(get_current_admin)
):
    delete_registration(db, registration_id)
    return {"success": True}


@router.post("/api/admin/generate-qr/{registration_id}")
def generate_qr(
    registration_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: bool = Depends(get_current_admin)
):
    """
    Issue the QR code for a pending registration
    The ticket email is sent after the response; a failed send does not
    undo the issuance
    """
    issued = issue_qr(db, registration_id)
    registration = issued.registration

    email_queued = bool(registration.email) and is_email_configured()
    if email_queued:
        background_tasks.add_task(
            send_qr_code_email,
            registration.id,
            registration.email,
            registration.name,
            issued.qr_code_data_url,
            issued.verification_url,
        )

    return {
        "success": True,
        "registration": RegistrationResponse.model_validate(registration).model_dump(mode="json", by_alias=True),
        "qrCodeDataUrl": issued.qr_code_data_url,
        "verificationUrl": issued.verification_url,
        "emailQueued": email_queued,
    }


@router.post("/api/admin/revoke-qr/{registration_id}", response_model=RegistrationResponse)
def revoke_qr(
    registration_id: str,
    db: Session = Depends(get_db),
    admin: bool = Depends(get_current_admin)
):
    """Back to pending with the scan count reset; a new code can then be issued"""
    return revoke_ticket(db, registration_id)


@router.get("/api/admin/stats", response_model=StatsResponse)
def stats(db: Session = Depends(get_db), admin: bool = Depends(get_current_admin)):
    return store.get_stats(db)


@router.get("/api/admin/scan-history", response_model=List[ScanHistoryResponse])
def scan_history(
    ticket_id: Optional[str] = Query(None, alias="ticketId"),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    admin: bool = Depends(get_current_admin)
):
    return store.list_scan_history(db, ticket_id=ticket_id, limit=limit)


@router.get("/api/admin/export")
def export(
    format: str = Query("csv"),
    filter: str = Query("all"),
    db: Session = Depends(get_db),
    admin: bool = Depends(get_current_admin)
):
    fmt, selection = parse_export_options(format, filter)
    registrations = filter_registrations(store.list_registrations(db), selection)
    logger.info("Exporting %d registration(s) as %s", len(registrations), fmt.value)
    return export_response(registrations, fmt, "registrations")


@router.get("/api/admin/test-email")
def check_email(admin: bool = Depends(get_current_admin)):
    """Check the SMTP settings by logging in without sending"""
    ok = check_email_connection()
    return {
        "success": ok,
        "configured": is_email_configured(),
        "emailUser": config.SMTP_USERNAME or "NOT SET",
        "message": "Email configuration is working!" if ok else "Email configuration failed",
    }
