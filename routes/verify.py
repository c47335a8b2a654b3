from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import Optional

from database.connection import get_db
from schemas.registration import VerifiedRegistration, VerifyResponse
from services.verification import scan_ticket

router = APIRouter()


@router.get("/api/verify", response_model=VerifyResponse, response_model_exclude_none=True)
def verify_ticket(t: Optional[str] = Query(None), db: Session = Depends(get_db)):
    """
    Gate check for a scanned QR code
    Every answer is 200: denials carry valid=false and a message for staff
    """
    ticket_id = (t or "").strip()
    if not ticket_id:
        raise HTTPException(status_code=400, detail="Ticket ID is required")

    result = scan_ticket(db, ticket_id)

    registration = None
    if result.registration is not None:
        r = result.registration
        registration = VerifiedRegistration(
            id=r.id,
            name=r.name,
            organization=r.organization,
            group_size=r.group_size,
            scans_used=r.scans,
            max_scans=r.max_scans,
            status=r.status,
        )

    return VerifyResponse(valid=result.valid, message=result.message, registration=registration)
