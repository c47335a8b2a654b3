"""
QR issuance: the credential attendees present at the gate is a PNG of the
verification URL for their ticket id.
"""
import base64
import io
import logging
from dataclasses import dataclass
from urllib.parse import urlencode

import qrcode
from qrcode.constants import ERROR_CORRECT_M
from sqlalchemy.orm import Session

from config import SITE_URL
from models.registration import Registration
from services.errors import ConflictError
from services.registration_store import require_registration
from services.verification import issue_ticket

logger = logging.getLogger(__name__)


@dataclass
class IssuedTicket:
    registration: Registration
    qr_code_data_url: str
    verification_url: str


def build_verification_url(registration_id: str, site_url: str = SITE_URL) -> str:
    return f"{site_url.rstrip('/')}/verify?{urlencode({'t': registration_id})}"


def encode_qr_image(data: str) -> str:
    """Encode data as a QR code and return it as a PNG data URI"""
    qr = qrcode.QRCode(version=None, error_correction=ERROR_CORRECT_M, box_size=10, border=2)
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    qr_base64 = base64.b64encode(buffer.getvalue()).decode()
    return f"data:image/png;base64,{qr_base64}"


def issue_qr(db: Session, registration_id: str) -> IssuedTicket:
    """
    Issue the QR credential for a pending registration

    Raises NotFoundError for an unknown id and ConflictError when a code was
    already issued; re-issuing requires a revoke first.
    """
    registration = require_registration(db, registration_id)
    if registration.has_qr:
        raise ConflictError("QR code already generated for this registration")

    verification_url = build_verification_url(registration_id)
    data_url = encode_qr_image(verification_url)

    # The conditional update in issue_ticket settles concurrent issuance
    registration = issue_ticket(db, registration_id, data_url)
    return IssuedTicket(
        registration=registration,
        qr_code_data_url=data_url,
        verification_url=verification_url,
    )
