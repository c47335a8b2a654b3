"""
Ticket email: sends the issued QR code to the registrant

Runs as a background task after issuance has been committed; a failed send
is logged and never undoes the issuance.
"""
import base64
import html
import logging
import smtplib
from email.mime.image import MIMEImage
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import config

logger = logging.getLogger(__name__)


def is_email_configured() -> bool:
    return bool(config.SMTP_SERVER and config.SMTP_USERNAME and config.SMTP_PASSWORD)


def build_qr_email(
    ticket_id: str,
    recipient: str,
    name: str,
    qr_code_data_url: str,
    verification_url: str,
) -> MIMEMultipart:
    message = MIMEMultipart("related")
    message["From"] = config.EMAIL_FROM
    message["To"] = recipient
    message["Subject"] = f"Your Event QR Code - {ticket_id}"

    html_body = f"""
    <html>
    <body style="font-family: Arial, sans-serif; color: #333;">
        <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
            <h2>Your entry pass is ready</h2>
            <p>Hi <b>{html.escape(name or "there")}</b>,</p>
            <p>Your ticket ID is <b>{html.escape(ticket_id)}</b>. Show this QR code at the entrance.</p>
            <p style="text-align: center;">
                <img src="cid:qrimage" alt="QR Code {html.escape(ticket_id)}" width="300" height="300"/>
            </p>
            <p>Verification link: <a href="{html.escape(verification_url)}">{html.escape(verification_url)}</a></p>
        </div>
    </body>
    </html>
    """

    alt = MIMEMultipart("alternative")
    alt.attach(MIMEText(html_body, "html"))
    message.attach(alt)

    qr_bytes = base64.b64decode(qr_code_data_url.split(",", 1)[-1])
    img = MIMEImage(qr_bytes, name=f"ticket_{ticket_id}.png")
    img.add_header("Content-ID", "<qrimage>")
    img.add_header("Content-Disposition", "inline", filename=f"ticket_{ticket_id}.png")
    message.attach(img)
    return message


def send_qr_code_email(
    ticket_id: str,
    recipient: str,
    name: str,
    qr_code_data_url: str,
    verification_url: str,
) -> bool:
    if not is_email_configured():
        logger.warning("Email not configured, QR code for %s not sent", ticket_id)
        return False

    message = build_qr_email(ticket_id, recipient, name, qr_code_data_url, verification_url)
    try:
        with smtplib.SMTP(config.SMTP_SERVER, config.SMTP_PORT, timeout=10) as server:
            server.starttls()
            server.login(config.SMTP_USERNAME, config.SMTP_PASSWORD)
            server.sendmail(config.EMAIL_FROM, recipient, message.as_string())
    except (smtplib.SMTPException, OSError):
        logger.exception("Sending QR code for %s to %s failed", ticket_id, recipient)
        return False

    logger.info("QR code for %s sent to %s", ticket_id, recipient)
    return True


def check_email_connection() -> bool:
    """Log in to the SMTP server without sending anything"""
    if not is_email_configured():
        logger.warning("Email not configured, connection check skipped")
        return False

    try:
        with smtplib.SMTP(config.SMTP_SERVER, config.SMTP_PORT, timeout=10) as server:
            server.starttls()
            server.login(config.SMTP_USERNAME, config.SMTP_PASSWORD)
    except (smtplib.SMTPException, OSError):
        logger.exception("Email connection check against %s failed", config.SMTP_SERVER)
        return False

    logger.info("Email connection check against %s succeeded", config.SMTP_SERVER)
    return True
