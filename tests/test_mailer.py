"""
Tests for the ticket email and QR encoding
"""
import smtplib

import pytest

import config
from services.mailer import build_qr_email, check_email_connection, send_qr_code_email
from services.qr_issuance import build_verification_url, encode_qr_image


@pytest.fixture
def qr_data_url():
    return encode_qr_image("http://localhost:5000/verify?t=REG1234")


class FakeSMTP:
    sent = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        pass

    def login(self, username, password):
        pass

    def sendmail(self, sender, recipient, message):
        self.sent.append((sender, recipient, message))


@pytest.fixture
def smtp_configured(monkeypatch):
    monkeypatch.setattr(config, "SMTP_SERVER", "smtp.example.com")
    monkeypatch.setattr(config, "SMTP_USERNAME", "mailer")
    monkeypatch.setattr(config, "SMTP_PASSWORD", "secret")
    FakeSMTP.sent = []
    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)


def test_verification_url():
    assert build_verification_url("REG1234", "https://tickets.example.com/") == (
        "https://tickets.example.com/verify?t=REG1234"
    )


def test_qr_image_is_png_data_uri(qr_data_url):
    assert qr_data_url.startswith("data:image/png;base64,iVBOR")


def test_email_embeds_qr_image(qr_data_url):
    message = build_qr_email("REG1234", "asha@example.com", "Asha", qr_data_url, "http://x/verify?t=REG1234")
    assert message["Subject"] == "Your Event QR Code - REG1234"
    assert message["To"] == "asha@example.com"
    parts = [part.get_content_type() for part in message.walk()]
    assert "image/png" in parts
    assert "text/html" in parts


def test_send_without_configuration(qr_data_url):
    assert send_qr_code_email("REG1234", "asha@example.com", "Asha", qr_data_url, "http://x") is False


def test_send(smtp_configured, qr_data_url):
    assert send_qr_code_email("REG1234", "asha@example.com", "Asha", qr_data_url, "http://x") is True
    sender, recipient, _ = FakeSMTP.sent[0]
    assert sender == config.EMAIL_FROM
    assert recipient == "asha@example.com"


def test_send_failure_is_reported(smtp_configured, qr_data_url, monkeypatch):
    def refuse(self, *args):
        raise smtplib.SMTPRecipientsRefused({})

    monkeypatch.setattr(FakeSMTP, "sendmail", refuse)
    assert send_qr_code_email("REG1234", "asha@example.com", "Asha", qr_data_url, "http://x") is False


def test_connection_check_without_configuration():
    assert check_email_connection() is False


def test_connection_check(smtp_configured):
    assert check_email_connection() is True
    assert FakeSMTP.sent == []


def test_connection_check_login_failure(smtp_configured, monkeypatch):
    def reject(self, username, password):
        raise smtplib.SMTPAuthenticationError(535, b"bad credentials")

    monkeypatch.setattr(FakeSMTP, "login", reject)
    assert check_email_connection() is False
