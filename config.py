"""
Runtime configuration read from the environment (.env is loaded on import)
"""
import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./tickets.db")
SITE_URL = os.getenv("SITE_URL", "http://localhost:5000").rstrip("/")

# Admin access - a single shared password, optionally stored as a bcrypt hash
ADMIN_PASS = os.getenv("ADMIN_PASS", "eventadmin@1111")
ADMIN_PASS_HASH = os.getenv("ADMIN_PASS_HASH")

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-key-change-in-production")
JWT_EXPIRATION_HOURS = int(os.getenv("JWT_EXPIRATION_HOURS", 24))

TICKET_PREFIX = os.getenv("TICKET_PREFIX", "REG")
MAX_ID_ATTEMPTS = int(os.getenv("MAX_ID_ATTEMPTS", 20))

SMTP_SERVER = os.getenv("SMTP_SERVER")
SMTP_PORT = int(os.getenv("SMTP_PORT", 587))
SMTP_USERNAME = os.getenv("SMTP_USERNAME")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
EMAIL_FROM = os.getenv("EMAIL_FROM", "noreply@event.com")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
ENVIRONMENT = os.getenv("ENVIRONMENT", "production")
