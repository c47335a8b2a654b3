import sys

from config import DATABASE_URL
from database.connection import Database
from schemas.form import EventFormCreate
from services.errors import StoreError
from services.registration_store import create_form, list_forms

DEFAULT_FORM = {
    "title": "University of Allahabad - Free Fire Tournament",
    "subtitle": "Register now to receive your secure QR-based entry pass",
    "description": "Join the ultimate Free Fire tournament! ₹99 registration fee per slot.",
    "customLinks": [
        {"label": "UPI ID: tournament@upi", "url": "upi://pay?pa=tournament@upi"},
    ],
    "customFields": [
        {
            "id": "field_ingame_uid",
            "type": "text",
            "label": "In-Game UID",
            "placeholder": "Free Fire UID",
            "required": True,
            "helpText": "Enter your Free Fire unique ID",
        },
        {
            "id": "field_transaction_id",
            "type": "payment",
            "label": "Transaction ID / UTR",
            "placeholder": "e.g., 3245xxxxxxxx",
            "required": True,
            "helpText": "Enter your payment transaction ID",
            "paymentUrl": "upi://pay?pa=tournament@upi",
        },
        {
            "id": "field_payment_screenshot",
            "type": "photo",
            "label": "Payment Screenshot",
            "required": True,
            "helpText": "Upload clear image of success screen",
        },
    ],
    "baseFields": {
        "name": {
            "label": "Full Name",
            "placeholder": "Enter your name",
            "helpText": "Squad Leader's full name",
        },
        "email": {"label": "Email Address", "placeholder": "valid@email.com"},
        "phone": {"label": "Phone Number", "placeholder": "10-digit mobile number"},
        "organization": {
            "label": "Organization",
            "placeholder": "University/College name",
            "required": False,
        },
        "groupSize": {"label": "Group Size (Maximum 4 people)", "required": False, "enabled": False},
        "teamMembers": {
            "label": "Team Members",
            "placeholder": "Select number of team members (Solo, Duo, Trio, or Full Squad)",
            "maxTeamMembers": 4,
            "memberNameLabel": "Full Name",
            "memberNamePlaceholder": "Enter member name",
            "memberEmailLabel": "Email",
            "memberEmailPlaceholder": "member@example.com",
            "memberPhoneLabel": "Phone Number",
            "memberPhonePlaceholder": "+1 (555) 123-4567",
            "registrationFee": 99,
            "registrationFeeDescription": (
                "You are buying ONE slot. The fee is fixed at ₹99 whether you play "
                "Solo, Duo, Trio, or Full Squad."
            ),
        },
    },
    # One entry per registered slot
    "scanPolicy": "single",
    "successTitle": "Registration Successful!",
    "successMessage": (
        "Thank you for registering! Your entry has been recorded. "
        "You will receive your QR code shortly."
    ),
}


def seed_default_form(db):
    """Create the default tournament form unless a form already exists"""
    if list_forms(db):
        return None
    return create_form(db, EventFormCreate.model_validate(DEFAULT_FORM))


def main() -> int:
    database = Database(DATABASE_URL).open()
    db = database.session()

    try:
        form = seed_default_form(db)
        if form is None:
            print("Forms already exist, skipping seed")
        else:
            print(f"✓ Default form created: {form.title} (ID: {form.id})")
            print("✓ Publish it from the admin console to open registration")
        return 0
    except StoreError as e:
        print(f"Error seeding database: {e}")
        return 1
    finally:
        db.close()
        database.close()


if __name__ == "__main__":
    sys.exit(main())
