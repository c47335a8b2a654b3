import sys

from config import DATABASE_URL
from database.connection import Database
from models.event_form import EventForm
from models.registration import Registration
from services.errors import StoreError
from services.registration_store import store_operation


@store_operation
def clear_forms(db) -> int:
    """Delete every event form; registrations are kept and detached"""
    db.query(Registration).filter(Registration.form_id.isnot(None)).update(
        {"form_id": None}, synchronize_session=False
    )
    deleted = db.query(EventForm).delete(synchronize_session=False)
    db.commit()
    return deleted


def main() -> int:
    database = Database(DATABASE_URL).open()
    db = database.session()

    try:
        deleted = clear_forms(db)
        print(f"✓ {deleted} form(s) deleted")
        return 0
    except StoreError as e:
        print(f"Error clearing forms: {e}")
        return 1
    finally:
        db.close()
        database.close()


if __name__ == "__main__":
    sys.exit(main())
