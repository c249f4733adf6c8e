"""
reset_data.py
-------------
Utility script to drop and recreate every table of the back-office database.

This script is designed for development and testing purposes.
It points at the database configured by DATABASE_URL (or the default SQLite file).

Usage:
    $ python reset_data.py

After running this script, you can repopulate sample data by executing:
    $ python seeds.py
"""

from backoffice import create_app
from backoffice.models import db


def main():
    """
    Drop all tables and create them again, empty.
    """
    app = create_app({"SCHEDULER_ENABLED": False})
    with app.app_context():
        db.drop_all()
        db.create_all()

    print("✅ Database has been successfully reset.")
    print("💡 Tip: Run `python seeds.py` to regenerate demo data.")


if __name__ == "__main__":
    main()
