#!/usr/bin/env python3
"""
Deactivate module rentals whose access window is over. Meant for cron.
Run from the project root: python -m scripts.expire_rentals
"""
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from novelhub.core.logging import configure_logging
from novelhub.db.session import SessionLocal
from novelhub.db.transaction import run_in_transaction
from novelhub.services.rentals.service import RentalService


def main():
    configure_logging()
    db = SessionLocal()
    try:
        expired = run_in_transaction(db, lambda s: RentalService(s).expire_rentals())
        print(f"Expired {expired} rentals.")
    finally:
        db.close()


if __name__ == "__main__":
    main()
