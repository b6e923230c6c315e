#!/usr/bin/env python3
"""
One-off migration: modules/chapters created before content modes existed have
mode NULL; they are paid content. Sets them to "paid" for every novel.
Run from the project root: python -m scripts.backfill_content_modes
"""
import os
import sys

# project root on PYTHONPATH
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from novelhub.core.logging import configure_logging
from novelhub.db.session import SessionLocal
from novelhub.db.transaction import run_in_transaction
from novelhub.services.catalog.service import CatalogService


def main():
    configure_logging()
    db = SessionLocal()
    try:
        fixed = run_in_transaction(db, lambda s: CatalogService(s).backfill_missing_modes())
        print(f"Backfilled {fixed} module/chapter rows to mode=paid.")
    finally:
        db.close()


if __name__ == "__main__":
    main()
