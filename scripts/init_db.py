#!/usr/bin/env python3
"""
Create all tables (fresh installs / local development).
Run from the project root: python -m scripts.init_db
"""
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import novelhub.models  # noqa: F401  registers tables
from novelhub.db.base import Base
from novelhub.db.session import engine


def main():
    Base.metadata.create_all(bind=engine)
    print("Tables created: " + ", ".join(sorted(Base.metadata.tables)))


if __name__ == "__main__":
    main()
