from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String

from novelhub.db.base import Base


class Novel(Base):
    __tablename__ = "novels"
    __table_args__ = (
        CheckConstraint("novel_budget >= 0", name="ck_novels_budget_non_negative"),
        CheckConstraint("novel_balance >= 0", name="ck_novels_balance_non_negative"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    title = Column(String, nullable=False)
    # Funds available for auto-unlocking paid content
    budget = Column("novel_budget", Integer, nullable=False, default=0)
    # Everything ever received (contributions, gifts, rentals)
    balance = Column("novel_balance", Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    # Bumped only when content gets unlocked ("latest updates" sorting)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
