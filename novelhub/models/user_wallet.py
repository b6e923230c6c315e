from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String

from novelhub.db.base import Base


class UserWallet(Base):
    """Spendable balance of a reader. Contributions, gifts and rentals are paid from it."""

    __tablename__ = "user_wallets"
    __table_args__ = (CheckConstraint("balance >= 0", name="ck_user_wallets_balance_non_negative"),)

    user_id = Column(String, primary_key=True)
    balance = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
