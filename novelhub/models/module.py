from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint

from novelhub.db.base import Base
from novelhub.models.content_mode import ContentMode


class Module(Base):
    __tablename__ = "modules"
    __table_args__ = (
        UniqueConstraint("novel_id", "order", name="uq_modules_novel_order"),
        CheckConstraint("module_balance >= 0", name="ck_modules_price_non_negative"),
        CheckConstraint("rent_balance >= 0", name="ck_modules_rent_balance_non_negative"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    novel_id = Column(String, ForeignKey("novels.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    order = Column(Integer, nullable=False)
    # NULL only on legacy rows; CatalogService.backfill_missing_modes turns them into "paid"
    mode = Column(String, nullable=True, default=ContentMode.PUBLISHED.value)
    # Budget required to unlock the module itself
    price = Column("module_balance", Integer, nullable=False, default=0)
    # Price of a rental (see RentBalanceService)
    rent_balance = Column(Integer, nullable=False, default=0)
    # Outstanding cost of paid chapters inside a rent module
    rent_remaining_balance = Column(Integer, nullable=False, default=0)
    recalculate_rent_on_unlock = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    @property
    def content_mode(self) -> ContentMode:
        return ContentMode.parse(self.mode)
