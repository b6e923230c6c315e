from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String

from novelhub.db.base import Base


class ModuleRental(Base):
    __tablename__ = "module_rentals"
    __table_args__ = (
        Index("ix_module_rentals_active_end", "is_active", "end_time"),
        Index("ix_module_rentals_user_module", "user_id", "module_id", "is_active"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String, nullable=False, index=True)
    module_id = Column(String, ForeignKey("modules.id"), nullable=False)
    novel_id = Column(String, ForeignKey("novels.id"), nullable=False, index=True)
    amount_paid = Column(Integer, nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    end_time = Column(DateTime(timezone=True), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    contribution_history_id = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    def is_valid(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        end = self.end_time if self.end_time.tzinfo else self.end_time.replace(tzinfo=timezone.utc)
        return bool(self.is_active) and now < end
