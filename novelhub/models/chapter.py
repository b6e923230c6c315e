from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint

from novelhub.db.base import Base
from novelhub.models.content_mode import ContentMode


class Chapter(Base):
    __tablename__ = "chapters"
    __table_args__ = (
        UniqueConstraint("module_id", "order", name="uq_chapters_module_order"),
        CheckConstraint("chapter_balance >= 0", name="ck_chapters_price_non_negative"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    novel_id = Column(String, ForeignKey("novels.id"), nullable=False, index=True)
    module_id = Column(String, ForeignKey("modules.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    order = Column(Integer, nullable=False)
    mode = Column(String, nullable=True, default=ContentMode.PUBLISHED.value)
    price = Column("chapter_balance", Integer, nullable=False, default=0)
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
