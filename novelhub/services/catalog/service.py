"""
CatalogService — read side of the novel → modules → chapters forest and the
only place where module/chapter modes get written.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy import func, or_, update
from sqlalchemy.orm import Session

from novelhub.core.exceptions import NotFound
from novelhub.db.transaction import require_transaction
from novelhub.models.chapter import Chapter
from novelhub.models.content_mode import CHAPTER_MODES, MODULE_MODES, ContentMode
from novelhub.models.module import Module
from novelhub.models.novel import Novel

logger = logging.getLogger(__name__)


class CatalogService:
    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_novel(self, novel_id: str, lock: bool = False) -> Novel:
        query = self.db.query(Novel).filter(Novel.id == novel_id)
        if lock:
            query = query.with_for_update().populate_existing()
        novel = query.one_or_none()
        if novel is None:
            raise NotFound("Novel", novel_id)
        return novel

    def get_module(self, module_id: str) -> Module:
        module = self.db.query(Module).filter(Module.id == module_id).one_or_none()
        if module is None:
            raise NotFound("Module", module_id)
        return module

    def get_chapter(self, chapter_id: str) -> Chapter:
        chapter = self.db.query(Chapter).filter(Chapter.id == chapter_id).one_or_none()
        if chapter is None:
            raise NotFound("Chapter", chapter_id)
        return chapter

    def list_modules(self, novel_id: str) -> list[Module]:
        """Modules of a novel in reading order, legacy modes already backfilled."""
        self.backfill_missing_modes(novel_id)
        return (
            self.db.query(Module)
            .filter(Module.novel_id == novel_id)
            .order_by(Module.order.asc())
            .all()
        )

    def list_chapters(self, module_id: str) -> list[Chapter]:
        return (
            self.db.query(Chapter)
            .filter(Chapter.module_id == module_id)
            .order_by(Chapter.order.asc())
            .all()
        )

    def paid_chapter_total(self, module_id: str) -> int:
        """Sum of prices of chapters of the module still in paid mode (legacy NULL counts as paid)."""
        total = (
            self.db.query(func.coalesce(func.sum(Chapter.price), 0))
            .filter(
                Chapter.module_id == module_id,
                or_(Chapter.mode == ContentMode.PAID.value, Chapter.mode.is_(None)),
            )
            .scalar()
        )
        return int(total or 0)

    # ------------------------------------------------------------------
    # Mode transitions
    # ------------------------------------------------------------------

    def set_module_mode(self, module: Module, mode: ContentMode) -> Module:
        mode = ContentMode(mode)
        if mode not in MODULE_MODES:
            raise ValueError(f"invalid module mode: {mode}")
        require_transaction(self.db)
        module.mode = mode.value
        self.db.add(module)
        self.db.flush()
        return module

    def set_chapter_mode(self, chapter: Chapter, mode: ContentMode) -> Chapter:
        mode = ContentMode(mode)
        if mode not in CHAPTER_MODES:
            raise ValueError(f"invalid chapter mode: {mode}")
        require_transaction(self.db)
        chapter.mode = mode.value
        self.db.add(chapter)
        self.db.flush()
        return chapter

    def touch_novel(self, novel: Novel) -> None:
        """Move the novel up in "latest updates"."""
        novel.updated_at = datetime.now(timezone.utc)
        self.db.add(novel)
        self.db.flush()

    # ------------------------------------------------------------------
    # Legacy data migration
    # ------------------------------------------------------------------

    def backfill_missing_modes(self, novel_id: str | None = None) -> int:
        """
        Rows created before modes existed have mode NULL and are paid content.
        Writes "paid" into them so the rest of the code only sees ContentMode values.
        Returns the number of rows fixed.
        """
        module_stmt = update(Module).where(Module.mode.is_(None))
        chapter_stmt = update(Chapter).where(Chapter.mode.is_(None))
        if novel_id is not None:
            module_stmt = module_stmt.where(Module.novel_id == novel_id)
            chapter_stmt = chapter_stmt.where(Chapter.novel_id == novel_id)
        fixed = self.db.execute(
            module_stmt.values({Module.mode: ContentMode.PAID.value}),
            execution_options={"synchronize_session": "fetch"},
        ).rowcount
        fixed += self.db.execute(
            chapter_stmt.values({Chapter.mode: ContentMode.PAID.value}),
            execution_options={"synchronize_session": "fetch"},
        ).rowcount
        if fixed:
            logger.info("content_modes_backfilled", extra={"novel_id": novel_id, "amount": fixed})
        return fixed
