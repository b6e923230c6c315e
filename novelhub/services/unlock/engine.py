"""
Sequential auto-unlock of paid content.

The novel budget pays for paid modules and chapters strictly in reading order:
module 1, its chapters, module 2, its chapters, ... The walk stops at the first
module or chapter the remaining budget cannot pay for; nothing after that point
is unlocked in the same pass, even if it would be cheaper.

Everything here runs on the caller's transaction; the engine never commits and
never talks to Redis/SSE. Callers publish events from the returned UnlockResult.
"""
from __future__ import annotations

import logging
import time
from enum import Enum

from sqlalchemy.orm import Session

from novelhub.db.transaction import require_transaction
from novelhub.models.chapter import Chapter
from novelhub.models.content_mode import ContentMode
from novelhub.models.contribution_history import LedgerKind
from novelhub.models.module import Module
from novelhub.services.budget.service import BudgetService
from novelhub.services.catalog.service import CatalogService
from novelhub.services.ledger.service import LedgerService
from novelhub.services.rent.service import RentBalanceService
from novelhub.services.unlock.models import HaltPoint, SwitchedModule, UnlockedItem, UnlockResult
from novelhub.utils.metrics import (
    content_unlocked_total,
    rent_modules_switched_total,
    unlock_pass_duration_seconds,
    unlock_passes_total,
)

logger = logging.getLogger(__name__)

AUTO_UNLOCK_NOTE = "Auto unlock: {title}"


class WalkState(str, Enum):
    SCANNING_MODULES = "scanning_modules"
    SCANNING_CHAPTERS = "scanning_chapters"
    HALTED = "halted"
    DONE = "done"


class SequentialWalk:
    """
    Two-level state machine over the module/chapter forest of one novel.

        SCANNING_MODULES --(published/rent module)--> SCANNING_CHAPTERS(module)
        SCANNING_CHAPTERS --(chapters exhausted)--> SCANNING_MODULES
        any --(cannot afford module or chapter)--> HALTED
        SCANNING_MODULES --(modules exhausted)--> DONE

    Each step() handles exactly one module or chapter.
    """

    def __init__(
        self,
        novel_id: str,
        modules: list[Module],
        budget: int,
        catalog: CatalogService,
        ledger: LedgerService,
    ):
        self.novel_id = novel_id
        self.modules = modules
        self.remaining = budget
        self.catalog = catalog
        self.ledger = ledger

        self.state = WalkState.SCANNING_MODULES if modules else WalkState.DONE
        self.current_module: Module | None = None
        self.unlocked: list[UnlockedItem] = []
        self.touched_rent_modules: list[Module] = []
        self.halted_on: HaltPoint | None = None

        self._module_index = 0
        self._chapters: list[Chapter] = []
        self._chapter_index = 0

    @property
    def finished(self) -> bool:
        return self.state in (WalkState.HALTED, WalkState.DONE)

    def run(self) -> "SequentialWalk":
        while not self.finished:
            self.step()
        return self

    def step(self) -> WalkState:
        if self.state is WalkState.SCANNING_MODULES:
            self._scan_next_module()
        elif self.state is WalkState.SCANNING_CHAPTERS:
            self._scan_next_chapter()
        return self.state

    # ------------------------------------------------------------------
    # Module level
    # ------------------------------------------------------------------

    def _scan_next_module(self) -> None:
        if self._module_index >= len(self.modules):
            self.state = WalkState.DONE
            return
        module = self.modules[self._module_index]
        self._module_index += 1
        self.current_module = module

        if module.content_mode is ContentMode.PAID:
            price = module.price or 0
            if self.remaining < price:
                self._halt("module", module.id, module.id, price)
                return
            self._unlock_module(module, price)

        if module.content_mode in (ContentMode.PUBLISHED, ContentMode.RENT):
            self._chapters = self.catalog.list_chapters(module.id)
            self._chapter_index = 0
            self.state = WalkState.SCANNING_CHAPTERS
        # draft modules are invisible to readers and are skipped

    def _unlock_module(self, module: Module, price: int) -> None:
        self.catalog.set_module_mode(module, ContentMode.PUBLISHED)
        self.remaining -= price
        self._record("module", module.id, module.id, module.title, module.order, price)

    # ------------------------------------------------------------------
    # Chapter level
    # ------------------------------------------------------------------

    def _scan_next_chapter(self) -> None:
        if self._chapter_index >= len(self._chapters):
            self.state = WalkState.SCANNING_MODULES
            return
        chapter = self._chapters[self._chapter_index]
        self._chapter_index += 1

        if chapter.content_mode is not ContentMode.PAID:
            return

        price = chapter.price or 0
        if self.remaining < price:
            # a chapter we cannot pay for halts the whole walk, not just this module
            self._halt("chapter", chapter.id, chapter.module_id, price)
            return

        self.catalog.set_chapter_mode(chapter, ContentMode.PUBLISHED)
        self.remaining -= price
        self._record("chapter", chapter.id, chapter.module_id, chapter.title, chapter.order, price)

        module = self.current_module
        if module.content_mode is ContentMode.RENT and module not in self.touched_rent_modules:
            self.touched_rent_modules.append(module)

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _record(self, kind: str, item_id: str, module_id: str, title: str, order: int, price: int) -> None:
        # free unlocks flip the mode silently
        if price > 0:
            self.ledger.append(
                novel_id=self.novel_id,
                user_id=None,
                amount=-price,
                note=AUTO_UNLOCK_NOTE.format(title=title),
                budget_after=self.remaining,
                kind=LedgerKind.SYSTEM,
            )
        self.unlocked.append(
            UnlockedItem(
                kind=kind,
                id=item_id,
                novel_id=self.novel_id,
                module_id=module_id,
                title=title,
                order=order,
                price=price,
                budget_after=self.remaining,
            )
        )
        content_unlocked_total.labels(kind=kind).inc()
        logger.info(
            f"{kind}_unlocked",
            extra={
                "novel_id": self.novel_id,
                "module_id": module_id,
                "chapter_id": item_id if kind == "chapter" else None,
                "price": price,
                "budget": self.remaining,
            },
        )

    def _halt(self, kind: str, item_id: str, module_id: str, price: int) -> None:
        self.halted_on = HaltPoint(
            kind=kind,
            id=item_id,
            module_id=module_id,
            price=price,
            remaining_budget=self.remaining,
        )
        self.state = WalkState.HALTED


class UnlockEngine:
    def __init__(self, db: Session):
        self.db = db
        self.catalog = CatalogService(db)
        self.ledger = LedgerService(db)
        self.budget = BudgetService(db)
        self.rent = RentBalanceService(db)

    def unlock(self, novel_id: str) -> UnlockResult:
        """
        Spend the novel budget on paid content in reading order.
        Must run inside run_in_transaction(); raises NotFound for unknown novels.
        A zero budget is a no-op without any write.
        """
        require_transaction(self.db)
        started = time.monotonic()

        novel = self.catalog.get_novel(novel_id, lock=True)
        initial_budget = novel.budget or 0
        if initial_budget <= 0:
            unlock_passes_total.labels(outcome="skipped").inc()
            return UnlockResult(novel_id=novel_id, initial_budget=initial_budget, final_budget=initial_budget)

        walk = SequentialWalk(
            novel_id=novel_id,
            modules=self.catalog.list_modules(novel_id),
            budget=initial_budget,
            catalog=self.catalog,
            ledger=self.ledger,
        ).run()

        switched = self._settle_rent_modules(walk.touched_rent_modules)

        self.budget.set_budget(novel_id, walk.remaining)
        if walk.unlocked:
            self.catalog.touch_novel(novel)

        result = UnlockResult(
            novel_id=novel_id,
            initial_budget=initial_budget,
            final_budget=walk.remaining,
            unlocked_content=walk.unlocked,
            switched_modules=switched,
            halted_on=walk.halted_on,
        )
        unlock_passes_total.labels(outcome="unlocked" if walk.unlocked else "noop").inc()
        unlock_pass_duration_seconds.observe(time.monotonic() - started)
        logger.info(
            "content_unlock_pass_done",
            extra={
                "novel_id": novel_id,
                "unlocked": len(result.unlocked_content),
                "switched": len(switched),
                "budget": result.final_budget,
                "delta": result.final_budget - initial_budget,
            },
        )
        return result

    def _settle_rent_modules(self, modules: list[Module]) -> list[SwitchedModule]:
        switched: list[SwitchedModule] = []
        for module in modules:
            check = self.rent.check_auto_switch(module.id)
            if check.switched:
                rent_modules_switched_total.inc()
                switched.append(SwitchedModule(id=module.id, novel_id=module.novel_id, title=module.title))
            self.rent.conditionally_recalculate(module.id)
        return switched
