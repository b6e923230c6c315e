"""Tests for UnlockEngine — sequential walk, halting, rent interaction, bookkeeping."""
from datetime import datetime

import pytest
from sqlalchemy import event

from novelhub.core.exceptions import NotFound, TransactionRequired
from novelhub.db.transaction import run_in_transaction
from novelhub.models.chapter import Chapter
from novelhub.models.contribution_history import ContributionHistory
from novelhub.models.module import Module
from novelhub.models.novel import Novel
from novelhub.services.budget.service import BudgetService
from novelhub.services.unlock.engine import UnlockEngine


def _unlock(db, novel_id):
    return run_in_transaction(db, lambda s: UnlockEngine(s).unlock(novel_id))


def _ledger(db, novel_id):
    return (
        db.query(ContributionHistory)
        .filter(ContributionHistory.novel_id == novel_id)
        .order_by(ContributionHistory.budget_after.desc())
        .all()
    )


def _naive(value: datetime) -> datetime:
    return value.replace(tzinfo=None)


class TestExampleWalk:
    def test_module_and_chapter_unlock_then_halt(self, db, build_novel, fetch):
        novel_id, layout = build_novel(
            budget=150,
            modules=[
                {"title": "A", "mode": "paid", "price": 100, "chapters": [("paid", 30)]},
                {"title": "B", "mode": "paid", "price": 200},
            ],
        )
        (a_id, [a1_id]), (b_id, _) = layout

        result = _unlock(db, novel_id)

        assert [item.id for item in result.unlocked_content] == [a_id, a1_id]
        assert [item.kind for item in result.unlocked_content] == ["module", "chapter"]
        assert [item.budget_after for item in result.unlocked_content] == [50, 20]
        assert result.final_budget == 20
        assert result.halted_on.id == b_id
        assert result.halted_on.remaining_budget == 20

        assert fetch(Novel, novel_id).budget == 20
        assert fetch(Module, a_id).mode == "published"
        assert fetch(Chapter, a1_id).mode == "published"
        assert fetch(Module, b_id).mode == "paid"

        entries = _ledger(db, novel_id)
        assert [(e.amount, e.budget_after, e.kind, e.user_id) for e in entries] == [
            (-100, 50, "system", None),
            (-30, 20, "system", None),
        ]
        assert entries[0].note == "Auto unlock: A"


class TestHalting:
    def test_unaffordable_module_blocks_cheaper_later_modules(self, db, build_novel, fetch):
        novel_id, layout = build_novel(
            budget=100,
            modules=[
                {"mode": "paid", "price": 150},
                {"mode": "paid", "price": 10},
            ],
        )
        result = _unlock(db, novel_id)

        assert result.unlocked_content == []
        assert result.final_budget == 100
        assert result.halted_on.kind == "module"
        assert result.halted_on.id == layout[0][0]
        assert fetch(Module, layout[1][0]).mode == "paid"
        assert fetch(Novel, novel_id).budget == 100

    def test_unaffordable_chapter_halts_the_whole_walk(self, db, build_novel, fetch):
        novel_id, layout = build_novel(
            budget=100,
            modules=[
                {"mode": "published", "chapters": [("paid", 50), ("paid", 80)]},
                {"mode": "published", "chapters": [("paid", 10)]},
            ],
        )
        (_, [a1, a2]), (_, [b1]) = layout

        result = _unlock(db, novel_id)

        assert [item.id for item in result.unlocked_content] == [a1]
        assert result.final_budget == 50
        assert result.halted_on.kind == "chapter"
        assert result.halted_on.id == a2
        assert fetch(Chapter, a2).mode == "paid"
        assert fetch(Chapter, b1).mode == "paid"

    def test_published_module_without_paid_chapters_is_passed_through(self, db, build_novel):
        novel_id, layout = build_novel(
            budget=40,
            modules=[
                {"mode": "published", "chapters": [("published", 0), ("published", 0)]},
                {"mode": "paid", "price": 40},
            ],
        )
        result = _unlock(db, novel_id)
        assert [item.id for item in result.unlocked_content] == [layout[1][0]]
        assert result.final_budget == 0
        assert result.halted_on is None

    def test_draft_modules_and_chapters_are_skipped(self, db, build_novel, fetch):
        novel_id, layout = build_novel(
            budget=100,
            modules=[
                {"mode": "draft", "price": 10, "chapters": [("paid", 10)]},
                {"mode": "published", "chapters": [("draft", 5), ("paid", 20)]},
            ],
        )
        (draft_id, [draft_chapter]), (_, [draft_ch, paid_ch]) = layout

        result = _unlock(db, novel_id)

        assert [item.id for item in result.unlocked_content] == [paid_ch]
        assert result.final_budget == 80
        assert fetch(Module, draft_id).mode == "draft"
        assert fetch(Chapter, draft_chapter).mode == "paid"
        assert fetch(Chapter, draft_ch).mode == "draft"


class TestEdgeCases:
    def test_zero_price_unlocks_without_ledger_entries(self, db, build_novel, fetch):
        novel_id, layout = build_novel(
            budget=10,
            modules=[{"mode": "paid", "price": 0, "chapters": [("paid", 0)]}],
        )
        (module_id, [chapter_id]) = layout[0]

        result = _unlock(db, novel_id)

        assert len(result.unlocked_content) == 2
        assert result.final_budget == 10
        assert fetch(Module, module_id).mode == "published"
        assert fetch(Chapter, chapter_id).mode == "published"
        assert _ledger(db, novel_id) == []

    def test_zero_budget_is_a_noop_without_writes(self, db, engine, build_novel, fetch):
        novel_id, _ = build_novel(budget=0, modules=[{"mode": "paid", "price": 0}])
        statements = []

        def capture(conn, cursor, statement, parameters, context, executemany):
            statements.append(statement.strip().split()[0].upper())

        event.listen(engine, "before_cursor_execute", capture)
        try:
            result = _unlock(db, novel_id)
        finally:
            event.remove(engine, "before_cursor_execute", capture)

        assert result.unlocked_content == []
        assert result.switched_modules == []
        assert result.final_budget == 0
        assert not {"INSERT", "UPDATE", "DELETE"} & set(statements)
        assert _naive(fetch(Novel, novel_id).updated_at) == datetime(2024, 1, 1)

    def test_legacy_modes_are_treated_as_paid(self, db, build_novel, fetch):
        novel_id, layout = build_novel(
            budget=50,
            modules=[{"mode": None, "price": 20, "chapters": [(None, 10)]}],
        )
        (module_id, [chapter_id]) = layout[0]

        result = _unlock(db, novel_id)

        assert [item.kind for item in result.unlocked_content] == ["module", "chapter"]
        assert result.final_budget == 20
        assert fetch(Module, module_id).mode == "published"
        assert fetch(Chapter, chapter_id).mode == "published"

    def test_updated_at_bumped_only_when_something_unlocked(self, db, build_novel, fetch):
        unlocked_id, _ = build_novel(budget=10, modules=[{"mode": "paid", "price": 5}])
        _unlock(db, unlocked_id)
        assert _naive(fetch(Novel, unlocked_id).updated_at) > datetime(2024, 1, 1)

    def test_updated_at_untouched_when_nothing_affordable(self, db, build_novel, fetch):
        novel_id, _ = build_novel(budget=10, modules=[{"mode": "paid", "price": 50}])
        _unlock(db, novel_id)
        assert _naive(fetch(Novel, novel_id).updated_at) == datetime(2024, 1, 1)

    def test_modules_walked_by_order_not_insertion(self, db, build_novel):
        novel_id, layout = build_novel(
            budget=30,
            modules=[
                {"title": "second", "order": 2, "mode": "paid", "price": 20},
                {"title": "first", "order": 1, "mode": "paid", "price": 20},
            ],
        )
        result = _unlock(db, novel_id)
        assert [item.title for item in result.unlocked_content] == ["first"]
        assert result.halted_on.id == layout[0][0]

    def test_unknown_novel(self, db):
        with pytest.raises(NotFound):
            _unlock(db, "missing")

    def test_refuses_to_run_outside_a_transaction(self, session_factory, build_novel):
        novel_id, _ = build_novel(budget=10)
        fresh = session_factory()
        try:
            with pytest.raises(TransactionRequired):
                UnlockEngine(fresh).unlock(novel_id)
        finally:
            fresh.close()


class TestRentModules:
    def test_rent_module_is_never_flipped_by_the_module_step(self, db, build_novel, fetch):
        novel_id, layout = build_novel(
            budget=5,
            modules=[{"mode": "rent", "price": 999, "chapters": [("paid", 10)]}],
        )
        result = _unlock(db, novel_id)
        assert result.unlocked_content == []
        assert result.halted_on.kind == "chapter"
        assert fetch(Module, layout[0][0]).mode == "rent"

    def test_rent_chapters_unlock_then_module_switches(self, db, build_novel, fetch):
        novel_id, layout = build_novel(modules=[{"mode": "rent", "chapters": [("paid", 10)] * 3}])
        module_id, chapter_ids = layout[0]

        def credit_and_unlock(amount):
            def work(s):
                BudgetService(s).credit(novel_id, amount)
                return UnlockEngine(s).unlock(novel_id)

            return run_in_transaction(db, work)

        first = credit_and_unlock(20)
        assert [item.id for item in first.unlocked_content] == chapter_ids[:2]
        assert first.switched_modules == []
        module = fetch(Module, module_id)
        assert module.mode == "rent"
        assert module.rent_remaining_balance == 10
        assert module.rent_balance == 1

        second = credit_and_unlock(10)
        assert [item.id for item in second.unlocked_content] == chapter_ids[2:]
        assert [m.id for m in second.switched_modules] == [module_id]
        assert second.final_budget == 0
        module = fetch(Module, module_id)
        assert module.mode == "published"
        assert module.rent_remaining_balance == 0
        assert module.rent_balance == 0

    def test_rent_price_kept_when_module_opted_out(self, db, build_novel, fetch):
        novel_id, layout = build_novel(
            budget=10,
            modules=[
                {
                    "mode": "rent",
                    "rent_balance": 7,
                    "recalculate_rent_on_unlock": False,
                    "chapters": [("paid", 10), ("paid", 40)],
                }
            ],
        )
        _unlock(db, novel_id)
        module = fetch(Module, layout[0][0])
        assert module.rent_remaining_balance == 40
        assert module.rent_balance == 7

    def test_untouched_rent_module_is_not_recalculated(self, db, build_novel, fetch):
        novel_id, layout = build_novel(
            budget=10,
            modules=[
                {"mode": "paid", "price": 10},
                {"mode": "rent", "rent_balance": 3, "chapters": [("paid", 10)]},
            ],
        )
        result = _unlock(db, novel_id)
        assert result.switched_modules == []
        module = fetch(Module, layout[1][0])
        assert module.rent_remaining_balance == 0
        assert module.rent_balance == 3
