from datetime import datetime, timedelta, timezone

import pytest

from novelhub.core.exceptions import InsufficientBalance, RentalUnavailable
from novelhub.db.transaction import run_in_transaction
from novelhub.models.chapter import Chapter
from novelhub.models.contribution_history import ContributionHistory
from novelhub.models.module import Module
from novelhub.models.module_rental import ModuleRental
from novelhub.models.novel import Novel
from novelhub.models.novel_transaction import NovelTransaction
from novelhub.models.user_wallet import UserWallet
from novelhub.services.rentals.service import RentalService


def _run(db, fn):
    return run_in_transaction(db, lambda s: fn(RentalService(s)))


class TestRentModule:
    def test_rental_pays_into_the_novel_and_unlocks(self, db, build_novel, fetch, fund_wallet):
        fund_wallet("reader-1", 8)
        novel_id, layout = build_novel(
            budget=5,
            modules=[{"title": "Arc 2", "mode": "rent", "rent_balance": 5, "chapters": [("paid", 10)]}],
        )
        module_id, [chapter_id] = layout[0]

        outcome = _run(db, lambda svc: svc.rent_module(module_id, "reader-1"))

        assert outcome.amount_paid == 5
        assert outcome.budget == 0
        assert outcome.balance == 5
        assert outcome.user_balance == 3
        assert fetch(UserWallet, "reader-1").balance == 3
        assert [item.id for item in outcome.unlock.unlocked_content] == [chapter_id]
        assert [m.id for m in outcome.unlock.switched_modules] == [module_id]
        assert fetch(Chapter, chapter_id).mode == "published"
        assert fetch(Module, module_id).mode == "published"
        assert fetch(Novel, novel_id).budget == 0

        rental = fetch(ModuleRental, outcome.rental_id)
        assert rental.is_active
        assert rental.amount_paid == 5
        assert rental.end_time - rental.start_time == timedelta(hours=24)

        user_entry = (
            db.query(ContributionHistory)
            .filter(ContributionHistory.novel_id == novel_id, ContributionHistory.kind == "user")
            .one()
        )
        assert user_entry.note == "Module rental: Arc 2"
        assert rental.contribution_history_id == user_entry.id
        tx = db.query(NovelTransaction).filter(NovelTransaction.novel_id == novel_id).one()
        assert (tx.type, tx.source_model, tx.source_id) == ("rental", "ModuleRental", outcome.rental_id)

    def test_only_rent_modules_can_be_rented(self, db, build_novel):
        _, layout = build_novel(modules=[{"mode": "paid", "price": 10, "rent_balance": 5}])
        with pytest.raises(RentalUnavailable):
            _run(db, lambda svc: svc.rent_module(layout[0][0], "reader-1"))

    def test_free_rent_module_cannot_be_rented(self, db, build_novel):
        _, layout = build_novel(modules=[{"mode": "rent", "rent_balance": 0}])
        with pytest.raises(RentalUnavailable):
            _run(db, lambda svc: svc.rent_module(layout[0][0], "reader-1"))

    def test_second_rental_while_active_is_refused(self, db, build_novel, fetch, fund_wallet):
        fund_wallet("reader-1", 10)
        fund_wallet("reader-2", 10)
        novel_id, layout = build_novel(
            modules=[{"mode": "rent", "rent_balance": 3, "recalculate_rent_on_unlock": False, "chapters": [("paid", 50)]}]
        )
        module_id = layout[0][0]
        _run(db, lambda svc: svc.rent_module(module_id, "reader-1"))

        with pytest.raises(RentalUnavailable):
            _run(db, lambda svc: svc.rent_module(module_id, "reader-1"))
        assert fetch(Novel, novel_id).budget == 3
        assert fetch(UserWallet, "reader-1").balance == 7

        # another reader can still rent it
        _run(db, lambda svc: svc.rent_module(module_id, "reader-2"))
        assert fetch(Novel, novel_id).budget == 6

    def test_rental_beyond_wallet_is_rejected(self, db, build_novel, fetch, fund_wallet):
        novel_id, layout = build_novel(modules=[{"mode": "rent", "rent_balance": 20, "chapters": [("paid", 20)]}])
        module_id, [chapter_id] = layout[0]
        fund_wallet("reader-1", 19)

        with pytest.raises(InsufficientBalance):
            _run(db, lambda svc: svc.rent_module(module_id, "reader-1"))

        assert fetch(UserWallet, "reader-1").balance == 19
        assert fetch(Novel, novel_id).budget == 0
        assert fetch(Chapter, chapter_id).mode == "paid"
        assert db.query(ModuleRental).count() == 0


class TestExpiry:
    def test_expired_rentals_are_deactivated(self, db, build_novel, fetch):
        novel_id, layout = build_novel(modules=[{"mode": "rent", "rent_balance": 3}])
        module_id = layout[0][0]
        now = datetime.now(timezone.utc)
        old = ModuleRental(
            user_id="reader-1",
            module_id=module_id,
            novel_id=novel_id,
            amount_paid=3,
            start_time=now - timedelta(hours=30),
            end_time=now - timedelta(hours=6),
        )
        current = ModuleRental(
            user_id="reader-2",
            module_id=module_id,
            novel_id=novel_id,
            amount_paid=3,
            start_time=now - timedelta(hours=1),
            end_time=now + timedelta(hours=23),
        )
        db.add_all([old, current])
        db.commit()
        old_id, current_id = old.id, current.id

        assert _run(db, lambda svc: svc.expire_rentals()) == 1
        assert fetch(ModuleRental, old_id).is_active is False
        assert fetch(ModuleRental, current_id).is_active is True
        assert RentalService(db).active_rental("reader-2", module_id) is not None
        assert RentalService(db).active_rental("reader-1", module_id) is None

    def test_is_valid(self):
        now = datetime.now(timezone.utc)
        rental = ModuleRental(is_active=True, end_time=now + timedelta(minutes=1))
        assert rental.is_valid(now)
        assert not rental.is_valid(now + timedelta(minutes=2))
        rental.is_active = False
        assert not rental.is_valid(now)
