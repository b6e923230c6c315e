import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")

from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine, update
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import novelhub.models  # noqa: F401
from novelhub.db.base import Base
from novelhub.models.chapter import Chapter
from novelhub.models.module import Module
from novelhub.models.novel import Novel
from novelhub.models.user_wallet import UserWallet

OLD_TIMESTAMP = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def build_novel(db):
    """
    build_novel(budget=150, modules=[{"mode": "paid", "price": 100, "chapters": [("paid", 30)]}])
    -> (novel_id, [(module_id, [chapter_id, ...]), ...]); everything committed.
    """

    def build(budget=0, balance=0, modules=()):
        novel = Novel(title="Test novel", budget=budget, balance=balance, updated_at=OLD_TIMESTAMP)
        db.add(novel)
        db.flush()
        layout = []
        legacy_modules, legacy_chapters = [], []
        for i, spec in enumerate(modules, start=1):
            module = Module(
                novel_id=novel.id,
                title=spec.get("title", f"Module {i}"),
                order=spec.get("order", i),
                mode=spec.get("mode", "paid"),
                price=spec.get("price", 0),
                rent_balance=spec.get("rent_balance", 0),
                recalculate_rent_on_unlock=spec.get("recalculate_rent_on_unlock", True),
            )
            db.add(module)
            db.flush()
            chapter_ids = []
            for j, (mode, price) in enumerate(spec.get("chapters", []), start=1):
                chapter = Chapter(
                    novel_id=novel.id,
                    module_id=module.id,
                    title=f"{module.title} / Chapter {j}",
                    order=j,
                    mode=mode,
                    price=price,
                )
                db.add(chapter)
                db.flush()
                chapter_ids.append(chapter.id)
                if mode is None:
                    legacy_chapters.append(chapter.id)
            if "mode" in spec and spec["mode"] is None:
                legacy_modules.append(module.id)
            layout.append((module.id, chapter_ids))
        # None falls back to the column default on insert; legacy rows really hold NULL
        if legacy_modules:
            db.execute(update(Module).where(Module.id.in_(legacy_modules)).values({Module.mode: None}))
        if legacy_chapters:
            db.execute(update(Chapter).where(Chapter.id.in_(legacy_chapters)).values({Chapter.mode: None}))
        novel_id = novel.id
        db.commit()
        return novel_id, layout

    return build


@pytest.fixture
def fetch(session_factory):
    """Read committed state through a separate session."""

    def _fetch(model, obj_id):
        session = session_factory()
        try:
            obj = session.get(model, obj_id)
            if obj is not None:
                session.expunge(obj)
            return obj
        finally:
            session.close()

    return _fetch


@pytest.fixture
def fund_wallet(db):
    """fund_wallet("reader-1", 500): give a reader spendable balance, committed."""

    def fund(user_id, amount):
        wallet = db.get(UserWallet, user_id)
        if wallet is None:
            db.add(UserWallet(user_id=user_id, balance=amount))
        else:
            wallet.balance += amount
        db.commit()

    return fund
