"""Racing joins for the last slot of a deal."""

from __future__ import annotations

import threading
from collections.abc import Generator
from pathlib import Path
from typing import Any
from uuid import UUID

import pytest
from sqlalchemy import create_engine, event, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from jam3a.db.base import Base, import_orm_models
from jam3a.db.models.deal import Deal, DealStatus
from jam3a.db.models.deal_participant import DealParticipant
from jam3a.domain.deal_rules import utc_now
from jam3a.domain.errors import DealFullError, DomainError
from jam3a.repositories.deal_repository import DealRepository
from jam3a.repositories.product_repository import ProductRepository
from jam3a.services.deal_join_service import DealJoinService, JoinDealInput

from conftest import Seeder

RACERS = 8


def build_file_engine(path: Path, *, immediate: bool) -> Engine:
    engine = create_engine(
        f"sqlite+pysqlite:///{path}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    if immediate:
        # Writers queue on the database lock instead of failing on upgrade.
        @event.listens_for(engine, "connect")
        def _disable_driver_begin(dbapi_connection: Any, _record: Any) -> None:
            dbapi_connection.isolation_level = None

        @event.listens_for(engine, "begin")
        def _begin_immediate(connection: Any) -> None:
            connection.exec_driver_sql("BEGIN IMMEDIATE")

    Base.metadata.create_all(engine)
    return engine


def make_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(
        bind=engine,
        class_=Session,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )


@pytest.fixture
def file_session_factory(
    tmp_path: Path,
) -> Generator[sessionmaker[Session], None, None]:
    import_orm_models()
    engine = build_file_engine(tmp_path / "jam3a.db", immediate=False)
    try:
        yield make_factory(engine)
    finally:
        engine.dispose()


@pytest.fixture
def locking_session_factory(
    tmp_path: Path,
) -> Generator[sessionmaker[Session], None, None]:
    import_orm_models()
    engine = build_file_engine(tmp_path / "jam3a-locking.db", immediate=True)
    try:
        yield make_factory(engine)
    finally:
        engine.dispose()


def join_in_own_session(
    factory: sessionmaker[Session],
    deal_id: UUID,
    user_id: UUID,
) -> str:
    with factory() as session:
        service = DealJoinService(
            deal_repository=DealRepository(session),
            product_repository=ProductRepository(session),
            session=session,
        )
        try:
            service.join(JoinDealInput(deal_id=deal_id, user_id=user_id))
        except DomainError as exc:
            return exc.code
    return "OK"


def test_only_one_of_many_racers_takes_the_last_slot(
    locking_session_factory: sessionmaker[Session],
) -> None:
    seed = Seeder(locking_session_factory)
    category = seed.category()
    existing = [seed.user().id for _ in range(2)]
    racers = [seed.user().id for _ in range(RACERS)]
    deal = seed.deal(category.id, max_participants=3, participants=existing)

    barrier = threading.Barrier(RACERS)
    outcomes: list[str] = []
    lock = threading.Lock()

    def run(user_id: UUID) -> None:
        barrier.wait()
        outcome = join_in_own_session(locking_session_factory, deal.id, user_id)
        with lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=run, args=(user_id,)) for user_id in racers]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    assert outcomes.count("OK") == 1
    assert outcomes.count(DealFullError().code) == RACERS - 1

    with locking_session_factory() as session:
        stored = session.get(Deal, deal.id)
        assert stored.current_participants == 3
        assert stored.status == DealStatus.COMPLETED
        count = session.scalar(
            select(func.count())
            .select_from(DealParticipant)
            .where(DealParticipant.deal_id == deal.id)
        )
        assert count == 3


def test_interleaved_reads_cannot_both_reserve(
    file_session_factory: sessionmaker[Session],
) -> None:
    seed = Seeder(file_session_factory)
    category = seed.category()
    first, second = seed.user().id, seed.user().id
    deal = seed.deal(category.id, max_participants=1)
    now = utc_now()

    with file_session_factory() as session_a, file_session_factory() as session_b:
        repository_a = DealRepository(session_a)
        repository_b = DealRepository(session_b)
        # Both requests observe a free slot before either writes.
        assert repository_a.get(deal.id).current_participants == 0
        assert repository_b.get(deal.id).current_participants == 0

        assert repository_a.reserve_slot(deal_id=deal.id, user_id=first, now=now)
        repository_a.add_participant(
            deal_id=deal.id, user_id=first, product_id=None, joined_at=now
        )
        session_a.commit()

        assert not repository_b.reserve_slot(deal_id=deal.id, user_id=second, now=now)
        session_b.rollback()

    with file_session_factory() as session:
        stored = session.get(Deal, deal.id)
        assert stored.current_participants == 1
        assert stored.status == DealStatus.COMPLETED
