from __future__ import annotations

from collections.abc import Generator, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import TypeVar
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from jam3a.api.app import create_app
from jam3a.db.base import Base, import_orm_models
from jam3a.db.models.category import Category
from jam3a.db.models.deal import Deal, DealStatus
from jam3a.db.models.deal_participant import DealParticipant
from jam3a.db.models.product import Product
from jam3a.db.models.user import User, UserRole
from jam3a.db.session import get_db_session
from jam3a.domain.deal_rules import utc_now
from jam3a.domain.money import discount_percentage

T = TypeVar("T")


@pytest.fixture
def sqlite_session_factory() -> Generator[sessionmaker[Session], None, None]:
    import_orm_models()
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(
        bind=engine,
        class_=Session,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    try:
        yield factory
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@dataclass
class Seeder:
    """Writes fixture rows through short-lived sessions."""

    session_factory: sessionmaker[Session]

    def user(
        self,
        role: UserRole = UserRole.CUSTOMER,
        *,
        name: str = "Test User",
        is_active: bool = True,
    ) -> User:
        user = User(
            email=f"{uuid4().hex[:12]}@example.test",
            name=name,
            role=role,
            is_active=is_active,
        )
        return self._persist(user)

    def category(self, name: str | None = None, *, is_active: bool = True) -> Category:
        category = Category(
            name=name or f"Category {uuid4().hex[:8]}",
            name_ar="فئة",
            is_active=is_active,
        )
        return self._persist(category)

    def product(
        self,
        category_id: UUID,
        *,
        stock: int = 10,
        price: str = "900.00",
        is_active: bool = True,
        sku: str | None = None,
        featured: bool = False,
        created_by_id: UUID | None = None,
    ) -> Product:
        product = Product(
            name="Galaxy Z Flip 6",
            description="Compact foldable smartphone.",
            category_id=category_id,
            price=Decimal(price),
            stock=stock,
            sku=sku,
            featured=featured,
            is_active=is_active,
            created_by_id=created_by_id,
        )
        return self._persist(product)

    def deal(
        self,
        category_id: UUID,
        *,
        created_by_id: UUID | None = None,
        max_participants: int = 5,
        min_participants: int = 2,
        participants: Sequence[UUID] = (),
        current_participants: int | None = None,
        status: DealStatus = DealStatus.ACTIVE,
        expiry_date: datetime | None = None,
        featured: bool = False,
        regular_price: str = "1000.00",
        jam3a_price: str = "800.00",
        title: str = "Galaxy group deal",
    ) -> Deal:
        now = utc_now()
        regular = Decimal(regular_price)
        jam3a = Decimal(jam3a_price)
        deal = Deal(
            code=f"JAM-{uuid4().hex[:6].upper()}",
            title=title,
            description="Join with friends and unlock the group price.",
            category_id=category_id,
            regular_price=regular,
            jam3a_price=jam3a,
            discount_percentage=discount_percentage(regular, jam3a),
            min_participants=min_participants,
            max_participants=max_participants,
            current_participants=(
                len(participants)
                if current_participants is None
                else current_participants
            ),
            expiry_date=expiry_date or now + timedelta(days=7),
            status=status,
            featured=featured,
            created_by_id=created_by_id,
        )
        with self.session_factory() as session:
            session.add(deal)
            session.flush()
            for user_id in participants:
                session.add(
                    DealParticipant(
                        deal_id=deal.id,
                        user_id=user_id,
                        joined_at=now - timedelta(hours=1),
                    )
                )
            session.commit()
            session.refresh(deal)
            session.expunge(deal)
        return deal

    def _persist(self, instance: T) -> T:
        with self.session_factory() as session:
            session.add(instance)
            session.commit()
            session.refresh(instance)
            session.expunge(instance)
        return instance


@pytest.fixture
def seed(sqlite_session_factory: sessionmaker[Session]) -> Seeder:
    return Seeder(sqlite_session_factory)


@pytest.fixture
def client(
    sqlite_session_factory: sessionmaker[Session],
) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_get_db_session() -> Generator[Session, None, None]:
        with sqlite_session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db_session
    with TestClient(app) as test_client:
        yield test_client
