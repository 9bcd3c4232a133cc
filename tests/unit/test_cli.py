from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker
from typer.testing import CliRunner

from jam3a import cli
from jam3a.db.models.category import Category
from jam3a.db.models.deal import Deal, DealStatus
from jam3a.db.models.product import Product
from jam3a.domain.deal_rules import utc_now

if TYPE_CHECKING:
    from conftest import Seeder

runner = CliRunner()


@pytest.fixture
def cli_sessions(
    sqlite_session_factory: sessionmaker[Session],
    monkeypatch: pytest.MonkeyPatch,
) -> sessionmaker[Session]:
    monkeypatch.setattr(cli, "SessionFactory", sqlite_session_factory)
    return sqlite_session_factory


def test_healthcheck_pings_database(cli_sessions: sessionmaker[Session]) -> None:
    result = runner.invoke(cli.app, ["healthcheck"])

    assert result.exit_code == 0
    assert "jam3a is ready" in result.output


def test_seed_catalog_is_idempotent(cli_sessions: sessionmaker[Session]) -> None:
    first = runner.invoke(cli.app, ["seed-catalog"])
    second = runner.invoke(cli.app, ["seed-catalog"])

    assert first.exit_code == 0
    assert "Categories created: 5 | Products created: 4" in first.output
    assert "Categories created: 0 | Products created: 0" in second.output
    with cli_sessions() as session:
        assert session.scalar(select(func.count()).select_from(Category)) == 5
        assert session.scalar(select(func.count()).select_from(Product)) == 4
        audio = session.scalar(select(Category).where(Category.name == "Audio"))
        assert audio is not None
        assert audio.name_ar == "الصوتيات"


def test_expire_deals_moves_overdue_active_deals(
    cli_sessions: sessionmaker[Session],
    seed: Seeder,
) -> None:
    category = seed.category()
    overdue = seed.deal(category.id, expiry_date=utc_now() - timedelta(hours=1))
    pending_overdue = seed.deal(
        category.id,
        status=DealStatus.PENDING,
        expiry_date=utc_now() - timedelta(hours=1),
    )
    running = seed.deal(category.id)

    result = runner.invoke(cli.app, ["expire-deals"])

    assert result.exit_code == 0
    assert "Expired deals: 1" in result.output
    with cli_sessions() as session:
        assert session.get(Deal, overdue.id).status == DealStatus.EXPIRED
        assert session.get(Deal, pending_overdue.id).status == DealStatus.PENDING
        assert session.get(Deal, running.id).status == DealStatus.ACTIVE
