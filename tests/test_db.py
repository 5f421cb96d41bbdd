from datetime import date
from decimal import Decimal

import pytest

from taxadvisor.db import DEMO_POSITIONS, DEMO_REALIZED_GAINS, Database


@pytest.mark.asyncio
async def test_init_creates_tables(tmp_path):
    db = Database(str(tmp_path / "t.db"))
    await db.init()
    rows = await db.fetchall("SELECT name FROM sqlite_master WHERE type='table'")
    names = {row["name"] for row in rows}
    assert {"portfolio", "realized_gain"}.issubset(names)
    assert await db.find_portfolio("me") == []


@pytest.mark.asyncio
async def test_demo_seed_runs_once(tmp_path):
    db = Database(str(tmp_path / "t.db"))
    await db.init(seed_demo_data=True)
    await db.init(seed_demo_data=True)
    portfolio_count = await db.fetchone("SELECT COUNT(*) AS cnt FROM portfolio")
    gain_count = await db.fetchone("SELECT COUNT(*) AS cnt FROM realized_gain")
    assert portfolio_count["cnt"] == len(DEMO_POSITIONS)
    assert gain_count["cnt"] == len(DEMO_REALIZED_GAINS)


@pytest.mark.asyncio
async def test_seeded_positions_round_trip_as_decimals(seeded_db):
    positions = await seeded_db.find_portfolio("me")
    assert [p.stock_name for p in positions] == ["삼성전자", "Tesla", "카카오", "NVIDIA", "SK하이닉스"]
    tesla = positions[1]
    assert tesla.market == "US"
    assert tesla.average_price == Decimal("350000")
    assert tesla.unrealized_gain == Decimal("-2200000")

    gains = await seeded_db.find_realized_gains("me")
    assert sum(g.gain_amount for g in gains) == Decimal("10000000")
    assert gains[0].realized_date == date(2026, 3, 14)


@pytest.mark.asyncio
async def test_rows_are_scoped_by_user(seeded_db):
    await seeded_db.add_position("guest", "US", "Apple", Decimal("100.5"), Decimal("90.25"), 4)
    await seeded_db.add_realized_gain("guest", "Apple", Decimal("-41"), date(2026, 7, 1))

    guest_positions = await seeded_db.find_portfolio("guest")
    assert len(guest_positions) == 1
    assert guest_positions[0].unrealized_gain == Decimal("-41.00")
    guest_gains = await seeded_db.find_realized_gains("guest")
    assert guest_gains[0].gain_amount == Decimal("-41")
    assert len(await seeded_db.find_portfolio("me")) == len(DEMO_POSITIONS)
    assert await seeded_db.find_portfolio("nobody") == []


@pytest.mark.asyncio
async def test_seed_goes_through_writers_and_skips_populated_table(tmp_path):
    db = Database(str(tmp_path / "t.db"))
    await db.init()
    await db.add_position("guest", "KR", "카카오", Decimal("62000"), Decimal("41000"), 1)
    await db.init(seed_demo_data=True)
    assert await db.find_portfolio("me") == []

    fresh = Database(str(tmp_path / "fresh.db"))
    await fresh.init(seed_demo_data=True)
    row = await fresh.fetchone(
        "SELECT average_price, quantity FROM portfolio WHERE stock_name=?", ("Tesla",)
    )
    assert row["average_price"] == "350000"
    assert row["quantity"] == 20
    gain_row = await fresh.fetchone("SELECT realized_date FROM realized_gain WHERE stock_name=?", ("NAVER",))
    assert gain_row["realized_date"] == "2026-05-20"
