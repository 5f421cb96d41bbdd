from datetime import date
from decimal import Decimal
from typing import Any, List, Optional, Tuple

import aiosqlite

from .schemas import Position, RealizedGain


DEMO_USER_ID = "me"

# (market, stock_name, average_price, current_price, quantity)
DEMO_POSITIONS: List[Tuple[str, str, str, str, int]] = [
    ("KR", "삼성전자", "78000", "71000", 100),
    ("US", "Tesla", "350000", "240000", 20),
    ("KR", "카카오", "62000", "41000", 150),
    ("US", "NVIDIA", "150000", "190000", 40),
    ("KR", "SK하이닉스", "120000", "185000", 30),
]

# (stock_name, gain_amount, realized_date)
DEMO_REALIZED_GAINS: List[Tuple[str, str, str]] = [
    ("Apple", "6500000", "2026-03-14"),
    ("NAVER", "-1300000", "2026-05-20"),
    ("Microsoft", "4800000", "2026-06-02"),
]


class Database:
    def __init__(self, path: str):
        self.path = path

    async def init(self, seed_demo_data: bool = False) -> None:
        async with aiosqlite.connect(self.path) as db:
            await db.executescript(
                """
                PRAGMA journal_mode=WAL;
                CREATE TABLE IF NOT EXISTS portfolio(
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    market TEXT NOT NULL CHECK (market IN ('KR', 'US')),
                    stock_name TEXT NOT NULL,
                    average_price TEXT NOT NULL,
                    current_price TEXT NOT NULL,
                    quantity INTEGER NOT NULL
                );
                CREATE TABLE IF NOT EXISTS realized_gain(
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    stock_name TEXT NOT NULL,
                    gain_amount TEXT NOT NULL,
                    realized_date TEXT NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_portfolio_user ON portfolio(user_id);
                CREATE INDEX IF NOT EXISTS idx_realized_gain_user ON realized_gain(user_id);
                """
            )
            await db.commit()
        if seed_demo_data:
            await self._seed_demo_data()

    async def _seed_demo_data(self) -> None:
        if await self.fetchone("SELECT id FROM portfolio LIMIT 1") is not None:
            return
        for market, stock_name, average_price, current_price, quantity in DEMO_POSITIONS:
            await self.add_position(
                DEMO_USER_ID, market, stock_name, Decimal(average_price), Decimal(current_price), quantity
            )
        for stock_name, gain_amount, realized_date in DEMO_REALIZED_GAINS:
            await self.add_realized_gain(
                DEMO_USER_ID, stock_name, Decimal(gain_amount), date.fromisoformat(realized_date)
            )

    async def execute(self, query: str, params: Tuple[Any, ...] = ()) -> None:
        async with aiosqlite.connect(self.path) as db:
            await db.execute(query, params)
            await db.commit()

    async def fetchall(self, query: str, params: Tuple[Any, ...] = ()) -> List[aiosqlite.Row]:
        async with aiosqlite.connect(self.path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(query, params)
            rows = await cursor.fetchall()
            await cursor.close()
            return rows

    async def fetchone(self, query: str, params: Tuple[Any, ...] = ()) -> Optional[aiosqlite.Row]:
        rows = await self.fetchall(query, params)
        return rows[0] if rows else None

    async def add_position(
        self,
        user_id: str,
        market: str,
        stock_name: str,
        average_price: Decimal,
        current_price: Decimal,
        quantity: int,
    ) -> None:
        await self.execute(
            "INSERT INTO portfolio(user_id, market, stock_name, average_price, current_price, quantity) "
            "VALUES (?,?,?,?,?,?)",
            (user_id, market, stock_name, str(average_price), str(current_price), int(quantity)),
        )

    async def add_realized_gain(
        self,
        user_id: str,
        stock_name: str,
        gain_amount: Decimal,
        realized_date: date,
    ) -> None:
        await self.execute(
            "INSERT INTO realized_gain(user_id, stock_name, gain_amount, realized_date) VALUES (?,?,?,?)",
            (user_id, stock_name, str(gain_amount), realized_date.isoformat()),
        )

    async def find_portfolio(self, user_id: str) -> List[Position]:
        rows = await self.fetchall(
            "SELECT user_id, market, stock_name, average_price, current_price, quantity "
            "FROM portfolio WHERE user_id=? ORDER BY id ASC",
            (user_id,),
        )
        return [Position(**dict(row)) for row in rows]

    async def find_realized_gains(self, user_id: str) -> List[RealizedGain]:
        rows = await self.fetchall(
            "SELECT user_id, stock_name, gain_amount, realized_date "
            "FROM realized_gain WHERE user_id=? ORDER BY id ASC",
            (user_id,),
        )
        return [RealizedGain(**dict(row)) for row in rows]
