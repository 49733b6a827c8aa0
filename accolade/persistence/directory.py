"""Host-side user directory and period store.

These tables stand in for the hosting HR application: they supply the
user list with roles, display profiles, and the quarterly periods. They
implement the RoleSource, ProfileSource, and PeriodSource contracts.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date

import aiosqlite

from accolade.errors import RoleSourceUnavailable
from accolade.periods import pick_active
from accolade.persistence.database import read_lock, write_transaction
from accolade.schemas.eligibility import Profile, Role
from accolade.schemas.period import Period

logger = logging.getLogger(__name__)


class UserDirectory:
    """Users with their role and display profile."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def add_user(self, profile: Profile, role: Role = Role.REGULAR) -> None:
        """Insert or update a user. Join order is kept on update."""
        async with write_transaction(self._db) as db:
            await db.execute(
                """
                INSERT INTO users
                    (user_id, role, full_name, department, position, avatar_url)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT (user_id) DO UPDATE SET
                    role = excluded.role,
                    full_name = excluded.full_name,
                    department = excluded.department,
                    position = excluded.position,
                    avatar_url = excluded.avatar_url
                """,
                (
                    profile.user_id,
                    role.value,
                    profile.full_name,
                    profile.department,
                    profile.position,
                    profile.avatar_url,
                ),
            )
        logger.info("Saved user %s (%s)", profile.user_id, role.value)

    async def set_role(self, user_id: str, role: Role) -> bool:
        async with write_transaction(self._db) as db:
            cursor = await db.execute(
                "UPDATE users SET role = ? WHERE user_id = ?", (role.value, user_id),
            )
        return cursor.rowcount > 0

    async def list_users(self) -> list[str]:
        try:
            async with read_lock(self._db) as db, db.execute(
                "SELECT user_id FROM users ORDER BY rowid"
            ) as cursor:
                return [row["user_id"] for row in await cursor.fetchall()]
        except aiosqlite.Error as e:
            raise RoleSourceUnavailable(str(e)) from e

    async def classify(self, user_id: str) -> Role:
        try:
            async with read_lock(self._db) as db, db.execute(
                "SELECT role FROM users WHERE user_id = ?", (user_id,),
            ) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise RoleSourceUnavailable(str(e)) from e
        return Role(row["role"]) if row else Role.REGULAR

    async def get_profiles(self, user_ids: Iterable[str]) -> dict[str, Profile]:
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return {}
        placeholders = ", ".join("?" for _ in ids)
        profiles: dict[str, Profile] = {}
        async with read_lock(self._db) as db, db.execute(
            f"SELECT * FROM users WHERE user_id IN ({placeholders})",  # noqa: S608
            ids,
        ) as cursor:
            async for row in cursor:
                profiles[row["user_id"]] = Profile(
                    user_id=row["user_id"],
                    full_name=row["full_name"],
                    department=row["department"],
                    position=row["position"],
                    avatar_url=row["avatar_url"],
                )
        return profiles

    async def list_users_with_roles(self) -> list[tuple[Profile, Role]]:
        result: list[tuple[Profile, Role]] = []
        async with read_lock(self._db) as db, db.execute(
            "SELECT * FROM users ORDER BY rowid"
        ) as cursor:
            async for row in cursor:
                result.append((
                    Profile(
                        user_id=row["user_id"],
                        full_name=row["full_name"],
                        department=row["department"],
                        position=row["position"],
                        avatar_url=row["avatar_url"],
                    ),
                    Role(row["role"]),
                ))
        return result


class PeriodStore:
    """Quarterly periods, as created by the host's scheduler."""

    def __init__(self, db: aiosqlite.Connection, today: date | None = None) -> None:
        self._db = db
        self._today = today

    async def save_period(self, period: Period) -> None:
        async with write_transaction(self._db) as db:
            await db.execute(
                """
                INSERT OR REPLACE INTO periods
                    (period_id, year, quarter, start_date, end_date,
                     is_active, is_completed)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    period.id,
                    period.year,
                    period.quarter,
                    period.start_date.isoformat(),
                    period.end_date.isoformat(),
                    int(period.is_active),
                    int(period.is_completed),
                ),
            )
        logger.info("Saved period %s", period.id)

    async def activate(self, period_id: str) -> bool:
        """Flag one period active and clear the flag everywhere else."""
        async with write_transaction(self._db) as db:
            cursor = await db.execute(
                "UPDATE periods SET is_active = 1 WHERE period_id = ?", (period_id,),
            )
            if cursor.rowcount == 0:
                return False
            await db.execute(
                "UPDATE periods SET is_active = 0 WHERE period_id != ?", (period_id,),
            )
        logger.info("Activated period %s", period_id)
        return True

    async def complete(self, period_id: str) -> bool:
        """Close a period. It stays readable but rejects further writes."""
        async with write_transaction(self._db) as db:
            cursor = await db.execute(
                "UPDATE periods SET is_completed = 1 WHERE period_id = ?",
                (period_id,),
            )
        if cursor.rowcount > 0:
            logger.info("Completed period %s", period_id)
        return cursor.rowcount > 0

    async def get_period(self, period_id: str) -> Period | None:
        async with read_lock(self._db) as db, db.execute(
            "SELECT * FROM periods WHERE period_id = ?", (period_id,),
        ) as cursor:
            row = await cursor.fetchone()
        return _row_to_period(row) if row else None

    async def list_periods(self) -> list[Period]:
        async with read_lock(self._db) as db, db.execute(
            "SELECT * FROM periods ORDER BY year DESC, quarter DESC"
        ) as cursor:
            return [_row_to_period(row) for row in await cursor.fetchall()]

    async def get_active_period(self) -> Period | None:
        return pick_active(await self.list_periods(), self._today)


def _row_to_period(row: aiosqlite.Row) -> Period:
    return Period(
        id=row["period_id"],
        year=row["year"],
        quarter=row["quarter"],
        start_date=date.fromisoformat(row["start_date"]),
        end_date=date.fromisoformat(row["end_date"]),
        is_active=bool(row["is_active"]),
        is_completed=bool(row["is_completed"]),
    )
