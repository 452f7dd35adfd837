"""
Durable moderation case storage.

Every moderation action, automatic or manual, is stored as a case with a
sequential per-guild case number. Staff use case numbers to refer back to
entries (``/warnings``, ``/clearwarning``).
"""

from __future__ import annotations

from typing import List

import aiosqlite

from guardbot.database.db_connection import ConnectionManager, db_connection
from guardbot.datatypes.moderation_datatypes import ModerationCase
from guardbot.util.logger import get_logger

logger = get_logger("database_moderation")

_CASE_COLUMNS = (
    "guild_id, case_number, user_id, moderator_id, action, reason, "
    "message_content, duration_seconds, created_at"
)


def _row_to_case(row) -> ModerationCase:
    return ModerationCase(
        guild_id=row[0],
        case_number=row[1],
        user_id=row[2],
        moderator_id=row[3],
        action=row[4],
        reason=row[5],
        message_content=row[6] or "",
        duration_seconds=row[7] or 0,
        created_at=str(row[8] or ""),
    )


class ModerationCaseStore:
    """Case log operations on top of the shared connection manager."""

    def __init__(self, connection: ConnectionManager = db_connection) -> None:
        self._connection = connection

    async def create_case(
        self,
        guild_id: int,
        user_id: int,
        moderator_id: int,
        action: str,
        reason: str,
        *,
        message_content: str = "",
        duration_seconds: int = 0,
    ) -> int:
        """
        Insert a case and return its newly assigned case number.

        The number comes from the guild's row in ``case_counters``, bumped inside
        the write transaction. Deleting cases never rewinds the counter, so a
        number is handed out at most once per guild.
        """
        async with self._connection.transaction() as conn:
            case_number = await self._next_case_number(conn, guild_id)

            await conn.execute(
                """
                INSERT INTO moderation_cases (
                    guild_id, case_number, user_id, moderator_id, action, reason,
                    message_content, duration_seconds
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (guild_id, case_number, user_id, moderator_id, action, reason, message_content, duration_seconds),
            )

        logger.debug("[MODERATION LOG] Case #%d (%s) recorded for user %s in guild %s", case_number, action, user_id, guild_id)
        return case_number

    @staticmethod
    async def _next_case_number(conn: aiosqlite.Connection, guild_id: int) -> int:
        # A guild without a counter row starts after its highest stored case.
        await conn.execute(
            """
            INSERT INTO case_counters (guild_id, last_case)
            VALUES (?, (SELECT COALESCE(MAX(case_number), 0) FROM moderation_cases WHERE guild_id = ?) + 1)
            ON CONFLICT(guild_id) DO UPDATE SET last_case = case_counters.last_case + 1
            """,
            (guild_id, guild_id),
        )
        async with conn.execute("SELECT last_case FROM case_counters WHERE guild_id = ?", (guild_id,)) as cursor:
            row = await cursor.fetchone()
        return int(row[0])

    async def get_user_cases(
        self,
        guild_id: int,
        user_id: int,
        *,
        action: str | None = None,
        limit: int = 25,
    ) -> List[ModerationCase]:
        """Return a user's cases, newest first, optionally restricted to one action."""
        query = f"SELECT {_CASE_COLUMNS} FROM moderation_cases WHERE guild_id = ? AND user_id = ?"
        params: list = [guild_id, user_id]
        if action is not None:
            query += " AND action = ?"
            params.append(action)
        query += " ORDER BY case_number DESC LIMIT ?"
        params.append(limit)

        async with self._connection.read() as conn:
            async with conn.execute(query, params) as cursor:
                rows = await cursor.fetchall()
        return [_row_to_case(row) for row in rows]

    async def get_case(self, guild_id: int, case_number: int) -> ModerationCase | None:
        async with self._connection.read() as conn:
            async with conn.execute(
                f"SELECT {_CASE_COLUMNS} FROM moderation_cases WHERE guild_id = ? AND case_number = ?",
                (guild_id, case_number),
            ) as cursor:
                row = await cursor.fetchone()
        return _row_to_case(row) if row else None

    async def delete_case(self, guild_id: int, case_number: int, *, action: str | None = None) -> bool:
        """Delete one case; when ``action`` is given only a case of that action is removed."""
        query = "DELETE FROM moderation_cases WHERE guild_id = ? AND case_number = ?"
        params: list = [guild_id, case_number]
        if action is not None:
            query += " AND action = ?"
            params.append(action)

        async with self._connection.transaction() as conn:
            cursor = await conn.execute(query, params)
            deleted = cursor.rowcount
        return deleted > 0

    async def clear_user_cases(self, guild_id: int, user_id: int, *, action: str) -> int:
        """Delete all of a user's cases of ``action`` and return how many were removed."""
        async with self._connection.transaction() as conn:
            cursor = await conn.execute(
                "DELETE FROM moderation_cases WHERE guild_id = ? AND user_id = ? AND action = ?",
                (guild_id, user_id, action),
            )
            deleted = cursor.rowcount
        logger.debug("[MODERATION LOG] Cleared %d %s case(s) for user %s in guild %s", deleted, action, user_id, guild_id)
        return deleted


moderation_case_store = ModerationCaseStore()
