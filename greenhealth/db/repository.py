"""Database repository - all SQL queries."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, List
from zoneinfo import ZoneInfo

import aiosqlite

from greenhealth.db.models import Owner, Plant, Reminder
from greenhealth.errors import StoreUnavailable

logger = logging.getLogger(__name__)

# Columns a caller may change through update_reminder_fields()
UPDATABLE_REMINDER_FIELDS = {
    "title",
    "description",
    "due_at",
    "recurrence",
    "category",
    "plant_id",
    "plant_name",
    "completed",
    "notification_sent",
}


def _to_iso(dt: datetime) -> str:
    """Stored timestamps are UTC ISO-8601 strings, so they sort as text."""
    return dt.astimezone(ZoneInfo("UTC")).isoformat()


class Repository:
    """Database access layer.

    Every driver error is re-raised as StoreUnavailable so callers only deal
    with the application's error taxonomy.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._db: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Open database connection."""
        try:
            self._db = await aiosqlite.connect(self.db_path)
            self._db.row_factory = aiosqlite.Row
            await self._db.execute("PRAGMA foreign_keys = ON")
        except aiosqlite.Error as e:
            raise StoreUnavailable(f"Could not open database at {self.db_path}: {e}") from e
        logger.info(f"Connected to database at {self.db_path}")

    async def close(self) -> None:
        """Close database connection."""
        if self._db:
            await self._db.close()
            self._db = None
            logger.info("Database connection closed")

    @property
    def db(self) -> aiosqlite.Connection:
        """Get the database connection."""
        if self._db is None:
            raise StoreUnavailable("Database not connected")
        return self._db

    # Low-level helpers

    async def _fetchone(self, query: str, params: Iterable[Any] = ()) -> aiosqlite.Row | None:
        try:
            async with self.db.execute(query, tuple(params)) as cursor:
                return await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StoreUnavailable(str(e)) from e

    async def _fetchall(self, query: str, params: Iterable[Any] = ()) -> List[aiosqlite.Row]:
        try:
            async with self.db.execute(query, tuple(params)) as cursor:
                return list(await cursor.fetchall())
        except aiosqlite.Error as e:
            raise StoreUnavailable(str(e)) from e

    async def _write(self, query: str, params: Iterable[Any] = ()) -> int:
        """Run a write statement, commit, and return the affected row count."""
        try:
            cursor = await self.db.execute(query, tuple(params))
            await self.db.commit()
            return cursor.rowcount
        except aiosqlite.Error as e:
            raise StoreUnavailable(str(e)) from e

    async def _write_returning(self, query: str, params: Iterable[Any] = ()) -> aiosqlite.Row:
        try:
            async with self.db.execute(query, tuple(params)) as cursor:
                row = await cursor.fetchone()
            await self.db.commit()
        except aiosqlite.Error as e:
            raise StoreUnavailable(str(e)) from e
        if row is None:
            raise StoreUnavailable("Insert returned no row")
        return row

    # Owner operations

    async def get_owner(self, telegram_id: int) -> Owner | None:
        """Get owner by Telegram ID."""
        row = await self._fetchone(
            "SELECT * FROM owners WHERE telegram_id = ?", (telegram_id,)
        )
        return self._row_to_owner(row) if row else None

    async def create_owner(self, telegram_id: int, timezone: str = "UTC") -> Owner:
        """Create a new owner with default settings."""
        row = await self._write_returning(
            "INSERT INTO owners (telegram_id, timezone) VALUES (?, ?) RETURNING *",
            (telegram_id, timezone),
        )
        logger.info(f"Created owner {telegram_id}")
        return self._row_to_owner(row)

    async def get_or_create_owner(self, telegram_id: int, timezone: str = "UTC") -> Owner:
        """Get an owner, creating it on first contact."""
        owner = await self.get_owner(telegram_id)
        if owner is None:
            owner = await self.create_owner(telegram_id, timezone)
        return owner

    async def get_owners(self) -> List[Owner]:
        """Get all owners."""
        rows = await self._fetchall("SELECT * FROM owners ORDER BY telegram_id")
        return [self._row_to_owner(row) for row in rows]

    async def update_owner_settings(
        self, telegram_id: int, timezone: str | None = None
    ) -> None:
        """Update owner settings."""
        if timezone is not None:
            await self._write(
                "UPDATE owners SET timezone = ? WHERE telegram_id = ?",
                (timezone, telegram_id),
            )

    async def set_notification_permission(self, telegram_id: int, permission: str) -> None:
        """Record the owner's notification permission decision."""
        await self._write(
            "UPDATE owners SET notification_permission = ? WHERE telegram_id = ?",
            (permission, telegram_id),
        )
        logger.info(f"Notification permission for {telegram_id} set to {permission}")

    # Plant operations

    async def create_plant(self, plant: Plant) -> Plant:
        """Create a new plant."""
        row = await self._write_returning(
            "INSERT INTO plants (owner_id, name, species) VALUES (?, ?, ?) RETURNING *",
            (plant.owner_id, plant.name, plant.species),
        )
        return self._row_to_plant(row)

    async def get_plant(self, plant_id: str) -> Plant | None:
        """Get a plant by ID."""
        row = await self._fetchone("SELECT * FROM plants WHERE id = ?", (plant_id,))
        return self._row_to_plant(row) if row else None

    async def get_plants(self, owner_id: int) -> List[Plant]:
        """Get all plants for an owner, newest first."""
        rows = await self._fetchall(
            "SELECT * FROM plants WHERE owner_id = ? ORDER BY created_at DESC, id DESC",
            (owner_id,),
        )
        return [self._row_to_plant(row) for row in rows]

    async def delete_plant(self, plant_id: str) -> None:
        """Delete a plant. Reminders referencing it are kept."""
        await self._write("DELETE FROM plants WHERE id = ?", (plant_id,))

    # Reminder operations

    async def create_reminder(self, reminder: Reminder) -> Reminder:
        """Create a new reminder."""
        row = await self._write_returning(
            """
            INSERT INTO reminders (
                owner_id, title, description, due_at, recurrence, category,
                plant_id, plant_name, completed, notification_sent
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            RETURNING *
            """,
            (
                reminder.owner_id,
                reminder.title,
                reminder.description,
                _to_iso(reminder.due_at),
                reminder.recurrence,
                reminder.category,
                reminder.plant_id,
                reminder.plant_name,
                1 if reminder.completed else 0,
                1 if reminder.notification_sent else 0,
            ),
        )
        return self._row_to_reminder(row)

    async def get_reminder(self, reminder_id: str) -> Reminder | None:
        """Get a reminder by ID."""
        row = await self._fetchone(
            "SELECT * FROM reminders WHERE id = ?", (reminder_id,)
        )
        return self._row_to_reminder(row) if row else None

    async def get_reminders_by_owner(
        self, owner_id: int, completed: bool | None = None
    ) -> List[Reminder]:
        """Get all reminders for an owner, optionally filtered by completion."""
        if completed is None:
            query = "SELECT * FROM reminders WHERE owner_id = ? ORDER BY due_at, id"
            params: tuple = (owner_id,)
        else:
            query = (
                "SELECT * FROM reminders WHERE owner_id = ? AND completed = ? "
                "ORDER BY due_at, id"
            )
            params = (owner_id, 1 if completed else 0)

        rows = await self._fetchall(query, params)
        return [self._row_to_reminder(row) for row in rows]

    async def update_reminder_fields(self, reminder_id: str, **fields: Any) -> None:
        """Update individual reminder fields by ID."""
        unknown = set(fields) - UPDATABLE_REMINDER_FIELDS
        if unknown:
            raise ValueError(f"Cannot update reminder fields: {', '.join(sorted(unknown))}")
        if not fields:
            return

        updates = []
        params = []
        for name, value in fields.items():
            if isinstance(value, bool):
                value = 1 if value else 0
            elif isinstance(value, datetime):
                value = _to_iso(value)
            updates.append(f"{name} = ?")
            params.append(value)

        params.append(reminder_id)
        await self._write(
            f"UPDATE reminders SET {', '.join(updates)} WHERE id = ?", params
        )

    async def set_completed(
        self, reminder_id: str, completed: bool, now: datetime | None = None
    ) -> None:
        """Set the completion flag.

        Completing also sets notification_sent so no further alerts fire.
        Reopening a reminder that is not yet due clears notification_sent so
        it alerts at its due time; one already past due stays quiet.
        """
        if completed:
            await self.update_reminder_fields(
                reminder_id, completed=True, notification_sent=True
            )
            return

        if now is None:
            now = datetime.now(ZoneInfo("UTC"))
        await self._write(
            """
            UPDATE reminders SET completed = 0,
                notification_sent = CASE WHEN due_at > ? THEN 0 ELSE notification_sent END
            WHERE id = ?
            """,
            (_to_iso(now), reminder_id),
        )

    async def claim_notification(self, reminder_id: str) -> bool:
        """Atomically set notification_sent if it is still unset.

        Returns:
            True if this caller won the claim and should show the notification
        """
        changed = await self._write(
            """
            UPDATE reminders SET notification_sent = 1
            WHERE id = ? AND notification_sent = 0 AND completed = 0
            """,
            (reminder_id,),
        )
        return changed == 1

    async def release_notification(self, reminder_id: str) -> None:
        """Undo a claim whose notification could not be shown."""
        await self._write(
            "UPDATE reminders SET notification_sent = 0 WHERE id = ? AND completed = 0",
            (reminder_id,),
        )

    async def delete_reminder(self, reminder_id: str) -> None:
        """Delete a reminder."""
        await self._write("DELETE FROM reminders WHERE id = ?", (reminder_id,))

    # Helper methods

    def _row_to_owner(self, row: aiosqlite.Row) -> Owner:
        """Convert a database row to an Owner object."""
        return Owner(
            telegram_id=row["telegram_id"],
            timezone=row["timezone"],
            notification_permission=row["notification_permission"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _row_to_plant(self, row: aiosqlite.Row) -> Plant:
        """Convert a database row to a Plant object."""
        return Plant(
            id=str(row["id"]),
            owner_id=row["owner_id"],
            name=row["name"],
            species=row["species"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _row_to_reminder(self, row: aiosqlite.Row) -> Reminder:
        """Convert a database row to a Reminder object."""
        return Reminder(
            id=str(row["id"]),
            owner_id=row["owner_id"],
            title=row["title"],
            description=row["description"],
            due_at=datetime.fromisoformat(row["due_at"]),
            recurrence=row["recurrence"],
            category=row["category"],
            plant_id=str(row["plant_id"]) if row["plant_id"] is not None else None,
            plant_name=row["plant_name"],
            completed=bool(row["completed"]),
            notification_sent=bool(row["notification_sent"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )
