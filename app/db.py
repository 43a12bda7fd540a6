"""
SQLite database layer using aiosqlite.

Stores users, the sports catalog (sports, grounds, plans, time slots),
bookings with their slots, payments and in-app notifications.
Tables are created automatically on first connect.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from collections.abc import AsyncIterator
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any
from uuid import uuid4

import aiosqlite

from app.config import DB_PATH
from app.models import (
    Booking,
    BookingSlot,
    Ground,
    Notification,
    Payment,
    Plan,
    Sport,
    TimeSlot,
    User,
)

logger = logging.getLogger(__name__)

# ── Module-level connection ───────────────────────────────────────────────

_db: aiosqlite.Connection | None = None
_write_lock: asyncio.Lock | None = None
_write_owner: asyncio.Task | None = None


async def init_db() -> None:
    """Open the database and create tables if they don't exist."""
    global _db, _write_lock
    db_path = Path(DB_PATH)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    _db = await aiosqlite.connect(str(db_path))
    _db.row_factory = aiosqlite.Row  # dict-like rows
    await _db.execute("PRAGMA journal_mode=WAL")
    await _db.execute("PRAGMA foreign_keys=ON")

    await _db.executescript(_SCHEMA)
    await _db.commit()
    _write_lock = asyncio.Lock()
    logger.info("Database initialized at %s", db_path)


async def close_db() -> None:
    """Close the database connection."""
    global _db, _write_lock, _write_owner
    if _db is not None:
        await _db.close()
        _db = None
        _write_lock = None
        _write_owner = None
        logger.info("Database connection closed")


def get_db() -> aiosqlite.Connection:
    """Return the active database connection (must call init_db first)."""
    if _db is None:
        raise RuntimeError("Database not initialized, call init_db() first")
    return _db


@contextlib.asynccontextmanager
async def write_lock() -> AsyncIterator[None]:
    """
    Serialize writes on the shared connection.

    Every commit and rollback in this module happens under the lock, so one
    coroutine never commits or discards rows another has written but not yet
    committed. The lock is re-entrant within a task: a service can hold it
    across a check-then-insert sequence and still call repository writes.
    """
    global _write_owner
    if _write_lock is None:
        raise RuntimeError("Database not initialized, call init_db() first")
    task = asyncio.current_task()
    if task is not None and _write_owner is task:
        yield
        return
    async with _write_lock:
        _write_owner = task
        try:
            yield
        finally:
            _write_owner = None


class IntegrityError(Exception):
    """A unique or foreign-key constraint rejected the write."""


# ── Schema ────────────────────────────────────────────────────────────────

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id              TEXT PRIMARY KEY,
    email           TEXT NOT NULL UNIQUE,
    password_hash   TEXT,
    first_name      TEXT,
    last_name       TEXT,
    phone           TEXT,
    role            TEXT NOT NULL DEFAULT 'client',
    is_active       INTEGER NOT NULL DEFAULT 1,
    notification_preferences TEXT,  -- JSON object
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS sports (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    sport_code      TEXT NOT NULL UNIQUE,
    sport_name      TEXT NOT NULL,
    booking_type    TEXT NOT NULL DEFAULT 'both',
    description     TEXT,
    image_url       TEXT,
    is_active       INTEGER NOT NULL DEFAULT 1,
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS grounds (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    sport_id        INTEGER NOT NULL REFERENCES sports(id),
    ground_name     TEXT NOT NULL,
    ground_code     TEXT NOT NULL UNIQUE,
    location        TEXT,
    description     TEXT,
    facilities      TEXT,           -- comma separated amenities
    max_capacity    INTEGER,
    image_url       TEXT,
    is_active       INTEGER NOT NULL DEFAULT 1,
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_grounds_sport ON grounds(sport_id);

CREATE TABLE IF NOT EXISTS plans (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    ground_id       INTEGER NOT NULL REFERENCES grounds(id) ON DELETE CASCADE,
    plan_name       TEXT NOT NULL,
    plan_type       TEXT NOT NULL,
    duration_days   INTEGER NOT NULL,
    base_price      REAL NOT NULL,
    peak_hour_multiplier REAL NOT NULL DEFAULT 1.0,
    weekend_multiplier   REAL NOT NULL DEFAULT 1.0,
    description     TEXT,
    is_active       INTEGER NOT NULL DEFAULT 1,
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_plans_ground ON plans(ground_id);

CREATE TABLE IF NOT EXISTS time_slots (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    start_time      TEXT NOT NULL,  -- HH:MM
    end_time        TEXT NOT NULL,
    slot_name       TEXT,
    is_peak_hour    INTEGER NOT NULL DEFAULT 0,
    is_available    INTEGER NOT NULL DEFAULT 1,
    is_active       INTEGER NOT NULL DEFAULT 1,
    created_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS bookings (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id         TEXT NOT NULL REFERENCES users(id),
    sport_id        INTEGER NOT NULL REFERENCES sports(id),
    ground_id       INTEGER NOT NULL REFERENCES grounds(id),
    booking_type    TEXT NOT NULL,
    plan_type       TEXT NOT NULL,
    start_date      TEXT NOT NULL,
    end_date        TEXT NOT NULL,
    participant_count INTEGER NOT NULL DEFAULT 1,
    total_amount    REAL NOT NULL,
    paid_amount     REAL NOT NULL DEFAULT 0,
    discount_amount REAL NOT NULL DEFAULT 0,
    discount_reason TEXT,
    status          TEXT NOT NULL DEFAULT 'pending',
    payment_status  TEXT NOT NULL DEFAULT 'pending',
    payment_method  TEXT,
    notes           TEXT,
    refund_amount   REAL NOT NULL DEFAULT 0,
    cancellation_fee REAL NOT NULL DEFAULT 0,
    cancelled_at    TEXT,
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_bookings_user ON bookings(user_id);
CREATE INDEX IF NOT EXISTS idx_bookings_status ON bookings(status);

CREATE TABLE IF NOT EXISTS booking_slots (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    booking_id      INTEGER NOT NULL REFERENCES bookings(id) ON DELETE CASCADE,
    booking_date    TEXT NOT NULL,
    start_time      TEXT NOT NULL,
    end_time        TEXT NOT NULL,
    duration_minutes INTEGER NOT NULL,
    amount          REAL NOT NULL,
    participant_count INTEGER NOT NULL DEFAULT 1
);

CREATE INDEX IF NOT EXISTS idx_slots_booking ON booking_slots(booking_id);
CREATE INDEX IF NOT EXISTS idx_slots_date ON booking_slots(booking_date);

CREATE TABLE IF NOT EXISTS payments (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    booking_id      INTEGER NOT NULL REFERENCES bookings(id) ON DELETE CASCADE,
    user_id         TEXT NOT NULL REFERENCES users(id),
    amount          REAL NOT NULL,
    payment_method  TEXT NOT NULL,
    transaction_id  TEXT,
    status          TEXT NOT NULL DEFAULT 'pending',
    gateway_response TEXT,          -- JSON object
    discount_amount REAL NOT NULL DEFAULT 0,
    discount_reason TEXT,
    processed_at    TEXT,
    created_at      TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_payments_booking ON payments(booking_id);

CREATE TABLE IF NOT EXISTS notifications (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id         TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    type            TEXT NOT NULL,
    title           TEXT NOT NULL,
    message         TEXT NOT NULL,
    channels        TEXT NOT NULL,  -- JSON array
    is_read         INTEGER NOT NULL DEFAULT 0,
    sent_at         TEXT NOT NULL,
    metadata        TEXT,           -- JSON object
    related_booking_id INTEGER REFERENCES bookings(id) ON DELETE SET NULL
);

CREATE INDEX IF NOT EXISTS idx_notifications_user ON notifications(user_id);
"""

# Bookings that still hold their slots
ACTIVE_STATUSES = ("pending", "confirmed")


# ── Helpers ───────────────────────────────────────────────────────────────

def _iso(dt: datetime | date | None) -> str | None:
    if dt is None:
        return None
    return dt.isoformat()


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _json_or_none(value: Any) -> str | None:
    if value is None:
        return None
    return json.dumps(value)


def _from_json(raw: str | None) -> Any:
    if raw is None:
        return None
    return json.loads(raw)


def _row_to_user(row: aiosqlite.Row) -> User:
    return User(
        id=row["id"],
        email=row["email"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        phone=row["phone"],
        role=row["role"],
        is_active=bool(row["is_active"]),
        notification_preferences=_from_json(row["notification_preferences"]) or {},
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_sport(row: aiosqlite.Row) -> Sport:
    return Sport(
        id=row["id"],
        sport_code=row["sport_code"],
        sport_name=row["sport_name"],
        booking_type=row["booking_type"],
        description=row["description"],
        image_url=row["image_url"],
        is_active=bool(row["is_active"]),
        created_at=row["created_at"],
    )


def _row_to_ground(row: aiosqlite.Row) -> Ground:
    return Ground(
        id=row["id"],
        sport_id=row["sport_id"],
        ground_name=row["ground_name"],
        ground_code=row["ground_code"],
        location=row["location"],
        description=row["description"],
        facilities=row["facilities"],
        max_capacity=row["max_capacity"],
        image_url=row["image_url"],
        is_active=bool(row["is_active"]),
        created_at=row["created_at"],
    )


def _row_to_plan(row: aiosqlite.Row) -> Plan:
    return Plan(
        id=row["id"],
        ground_id=row["ground_id"],
        plan_name=row["plan_name"],
        plan_type=row["plan_type"],
        duration_days=row["duration_days"],
        base_price=row["base_price"],
        peak_hour_multiplier=row["peak_hour_multiplier"],
        weekend_multiplier=row["weekend_multiplier"],
        description=row["description"],
        is_active=bool(row["is_active"]),
        created_at=row["created_at"],
    )


def _row_to_time_slot(row: aiosqlite.Row) -> TimeSlot:
    return TimeSlot(
        id=row["id"],
        start_time=row["start_time"],
        end_time=row["end_time"],
        slot_name=row["slot_name"],
        is_peak_hour=bool(row["is_peak_hour"]),
        is_available=bool(row["is_available"]),
        is_active=bool(row["is_active"]),
    )


def _row_to_booking_slot(row: aiosqlite.Row) -> BookingSlot:
    return BookingSlot(
        id=row["id"],
        booking_date=row["booking_date"],
        start_time=row["start_time"],
        end_time=row["end_time"],
        duration_minutes=row["duration_minutes"],
        amount=row["amount"],
        participant_count=row["participant_count"],
    )


def _row_to_booking(row: aiosqlite.Row, slots: list[BookingSlot]) -> Booking:
    return Booking(
        id=row["id"],
        user_id=row["user_id"],
        sport_id=row["sport_id"],
        ground_id=row["ground_id"],
        ground_name=row["ground_name"],
        sport_name=row["sport_name"],
        booking_type=row["booking_type"],
        plan_type=row["plan_type"],
        start_date=row["start_date"],
        end_date=row["end_date"],
        participant_count=row["participant_count"],
        total_amount=row["total_amount"],
        paid_amount=row["paid_amount"],
        discount_amount=row["discount_amount"],
        discount_reason=row["discount_reason"],
        status=row["status"],
        payment_status=row["payment_status"],
        payment_method=row["payment_method"],
        notes=row["notes"],
        refund_amount=row["refund_amount"],
        cancellation_fee=row["cancellation_fee"],
        cancelled_at=row["cancelled_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        slots=slots,
    )


def _row_to_payment(row: aiosqlite.Row) -> Payment:
    return Payment(
        id=row["id"],
        booking_id=row["booking_id"],
        user_id=row["user_id"],
        amount=row["amount"],
        payment_method=row["payment_method"],
        transaction_id=row["transaction_id"],
        status=row["status"],
        gateway_response=_from_json(row["gateway_response"]),
        discount_amount=row["discount_amount"],
        discount_reason=row["discount_reason"],
        processed_at=row["processed_at"],
        created_at=row["created_at"],
    )


def _row_to_notification(row: aiosqlite.Row) -> Notification:
    return Notification(
        id=row["id"],
        user_id=row["user_id"],
        type=row["type"],
        title=row["title"],
        message=row["message"],
        channels=json.loads(row["channels"]),
        is_read=bool(row["is_read"]),
        sent_at=row["sent_at"],
        metadata=_from_json(row["metadata"]),
        related_booking_id=row["related_booking_id"],
    )


async def _write(sql: str, params: tuple | list) -> aiosqlite.Cursor:
    """Run one statement and commit it under the write lock."""
    db = get_db()
    async with write_lock():
        try:
            cur = await db.execute(sql, params)
            await db.commit()
        except aiosqlite.IntegrityError as exc:
            await db.rollback()
            raise IntegrityError(str(exc)) from exc
        except Exception:
            await db.rollback()
            raise
    return cur


async def _insert(sql: str, params: tuple | list) -> int:
    """Run an INSERT, commit, and return the new row id."""
    return (await _write(sql, params)).lastrowid


async def _update(table: str, row_id: int | str, fields: dict[str, Any]) -> bool:
    """Patch columns of one row. Returns False when the row does not exist."""
    if not fields:
        return await _exists(table, row_id)
    assignments = ", ".join(f"{col} = ?" for col in fields)
    params = [int(v) if isinstance(v, bool) else v for v in fields.values()]
    if table != "time_slots":
        assignments += ", updated_at = ?"
        params.append(_now_iso())
    params.append(row_id)
    cur = await _write(f"UPDATE {table} SET {assignments} WHERE id = ?", params)
    return cur.rowcount > 0


async def _delete(table: str, row_id: int | str) -> bool:
    cur = await _write(f"DELETE FROM {table} WHERE id = ?", (row_id,))
    return cur.rowcount > 0


async def _exists(table: str, row_id: int | str) -> bool:
    async with get_db().execute(
        f"SELECT 1 FROM {table} WHERE id = ?", (row_id,)
    ) as cur:
        return await cur.fetchone() is not None


# ══════════════════════════════════════════════════════════════════════════
#                    USER REPOSITORY
# ══════════════════════════════════════════════════════════════════════════


async def create_user(
    email: str,
    password_hash: str | None,
    *,
    first_name: str | None = None,
    last_name: str | None = None,
    phone: str | None = None,
    role: str = "client",
    user_id: str | None = None,
) -> User:
    """Insert a new user and return it."""
    user_id = user_id or str(uuid4())
    now = _now_iso()
    await _insert(
        """
        INSERT INTO users (
            id, email, password_hash, first_name, last_name, phone,
            role, is_active, notification_preferences, created_at, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, 1, ?, ?, ?)
        """,
        (
            user_id, email.lower(), password_hash, first_name, last_name, phone,
            role, json.dumps({"email": True, "sms": True, "marketing": False}),
            now, now,
        ),
    )
    return await get_user(user_id)  # type: ignore[return-value]


async def get_user(user_id: str) -> User | None:
    async with get_db().execute("SELECT * FROM users WHERE id = ?", (user_id,)) as cur:
        row = await cur.fetchone()
    return _row_to_user(row) if row else None


async def get_user_credentials(email: str) -> tuple[User, str | None] | None:
    """Return the user and their password hash, looked up by email."""
    async with get_db().execute(
        "SELECT * FROM users WHERE email = ?", (email.lower(),)
    ) as cur:
        row = await cur.fetchone()
    if row is None:
        return None
    return _row_to_user(row), row["password_hash"]


async def list_users(
    *,
    role: str | None = None,
    search: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[User], int]:
    """Filtered page of users plus the total count."""
    where = " WHERE 1 = 1"
    params: list = []
    if role is not None:
        where += " AND role = ?"
        params.append(role)
    if search:
        where += " AND (email LIKE ? OR first_name LIKE ? OR last_name LIKE ?)"
        like = f"%{search}%"
        params.extend([like, like, like])

    db = get_db()
    async with db.execute(f"SELECT COUNT(*) FROM users{where}", params) as cur:
        total = (await cur.fetchone())[0]
    async with db.execute(
        f"SELECT * FROM users{where} ORDER BY created_at DESC LIMIT ? OFFSET ?",
        [*params, limit, offset],
    ) as cur:
        rows = await cur.fetchall()
    return [_row_to_user(r) for r in rows], total


async def list_active_clients() -> list[User]:
    async with get_db().execute(
        "SELECT * FROM users WHERE role = 'client' AND is_active = 1"
    ) as cur:
        rows = await cur.fetchall()
    return [_row_to_user(r) for r in rows]


async def update_user(user_id: str, fields: dict[str, Any]) -> User | None:
    if "notification_preferences" in fields:
        fields = {
            **fields,
            "notification_preferences": _json_or_none(fields["notification_preferences"]),
        }
    if not await _update("users", user_id, fields):
        return None
    return await get_user(user_id)


async def set_password_hash(user_id: str, password_hash: str) -> None:
    await _update("users", user_id, {"password_hash": password_hash})


# ══════════════════════════════════════════════════════════════════════════
#                    CATALOG REPOSITORY
# ══════════════════════════════════════════════════════════════════════════


async def create_sport(fields: dict[str, Any]) -> Sport:
    now = _now_iso()
    sport_id = await _insert(
        """
        INSERT INTO sports (
            sport_code, sport_name, booking_type, description, image_url,
            is_active, created_at, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            fields["sport_code"], fields["sport_name"], fields.get("booking_type", "both"),
            fields.get("description"), fields.get("image_url"),
            int(fields.get("is_active", True)), now, now,
        ),
    )
    return await get_sport(sport_id)  # type: ignore[return-value]


async def get_sport(sport_id: int) -> Sport | None:
    async with get_db().execute("SELECT * FROM sports WHERE id = ?", (sport_id,)) as cur:
        row = await cur.fetchone()
    return _row_to_sport(row) if row else None


async def list_sports(*, active_only: bool = True) -> list[Sport]:
    sql = "SELECT * FROM sports"
    if active_only:
        sql += " WHERE is_active = 1"
    sql += " ORDER BY sport_name"
    async with get_db().execute(sql) as cur:
        rows = await cur.fetchall()
    return [_row_to_sport(r) for r in rows]


async def update_sport(sport_id: int, fields: dict[str, Any]) -> Sport | None:
    if not await _update("sports", sport_id, fields):
        return None
    return await get_sport(sport_id)


async def delete_sport(sport_id: int) -> bool:
    return await _delete("sports", sport_id)


async def create_ground(fields: dict[str, Any]) -> Ground:
    now = _now_iso()
    ground_id = await _insert(
        """
        INSERT INTO grounds (
            sport_id, ground_name, ground_code, location, description,
            facilities, max_capacity, image_url, is_active, created_at, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            fields["sport_id"], fields["ground_name"], fields["ground_code"],
            fields.get("location"), fields.get("description"), fields.get("facilities"),
            fields.get("max_capacity"), fields.get("image_url"),
            int(fields.get("is_active", True)), now, now,
        ),
    )
    return await get_ground(ground_id)  # type: ignore[return-value]


async def get_ground(ground_id: int) -> Ground | None:
    async with get_db().execute("SELECT * FROM grounds WHERE id = ?", (ground_id,)) as cur:
        row = await cur.fetchone()
    return _row_to_ground(row) if row else None


async def list_grounds(
    *, active_only: bool = True, sport_id: int | None = None
) -> list[Ground]:
    sql = "SELECT * FROM grounds WHERE 1 = 1"
    params: list = []
    if active_only:
        sql += " AND is_active = 1"
    if sport_id is not None:
        sql += " AND sport_id = ?"
        params.append(sport_id)
    sql += " ORDER BY id"
    async with get_db().execute(sql, params) as cur:
        rows = await cur.fetchall()
    return [_row_to_ground(r) for r in rows]


async def update_ground(ground_id: int, fields: dict[str, Any]) -> Ground | None:
    if not await _update("grounds", ground_id, fields):
        return None
    return await get_ground(ground_id)


async def delete_ground(ground_id: int) -> bool:
    return await _delete("grounds", ground_id)


async def create_plan(fields: dict[str, Any]) -> Plan:
    now = _now_iso()
    plan_id = await _insert(
        """
        INSERT INTO plans (
            ground_id, plan_name, plan_type, duration_days, base_price,
            peak_hour_multiplier, weekend_multiplier, description, is_active,
            created_at, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            fields["ground_id"], fields["plan_name"], fields["plan_type"],
            fields["duration_days"], fields["base_price"],
            fields.get("peak_hour_multiplier", 1.0), fields.get("weekend_multiplier", 1.0),
            fields.get("description"), int(fields.get("is_active", True)), now, now,
        ),
    )
    return await get_plan(plan_id)  # type: ignore[return-value]


async def get_plan(plan_id: int) -> Plan | None:
    async with get_db().execute("SELECT * FROM plans WHERE id = ?", (plan_id,)) as cur:
        row = await cur.fetchone()
    return _row_to_plan(row) if row else None


async def list_plans(
    *, active_only: bool = True, ground_id: int | None = None
) -> list[Plan]:
    sql = "SELECT * FROM plans WHERE 1 = 1"
    params: list = []
    if active_only:
        sql += " AND is_active = 1"
    if ground_id is not None:
        sql += " AND ground_id = ?"
        params.append(ground_id)
    sql += " ORDER BY ground_id, duration_days"
    async with get_db().execute(sql, params) as cur:
        rows = await cur.fetchall()
    return [_row_to_plan(r) for r in rows]


async def find_plan(ground_id: int, plan_type: str) -> Plan | None:
    """The active plan of the given type for a ground, if any."""
    async with get_db().execute(
        """
        SELECT * FROM plans
        WHERE ground_id = ? AND plan_type = ? AND is_active = 1
        ORDER BY id LIMIT 1
        """,
        (ground_id, plan_type),
    ) as cur:
        row = await cur.fetchone()
    return _row_to_plan(row) if row else None


async def update_plan(plan_id: int, fields: dict[str, Any]) -> Plan | None:
    if not await _update("plans", plan_id, fields):
        return None
    return await get_plan(plan_id)


async def delete_plan(plan_id: int) -> bool:
    return await _delete("plans", plan_id)


async def create_time_slot(fields: dict[str, Any]) -> TimeSlot:
    slot_id = await _insert(
        """
        INSERT INTO time_slots (
            start_time, end_time, slot_name, is_peak_hour, is_available,
            is_active, created_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (
            fields["start_time"], fields["end_time"], fields.get("slot_name"),
            int(fields.get("is_peak_hour", False)), int(fields.get("is_available", True)),
            int(fields.get("is_active", True)), _now_iso(),
        ),
    )
    return await get_time_slot(slot_id)  # type: ignore[return-value]


async def get_time_slot(slot_id: int) -> TimeSlot | None:
    async with get_db().execute("SELECT * FROM time_slots WHERE id = ?", (slot_id,)) as cur:
        row = await cur.fetchone()
    return _row_to_time_slot(row) if row else None


async def list_time_slots(*, active_only: bool = True) -> list[TimeSlot]:
    sql = "SELECT * FROM time_slots"
    if active_only:
        sql += " WHERE is_active = 1"
    sql += " ORDER BY start_time"
    async with get_db().execute(sql) as cur:
        rows = await cur.fetchall()
    return [_row_to_time_slot(r) for r in rows]


async def update_time_slot(slot_id: int, fields: dict[str, Any]) -> TimeSlot | None:
    if not await _update("time_slots", slot_id, fields):
        return None
    return await get_time_slot(slot_id)


async def delete_time_slot(slot_id: int) -> bool:
    return await _delete("time_slots", slot_id)


async def count_sports() -> int:
    async with get_db().execute("SELECT COUNT(*) FROM sports") as cur:
        return (await cur.fetchone())[0]


# ══════════════════════════════════════════════════════════════════════════
#                    BOOKING REPOSITORY
# ══════════════════════════════════════════════════════════════════════════

_BOOKING_SELECT = """
    SELECT b.*, g.ground_name AS ground_name, s.sport_name AS sport_name
    FROM bookings b
    JOIN grounds g ON g.id = b.ground_id
    JOIN sports s ON s.id = b.sport_id
"""


async def _load_slots(booking_ids: list[int]) -> dict[int, list[BookingSlot]]:
    slots: dict[int, list[BookingSlot]] = {bid: [] for bid in booking_ids}
    if not booking_ids:
        return slots
    marks = ", ".join("?" for _ in booking_ids)
    async with get_db().execute(
        f"""
        SELECT * FROM booking_slots WHERE booking_id IN ({marks})
        ORDER BY booking_date, start_time
        """,
        booking_ids,
    ) as cur:
        rows = await cur.fetchall()
    for row in rows:
        slots[row["booking_id"]].append(_row_to_booking_slot(row))
    return slots


async def _bookings_from_rows(rows: list[aiosqlite.Row]) -> list[Booking]:
    slots = await _load_slots([r["id"] for r in rows])
    return [_row_to_booking(r, slots[r["id"]]) for r in rows]


async def create_booking(
    user_id: str,
    sport_id: int,
    ground_id: int,
    booking_type: str,
    plan_type: str,
    participant_count: int,
    total_amount: float,
    slots: list[dict[str, Any]],
    *,
    payment_method: str | None = None,
    notes: str | None = None,
) -> Booking:
    """Insert a booking together with its slots in one transaction."""
    db = get_db()
    now = _now_iso()
    dates = sorted(s["booking_date"] for s in slots)
    async with write_lock():
        try:
            cur = await db.execute(
                """
                INSERT INTO bookings (
                    user_id, sport_id, ground_id, booking_type, plan_type,
                    start_date, end_date, participant_count, total_amount,
                    status, payment_status, payment_method, notes,
                    created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 'pending', 'pending', ?, ?, ?, ?)
                """,
                (
                    user_id, sport_id, ground_id, booking_type, plan_type,
                    _iso(dates[0]), _iso(dates[-1]), participant_count, total_amount,
                    payment_method, notes, now, now,
                ),
            )
            booking_id = cur.lastrowid
            await db.executemany(
                """
                INSERT INTO booking_slots (
                    booking_id, booking_date, start_time, end_time,
                    duration_minutes, amount, participant_count
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        booking_id, _iso(s["booking_date"]), s["start_time"], s["end_time"],
                        s["duration_minutes"], s["amount"], participant_count,
                    )
                    for s in slots
                ],
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
    logger.info(
        "Booking %s created for user %s on ground %s (%d slots)",
        booking_id, user_id, ground_id, len(slots),
    )
    return await get_booking(booking_id)  # type: ignore[return-value]


async def get_booking(booking_id: int) -> Booking | None:
    async with get_db().execute(
        _BOOKING_SELECT + " WHERE b.id = ?", (booking_id,)
    ) as cur:
        row = await cur.fetchone()
    if row is None:
        return None
    return (await _bookings_from_rows([row]))[0]


async def list_bookings(
    *,
    user_id: str | None = None,
    status: str | None = None,
    payment_status: str | None = None,
    ground_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[Booking], int]:
    """Filtered page of bookings (newest first) plus the total count."""
    where = " WHERE 1 = 1"
    params: list = []
    if user_id is not None:
        where += " AND b.user_id = ?"
        params.append(user_id)
    if status is not None:
        where += " AND b.status = ?"
        params.append(status)
    if payment_status is not None:
        where += " AND b.payment_status = ?"
        params.append(payment_status)
    if ground_id is not None:
        where += " AND b.ground_id = ?"
        params.append(ground_id)
    if date_from is not None:
        where += " AND b.end_date >= ?"
        params.append(_iso(date_from))
    if date_to is not None:
        where += " AND b.start_date <= ?"
        params.append(_iso(date_to))

    db = get_db()
    async with db.execute(f"SELECT COUNT(*) FROM bookings b{where}", params) as cur:
        total = (await cur.fetchone())[0]
    async with db.execute(
        _BOOKING_SELECT + where + " ORDER BY b.created_at DESC, b.id DESC LIMIT ? OFFSET ?",
        [*params, limit, offset],
    ) as cur:
        rows = await cur.fetchall()
    return await _bookings_from_rows(rows), total


async def list_bookings_by_status(
    statuses: tuple[str, ...],
    *,
    payment_statuses: tuple[str, ...] | None = None,
) -> list[Booking]:
    """All bookings in the given statuses, for the housekeeping jobs."""
    marks = ", ".join("?" for _ in statuses)
    sql = _BOOKING_SELECT + f" WHERE b.status IN ({marks})"
    params: list = list(statuses)
    if payment_statuses:
        sql += f" AND b.payment_status IN ({', '.join('?' for _ in payment_statuses)})"
        params.extend(payment_statuses)
    sql += " ORDER BY b.start_date, b.id"
    async with get_db().execute(sql, params) as cur:
        rows = await cur.fetchall()
    return await _bookings_from_rows(rows)


async def list_ground_slots(ground_id: int, booking_date: date) -> list[dict[str, Any]]:
    """
    Slots held by active bookings on one ground and date.

    Each row carries the owning booking's id, user and booking type so the
    availability checks can tell per-person and full-ground holders apart.
    """
    async with get_db().execute(
        f"""
        SELECT bs.start_time, bs.end_time, bs.participant_count,
               b.id AS booking_id, b.user_id, b.booking_type
        FROM booking_slots bs
        JOIN bookings b ON b.id = bs.booking_id
        WHERE b.ground_id = ? AND bs.booking_date = ?
          AND b.status IN ({", ".join("?" for _ in ACTIVE_STATUSES)})
        """,
        (ground_id, _iso(booking_date), *ACTIVE_STATUSES),
    ) as cur:
        rows = await cur.fetchall()
    return [dict(r) for r in rows]


async def update_booking(booking_id: int, fields: dict[str, Any]) -> Booking | None:
    if not await _update("bookings", booking_id, fields):
        return None
    return await get_booking(booking_id)


# ══════════════════════════════════════════════════════════════════════════
#                    PAYMENT REPOSITORY
# ══════════════════════════════════════════════════════════════════════════


async def create_payment(
    booking_id: int,
    user_id: str,
    amount: float,
    payment_method: str,
    *,
    transaction_id: str | None = None,
    status: str = "completed",
    gateway_response: dict[str, Any] | None = None,
    discount_amount: float = 0.0,
    discount_reason: str | None = None,
) -> Payment:
    now = _now_iso()
    payment_id = await _insert(
        """
        INSERT INTO payments (
            booking_id, user_id, amount, payment_method, transaction_id, status,
            gateway_response, discount_amount, discount_reason, processed_at, created_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            booking_id, user_id, amount, payment_method, transaction_id, status,
            _json_or_none(gateway_response), discount_amount, discount_reason,
            now if status == "completed" else None, now,
        ),
    )
    return await get_payment(payment_id)  # type: ignore[return-value]


async def get_payment(payment_id: int) -> Payment | None:
    async with get_db().execute("SELECT * FROM payments WHERE id = ?", (payment_id,)) as cur:
        row = await cur.fetchone()
    return _row_to_payment(row) if row else None


async def list_payments(
    *,
    booking_id: int | None = None,
    status: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[Payment], int]:
    where = " WHERE 1 = 1"
    params: list = []
    if booking_id is not None:
        where += " AND booking_id = ?"
        params.append(booking_id)
    if status is not None:
        where += " AND status = ?"
        params.append(status)

    db = get_db()
    async with db.execute(f"SELECT COUNT(*) FROM payments{where}", params) as cur:
        total = (await cur.fetchone())[0]
    async with db.execute(
        f"SELECT * FROM payments{where} ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?",
        [*params, limit, offset],
    ) as cur:
        rows = await cur.fetchall()
    return [_row_to_payment(r) for r in rows], total


async def update_payment_status(payment_id: int, status: str) -> Payment | None:
    cur = await _write(
        """
        UPDATE payments SET status = ?,
            processed_at = CASE WHEN ? = 'completed' THEN ? ELSE processed_at END
        WHERE id = ?
        """,
        (status, status, _now_iso(), payment_id),
    )
    if cur.rowcount == 0:
        return None
    return await get_payment(payment_id)


async def sum_completed_payments(
    booking_id: int, *, before_payment_id: int | None = None
) -> float:
    """Total of completed payments on a booking, optionally only older ones."""
    sql = "SELECT COALESCE(SUM(amount), 0) FROM payments WHERE booking_id = ? AND status = 'completed'"
    params: list = [booking_id]
    if before_payment_id is not None:
        sql += " AND id < ?"
        params.append(before_payment_id)
    async with get_db().execute(sql, params) as cur:
        return round(float((await cur.fetchone())[0]), 2)


# ══════════════════════════════════════════════════════════════════════════
#                    NOTIFICATION REPOSITORY
# ══════════════════════════════════════════════════════════════════════════


async def create_notification(
    user_id: str,
    type: str,
    title: str,
    message: str,
    *,
    channels: list[str] | None = None,
    metadata: dict[str, Any] | None = None,
    related_booking_id: int | None = None,
) -> Notification:
    notification_id = await _insert(
        """
        INSERT INTO notifications (
            user_id, type, title, message, channels, is_read, sent_at,
            metadata, related_booking_id
        ) VALUES (?, ?, ?, ?, ?, 0, ?, ?, ?)
        """,
        (
            user_id, type, title, message, json.dumps(channels or ["in_app"]),
            _now_iso(), _json_or_none(metadata), related_booking_id,
        ),
    )
    async with get_db().execute(
        "SELECT * FROM notifications WHERE id = ?", (notification_id,)
    ) as cur:
        row = await cur.fetchone()
    return _row_to_notification(row)


async def list_notifications(
    user_id: str, *, unread_only: bool = False, limit: int = 50
) -> list[Notification]:
    sql = "SELECT * FROM notifications WHERE user_id = ?"
    if unread_only:
        sql += " AND is_read = 0"
    sql += " ORDER BY sent_at DESC, id DESC LIMIT ?"
    async with get_db().execute(sql, (user_id, limit)) as cur:
        rows = await cur.fetchall()
    return [_row_to_notification(r) for r in rows]


async def count_unread_notifications(user_id: str) -> int:
    async with get_db().execute(
        "SELECT COUNT(*) FROM notifications WHERE user_id = ? AND is_read = 0",
        (user_id,),
    ) as cur:
        return (await cur.fetchone())[0]


async def mark_notification_read(notification_id: int, user_id: str) -> bool:
    cur = await _write(
        "UPDATE notifications SET is_read = 1 WHERE id = ? AND user_id = ?",
        (notification_id, user_id),
    )
    return cur.rowcount > 0


async def mark_all_notifications_read(user_id: str) -> int:
    cur = await _write(
        "UPDATE notifications SET is_read = 1 WHERE user_id = ? AND is_read = 0",
        (user_id,),
    )
    return cur.rowcount


async def notification_sent_since(booking_id: int, type: str, since: datetime) -> bool:
    """True when a notification of this type already went out for the booking."""
    async with get_db().execute(
        """
        SELECT 1 FROM notifications
        WHERE related_booking_id = ? AND type = ? AND sent_at >= ?
        LIMIT 1
        """,
        (booking_id, type, _iso(since)),
    ) as cur:
        return await cur.fetchone() is not None
