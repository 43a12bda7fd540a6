"""
Admin dashboard statistics and grouped reports, computed in SQL.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import date, datetime, timedelta
from typing import Any

from app import db
from app.models import DashboardStats, FacilityStats

# Timestamps are stored in UTC; reports bucket them by the server's local day.
_PERIOD_EXPR = {
    "day": "date({col}, 'localtime')",
    "week": "strftime('%Y-W%W', {col}, 'localtime')",
    "month": "strftime('%Y-%m', {col}, 'localtime')",
}


async def _scalar(sql: str, params: tuple | list = ()) -> Any:
    async with db.get_db().execute(sql, params) as cur:
        row = await cur.fetchone()
    return row[0] if row else None


async def _rows(sql: str, params: tuple | list = ()) -> list[dict[str, Any]]:
    async with db.get_db().execute(sql, params) as cur:
        return [dict(r) for r in await cur.fetchall()]


def _local_day(col: str) -> str:
    return f"date({col}, 'localtime')"


def _date_range(expr: str, start: date | None, end: date | None) -> tuple[str, list]:
    clause, params = "", []
    if start is not None:
        clause += f" AND {expr} >= ?"
        params.append(start.isoformat())
    if end is not None:
        clause += f" AND {expr} <= ?"
        params.append(end.isoformat())
    return clause, params


def booking_trend(recent: int, previous: int) -> float:
    """Percentage change between two periods."""
    if previous == 0:
        return 100.0 if recent > 0 else 0.0
    return round((recent - previous) / previous * 100, 1)


async def dashboard_stats(now: datetime | None = None) -> DashboardStats:
    now = now or datetime.now()
    today = now.date().isoformat()
    clock = now.strftime("%H:%M")

    by_status = {
        r["status"]: r["n"]
        for r in await _rows("SELECT status, COUNT(*) AS n FROM bookings GROUP BY status")
    }

    return DashboardStats(
        today_bookings=await _scalar(
            """
            SELECT COUNT(DISTINCT b.id) FROM bookings b
            JOIN booking_slots bs ON bs.booking_id = b.id
            WHERE bs.booking_date = ? AND b.status != 'cancelled'
            """,
            (today,),
        ),
        total_bookings=sum(by_status.values()),
        today_revenue=round(
            await _scalar(
                """
                SELECT COALESCE(SUM(amount), 0) FROM payments
                WHERE status = 'completed' AND date(processed_at, 'localtime') = ?
                """,
                (today,),
            ),
            2,
        ),
        total_revenue=round(
            await _scalar(
                "SELECT COALESCE(SUM(amount), 0) FROM payments WHERE status = 'completed'"
            ),
            2,
        ),
        active_users=await _scalar(
            "SELECT COUNT(*) FROM users WHERE is_active = 1 AND role = 'client'"
        ),
        active_grounds=await _scalar("SELECT COUNT(*) FROM grounds WHERE is_active = 1"),
        pending_bookings=by_status.get("pending", 0),
        confirmed_bookings=by_status.get("confirmed", 0),
        completed_bookings=by_status.get("completed", 0),
        cancelled_bookings=by_status.get("cancelled", 0),
        live_sessions=await _scalar(
            """
            SELECT COUNT(*) FROM booking_slots bs
            JOIN bookings b ON b.id = bs.booking_id
            WHERE b.status = 'confirmed' AND bs.booking_date = ?
              AND bs.start_time <= ? AND bs.end_time > ?
            """,
            (today, clock, clock),
        ),
    )


async def facility_stats(today: date | None = None) -> list[FacilityStats]:
    today = today or date.today()
    recent_from = (today - timedelta(days=30)).isoformat()
    previous_from = (today - timedelta(days=60)).isoformat()

    rows = await _rows(
        """
        SELECT g.id AS ground_id, g.ground_name, s.sport_name,
            COUNT(b.id) AS total_bookings,
            SUM(CASE WHEN b.status IN ('pending', 'confirmed') THEN 1 ELSE 0 END) AS active_bookings,
            SUM(CASE WHEN date(b.created_at, 'localtime') >= ? THEN 1 ELSE 0 END) AS recent,
            SUM(CASE WHEN date(b.created_at, 'localtime') >= ?
                      AND date(b.created_at, 'localtime') < ? THEN 1 ELSE 0 END) AS previous,
            (SELECT COALESCE(SUM(p.amount), 0) FROM payments p
             JOIN bookings pb ON pb.id = p.booking_id
             WHERE pb.ground_id = g.id AND p.status = 'completed') AS revenue
        FROM grounds g
        JOIN sports s ON s.id = g.sport_id
        LEFT JOIN bookings b ON b.ground_id = g.id
        GROUP BY g.id
        ORDER BY g.id
        """,
        (recent_from, previous_from, recent_from),
    )
    return [
        FacilityStats(
            ground_id=r["ground_id"],
            ground_name=r["ground_name"],
            sport_name=r["sport_name"],
            total_bookings=r["total_bookings"],
            active_bookings=r["active_bookings"] or 0,
            revenue=round(r["revenue"], 2),
            bookings_last_30_days=r["recent"] or 0,
            bookings_previous_30_days=r["previous"] or 0,
            booking_trend=booking_trend(r["recent"] or 0, r["previous"] or 0),
        )
        for r in rows
    ]


# ── Reports ───────────────────────────────────────────────────────────────

async def revenue_report(group_by: str, start: date | None, end: date | None) -> list[dict]:
    period = _PERIOD_EXPR[group_by].format(col="COALESCE(processed_at, created_at)")
    clause, params = _date_range(_local_day("COALESCE(processed_at, created_at)"), start, end)
    return await _rows(
        f"""
        SELECT {period} AS period,
               ROUND(SUM(amount), 2) AS revenue,
               COUNT(*) AS payments
        FROM payments
        WHERE status = 'completed'{clause}
        GROUP BY period ORDER BY period
        """,
        params,
    )


async def revenue_by_sport_report(group_by: str, start: date | None, end: date | None) -> list[dict]:
    clause, params = _date_range(_local_day("COALESCE(p.processed_at, p.created_at)"), start, end)
    return await _rows(
        f"""
        SELECT s.id AS sport_id, s.sport_name,
               ROUND(SUM(p.amount), 2) AS revenue,
               COUNT(DISTINCT b.id) AS bookings
        FROM payments p
        JOIN bookings b ON b.id = p.booking_id
        JOIN sports s ON s.id = b.sport_id
        WHERE p.status = 'completed'{clause}
        GROUP BY s.id ORDER BY revenue DESC
        """,
        params,
    )


async def facility_usage_report(group_by: str, start: date | None, end: date | None) -> list[dict]:
    clause, params = _date_range("b.start_date", start, end)
    rows = await _rows(
        f"""
        SELECT g.id AS ground_id, g.ground_name,
               COUNT(b.id) AS total_bookings,
               SUM(CASE WHEN b.status IN ('confirmed', 'completed') THEN 1 ELSE 0 END) AS used_bookings,
               SUM(CASE WHEN b.status = 'cancelled' THEN 1 ELSE 0 END) AS cancelled_bookings
        FROM grounds g
        LEFT JOIN bookings b ON b.ground_id = g.id{clause}
        GROUP BY g.id ORDER BY g.id
        """,
        params,
    )
    for row in rows:
        row["used_bookings"] = row["used_bookings"] or 0
        row["cancelled_bookings"] = row["cancelled_bookings"] or 0
        total = row["total_bookings"]
        row["utilization_rate"] = round(row["used_bookings"] / total * 100, 1) if total else 0.0
    return rows


async def member_bookings_report(group_by: str, start: date | None, end: date | None) -> list[dict]:
    clause, params = _date_range("b.start_date", start, end)
    return await _rows(
        f"""
        SELECT u.id AS user_id, u.email,
               TRIM(COALESCE(u.first_name, '') || ' ' || COALESCE(u.last_name, '')) AS name,
               COUNT(b.id) AS bookings,
               ROUND(SUM(b.total_amount), 2) AS total_amount,
               ROUND(SUM(b.paid_amount), 2) AS paid_amount
        FROM bookings b
        JOIN users u ON u.id = b.user_id
        WHERE 1 = 1{clause}
        GROUP BY u.id ORDER BY bookings DESC, u.email
        """,
        params,
    )


async def member_payments_report(group_by: str, start: date | None, end: date | None) -> list[dict]:
    clause, params = _date_range(_local_day("COALESCE(p.processed_at, p.created_at)"), start, end)
    by_method = ",\n".join(
        f"ROUND(SUM(CASE WHEN p.payment_method = '{m}' THEN p.amount ELSE 0 END), 2) AS {m}"
        for m in ("cash", "upi", "card", "bank_transfer")
    )
    return await _rows(
        f"""
        SELECT u.id AS user_id, u.email,
               ROUND(SUM(p.amount), 2) AS total_paid,
               COUNT(p.id) AS payments,
               {by_method}
        FROM payments p
        JOIN users u ON u.id = p.user_id
        WHERE p.status = 'completed'{clause}
        GROUP BY u.id ORDER BY total_paid DESC
        """,
        params,
    )


REPORTS: dict[str, Callable[[str, date | None, date | None], Awaitable[list[dict]]]] = {
    "revenue": revenue_report,
    "revenue-by-sport": revenue_by_sport_report,
    "facility-usage": facility_usage_report,
    "member-bookings": member_bookings_report,
    "member-payments": member_payments_report,
}
