"""
Saved-session history: parsing, grouping by day and daily revenue.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, Optional

from .logging_config import get_logger
from .models import Player, Session

log = get_logger(__name__)


def parse_date(value: str) -> Optional[datetime]:
    """Parse an ISO timestamp to local time; None if unparseable."""
    if not isinstance(value, str) or not value:
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone()
    return dt


def sessions_from_json(data) -> list[Session]:
    """Load stored history, skipping entries that cannot be read."""
    if not isinstance(data, list):
        if data is not None:
            log.warning("Stored history is not a list (%s); ignoring it", type(data).__name__)
        return []
    out = []
    for i, entry in enumerate(data):
        try:
            out.append(Session.from_dict(entry))
        except (KeyError, TypeError, ValueError) as e:
            log.warning("Skipping malformed history entry #%s: %s", i, e)
    return out


@dataclass
class DayGroup:
    day: date
    sessions: list[Session] = field(default_factory=list)
    total_revenue: float = 0


def group_by_date(sessions: Iterable[Session]) -> list[DayGroup]:
    """Group sessions per local calendar day, newest day first."""
    groups: dict[date, DayGroup] = {}
    for s in sessions:
        dt = parse_date(s.date)
        if dt is None:
            log.warning("Invalid date for session %s: %r", s.id, s.date)
            continue
        g = groups.setdefault(dt.date(), DayGroup(dt.date()))
        g.sessions.append(s)
        g.total_revenue += s.summary.grand_total
    return sorted(groups.values(), key=lambda g: g.day, reverse=True)


def sessions_on(sessions: Iterable[Session], day: date) -> list[Session]:
    out = []
    for s in sessions:
        dt = parse_date(s.date)
        if dt is not None and dt.date() == day:
            out.append(s)
    return out


@dataclass(frozen=True)
class DailyStats:
    saved_revenue: float
    total_revenue: float
    unique_players: int


def daily_stats(
    sessions: Iterable[Session],
    current_grand_total: float,
    current_players: Iterable[Player],
    today: Optional[date] = None,
) -> DailyStats:
    """Today's revenue (saved sessions plus the running one) and distinct player names."""
    today = today or date.today()
    todays = sessions_on(sessions, today)
    saved = sum(s.summary.grand_total for s in todays)
    names = {p.name for s in todays for p in s.players}
    names.update(p.name for p in current_players)
    return DailyStats(
        saved_revenue=saved,
        total_revenue=saved + float(current_grand_total),
        unique_players=len(names),
    )


def revenue_by_day(sessions: Iterable[Session]) -> list[tuple[date, float, int]]:
    """(day, revenue, session count) rows for past revenue, newest first."""
    return [(g.day, g.total_revenue, len(g.sessions)) for g in group_by_date(sessions)]
