"""
Data models for a badminton venue session.

Persisted records use the camelCase keys of the stored JSON so that history
written by earlier versions of the tool keeps loading.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from fractions import Fraction
from typing import Any, Literal

from .constants import COURT_COUNT, DOUBLES, TEAMS

Team = Literal["A", "B"]
GameType = Literal["singles", "doubles"]


def to_number(value: Any, default: float = 0) -> float:
    """Coerce stored or typed-in values to a number; junk becomes `default`."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, Fraction)):
        return value
    try:
        n = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(n) or math.isinf(n):
        return default
    return int(n) if n.is_integer() else n


@dataclass(frozen=True, order=True)
class SlotId:
    court: int
    team: str
    position: int

    def __post_init__(self):
        if not 0 <= self.court < COURT_COUNT:
            raise ValueError(f"Court index out of range: {self.court}")
        if self.team not in TEAMS:
            raise ValueError(f"Unknown team: {self.team!r}")
        if self.position not in (0, 1):
            raise ValueError(f"Slot position must be 0 or 1, got {self.position}")

    @property
    def key(self) -> str:
        return f"court-{self.court}-{self.team}-{self.position}"

    @classmethod
    def parse(cls, key: str) -> "SlotId":
        """Parse a `court-<n>-<team>-<pos>` key."""
        parts = key.split("-")
        if len(parts) != 4 or parts[0] != "court":
            raise ValueError(f"Malformed slot key: {key!r}")
        try:
            return cls(int(parts[1]), parts[2], int(parts[3]))
        except ValueError as e:
            raise ValueError(f"Malformed slot key: {key!r}") from e

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class Adjustment:
    amount: float = 0
    reason: str = ""


@dataclass
class Player:
    id: str
    name: str
    phone: str = ""
    consumed_drinks: dict[str, int] = field(default_factory=dict)
    is_guest: bool = False
    quantity: int = 1
    adjustment: Adjustment = field(default_factory=Adjustment)
    is_paid: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "consumedDrinks": dict(self.consumed_drinks),
            "isGuest": self.is_guest,
            "quantity": self.quantity,
            "adjustment": {"amount": float(self.adjustment.amount), "reason": self.adjustment.reason},
            "isPaid": self.is_paid,
        }

    @staticmethod
    def _fields_from_dict(d: dict) -> dict:
        adj = d.get("adjustment") or {}
        if not isinstance(adj, dict):
            adj = {}
        drinks = d.get("consumedDrinks") or {}
        if not isinstance(drinks, dict):
            drinks = {}
        return {
            "id": str(d["id"]),
            "name": str(d.get("name") or ""),
            "phone": str(d.get("phone") or ""),
            "consumed_drinks": {str(k): int(to_number(v)) for k, v in drinks.items()},
            "is_guest": bool(d.get("isGuest", False)),
            "quantity": max(1, int(to_number(d.get("quantity"), 1) or 1)),
            "adjustment": Adjustment(to_number(adj.get("amount")), str(adj.get("reason") or "")),
            "is_paid": bool(d.get("isPaid", False)),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Player":
        return cls(**cls._fields_from_dict(d))


@dataclass
class PlayerDetails(Player):
    """A player with derived costs frozen at the time a session is saved."""
    total_cost: float = 0
    losses: int = 0
    drinks_cost: float = 0
    shuttlecock_cost: float = 0

    def to_dict(self) -> dict:
        d = super().to_dict()
        d.update(
            totalCost=float(self.total_cost),
            losses=self.losses,
            drinksCost=float(self.drinks_cost),
            shuttlecockCost=float(self.shuttlecock_cost),
        )
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "PlayerDetails":
        return cls(
            **cls._fields_from_dict(d),
            total_cost=to_number(d.get("totalCost")),
            losses=int(to_number(d.get("losses"))),
            drinks_cost=to_number(d.get("drinksCost")),
            shuttlecock_cost=to_number(d.get("shuttlecockCost")),
        )


@dataclass(frozen=True)
class SessionSummary:
    total_court_fee: float = 0
    total_drinks_cost: float = 0
    total_shuttlecock_cost: float = 0
    grand_total: float = 0

    def to_dict(self) -> dict:
        return {
            "totalCourtFee": float(self.total_court_fee),
            "totalDrinksCost": float(self.total_drinks_cost),
            "totalShuttlecockCost": float(self.total_shuttlecock_cost),
            "grandTotal": float(self.grand_total),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "SessionSummary":
        return cls(
            total_court_fee=to_number(d.get("totalCourtFee")),
            total_drinks_cost=to_number(d.get("totalDrinksCost")),
            total_shuttlecock_cost=to_number(d.get("totalShuttlecockCost")),
            grand_total=to_number(d.get("grandTotal")),
        )


@dataclass
class Session:
    id: str
    date: str  # ISO-8601 timestamp
    players: list[PlayerDetails]
    game_type: str = DOUBLES
    summary: SessionSummary = field(default_factory=SessionSummary)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date,
            "players": [p.to_dict() for p in self.players],
            "gameType": self.game_type,
            "summary": self.summary.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Session":
        """Build a session from stored JSON. Raises on structurally broken entries."""
        if not isinstance(d, dict):
            raise ValueError("Session entry is not an object")
        players = d.get("players")
        if not isinstance(players, list):
            raise ValueError(f"Session {d.get('id')} has no player list")
        summary = d.get("summary")
        if not isinstance(summary, dict):
            raise ValueError(f"Session {d.get('id')} has no summary")
        return cls(
            id=str(d["id"]),
            date=str(d.get("date") or ""),
            players=[PlayerDetails.from_dict(p) for p in players if isinstance(p, dict) and "id" in p],
            game_type=str(d.get("gameType") or DOUBLES),
            summary=SessionSummary.from_dict(summary),
        )


@dataclass(frozen=True)
class Settlement:
    """Outcome of settling one court, enough to build the notice shown to staff."""
    match_number: int
    court_index: int
    losing_team: str
    loser_ids: tuple[str, ...]
    loser_names: tuple[str, ...]
    fee_per_loser: Fraction
