"""
Per-player bills and session totals, derived on demand.

total = quantity * court fee + drinks + shuttlecock fees + adjustment
"""

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction
from typing import Iterable, Mapping

from .constants import COURT_FEE, DRINKS
from .models import Player, PlayerDetails, SessionSummary, to_number
from .settlement import Ledger


def quantity_of(player: Player) -> int:
    return max(1, int(to_number(player.quantity, 1) or 1))


def court_fee_of(player: Player, court_fee: float = COURT_FEE) -> float:
    return quantity_of(player) * court_fee


def drinks_cost_of(player: Player, drinks: Mapping[str, dict] = DRINKS) -> float:
    """Unknown drink ids (e.g. removed from the menu) cost nothing."""
    total = 0
    for drink_id, qty in (player.consumed_drinks or {}).items():
        drink = drinks.get(drink_id)
        if drink is None:
            continue
        total += to_number(drink.get("price")) * to_number(qty)
    return total


def adjustment_of(player: Player) -> float:
    adj = player.adjustment
    return to_number(adj.amount) if adj is not None else 0


def total_cost_of(
    player: Player,
    fees: Mapping[str, Fraction],
    court_fee: float = COURT_FEE,
    drinks: Mapping[str, dict] = DRINKS,
) -> float:
    return (
        court_fee_of(player, court_fee)
        + drinks_cost_of(player, drinks)
        + fees.get(player.id, 0)
        + adjustment_of(player)
    )


def player_details(
    players: Iterable[Player],
    ledger: Ledger,
    court_fee: float = COURT_FEE,
    drinks: Mapping[str, dict] = DRINKS,
) -> list[PlayerDetails]:
    """Snapshot each player with their derived costs and losses."""
    out = []
    for p in players:
        out.append(PlayerDetails(
            id=p.id,
            name=p.name,
            phone=p.phone,
            consumed_drinks=dict(p.consumed_drinks),
            is_guest=p.is_guest,
            quantity=quantity_of(p),
            adjustment=p.adjustment,
            is_paid=p.is_paid,
            total_cost=total_cost_of(p, ledger.fees, court_fee, drinks),
            losses=ledger.losses.get(p.id, 0),
            drinks_cost=drinks_cost_of(p, drinks),
            shuttlecock_cost=ledger.fees.get(p.id, 0),
        ))
    return out


@dataclass(frozen=True)
class Totals:
    player_count: int
    total_court_fee: float
    total_drinks_cost: float
    total_shuttlecock_cost: float
    total_adjustments: float
    grand_total: float
    total_paid: float

    @property
    def outstanding(self) -> float:
        return self.grand_total - self.total_paid

    def summary(self) -> SessionSummary:
        return SessionSummary(
            total_court_fee=float(self.total_court_fee),
            total_drinks_cost=float(self.total_drinks_cost),
            total_shuttlecock_cost=float(self.total_shuttlecock_cost),
            grand_total=float(self.grand_total),
        )


def summarize(
    players: Iterable[Player],
    ledger: Ledger,
    court_fee: float = COURT_FEE,
    drinks: Mapping[str, dict] = DRINKS,
) -> Totals:
    players = list(players)
    court = sum((court_fee_of(p, court_fee) for p in players), 0)
    drink = sum((drinks_cost_of(p, drinks) for p in players), 0)
    shuttle = sum((ledger.fees.get(p.id, 0) for p in players), Fraction(0))
    adjustments = sum((adjustment_of(p) for p in players), 0)
    paid = sum(
        (total_cost_of(p, ledger.fees, court_fee, drinks) for p in players if p.is_paid),
        0,
    )
    return Totals(
        player_count=sum(quantity_of(p) for p in players),
        total_court_fee=court,
        total_drinks_cost=drink,
        total_shuttlecock_cost=shuttle,
        total_adjustments=adjustments,
        grand_total=court + drink + shuttle + adjustments,
        total_paid=paid,
    )
