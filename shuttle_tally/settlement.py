"""
Match settlement: the losing team pays the shuttlecock fee.
Pure functions; inputs are never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from fractions import Fraction
from typing import Mapping, Optional

from .constants import DOUBLES, SHUTTLECOCK_FEE_PER_MATCH
from .courts import AssignmentTable, team_slots
from .logging_config import get_logger
from .models import Settlement

log = get_logger(__name__)


@dataclass(frozen=True)
class Ledger:
    """Per-session match counter plus loss and fee tallies keyed by player id."""
    matches_played: int = 0
    losses: dict[str, int] = field(default_factory=dict)
    fees: dict[str, Fraction] = field(default_factory=dict)

    def without(self, player_id: str) -> "Ledger":
        losses = {k: v for k, v in self.losses.items() if k != player_id}
        fees = {k: v for k, v in self.fees.items() if k != player_id}
        return Ledger(self.matches_played, losses, fees)

    def total_fees(self) -> Fraction:
        return sum(self.fees.values(), Fraction(0))


def split_fee(fee: float, losers: int) -> Fraction:
    """Exact share of `fee` for each of `losers` players (no rounding)."""
    if losers <= 0:
        raise ValueError("Cannot split a fee among zero players")
    return Fraction(fee) / losers


def losing_players(table: AssignmentTable, court_index: int, team: str, game_type: str) -> list[str]:
    """Occupants of a team's slots in slot order, empty slots skipped."""
    ids = (table.occupant(s) for s in team_slots(court_index, team, game_type))
    return [pid for pid in ids if pid is not None]


def settle(
    table: AssignmentTable,
    ledger: Ledger,
    court_index: int,
    losing_team: str,
    game_type: str = DOUBLES,
    names: Optional[Mapping[str, str]] = None,
    fee_per_match: float = SHUTTLECOCK_FEE_PER_MATCH,
) -> Optional[tuple[AssignmentTable, Ledger, Settlement]]:
    """Settle the match on one court.

    Returns (new_table, new_ledger, settlement), or None when the losing team's
    slots are all empty, in which case nothing changes.

    - match counter +1
    - every loser: losses +1, fees += fee_per_match / number_of_losers
    - the whole court (both teams) is freed
    """
    loser_ids = losing_players(table, court_index, losing_team, game_type)
    if not loser_ids:
        log.debug("Settle ignored: court %s team %s is empty", court_index, losing_team)
        return None

    share = split_fee(fee_per_match, len(loser_ids))
    losses = dict(ledger.losses)
    fees = dict(ledger.fees)
    for pid in loser_ids:
        losses[pid] = losses.get(pid, 0) + 1
        fees[pid] = fees.get(pid, Fraction(0)) + share
    match_number = ledger.matches_played + 1

    new_table = table.copy()
    new_table.clear_court(court_index)

    names = names or {}
    settlement = Settlement(
        match_number=match_number,
        court_index=court_index,
        losing_team=losing_team,
        loser_ids=tuple(loser_ids),
        loser_names=tuple(names[pid] for pid in loser_ids if names.get(pid)),
        fee_per_loser=share,
    )
    log.debug(
        "Match #%s settled on court %s: team %s lost %s, %s each",
        match_number, court_index, losing_team, loser_ids, share,
    )
    return new_table, Ledger(match_number, losses, fees), settlement
