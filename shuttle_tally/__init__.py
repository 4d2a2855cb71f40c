"""Shuttle Tally core package.

Exports commonly used modules for convenience.
"""

from . import billing as billing
from . import courts as courts
from . import history as history
from . import logging_config as logging_config
from . import session as session
from . import settlement as settlement
from . import store as store
from .models import Player, PlayerDetails, Session, SessionSummary, Settlement, SlotId

__all__ = [
    "billing",
    "courts",
    "history",
    "logging_config",
    "session",
    "settlement",
    "store",
    "Player",
    "PlayerDetails",
    "Session",
    "SessionSummary",
    "Settlement",
    "SlotId",
]
