"""
Static tables and defaults for a venue session.
"""

COURT_FEE = 15000  # VND per head
SHUTTLECOCK_FEE_PER_MATCH = 28000  # VND per match, split among the losing team

COURT_COUNT = 7
TEAMS = ("A", "B")
SINGLES = "singles"
DOUBLES = "doubles"
GAME_TYPES = (SINGLES, DOUBLES)

GUEST_PLAYER_ID = "guest-player-id"
GUEST_PLAYER_NAME = "Khách vãng lai"

DEFAULT_PLAYER_NAMES = ("Người chơi 1", "Người chơi 2")

# Drink id -> (display name, unit price)
DRINKS: dict[str, dict] = {
    "tra-duong": {"name": "Trà đường", "price": 12000},
    "nuoc-chai": {"name": "Nước chai", "price": 15000},
    "nuoc-suoi": {"name": "Nước suối", "price": 5000},
}

COURT_COLORS = ("emerald", "sky", "amber", "rose", "violet", "slate", "lime")

# Key-value store record names
ROSTER_KEY = "badmintonPlayers"
HISTORY_KEY = "badmintonHistory"
COURT_COLORS_KEY = "badmintonCourtColors"
