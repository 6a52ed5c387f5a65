"""
Constants used across the game platform.
"""

import os

# Largest id accepted from path/query parameters (PostgreSQL INTEGER)
DATABASE_MAX_ID = 2147483647

# Season assigned to games whose schedule setup does not name one
CURRENT_SEASON = int(os.getenv("CURRENT_SEASON", "3"))
MIN_SEASON = 1
MAX_SEASON = 3

# Account constraints
USERNAME_MIN_LENGTH = 4
USERNAME_MAX_LENGTH = 25
PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 128
RESERVED_USERNAMES = ["admin", "devwars", "moderator", "system", "root", "support"]

# Password reset links stay valid for this long
PASSWORD_RESET_EXPIRATION_HOURS = 6

# User search
SEARCH_DEFAULT_LIMIT = 10
SEARCH_MAX_LIMIT = 50

# Game paging
GAMES_PAGE_DEFAULT = 20
GAMES_PAGE_MAX = 100

# Teams and editor slots
TEAM_BLUE = 0
TEAM_RED = 1
DEFAULT_TEAMS = {
    "0": {"id": TEAM_BLUE, "name": "blue"},
    "1": {"id": TEAM_RED, "name": "red"},
}
EDITOR_LANGUAGES = ["html", "css", "js"]
PLAYERS_PER_TEAM = len(EDITOR_LANGUAGES)
MAX_GAME_PLAYERS = PLAYERS_PER_TEAM * len(DEFAULT_TEAMS)

# Fewer distinct applicants than this cannot be auto-assigned
MIN_AUTO_ASSIGN_APPLICANTS = 2

# Bumped whenever the stored game document changes shape
GAME_STORAGE_VERSION = 1
