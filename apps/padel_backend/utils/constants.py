"""
Constants used across the padel league system.
"""

# Calendar generation
DEFAULT_MATCH_TIME = "10:00:00"  # Default kick-off slot for generated matches
DAYS_BETWEEN_WEEKS = 7
MIN_TEAMS_FOR_CALENDAR = 2

# Classification scoring
WIN_POINTS = 2
LOSS_POINTS = 0

# Teams
MAX_TEAM_MEMBERS = 4
PASSCODE_LENGTH = 6
PASSCODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
MAX_PASSCODE_ATTEMPTS = 20

# Enumerations shared by leagues, teams and players
SKILL_LEVELS = ("1", "2", "3", "4")
TEAM_GENDERS = ("male", "female", "mixed")
PLAYER_GENDERS = ("male", "female")
USER_ROLES = ("admin", "player")
LEVEL_VALIDATION_STATUSES = ("none", "pending", "approved", "rejected")

# Team availability
DAYS_OF_WEEK = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

# Team change notifications
TEAM_CHANGE_ACTIONS = ("joined", "removed")
NOTIFICATION_FILTERS = ("unread", "read", "all")
