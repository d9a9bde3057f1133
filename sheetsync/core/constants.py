"""
System-Wide Constants for the Attribute Synchronization Engine

All magic numbers, event names and key formats centralized here.
"""

from typing import Final

# =============================================================================
# TIME UNITS
# =============================================================================
SECOND_MS: Final[int] = 1000
NS_PER_MS: Final[int] = 1_000_000

# =============================================================================
# KEY FORMAT
# =============================================================================
REPEATING_PREFIX: Final[str] = "repeating_"
KEY_SEPARATOR: Final[str] = "_"

# =============================================================================
# ROW IDS
# =============================================================================
# Alphabet is ASCII-ordered so generated ids sort by creation time.
# "_" is excluded: it is the key separator.
ROW_ID_ALPHABET: Final[str] = (
    "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
)
ROW_ID_TIME_CHARS: Final[int] = 7
ROW_ID_RANDOM_CHARS: Final[int] = 12
MAX_ID_ATTEMPTS: Final[int] = 1000

# =============================================================================
# EVENTS
# =============================================================================
CHANGE_EVENT_PREFIX: Final[str] = "change:"
CLICK_EVENT_PREFIX: Final[str] = "clicked:"
SHEET_OPENED_EVENT: Final[str] = "sheet:opened"
DROP_EVENT: Final[str] = "drop"

SOURCE_PLAYER: Final[str] = "player"
SOURCE_SHEETWORKER: Final[str] = "sheetworker"

# =============================================================================
# TRIGGERS
# =============================================================================
BUTTON_THROTTLE_MS: Final[int] = 50

# =============================================================================
# LOCALIZATION
# =============================================================================
MISSING_TRANSLATION_PREFIX: Final[str] = "TRANSLATION_KEY_UNDEFINED"

# =============================================================================
# REDIS HOST
# =============================================================================
REDIS_KEY_PREFIX: Final[str] = "sheetsync:sheet"
