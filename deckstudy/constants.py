"""
Study-session constants.

Field limits mirror the deck/card store columns; timing values are the
defaults used when no configuration overrides them.
"""

# --- Store field limits ---
DECK_NAME_MAX_LENGTH: int = 255
DECK_DESCRIPTION_MAX_LENGTH: int = 1000
OWNER_ID_MAX_LENGTH: int = 255

# --- Session timing (seconds) ---
# The card flips 0.3s after an answer is submitted; the next card is shown
# 2.5s after submission. Both are measured from the submission.
DEFAULT_FLIP_DELAY_SECONDS: float = 0.3
DEFAULT_ADVANCE_DELAY_SECONDS: float = 2.5
DEFAULT_TICK_INTERVAL_SECONDS: float = 1.0

# --- Feedback tiers (inclusive lower bounds, percent) ---
MASTERED_THRESHOLD: int = 90
GOOD_THRESHOLD: int = 70

# Commands accepted at the answer prompt of the interactive study flow.
PAUSE_COMMAND: str = ":pause"
RESUME_COMMAND: str = ":resume"
EXIT_COMMAND: str = ":exit"
