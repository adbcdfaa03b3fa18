"""
Discovery Engine Constants

Pool sizing, refill thresholds and the swipe vocabulary.
"""

from enum import Enum


class DiscoveryDefaults:
    """Candidate pool and session defaults."""

    # Refill until this many unexcluded candidates are buffered
    TARGET_POOL_SIZE = 80
    # Refill is triggered when fewer than this many candidates remain
    LOW_WATERMARK = 20
    # Page ceiling for a single refill call
    MAX_PAGES_PER_FETCH = 10
    # Recently swiped ids kept out of rotation
    HISTORY_LIMIT = 20
    DEFAULT_BATCH_SIZE = 10


class SwipeAction(str, Enum):
    """What the user did with a card."""

    LIKE = "like"
    SKIP = "skip"


class GenreLogic(str, Enum):
    """How multiple selected genres are combined for a random pick."""

    AND = "AND"
    OR = "OR"
