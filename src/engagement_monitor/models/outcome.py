"""
Tick Outcomes
=============

Fixed set of machine-readable outcomes for a single sampling tick.

Each tick ends in exactly ONE outcome. Missing subjects and degenerate
readings are kept apart so that each can be observed and tested on its own.
"""

from enum import Enum


class TickOutcome(str, Enum):
    """
    Result of one sampling tick.

    Attributes:
        RECORDED: Reading applied to every stage
        DEGENERATE: Reading recorded, but all non-neutral scores were zero,
            so smoothing and classification were skipped
        NO_DETECTION: Source reported no subject; nothing recorded
        SOURCE_ERROR: Source raised or timed out; nothing recorded
    """

    RECORDED = "RECORDED"
    DEGENERATE = "DEGENERATE"
    NO_DETECTION = "NO_DETECTION"
    SOURCE_ERROR = "SOURCE_ERROR"
