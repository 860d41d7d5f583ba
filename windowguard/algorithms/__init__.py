"""Rate limiting algorithms."""

from windowguard.algorithms.fixed_window import fixed_window
from windowguard.algorithms.sliding_window import sliding_window

FIXED_WINDOW = "fixed-window"
SLIDING_WINDOW = "sliding-window"

ALGORITHMS = {
    FIXED_WINDOW: fixed_window,
    SLIDING_WINDOW: sliding_window,
}

__all__ = [
    "ALGORITHMS",
    "FIXED_WINDOW",
    "SLIDING_WINDOW",
    "fixed_window",
    "sliding_window",
]
