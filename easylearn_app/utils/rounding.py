"""Integer rounding that matches what users expect from a score."""
import math


def round_half_up(value: float) -> int:
    """Round .5 upwards, unlike Python's banker's ``round``."""
    return int(math.floor(value + 0.5))
