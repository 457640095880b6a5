"""
Page scale and skew.

All curve thresholds are expressed as fractions of the staff interline; the
Scale converts them to pixels for the page at hand.
"""

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Scale:
    """Interline-based conversion between fractions and pixels."""
    interline: float

    def __post_init__(self):
        if self.interline <= 0:
            raise ValueError(f"Interline must be positive, got {self.interline}")

    def to_pixels(self, fraction):
        """Pixel count for an interline fraction, halves rounded up."""
        return int(math.floor(fraction * self.interline + 0.5))

    def to_pixels_double(self, fraction):
        return fraction * self.interline


@dataclass(frozen=True)
class Skew:
    """Global page skew, as the slope (dy/dx) of horizontal page lines."""
    slope: float = 0.0
