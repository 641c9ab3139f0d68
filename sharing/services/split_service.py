"""
Revenue split between the covering walker and the original owner.

The covering walker's amount is floored; the original owner receives the
remainder, so the two halves always add back up to the total.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class SplitAmounts:
    """Split of a total in minor currency units (cents)."""

    covering: int
    original: int

    @property
    def total(self) -> int:
        return self.covering + self.original

    def as_dict(self) -> dict[str, int]:
        return {"covering": self.covering, "original": self.original}


def calculate_split(total_compensation: int, covering_percentage: int) -> SplitAmounts:
    """
    Split a total between covering and original walker.

    Args:
        total_compensation: Total in cents (>= 0)
        covering_percentage: Covering walker's share, 0-100. Range is validated
            by the share validators before a share exists, not here.

    Returns:
        SplitAmounts where covering + original == total_compensation

    Example:
        >>> calculate_split(5000, 60)
        SplitAmounts(covering=3000, original=2000)
        >>> calculate_split(999, 33)
        SplitAmounts(covering=329, original=670)
    """
    covering = total_compensation * covering_percentage // 100
    return SplitAmounts(covering=covering, original=total_compensation - covering)
