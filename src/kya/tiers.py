"""
kya.tiers — Reputation tiers, their total order and their on-chain codes.

Tier is the only place the ordering UNVERIFIED < VERIFIED < GOLD < PLATINUM
lives. The EVM encoder reads `Tier.code`, the "highest tier" reduction uses
the comparison operators, and both derive from declaration order.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Optional


class Tier(str, Enum):
    """Trust tier held by an agent. Declaration order is the trust order."""
    UNVERIFIED = "UNVERIFIED"
    VERIFIED = "VERIFIED"
    GOLD = "GOLD"
    PLATINUM = "PLATINUM"

    @property
    def code(self) -> int:
        """Integer code used in packed EVM payloads (uint8)."""
        return _ORDER.index(self)

    @classmethod
    def from_code(cls, code: int) -> "Tier":
        if isinstance(code, bool) or not isinstance(code, int) or not 0 <= code < len(_ORDER):
            raise ValueError(f"Unknown tier code: {code!r}")
        return _ORDER[code]

    @classmethod
    def from_score(cls, score: int) -> "Tier":
        """Tier an agent earns at a given reputation score (0-1000)."""
        if score < 250:
            return cls.UNVERIFIED
        if score < 500:
            return cls.VERIFIED
        if score < 750:
            return cls.GOLD
        return cls.PLATINUM

    @property
    def rate_limit(self) -> Optional[int]:
        """Requests per second granted to the tier. None means unlimited."""
        return _RATE_LIMITS[self]

    # str's own comparisons would order tiers alphabetically
    def __lt__(self, other):
        if not isinstance(other, Tier):
            return NotImplemented
        return self.code < other.code

    def __le__(self, other):
        if not isinstance(other, Tier):
            return NotImplemented
        return self.code <= other.code

    def __gt__(self, other):
        if not isinstance(other, Tier):
            return NotImplemented
        return self.code > other.code

    def __ge__(self, other):
        if not isinstance(other, Tier):
            return NotImplemented
        return self.code >= other.code

    def __str__(self) -> str:
        return self.value


_ORDER: list[Tier] = list(Tier)

_RATE_LIMITS: dict[Tier, Optional[int]] = {
    Tier.UNVERIFIED: 0,
    Tier.VERIFIED: 10,
    Tier.GOLD: 100,
    Tier.PLATINUM: None,
}


def parse_tier(value) -> Tier:
    """Accept a Tier, its exact name, or its integer code."""
    if isinstance(value, Tier):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return Tier.from_code(value)
    if isinstance(value, str):
        try:
            return Tier(value)
        except ValueError:
            pass
    raise ValueError(f"Unknown tier: {value!r}")


def best_tier(tiers: Iterable[Tier]) -> Optional[Tier]:
    """Highest tier in a collection, or None when it is empty."""
    return max(tiers, default=None)
