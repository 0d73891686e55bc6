"""Loyalty tiers derived from lifetime points."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class Tier(str, Enum):
    DOUCEUR = "Douceur"
    GOURMAND = "Gourmand"
    PRESTIGE = "Prestige"


# Highest threshold first.
TIER_THRESHOLDS: tuple[tuple[int, Tier], ...] = (
    (400, Tier.PRESTIGE),
    (150, Tier.GOURMAND),
    (0, Tier.DOUCEUR),
)


def tier_for(lifetime_points: int) -> Tier:
    for threshold, tier in TIER_THRESHOLDS:
        if lifetime_points >= threshold:
            return tier
    return Tier.DOUCEUR


def points_to_next_tier(lifetime_points: int) -> Optional[int]:
    """Points still missing to reach the next tier, ``None`` at the top tier."""

    missing = None
    for threshold, _tier in TIER_THRESHOLDS:
        if lifetime_points < threshold:
            missing = threshold - lifetime_points
    return missing
