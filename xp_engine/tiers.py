"""
Tier ladder and qualification constants.
Thresholds, rollover caps and the Ultimate (UXP) layer live here so the
cycle builder and the ledger projector share one source of truth.
"""

import logging
import os
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class Tier(str, Enum):
    """Flying Blue status levels. ULTIMATE sits on top of PLATINUM."""
    EXPLORER = "Explorer"
    SILVER = "Silver"
    GOLD = "Gold"
    PLATINUM = "Platinum"
    ULTIMATE = "Ultimate"


BASE_TIERS = [Tier.EXPLORER, Tier.SILVER, Tier.GOLD, Tier.PLATINUM]

# Tier names as printed in nl/en/fr/de/es/pt/it exports
TIER_NAMES = {
    Tier.EXPLORER: ("explorer", "ontdekker", "explorateur", "entdecker", "explorador", "esploratore"),
    Tier.SILVER: ("silver", "zilver", "argent", "silber", "plata", "prata", "argento"),
    Tier.GOLD: ("gold", "goud", "or", "oro", "ouro"),
    Tier.PLATINUM: ("platinum", "platina", "platine", "platin", "platino"),
    Tier.ULTIMATE: ("ultimate",),
}

_TIER_LOOKUP = {name: tier for tier, names in TIER_NAMES.items() for name in names}


# Default configuration values
DEFAULT_CONFIG = {
    # Base XP ladder
    "xp_thresholds": {
        Tier.EXPLORER: 0,
        Tier.SILVER: 100,
        Tier.GOLD: 180,
        Tier.PLATINUM: 300,
    },
    "xp_rollover_cap": 300,
    "cycle_months": 12,

    # Ultimate layer
    "uxp_threshold": 900,
    "uxp_rollover_cap": 900,
    "uxp_total_cap": 1800,
    "uxp_carriers": ("KL", "AF"),
}


def _int_from_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        logger.warning("Invalid %s value; falling back to default %s", name, default)
        return default


def load_config() -> dict:
    """
    Build an engine config from DEFAULT_CONFIG plus environment overrides.

    Recognised variables: XP_ROLLOVER_CAP, UXP_THRESHOLD, UXP_ROLLOVER_CAP.
    Unparsable values are logged and ignored.
    """
    config = dict(DEFAULT_CONFIG)
    config["xp_rollover_cap"] = _int_from_env("XP_ROLLOVER_CAP", DEFAULT_CONFIG["xp_rollover_cap"])
    config["uxp_threshold"] = _int_from_env("UXP_THRESHOLD", DEFAULT_CONFIG["uxp_threshold"])
    config["uxp_rollover_cap"] = _int_from_env("UXP_ROLLOVER_CAP", DEFAULT_CONFIG["uxp_rollover_cap"])
    config["uxp_total_cap"] = config["uxp_threshold"] + config["uxp_rollover_cap"]
    return config


def tier_name_pattern(exclude=()) -> str:
    """
    Regex alternation of every localized tier name, longest first.

    Example:
        >>> "platine" in tier_name_pattern().split("|")
        True
    """
    names = sorted((name for name in _TIER_LOOKUP if name not in exclude), key=len, reverse=True)
    return "|".join(names)


def parse_tier(value) -> Optional[Tier]:
    """
    Resolve a tier from a Tier, or a case-insensitive name in any supported
    language such as "GOLD", "Goud" or "platine".

    Returns None for anything unrecognised.
    """
    if isinstance(value, Tier):
        return value
    if not isinstance(value, str):
        return None
    return _TIER_LOOKUP.get(value.strip().lower())


def base_tier(tier: Tier) -> Tier:
    """Map ULTIMATE onto its base level, PLATINUM."""
    return Tier.PLATINUM if tier is Tier.ULTIMATE else tier


def tier_rank(tier: Tier) -> int:
    return BASE_TIERS.index(base_tier(tier))


def threshold_for(tier: Tier, config: dict = None) -> int:
    """XP needed to reach (or requalify for) the given tier."""
    if config is None:
        config = DEFAULT_CONFIG
    return config["xp_thresholds"][base_tier(tier)]


def next_tier(tier: Tier) -> Optional[Tier]:
    """The base tier directly above, or None at the top of the ladder."""
    rank = tier_rank(tier)
    if rank + 1 < len(BASE_TIERS):
        return BASE_TIERS[rank + 1]
    return None


def previous_tier(tier: Tier) -> Tier:
    rank = tier_rank(tier)
    return BASE_TIERS[max(rank - 1, 0)]


def target_threshold(tier: Tier, config: dict = None) -> int:
    """
    XP that ends a cycle early for a member currently at ``tier``.

    Below the top of the ladder this is the next tier's threshold; a
    Platinum member ends the cycle by requalifying at the Platinum threshold.
    """
    upper = next_tier(tier)
    return threshold_for(upper if upper is not None else Tier.PLATINUM, config)


def tier_for_xp(xp: int, config: dict = None) -> Tier:
    """Highest base tier whose threshold is covered by ``xp``."""
    reached = Tier.EXPLORER
    for tier in BASE_TIERS:
        if xp >= threshold_for(tier, config):
            reached = tier
    return reached


def landing_tier(start: Tier, xp: int, config: dict = None) -> Tier:
    """
    Tier held after a cycle expires naturally.

    The start tier is kept when its own threshold was met (a higher tier
    when the XP covers it); otherwise the member drops a single level.
    """
    start = base_tier(start)
    achieved = tier_for_xp(xp, config)
    if tier_rank(achieved) >= tier_rank(start):
        return achieved
    return previous_tier(start)
