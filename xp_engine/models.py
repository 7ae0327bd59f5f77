"""
Data models for the qualification cycle engine.

CycleSettings is a pydantic model so that partial or sloppy user input is
coerced into usable defaults; the computed records (MonthRow,
QualificationCycle) are frozen dataclasses rebuilt on every run.
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from xp_engine.tiers import DEFAULT_CONFIG, Tier, parse_tier

_MONTH_KEY = re.compile(r"^(\d{4})-(\d{1,2})")

ULTIMATE_CYCLE_TYPES = ("qualification", "calendar")


class CycleSettings(BaseModel):
    """
    Starting point of the first qualification cycle.

    Accepts snake_case names or the camelCase keys used by the import
    wizard (cycleStartMonth, startingStatus, startingXP, startingUXP,
    ultimateCycleType). Missing or invalid values fall back to defaults
    instead of failing validation.

    Usage:
        settings = CycleSettings.model_validate(
            {"cycleStartMonth": "2024-11", "startingStatus": "Gold", "startingXP": 20}
        )
    """
    model_config = ConfigDict(populate_by_name=True)

    cycle_start_month: Optional[str] = Field(
        default=None, alias="cycleStartMonth",
        description="YYYY-MM; None lets the builder start at the first data month",
    )
    starting_status: Tier = Field(default=Tier.EXPLORER, alias="startingStatus")
    starting_xp: int = Field(default=0, alias="startingXP", description="Rollover XP into the first cycle")
    starting_uxp: int = Field(default=0, alias="startingUXP", description="Rollover UXP into the first cycle")
    ultimate_cycle_type: str = Field(default="qualification", alias="ultimateCycleType")

    @field_validator("cycle_start_month", mode="before")
    @classmethod
    def normalize_month(cls, v):
        if isinstance(v, date):
            return f"{v.year:04d}-{v.month:02d}"
        if not isinstance(v, str):
            return None
        match = _MONTH_KEY.match(v.strip())
        if not match:
            return None
        year, month = int(match.group(1)), int(match.group(2))
        if not 1 <= month <= 12:
            return None
        return f"{year:04d}-{month:02d}"

    @field_validator("starting_status", mode="before")
    @classmethod
    def default_status(cls, v):
        return parse_tier(v) or Tier.EXPLORER

    @field_validator("starting_xp", "starting_uxp", mode="before")
    @classmethod
    def non_negative_points(cls, v):
        try:
            return max(0, int(v))
        except (TypeError, ValueError):
            return 0

    @field_validator("ultimate_cycle_type", mode="before")
    @classmethod
    def default_cycle_type(cls, v):
        if isinstance(v, str) and v.strip().lower() in ULTIMATE_CYCLE_TYPES:
            return v.strip().lower()
        return "qualification"

    @model_validator(mode="after")
    def bridge_ultimate(self):
        # Ultimate members qualify as Platinum with at least the UXP threshold banked
        if self.starting_status is Tier.ULTIMATE:
            self.starting_status = Tier.PLATINUM
            self.starting_uxp = max(self.starting_uxp, DEFAULT_CONFIG["uxp_threshold"])
        return self


@dataclass(frozen=True)
class XPRecord:
    """
    Non-flight XP booked in one month (imports or manual entry).

    Fields:
    - month: YYYY-MM
    - xp: XP earned outside flights
    - uxp: UXP earned outside flights
    - points: Miles, informational only
    """
    month: str
    xp: int = 0
    uxp: int = 0
    points: int = 0


@dataclass(frozen=True)
class ManualMonthXP:
    """
    User-entered adjustments for one month, added on top of earned XP.

    Fields:
    - card_xp: XP from co-branded card bonuses
    - bonus_xp: promotional XP
    - saf_xp: SAF XP not present in the export
    - correction_xp: free correction, may be negative
    - uxp: UXP adjustment
    """
    card_xp: int = 0
    bonus_xp: int = 0
    saf_xp: int = 0
    correction_xp: int = 0
    uxp: int = 0

    @property
    def total_xp(self) -> int:
        return self.card_xp + self.bonus_xp + self.saf_xp + self.correction_xp


@dataclass(frozen=True)
class MonthRow:
    """
    One month of a cycle ledger.

    Fields:
    - month: YYYY-MM
    - actual_xp: XP from activity dated on or before the evaluation date
    - projected_xp: actual_xp plus scheduled (future-dated) XP
    - actual_cumulative / projected_cumulative: running totals including rollover-in
    - flight_count: legs in the month, scheduled ones included
    - actual_flight_count: legs already flown
    - manual_xp: manual correction merged into this month
    - actual_uxp / projected_uxp: UXP earned in the month
    """
    month: str
    actual_xp: int
    projected_xp: int
    actual_cumulative: int
    projected_cumulative: int
    flight_count: int = 0
    actual_flight_count: int = 0
    manual_xp: int = 0
    actual_uxp: int = 0
    projected_uxp: int = 0

    @property
    def scheduled_xp(self) -> int:
        return self.projected_xp - self.actual_xp


@dataclass(frozen=True)
class QualificationCycle:
    """
    One qualification period in the chain.

    Fields:
    - index: position in the chain, 0-based
    - start_date: first day of the first month
    - end_date: first day after the last month (exclusive)
    - start_tier: tier held at the start
    - end_tier: tier implied by actual XP
    - projected_end_tier: tier implied by projected XP
    - rollover_in / rollover_out: XP carried across the boundaries
    - threshold: XP the cycle was measured against
    - actual_xp / projected_xp: cumulative XP at the last ledger row
    - ledger: MonthRow per month
    - ended_by_level_up: the target was reached before the twelve months ran out
    - level_up_is_actual: reached in flown data (only then is the cycle cut short)
    - level_up_month: YYYY-MM of the level-up
    - is_ultimate_track / projected_ultimate: Platinum with UXP at the Ultimate threshold
    - uxp_rollover_in / actual_uxp / projected_uxp / uxp_rollover_out / uxp_waste:
      the parallel UXP accumulation for this cycle
    """
    index: int
    start_date: date
    end_date: date
    start_tier: Tier
    end_tier: Tier
    projected_end_tier: Tier
    rollover_in: int
    rollover_out: int
    threshold: int
    actual_xp: int
    projected_xp: int
    ledger: Tuple[MonthRow, ...]
    ended_by_level_up: bool = False
    level_up_is_actual: bool = False
    level_up_month: Optional[str] = None
    is_ultimate_track: bool = False
    projected_ultimate: bool = False
    uxp_rollover_in: int = 0
    actual_uxp: int = 0
    projected_uxp: int = 0
    uxp_rollover_out: int = 0
    uxp_waste: int = 0

    @property
    def start_month(self) -> str:
        return f"{self.start_date.year:04d}-{self.start_date.month:02d}"

    @property
    def threshold_met(self) -> bool:
        return self.actual_xp >= self.threshold

    def contains(self, day: date) -> bool:
        return self.start_date <= day < self.end_date
