# backend/offleash/services/recurring/rules.py
"""
Recurring block rule: WEEKLY:<days>:<weeks|INDEFINITE>

    WEEKLY:1,3,5:8          Mon/Wed/Fri for 8 weeks
    WEEKLY:2:INDEFINITE     Tuesdays, open-ended (materialized 52 weeks ahead)

days are comma-separated, Sunday = 0.
"""

from dataclasses import dataclass

from ..errors import RecipeValidationError

INDEFINITE_WEEKS = 52
MAX_WEEKS = 52


@dataclass(frozen=True)
class Fixed:
    weeks: int


@dataclass(frozen=True)
class Indefinite:
    pass


Horizon = Fixed | Indefinite


@dataclass(frozen=True)
class WeeklyRule:
    days: tuple[int, ...]
    horizon: Horizon

    def __post_init__(self):
        if not self.days:
            raise RecipeValidationError("Select at least one day of the week")
        if any(d < 0 or d > 6 for d in self.days):
            raise RecipeValidationError("days of week must be between 0 (Sunday) and 6 (Saturday)")
        if isinstance(self.horizon, Fixed) and not (1 <= self.horizon.weeks <= MAX_WEEKS):
            raise RecipeValidationError(f"weeks_ahead must be between 1 and {MAX_WEEKS}")
        # normalized: sorted, unique
        object.__setattr__(self, "days", tuple(sorted(set(self.days))))

    @property
    def indefinite(self) -> bool:
        return isinstance(self.horizon, Indefinite)

    @property
    def weeks(self) -> int:
        if isinstance(self.horizon, Fixed):
            return self.horizon.weeks
        return INDEFINITE_WEEKS

    @classmethod
    def parse(cls, rule: str) -> "WeeklyRule":
        parts = (rule or "").strip().split(":")
        if len(parts) != 3 or parts[0].upper() != "WEEKLY":
            raise RecipeValidationError(f"invalid recurrence rule {rule!r}")
        try:
            days = tuple(int(d) for d in parts[1].split(",") if d.strip())
        except ValueError:
            raise RecipeValidationError(f"invalid days in recurrence rule {rule!r}")

        if parts[2].upper() == "INDEFINITE":
            horizon: Horizon = Indefinite()
        else:
            try:
                horizon = Fixed(int(parts[2]))
            except ValueError:
                raise RecipeValidationError(f"invalid weeks in recurrence rule {rule!r}")
        return cls(days=days, horizon=horizon)

    def __str__(self) -> str:
        days = ",".join(str(d) for d in self.days)
        tail = "INDEFINITE" if self.indefinite else str(self.weeks)
        return f"WEEKLY:{days}:{tail}"
