# backend/offleash/services/recurring/__init__.py
"""
Recurring series: recipe → dates → occurrences through the single-creation
path, with a partial-success report.
"""

from .rules import Fixed, Indefinite, WeeklyRule, INDEFINITE_WEEKS
from .dates import block_dates, next_monthly, series_dates
from .materializer import (
    BlockRecipe,
    MaterializationReport,
    Occurrence,
    OccurrenceConflict,
    SeriesRecipe,
    SeriesState,
    cancel_series,
    get_series,
    list_customer_series,
    materialize_recurring_blocks,
    materialize_series,
    next_occurrence,
    validate_block_recipe,
    validate_series_recipe,
)

__all__ = [
    "Fixed",
    "Indefinite",
    "WeeklyRule",
    "INDEFINITE_WEEKS",
    "block_dates",
    "next_monthly",
    "series_dates",
    "BlockRecipe",
    "MaterializationReport",
    "Occurrence",
    "OccurrenceConflict",
    "SeriesRecipe",
    "SeriesState",
    "cancel_series",
    "get_series",
    "list_customer_series",
    "materialize_recurring_blocks",
    "materialize_series",
    "next_occurrence",
    "validate_block_recipe",
    "validate_series_recipe",
]
