"""
Budget and Spending Calculator

Turns raw entries into the numbers that prompts, fallback summaries and
the weekly email are built from.

CRITICAL: Everything here is a pure function of its inputs. The user's
settings come in as a snapshot; pages come in already loaded. No
storage, no clock (callers pass ``today``), no AI.

Budget arithmetic is NOT rounded here. Rounding happens only when a
number is formatted for display.
"""

from datetime import date, timedelta
from typing import Iterable, Mapping, Optional, Sequence, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from budgetpages.models import (
    DAYS_PER_PAGE,
    Page,
    SummaryType,
    UserSettings,
    slot_for_index,
    weekday_name,
)


UNCATEGORIZED = "Uncategorized"
WEEKS_PER_MONTH = 4
DAYS_PER_MONTH = 30
COMPARISON_SPAN = 3

K = TypeVar("K")


class ScopedEntry(BaseModel):
    """An entry flattened out of its page/day, with its slot attached."""

    model_config = ConfigDict(frozen=True)

    title: str
    amount: float
    category: str
    day_index: int


class SpendingSummary(BaseModel):
    """Totals and breakdowns over one scope of entries."""

    total_spent: float = 0.0
    entries_by_category: dict[str, float] = Field(default_factory=dict)
    entries_by_day: dict[int, float] = Field(default_factory=dict)
    entry_count: int = 0
    top_category: Optional[tuple[str, float]] = None
    top_day: Optional[tuple[int, float]] = None

    @property
    def average_daily(self) -> float:
        return self.total_spent / DAYS_PER_PAGE

    @property
    def is_empty(self) -> bool:
        return self.entry_count == 0


class BudgetFigures(BaseModel):
    """Monthly budget broken down after fixed expenses."""

    monthly_budget: float
    fixed_expenses_total: float
    available_monthly_budget: float
    weekly_budget: float
    daily_budget: float

    @property
    def daily_safe_spend(self) -> float:
        """Per-day spend that keeps a week on target."""
        return self.weekly_budget / DAYS_PER_PAGE


class ReportSummary(BaseModel):
    """Weekly email aggregate, keyed by weekday name."""

    week_total: float = 0.0
    categories_breakdown: dict[str, float] = Field(default_factory=dict)
    daily_breakdown: dict[str, float] = Field(default_factory=dict)
    top_spending_day: tuple[str, float] = ("N/A", 0.0)

    @property
    def average_daily_spending(self) -> float:
        return self.week_total / DAYS_PER_PAGE


def category_of(raw: Optional[str]) -> str:
    return raw if raw else UNCATEGORIZED


def collect_entries(
    pages: Iterable[Page],
    day_indices: Optional[Sequence[int]] = None,
) -> list[ScopedEntry]:
    """
    Flatten pages into entries, page by page, day by day.

    When ``day_indices`` is given, only those slots are included.
    """
    wanted = set(day_indices) if day_indices is not None else None
    collected = []
    for page in pages:
        for day in page.days:
            if wanted is not None and day.day_index not in wanted:
                continue
            for entry in day.entries:
                collected.append(ScopedEntry(
                    title=entry.title or "Untitled",
                    amount=entry.amount or 0.0,
                    category=category_of(entry.category),
                    day_index=day.day_index,
                ))
    return collected


def top_of(totals: Mapping[K, float]) -> Optional[tuple[K, float]]:
    """
    Largest bucket.

    Ties go to the bucket inserted first; empty input gives None.
    """
    best = None
    for key, amount in totals.items():
        if best is None or amount > best[1]:
            best = (key, amount)
    return best


def summarize(entries: Iterable[ScopedEntry]) -> SpendingSummary:
    """Total, per-category and per-day sums over a scope."""
    total = 0.0
    by_category: dict[str, float] = {}
    by_day: dict[int, float] = {}
    count = 0

    for entry in entries:
        total += entry.amount
        by_category[entry.category] = by_category.get(entry.category, 0.0) + entry.amount
        by_day[entry.day_index] = by_day.get(entry.day_index, 0.0) + entry.amount
        count += 1

    return SpendingSummary(
        total_spent=total,
        entries_by_category=by_category,
        entries_by_day=by_day,
        entry_count=count,
        top_category=top_of(by_category),
        top_day=top_of(by_day),
    )


def compute_budget(settings: UserSettings) -> BudgetFigures:
    """
    Derive weekly and daily targets from the monthly budget.

    The available budget is not clamped: fixed expenses larger than the
    budget give negative targets, and the prompts say so.
    """
    fixed_total = sum((expense.amount or 0.0) for expense in settings.fixed_expenses)
    monthly = settings.monthly_budget or 0.0
    available = monthly - fixed_total
    return BudgetFigures(
        monthly_budget=monthly,
        fixed_expenses_total=fixed_total,
        available_monthly_budget=available,
        weekly_budget=available / WEEKS_PER_MONTH,
        daily_budget=available / DAYS_PER_MONTH,
    )


def budget_target(figures: BudgetFigures, summary_type: SummaryType) -> float:
    if summary_type == SummaryType.WEEKLY:
        return figures.weekly_budget
    return figures.daily_budget


def is_over_budget(
    total_spent: float,
    figures: BudgetFigures,
    summary_type: SummaryType,
) -> bool:
    return total_spent > budget_target(figures, summary_type)


def comparison_day_indices(day_index: int, span: int = COMPARISON_SPAN) -> list[int]:
    """
    The given day and the days before it, wrapping around the week.

    Raw modulo-7 values: 0 stands for Sunday. Use ``comparison_slots``
    to address page slots.
    """
    return [(day_index - i + DAYS_PER_PAGE) % DAYS_PER_PAGE for i in range(span)]


def comparison_slots(day_index: int, span: int = COMPARISON_SPAN) -> list[int]:
    return [slot_for_index(i) for i in comparison_day_indices(day_index, span)]


def week_start(today: date) -> date:
    """Most recent Sunday (today, if today is a Sunday)."""
    days_since_sunday = (today.weekday() + 1) % 7
    return today - timedelta(days=days_since_sunday)


def summary_date_key(summary_type: SummaryType, today: date) -> str:
    if summary_type == SummaryType.WEEKLY:
        return week_start(today).isoformat()
    return today.isoformat()


def build_report_summary(pages: Iterable[Page]) -> ReportSummary:
    """
    Aggregate for the weekly email.

    Unlike ``summarize`` the day buckets are weekday names, every slot
    present on a page gets a bucket (possibly 0), and a top day is only
    reported when something was actually spent.
    """
    week_total = 0.0
    categories: dict[str, float] = {}
    daily: dict[str, float] = {}

    for page in pages:
        for day in page.days:
            name = weekday_name(day.day_index)
            daily.setdefault(name, 0.0)
            for entry in day.entries:
                amount = entry.amount or 0.0
                week_total += amount
                category = category_of(entry.category)
                categories[category] = categories.get(category, 0.0) + amount
                daily[name] += amount

    top = top_of(daily)
    if top is None or top[1] <= 0:
        top = ("N/A", 0.0)

    return ReportSummary(
        week_total=week_total,
        categories_breakdown=categories,
        daily_breakdown=daily,
        top_spending_day=top,
    )


def sorted_by_amount(totals: Mapping[K, float]) -> list[tuple[K, float]]:
    """Largest first; equal amounts keep insertion order."""
    return sorted(totals.items(), key=lambda item: item[1], reverse=True)
