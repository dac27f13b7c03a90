"""Budget calculation and prompt building."""

from budgetpages.budget.calculator import (
    UNCATEGORIZED,
    BudgetFigures,
    ReportSummary,
    ScopedEntry,
    SpendingSummary,
    build_report_summary,
    budget_target,
    collect_entries,
    comparison_day_indices,
    comparison_slots,
    compute_budget,
    is_over_budget,
    sorted_by_amount,
    summarize,
    summary_date_key,
    top_of,
    week_start,
)

__all__ = [
    "UNCATEGORIZED",
    "BudgetFigures",
    "ReportSummary",
    "ScopedEntry",
    "SpendingSummary",
    "build_report_summary",
    "budget_target",
    "collect_entries",
    "comparison_day_indices",
    "comparison_slots",
    "compute_budget",
    "is_over_budget",
    "sorted_by_amount",
    "summarize",
    "summary_date_key",
    "top_of",
    "week_start",
]
